#!/usr/bin/env python3

import layout
from micro_op import ALUImmOp, ALURegOp, AluOp, LoadConst, OperationSize, Register, window

AW = OperationSize.ADDRESS_WIDTH
MASK = Register.SCRATCH_0

ABSOLUTE_WIDTHS = (8, 16, 32, 64)

LDC_MIN = -(1 << 23)


def link():
    return ALURegOp(AluOp.SEXT, Register.NEXT_INSTR_ADDR, Register.ADDRESS_WIDTH, Register.LN)


def _high_mask(bits):
    """ Loads ~((1 << bits) - 1) into SCRATCH_0 """
    mask = -(1 << bits)
    if mask >= LDC_MIN:
        return [LoadConst(MASK, mask)]
    # too wide for a load-constant, shift all ones up instead
    return [
        LoadConst(MASK, -1),
        ALUImmOp(AluOp.SHL, MASK, bits, MASK, size=OperationSize.QUAD),
    ]


def absolute_jump(bits, revision, call=False):
    """
        Replaces the low `bits` bits of IP with the immediate.

        Widths the revision can't address produce no micro-ops at all, and a width covering the
        whole address replaces IP outright.
    """
    if bits > revision.address_bits:
        return []

    ops = [link()] if call else []
    if bits == revision.address_bits:
        ops.append(ALURegOp(AluOp.SEXT, Register.IMMEDIATE, Register.ADDRESS_WIDTH, Register.IP,
                            end_of_instruction=True))
    else:
        ops += _high_mask(bits) + [
            ALURegOp(AluOp.AND, Register.IP, MASK, Register.IP, size=AW),
            ALURegOp(AluOp.OR, Register.IP, Register.IMMEDIATE, Register.IP, end_of_instruction=True, size=AW),
        ]
    return ops


def relative_jump(call=False):
    ops = [link()] if call else []
    ops.append(ALURegOp(AluOp.ADD, Register.IP, Register.IMMEDIATE, Register.IP, end_of_instruction=True, size=AW))
    return ops


def register_jump(call=False):
    ops = [link()] if call else []
    ops.append(ALURegOp(AluOp.SEXT, Register.REGA, Register.ADDRESS_WIDTH, Register.IP, end_of_instruction=True))
    return ops


def routines(revision):
    """ (label, ops) for every jump slot, in slot order """
    for bits in ABSOLUTE_WIDTHS:
        yield f"Absolute Immediate Jump Lower {bits} Bits", absolute_jump(bits, revision)
        yield f"Absolute Immediate Call Lower {bits} Bits", absolute_jump(bits, revision, call=True)
    yield "Relative Immediate Jump", relative_jump()
    yield "Relative Immediate Call", relative_jump(call=True)
    yield "Register Jump", register_jump()
    yield "Register Call", register_jump(call=True)


def jumps(revision):
    region = layout.JUMPS
    return window(region.size, [
        (name, slot * region.slot_size, ops)
        for slot, (name, ops) in enumerate(routines(revision))
    ])


if __name__ == "__main__":
    from micro_op import disassemble
    from revision import Revision

    for revision in Revision:
        print(revision.name)
        for line in disassemble(jumps(revision).words(), base=layout.JUMPS.start):
            print(line)
