#!/usr/bin/env python3

import layout
from interrupts import InterruptCause, enter_handler
from micro_op import (ALUImmOp, ALURegOp, AluOp, JumpCondition, LoadConst, OperationSize, Register,
                      RelJumpImm, SpecialOperation, window)

QUAD = OperationSize.QUAD


def iret():
    """ Undoes enter_handler and clears the pending bit of the cause that was handled """
    return [
        # returning while not handling an interrupt resets
        ALUImmOp(AluOp.TEST, Register.HANDLING_INTERRUPT, 1, Register.SCRATCH_0),
        RelJumpImm(Register.SCRATCH_0, JumpCondition.NOT_ZERO, 2),
        LoadConst(Register.SPECIAL_OPERATIONS, SpecialOperation.RESET),
        # INT_PENDING &= ~(1 << INT_CAUSE)
        LoadConst(Register.SCRATCH_0, 1),
        ALURegOp(AluOp.SHL, Register.SCRATCH_0, Register.INT_CAUSE, Register.SCRATCH_0, size=QUAD),
        ALUImmOp(AluOp.XOR, Register.SCRATCH_0, -1, Register.SCRATCH_0, size=QUAD),
        ALURegOp(AluOp.AND, Register.INT_PENDING, Register.SCRATCH_0, Register.INT_PENDING, size=QUAD),
        ALURegOp(AluOp.SEXT, Register.INT_RET_IP, Register.ADDRESS_WIDTH, Register.IP),
        ALURegOp(AluOp.SEXT, Register.INT_RET_SP, Register.ADDRESS_WIDTH, Register.SP),
        ALUImmOp(AluOp.ZEXT, Register.INT_RET_PRIV, 0, Register.PRIV),
        ALUImmOp(AluOp.AND, Register.HANDLING_INTERRUPT, 0, Register.HANDLING_INTERRUPT,
                 end_of_instruction=True, size=QUAD),
    ]


def halt():
    return [ALUImmOp(AluOp.OR, Register.HALT_STATUS, 1, Register.HALT_STATUS,
                     end_of_instruction=True, advance_ip=True)]


def software_interrupt():
    # the interrupt number goes to INT_DATA
    data = ALUImmOp(AluOp.ZEXT, Register.IMMEDIATE, 3, Register.INT_DATA)
    return enter_handler(InterruptCause.SOFTWARE, data)


def _trigger(op):
    return [
        LoadConst(Register.SPECIAL_OPERATIONS, op),
        # the cache acts on the trigger, this op only ends the instruction
        ALUImmOp(AluOp.ADD, Register.INVALID, 0, Register.INVALID, end_of_instruction=True, advance_ip=True),
    ]


def cache_line_op(op):
    """ Cache maintenance on the line holding the address in REGB """
    return [ALUImmOp(AluOp.SEXT, Register.REGB, 3, Register.SCRATCH_0)] + _trigger(op)


def cache_all_op(op):
    return _trigger(op)


# slot order; None leaves the slot empty
MISC_OPS = [
    ("IRet", iret),
    ("Halt", halt),
    ("Int", software_interrupt),
    None,
    ("Data Prefetch", lambda: cache_line_op(SpecialOperation.DATA_PREFETCH_LINE)),
    ("Instruction Prefetch", lambda: cache_line_op(SpecialOperation.INSTRUCTION_PREFETCH_LINE)),
    ("Data Cache Flush", lambda: cache_line_op(SpecialOperation.DCACHE_FLUSH_LINE)),
    ("Instruction Cache Invalidate", lambda: cache_line_op(SpecialOperation.ICACHE_INVALIDATE_LINE)),
    ("Allocate Zero", lambda: cache_line_op(SpecialOperation.ALLOC_ZERO)),
    ("Data Cache Invalidate", lambda: cache_line_op(SpecialOperation.DCACHE_INVALIDATE_LINE)),
    ("Cache Flush All", lambda: cache_all_op(SpecialOperation.FLUSH_ALL)),
    ("Cache Invalidate All", lambda: cache_all_op(SpecialOperation.INVALIDATE_ALL)),
]


def misc_ops():
    region = layout.MISC
    return window(region.size, [
        (entry[0], slot * region.slot_size, entry[1]())
        for slot, entry in enumerate(MISC_OPS) if entry is not None
    ])


if __name__ == "__main__":
    from micro_op import disassemble

    for line in disassemble(misc_ops().words(), base=layout.MISC.start):
        print(line)
