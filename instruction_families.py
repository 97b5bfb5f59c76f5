#!/usr/bin/env python3

# Micro-programs for the ALU instructions, one builder per operand shape.
#
# The decoder has already loaded the operands into pseudo-registers before the first micro-op runs:
#   REGA / REGB         register operands (REGA is also where register results go)
#   IMMEDIATE           the immediate operand
#   REGX, SCALE_X       index register and scale of a memory operand
#   REG_BASE            base register of a memory operand
#   MEM_IMMEDIATE       displacement of a memory operand
#
# Memory operands compute their address into SCRATCH_1, the loaded value goes through SCRATCH_0.

from itertools import product
from typing import NamedTuple

import layout
from micro_op import (ALUImmOp, ALURegOp, AluOp, JumpCondition, LoadConst, MicroProgram, NOP,
                      OperationSize, Register, RelJumpImm, finish, routine)
from opcodes import Opcode, lookup

AW = OperationSize.ADDRESS_WIDTH
ADDR = Register.SCRATCH_1
VALUE = Register.SCRATCH_0


class AddressingMode(NamedTuple):
    scaled_index: bool
    base: bool
    displacement: bool

    @property
    def index(self):
        return self.scaled_index << 2 | self.base << 1 | self.displacement

    def __str__(self):
        terms = []
        if self.scaled_index:
            terms.append("(x << s)")
        if self.base:
            terms.append("b")
        if self.displacement:
            terms.append("i")
        return "[" + " + ".join(terms) + "]"


# in layout order: the scaled index is the most significant selector bit
ALL_MODES = [AddressingMode(*bits) for bits in product((False, True), repeat=3)]


def effective_address(mode):
    """ Computes [(x << s) + b + i] into SCRATCH_1. Without an index term the sum starts from zero """
    if mode.scaled_index:
        ops = [ALURegOp(AluOp.SHL, Register.REGX, Register.SCALE_X, ADDR, size=AW)]
    else:
        ops = [LoadConst(ADDR, 0)]
    if mode.base:
        ops.append(ALURegOp(AluOp.ADD, ADDR, Register.REG_BASE, ADDR, size=AW))
    if mode.displacement:
        ops.append(ALURegOp(AluOp.ADD, ADDR, Register.MEM_IMMEDIATE, ADDR, size=AW))
    return ops


def _alu(d, a, b, dest):
    """ The descriptor's own ALU operation; the result is dropped for compare-style opcodes """
    return ALURegOp(d.alu, a, b, dest if d.store else Register.INVALID, update_flags=d.flags)


def _program(d, ops, size):
    ops = ops[:-1] + [finish(ops[-1])]
    return routine(d.name, ops, size)


def reg_reg(code):
    size = layout.REG_REG.slot_size
    d = lookup(code)
    if d is None:
        return MicroProgram.empty(size)

    match d.opcode:
        case Opcode.MOVZ | Opcode.MOVS:
            ops = [ALURegOp(d.alu, Register.REGB, Register.LOG_OPERATION_SIZE, Register.REGA)]
        case Opcode.PUSH:
            # REGA is the stack pointer
            ops = [
                ALURegOp(AluOp.SUB, Register.REGA, Register.OPERATION_WIDTH, VALUE, size=AW),
                ALURegOp(AluOp.STORE, VALUE, Register.REGB, Register.INVALID),
                ALURegOp(AluOp.SEXT, VALUE, Register.ADDRESS_WIDTH, Register.REGA),
            ]
        case Opcode.POP:
            # REGB is the stack pointer
            ops = [
                ALURegOp(AluOp.LOAD, Register.REGB, Register.INVALID, VALUE),
                ALURegOp(AluOp.ADD, Register.REGB, Register.OPERATION_WIDTH, Register.REGB, size=AW),
                ALURegOp(AluOp.SEXT, VALUE, Register.LOG_OPERATION_SIZE, Register.REGA),
            ]
        case Opcode.RSUB | Opcode.RSBB:
            ops = [_alu(d, Register.REGB, Register.REGA, Register.REGA)]
        case Opcode.LOAD | Opcode.STORE:
            # address in REGB
            ops = [_alu(d, Register.REGB, Register.REGA, Register.REGA)]
        case Opcode.SLO | Opcode.LEA | Opcode.READCR | Opcode.WRITECR:
            return MicroProgram.empty(size)
        case _:
            ops = [_alu(d, Register.REGA, Register.REGB, Register.REGA)]

    return _program(d, ops, size)


def reg_imm(code):
    size = layout.REG_IMM.slot_size
    d = lookup(code)
    if d is None:
        return MicroProgram.empty(size)

    match d.opcode:
        case Opcode.MOVZ | Opcode.MOVS:
            ops = [ALURegOp(d.alu, Register.IMMEDIATE, Register.LOG_OPERATION_SIZE, Register.REGA)]
        case Opcode.PUSH:
            ops = [
                ALURegOp(AluOp.SUB, Register.REGA, Register.OPERATION_WIDTH, VALUE, size=AW),
                ALURegOp(AluOp.STORE, VALUE, Register.IMMEDIATE, Register.INVALID),
                ALURegOp(AluOp.SEXT, VALUE, Register.ADDRESS_WIDTH, Register.REGA),
            ]
        case Opcode.READCR:
            # the control register number is the immediate, the dispatcher lives in its own region
            return routine(d.name, [_jump_to(layout.READ_CR.start, layout.REG_IMM.address(code))], size)
        case Opcode.WRITECR:
            return routine(d.name, [_jump_to(layout.WRITE_CR.start, layout.REG_IMM.address(code))], size)
        case Opcode.RSUB | Opcode.RSBB:
            ops = [_alu(d, Register.IMMEDIATE, Register.REGA, Register.REGA)]
        case Opcode.LOAD | Opcode.STORE:
            ops = [_alu(d, Register.IMMEDIATE, Register.REGA, Register.REGA)]
        case Opcode.SLO:
            ops = [
                ALUImmOp(AluOp.SHL, Register.REGA, 5, Register.REGA),
                ALURegOp(AluOp.OR, Register.REGA, Register.IMMEDIATE, Register.REGA),
            ]
        case Opcode.LEA | Opcode.POP:
            return MicroProgram.empty(size)
        case _:
            ops = [_alu(d, Register.REGA, Register.IMMEDIATE, Register.REGA)]

    return _program(d, ops, size)


def _jump_to(target, address):
    return RelJumpImm(Register.INVALID, JumpCondition.ALWAYS, target - address)


def mem_imm(code, mode):
    """ op [mem], imm """
    size = layout.MEM_IMM.slot_size
    d = lookup(code)
    if d is None:
        return MicroProgram.empty(size)

    match d.opcode:
        case Opcode.MOVZ | Opcode.MOVS:
            tail = [ALURegOp(AluOp.STORE, ADDR, Register.IMMEDIATE, Register.INVALID)]
        case Opcode.PUSH:
            # the stack pointer is in memory
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE, size=AW),
                ALURegOp(AluOp.SUB, VALUE, Register.OPERATION_WIDTH, VALUE, size=AW),
                ALURegOp(AluOp.STORE, VALUE, Register.IMMEDIATE, Register.INVALID),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID, size=AW),
            ]
        case Opcode.RSUB | Opcode.RSBB:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, Register.IMMEDIATE, VALUE, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]
        case Opcode.LOAD:
            # the immediate is the source address
            tail = [
                ALURegOp(AluOp.LOAD, Register.IMMEDIATE, Register.INVALID, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]
        case Opcode.STORE:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                ALURegOp(AluOp.STORE, Register.IMMEDIATE, VALUE, Register.INVALID),
            ]
        case Opcode.LEA | Opcode.POP | Opcode.READCR | Opcode.WRITECR | Opcode.SLO:
            return MicroProgram.empty(size)
        case _:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, VALUE, Register.IMMEDIATE, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]

    return _program(d, effective_address(mode) + tail, size)


def reg_mem(code, mode):
    """ op reg, [mem] """
    size = layout.REG_MEM.slot_size
    d = lookup(code)
    if d is None:
        return MicroProgram.empty(size)

    match d.opcode:
        case Opcode.MOVZ | Opcode.MOVS:
            tail = [ALURegOp(AluOp.STORE, Register.REGB, ADDR, Register.INVALID)]
        case Opcode.PUSH:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                ALURegOp(AluOp.SUB, Register.REGA, Register.OPERATION_WIDTH, ADDR, size=AW),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
                # already address sized, the extension just moves it
                ALUImmOp(AluOp.SEXT, ADDR, 3, Register.REGA),
            ]
        case Opcode.POP:
            # the stack pointer is in memory
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE, size=AW),
                ALURegOp(AluOp.LOAD, VALUE, Register.INVALID, Register.REGA),
                ALURegOp(AluOp.ADD, VALUE, Register.OPERATION_WIDTH, VALUE, size=AW),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID, size=AW),
            ]
        case Opcode.RSUB | Opcode.RSBB:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, VALUE, Register.REGA, Register.REGA),
            ]
        case Opcode.LOAD:
            # the memory operand holds the address to load from
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE, size=AW),
                ALURegOp(AluOp.LOAD, VALUE, Register.INVALID, Register.REGA),
            ]
        case Opcode.STORE:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE, size=AW),
                ALURegOp(AluOp.STORE, VALUE, Register.REGA, Register.INVALID),
            ]
        case Opcode.LEA:
            tail = [ALURegOp(AluOp.SEXT, ADDR, Register.LOG_OPERATION_SIZE, Register.REGA)]
        case Opcode.READCR | Opcode.WRITECR | Opcode.SLO:
            return MicroProgram.empty(size)
        case _:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, Register.REGA, VALUE, Register.REGA),
            ]

    return _program(d, effective_address(mode) + tail, size)


def mem_reg(code, mode):
    """ op [mem], reg """
    size = layout.MEM_REG.slot_size
    d = lookup(code)
    if d is None:
        return MicroProgram.empty(size)

    match d.opcode:
        case Opcode.MOVZ | Opcode.MOVS:
            tail = [ALURegOp(AluOp.STORE, ADDR, Register.REGB, Register.INVALID)]
        case Opcode.PUSH:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE, size=AW),
                ALURegOp(AluOp.SUB, VALUE, Register.OPERATION_WIDTH, VALUE, size=AW),
                ALURegOp(AluOp.STORE, VALUE, Register.REGB, Register.INVALID),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID, size=AW),
            ]
        case Opcode.POP:
            # REGB is the stack pointer
            tail = [
                ALURegOp(AluOp.LOAD, Register.REGB, Register.INVALID, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
                ALURegOp(AluOp.ADD, Register.REGB, Register.OPERATION_WIDTH, Register.REGB, size=AW),
            ]
        case Opcode.RSUB | Opcode.RSBB:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, Register.REGB, VALUE, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]
        case Opcode.LOAD:
            # REGB holds the source address
            tail = [
                ALURegOp(AluOp.LOAD, Register.REGB, Register.INVALID, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]
        case Opcode.STORE:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                ALURegOp(AluOp.STORE, Register.REGB, VALUE, Register.INVALID),
            ]
        case Opcode.LEA | Opcode.READCR | Opcode.WRITECR | Opcode.SLO:
            return MicroProgram.empty(size)
        case _:
            tail = [
                ALURegOp(AluOp.LOAD, ADDR, Register.INVALID, VALUE),
                _alu(d, VALUE, Register.REGB, VALUE),
                ALURegOp(AluOp.STORE, ADDR, VALUE, Register.INVALID),
            ]

    return _program(d, effective_address(mode) + tail, size)


if __name__ == "__main__":
    for code in range(layout.REG_REG.slots):
        for op in reg_reg(code).ops:
            if op is not NOP:
                print(f"{code:2} {op}")
