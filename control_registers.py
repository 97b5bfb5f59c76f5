#!/usr/bin/env python3

# readcr / writecr
#
# Both dispatchers run the same checks before jumping through a table indexed by the control
# register number (the instruction's immediate):
#
#   0  cmp  imm, INT_PC             numbers below INT_PC, and CACHE_LINE_SIZE,
#   1  jb   dispatch                are readable without privilege
#   2  cmp  imm, CACHE_LINE_SIZE
#   3  je   dispatch
#   4  cmp  imm, <last>             anything past the last control register
#   5  jbe  privilege               of this revision is a general protection fault
#   6  jmp  gpf
#   7  cmp  PRIV, 1                 privilege
#   8  jne  gpf
#   9  dispatch: table + stride * imm

from enum import Enum

import layout
from interrupts import Service
from micro_op import (ALUImmOp, ALURegOp, AluOp, JumpCondition, LayoutError, LoadConst,
                      OperationSize, Register, RelJumpImm, RelJumpReg, finish, window)

PRIVILEGE_CHECK = 7
DISPATCH = 9

READ_STRIDE = 2     # room for a load-constant in front of the move
WRITE_STRIDE = 1

INDEX = Register.SCRATCH_0


class ControlRegister(Enum):
    CPUID1 = 0
    CPUID2 = 1
    FEAT = 2
    FLAGS = 3
    INT_PC = 4
    INT_SP = 5
    INT_MASK = 6
    INT_PENDING = 7
    INT_CAUSE = 8
    INT_DATA = 9
    INT_RET_PC = 10
    INT_RET_SP = 11
    PRIV = 12
    INT_RET_PRIV = 13
    CACHE_LINE_SIZE = 14
    NO_CACHE_START = 15
    NO_CACHE_END = 16
    ADDRESS_MODE = 17


# control registers that read as a fixed value
CONSTANTS = {
    ControlRegister.CPUID1: 0xE0FF,
    ControlRegister.CPUID2: 0xF,
    ControlRegister.FEAT: 0x9,
    ControlRegister.CACHE_LINE_SIZE: 32,
}

BACKING = {
    ControlRegister.FLAGS: Register.FLAG,
    ControlRegister.INT_PC: Register.INT_IP,
    ControlRegister.INT_SP: Register.INT_SP,
    ControlRegister.INT_MASK: Register.INT_MASK,
    ControlRegister.INT_PENDING: Register.INT_PENDING,
    ControlRegister.INT_CAUSE: Register.INT_CAUSE,
    ControlRegister.INT_DATA: Register.INT_DATA,
    ControlRegister.INT_RET_PC: Register.INT_RET_IP,
    ControlRegister.INT_RET_SP: Register.INT_RET_SP,
    ControlRegister.PRIV: Register.PRIV,
    ControlRegister.INT_RET_PRIV: Register.INT_RET_PRIV,
    ControlRegister.NO_CACHE_START: Register.NO_CACHE_START,
    ControlRegister.NO_CACHE_END: Register.NO_CACHE_END,
    ControlRegister.ADDRESS_MODE: Register.ADDRESS_MODE,
}

# pending, cause and data are set by the interrupt logic only
READ_ONLY = set(CONSTANTS) | {
    ControlRegister.INT_PENDING,
    ControlRegister.INT_CAUSE,
    ControlRegister.INT_DATA,
}


def supported(revision):
    """ The control registers of a revision, in jump table order """
    if revision.wide_addressing:
        return list(ControlRegister)
    return [cr for cr in ControlRegister if cr is not ControlRegister.ADDRESS_MODE]


def read_handler(cr):
    move = ALURegOp(AluOp.SEXT, Register.REGA, Register.LOG_OPERATION_SIZE, Register.REGA)
    if cr in CONSTANTS:
        return [LoadConst(Register.REGA, CONSTANTS[cr]), finish(move)]
    return [finish(ALURegOp(AluOp.SEXT, BACKING[cr], Register.LOG_OPERATION_SIZE, Register.REGA))]


def write_handler(cr, address):
    """ address is where the handler will sit, read-only registers jump from there to the fault """
    if cr in READ_ONLY:
        return [_jump(Service.GENERAL_PROTECTION_FAULT.address - address)]
    return [finish(ALURegOp(AluOp.SEXT, Register.REGA, Register.LOG_OPERATION_SIZE, BACKING[cr]))]


def _jump(offset, condition=JumpCondition.ALWAYS, reg=Register.INVALID):
    return RelJumpImm(reg, condition, offset)


def _checks(region, revision):
    gpf = Service.GENERAL_PROTECTION_FAULT.address - region.start
    last = supported(revision)[-1]
    ops = []

    def compare(reg, value, size):
        ops.append(ALUImmOp(AluOp.CMP, reg, value, INDEX, size=size))

    def jump(condition, target, reg=INDEX):
        ops.append(_jump(target - len(ops), condition, reg))

    compare(Register.IMMEDIATE, ControlRegister.INT_PC.value, OperationSize.QUAD)
    jump(JumpCondition.BELOW, DISPATCH)
    compare(Register.IMMEDIATE, ControlRegister.CACHE_LINE_SIZE.value, OperationSize.QUAD)
    jump(JumpCondition.EQUAL, DISPATCH)
    compare(Register.IMMEDIATE, last.value, OperationSize.QUAD)
    jump(JumpCondition.BELOW_EQUAL, PRIVILEGE_CHECK)
    jump(JumpCondition.ALWAYS, gpf, Register.INVALID)

    if len(ops) != PRIVILEGE_CHECK:
        raise LayoutError(f"{region.name} privilege check at {len(ops)}, expected {PRIVILEGE_CHECK}")

    compare(Register.PRIV, 1, OperationSize.HALF)
    jump(JumpCondition.NOT_EQUAL, gpf)

    if len(ops) != DISPATCH:
        raise LayoutError(f"{region.name} dispatch at {len(ops)}, expected {DISPATCH}")
    return ops


def _dispatch(stride):
    """ Jumps to table + stride * imm, where the table starts right after the jump """
    ops = []
    index = Register.IMMEDIATE
    if stride > 1:
        # half size is plenty: fewer than 64 control registers
        ops.append(ALUImmOp(AluOp.SHL, index, stride.bit_length() - 1, INDEX, size=OperationSize.HALF))
        index = INDEX
    ops.append(ALUImmOp(AluOp.ADD, index, 1, INDEX, size=OperationSize.HALF))
    ops.append(RelJumpReg(Register.INVALID, JumpCondition.ALWAYS, INDEX))
    return ops


def _table(crs, table, stride, handler):
    """ Places handler N at table + stride * N. The dispatch arithmetic depends on this """
    entries = []
    for position, cr in enumerate(crs):
        if cr.value != position:
            raise LayoutError(f"{cr.name} is entry {position} of the jump table, its number is {cr.value}")
        offset = table + stride * cr.value
        ops = handler(cr, offset)
        if len(ops) > stride:
            raise LayoutError(f"{cr.name} handler is {len(ops)} ops, the table stride is {stride}")
        entries.append((cr.name.lower(), offset, ops))
    return entries


def _dispatcher(name, region, revision, stride, handler):
    ops = _checks(region, revision) + _dispatch(stride)
    table = len(ops)
    entries = _table(supported(revision), table, stride, handler)
    return window(region.size, [(name, 0, ops)] + entries)


def read_cr(revision):
    region = layout.READ_CR
    return _dispatcher("readcr", region, revision, READ_STRIDE, lambda cr, offset: read_handler(cr))


def write_cr(revision):
    region = layout.WRITE_CR
    return _dispatcher("writecr", region, revision, WRITE_STRIDE,
                       lambda cr, offset: write_handler(cr, region.start + offset))


def handler_offset(program, cr):
    """ Offset of a control register's handler within a dispatcher window """
    for name, offset in program.labels:
        if name == cr.name.lower():
            return offset
    return None


if __name__ == "__main__":
    from micro_op import disassemble
    from revision import DEFAULT_REVISION

    for build, region in [(read_cr, layout.READ_CR), (write_cr, layout.WRITE_CR)]:
        for line in disassemble(build(DEFAULT_REVISION).words(), base=region.start):
            print(line)
        print()
