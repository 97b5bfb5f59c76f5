#!/usr/bin/env python3

# Micro-op words for the ETCa control store.
#
# Every control-store word is 32 bits wide and tagged by its two low bits:
#
#   31  30  29-27  26-21  20-15  14-9  8-4   3     2    1-0
# +----+---+------+------+------+-----+-----+-----+-----+----+
# | -  | P | size |  A   |  B   |dest | alu |flags| EOI | 00 |  ALU, register operand
# | s  | P | size |  A   | imm6 |dest | alu |flags| EOI | 01 |  ALU, immediate operand
# |     imm[23:7]        |      |dest |  imm[6:0]   |     | 10 |  load constant
# | s  |  cond  |  reg   |imm12:7|  -  |  imm[6:0]   |     | 11 |  relative jump, immediate
# | -  |  cond  |  reg   | off  |  1  |      0      |     | 11 |  relative jump, register
# +----+---+------+------+------+-----+-----+-----+-----+----+
#
# P = advance IP to the next instruction, EOI = end of instruction.

from dataclasses import dataclass, replace
from enum import Enum, IntFlag

P_OFFSET = 30
SIZE_OFFSET = 27
CONDITION_OFFSET = 27
ARGA_OFFSET = 21
ARGB_OFFSET = 15
DEST_OFFSET = 9
ALU_OFFSET = 4
FLAG_OFFSET = 3
EOI_OFFSET = 2

TAG_ALU_REG = 0b00
TAG_ALU_IMM = 0b01
TAG_LOAD_CONST = 0b10
TAG_JUMP = 0b11

# bit 9 separates the register-offset jump from the immediate-offset jump
JUMP_REG_SUBTAG = 1 << DEST_OFFSET

FIELD_MASK = 0x3F


class EncodingError(ValueError):
    pass


class LayoutError(ValueError):
    pass


class Register(Enum):
    R0 = 0
    A0 = 0
    V0 = 0
    R1 = 1
    A1 = 1
    V1 = 1
    R2 = 2
    A2 = 2
    R3 = 3
    S0 = 3
    R4 = 4
    S1 = 4
    R5 = 5
    BP = 5
    R6 = 6
    SP = 6
    R7 = 7
    LN = 7          # link register
    R8 = 8
    T0 = 8
    R9 = 9
    T1 = 9
    R10 = 10
    T2 = 10
    R11 = 11
    T3 = 11
    R12 = 12
    T4 = 12
    R13 = 13
    S2 = 13
    R14 = 14
    S3 = 14
    R15 = 15
    S4 = 15
    IP = 16
    FLAG = 17
    INT_IP = 18
    INT_SP = 19
    INT_MASK = 20
    INT_PENDING = 21
    INT_CAUSE = 22
    INT_DATA = 23
    INT_RET_IP = 24
    INT_RET_SP = 25
    PRIV = 26
    INT_RET_PRIV = 27
    NO_CACHE_START = 28
    NO_CACHE_END = 29
    ADDRESS_MODE = 30

    # Everything from here on only lives for the duration of one instruction
    HALT_STATUS = 42
    SCRATCH_0 = 43
    SCRATCH_1 = 44
    SCRATCH_2 = 45
    SCRATCH_3 = 46
    HANDLING_INTERRUPT = 47

    REGA = 48               # first operand, also the usual destination
    REGB = 49               # second operand
    REG_BASE = 50           # base register of a memory operand
    REGX = 51               # index register of a memory operand

    ADDRESS_WIDTH = 53      # log2 of the address size in bytes
    IO_BUS_IDENTIFIER = 54
    OPERATION_WIDTH = 55    # operation size in bytes
    SCALE_X = 56
    IMMEDIATE = 57
    LOG_OPERATION_SIZE = 58
    MEM_IMMEDIATE = 59      # displacement of a memory operand
    NEXT_INSTR_ADDR = 60
    INSTR_SIZE = 61
    SPECIAL_OPERATIONS = 62
    INVALID = 63            # reads as nothing, writes are dropped

    @property
    def is_pseudo(self):
        return self.value >= Register.HALT_STATUS.value


class JumpCondition(Enum):
    ZERO = 0
    EQUAL = 0
    NOT_ZERO = 1
    NOT_EQUAL = 1
    NEGATIVE = 2
    NOT_NEGATIVE = 3
    CARRY = 4
    BELOW = 4
    NO_CARRY = 5
    ABOVE_EQUAL = 5
    OVERFLOW = 6
    NO_OVERFLOW = 7
    BELOW_EQUAL = 8
    ABOVE = 9
    LESS = 10
    GREATER_EQUAL = 11
    LESS_EQUAL = 12
    GREATER = 13
    ALWAYS = 14
    NEVER = 15


def _aliases(enum):
    return {name: member for name, member in enum.__members__.items() if name != member.name}

# Alternative spellings, for diagnostics only. Each resolves to the canonical member.
REGISTER_ALIASES = _aliases(Register)
CONDITION_ALIASES = _aliases(JumpCondition)


def alias_names(member):
    aliases = REGISTER_ALIASES if isinstance(member, Register) else CONDITION_ALIASES
    return [name for name, canonical in aliases.items() if canonical is member]


class AluOp(Enum):
    TEST = 0
    AND = 1
    OR = 2
    XOR = 3
    ADD = 4
    SUB = 5
    ADC = 6
    SBB = 7
    SHL = 8
    LSHR = 9
    ASHR = 10
    ROL = 11
    ROR = 12
    CMP = 13
    ZEXT = 14
    SEXT = 15
    LOAD = 30
    STORE = 31
    INVALID = -1    # no single ALU operation, the instruction is built by hand


class OperationSize(Enum):
    HALF = 0
    WORD = 1
    DOUBLE = 2
    QUAD = 3
    DEFAULT = 4         # whatever size the instruction encodes
    ADDRESS_WIDTH = 5


class SpecialOperation(IntFlag):
    RESET = 1
    FLUSH_ALL = 2
    INVALIDATE_ALL = 4
    ALLOC_ZERO = 8
    DCACHE_INVALIDATE_LINE = 16
    DATA_PREFETCH_LINE = 32
    INSTRUCTION_PREFETCH_LINE = 64
    DCACHE_FLUSH_LINE = 128
    ICACHE_INVALIDATE_LINE = 256


def _check_range(value, bits, what):
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= value <= high:
        raise EncodingError(f"{what} immediate {value} does not fit in {bits} bits ({low} to {high})")


def alu_immediate(value):
    _check_range(value, 7, "ALU")
    return ((value & 0x3F) << ARGB_OFFSET) | ((value & 0x40) << 25)


def load_immediate(value):
    _check_range(value, 24, "load constant")
    return ((value & 0x7F) << 2) | ((value & 0xFFFF80) << 8)


def jump_immediate(value):
    _check_range(value, 14, "jump offset")
    return ((value & 0x7F) << 2) | ((value & 0x1F80) << 8) | ((value & 0x2000) << 18)


def _sign_extend(value, bits):
    sign = 1 << (bits - 1)
    return (value & (sign - 1)) - (value & sign)


def _alu_fields(op):
    if op.alu is AluOp.INVALID:
        raise EncodingError(f"{op} has no encodable ALU operation")
    return ((op.advance_ip << P_OFFSET)
            | (op.size.value << SIZE_OFFSET)
            | (op.a.value << ARGA_OFFSET)
            | (op.dest.value << DEST_OFFSET)
            | (op.alu.value << ALU_OFFSET)
            | (op.update_flags << FLAG_OFFSET)
            | (op.end_of_instruction << EOI_OFFSET))


@dataclass(frozen=True)
class ALURegOp:
    alu: AluOp
    a: Register
    b: Register
    dest: Register
    update_flags: bool = False
    end_of_instruction: bool = False
    advance_ip: bool = False
    size: OperationSize = OperationSize.DEFAULT

    def encode(self):
        return _alu_fields(self) | (self.b.value << ARGB_OFFSET) | TAG_ALU_REG

    def __str__(self):
        return f"{self.alu.name:5} {self.a.name}, {self.b.name} -> {self.dest.name}{_alu_suffix(self)}"


@dataclass(frozen=True)
class ALUImmOp:
    alu: AluOp
    a: Register
    immediate: int
    dest: Register
    update_flags: bool = False
    end_of_instruction: bool = False
    advance_ip: bool = False
    size: OperationSize = OperationSize.DEFAULT

    def encode(self):
        return _alu_fields(self) | alu_immediate(self.immediate) | TAG_ALU_IMM

    def __str__(self):
        return f"{self.alu.name:5} {self.a.name}, #{self.immediate} -> {self.dest.name}{_alu_suffix(self)}"


@dataclass(frozen=True)
class LoadConst:
    dest: Register
    immediate: int

    def encode(self):
        return (self.dest.value << DEST_OFFSET) | load_immediate(self.immediate) | TAG_LOAD_CONST

    def __str__(self):
        return f"LDC   #{self.immediate} -> {self.dest.name}"


@dataclass(frozen=True)
class RelJumpImm:
    condition_reg: Register
    condition: JumpCondition
    offset: int

    def encode(self):
        return ((self.condition.value << CONDITION_OFFSET)
                | (self.condition_reg.value << ARGA_OFFSET)
                | jump_immediate(self.offset)
                | TAG_JUMP)

    def __str__(self):
        if self.condition is JumpCondition.NEVER and self.offset == 0:
            return "NOP"
        return f"JMP   {self.condition.name} {self.condition_reg.name}, {self.offset:+d}"


@dataclass(frozen=True)
class RelJumpReg:
    condition_reg: Register
    condition: JumpCondition
    offset_reg: Register

    def encode(self):
        return ((self.condition.value << CONDITION_OFFSET)
                | (self.condition_reg.value << ARGA_OFFSET)
                | (self.offset_reg.value << ARGB_OFFSET)
                | JUMP_REG_SUBTAG
                | TAG_JUMP)

    def __str__(self):
        return f"JMP   {self.condition.name} {self.condition_reg.name}, +{self.offset_reg.name}"


def _alu_suffix(op):
    flags = []
    if op.size is not OperationSize.DEFAULT:
        flags.append(op.size.name)
    if op.update_flags:
        flags.append("F")
    if op.end_of_instruction:
        flags.append("EOI")
    if op.advance_ip:
        flags.append("P")
    return f"  [{' '.join(flags)}]" if flags else ""


NOP = RelJumpImm(Register.INVALID, JumpCondition.NEVER, 0)
NOP_WORD = NOP.encode()


def finish(op):
    """ Marks an ALU op as the last step of an instruction that moves on to the next one """
    return replace(op, end_of_instruction=True, advance_ip=True)


def decode(word):
    tag = word & 0b11
    reg = lambda offset: Register((word >> offset) & FIELD_MASK)

    if tag == TAG_LOAD_CONST:
        raw = ((word >> 2) & 0x7F) | (((word >> 15) & 0x1FFFF) << 7)
        return LoadConst(reg(DEST_OFFSET), _sign_extend(raw, 24))

    if tag == TAG_JUMP:
        condition = JumpCondition((word >> CONDITION_OFFSET) & 0xF)
        if word & JUMP_REG_SUBTAG:
            return RelJumpReg(reg(ARGA_OFFSET), condition, reg(ARGB_OFFSET))
        raw = ((word >> 2) & 0x7F) | (((word >> 15) & 0x3F) << 7) | (((word >> 31) & 1) << 13)
        return RelJumpImm(reg(ARGA_OFFSET), condition, _sign_extend(raw, 14))

    fields = dict(
        alu=AluOp((word >> ALU_OFFSET) & 0x1F),
        a=reg(ARGA_OFFSET),
        dest=reg(DEST_OFFSET),
        update_flags=bool(word >> FLAG_OFFSET & 1),
        end_of_instruction=bool(word >> EOI_OFFSET & 1),
        advance_ip=bool(word >> P_OFFSET & 1),
        size=OperationSize((word >> SIZE_OFFSET) & 0x7),
    )
    if tag == TAG_ALU_REG:
        return ALURegOp(b=reg(ARGB_OFFSET), **fields)

    raw = ((word >> ARGB_OFFSET) & 0x3F) | (((word >> 31) & 1) << 6)
    return ALUImmOp(immediate=_sign_extend(raw, 7), **fields)


def disassemble(words, base=0, skip_nops=True):
    for addr, word in enumerate(words, start=base):
        if skip_nops and word == NOP_WORD:
            continue
        yield f"{addr:04x} {word:08x}  {decode(word)}"


@dataclass(frozen=True)
class MicroProgram:
    """
        A fixed-size window of micro-ops, destined for one reserved range of the control store.

        labels holds (name, offset) pairs naming the routines inside the window; an unlabelled
        window is either padding or an opcode that has no meaning for its instruction family.
    """
    ops: tuple
    labels: tuple = ()

    @classmethod
    def empty(cls, size):
        return cls((NOP,) * size)

    @property
    def label(self):
        return self.labels[0][0] if self.labels else None

    def __len__(self):
        return len(self.ops)

    def words(self):
        return [op.encode() for op in self.ops]


def window(size, routines):
    """
        Lays out routines, given as (name, offset, ops) tuples, inside a window of no-ops.
        A routine with no ops leaves its slot empty and unlabelled.
    """
    ops = [NOP] * size
    owner = [None] * size
    labels = []

    for name, offset, routine in routines:
        if not routine:
            continue
        if offset < 0 or offset + len(routine) > size:
            raise LayoutError(f"'{name}' at {offset} ({len(routine)} ops) does not fit a window of {size}")
        for i, op in enumerate(routine, start=offset):
            if owner[i] is not None:
                raise LayoutError(f"'{name}' overlaps '{owner[i]}' at offset {i}")
            owner[i] = name
            ops[i] = op
        labels.append((name, offset))

    return MicroProgram(tuple(ops), tuple(labels))


def routine(name, ops, size):
    """ Pads a single routine out to a window, labelled with name """
    return window(size, [(name, 0, ops)])


if __name__ == "__main__":
    for name, member in REGISTER_ALIASES.items():
        print(f"{name:4} -> {member.name}")
    for name, member in CONDITION_ALIASES.items():
        print(f"{name:12} -> {member.name}")
