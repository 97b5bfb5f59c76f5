#!/usr/bin/env python3

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from micro_op import AluOp

OPCODE_COUNT = 32   # opcodes are a 5 bit field


class Opcode(Enum):
    ADD = 0
    SUB = 1
    RSUB = 2        # b - a
    CMP = 3
    OR = 4
    XOR = 5
    AND = 6
    TEST = 7
    MOVZ = 8
    MOVS = 9
    LOAD = 10
    STORE = 11
    POP = 12
    PUSH = 13
    READCR = 14
    WRITECR = 15
    ADC = 16
    SBB = 17
    RSBB = 18       # b - a - borrow
    ROR = 19
    SHL = 20
    ROL = 21
    SHR = 22
    ASHR = 23
    SLO = 28        # shift left 5 then or, for building wide constants
    LEA = 30


@dataclass(frozen=True)
class OpcodeDescriptor:
    opcode: Opcode
    alu: AluOp
    flags: bool = False
    sign_extend: bool = True
    store: bool = True

    @property
    def code(self):
        return self.opcode.value

    @property
    def name(self):
        return self.opcode.name.lower()


DESCRIPTORS = MappingProxyType({d.code: d for d in [
    OpcodeDescriptor(Opcode.ADD, AluOp.ADD, flags=True),
    OpcodeDescriptor(Opcode.SUB, AluOp.SUB, flags=True),
    OpcodeDescriptor(Opcode.RSUB, AluOp.SUB, flags=True),
    OpcodeDescriptor(Opcode.CMP, AluOp.SUB, flags=True, store=False),
    OpcodeDescriptor(Opcode.OR, AluOp.OR, flags=True),
    OpcodeDescriptor(Opcode.XOR, AluOp.XOR, flags=True),
    OpcodeDescriptor(Opcode.AND, AluOp.AND, flags=True),
    OpcodeDescriptor(Opcode.TEST, AluOp.AND, flags=True, store=False),
    OpcodeDescriptor(Opcode.MOVZ, AluOp.ZEXT, sign_extend=False),
    OpcodeDescriptor(Opcode.MOVS, AluOp.SEXT),
    OpcodeDescriptor(Opcode.LOAD, AluOp.LOAD, sign_extend=False),
    OpcodeDescriptor(Opcode.STORE, AluOp.STORE, sign_extend=False, store=False),
    OpcodeDescriptor(Opcode.POP, AluOp.INVALID, sign_extend=False),
    OpcodeDescriptor(Opcode.PUSH, AluOp.INVALID, sign_extend=False, store=False),
    OpcodeDescriptor(Opcode.READCR, AluOp.INVALID, sign_extend=False),
    OpcodeDescriptor(Opcode.WRITECR, AluOp.INVALID, sign_extend=False, store=False),
    OpcodeDescriptor(Opcode.ADC, AluOp.ADC, flags=True),
    OpcodeDescriptor(Opcode.SBB, AluOp.SBB, flags=True),
    OpcodeDescriptor(Opcode.RSBB, AluOp.SBB, flags=True),
    OpcodeDescriptor(Opcode.ROR, AluOp.ROR, flags=True),
    OpcodeDescriptor(Opcode.SHL, AluOp.SHL, flags=True),
    OpcodeDescriptor(Opcode.ROL, AluOp.ROL, flags=True),
    OpcodeDescriptor(Opcode.SHR, AluOp.LSHR, flags=True),
    OpcodeDescriptor(Opcode.ASHR, AluOp.ASHR, flags=True),
    OpcodeDescriptor(Opcode.SLO, AluOp.INVALID, sign_extend=False),
    OpcodeDescriptor(Opcode.LEA, AluOp.INVALID, sign_extend=False),
]})


def lookup(code):
    """ Returns the descriptor for an opcode number, or None if nothing is assigned to it """
    if not 0 <= code < OPCODE_COUNT:
        raise ValueError(f"opcode {code} is outside the 5 bit opcode field")
    return DESCRIPTORS.get(code)


if __name__ == "__main__":
    for code in range(OPCODE_COUNT):
        d = lookup(code)
        if d is None:
            print(f"{code:2}  -")
        else:
            print(f"{code:2}  {d.name:8}{d.alu.name:8}{'F' if d.flags else ' '} {'S' if d.sign_extend else ' '} {'W' if d.store else ' '}")
