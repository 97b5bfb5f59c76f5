#!/usr/bin/env python3

from enum import Enum

import layout
from micro_op import (ALUImmOp, ALURegOp, AluOp, JumpCondition, LoadConst, OperationSize, Register,
                      RelJumpImm, SpecialOperation, window)

QUAD = OperationSize.QUAD
RESET_VECTOR = 0x8000


class InterruptCause(Enum):
    """ Written to INT_CAUSE; bit (1 << cause) of INT_PENDING is set while it is handled """
    SOFTWARE = 0
    TIMER = 1
    ILLEGAL_INSTRUCTION = 2
    ALIGNMENT = 3
    GENERAL_PROTECTION = 4
    EXTERNAL = 5

    @property
    def pending_bit(self):
        return 1 << self.value


class Service(Enum):
    """ Entry points in the interrupt region, one 32 word slot each """
    GENERAL_PROTECTION_FAULT = 0
    RESET = 1
    ILLEGAL_INSTRUCTION = 2
    TIMER = 3
    EXTERNAL = 4
    ALIGNMENT_ERROR = 5

    @property
    def address(self):
        return layout.INTERRUPTS.address(self.value)

    @property
    def label(self):
        return self.name.replace("_", " ").title()


def enter_handler(cause, data, nested_check=Register.SCRATCH_0, set_pending=True):
    """
        The common interrupt entry sequence.

        A fault raised while an interrupt is already being handled resets the processor instead,
        otherwise a fault in the handler would loop forever. Asynchronous interrupts pass
        nested_check=None: the interrupt logic never raises them while one is being handled, and
        it has already set their pending bit.

        data is the micro-op that fills INT_DATA.
    """
    ops = []
    if nested_check is not None:
        ops += [
            ALUImmOp(AluOp.TEST, Register.HANDLING_INTERRUPT, 1, nested_check),
            RelJumpImm(nested_check, JumpCondition.ZERO, 2),
            LoadConst(Register.SPECIAL_OPERATIONS, SpecialOperation.RESET),
        ]
    if set_pending:
        ops.append(ALUImmOp(AluOp.OR, Register.INT_PENDING, cause.pending_bit, Register.INT_PENDING, size=QUAD))
    ops += [
        LoadConst(Register.INT_CAUSE, cause.value),
        data,
        # save the interrupted context
        ALURegOp(AluOp.SEXT, Register.IP, Register.ADDRESS_WIDTH, Register.INT_RET_IP),
        ALURegOp(AluOp.SEXT, Register.SP, Register.ADDRESS_WIDTH, Register.INT_RET_SP),
        # switch to the handler
        ALURegOp(AluOp.SEXT, Register.INT_IP, Register.ADDRESS_WIDTH, Register.IP),
        ALURegOp(AluOp.SEXT, Register.INT_SP, Register.ADDRESS_WIDTH, Register.SP),
        ALUImmOp(AluOp.ZEXT, Register.PRIV, 0, Register.INT_RET_PRIV),
        LoadConst(Register.PRIV, 1),
        # IP already points at the handler, so no advance
        ALUImmOp(AluOp.OR, Register.HANDLING_INTERRUPT, 1, Register.HANDLING_INTERRUPT,
                 end_of_instruction=True, size=QUAD),
    ]
    return ops


def no_data():
    return LoadConst(Register.INT_DATA, -1)


def general_protection_fault():
    return enter_handler(InterruptCause.GENERAL_PROTECTION, no_data())


def reset():
    return [
        LoadConst(Register.ADDRESS_MODE, 0),
        LoadConst(Register.IP, RESET_VECTOR),
        LoadConst(Register.INT_MASK, 0),
        LoadConst(Register.INT_PENDING, 0),
        LoadConst(Register.PRIV, 1),
        LoadConst(Register.NO_CACHE_START, 0),
        LoadConst(Register.NO_CACHE_END, -32),
        # NO_CACHE_START is zero by now
        ALUImmOp(AluOp.ZEXT, Register.NO_CACHE_START, 0, Register.HANDLING_INTERRUPT, end_of_instruction=True),
    ]


def illegal_instruction():
    return enter_handler(InterruptCause.ILLEGAL_INSTRUCTION, no_data())


def timer():
    return enter_handler(InterruptCause.TIMER, no_data(), nested_check=None, set_pending=False)


def external():
    # INT_DATA is the id of the device on the io bus
    data = ALUImmOp(AluOp.SEXT, Register.IO_BUS_IDENTIFIER, 3, Register.INT_DATA)
    return enter_handler(InterruptCause.EXTERNAL, data, nested_check=None, set_pending=False)


def alignment_error():
    # the memory unit leaves the misaligned address in SCRATCH_0, so test the flag in SCRATCH_1
    data = ALUImmOp(AluOp.SEXT, Register.SCRATCH_0, 1, Register.INT_DATA)
    return enter_handler(InterruptCause.ALIGNMENT, data, nested_check=Register.SCRATCH_1)


SERVICES = {
    Service.GENERAL_PROTECTION_FAULT: general_protection_fault,
    Service.RESET: reset,
    Service.ILLEGAL_INSTRUCTION: illegal_instruction,
    Service.TIMER: timer,
    Service.EXTERNAL: external,
    Service.ALIGNMENT_ERROR: alignment_error,
}


def interrupts():
    region = layout.INTERRUPTS
    return window(region.size, [
        (service.label, service.value * region.slot_size, build())
        for service, build in SERVICES.items()
    ])


if __name__ == "__main__":
    from micro_op import disassemble

    for line in disassemble(interrupts().words(), base=layout.INTERRUPTS.start):
        print(line)
