import pytest

import layout
from instruction_families import (ALL_MODES, AddressingMode, effective_address, mem_imm, mem_reg, reg_imm,
                                  reg_mem, reg_reg)
from micro_op import (ALURegOp, AluOp, JumpCondition, LoadConst, MicroProgram, NOP, OperationSize, Register,
                      RelJumpImm)
from opcodes import Opcode

FAMILIES = [
    (reg_reg, layout.REG_REG, False),
    (reg_imm, layout.REG_IMM, False),
    (mem_imm, layout.MEM_IMM, True),
    (reg_mem, layout.REG_MEM, True),
    (mem_reg, layout.MEM_REG, True),
]

EMPTY = {
    reg_reg: {Opcode.SLO, Opcode.LEA, Opcode.READCR, Opcode.WRITECR},
    reg_imm: {Opcode.LEA, Opcode.POP},
    mem_imm: {Opcode.LEA, Opcode.POP, Opcode.READCR, Opcode.WRITECR, Opcode.SLO},
    reg_mem: {Opcode.READCR, Opcode.WRITECR, Opcode.SLO},
    mem_reg: {Opcode.LEA, Opcode.READCR, Opcode.WRITECR, Opcode.SLO},
}

FULL = AddressingMode(True, True, True)


def build(family, code, memory, mode=FULL):
    return family(code, mode) if memory else family(code)


def test_reg_reg_and():
    program = reg_reg(Opcode.AND.value)
    assert program.label == "and"
    assert program.ops == (
        ALURegOp(AluOp.AND, Register.REGA, Register.REGB, Register.REGA,
                 update_flags=True, end_of_instruction=True, advance_ip=True),
        NOP, NOP, NOP,
    )


def test_cmp_drops_its_result():
    op = reg_reg(Opcode.CMP.value).ops[0]
    assert op.alu is AluOp.SUB
    assert op.dest is Register.INVALID
    assert op.update_flags


def test_rsub_swaps_operands():
    op = reg_reg(Opcode.RSUB.value).ops[0]
    assert (op.a, op.b, op.dest) == (Register.REGB, Register.REGA, Register.REGA)

    op = reg_imm(Opcode.RSUB.value).ops[0]
    assert (op.a, op.b) == (Register.IMMEDIATE, Register.REGA)


def test_moves_extend_to_the_operation_size():
    op = reg_reg(Opcode.MOVS.value).ops[0]
    assert op == ALURegOp(AluOp.SEXT, Register.REGB, Register.LOG_OPERATION_SIZE, Register.REGA,
                          end_of_instruction=True, advance_ip=True)
    assert reg_imm(Opcode.MOVZ.value).ops[0].alu is AluOp.ZEXT


@pytest.mark.parametrize("family, region, memory", FAMILIES)
def test_every_slot_fits(family, region, memory):
    for mode in ALL_MODES if memory else [None]:
        for code in range(region.slots):
            program = family(code, mode) if memory else family(code)
            assert len(program) == region.slot_size


@pytest.mark.parametrize("family, region, memory", FAMILIES)
def test_empty_and_populated_slots(family, region, memory):
    for code in range(region.slots):
        program = build(family, code, memory)
        assigned = code in [o.value for o in Opcode]
        if not assigned or Opcode(code) in EMPTY[family]:
            assert program == MicroProgram.empty(region.slot_size), code
        else:
            assert program.label == Opcode(code).name.lower()
            assert program.ops[0] is not NOP


@pytest.mark.parametrize("family, region, memory", FAMILIES)
def test_last_op_ends_the_instruction(family, region, memory):
    for opcode in Opcode:
        program = build(family, opcode.value, memory)
        ops = [op for op in program.ops if op is not NOP]
        if not ops or isinstance(ops[-1], RelJumpImm):
            continue
        assert ops[-1].end_of_instruction, opcode
        assert ops[-1].advance_ip, opcode
        assert not any(getattr(op, "end_of_instruction", False) for op in ops[:-1]), opcode


@pytest.mark.parametrize("opcode, region", [(Opcode.READCR, layout.READ_CR), (Opcode.WRITECR, layout.WRITE_CR)])
def test_control_register_access_jumps_to_its_dispatcher(opcode, region):
    program = reg_imm(opcode.value)
    jump = program.ops[0]
    assert jump.condition is JumpCondition.ALWAYS
    assert layout.REG_IMM.address(opcode.value) + jump.offset == region.start
    assert program.ops[1:] == (NOP,) * 3


def test_slo():
    shift, merge = reg_imm(Opcode.SLO.value).ops[:2]
    assert shift.alu is AluOp.SHL and shift.immediate == 5
    assert merge.alu is AluOp.OR and merge.b is Register.IMMEDIATE
    assert merge.end_of_instruction


def test_addressing_mode_index_and_text():
    assert [mode.index for mode in ALL_MODES] == list(range(8))
    assert str(FULL) == "[(x << s) + b + i]"
    assert str(AddressingMode(False, True, False)) == "[b]"
    assert str(AddressingMode(False, False, False)) == "[]"


def test_effective_address():
    assert effective_address(AddressingMode(False, False, False)) == [LoadConst(Register.SCRATCH_1, 0)]
    assert len(effective_address(AddressingMode(True, False, False))) == 1
    assert len(effective_address(AddressingMode(False, True, True))) == 3

    ops = effective_address(FULL)
    assert len(ops) == 3
    assert ops[0].alu is AluOp.SHL
    assert all(op.size is OperationSize.ADDRESS_WIDTH for op in ops)
    assert all(op.dest is Register.SCRATCH_1 for op in ops)


def test_memory_operand_read_modify_write():
    ops = [op for op in mem_imm(Opcode.ADD.value, FULL).ops if op is not NOP]
    assert len(ops) == 6
    load, add, store = ops[3:]
    assert load.alu is AluOp.LOAD and load.a is Register.SCRATCH_1
    assert (add.alu, add.a, add.b, add.dest) == (AluOp.ADD, Register.SCRATCH_0, Register.IMMEDIATE,
                                                 Register.SCRATCH_0)
    assert store.alu is AluOp.STORE and store.end_of_instruction


def test_reg_mem_reverse_subtract_ends_the_instruction():
    ops = [op for op in reg_mem(Opcode.RSUB.value, FULL).ops if op is not NOP]
    assert (ops[-1].a, ops[-1].b) == (Register.SCRATCH_0, Register.REGA)
    assert ops[-1].end_of_instruction and ops[-1].advance_ip


def test_lea_only_for_reg_mem():
    ops = [op for op in reg_mem(Opcode.LEA.value, AddressingMode(False, True, False)).ops if op is not NOP]
    assert ops[-1].alu is AluOp.SEXT
    assert ops[-1].a is Register.SCRATCH_1
    assert ops[-1].dest is Register.REGA
