import pytest

from micro_op import (ALUImmOp, ALURegOp, AluOp, CONDITION_ALIASES, EncodingError, JumpCondition,
                      LayoutError, LoadConst, MicroProgram, NOP, NOP_WORD, OperationSize, REGISTER_ALIASES,
                      Register, RelJumpImm, RelJumpReg, alias_names, decode, disassemble, finish, routine,
                      window)


def test_alu_immediate_range_survives_encoding():
    for value in range(-64, 64):
        word = ALUImmOp(AluOp.ADD, Register.R0, value, Register.R1).encode()
        assert decode(word).immediate == value


@pytest.mark.parametrize("value", [64, -65, 1000])
def test_alu_immediate_out_of_range(value):
    with pytest.raises(EncodingError, match=str(value)):
        ALUImmOp(AluOp.ADD, Register.R0, value, Register.R1).encode()


@pytest.mark.parametrize("value", [-8_388_608, 8_388_607, -1, 0, 0x7F, 0x80, 0xE0FF, 0x8000, -32])
def test_load_constant_split(value):
    word = LoadConst(Register.R3, value).encode()
    assert word & 0b11 == 0b10
    assert decode(word) == LoadConst(Register.R3, value)


@pytest.mark.parametrize("value", [8_388_608, -8_388_609, -(1 << 32)])
def test_load_constant_out_of_range(value):
    with pytest.raises(EncodingError):
        LoadConst(Register.R0, value).encode()


@pytest.mark.parametrize("value", [-8192, 8191, -1, 0, 1, 72, 196, 0x7F, 0x80, -0x80])
def test_jump_offset_split(value):
    word = RelJumpImm(Register.SCRATCH_0, JumpCondition.BELOW, value).encode()
    assert decode(word) == RelJumpImm(Register.SCRATCH_0, JumpCondition.BELOW, value)


@pytest.mark.parametrize("value", [8192, -8193])
def test_jump_offset_out_of_range(value):
    with pytest.raises(EncodingError):
        RelJumpImm(Register.INVALID, JumpCondition.ALWAYS, value).encode()


def test_load_constant_bit_positions():
    # low 7 bits at 8-2, the remaining 17 at 31-15
    assert LoadConst(Register.R0, -1).encode() == 0xFFFF8000 | (0x7F << 2) | 0b10
    assert LoadConst(Register.R1, 0x80).encode() == (1 << 15) | (1 << 9) | 0b10


def test_jump_bit_positions():
    assert RelJumpImm(Register.INVALID, JumpCondition.ALWAYS, 0x2000 - 0x4000).encode() == \
        (1 << 31) | (14 << 27) | (63 << 21) | 0b11
    assert RelJumpImm(Register.INVALID, JumpCondition.ALWAYS, 0x80).encode() == \
        (14 << 27) | (63 << 21) | (1 << 15) | 0b11


def test_alu_register_layout():
    op = ALURegOp(AluOp.AND, Register.REGA, Register.REGB, Register.REGA,
                  update_flags=True, end_of_instruction=True, advance_ip=True)
    assert op.encode() == ((1 << 30) | (4 << 27) | (48 << 21) | (49 << 15) | (48 << 9)
                           | (1 << 4) | (1 << 3) | (1 << 2))


def test_alu_immediate_sign_bit():
    word = ALUImmOp(AluOp.XOR, Register.SCRATCH_0, -1, Register.SCRATCH_0, size=OperationSize.QUAD).encode()
    assert word >> 31 == 1
    assert (word >> 15) & 0x3F == 0x3F
    assert (word >> 27) & 0x7 == OperationSize.QUAD.value
    assert word & 0b11 == 0b01


def test_register_jump_subtag():
    op = RelJumpReg(Register.INVALID, JumpCondition.ALWAYS, Register.SCRATCH_0)
    assert op.encode() == (14 << 27) | (63 << 21) | (43 << 15) | 0x203
    assert decode(op.encode()) == op


def test_nop():
    assert NOP == RelJumpImm(Register.INVALID, JumpCondition.NEVER, 0)
    assert NOP_WORD == 0x7FE00003
    assert NOP_WORD & 0xFF == 0x03
    assert decode(NOP_WORD) == NOP


def test_invalid_alu_op_is_not_encodable():
    with pytest.raises(EncodingError):
        ALURegOp(AluOp.INVALID, Register.REGA, Register.REGB, Register.REGA).encode()


def test_decode_round_trips_flags():
    op = ALUImmOp(AluOp.OR, Register.HANDLING_INTERRUPT, 1, Register.HANDLING_INTERRUPT,
                  end_of_instruction=True, size=OperationSize.QUAD)
    assert decode(op.encode()) == op


def test_aliases_are_one_identity():
    assert Register.SP is Register.R6
    assert Register.LN is Register.R7
    assert JumpCondition.EQUAL is JumpCondition.ZERO
    assert JumpCondition.BELOW is JumpCondition.CARRY

    assert len({r.value for r in Register}) == len(list(Register))
    assert REGISTER_ALIASES["SP"] is Register.R6
    assert CONDITION_ALIASES["NOT_EQUAL"] is JumpCondition.NOT_ZERO
    assert "R6" not in REGISTER_ALIASES

    assert alias_names(Register.R7) == ["LN"]
    assert set(alias_names(Register.R0)) == {"A0", "V0"}


def test_pseudo_registers():
    assert Register.SCRATCH_0.is_pseudo
    assert Register.INVALID.is_pseudo
    assert not Register.ADDRESS_MODE.is_pseudo
    assert not Register.R15.is_pseudo


def test_ops_are_frozen():
    op = LoadConst(Register.R0, 1)
    with pytest.raises(AttributeError):
        op.immediate = 2


def test_finish():
    op = finish(ALURegOp(AluOp.ADD, Register.REGA, Register.REGB, Register.REGA))
    assert op.end_of_instruction and op.advance_ip


def test_window_places_routines():
    program = window(8, [("a", 0, [LoadConst(Register.R0, 1)]), ("b", 4, [LoadConst(Register.R1, 2)])])
    assert len(program) == 8
    assert program.ops[4] == LoadConst(Register.R1, 2)
    assert program.ops[1] is NOP
    assert program.labels == (("a", 0), ("b", 4))
    assert program.label == "a"


def test_window_skips_empty_routines():
    program = window(4, [("a", 0, [])])
    assert program == MicroProgram.empty(4)
    assert program.label is None


def test_window_rejects_overlap():
    with pytest.raises(LayoutError, match="overlaps"):
        window(8, [("a", 0, [NOP, NOP, NOP]), ("b", 2, [NOP])])


def test_window_rejects_overflow():
    with pytest.raises(LayoutError):
        routine("long", [NOP] * 5, 4)


def test_disassemble_skips_nops():
    program = routine("halt", [LoadConst(Register.R0, 5)], 4)
    lines = list(disassemble(program.words(), base=0x10))
    assert len(lines) == 1
    assert lines[0].startswith("0010")
    assert "LDC" in lines[0]
    assert len(list(disassemble(program.words(), skip_nops=False))) == 4
