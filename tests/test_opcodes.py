import pytest

from micro_op import AluOp
from opcodes import DESCRIPTORS, OPCODE_COUNT, Opcode, lookup


def test_and_descriptor():
    d = lookup(6)
    assert d.opcode is Opcode.AND
    assert d.alu is AluOp.AND
    assert d.flags and d.store
    assert d.name == "and"
    assert d.code == 6


@pytest.mark.parametrize("code", [24, 25, 26, 27, 29, 31])
def test_unassigned_codes(code):
    assert lookup(code) is None


@pytest.mark.parametrize("code", [-1, 32, 100])
def test_codes_outside_the_field(code):
    with pytest.raises(ValueError):
        lookup(code)


def test_every_enum_member_has_a_descriptor():
    assert len(DESCRIPTORS) == len(Opcode) == 26
    assert all(0 <= code < OPCODE_COUNT for code in DESCRIPTORS)
    for opcode in Opcode:
        assert lookup(opcode.value).opcode is opcode


def test_table_is_read_only():
    with pytest.raises(TypeError):
        DESCRIPTORS[24] = DESCRIPTORS[0]


def test_moves_never_update_flags_and_always_store():
    for opcode in (Opcode.MOVZ, Opcode.MOVS):
        d = lookup(opcode.value)
        assert not d.flags
        assert d.store


def test_comparisons_only_update_flags():
    for opcode in (Opcode.CMP, Opcode.TEST):
        d = lookup(opcode.value)
        assert d.flags
        assert not d.store


def test_reverse_subtracts_share_the_alu_op():
    assert lookup(Opcode.RSUB.value).alu is lookup(Opcode.SUB.value).alu is AluOp.SUB
    assert lookup(Opcode.RSBB.value).alu is lookup(Opcode.SBB.value).alu is AluOp.SBB


def test_hand_built_opcodes_have_no_alu_op():
    for opcode in (Opcode.POP, Opcode.PUSH, Opcode.READCR, Opcode.WRITECR, Opcode.SLO, Opcode.LEA):
        assert lookup(opcode.value).alu is AluOp.INVALID
