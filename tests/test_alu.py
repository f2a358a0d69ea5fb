"""Tests for the ALU: results and flag derivation per opcode."""

import random

import pytest

from conftest import imm, iu, r

from ascvm.machine import DecodeFault, Flags, RegisterFile, execute
from ascvm.model.ops import AluOpcode


_rng = random.Random(7)
_SUB_PAIRS = [(_rng.randrange(4096), _rng.randrange(4096)) for _ in range(30)]


def _regs(*values):
    vals = list(values) + [0] * (4 - len(values))
    return RegisterFile([iu(v) for v in vals])


def _exec(opcode, a, b=None, flags=None, regs=None):
    return execute(
        AluOpcode(opcode),
        regs if regs is not None else _regs(),
        flags if flags is not None else Flags(),
        a,
        b,
    )


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class TestAdd:
    def test_simple(self):
        value, flags = _exec("ADD", imm(5), imm(3))
        assert value == iu(8)
        assert flags == Flags(zero=False, carry=False)

    def test_register_operands(self):
        value, _ = _exec("ADD", r(0), r(1), regs=_regs(100, 23))
        assert value == iu(123)

    def test_overflow_sets_carry(self):
        value, flags = _exec("ADD", imm(4095), imm(1))
        assert value == iu(0)
        assert flags == Flags(zero=True, carry=True)

    def test_overflow_nonzero(self):
        value, flags = _exec("ADD", imm(3000), imm(2000))
        assert value == iu(904)
        assert flags.carry is True
        assert flags.zero is False


class TestSub:
    def test_simple(self):
        value, flags = _exec("SUB", imm(10), imm(3))
        assert value == iu(7)
        assert flags.carry is True  # no borrow

    def test_equal_is_zero(self):
        value, flags = _exec("SUB", imm(42), imm(42))
        assert value == iu(0)
        assert flags == Flags(zero=True, carry=True)

    def test_borrow_clears_carry(self):
        value, flags = _exec("SUB", imm(3), imm(5))
        assert value == iu(4094)
        assert flags.carry is False

    @pytest.mark.parametrize("a,b", _SUB_PAIRS)
    def test_matches_modular_difference(self, a, b):
        value, flags = _exec("SUB", imm(a), imm(b))
        assert value == iu((a - b) % 4096)
        assert flags.carry == (a >= b)
        assert flags.zero == (a == b)


# ---------------------------------------------------------------------------
# Logic
# ---------------------------------------------------------------------------

class TestLogic:
    @pytest.mark.parametrize("opcode,expected", [
        ("AND", 0b1000),
        ("OR", 0b1110),
        ("XOR", 0b0110),
    ])
    def test_binary(self, opcode, expected):
        value, flags = _exec(opcode, imm(0b1100), imm(0b1010), flags=Flags(carry=True))
        assert value == iu(expected)
        assert flags.carry is False

    def test_not(self):
        value, flags = _exec("NOT", imm(0))
        assert value == iu(4095)
        assert flags == Flags(zero=False, carry=False)

    def test_and_zero_flag(self):
        _, flags = _exec("AND", imm(0b0101), imm(0b1010))
        assert flags.zero is True


# ---------------------------------------------------------------------------
# Shifts and rotate
# ---------------------------------------------------------------------------

class TestShifts:
    def test_shl_carry_is_last_bit_out(self):
        value, flags = _exec("SHL", imm(0x800), imm(1))
        assert value == iu(0)
        assert flags == Flags(zero=True, carry=True)

    def test_shl_no_carry(self):
        value, flags = _exec("SHL", imm(0x001), imm(4))
        assert value == iu(0x010)
        assert flags.carry is False

    def test_shl_by_width(self):
        value, flags = _exec("SHL", imm(0x001), imm(12))
        assert value == iu(0)
        assert flags.carry is True

    def test_shl_beyond_width(self):
        value, flags = _exec("SHL", imm(0xFFF), imm(13))
        assert value == iu(0)
        assert flags.carry is False

    def test_shr_carry(self):
        value, flags = _exec("SHR", imm(0b0110), imm(2))
        assert value == iu(0b0001)
        assert flags.carry is True

    def test_shr_zero_count(self):
        value, flags = _exec("SHR", imm(7), imm(0), flags=Flags(carry=True))
        assert value == iu(7)
        assert flags.carry is False

    def test_sar_keeps_sign(self):
        value, flags = _exec("SAR", imm(0x801), imm(1))
        assert value == iu(0xC00)
        assert flags.carry is True

    def test_sar_beyond_width_negative(self):
        value, flags = _exec("SAR", imm(0x800), imm(20))
        assert value == iu(0xFFF)
        assert flags.carry is True

    def test_shift_amount_from_register(self):
        value, _ = _exec("SHL", r(0), r(1), regs=_regs(1, 3))
        assert value == iu(8)

    def test_rol(self):
        value, flags = _exec("ROL", imm(0x800), imm(1))
        assert value == iu(1)
        assert flags.carry is True

    def test_rol_carry_clear_when_low_bit_zero(self):
        value, flags = _exec("ROL", imm(0x001), imm(1))
        assert value == iu(2)
        assert flags.carry is False

    def test_rol_full_turn(self):
        value, flags = _exec("ROL", imm(0x123), imm(24), flags=Flags(carry=True))
        assert value == iu(0x123)
        assert flags.carry is False


# ---------------------------------------------------------------------------
# Flag contract
# ---------------------------------------------------------------------------

_COMPUTATIONAL = ["ADD", "SUB", "AND", "OR", "XOR", "SHL", "SHR", "SAR", "ROL"]


class TestFlagContract:
    @pytest.mark.parametrize("opcode", _COMPUTATIONAL)
    @pytest.mark.parametrize("a,b", [(0, 0), (1, 1), (4095, 1), (0x800, 3), (77, 0)])
    def test_zero_reflects_result(self, opcode, a, b):
        value, flags = _exec(opcode, imm(a), imm(b))
        assert flags.zero == (value.value == 0)

    @pytest.mark.parametrize("before", [Flags(), Flags(zero=True, carry=True), Flags(carry=True)])
    def test_loadk_keeps_flags(self, before):
        value, flags = _exec("LOADK", imm(0), flags=before)
        assert value == iu(0)
        assert flags == before

    @pytest.mark.parametrize("before", [Flags(), Flags(zero=True), Flags(carry=True)])
    def test_mov_keeps_flags(self, before):
        value, flags = _exec("MOV", r(2), flags=before, regs=_regs(0, 0, 99))
        assert value == iu(99)
        assert flags == before


# ---------------------------------------------------------------------------
# Decode faults
# ---------------------------------------------------------------------------

class TestDecodeFaults:
    def test_bad_register(self):
        with pytest.raises(DecodeFault, match="register index 4"):
            _exec("ADD", r(4), imm(1))

    def test_negative_register(self):
        with pytest.raises(DecodeFault):
            _exec("MOV", r(-1))

    def test_wrong_width_immediate(self):
        from ascvm.model.operands import Imm
        from ascvm.model.iu import IU

        with pytest.raises(DecodeFault, match="bits wide"):
            _exec("ADD", imm(1), Imm(value=IU(1, width=8)))

    def test_missing_second_operand(self):
        with pytest.raises(DecodeFault, match="requires two operands"):
            _exec("ADD", imm(1))
