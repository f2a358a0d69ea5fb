"""Arithmetic/logic unit.

``execute`` resolves the operands against the register file, computes the
result and derives the new flags:

- ADD/SUB go through the ripple-carry adder; Carry is the adder's carry
  out.  SUB adds the complement of *b* with a carry in of 1, so Carry is
  set when no borrow occurred (``a >= b``).
- AND/OR/XOR/NOT clear Carry.
- SHL/SHR/SAR set Carry to the last bit shifted out (cleared for a zero
  shift count).
- ROL sets Carry to the bit that wrapped around into bit 0 (cleared when
  the rotation is a multiple of the width).
- LOADK and MOV return the incoming flags unchanged.
"""

from __future__ import annotations

from collections.abc import Callable

from ascvm.model.iu import IU
from ascvm.model.operands import Imm, Operand, Reg
from ascvm.model.ops import FLAG_PRESERVING_OPCODES, AluOpcode

from ._cells import ripple_carry_add
from ._faults import DecodeFault
from ._registers import Flags, RegisterFile


def resolve_operand(registers: RegisterFile, operand: Operand) -> IU:
    """Return the IU an operand denotes."""
    if isinstance(operand, Reg):
        return registers.get(operand.index)
    if isinstance(operand, Imm):
        if operand.value.width != registers.width:
            raise DecodeFault(
                f"immediate {operand.value!r} is not {registers.width} bits wide"
            )
        return operand.value
    raise DecodeFault(f"malformed operand: {operand!r}")


def execute(
    opcode: AluOpcode,
    registers: RegisterFile,
    flags: Flags,
    operand_a: Operand,
    operand_b: Operand | None = None,
) -> tuple[IU, Flags]:
    """Compute ``opcode(a, b)`` and return ``(result, new_flags)``.

    Nothing is written; the caller stores the result in the destination
    register.
    """
    a = resolve_operand(registers, operand_a)
    if opcode in FLAG_PRESERVING_OPCODES:
        return a, flags

    handler = _ALU_DISPATCH.get(opcode)
    if handler is None:
        raise DecodeFault(f"Unsupported ALU opcode: {opcode}")

    if operand_b is None:
        b = None
    else:
        b = resolve_operand(registers, operand_b)
    if b is None and opcode != AluOpcode.NOT:
        raise DecodeFault(f"{opcode.value} requires two operands")

    result, carry = handler(a, b)
    return result, Flags(zero=result.value == 0, carry=carry)


# ---------------------------------------------------------------------------
# Opcode handlers: (a, b) -> (result, carry)
# ---------------------------------------------------------------------------

def _add(a: IU, b: IU) -> tuple[IU, bool]:
    return ripple_carry_add(a, b)


def _sub(a: IU, b: IU) -> tuple[IU, bool]:
    return ripple_carry_add(a, ~b, carry_in=True)


def _and(a: IU, b: IU) -> tuple[IU, bool]:
    return a & b, False


def _or(a: IU, b: IU) -> tuple[IU, bool]:
    return a | b, False


def _xor(a: IU, b: IU) -> tuple[IU, bool]:
    return a ^ b, False


def _not(a: IU, _b: IU | None) -> tuple[IU, bool]:
    return ~a, False


def _shl(a: IU, b: IU) -> tuple[IU, bool]:
    k = b.value
    if k == 0:
        return a, False
    if k > a.width:
        return a.shl(k), False
    return a.shl(k), bool(a.bit(a.width - k))


def _shr(a: IU, b: IU) -> tuple[IU, bool]:
    k = b.value
    if k == 0:
        return a, False
    if k > a.width:
        return a.shr(k), False
    return a.shr(k), bool(a.bit(k - 1))


def _sar(a: IU, b: IU) -> tuple[IU, bool]:
    k = b.value
    if k == 0:
        return a, False
    if k > a.width:
        return a.sar(k), bool(a.msb)
    return a.sar(k), bool(a.bit(k - 1))


def _rol(a: IU, b: IU) -> tuple[IU, bool]:
    k = b.value % a.width
    if k == 0:
        return a, False
    result = a.rotate_left(k)
    return result, bool(result.bit(0))


_ALU_DISPATCH: dict[AluOpcode, Callable[[IU, IU | None], tuple[IU, bool]]] = {
    AluOpcode.ADD: _add,
    AluOpcode.SUB: _sub,
    AluOpcode.AND: _and,
    AluOpcode.OR: _or,
    AluOpcode.XOR: _xor,
    AluOpcode.NOT: _not,
    AluOpcode.SHL: _shl,
    AluOpcode.SHR: _shr,
    AluOpcode.SAR: _sar,
    AluOpcode.ROL: _rol,
}
