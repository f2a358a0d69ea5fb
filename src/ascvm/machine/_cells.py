"""Bit-cell primitives: adders and multiplexers over IUs.

The half and full adders operate bitwise in parallel across every bit
position of their IU inputs, returning an IU sum and an IU carry pattern.
The ripple-carry adder chains one-bit full adds from bit 0 upward with a
scalar carry; it is the only addition path the ALU uses.
"""

from __future__ import annotations

from ascvm.model.iu import IU


def half_adder(a: IU, b: IU) -> tuple[IU, IU]:
    """Return ``(a XOR b, a AND b)``."""
    return a ^ b, a & b


def full_adder(a: IU, b: IU, carry_in: IU) -> tuple[IU, IU]:
    """Return ``(sum, carry)`` patterns for three parallel input patterns."""
    partial, c1 = half_adder(a, b)
    total, c2 = half_adder(partial, carry_in)
    return total, c1 | c2


def ripple_carry_add(a: IU, b: IU, carry_in: bool = False) -> tuple[IU, bool]:
    """Add two IUs bit by bit, returning ``(sum, carry_out)``.

    ``sum == (a + b + carry_in) mod 2**n`` and ``carry_out`` is set when the
    true sum does not fit in n bits.
    """
    if a.width != b.width:
        raise ValueError(f"width mismatch: {a.width}-bit vs {b.width}-bit IU")

    carry = IU(int(carry_in), width=1)
    sum_bits: list[int] = []
    for i in range(a.width):
        s, carry = full_adder(
            IU(a.bit(i), width=1),
            IU(b.bit(i), width=1),
            carry,
        )
        sum_bits.append(s.value)
    return IU.from_bits(sum_bits), bool(carry.value)


def mux(select: bool, a: IU, b: IU) -> IU:
    """Return *a* when *select* is true, else *b*."""
    return a if select else b


def demux(select: bool, x: IU) -> tuple[IU, IU]:
    """Route *x* to the first output when *select* is true, else the second.

    The unselected output is zero.
    """
    zero = IU.zero(x.width)
    if select:
        return x, zero
    return zero, x
