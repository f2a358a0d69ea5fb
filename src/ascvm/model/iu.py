"""Information Unit: the fixed-width unsigned value type of the machine."""

from __future__ import annotations

from functools import total_ordering
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, model_validator

IU_WIDTH = 12


@total_ordering
class IU(BaseModel):
    """An n-bit unsigned bit pattern (``0 <= value < 2**width``).

    Immutable and hashable.  Every bitwise operation is total over the
    n-bit domain; mixing widths is a programming error.

    ``IU(5)`` and ``IU(5, width=8)`` are accepted, and a bare ``int``
    validates as an IU wherever a model field expects one.
    """

    model_config = ConfigDict(frozen=True)

    value: int
    width: int = IU_WIDTH

    def __init__(self, value: int | None = None, /, **data: Any) -> None:
        if value is not None:
            data["value"] = value
        super().__init__(**data)

    @model_validator(mode="before")
    @classmethod
    def _from_int(cls, data: Any) -> Any:
        if isinstance(data, int) and not isinstance(data, bool):
            return {"value": data}
        return data

    @model_validator(mode="after")
    def _range_check(self) -> Self:
        if self.width <= 0:
            raise ValueError(f"width must be positive, got {self.width}")
        if not 0 <= self.value < (1 << self.width):
            raise ValueError(
                f"value {self.value} out of range for a {self.width}-bit IU "
                f"(0..{(1 << self.width) - 1})"
            )
        return self

    # -----------------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------------

    @classmethod
    def zero(cls, width: int = IU_WIDTH) -> IU:
        return cls(0, width=width)

    @classmethod
    def ones(cls, width: int = IU_WIDTH) -> IU:
        """The all-ones pattern."""
        return cls((1 << width) - 1, width=width)

    @classmethod
    def from_bits(cls, bits: list[int] | tuple[int, ...]) -> IU:
        """Build an IU from bits ordered least-significant first."""
        value = 0
        for i, bit in enumerate(bits):
            value |= (bit & 1) << i
        return cls(value, width=len(bits))

    # -----------------------------------------------------------------------
    # Introspection
    # -----------------------------------------------------------------------

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    @property
    def msb(self) -> int:
        return (self.value >> (self.width - 1)) & 1

    def bit(self, index: int) -> int:
        """Bit at *index* (0 = least significant)."""
        if not 0 <= index < self.width:
            raise IndexError(f"bit index {index} out of range (0..{self.width - 1})")
        return (self.value >> index) & 1

    def bits(self) -> tuple[int, ...]:
        """All bits, least significant first."""
        return tuple((self.value >> i) & 1 for i in range(self.width))

    def _same_width(self, other: IU) -> None:
        if other.width != self.width:
            raise ValueError(
                f"width mismatch: {self.width}-bit vs {other.width}-bit IU"
            )

    def _new(self, value: int) -> IU:
        return IU(value & self.mask, width=self.width)

    # -----------------------------------------------------------------------
    # Bitwise primitives
    # -----------------------------------------------------------------------

    def __and__(self, other: IU) -> IU:
        self._same_width(other)
        return self._new(self.value & other.value)

    def __or__(self, other: IU) -> IU:
        self._same_width(other)
        return self._new(self.value | other.value)

    def __xor__(self, other: IU) -> IU:
        self._same_width(other)
        return self._new(self.value ^ other.value)

    def __invert__(self) -> IU:
        return self._new(~self.value)

    def rotate_left(self, k: int) -> IU:
        """Circular shift left by *k* (mod width); negative *k* rotates right."""
        k %= self.width
        if k == 0:
            return self
        return self._new((self.value << k) | (self.value >> (self.width - k)))

    def rotate_right(self, k: int) -> IU:
        return self.rotate_left(-k)

    def shl(self, k: int) -> IU:
        """Logical shift left; bits pushed past the top are lost."""
        if k >= self.width:
            return self._new(0)
        return self._new(self.value << k)

    def shr(self, k: int) -> IU:
        """Logical shift right; zeros fill from the top."""
        if k >= self.width:
            return self._new(0)
        return self._new(self.value >> k)

    def sar(self, k: int) -> IU:
        """Arithmetic shift right, replicating the n-bit sign bit."""
        if self.msb == 0:
            return self.shr(k)
        if k >= self.width:
            return self._new(self.mask)
        fill = self.mask ^ (self.mask >> k)
        return self._new((self.value >> k) | fill)

    # -----------------------------------------------------------------------
    # Conversions and ordering
    # -----------------------------------------------------------------------

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IU):
            return NotImplemented
        return self.value == other.value and self.width == other.width

    def __hash__(self) -> int:
        return hash((self.value, self.width))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, IU):
            return NotImplemented
        self._same_width(other)
        return self.value < other.value

    def __repr__(self) -> str:
        if self.width == IU_WIDTH:
            return f"IU({self.value})"
        return f"IU({self.value}, width={self.width})"

    def __str__(self) -> str:
        return f"{self.value:#0{(self.width + 3) // 4 + 2}x}"
