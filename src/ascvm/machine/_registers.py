"""Register file and status flags."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ascvm.model.iu import IU, IU_WIDTH

from ._faults import DecodeFault

NUM_REGISTERS = 4


class Flags(BaseModel):
    """Zero and Carry, replaced as a whole by computational ALU opcodes."""

    model_config = ConfigDict(frozen=True)

    zero: bool = False
    carry: bool = False

    def __str__(self) -> str:
        return f"Z={int(self.zero)} C={int(self.carry)}"


class RegisterFile:
    """Fixed array of ``NUM_REGISTERS`` IU slots addressed by index.

    An index outside ``[0, NUM_REGISTERS)`` raises ``DecodeFault``; it is
    never clamped or wrapped.
    """

    def __init__(self, values: list[IU] | None = None, width: int = IU_WIDTH) -> None:
        if values is None:
            values = [IU.zero(width) for _ in range(NUM_REGISTERS)]
        if len(values) != NUM_REGISTERS:
            raise ValueError(
                f"register file holds exactly {NUM_REGISTERS} values, got {len(values)}"
            )
        for v in values:
            if v.width != width:
                raise ValueError(f"register value {v!r} is not {width} bits wide")
        self.width = width
        self._values = list(values)

    def check(self, index: int) -> int:
        """Validate a register index, returning it unchanged."""
        if not 0 <= index < NUM_REGISTERS:
            raise DecodeFault(
                f"register index {index} out of range (0..{NUM_REGISTERS - 1})"
            )
        return index

    def get(self, index: int) -> IU:
        return self._values[self.check(index)]

    def set(self, index: int, value: IU) -> None:
        self.check(index)
        if value.width != self.width:
            raise ValueError(f"register value {value!r} is not {self.width} bits wide")
        self._values[index] = value

    def values(self) -> list[IU]:
        return list(self._values)

    def copy(self) -> RegisterFile:
        return RegisterFile(list(self._values), width=self.width)

    def __getitem__(self, index: int) -> IU:
        return self.get(index)

    def __setitem__(self, index: int, value: IU) -> None:
        self.set(index, value)

    def __len__(self) -> int:
        return NUM_REGISTERS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegisterFile):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        regs = " ".join(f"r{i}={v.value}" for i, v in enumerate(self._values))
        return f"RegisterFile({regs})"
