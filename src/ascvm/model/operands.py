"""Operand and address forms embedded in instructions."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .iu import IU


class Reg(BaseModel):
    """Operand read from a register by index."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["reg"] = "reg"
    index: int


class Imm(BaseModel):
    """Immediate IU operand embedded in the instruction."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["imm"] = "imm"
    value: IU


Operand = Annotated[Union[Reg, Imm], Field(discriminator="kind")]


class Absolute(BaseModel):
    """Memory address given literally in the instruction."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["absolute"] = "absolute"
    index: int


class Indirect(BaseModel):
    """Memory address taken from the current value of a register."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["indirect"] = "indirect"
    reg: int


Address = Annotated[Union[Absolute, Indirect], Field(discriminator="kind")]
