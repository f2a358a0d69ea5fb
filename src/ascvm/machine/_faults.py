"""Fault taxonomy and run outcomes.

Every fault is terminal for the current run.  The execution engine raises
the ``VMFault`` subclasses; ``run_scenario`` turns them into a
``Faulted`` outcome carrying the reason.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class FaultKind(str, Enum):
    DECODE = "DECODE"
    ADDRESS = "ADDRESS"
    CONTROL = "CONTROL"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    STORE = "STORE"


class VMFault(Exception):
    """Runtime fault raised while executing an instruction."""

    kind: FaultKind


class DecodeFault(VMFault):
    """Invalid register index, unknown rule or malformed operand."""

    kind = FaultKind.DECODE


class AddressFault(VMFault):
    """Resolved memory address outside the memory array."""

    kind = FaultKind.ADDRESS


class ControlFault(VMFault):
    """Jump target outside the program."""

    kind = FaultKind.CONTROL


class ResourceExhausted(VMFault):
    """Step limit reached before the program halted."""

    kind = FaultKind.RESOURCE_EXHAUSTED


class StoreFault(VMFault):
    """A collaborator could not satisfy a request (e.g. unknown digest)."""

    kind = FaultKind.STORE


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class Halted(BaseModel):
    """Normal termination: explicit ``Halt`` or the end of the program."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["halted"] = "halted"
    steps: int
    implicit: bool = False


class Faulted(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["faulted"] = "faulted"
    fault: FaultKind
    message: str
    pc: int
    steps: int


Outcome = Annotated[Union[Halted, Faulted], Field(discriminator="kind")]
