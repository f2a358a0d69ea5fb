"""Program container: the fixed instruction sequence handed to the VM."""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict

from .ops import AscOp


class Program(BaseModel):
    """An ordered, immutable sequence of instructions.

    Programs live outside machine memory and are never modified while
    running.  ``Program.model_validate_json`` loads a serialized program.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "main"
    ops: tuple[AscOp, ...] = ()

    @classmethod
    def of(cls, *ops: AscOp, name: str = "main") -> Program:
        return cls(name=name, ops=ops)

    def __len__(self) -> int:
        return len(self.ops)

    def __getitem__(self, index: int) -> AscOp:
        return self.ops[index]

    def __iter__(self) -> Iterator[AscOp]:  # type: ignore[override]
        return iter(self.ops)
