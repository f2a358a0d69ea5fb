"""Instruction variants (AscOp) of the ASC virtual machine."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Self, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .iu import IU
from .operands import Address, Imm, Operand, Reg


class AluOpcode(str, Enum):
    ADD = "ADD"
    SUB = "SUB"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    NOT = "NOT"
    SHL = "SHL"
    SHR = "SHR"
    SAR = "SAR"
    ROL = "ROL"
    LOADK = "LOADK"
    MOV = "MOV"


UNARY_OPCODES = frozenset({AluOpcode.NOT, AluOpcode.LOADK, AluOpcode.MOV})

# Opcodes that leave Zero/Carry as they were.
FLAG_PRESERVING_OPCODES = frozenset({AluOpcode.LOADK, AluOpcode.MOV})


class JumpCondition(str, Enum):
    ZERO = "ZERO"
    NOT_ZERO = "NOT_ZERO"
    CARRY = "CARRY"
    NOT_CARRY = "NOT_CARRY"


class ContentAction(str, Enum):
    ENFOLD = "ENFOLD"
    UNFOLD = "UNFOLD"


class DrsAction(str, Enum):
    INSERT = "INSERT"
    QUERY_EXACT = "QUERY_EXACT"
    QUERY_BY_BASIN = "QUERY_BY_BASIN"


class _Op(BaseModel):
    model_config = ConfigDict(frozen=True)


class AluOp(_Op):
    """``dest <- opcode(a, b)``.

    NOT, LOADK and MOV are unary and take no *b*.  LOADK requires an
    immediate *a*, MOV a register *a*.
    """

    kind: Literal["alu"] = "alu"
    opcode: AluOpcode
    dest: int
    a: Operand
    b: Operand | None = None

    @model_validator(mode="after")
    def _arity_check(self) -> Self:
        if self.opcode in UNARY_OPCODES:
            if self.b is not None:
                raise ValueError(f"{self.opcode.value} takes a single operand")
        elif self.b is None:
            raise ValueError(f"{self.opcode.value} requires two operands")
        if self.opcode == AluOpcode.LOADK and not isinstance(self.a, Imm):
            raise ValueError("LOADK requires an immediate operand")
        if self.opcode == AluOpcode.MOV and not isinstance(self.a, Reg):
            raise ValueError("MOV requires a register operand")
        return self


class Load(_Op):
    """``dest <- memory[address]``."""

    kind: Literal["load"] = "load"
    dest: int
    address: Address


class Store(_Op):
    """``memory[address] <- src``."""

    kind: Literal["store"] = "store"
    src: int
    address: Address


class LoadConst(_Op):
    kind: Literal["load_const"] = "load_const"
    dest: int
    value: IU


class MoveReg(_Op):
    kind: Literal["move_reg"] = "move_reg"
    dest: int
    src: int


class ContentStoreOp(_Op):
    """Enfold a memory span into a digest, or unfold a digest into memory.

    ENFOLD reads ``length_reg`` cells starting at *address* and writes the
    digest to ``digest_reg``.  UNFOLD writes the sequence stored under
    ``digest_reg`` to memory at *address* and its length to ``length_reg``.
    """

    kind: Literal["content_store"] = "content_store"
    action: ContentAction
    digest_reg: int
    address: Address
    length_reg: int


class DrsOp(_Op):
    """Insert a triplet into, or query, the DRS store.

    For queries a ``None`` component is a wildcard; the number of matches
    is written to ``count_reg`` and, when ``out_address`` is given, the
    sorted matches are written there as consecutive (s, r, o) cells.
    """

    kind: Literal["drs"] = "drs"
    action: DrsAction
    subject: Operand | None = None
    relation: Operand | None = None
    obj: Operand | None = None
    count_reg: int | None = None
    out_address: Address | None = None

    @model_validator(mode="after")
    def _action_check(self) -> Self:
        if self.action == DrsAction.INSERT:
            if None in (self.subject, self.relation, self.obj):
                raise ValueError("INSERT requires subject, relation and obj")
            if self.count_reg is not None or self.out_address is not None:
                raise ValueError("INSERT takes no count_reg or out_address")
        elif self.count_reg is None:
            raise ValueError(f"{self.action.value} requires count_reg")
        return self


class ApplyRule(_Op):
    """``reg <- rule(reg)`` using a named dynamics rule."""

    kind: Literal["apply_rule"] = "apply_rule"
    rule: str
    reg: int


class JumpIf(_Op):
    kind: Literal["jump_if"] = "jump_if"
    condition: JumpCondition
    target: int


class Jump(_Op):
    kind: Literal["jump"] = "jump"
    target: int


class Halt(_Op):
    kind: Literal["halt"] = "halt"


AscOp = Annotated[
    Union[
        AluOp,
        Load,
        Store,
        LoadConst,
        MoveReg,
        ContentStoreOp,
        DrsOp,
        ApplyRule,
        JumpIf,
        Jump,
        Halt,
    ],
    Field(discriminator="kind"),
]
