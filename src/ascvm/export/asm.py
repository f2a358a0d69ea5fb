"""Assembly listing for ASC programs.

Walks instruction models and emits one mnemonic line per instruction::

    ; main (4 instructions)
    0000  ADD r0, r0, r1
    0001  JC 3
    0002  STORE r0, [0]
    0003  HALT
"""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO

from ascvm.model.operands import Absolute, Address, Imm, Operand, Reg
from ascvm.model.ops import (
    AluOp,
    ApplyRule,
    AscOp,
    ContentStoreOp,
    DrsOp,
    Jump,
    JumpCondition,
    JumpIf,
    Load,
    LoadConst,
    MoveReg,
    Store,
)
from ascvm.model.program import Program


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def to_assembly(program: Program, *, addresses: bool = True) -> str:
    """Render *program* as an assembly listing.

    When *addresses* is False the instruction indices are omitted.
    """
    if not isinstance(program, Program):
        raise TypeError(
            f"to_assembly() expects a Program, got {type(program).__name__}"
        )
    w = AsmWriter(addresses=addresses)
    w.write_program(program)
    return w.getvalue()


def format_op(op: AscOp) -> str:
    """Mnemonic text of a single instruction."""
    formatter = _OP_FORMAT.get(op.kind)
    if formatter is None:
        raise ValueError(f"Unsupported instruction kind: {op.kind}")
    return formatter(op)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

class AsmWriter:
    """Emits listing lines into an internal buffer."""

    def __init__(self, addresses: bool = True) -> None:
        self._buf = StringIO()
        self._addresses = addresses

    def getvalue(self) -> str:
        return self._buf.getvalue().rstrip("\n") + "\n"

    def _line(self, text: str = "") -> None:
        self._buf.write(text + "\n")

    def write_program(self, program: Program) -> None:
        n = len(program)
        self._line(f"; {program.name} ({n} instruction{'s' if n != 1 else ''})")
        for index, op in enumerate(program):
            if self._addresses:
                self._line(f"{index:04d}  {format_op(op)}")
            else:
                self._line(format_op(op))


# ---------------------------------------------------------------------------
# Operand formatting
# ---------------------------------------------------------------------------

def _operand(op: Operand | None) -> str:
    if op is None:
        return "*"
    if isinstance(op, Reg):
        return f"r{op.index}"
    if isinstance(op, Imm):
        return f"#{op.value.value}"
    raise ValueError(f"Unsupported operand: {op!r}")


def _address(addr: Address) -> str:
    if isinstance(addr, Absolute):
        return f"[{addr.index}]"
    return f"[r{addr.reg}]"


_JUMP_MNEMONIC: dict[JumpCondition, str] = {
    JumpCondition.ZERO: "JZ",
    JumpCondition.NOT_ZERO: "JNZ",
    JumpCondition.CARRY: "JC",
    JumpCondition.NOT_CARRY: "JNC",
}


# ---------------------------------------------------------------------------
# Instruction formatting
# ---------------------------------------------------------------------------

def _fmt_alu(op: AluOp) -> str:
    args = [f"r{op.dest}", _operand(op.a)]
    if op.b is not None:
        args.append(_operand(op.b))
    return f"{op.opcode.value} " + ", ".join(args)


def _fmt_load(op: Load) -> str:
    return f"LOAD r{op.dest}, {_address(op.address)}"


def _fmt_store(op: Store) -> str:
    return f"STORE r{op.src}, {_address(op.address)}"


def _fmt_load_const(op: LoadConst) -> str:
    return f"LDC r{op.dest}, #{op.value.value}"


def _fmt_move_reg(op: MoveReg) -> str:
    return f"MOVR r{op.dest}, r{op.src}"


def _fmt_content_store(op: ContentStoreOp) -> str:
    return (
        f"{op.action.value} r{op.digest_reg}, "
        f"{_address(op.address)}, r{op.length_reg}"
    )


def _fmt_drs(op: DrsOp) -> str:
    triple = ", ".join(_operand(c) for c in (op.subject, op.relation, op.obj))
    text = f"DRS.{op.action.value} "
    if op.count_reg is not None:
        text += f"r{op.count_reg}, "
    text += triple
    if op.out_address is not None:
        text += f" -> {_address(op.out_address)}"
    return text


def _fmt_apply_rule(op: ApplyRule) -> str:
    return f"RULE {op.rule}, r{op.reg}"


def _fmt_jump_if(op: JumpIf) -> str:
    return f"{_JUMP_MNEMONIC[op.condition]} {op.target}"


def _fmt_jump(op: Jump) -> str:
    return f"JMP {op.target}"


def _fmt_halt(_op: AscOp) -> str:
    return "HALT"


_OP_FORMAT: dict[str, Callable[[AscOp], str]] = {
    "alu": _fmt_alu,
    "load": _fmt_load,
    "store": _fmt_store,
    "load_const": _fmt_load_const,
    "move_reg": _fmt_move_reg,
    "content_store": _fmt_content_store,
    "drs": _fmt_drs,
    "apply_rule": _fmt_apply_rule,
    "jump_if": _fmt_jump_if,
    "jump": _fmt_jump,
    "halt": _fmt_halt,
}
