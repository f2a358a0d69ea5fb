"""Shared test helpers for the ascvm test suite."""

from ascvm.machine import MachineState, run_scenario
from ascvm.model.iu import IU
from ascvm.model.operands import Absolute, Imm, Indirect, Reg
from ascvm.model.ops import AluOp, AluOpcode
from ascvm.model.program import Program


def iu(value, width=12):
    """Shorthand for IU(value, width=width)."""
    return IU(value, width=width)


def r(index):
    """Register operand."""
    return Reg(index=index)


def imm(value):
    """Immediate operand."""
    return Imm(value=value)


def at(index):
    """Absolute address."""
    return Absolute(index=index)


def via(reg):
    """Register-indirect address."""
    return Indirect(reg=reg)


def alu(opcode, dest, a, b=None):
    """Build an AluOp from an opcode name or AluOpcode."""
    return AluOp(opcode=AluOpcode(opcode), dest=dest, a=a, b=b)


def make_state(memory_size=64, **kwargs):
    """Small zeroed state; ``r0=5`` style kwargs preset registers."""
    regs = {int(k[1:]): v for k, v in kwargs.items() if k.startswith("r")}
    extra = {k: v for k, v in kwargs.items() if not k.startswith("r")}
    return MachineState.create(memory_size=memory_size, registers=regs, **extra)


def run(ops, state=None, max_steps=1000, **kwargs):
    """Run a list of ops (or Program) and return ``(state, outcome)``."""
    if state is None:
        state = make_state()
    if not isinstance(ops, Program):
        ops = Program(ops=tuple(ops))
    return run_scenario(ops, state, max_steps=max_steps, **kwargs)
