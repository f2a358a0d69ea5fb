"""ascvm machine — deterministic execution of ASC programs.

Entry point::

    from ascvm.machine import MachineState, run_scenario

    state = MachineState.create(registers={0: 5, 1: 3})
    final, outcome = run_scenario(program, state, max_steps=1000)
    assert outcome.kind == "halted"
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

from ascvm.model.program import Program

from ._alu import execute, resolve_operand
from ._cells import demux, full_adder, half_adder, mux, ripple_carry_add
from ._executor import DEFAULT_MAX_STEPS, ExecutionEngine, StepCallback
from ._faults import (
    AddressFault,
    ControlFault,
    DecodeFault,
    Faulted,
    FaultKind,
    Halted,
    Outcome,
    ResourceExhausted,
    StoreFault,
    VMFault,
)
from ._registers import NUM_REGISTERS, Flags, RegisterFile
from ._state import DEFAULT_MEMORY_SIZE, MachineState, Memory

logger = logging.getLogger(__name__)


class RunResult(NamedTuple):
    """Final state and outcome of a run; unpacks as ``(state, outcome)``."""

    state: MachineState
    outcome: Halted | Faulted


def run_scenario(
    program: Any,
    initial_state: MachineState,
    max_steps: int = DEFAULT_MAX_STEPS,
    *,
    on_step: StepCallback | None = None,
) -> RunResult:
    """Run *program* against a copy of *initial_state*.

    Parameters
    ----------
    program
        A ``Program`` or a sequence of instructions.
    initial_state
        Starting state.  It is not mutated; the run works on a copy that
        shares the state's stores and dynamics.
    max_steps
        Maximum number of instructions to execute.  Exceeding it ends the
        run with a ``RESOURCE_EXHAUSTED`` fault.
    on_step
        Optional ``(state, op)`` callback after each completed instruction.

    Returns
    -------
    RunResult
        The final state and either ``Halted`` or ``Faulted``.  On a fault,
        the state is as of the last completed instruction.
    """
    prog = _resolve_program(program)
    state = initial_state.copy()
    engine = ExecutionEngine(prog, state, max_steps=max_steps, on_step=on_step)

    try:
        outcome: Halted | Faulted = engine.run()
    except VMFault as exc:
        logger.warning(
            "%s: %s fault at pc=%d after %d steps: %s",
            prog.name, exc.kind.value, state.pc, engine.steps, exc,
        )
        outcome = Faulted(
            fault=exc.kind,
            message=str(exc),
            pc=state.pc,
            steps=engine.steps,
        )
    return RunResult(state, outcome)


def _resolve_program(program: Any) -> Program:
    """Resolve a target to a ``Program``."""
    if isinstance(program, Program):
        return program
    if isinstance(program, Sequence) and not isinstance(program, (str, bytes)):
        return Program(ops=tuple(program))
    raise TypeError(
        f"run_scenario() expects a Program or a sequence of instructions, "
        f"got {type(program).__name__}"
    )


__all__ = [
    "AddressFault",
    "ControlFault",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_MEMORY_SIZE",
    "DecodeFault",
    "ExecutionEngine",
    "FaultKind",
    "Faulted",
    "Flags",
    "Halted",
    "MachineState",
    "Memory",
    "NUM_REGISTERS",
    "Outcome",
    "RegisterFile",
    "ResourceExhausted",
    "RunResult",
    "StoreFault",
    "VMFault",
    "demux",
    "execute",
    "full_adder",
    "half_adder",
    "mux",
    "resolve_operand",
    "ripple_carry_add",
    "run_scenario",
]
