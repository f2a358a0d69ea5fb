"""Execution engine: the fetch-decode-execute loop.

The ``ExecutionEngine`` runs a ``Program`` against a ``MachineState``,
mutating the state in place.  Each handler validates every precondition
before it writes anything, so a faulting instruction leaves registers,
flags, memory and ``pc`` exactly as the previous instruction left them.
Store widths are checked before a store is called, but what an attached
store does internally is outside that guarantee.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial

from ascvm.model.iu import IU
from ascvm.model.operands import Operand
from ascvm.model.ops import (
    AluOp,
    ApplyRule,
    AscOp,
    ContentAction,
    ContentStoreOp,
    DrsAction,
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
from ascvm.stores._protocols import StoreError, Triplet

from . import _alu
from ._faults import (
    ControlFault,
    DecodeFault,
    Halted,
    ResourceExhausted,
    StoreFault,
)
from ._state import MachineState

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100_000

StepCallback = Callable[[MachineState, AscOp], None]


class ExecutionEngine:
    """Interpreter for one program over one machine state.

    Parameters
    ----------
    program : Program
        The instructions; never modified.
    state : MachineState
        Mutated in place.
    max_steps : int
        Maximum number of instructions ``run()`` executes before faulting
        with ``ResourceExhausted``.
    on_step : callable, optional
        Called with ``(state, op)`` after every completed instruction.
    """

    def __init__(
        self,
        program: Program,
        state: MachineState,
        max_steps: int = DEFAULT_MAX_STEPS,
        on_step: StepCallback | None = None,
    ) -> None:
        if max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {max_steps}")
        self.program = program
        self.state = state
        self.max_steps = max_steps
        self.on_step = on_step
        self.steps = 0

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def run(self) -> Halted:
        """Execute until halt; faults propagate as ``VMFault`` subclasses."""
        while True:
            if self.state.pc == len(self.program):
                logger.info(
                    "%s: fell off the end after %d steps (implicit halt)",
                    self.program.name, self.steps,
                )
                return Halted(steps=self.steps, implicit=True)
            if self.steps >= self.max_steps:
                raise ResourceExhausted(
                    f"step limit of {self.max_steps} reached at pc={self.state.pc}"
                )
            if not self.step():
                logger.info("%s: halted after %d steps", self.program.name, self.steps)
                return Halted(steps=self.steps)

    def step(self) -> bool:
        """Execute one instruction.  Returns False when it was a ``Halt``."""
        state = self.state
        if not 0 <= state.pc < len(self.program):
            raise ControlFault(
                f"pc {state.pc} outside program (0..{len(self.program) - 1})"
            )
        op = self.program[state.pc]

        state.tick += 1
        self.steps += 1
        logger.debug("tick %d pc %d: %s", state.tick, state.pc, op.kind)

        handler = self._OP_DISPATCH.get(op.kind)
        if handler is None:
            raise DecodeFault(f"Unsupported instruction kind: {op.kind}")
        next_pc = handler(self, op)
        if next_pc is None:
            return False

        state.pc = next_pc
        if self.on_step is not None:
            self.on_step(state, op)
        return True

    # -----------------------------------------------------------------------
    # Register and memory instructions
    # -----------------------------------------------------------------------

    def _exec_alu(self, op: AluOp) -> int:
        regs = self.state.registers
        regs.check(op.dest)
        value, flags = _alu.execute(op.opcode, regs, self.state.flags, op.a, op.b)
        regs.set(op.dest, value)
        self.state.flags = flags
        return self.state.pc + 1

    def _exec_load(self, op: Load) -> int:
        regs = self.state.registers
        regs.check(op.dest)
        address = self.state.resolve_address(op.address)
        regs.set(op.dest, self.state.memory.read(address))
        return self.state.pc + 1

    def _exec_store(self, op: Store) -> int:
        value = self.state.registers.get(op.src)
        address = self.state.resolve_address(op.address)
        self.state.memory.write(address, value)
        return self.state.pc + 1

    def _exec_load_const(self, op: LoadConst) -> int:
        regs = self.state.registers
        regs.check(op.dest)
        self._check_width(op.value)
        regs.set(op.dest, op.value)
        return self.state.pc + 1

    def _exec_move_reg(self, op: MoveReg) -> int:
        regs = self.state.registers
        value = regs.get(op.src)
        regs.check(op.dest)
        regs.set(op.dest, value)
        return self.state.pc + 1

    # -----------------------------------------------------------------------
    # Collaborator instructions
    # -----------------------------------------------------------------------

    def _exec_content_store(self, op: ContentStoreOp) -> int:
        state = self.state
        store = state.content_store
        if store is None:
            raise StoreFault("no content store attached")
        if store.width != state.width:
            raise StoreFault(
                f"content store holds {store.width}-bit IUs, machine is {state.width}-bit"
            )
        regs = state.registers

        if op.action == ContentAction.ENFOLD:
            regs.check(op.digest_reg)
            length = regs.get(op.length_reg).value
            start = state.resolve_address(op.address)
            chars = state.memory.read_span(start, length)
            try:
                digest = store.enfold(chars)
            except (StoreError, KeyError) as exc:
                raise StoreFault(f"enfold failed: {exc}") from exc
            self._check_width(digest, StoreFault)
            regs.set(op.digest_reg, digest)
            return state.pc + 1

        if op.action == ContentAction.UNFOLD:
            digest = regs.get(op.digest_reg)
            regs.check(op.length_reg)
            start = state.resolve_address(op.address)
            try:
                seq = tuple(store.unfold(digest))
            except (StoreError, KeyError) as exc:
                raise StoreFault(f"unfold of digest {digest} failed: {exc}") from exc
            length = self._count_to_iu(len(seq))
            for c in seq:
                self._check_width(c, StoreFault)
            state.memory.check(start, len(seq))
            state.memory.write_span(start, seq)
            regs.set(op.length_reg, length)
            return state.pc + 1

        raise DecodeFault(f"Unsupported content store action: {op.action}")

    def _exec_drs(self, op: DrsOp) -> int:
        state = self.state
        store = state.drs_store
        if store is None:
            raise StoreFault("no DRS store attached")
        regs = state.registers
        subject = self._resolve_optional(op.subject)
        relation = self._resolve_optional(op.relation)
        obj = self._resolve_optional(op.obj)

        if op.action == DrsAction.INSERT:
            try:
                store.insert(subject, relation, obj)
            except StoreError as exc:
                raise StoreFault(f"DRS insert failed: {exc}") from exc
            return state.pc + 1

        if op.action == DrsAction.QUERY_EXACT:
            query = store.query_exact
            pattern = (subject, relation, obj)
        elif op.action == DrsAction.QUERY_BY_BASIN:
            dynamics = state.dynamics
            if dynamics is None:
                raise StoreFault("basin query needs a dynamics module")
            # One dynamics classifies both the query and the stored triplets.
            basin_id = dynamics.basin_id
            pattern = tuple(
                None if v is None else basin_id(v)
                for v in (subject, relation, obj)
            )
            query = partial(store.query_by_basin, basin_id=basin_id)
        else:
            raise DecodeFault(f"Unsupported DRS action: {op.action}")

        regs.check(op.count_reg)
        try:
            matches: list[Triplet] = sorted(query(*pattern))
        except StoreError as exc:
            raise StoreFault(f"DRS query failed: {exc}") from exc
        count = self._count_to_iu(len(matches))

        if op.out_address is not None:
            base = state.resolve_address(op.out_address)
            cells = [c for t in matches for c in t]
            state.memory.check(base, len(cells))
            state.memory.write_span(base, cells)
        regs.set(op.count_reg, count)
        return state.pc + 1

    def _exec_apply_rule(self, op: ApplyRule) -> int:
        state = self.state
        dynamics = state.dynamics
        if dynamics is None:
            raise StoreFault("no dynamics module attached")
        value = state.registers.get(op.reg)
        try:
            result = dynamics.apply_rule(op.rule, value)
        except KeyError as exc:
            raise DecodeFault(f"unknown rule '{op.rule}'") from exc
        self._check_width(result, StoreFault)
        state.registers.set(op.reg, result)
        return state.pc + 1

    # -----------------------------------------------------------------------
    # Control flow
    # -----------------------------------------------------------------------

    def _exec_jump_if(self, op: JumpIf) -> int:
        self._check_target(op.target)
        flags = self.state.flags
        if op.condition == JumpCondition.ZERO:
            taken = flags.zero
        elif op.condition == JumpCondition.NOT_ZERO:
            taken = not flags.zero
        elif op.condition == JumpCondition.CARRY:
            taken = flags.carry
        elif op.condition == JumpCondition.NOT_CARRY:
            taken = not flags.carry
        else:
            raise DecodeFault(f"Unsupported jump condition: {op.condition}")
        return op.target if taken else self.state.pc + 1

    def _exec_jump(self, op: Jump) -> int:
        self._check_target(op.target)
        return op.target

    def _exec_halt(self, _op: AscOp) -> None:
        return None

    # Instruction dispatch table
    _OP_DISPATCH: dict[str, Callable[[ExecutionEngine, AscOp], int | None]] = {
        "alu": _exec_alu,
        "load": _exec_load,
        "store": _exec_store,
        "load_const": _exec_load_const,
        "move_reg": _exec_move_reg,
        "content_store": _exec_content_store,
        "drs": _exec_drs,
        "apply_rule": _exec_apply_rule,
        "jump_if": _exec_jump_if,
        "jump": _exec_jump,
        "halt": _exec_halt,
    }

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _check_target(self, target: int) -> None:
        # An explicit jump to len(program) is not an implicit halt.
        if not 0 <= target < len(self.program):
            raise ControlFault(
                f"jump target {target} outside program (0..{len(self.program) - 1})"
            )

    def _check_width(self, value: IU, fault: type = DecodeFault) -> None:
        width = self.state.width
        if value.width != width:
            raise fault(f"value {value!r} is not {width} bits wide")

    def _count_to_iu(self, count: int) -> IU:
        width = self.state.width
        if count >= 1 << width:
            raise StoreFault(f"result count {count} does not fit in a {width}-bit IU")
        return IU(count, width=width)

    def _resolve_optional(self, operand: Operand | None) -> IU | None:
        if operand is None:
            return None
        return _alu.resolve_operand(self.state.registers, operand)
