"""Tests for the execution engine, instruction by instruction."""

import pytest

from conftest import alu, at, imm, iu, make_state, r, run, via

from ascvm.dynamics import Dynamics
from ascvm.machine import (
    ControlFault,
    DecodeFault,
    ExecutionEngine,
    FaultKind,
    Flags,
    ResourceExhausted,
)
from ascvm.model.ops import (
    ApplyRule,
    Halt,
    Jump,
    JumpCondition,
    JumpIf,
    Load,
    LoadConst,
    MoveReg,
    Store,
)
from ascvm.model.program import Program


def _engine(ops, state=None, **kwargs):
    if state is None:
        state = make_state()
    return ExecutionEngine(Program(ops=ops), state, **kwargs)


# ---------------------------------------------------------------------------
# ALU instructions
# ---------------------------------------------------------------------------

class TestAluInstruction:
    def test_writes_dest_and_flags(self):
        state, outcome = run([alu("ADD", 2, r(0), r(1))], make_state(r0=4095, r1=1))
        assert outcome.kind == "halted"
        assert state.registers[2] == iu(0)
        assert state.flags == Flags(zero=True, carry=True)

    def test_bad_dest_faults_without_mutation(self):
        state, outcome = run([alu("ADD", 4, r(0), r(1))], make_state(r0=1, r1=1))
        assert outcome.fault == FaultKind.DECODE
        assert state.flags == Flags()
        assert state.pc == 0

    def test_loadk_keeps_flags(self):
        state, _ = run([
            alu("SUB", 0, imm(1), imm(1)),
            alu("LOADK", 1, imm(9)),
        ])
        assert state.registers[1] == iu(9)
        assert state.flags == Flags(zero=True, carry=True)

    def test_mov_keeps_flags(self):
        state, _ = run([
            alu("ADD", 0, imm(4095), imm(2)),
            alu("MOV", 3, r(0)),
        ])
        assert state.registers[3] == iu(1)
        assert state.flags == Flags(zero=False, carry=True)


# ---------------------------------------------------------------------------
# Register / memory instructions
# ---------------------------------------------------------------------------

class TestMemoryInstructions:
    def test_store_absolute(self):
        state, _ = run([Store(src=0, address=at(5))], make_state(r0=77))
        assert state.memory[5] == iu(77)

    def test_load_absolute(self):
        initial = make_state()
        initial.memory[9] = iu(300)
        state, _ = run([Load(dest=1, address=at(9))], initial)
        assert state.registers[1] == iu(300)

    def test_store_and_load_indirect(self):
        state, _ = run([
            Store(src=0, address=via(1)),
            Load(dest=2, address=via(1)),
        ], make_state(r0=55, r1=12))
        assert state.memory[12] == iu(55)
        assert state.registers[2] == iu(55)

    def test_load_leaves_flags(self):
        initial = make_state()
        initial.flags = Flags(zero=True, carry=True)
        state, _ = run([Load(dest=0, address=at(1))], initial)
        assert state.flags == Flags(zero=True, carry=True)

    def test_load_const(self):
        state, _ = run([LoadConst(dest=3, value=4000)])
        assert state.registers[3] == iu(4000)

    def test_load_const_wrong_width(self):
        _, outcome = run([LoadConst(dest=0, value=iu(1, width=8))])
        assert outcome.fault == FaultKind.DECODE

    def test_move_reg(self):
        state, _ = run([MoveReg(dest=0, src=3)], make_state(r3=8))
        assert state.registers[0] == iu(8)

    def test_move_reg_bad_source(self):
        _, outcome = run([MoveReg(dest=0, src=7)])
        assert outcome.fault == FaultKind.DECODE

    @pytest.mark.parametrize("op", [
        Store(src=0, address=at(64)),
        Load(dest=0, address=at(64)),
        Store(src=0, address=at(-1)),
    ])
    def test_out_of_bounds(self, op):
        state, outcome = run([op])
        assert outcome.fault == FaultKind.ADDRESS
        assert state.pc == 0

    def test_indirect_out_of_bounds(self):
        _, outcome = run([Load(dest=0, address=via(1))], make_state(memory_size=64, r1=64))
        assert outcome.fault == FaultKind.ADDRESS


# ---------------------------------------------------------------------------
# Dynamics rule instruction
# ---------------------------------------------------------------------------

class TestApplyRule:
    def test_applies_rule(self):
        state, outcome = run(
            [ApplyRule(rule="rotl1", reg=0)],
            make_state(r0=0x800, dynamics=Dynamics()),
        )
        assert outcome.kind == "halted"
        assert state.registers[0] == iu(1)

    def test_unknown_rule_is_decode_fault(self):
        _, outcome = run(
            [ApplyRule(rule="nope", reg=0)],
            make_state(dynamics=Dynamics()),
        )
        assert outcome.fault == FaultKind.DECODE
        assert "nope" in outcome.message

    def test_missing_dynamics(self):
        _, outcome = run([ApplyRule(rule="rotl1", reg=0)])
        assert outcome.fault == FaultKind.STORE

    def test_flags_untouched(self):
        initial = make_state(r0=1, dynamics=Dynamics())
        initial.flags = Flags(carry=True)
        state, _ = run([ApplyRule(rule="complement", reg=0)], initial)
        assert state.registers[0] == iu(4094)
        assert state.flags == Flags(carry=True)


# ---------------------------------------------------------------------------
# Control flow
# ---------------------------------------------------------------------------

class TestJumpIf:
    @pytest.mark.parametrize("condition,flags,taken", [
        (JumpCondition.ZERO, Flags(zero=True), True),
        (JumpCondition.ZERO, Flags(), False),
        (JumpCondition.NOT_ZERO, Flags(), True),
        (JumpCondition.NOT_ZERO, Flags(zero=True), False),
        (JumpCondition.CARRY, Flags(carry=True), True),
        (JumpCondition.CARRY, Flags(), False),
        (JumpCondition.NOT_CARRY, Flags(), True),
        (JumpCondition.NOT_CARRY, Flags(carry=True), False),
    ])
    def test_condition(self, condition, flags, taken):
        initial = make_state()
        initial.flags = flags
        state, outcome = run([
            JumpIf(condition=condition, target=2),
            LoadConst(dest=0, value=1),
            Halt(),
        ], initial)
        assert outcome.kind == "halted"
        assert state.registers[0] == (iu(0) if taken else iu(1))

    def test_target_checked_even_when_not_taken(self):
        _, outcome = run([JumpIf(condition=JumpCondition.CARRY, target=5), Halt()])
        assert outcome.fault == FaultKind.CONTROL


class TestJump:
    def test_skips(self):
        state, _ = run([Jump(target=2), LoadConst(dest=0, value=1), Halt()])
        assert state.registers[0] == iu(0)

    def test_jump_to_length_faults(self):
        state, outcome = run([Jump(target=1)])
        assert outcome.fault == FaultKind.CONTROL
        assert state.pc == 0

    def test_negative_target(self):
        _, outcome = run([Jump(target=-1)])
        assert outcome.fault == FaultKind.CONTROL


# ---------------------------------------------------------------------------
# Engine stepping
# ---------------------------------------------------------------------------

class TestEngine:
    def test_step_returns_false_on_halt(self):
        engine = _engine([LoadConst(dest=0, value=1), Halt()])
        assert engine.step() is True
        assert engine.step() is False
        assert engine.state.tick == 2
        assert engine.state.pc == 1

    def test_step_raises_fault(self):
        engine = _engine([Jump(target=3)])
        with pytest.raises(ControlFault):
            engine.step()

    def test_step_past_end(self):
        engine = _engine([Halt()])
        engine.state.pc = 1
        with pytest.raises(ControlFault, match="outside program"):
            engine.step()

    def test_run_raises_resource_exhausted(self):
        engine = _engine([Jump(target=0)], max_steps=10)
        with pytest.raises(ResourceExhausted):
            engine.run()
        assert engine.steps == 10

    def test_run_mutates_state_in_place(self):
        state = make_state()
        ExecutionEngine(Program(ops=[LoadConst(dest=0, value=3)]), state).run()
        assert state.registers[0] == iu(3)

    def test_max_steps_must_be_positive(self):
        with pytest.raises(ValueError):
            _engine([Halt()], max_steps=0)

    def test_bad_register_in_step(self):
        engine = _engine([MoveReg(dest=5, src=0)])
        with pytest.raises(DecodeFault):
            engine.step()
