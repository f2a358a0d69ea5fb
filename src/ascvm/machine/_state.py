"""Machine state: registers, flags, memory, counters and store handles.

A ``MachineState`` is an explicit value handed to the interpreter; there
is no process-wide machine.  The stores and dynamics it references are
shared, never copied.
"""

from __future__ import annotations

from collections.abc import Iterator

from ascvm.model.iu import IU, IU_WIDTH
from ascvm.model.operands import Absolute, Address, Indirect
from ascvm.stores._protocols import ContentStoreLike, DrsStoreLike, DynamicsLike

from ._faults import AddressFault, DecodeFault
from ._registers import Flags, RegisterFile

DEFAULT_MEMORY_SIZE = 4096


class Memory:
    """Flat, untyped array of IU cells with bounds-checked access."""

    def __init__(self, size: int = DEFAULT_MEMORY_SIZE, width: int = IU_WIDTH) -> None:
        if size <= 0:
            raise ValueError(f"memory size must be positive, got {size}")
        self.width = width
        self._cells = [IU.zero(width) for _ in range(size)]

    @property
    def size(self) -> int:
        return len(self._cells)

    def check(self, address: int, length: int = 1) -> int:
        """Validate that ``[address, address + length)`` lies in memory."""
        if address < 0 or address + length > len(self._cells):
            if length == 1:
                raise AddressFault(
                    f"address {address} out of bounds (0..{len(self._cells) - 1})"
                )
            raise AddressFault(
                f"span {address}..{address + length - 1} out of bounds "
                f"(0..{len(self._cells) - 1})"
            )
        return address

    def read(self, address: int) -> IU:
        return self._cells[self.check(address)]

    def write(self, address: int, value: IU) -> None:
        self.check(address)
        if value.width != self.width:
            raise ValueError(f"cell value {value!r} is not {self.width} bits wide")
        self._cells[address] = value

    def read_span(self, address: int, length: int) -> tuple[IU, ...]:
        self.check(address, length)
        return tuple(self._cells[address:address + length])

    def write_span(self, address: int, values: tuple[IU, ...] | list[IU]) -> None:
        self.check(address, len(values))
        for offset, value in enumerate(values):
            self.write(address + offset, value)

    def copy(self) -> Memory:
        clone = Memory.__new__(Memory)
        clone.width = self.width
        clone._cells = list(self._cells)
        return clone

    def __getitem__(self, address: int) -> IU:
        return self.read(address)

    def __setitem__(self, address: int, value: IU) -> None:
        self.write(address, value)

    def __iter__(self) -> Iterator[IU]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Memory):
            return NotImplemented
        return self._cells == other._cells


class MachineState:
    """Everything an instruction can observe or mutate.

    Parameters
    ----------
    registers : RegisterFile
    flags : Flags
    memory : Memory
    pc : int
        Index of the next instruction in the program.
    tick : int
        Count of executed instructions; observational only.
    content_store, drs_store, dynamics
        Shared collaborators, or ``None`` when a run does not need them.
    """

    def __init__(
        self,
        registers: RegisterFile | None = None,
        flags: Flags | None = None,
        memory: Memory | None = None,
        pc: int = 0,
        tick: int = 0,
        content_store: ContentStoreLike | None = None,
        drs_store: DrsStoreLike | None = None,
        dynamics: DynamicsLike | None = None,
    ) -> None:
        self.registers = registers if registers is not None else RegisterFile()
        self.flags = flags if flags is not None else Flags()
        self.memory = memory if memory is not None else Memory(width=self.registers.width)
        if self.memory.width != self.registers.width:
            raise ValueError(
                f"memory width {self.memory.width} does not match "
                f"register width {self.registers.width}"
            )
        self.pc = pc
        self.tick = tick
        self.content_store = content_store
        self.drs_store = drs_store
        self.dynamics = dynamics

    @classmethod
    def create(
        cls,
        memory_size: int = DEFAULT_MEMORY_SIZE,
        width: int = IU_WIDTH,
        registers: dict[int, int] | None = None,
        content_store: ContentStoreLike | None = None,
        drs_store: DrsStoreLike | None = None,
        dynamics: DynamicsLike | None = None,
    ) -> MachineState:
        """Zero-initialized state, optionally presetting some registers.

        >>> state = MachineState.create(registers={0: 5, 1: 3})
        """
        state = cls(
            registers=RegisterFile(width=width),
            memory=Memory(memory_size, width=width),
            content_store=content_store,
            drs_store=drs_store,
            dynamics=dynamics,
        )
        for index, value in (registers or {}).items():
            state.registers.set(index, IU(value, width=width))
        return state

    @property
    def width(self) -> int:
        return self.registers.width

    def resolve_address(self, address: Address) -> int:
        """Turn an absolute or register-indirect address into a checked index."""
        if isinstance(address, Absolute):
            return self.memory.check(address.index)
        if isinstance(address, Indirect):
            return self.memory.check(self.registers.get(address.reg).value)
        raise DecodeFault(f"malformed address: {address!r}")

    def copy(self) -> MachineState:
        """Independent registers, flags and memory; shared collaborators."""
        return MachineState(
            registers=self.registers.copy(),
            flags=self.flags,
            memory=self.memory.copy(),
            pc=self.pc,
            tick=self.tick,
            content_store=self.content_store,
            drs_store=self.drs_store,
            dynamics=self.dynamics,
        )

    def snapshot(self) -> dict:
        """Plain-data view of the state for tracing and comparison.

        Memory is reported sparsely: only non-zero cells appear.
        """
        return {
            "registers": [v.value for v in self.registers.values()],
            "flags": {"zero": self.flags.zero, "carry": self.flags.carry},
            "pc": self.pc,
            "tick": self.tick,
            "memory": {
                addr: cell.value
                for addr, cell in enumerate(self.memory)
                if cell.value
            },
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MachineState):
            return NotImplemented
        return (
            self.registers == other.registers
            and self.flags == other.flags
            and self.memory == other.memory
            and self.pc == other.pc
            and self.tick == other.tick
        )

    def __str__(self) -> str:
        regs = " ".join(f"r{i}={v.value}" for i, v in enumerate(self.registers.values()))
        return f"[tick {self.tick}] pc={self.pc} {regs} {self.flags}"
