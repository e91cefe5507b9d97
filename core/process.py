from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterator, Optional

from core.errors import InvariantViolation
from core.phase import PhaseKind, ResourceKind


class ProcessState(Enum):
    READY = 'READY'
    RUNNING = 'RUNNING'
    WAITING = 'WAITING'
    TERMINATED = 'TERMINATED'

    @staticmethod
    def from_phase(kind: PhaseKind) -> 'ProcessState':
        if kind is PhaseKind.CPU_WAIT:
            return ProcessState.READY
        if kind is PhaseKind.CPU_BUSY:
            return ProcessState.RUNNING
        if kind is PhaseKind.TERMINATED:
            return ProcessState.TERMINATED
        if kind.resource is not None:
            return ProcessState.WAITING
        raise InvariantViolation(f"{kind.name} has no visible process state")


def _per_kind(value):
    return {kind: value for kind in ResourceKind}


@dataclass
class ProcessRecord:
    pid: int
    start_time: int
    state: ProcessState = ProcessState.READY
    elapsed: Dict[ResourceKind, int] = field(default_factory=lambda: _per_kind(0))
    slots: Dict[ResourceKind, Optional[int]] = field(default_factory=lambda: _per_kind(None))

    def holds(self, kind: ResourceKind) -> bool:
        return self.slots[kind] is not None

    def copy(self) -> 'ProcessRecord':
        return replace(self, elapsed=dict(self.elapsed), slots=dict(self.slots))

    def __repr__(self) -> str:
        held = {k.value: s for k, s in self.slots.items() if s is not None}
        return f"ProcessRecord(pid={self.pid}, state={self.state.value}, held={held})"


class ProcessDirectory:
    """Live processes keyed by pid, in the order they were admitted."""

    def __init__(self):
        self._records: Dict[int, ProcessRecord] = {}

    def add(self, pid: int, start_time: int) -> ProcessRecord:
        if pid in self._records:
            raise InvariantViolation(f"pid {pid} is already in the process directory")
        record = ProcessRecord(pid, start_time)
        self._records[pid] = record
        return record

    def remove(self, pid: int) -> None:
        if self._records.pop(pid, None) is None:
            raise InvariantViolation(f"pid {pid} is not in the process directory")

    def get(self, pid: int) -> Optional[ProcessRecord]:
        return self._records.get(pid)

    def __contains__(self, pid: int) -> bool:
        return pid in self._records

    def __iter__(self) -> Iterator[ProcessRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def _require(self, pid: int) -> ProcessRecord:
        record = self._records.get(pid)
        if record is None:
            raise InvariantViolation(f"no process with pid {pid}")
        return record

    def accrue(self, pid: int, kind: ResourceKind, amount: int = 1) -> None:
        self._require(pid).elapsed[kind] += amount

    def update(self, pid: int, phase: PhaseKind, slot: Optional[int] = None) -> None:
        # Held slots are reset on every transition; only a Busy phase holds one.
        record = self._require(pid)
        record.state = ProcessState.from_phase(phase)
        record.slots = _per_kind(None)
        if phase.is_busy:
            record.slots[phase.resource] = slot

    def holders(self, kind: ResourceKind) -> Iterator[ProcessRecord]:
        return (r for r in self._records.values() if r.holds(kind))
