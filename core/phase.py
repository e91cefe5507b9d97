# Phases and per-process phase chains (zero-length phases never cover a tick)
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional

from core.errors import InvariantViolation


class ResourceKind(Enum):
    CPU = 'CPU'
    INPUT = 'Input'
    IO = 'I/O'


class PhaseKind(Enum):
    START = auto()
    CPU_BUSY = auto()
    CPU_WAIT = auto()
    IO_BUSY = auto()
    IO_WAIT = auto()
    INPUT_BUSY = auto()
    INPUT_WAIT = auto()
    TERMINATED = auto()

    @property
    def resource(self) -> Optional[ResourceKind]:
        return _RESOURCE_OF.get(self)

    @property
    def is_busy(self) -> bool:
        return self in _BUSY.values()

    @property
    def is_wait(self) -> bool:
        return self in _WAIT.values()

    @staticmethod
    def busy(kind: ResourceKind) -> 'PhaseKind':
        return _BUSY[kind]

    @staticmethod
    def wait(kind: ResourceKind) -> 'PhaseKind':
        return _WAIT[kind]


_BUSY = {
    ResourceKind.CPU: PhaseKind.CPU_BUSY,
    ResourceKind.INPUT: PhaseKind.INPUT_BUSY,
    ResourceKind.IO: PhaseKind.IO_BUSY,
}
_WAIT = {
    ResourceKind.CPU: PhaseKind.CPU_WAIT,
    ResourceKind.INPUT: PhaseKind.INPUT_WAIT,
    ResourceKind.IO: PhaseKind.IO_WAIT,
}
_RESOURCE_OF = {phase: kind for kind, phase in list(_BUSY.items()) + list(_WAIT.items())}


@dataclass(frozen=True)
class Phase:
    kind: PhaseKind
    duration: int

    def __repr__(self):
        return f"Phase({self.kind.name} {self.duration})"


TERMINATED_PHASE = Phase(PhaseKind.TERMINATED, 0)


class PhaseChain:
    def __init__(self, phases: Optional[List[Phase]] = None):
        self._phases: List[Phase] = list(phases or [])

    def append(self, kind: PhaseKind, duration: int) -> Phase:
        phase = Phase(kind, duration)
        self._phases.append(phase)
        return phase

    def __len__(self) -> int:
        return len(self._phases)

    def __iter__(self) -> Iterator[Phase]:
        return iter(self._phases)

    def __getitem__(self, index: int) -> Phase:
        return self._phases[index]

    @property
    def start(self) -> Phase:
        if not self._phases or self._phases[0].kind is not PhaseKind.START:
            raise InvariantViolation("phase chain has no leading Start phase")
        return self._phases[0]

    @property
    def total(self) -> int:
        return sum(p.duration for p in self._phases)

    def index_at(self, time: int) -> Optional[int]:
        """Index of the phase covering tick `time`, or None once the chain has ended."""
        elapsed = 0
        for i, phase in enumerate(self._phases):
            elapsed += phase.duration
            if elapsed > time:
                return i
        return None

    def phase_at(self, time: int) -> Phase:
        i = self.index_at(time)
        return TERMINATED_PHASE if i is None else self._phases[i]

    def end_of(self, index: int) -> int:
        return sum(p.duration for p in self._phases[:index + 1])

    def end_at(self, time: int) -> int:
        """Tick at which the phase covering `time` finishes."""
        i = self.index_at(time)
        if i is None:
            raise InvariantViolation(f"no phase is active at t={time}")
        return self.end_of(i)

    def completed_at(self, time: int) -> Phase:
        # The phase that just ended at a boundary is whatever covered the
        # previous tick; zero-length phases in between never cover a tick.
        if time <= 0:
            return self.start
        i = self.index_at(time - 1)
        if i is None:
            raise InvariantViolation(f"no phase completed at t={time}, chain ends at {self.total}")
        return self._phases[i]

    def splice_wait(self, time: int, kind: ResourceKind, duration: int) -> int:
        """Insert a wait phase right before the phase that begins at `time`."""
        i = self.index_at(time)
        if i is None:
            raise InvariantViolation(f"cannot wait at t={time}, chain ends at {self.total}")
        self._phases.insert(i, Phase(PhaseKind.wait(kind), duration))
        return i

    def __repr__(self):
        return f"PhaseChain({', '.join(f'{p.kind.name}:{p.duration}' for p in self._phases)})"
