from dataclasses import dataclass
from typing import Dict, List

from core.phase import ResourceKind
from core.process import ProcessRecord


@dataclass(frozen=True)
class SystemSnapshot:
    """Read-only copy of the engine state taken when processes terminate."""
    time: int
    slots: Dict[ResourceKind, List[bool]]
    queues: Dict[ResourceKind, List[int]]
    processes: List[ProcessRecord]

    def process(self, pid: int) -> ProcessRecord:
        for record in self.processes:
            if record.pid == pid:
                return record
        raise KeyError(pid)
