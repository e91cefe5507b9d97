# Wait queues: one FIFO of blocked pids per resource kind
from collections import deque
from typing import Deque, Dict, List, Optional

from core.errors import InvariantViolation
from core.phase import ResourceKind


class WaitQueues:
    def __init__(self):
        self._queues: Dict[ResourceKind, Deque[int]] = {kind: deque() for kind in ResourceKind}

    def enqueue(self, kind: ResourceKind, pid: int) -> None:
        current = self.queue_of(pid)
        if current is not None:
            raise InvariantViolation(f"pid {pid} is already queued for {current.value}")
        self._queues[kind].append(pid)

    def pop_front(self, kind: ResourceKind, expected_pid: int) -> int:
        queue = self._queues[kind]
        if not queue or queue[0] != expected_pid:
            head = queue[0] if queue else None
            raise InvariantViolation(f"{kind.value} queue head is {head}, expected pid {expected_pid}")
        return queue.popleft()

    def has_waiters(self, kind: ResourceKind) -> bool:
        return bool(self._queues[kind])

    def waiting(self, kind: ResourceKind) -> List[int]:
        return list(self._queues[kind])

    def position(self, kind: ResourceKind, pid: int) -> int:
        try:
            return self._queues[kind].index(pid)
        except ValueError:
            raise InvariantViolation(f"pid {pid} is not queued for {kind.value}") from None

    def queue_of(self, pid: int) -> Optional[ResourceKind]:
        for kind, queue in self._queues.items():
            if pid in queue:
                return kind
        return None

    def __repr__(self):
        return 'WaitQueues(' + ', '.join(f"{k.value}={list(q)}" for k, q in self._queues.items()) + ')'
