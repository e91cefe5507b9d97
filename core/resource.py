# Resource pool: fixed number of slots per resource kind
from typing import Dict, List, Optional

from core.errors import InvariantViolation
from core.phase import ResourceKind


class ResourcePool:
    def __init__(self, capacities: Dict[ResourceKind, int]):
        # slot index -> in use
        self._slots: Dict[ResourceKind, List[bool]] = {
            kind: [False] * capacities[kind] for kind in ResourceKind
        }

    def _slots_for(self, kind: ResourceKind) -> List[bool]:
        slots = self._slots.get(kind)
        if slots is None:
            raise InvariantViolation(f"unexpected resource kind {kind!r}")
        return slots

    def request(self, kind: ResourceKind) -> Optional[int]:
        slots = self._slots_for(kind)
        for i, in_use in enumerate(slots):
            if not in_use:
                slots[i] = True
                return i
        return None

    def release(self, kind: ResourceKind, slot: int) -> None:
        slots = self._slots_for(kind)
        if not 0 <= slot < len(slots):
            raise InvariantViolation(f"{kind.value} slot {slot} out of range 0..{len(slots) - 1}")
        slots[slot] = False

    def available(self, kind: ResourceKind) -> bool:
        return not all(self._slots_for(kind))

    def capacity(self, kind: ResourceKind) -> int:
        return len(self._slots_for(kind))

    def occupied(self, kind: ResourceKind) -> int:
        return sum(self._slots_for(kind))

    def free_count(self, kind: ResourceKind) -> int:
        return self.capacity(kind) - self.occupied(kind)

    def slots(self, kind: ResourceKind) -> List[bool]:
        return list(self._slots_for(kind))

    def __repr__(self):
        usage = ', '.join(f"{k.value}={self.occupied(k)}/{self.capacity(k)}" for k in ResourceKind)
        return f"ResourcePool({usage})"
