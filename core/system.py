from typing import Callable, Dict, List, Optional
from time import sleep
import heapq

from core.config import SimConfig
from core.errors import InvariantViolation, NoWorkloadError
from core.phase import Phase, PhaseKind, ResourceKind
from core.process import ProcessDirectory
from core.resource import ResourcePool
from core.scheduler import WaitQueues
from core.snapshot import SystemSnapshot
from core.timeline import TimelineEntry


class TimelineEngine:
    def __init__(self, entries: List[TimelineEntry], config: Optional[SimConfig] = None,
                 verbose: bool = False, on_report: Optional[Callable[[SystemSnapshot], None]] = None):
        if not entries:
            raise NoWorkloadError("workload contains no processes")
        self.config = (config or SimConfig()).validate()
        self.entries = list(entries)
        self._by_pid: Dict[int, TimelineEntry] = {e.pid: e for e in self.entries}
        self.verbose = verbose
        self.on_report = on_report

        self.pool = ResourcePool({kind: self.config.capacity(kind) for kind in ResourceKind})
        self.directory = ProcessDirectory()
        self.queues = WaitQueues()

        self.current_time = 0
        self.total_length = max(e.total_duration for e in self.entries)
        self.reports: List[SystemSnapshot] = []

        # stats
        self.busy_time: Dict[ResourceKind, int] = {kind: 0 for kind in ResourceKind}

    def entry(self, pid: int) -> TimelineEntry:
        return self._by_pid[pid]

    # main loop
    def run(self, check_invariants: bool = False) -> int:
        delay = self.config.tick_delay_usec / 1_000_000
        t = 0
        while True:
            self.step(t)
            if check_invariants:
                self.check_invariants()
            # the horizon moves whenever a wait is spliced, so re-read it every tick
            if self.total_length <= t:
                break
            if delay:
                sleep(delay)
            t += 1
        return t

    def step(self, t: int) -> None:
        # entries go in creation order; deferred waiters and pending
        # requests are settled after the pass, once same-tick releases are in
        self.current_time = t
        deferred: Dict[ResourceKind, List[TimelineEntry]] = {kind: [] for kind in ResourceKind}
        pending: List[TimelineEntry] = []
        pending_kinds = set()
        terminated: List[TimelineEntry] = []

        for entry in self.entries:
            if not entry.is_active(t):
                continue
            if t != entry.next_update_time:
                self._accrue_tick(entry, t)
                continue

            completed = entry.chain.completed_at(t)
            self._release(entry, completed, t)
            beginning = entry.chain.phase_at(t)

            if beginning.kind is PhaseKind.TERMINATED:
                if entry.pid in self.directory:
                    self.directory.update(entry.pid, PhaseKind.TERMINATED)
                terminated.append(entry)
                if self.verbose:
                    print(f"[t={t}] pid={entry.pid} -> TERMINATED")
                continue
            if not beginning.kind.is_busy:
                raise InvariantViolation(f"pid {entry.pid} cannot begin {beginning.kind.name} at t={t}")

            kind = beginning.kind.resource
            if entry.pid not in self.directory:
                self.directory.add(entry.pid, entry.start_time)

            if completed.kind.is_wait:
                if completed.kind.resource is not kind:
                    raise InvariantViolation(
                        f"pid {entry.pid} waited for {completed.kind.resource.value} but needs {kind.value}")
                deferred[kind].append(entry)
            elif deferred[kind] or kind in pending_kinds or self.queues.has_waiters(kind):
                pending.append(entry)
                pending_kinds.add(kind)
            elif self.pool.available(kind):
                self._grant(entry, kind, t)
            elif not self._wait_for(entry, kind, t):
                pending.append(entry)
                pending_kinds.add(kind)

        for kind in ResourceKind:
            self._grant_waiters(kind, deferred[kind], t)
        for entry in pending:
            self._resolve_pending(entry, t)
        if terminated:
            self._report()
            for entry in terminated:
                if entry.pid in self.directory:
                    self.directory.remove(entry.pid)

        self.total_length = max(e.total_duration for e in self.entries)

    # wait-time estimate
    def estimate_wait(self, kind: ResourceKind, t: int) -> Optional[int]:
        # one release tick per slot; queued waiters claim them in FIFO order
        # None means a holder gives its slot back later this same tick
        releases = [t] * self.pool.free_count(kind)
        releases += [self._by_pid[r.pid].next_update_time for r in self.directory.holders(kind)]
        heapq.heapify(releases)
        for pid in self.queues.waiting(kind):
            waiter = self._by_pid[pid]
            wait_end = waiter.next_update_time
            busy = waiter.chain.phase_at(wait_end)
            start = max(heapq.heappop(releases), wait_end)
            heapq.heappush(releases, start + busy.duration)

        earliest = releases[0]
        if earliest <= t:
            return None
        return earliest - t

    # resource handling
    def _grant(self, entry: TimelineEntry, kind: ResourceKind, t: int) -> None:
        slot = self.pool.request(kind)
        if slot is None:
            raise InvariantViolation(f"no {kind.value} slot free for pid {entry.pid} at t={t}")
        self.directory.update(entry.pid, PhaseKind.busy(kind), slot)
        entry.next_update_time = entry.chain.end_at(t)
        if self.verbose:
            print(f"[t={t}] pid={entry.pid} granted {kind.value} {slot} until t={entry.next_update_time}")

    def _release(self, entry: TimelineEntry, completed: Phase, t: int) -> None:
        record = self.directory.get(entry.pid)
        if record is None or not completed.kind.is_busy:
            return
        kind = completed.kind.resource
        slot = record.slots[kind]
        if slot is None:
            return
        self.pool.release(kind, slot)
        record.slots[kind] = None
        self._accrue(entry.pid, kind)
        if self.verbose:
            print(f"[t={t}] pid={entry.pid} released {kind.value} {slot}")

    def _wait_for(self, entry: TimelineEntry, kind: ResourceKind, t: int) -> bool:
        wait = self.estimate_wait(kind, t)
        if wait is None:
            if self.verbose:
                print(f"[t={t}] pid={entry.pid} {kind.value} frees up this tick, retrying after the pass")
            return False
        entry.chain.splice_wait(t, kind, wait)
        entry.total_duration += wait
        entry.next_update_time = t + wait
        self.total_length = max(self.total_length, entry.total_duration)
        self.queues.enqueue(kind, entry.pid)
        self.directory.update(entry.pid, PhaseKind.wait(kind))
        if self.verbose:
            print(f"[t={t}] pid={entry.pid} waits {wait} for {kind.value} "
                  f"(queue position {self.queues.position(kind, entry.pid) + 1})")
        return True

    def _grant_waiters(self, kind: ResourceKind, waiters: List[TimelineEntry], t: int) -> None:
        # waits ending on the same tick are served in queue order, not entry order
        for entry in sorted(waiters, key=lambda e: self.queues.position(kind, e.pid)):
            self.queues.pop_front(kind, entry.pid)
            self._grant(entry, kind, t)

    def _resolve_pending(self, entry: TimelineEntry, t: int) -> None:
        kind = entry.chain.phase_at(t).kind.resource
        if self.pool.available(kind):
            self._grant(entry, kind, t)
        elif not self._wait_for(entry, kind, t):
            raise InvariantViolation(f"no {kind.value} slot will ever free up for pid {entry.pid}")

    # usage accounting
    def _accrue(self, pid: int, kind: ResourceKind) -> None:
        self.directory.accrue(pid, kind)
        self.busy_time[kind] += 1

    def _accrue_tick(self, entry: TimelineEntry, t: int) -> None:
        phase = entry.chain.phase_at(t)
        if phase.kind.is_busy:
            self._accrue(entry.pid, phase.kind.resource)

    # reporting
    def snapshot(self) -> SystemSnapshot:
        return SystemSnapshot(
            time=self.current_time,
            slots={kind: self.pool.slots(kind) for kind in ResourceKind},
            queues={kind: self.queues.waiting(kind) for kind in ResourceKind},
            processes=[r.copy() for r in self.directory],
        )

    def _report(self) -> None:
        snap = self.snapshot()
        self.reports.append(snap)
        if self.on_report is not None:
            self.on_report(snap)

    def cpu_utilisation(self) -> int:
        total_time = self.current_time
        cores = self.pool.capacity(ResourceKind.CPU)
        return int(self.busy_time[ResourceKind.CPU] * 100 / (cores * total_time)) if total_time > 0 else 0

    def check_invariants(self) -> None:
        t = self.current_time
        queued = set()
        for kind in ResourceKind:
            busy = [e.pid for e in self.entries if e.chain.phase_at(t).kind is PhaseKind.busy(kind)]
            holders = [r.pid for r in self.directory.holders(kind)]
            occupied = self.pool.occupied(kind)
            if occupied > self.pool.capacity(kind):
                raise InvariantViolation(f"{kind.value}: {occupied} slots used, capacity {self.pool.capacity(kind)}")
            if len(busy) != occupied or sorted(busy) != sorted(holders):
                raise InvariantViolation(f"{kind.value} at t={t}: busy={busy} holders={holders} occupied={occupied}")
            for pid in self.queues.waiting(kind):
                if pid in queued:
                    raise InvariantViolation(f"pid {pid} is queued for more than one resource")
                queued.add(pid)
                if pid in holders:
                    raise InvariantViolation(f"pid {pid} is queued for {kind.value} while holding one")
        for e in self.entries:
            if e.total_duration != e.chain.total:
                raise InvariantViolation(f"pid {e.pid}: total {e.total_duration} != chain total {e.chain.total}")
