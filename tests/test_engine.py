import io
import os

import pytest

from core.config import SimConfig
from core.errors import NoWorkloadError
from core.phase import PhaseKind, ResourceKind
from core.process import ProcessState
from core.system import TimelineEngine
from simio.parser import load_workload, parse_workload
from simio.report import format_report


EXAMPLES = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'examples')
ONE_CORE = SimConfig(cpu_cores=1)
ROOMY = SimConfig(cpu_cores=16, input_devices=16, io_devices=16)


def engine_for(text, config=None):
    return TimelineEngine(parse_workload(io.StringIO(text)), config)


def waits(entry):
    return [p for p in entry.chain if p.kind.is_wait]


def test_empty_workload_is_rejected():
    with pytest.raises(NoWorkloadError):
        TimelineEngine([])


def test_two_processes_share_one_core():
    engine = engine_for("NEW 1 START 5 CPU 10 NEW 2 START 5 CPU 10", ONE_CORE)

    assert engine.run(check_invariants=True) == 25
    assert [r.time for r in engine.reports] == [15, 25]

    first, second = engine.reports
    a, b = first.process(1), first.process(2)
    assert a.state is ProcessState.TERMINATED
    assert a.elapsed[ResourceKind.CPU] == 10
    assert b.state is ProcessState.RUNNING
    assert b.slots[ResourceKind.CPU] == 0
    assert b.elapsed[ResourceKind.CPU] == 0
    assert second.process(2).elapsed[ResourceKind.CPU] == 10
    assert [p.duration for p in waits(engine.entry(2))] == [10]
    assert waits(engine.entry(1)) == []


def test_single_process_is_granted_immediately():
    engine = engine_for("NEW 1 START 0 CPU 1")

    assert engine.run(check_invariants=True) == 1
    assert [r.time for r in engine.reports] == [1]
    assert engine.reports[0].process(1).elapsed[ResourceKind.CPU] == 1
    assert waits(engine.entry(1)) == []


def test_waiting_process_shows_ready_state():
    engine = engine_for("NEW 1 START 5 CPU 10 NEW 2 START 5 CPU 10", ONE_CORE)
    for t in range(6):
        engine.step(t)

    record = engine.directory.get(2)
    assert record.state is ProcessState.READY
    assert not record.holds(ResourceKind.CPU)
    assert engine.queues.waiting(ResourceKind.CPU) == [2]
    assert engine.entry(2).total_duration == 25
    assert engine.entry(2).next_update_time == 15


def test_wait_estimate_accounts_for_queued_waiters():
    engine = TimelineEngine(load_workload(os.path.join(EXAMPLES, 'fifo_single_core.txt')), ONE_CORE)
    engine.step(0)

    assert [p.duration for p in waits(engine.entry(1))] == []
    assert [p.duration for p in waits(engine.entry(2))] == [4]
    assert [p.duration for p in waits(engine.entry(3))] == [7]
    assert [p.duration for p in waits(engine.entry(4))] == [9]
    assert engine.queues.waiting(ResourceKind.CPU) == [2, 3, 4]
    # a newcomer would be served once pid 4 is done
    assert engine.estimate_wait(ResourceKind.CPU, 0) == 10


def test_queue_head_is_served_first():
    engine = TimelineEngine(load_workload(os.path.join(EXAMPLES, 'fifo_single_core.txt')), ONE_CORE)

    assert engine.run(check_invariants=True) == 10
    assert [r.time for r in engine.reports] == [4, 7, 9, 10]
    assert engine.reports[0].queues[ResourceKind.CPU] == [3, 4]
    assert engine.reports[0].process(2).state is ProcessState.RUNNING
    assert engine.reports[1].queues[ResourceKind.CPU] == [4]


def test_same_tick_release_is_retried_instead_of_queued():
    # pid 1 asks for the core before pid 2 gives it back on the same tick
    engine = engine_for("NEW 1 START 2 CPU 3 NEW 2 START 0 CPU 2 NEW 3 START 2 CPU 1", ONE_CORE)

    engine.run(check_invariants=True)

    assert waits(engine.entry(1)) == []
    assert engine.entry(1).total_duration == 5
    # pid 3 arrived on the same tick but after pid 1, so it queues behind it
    assert [p.duration for p in waits(engine.entry(3))] == [3]
    assert engine.entry(3).total_duration == 6
    assert [r.time for r in engine.reports] == [2, 5, 6]


def test_waits_ending_together_are_served_in_queue_order():
    # pid 2 queues for I/O at t=1, pid 1 at t=2; both waits end at t=5
    workload = "NEW 1 START 2 IO 3 NEW 2 START 1 IO 2 NEW 3 START 0 IO 5 NEW 4 START 0 IO 5"
    engine = engine_for(workload, SimConfig(io_devices=2))
    for t in range(3):
        engine.step(t)
    assert engine.queues.waiting(ResourceKind.IO) == [2, 1]
    assert engine.entry(1).next_update_time == engine.entry(2).next_update_time == 5

    engine = engine_for(workload, SimConfig(io_devices=2))
    assert engine.run(check_invariants=True) == 8
    assert [r.time for r in engine.reports] == [5, 7, 8]
    at_five = engine.reports[0]
    assert at_five.queues[ResourceKind.IO] == []
    assert at_five.process(2).slots[ResourceKind.IO] == 0
    assert at_five.process(1).slots[ResourceKind.IO] == 1


def test_multi_slot_pools_keep_queue_order():
    engine = engine_for(
        "NEW 1 START 2 CPU 2 IO 1 INPUT 4 NEW 2 START 0 IO 1 IO 4 CPU 4 NEW 3 START 3 CPU 2 CPU 1 "
        "NEW 4 START 1 IO 4 NEW 5 START 0 CPU 2 IO 4 CPU 3 NEW 6 START 1 INPUT 3 CPU 2 IO 1 INPUT 1",
        SimConfig(cpu_cores=3, input_devices=2, io_devices=2),
    )

    engine.run(check_invariants=True)

    assert len(engine.directory) == 0
    assert all(not engine.queues.has_waiters(kind) for kind in ResourceKind)


def test_io_contention_between_processes():
    engine = TimelineEngine(load_workload(os.path.join(EXAMPLES, 'workload.txt')))

    assert engine.run(check_invariants=True) == 9
    assert [r.time for r in engine.reports] == [7, 9]

    at_seven = engine.reports[0]
    p1, p2 = at_seven.process(1), at_seven.process(2)
    assert p1.state is ProcessState.WAITING
    assert p1.slots[ResourceKind.IO] == 0
    assert p1.elapsed[ResourceKind.IO] == 2
    assert p2.state is ProcessState.TERMINATED
    assert p2.elapsed[ResourceKind.IO] == 4
    assert p2.elapsed[ResourceKind.CPU] == 2

    final = engine.reports[1].process(1)
    assert final.elapsed[ResourceKind.CPU] == 3
    assert final.elapsed[ResourceKind.IO] == 3
    assert [(p.kind, p.duration) for p in waits(engine.entry(1))] == [(PhaseKind.IO_WAIT, 3)]


def test_zero_length_phases_are_skipped():
    engine = TimelineEngine(load_workload(os.path.join(EXAMPLES, 'zero_length.txt')))

    assert engine.run(check_invariants=True) == 5
    assert [r.time for r in engine.reports] == [3, 5]
    first = engine.reports[0].process(1)
    assert first.elapsed[ResourceKind.CPU] == 3
    assert first.elapsed[ResourceKind.INPUT] == 0
    second = engine.reports[1].process(2)
    assert second.elapsed[ResourceKind.CPU] == 3
    assert second.elapsed[ResourceKind.IO] == 0
    assert second.start_time == 2


def test_zero_length_input_phase_before_a_wait():
    engine = engine_for("NEW 1 START 0 INPUT 3 NEW 2 START 1 INPUT 0 INPUT 2")

    assert engine.run(check_invariants=True) == 5
    chain = [(p.kind, p.duration) for p in engine.entry(2).chain]
    assert chain == [(PhaseKind.START, 1), (PhaseKind.INPUT_BUSY, 0),
                     (PhaseKind.INPUT_WAIT, 2), (PhaseKind.INPUT_BUSY, 2)]
    assert engine.reports[-1].process(2).elapsed[ResourceKind.INPUT] == 2


def test_process_without_busy_phases_still_reports():
    engine = engine_for("NEW 1 START 3 NEW 2 START 0 CPU 2")

    assert engine.run(check_invariants=True) == 3
    assert [r.time for r in engine.reports] == [2, 3]
    assert engine.reports[1].processes == []


def test_report_rendering():
    engine = engine_for("NEW 1 START 5 CPU 10 NEW 2 START 5 CPU 10", ONE_CORE)
    engine.run()

    text = format_report(engine.reports[0])

    assert '\tTime Elapsed: 15 ms' in text
    assert '\tCPU Ready Queue\n\t<Empty>' in text
    assert 'Processor Time' in text
    assert 'TERMINATED' in text and 'RUNNING' in text
    assert 'none' in text


def test_report_lists_queue_positions():
    engine = TimelineEngine(load_workload(os.path.join(EXAMPLES, 'fifo_single_core.txt')), ONE_CORE)
    engine.run()

    assert '(1) PID 3  <<  (2) PID 4' in format_report(engine.reports[0])


def test_no_contention_baseline():
    entries = load_workload(os.path.join(EXAMPLES, 'contention.txt'))
    declared = {e.pid: e.chain.total for e in entries}
    engine = TimelineEngine(entries, ROOMY)

    engine.run(check_invariants=True)

    for entry in engine.entries:
        assert waits(entry) == []
        assert entry.total_duration == declared[entry.pid]
    assert engine.total_length == max(declared.values())


@pytest.mark.parametrize('config', [
    SimConfig(),
    SimConfig(cpu_cores=1),
    SimConfig(cpu_cores=2, input_devices=2, io_devices=1),
])
def test_properties_hold_under_contention(config):
    entries = load_workload(os.path.join(EXAMPLES, 'contention.txt'))
    declared = {e.pid: e.chain.total for e in entries}
    engine = TimelineEngine(entries, config)

    t = 0
    while True:
        totals = {e.pid: e.total_duration for e in engine.entries}
        queued = {kind: engine.queues.waiting(kind) for kind in ResourceKind}

        engine.step(t)
        engine.check_invariants()

        for entry in engine.entries:
            # totals only grow, and only by spliced waits
            assert entry.total_duration >= totals[entry.pid]
            assert entry.total_duration == declared[entry.pid] + sum(p.duration for p in waits(entry))
        for kind in ResourceKind:
            # whoever left a queue this tick came off the front
            before = queued[kind]
            kept = [pid for pid in engine.queues.waiting(kind) if pid in before]
            assert kept == before[len(before) - len(kept):]

        if engine.total_length <= t:
            break
        t += 1

    assert len(engine.directory) == 0
    assert all(not engine.queues.has_waiters(kind) for kind in ResourceKind)
    assert all(engine.pool.occupied(kind) == 0 for kind in ResourceKind)
    assert t == max(e.total_duration for e in engine.entries)
