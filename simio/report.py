# Text rendering of system snapshots
from typing import List, Optional

from core.phase import ResourceKind
from core.snapshot import SystemSnapshot


# report section order: CPU, I/O, Input
REPORT_ORDER = (ResourceKind.CPU, ResourceKind.IO, ResourceKind.INPUT)
QUEUE_TITLES = {
    ResourceKind.CPU: 'CPU Ready Queue',
    ResourceKind.IO: 'I/O Queue',
    ResourceKind.INPUT: 'Input Queue',
}
BANNER = '*' * 29


def _slot(slot: Optional[int]) -> str:
    return 'none' if slot is None else str(slot)


def format_resources(snapshot: SystemSnapshot) -> List[str]:
    lines = ['-- STATE OF RESOURCES --', '']
    for kind in REPORT_ORDER:
        lines.append(f"{kind.value:<8}Status")
        for i, in_use in enumerate(snapshot.slots[kind]):
            lines.append(f"{i:<8}{'BUSY' if in_use else 'IDLE'}")
        lines.append('')
    return lines


def format_queue(pids: List[int]) -> str:
    if not pids:
        return '<Empty>'
    return '  <<  '.join(f"({i}) PID {pid}" for i, pid in enumerate(pids, start=1))


def format_queues(snapshot: SystemSnapshot) -> List[str]:
    lines = ['-- RESOURCE QUEUES --', '']
    for kind in REPORT_ORDER:
        lines += [QUEUE_TITLES[kind], format_queue(snapshot.queues[kind]), '']
    return lines


def format_processes(snapshot: SystemSnapshot) -> List[str]:
    header = (f"{'Process ID':<12}{'Start Time':<12}{'Processor Time':<16}{'I/O Time':<10}{'Input Time':<12}"
              f"{'CPU Core':<10}{'I/O':<6}{'Input':<7}Status")
    lines = ['-- PROCESSES IN MEMORY --', '', header]
    for r in snapshot.processes:
        lines.append(
            f"{r.pid:<12}{r.start_time:<12}"
            f"{r.elapsed[ResourceKind.CPU]:<16}{r.elapsed[ResourceKind.IO]:<10}{r.elapsed[ResourceKind.INPUT]:<12}"
            f"{_slot(r.slots[ResourceKind.CPU]):<10}{_slot(r.slots[ResourceKind.IO]):<6}"
            f"{_slot(r.slots[ResourceKind.INPUT]):<7}{r.state.value}"
        )
    lines.append('')
    return lines


def format_report(snapshot: SystemSnapshot) -> str:
    lines = [BANNER, f"Time Elapsed: {snapshot.time} ms", BANNER, '']
    lines += format_resources(snapshot)
    lines += format_queues(snapshot)
    lines += format_processes(snapshot)
    return '\n'.join(f"\t{line}" if line else line for line in lines)
