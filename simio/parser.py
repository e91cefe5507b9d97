# Config + workload parser
import re
from typing import List, TextIO

from core.config import SimConfig
from core.phase import PhaseKind
from core.timeline import TimelineEntry


NEW = 'NEW'
START = 'START'
BUSY_KEYWORDS = {
    'CPU': PhaseKind.CPU_BUSY,
    'INPUT': PhaseKind.INPUT_BUSY,
    'IO': PhaseKind.IO_BUSY,
    'I/O': PhaseKind.IO_BUSY,
}


def parse_sysconfig(path: str) -> SimConfig:
    config = SimConfig()
    with open(path, 'r') as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            parts = re.split(r'\s+', line)
            key = parts[0].lower()
            if key == 'cores':
                config.cpu_cores = int(parts[1])
            elif key == 'input':
                config.input_devices = int(parts[1])
            elif key == 'io':
                config.io_devices = int(parts[1])
            elif key == 'tickdelay':
                config.tick_delay_usec = int(parts[1].rstrip('usec'))
    return config


def parse_workload(stream: TextIO) -> List[TimelineEntry]:
    """Build one timeline entry per `NEW` block of `keyword value` pairs.

    Input is assumed to be well formed: unknown keywords are skipped and a
    trailing keyword without a value is dropped.
    """
    entries: List[TimelineEntry] = []
    tokens = stream.read().split()
    for keyword, value in zip(tokens[0::2], tokens[1::2]):
        amount = int(value)
        if keyword == NEW:
            if entries:
                entries[-1].total_duration = entries[-1].chain.total
            entries.append(TimelineEntry(pid=amount))
        elif keyword == START:
            entries[-1].chain.append(PhaseKind.START, amount)
            entries[-1].next_update_time = amount
        elif keyword in BUSY_KEYWORDS:
            entries[-1].chain.append(BUSY_KEYWORDS[keyword], amount)
    if entries:
        entries[-1].total_duration = entries[-1].chain.total
    return entries


def load_workload(path: str) -> List[TimelineEntry]:
    with open(path, 'r') as fh:
        return parse_workload(fh)
