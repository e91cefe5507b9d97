"""
timelinesim.py


Tick-driven simulation of processes contending for processor cores, an
input device and an I/O device.


Each process is described by a block of `keyword value` pairs:

    NEW 1
    START 5
    CPU 10
    IO 3
    CPU 2

The simulator walks every process's phases one tick at a time, grants
resources while slots are free, and makes processes wait (splicing a wait
phase into their timeline) when they are not. Whenever a process
terminates, a full system report is printed: resource occupancy, the
three wait queues and the process table.


Usage:
python timelinesim.py [workload.txt] [--sysconfig sysconfig.txt]

With no workload path (or '-') the workload is read from stdin.
"""


import argparse
import sys

from core.config import SimConfig
from core.errors import NoWorkloadError
from core.system import TimelineEngine
from simio.parser import load_workload, parse_sysconfig, parse_workload
from simio.report import format_report


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='timelinesim (tick-driven resource contention simulator)')
    parser.add_argument('workload', nargs='?', default='-', help="Path to workload file ('-' for stdin)")
    parser.add_argument('-c', '--sysconfig', help='Path to sysconfig file')
    parser.add_argument('--cores', type=int, help='Number of processor cores')
    parser.add_argument('--input-devices', type=int, help='Number of input devices')
    parser.add_argument('--io-devices', type=int, help='Number of I/O devices')
    parser.add_argument('--tick-delay', type=int, help='Wall-clock pause between ticks (microseconds)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Trace grants, waits and releases')
    return parser


def load_config(args: argparse.Namespace) -> SimConfig:
    config = parse_sysconfig(args.sysconfig) if args.sysconfig else SimConfig()
    if args.cores is not None:
        config.cpu_cores = args.cores
    if args.input_devices is not None:
        config.input_devices = args.input_devices
    if args.io_devices is not None:
        config.io_devices = args.io_devices
    if args.tick_delay is not None:
        config.tick_delay_usec = args.tick_delay
    return config.validate()


def main(argv=None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.workload == '-':
        entries = parse_workload(sys.stdin)
    else:
        entries = load_workload(args.workload)

    try:
        engine = TimelineEngine(entries, config, verbose=args.verbose,
                                on_report=lambda snap: print(format_report(snap)))
    except NoWorkloadError:
        print("No input provided")
        return 1

    print(f"found {len(entries)} processes")
    print(f"cores {config.cpu_cores}, input devices {config.input_devices}, io devices {config.io_devices}")
    print()
    total_time = engine.run()
    print(f"measurements {total_time} {engine.cpu_utilisation()}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
