from dataclasses import dataclass

from core.phase import ResourceKind


# ----------------------------- Constants -----------------------------
DEFAULT_CPU_CORES = 4
DEFAULT_INPUT_DEVICES = 1
DEFAULT_IO_DEVICES = 1
DEFAULT_TICK_DELAY_USEC = 0  # wall-clock pause between ticks (microseconds)


@dataclass
class SimConfig:
    cpu_cores: int = DEFAULT_CPU_CORES
    input_devices: int = DEFAULT_INPUT_DEVICES
    io_devices: int = DEFAULT_IO_DEVICES
    tick_delay_usec: int = DEFAULT_TICK_DELAY_USEC

    def capacity(self, kind: ResourceKind) -> int:
        return {
            ResourceKind.CPU: self.cpu_cores,
            ResourceKind.INPUT: self.input_devices,
            ResourceKind.IO: self.io_devices,
        }[kind]

    def validate(self) -> 'SimConfig':
        for kind in ResourceKind:
            if self.capacity(kind) < 1:
                raise ValueError(f"{kind.value} capacity must be at least 1, got {self.capacity(kind)}")
        if self.tick_delay_usec < 0:
            raise ValueError(f"tick delay cannot be negative, got {self.tick_delay_usec}")
        return self
