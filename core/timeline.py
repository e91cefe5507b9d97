from dataclasses import dataclass, field

from core.phase import PhaseChain


@dataclass
class TimelineEntry:
    pid: int
    chain: PhaseChain = field(default_factory=PhaseChain)
    total_duration: int = 0      # grows by each spliced wait
    next_update_time: int = 0    # tick at which the current phase ends

    @property
    def start_time(self) -> int:
        return self.chain.start.duration

    def is_active(self, time: int) -> bool:
        return self.start_time <= time <= self.total_duration

    def __repr__(self):
        return (f"TimelineEntry(pid={self.pid}, total={self.total_duration}, "
                f"next={self.next_update_time}, {self.chain!r})")
