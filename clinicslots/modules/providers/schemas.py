# clinicslots/modules/providers/schemas.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import time


def minutes_of(t: time) -> int:
    return t.hour * 60 + t.minute


def time_of(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


@dataclass(frozen=True)
class WorkingWindow:
    """
    One provider's working window for a single weekday.

    Attributes:
        start: first bookable minute
        end: end of the working day (exclusive)
        duration_minutes: slot length used when the grid is materialized
    """

    start: time
    end: time
    duration_minutes: int

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {self.duration_minutes}")
        if minutes_of(self.start) >= minutes_of(self.end):
            raise ValueError(f"window start {self.start} must be before end {self.end}")

    @property
    def start_minute(self) -> int:
        return minutes_of(self.start)

    @property
    def end_minute(self) -> int:
        return minutes_of(self.end)

    def covers(self, start: time, end: time) -> bool:
        """True when the bucket [start, end) lies completely inside the window."""
        return self.start_minute <= minutes_of(start) and minutes_of(end) <= self.end_minute

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"
