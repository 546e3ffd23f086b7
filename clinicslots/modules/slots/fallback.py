# clinicslots/modules/slots/fallback.py
"""
Legacy on-the-fly slot generation.

Used only when the grid has no rows for a day. The output is advisory: it is
derived from declared hours plus a best-effort scan of leave, events and
appointments, none of which is atomic with a later booking.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, time
from typing import Iterable, Sequence

from clinicslots.modules.providers.schemas import WorkingWindow, time_of
from clinicslots.modules.slots.models import SlotStatus


@dataclass(frozen=True)
class Bucket:
    start: time
    end: time

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    def instants(self, day: date) -> tuple[datetime, datetime]:
        return datetime.combine(day, self.start), datetime.combine(day, self.end)

    def overlaps(self, day: date, start: datetime, end: datetime) -> bool:
        """Half-open overlap of this bucket on `day` with [start, end)."""
        b_start, b_end = self.instants(day)
        return b_start < end and start < b_end


@dataclass(frozen=True)
class BookedInterval:
    appointment_id: str
    starts_at: datetime
    duration_minutes: int

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)


def generate_buckets(window: WorkingWindow, slot_minutes: int | None = None) -> list[Bucket]:
    """
    Contiguous buckets from window start; a trailing bucket that would run
    past the window end is dropped.
    """
    step = slot_minutes or window.duration_minutes
    if step <= 0:
        raise ValueError(f"slot_minutes must be positive, got {step}")

    buckets: list[Bucket] = []
    t = window.start_minute
    while t + step <= window.end_minute:
        buckets.append(Bucket(time_of(t), time_of(t + step)))
        t += step
    return buckets


def mark_overlaps(
    day: date,
    buckets: Sequence[Bucket],
    *,
    on_leave: bool = False,
    events: Iterable[tuple[datetime, datetime]] = (),
    appointments: Iterable[BookedInterval] = (),
    exclude_appointment_id: str | None = None,
) -> list[tuple[Bucket, SlotStatus]]:
    """
    Assign an advisory status to every bucket.

    Precedence mirrors the grid: an existing booking shows as booked even on
    a blocked day, then leave, then clinic events.
    """
    events = list(events)
    booked = [
        a for a in appointments
        if exclude_appointment_id is None or a.appointment_id != str(exclude_appointment_id)
    ]

    marked: list[tuple[Bucket, SlotStatus]] = []
    for bucket in buckets:
        if any(bucket.overlaps(day, a.starts_at, a.ends_at) for a in booked):
            status = SlotStatus.BOOKED
        elif on_leave:
            status = SlotStatus.BLOCKED_LEAVE
        elif any(bucket.overlaps(day, s, e) for s, e in events):
            status = SlotStatus.BLOCKED_EVENT
        else:
            status = SlotStatus.AVAILABLE
        marked.append((bucket, status))
    return marked
