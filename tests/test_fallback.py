# tests/test_fallback.py
from datetime import datetime, time

import pytest

from clinicslots.modules.providers.schemas import WorkingWindow
from clinicslots.modules.slots.fallback import BookedInterval, generate_buckets, mark_overlaps
from clinicslots.modules.slots.models import SlotStatus
from tests.conftest import MONDAY


def at(hh: int, mm: int = 0) -> datetime:
    return datetime.combine(MONDAY, time(hh, mm))


def test_contiguous_buckets():
    buckets = generate_buckets(WorkingWindow(time(9), time(11), 30))
    assert [b.label for b in buckets] == ["09:00-09:30", "09:30-10:00", "10:00-10:30", "10:30-11:00"]


def test_trailing_partial_bucket_is_dropped():
    buckets = generate_buckets(WorkingWindow(time(9), time(10, 15), 30))
    assert [b.label for b in buckets] == ["09:00-09:30", "09:30-10:00"]


def test_slot_minutes_overrides_window_length():
    buckets = generate_buckets(WorkingWindow(time(9), time(10), 30), slot_minutes=20)
    assert len(buckets) == 3
    assert buckets[-1].end == time(10)


def test_non_positive_length_rejected():
    with pytest.raises(ValueError):
        generate_buckets(WorkingWindow(time(9), time(10), 30), slot_minutes=-5)


def test_mark_overlaps_precedence():
    buckets = generate_buckets(WorkingWindow(time(9), time(11), 30))
    marked = mark_overlaps(
        MONDAY,
        buckets,
        events=[(at(10), at(10, 45))],
        appointments=[BookedInterval("a-1", at(9, 30), 30)],
    )
    assert [s for _, s in marked] == [
        SlotStatus.AVAILABLE,
        SlotStatus.BOOKED,
        SlotStatus.BLOCKED_EVENT,
        SlotStatus.BLOCKED_EVENT,
    ]


def test_leave_blocks_everything_but_bookings():
    buckets = generate_buckets(WorkingWindow(time(9), time(10), 30))
    marked = mark_overlaps(
        MONDAY, buckets, on_leave=True, appointments=[BookedInterval("a-1", at(9), 30)]
    )
    assert [s for _, s in marked] == [SlotStatus.BOOKED, SlotStatus.BLOCKED_LEAVE]


def test_excluded_appointment_reads_as_available():
    buckets = generate_buckets(WorkingWindow(time(9), time(10), 30))
    marked = mark_overlaps(
        MONDAY,
        buckets,
        appointments=[BookedInterval("a-1", at(9), 30)],
        exclude_appointment_id="a-1",
    )
    assert all(s is SlotStatus.AVAILABLE for _, s in marked)


def test_touching_intervals_do_not_overlap():
    buckets = generate_buckets(WorkingWindow(time(9), time(10), 30))
    marked = mark_overlaps(MONDAY, buckets, events=[(at(8), at(9))])
    assert all(s is SlotStatus.AVAILABLE for _, s in marked)
