# tests/test_grid.py
import asyncio
from datetime import time

import pytest
from sqlalchemy.exc import IntegrityError

from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.fallback import Bucket
from clinicslots.modules.slots.models import Slot, SlotStatus
from tests.conftest import MONDAY, SUNDAY, TUESDAY


async def test_ensure_day_materializes_declared_buckets(session, scheduling, provider):
    created = await scheduling.grid.ensure_day(session, provider.id, MONDAY, "tester")
    rows = await scheduling.grid.rows_for_day(session, provider.id, MONDAY)

    assert created == 6
    assert [r.time_slot for r in rows] == [
        "09:00-09:30", "09:30-10:00", "10:00-10:30",
        "10:30-11:00", "11:00-11:30", "11:30-12:00",
    ]
    assert all(r.status == SlotStatus.AVAILABLE.value for r in rows)
    assert all(r.last_modified_by == "tester" for r in rows)


async def test_ensure_day_is_idempotent(session, scheduling, provider):
    assert await scheduling.grid.ensure_day(session, provider.id, MONDAY) == 6
    assert await scheduling.grid.ensure_day(session, provider.id, MONDAY) == 0
    assert await scheduling.grid.count_day(session, provider.id, MONDAY) == 6


async def test_duplicate_insert_is_not_an_error(session, scheduling, provider):
    bucket = Bucket(time(9), time(9, 30))
    assert await scheduling.grid.insert_buckets(session, provider.id, MONDAY, [bucket], 30) == 1
    assert await scheduling.grid.insert_buckets(session, provider.id, MONDAY, [bucket], 30) == 0
    assert await scheduling.grid.count_day(session, provider.id, MONDAY) == 1


async def test_concurrent_materialization_converges(session_factory, scheduling, provider):
    async def materialize():
        async with session_factory() as s:
            async with s.begin():
                return await scheduling.grid.ensure_day(s, provider.id, MONDAY)

    created = await asyncio.gather(*(materialize() for _ in range(5)))

    assert sum(created) == 6
    async with session_factory() as s:
        assert await scheduling.grid.count_day(s, provider.id, MONDAY) == 6


async def test_bucket_key_is_unique(session, scheduling, provider):
    await scheduling.grid.ensure_day(session, provider.id, MONDAY)
    session.add(
        Slot(
            provider_id=provider.id,
            slot_date=MONDAY,
            start_time=time(9),
            end_time=time(9, 30),
            duration_minutes=30,
        )
    )
    with pytest.raises(IntegrityError):
        await session.flush()


async def test_no_grid_on_day_off(session, scheduling, provider):
    assert await scheduling.grid.ensure_day(session, provider.id, SUNDAY) == 0
    assert await scheduling.grid.count_day(session, provider.id, SUNDAY) == 0


async def test_find_containing_uses_half_open_buckets(session, scheduling, provider):
    await scheduling.grid.ensure_day(session, provider.id, MONDAY)

    inside = await scheduling.grid.find_containing(session, provider.id, MONDAY, time(9, 29))
    boundary = await scheduling.grid.find_containing(session, provider.id, MONDAY, time(9, 30))
    outside = await scheduling.grid.find_containing(session, provider.id, MONDAY, time(12))

    assert inside.time_slot == "09:00-09:30"
    assert boundary.time_slot == "09:30-10:00"
    assert outside is None


async def test_regenerate_day_keeps_booked_rows(session, scheduling, provider):
    await scheduling.grid.ensure_day(session, provider.id, TUESDAY)
    row = await scheduling.grid.find_containing(session, provider.id, TUESDAY, time(9, 30))
    assert await scheduling.grid.claim(
        session, row.id, appointment_id="appt-1", subject_id="p-1", reason=None, actor="t"
    )

    await providers_repo.set_working_hours(
        session,
        provider_id=provider.id,
        working_hours={"tue": {"start": "09:00", "end": "11:00", "slot_minutes": 20}},
    )
    deleted, created = await scheduling.grid.regenerate_day(session, provider.id, TUESDAY)
    rows = await scheduling.grid.rows_for_day(session, provider.id, TUESDAY)

    # 09:00-09:30 was free and goes; 09:30-10:00 stays booked
    assert deleted == 1
    assert [r.time_slot for r in rows] == [
        "09:00-09:20", "09:30-10:00", "10:00-10:20", "10:20-10:40", "10:40-11:00",
    ]
    assert created == 4
    assert rows[1].status == SlotStatus.BOOKED.value
    assert rows[1].booking_ref == "appt-1"


async def test_repr_never_loads_expired_attributes(session, scheduling, provider):
    await scheduling.grid.ensure_day(session, provider.id, MONDAY)
    row = await scheduling.grid.find_containing(session, provider.id, MONDAY, time(9))

    assert "status='available'" in repr(row)
    assert "booking_ref=None" in repr(row)

    session.expire(row)
    assert repr(row).startswith("<Slot provider_id=... slot_date=...")
