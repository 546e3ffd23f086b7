# tests/test_resolver.py
from datetime import datetime, time
from uuid import uuid4

import pytest

from clinicslots.modules.appointments.models import Appointment, ApptStatus
from clinicslots.modules.calendar.models import ClinicEvent, LeavePeriod
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.errors import ProviderInactive, ProviderNotFound
from clinicslots.modules.slots.models import BlockKind, SlotStatus
from clinicslots.modules.slots.schemas import Provenance
from tests.conftest import MONDAY, SUNDAY, TUESDAY


def at(day, hh, mm=0):
    return datetime.combine(day, time(hh, mm))


def statuses(availability):
    return [s.status for s in availability.slots]


async def test_grid_day_is_returned_verbatim(session, scheduling, provider):
    await scheduling.booking.book_slot(
        session, provider.id, at(MONDAY, 10), "appt-1", "p-1", None, "t"
    )

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)

    assert result.provenance is Provenance.GRID
    assert result.grounded is True
    assert result.working_window == "09:00-12:00"
    assert statuses(result) == [
        "available", "available", "booked", "available", "available", "available",
    ]
    assert result.slots[2].start == at(MONDAY, 10)
    assert result.slots[2].time_slot == "10:00-10:30"
    assert len(result.bookable) == 5


async def test_day_off_is_empty_not_an_error(session, scheduling, provider):
    result = await scheduling.resolver.resolve(session, provider.id, SUNDAY)

    assert result.provenance is Provenance.NOT_WORKING
    assert result.slots == []


async def test_missing_grid_falls_back_and_is_flagged(session, scheduling, provider):
    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)

    assert result.provenance is Provenance.FALLBACK
    assert result.grounded is False
    assert len(result.slots) == 6
    assert set(statuses(result)) == {"available"}
    # Resolving never writes the grid
    assert await scheduling.grid.count_day(session, provider.id, MONDAY) == 0


async def test_fallback_reconciles_leave_events_and_appointments(session, scheduling, provider):
    session.add(
        Appointment(
            provider_id=provider.id,
            subject_ref="p-1",
            starts_at=at(MONDAY, 9),
            duration_minutes=30,
            status=ApptStatus.SCHEDULED.value,
        )
    )
    session.add(
        ClinicEvent(
            title="Fire drill",
            starts_at=at(MONDAY, 11),
            ends_at=at(MONDAY, 12),
            is_published=True,
        )
    )
    await session.flush()

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)
    assert statuses(result) == [
        "booked", "available", "available", "available", "blocked_event", "blocked_event",
    ]

    session.add(LeavePeriod(provider_id=provider.id, date_from=MONDAY, date_to=MONDAY))
    await session.flush()
    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)
    assert statuses(result) == ["booked"] + ["blocked_leave"] * 5


async def test_fallback_ignores_cancelled_and_unpublished(session, scheduling, provider):
    session.add(
        Appointment(
            provider_id=provider.id,
            subject_ref="p-1",
            starts_at=at(MONDAY, 9),
            duration_minutes=30,
            status=ApptStatus.CANCELLED.value,
        )
    )
    session.add(
        ClinicEvent(title="Draft", starts_at=at(MONDAY, 9), ends_at=at(MONDAY, 12))
    )
    await session.flush()

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)
    assert set(statuses(result)) == {"available"}


async def test_fallback_slot_minutes_override(session, scheduling, provider):
    result = await scheduling.resolver.resolve(session, provider.id, MONDAY, slot_minutes=60)

    assert [s.time_slot for s in result.slots] == ["09:00-10:00", "10:00-11:00", "11:00-12:00"]
    assert result.slot_minutes == 60


async def test_fully_blocked_day(session, scheduling, provider):
    await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.LEAVE, "leave-1", "Vacation", "t"
    )

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)

    assert result.provenance is Provenance.GRID
    assert statuses(result) == ["blocked_leave"] * 6
    assert result.bookable == []


async def test_rows_outside_current_hours_are_hidden(session, scheduling, provider):
    await scheduling.grid.ensure_day(session, provider.id, MONDAY)
    await providers_repo.set_working_hours(
        session,
        provider_id=provider.id,
        working_hours={"mon": {"start": "09:00", "end": "10:00", "slot_minutes": 30}},
    )

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)

    assert [s.time_slot for s in result.slots] == ["09:00-09:30", "09:30-10:00"]


async def test_excluded_appointment_shows_its_own_slot_free(session, scheduling, provider):
    appointment_id = uuid4()
    await scheduling.booking.book_slot(
        session, provider.id, at(MONDAY, 9), appointment_id, "p-1", None, "t"
    )

    result = await scheduling.resolver.resolve(
        session, provider.id, MONDAY, exclude_appointment_id=appointment_id
    )
    assert result.slots[0].status == SlotStatus.AVAILABLE.value

    result = await scheduling.resolver.resolve(session, provider.id, MONDAY)
    assert result.slots[0].status == SlotStatus.BOOKED.value


async def test_unknown_and_inactive_provider(session, scheduling, inactive_provider):
    with pytest.raises(ProviderNotFound):
        await scheduling.resolver.resolve(session, uuid4(), MONDAY)
    with pytest.raises(ProviderInactive):
        await scheduling.resolver.resolve(session, inactive_provider.id, MONDAY)


async def test_is_bookable(session, scheduling, provider):
    await scheduling.booking.book_slot(
        session, provider.id, at(TUESDAY, 9), "appt-1", "p-1", None, "t"
    )

    assert await scheduling.resolver.is_bookable(session, provider.id, at(TUESDAY, 9, 30))
    assert not await scheduling.resolver.is_bookable(session, provider.id, at(TUESDAY, 9, 10))
    assert await scheduling.resolver.is_bookable(
        session, provider.id, at(TUESDAY, 9), exclude_appointment_id="appt-1"
    )
    # Outside the window
    assert not await scheduling.resolver.is_bookable(session, provider.id, at(TUESDAY, 10))


async def test_slot_at_tells_missing_bucket_from_taken_one(session, scheduling, provider):
    await scheduling.booking.book_slot(
        session, provider.id, at(TUESDAY, 9), "appt-1", "p-1", None, "t"
    )

    taken = await scheduling.resolver.slot_at(session, provider.id, at(TUESDAY, 9, 10))
    assert taken.time_slot == "09:00-09:30"
    assert taken.status == SlotStatus.BOOKED.value
    assert await scheduling.resolver.slot_at(session, provider.id, at(TUESDAY, 10)) is None
    assert await scheduling.resolver.slot_at(session, provider.id, at(SUNDAY, 9)) is None
