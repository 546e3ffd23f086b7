# tests/test_blocking.py
from datetime import datetime, time, timedelta

from clinicslots.modules.slots.models import BlockKind, SlotStatus
from tests.conftest import MONDAY, SUNDAY, TUESDAY


def at(day, hh, mm=0):
    return datetime.combine(day, time(hh, mm))


async def day_statuses(scheduling, session, provider_id, day):
    return [r.status for r in await scheduling.grid.rows_for_day(session, provider_id, day)]


async def test_block_then_unblock_restores_available(session, scheduling, provider):
    result = await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, TUESDAY, BlockKind.LEAVE, "leave-1", "Vacation", "hr"
    )

    assert result.blocked == 8  # 6 on Monday, 2 on Tuesday
    assert result.materialized == 8
    assert result.skipped == 0
    rows = await scheduling.grid.rows_for_day(session, provider.id, MONDAY)
    assert {r.status for r in rows} == {SlotStatus.BLOCKED_LEAVE.value}
    assert {(r.blocking_ref, r.blocking_reason) for r in rows} == {("leave-1", "Vacation")}

    undone = await scheduling.blocking.unblock_slots(session, provider.id, MONDAY, TUESDAY, "hr")

    assert undone.unblocked == 8
    rows = await scheduling.grid.rows_for_day(session, provider.id, MONDAY)
    assert {r.status for r in rows} == {SlotStatus.AVAILABLE.value}
    assert {r.blocking_ref for r in rows} == {None}


async def test_booked_rows_survive_block_and_unblock(session, scheduling, provider):
    await scheduling.booking.book_slot(session, provider.id, at(MONDAY, 10), "appt-1", "p-1", None, "t")

    result = await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.LEAVE, "leave-1", None, "hr"
    )
    assert (result.blocked, result.skipped) == (5, 1)
    assert await day_statuses(scheduling, session, provider.id, MONDAY) == [
        "blocked_leave", "blocked_leave", "booked", "blocked_leave", "blocked_leave", "blocked_leave",
    ]

    await scheduling.blocking.unblock_slots(session, provider.id, MONDAY, MONDAY, "hr")
    rows = await scheduling.grid.rows_for_day(session, provider.id, MONDAY)
    assert rows[2].status == SlotStatus.BOOKED.value
    assert rows[2].booking_ref == "appt-1"


async def test_reblocking_is_idempotent(session, scheduling, provider):
    await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.LEAVE, "leave-1", None, "hr"
    )
    again = await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.LEAVE, "leave-1", None, "hr"
    )

    assert (again.blocked, again.already_blocked, again.materialized) == (0, 6, 0)


async def test_unblock_by_kind_and_ref_leaves_other_blocks(session, scheduling, provider):
    await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.EVENT, "event-1", "Drill", "admin",
        span=(at(MONDAY, 9), at(MONDAY, 10)),
    )
    await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.LEAVE, "leave-1", None, "hr"
    )

    undone = await scheduling.blocking.unblock_slots(
        session, provider.id, MONDAY, MONDAY, "hr", kind=BlockKind.LEAVE, blocking_ref="leave-1"
    )

    assert undone.unblocked == 4
    assert await day_statuses(scheduling, session, provider.id, MONDAY) == [
        "blocked_event", "blocked_event", "available", "available", "available", "available",
    ]


async def test_partial_day_span(session, scheduling, provider):
    # Clinic event 10:15-11:00 touches the 10:00 and 10:30 buckets
    result = await scheduling.blocking.block_slots(
        session, provider.id, MONDAY, MONDAY, BlockKind.EVENT, "event-1", "Drill", "admin",
        span=(at(MONDAY, 10, 15), at(MONDAY, 11)),
    )

    assert result.blocked == 2
    assert await day_statuses(scheduling, session, provider.id, MONDAY) == [
        "available", "available", "blocked_event", "blocked_event", "available", "available",
    ]


async def test_span_crossing_midnight(session, scheduling, provider):
    sunday_night = at(MONDAY - timedelta(days=1), 22)
    result = await scheduling.blocking.block_slots(
        session, provider.id, sunday_night.date(), MONDAY,
        BlockKind.EVENT, "event-1", None, "admin",
        span=(sunday_night, at(MONDAY, 9, 30)),
    )

    # Sunday is off; on Monday only the first bucket falls inside the span
    assert result.blocked == 1
    assert (await day_statuses(scheduling, session, provider.id, MONDAY))[:2] == [
        "blocked_event", "available",
    ]


async def test_blocking_a_day_off_is_a_no_op(session, scheduling, provider):
    result = await scheduling.blocking.block_slots(
        session, provider.id, SUNDAY, SUNDAY, BlockKind.LEAVE, "leave-1", None, "hr"
    )
    assert (result.blocked, result.materialized) == (0, 0)


async def test_fan_out_collects_failures(session, scheduling, provider, other_provider, inactive_provider):
    report = await scheduling.blocking.block_for_all(
        session,
        MONDAY,
        MONDAY,
        BlockKind.EVENT,
        "event-1",
        "Staff meeting",
        "admin",
        provider_ids=[provider.id, inactive_provider.id, other_provider.id],
    )

    assert not report.ok
    assert [r.provider_id for r in report.results] == [provider.id, other_provider.id]
    assert [f.provider_id for f in report.failures] == [inactive_provider.id]
    assert report.failures[0].error == "provider_inactive"
    # The providers after the failure were still blocked
    assert set(await day_statuses(scheduling, session, other_provider.id, MONDAY)) == {"blocked_event"}


async def test_fan_out_defaults_to_active_providers(session, scheduling, provider, other_provider, inactive_provider):
    report = await scheduling.blocking.block_for_all(
        session, MONDAY, MONDAY, BlockKind.EVENT, "event-1", None, "admin"
    )

    assert report.ok
    assert {r.provider_id for r in report.results} == {provider.id, other_provider.id}

    undone = await scheduling.blocking.unblock_for_all(
        session, MONDAY, MONDAY, "admin", kind=BlockKind.EVENT, blocking_ref="event-1"
    )
    assert [r.unblocked for r in undone.results] == [6, 6]


async def test_materialize_range_skips_days_off(session, scheduling, provider):
    days = await scheduling.blocking.materialize_range(session, provider.id, MONDAY, SUNDAY)

    # Mon-Fri work (Thu/Fri on the default window), Sat/Sun off
    assert days == [MONDAY + timedelta(days=i) for i in range(5)]
    assert await scheduling.grid.count_day(session, provider.id, MONDAY + timedelta(days=3)) == 16
