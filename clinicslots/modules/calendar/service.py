# clinicslots/modules/calendar/service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.calendar import repository as calendar_repo
from clinicslots.modules.calendar.models import ClinicEvent, LeavePeriod
from clinicslots.modules.calendar.schemas import (
    EventCreateRequest,
    EventOutcome,
    EventPublic,
    EventUpdateRequest,
    LeaveCreateRequest,
    LeaveOutcome,
    LeavePublic,
    LeaveUpdateRequest,
)
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import ProviderNotFound
from clinicslots.modules.slots.instants import to_clinic_local
from clinicslots.modules.slots.models import BlockKind
from clinicslots.modules.slots.schemas import FanOutReport

logger = logging.getLogger(__name__)


# Custom errors for router mapping to HTTP
class CalendarError(Exception):
    pass


class LeaveNotFound(CalendarError):
    """
    No leave with that id
    """


class LeaveOverlap(CalendarError):
    """
    The provider already has leave intersecting the requested range
    """


class InvalidDateRange(CalendarError):
    """
    End before start, or an empty event
    """


class EventNotFound(CalendarError):
    """
    No live (non-deleted) clinic event with that id
    """


def event_days(starts_at: datetime, ends_at: datetime) -> tuple[date, date]:
    """
    First and last calendar day touched by [starts_at, ends_at).
    An event ending exactly at midnight does not touch the next day.
    """
    last = ends_at - timedelta(microseconds=1)
    return starts_at.date(), max(starts_at.date(), last.date())


def _normalize_event_span(
    starts_at: datetime, ends_at: datetime, all_day: bool
) -> tuple[datetime, datetime]:
    starts_at, ends_at = to_clinic_local(starts_at), to_clinic_local(ends_at)
    if all_day:
        starts_at = datetime.combine(starts_at.date(), time.min)
        ends_at = datetime.combine(ends_at.date() + timedelta(days=1), time.min)
    if ends_at <= starts_at:
        raise InvalidDateRange("event_ends_before_it_starts")
    return starts_at, ends_at


async def _reapply_blocks(
    session: AsyncSession,
    engine: SchedulingEngine,
    date_from: date,
    date_to: date,
    actor: Optional[str],
    provider_id: UUID | None = None,
) -> List[FanOutReport]:
    """
    Re-block whatever leave and live events still cover the range.

    Run after any unblock: a bucket covered by two blocks carries only the
    first one's status, so releasing that block must hand it to the other.
    """
    reports: List[FanOutReport] = []
    provider_ids = [provider_id] if provider_id is not None else None

    leaves = await calendar_repo.list_leaves_overlapping(
        session, date_from=date_from, date_to=date_to, provider_id=provider_id
    )
    for leave in leaves:
        reports.append(
            await engine.blocking.block_for_all(
                session,
                max(leave.date_from, date_from),
                min(leave.date_to, date_to),
                BlockKind.LEAVE,
                leave.id,
                leave.reason,
                actor,
                provider_ids=[leave.provider_id],
            )
        )

    events = await calendar_repo.list_live_events_overlapping(
        session,
        start=datetime.combine(date_from, time.min),
        end=datetime.combine(date_to + timedelta(days=1), time.min),
    )
    for event in events:
        first, last = event_days(event.starts_at, event.ends_at)
        reports.append(
            await engine.blocking.block_for_all(
                session,
                max(first, date_from),
                min(last, date_to),
                BlockKind.EVENT,
                event.id,
                event.title,
                actor,
                span=(event.starts_at, event.ends_at),
                provider_ids=provider_ids,
            )
        )
    return reports


# LEAVE
async def _get_leave(session: AsyncSession, leave_id: UUID) -> LeavePeriod:
    leave = await calendar_repo.get_leave(session, leave_id)
    if not leave:
        raise LeaveNotFound("leave_not_found")
    return leave


async def create_leave(
    session: AsyncSession,
    engine: SchedulingEngine,
    payload: LeaveCreateRequest,
    actor: Optional[str],
) -> LeaveOutcome:
    """
    Record leave and block the provider's grid over it.
    Booked buckets inside the range stay booked and are reported as skipped.
    """
    if payload.date_to < payload.date_from:
        raise InvalidDateRange("date_to_before_date_from")
    if not await providers_repo.get_by_id(session, payload.provider_id):
        raise ProviderNotFound("provider_not_found")

    clash = await calendar_repo.find_overlapping_leave(
        session,
        provider_id=payload.provider_id,
        date_from=payload.date_from,
        date_to=payload.date_to,
    )
    if clash:
        raise LeaveOverlap("leave_overlaps_existing")

    leave = LeavePeriod(
        provider_id=payload.provider_id,
        date_from=payload.date_from,
        date_to=payload.date_to,
        reason=payload.reason,
        created_by=actor,
    )
    session.add(leave)
    await session.flush()
    await session.refresh(leave)

    blocked = await engine.blocking.block_slots(
        session,
        leave.provider_id,
        leave.date_from,
        leave.date_to,
        BlockKind.LEAVE,
        leave.id,
        leave.reason,
        actor,
    )
    return LeaveOutcome(leave=LeavePublic.model_validate(leave), blocked=blocked)


async def update_leave(
    session: AsyncSession,
    engine: SchedulingEngine,
    leave_id: UUID,
    payload: LeaveUpdateRequest,
    actor: Optional[str],
) -> LeaveOutcome:
    """
    Move or re-label a leave: release the old range, then block the new one.
    """
    leave = await _get_leave(session, leave_id)
    old_from, old_to = leave.date_from, leave.date_to
    new_from = payload.date_from or old_from
    new_to = payload.date_to or old_to
    if new_to < new_from:
        raise InvalidDateRange("date_to_before_date_from")

    clash = await calendar_repo.find_overlapping_leave(
        session,
        provider_id=leave.provider_id,
        date_from=new_from,
        date_to=new_to,
        exclude_id=leave.id,
    )
    if clash:
        raise LeaveOverlap("leave_overlaps_existing")

    unblocked = await engine.blocking.unblock_slots(
        session,
        leave.provider_id,
        old_from,
        old_to,
        actor,
        kind=BlockKind.LEAVE,
        blocking_ref=leave.id,
    )

    leave.date_from, leave.date_to = new_from, new_to
    if payload.reason is not None:
        leave.reason = payload.reason
    await session.flush()
    await session.refresh(leave)

    await _reapply_blocks(session, engine, old_from, old_to, actor, provider_id=leave.provider_id)
    blocked = await engine.blocking.block_slots(
        session,
        leave.provider_id,
        new_from,
        new_to,
        BlockKind.LEAVE,
        leave.id,
        leave.reason,
        actor,
    )
    return LeaveOutcome(
        leave=LeavePublic.model_validate(leave), blocked=blocked, unblocked=unblocked
    )


async def delete_leave(
    session: AsyncSession,
    engine: SchedulingEngine,
    leave_id: UUID,
    actor: Optional[str],
) -> LeaveOutcome:
    leave = await _get_leave(session, leave_id)
    public = LeavePublic.model_validate(leave)

    unblocked = await engine.blocking.unblock_slots(
        session,
        leave.provider_id,
        leave.date_from,
        leave.date_to,
        actor,
        kind=BlockKind.LEAVE,
        blocking_ref=leave.id,
    )
    await session.delete(leave)
    await session.flush()

    await _reapply_blocks(
        session, engine, public.date_from, public.date_to, actor, provider_id=public.provider_id
    )
    logger.info("Leave %s removed, %d slots released", leave_id, unblocked.unblocked)
    return LeaveOutcome(leave=public, unblocked=unblocked)


# CLINIC EVENTS
async def _get_event(session: AsyncSession, event_id: UUID) -> ClinicEvent:
    event = await calendar_repo.get_event(session, event_id)
    if not event or event.is_deleted:
        raise EventNotFound("event_not_found")
    return event


async def _block_event(
    session: AsyncSession, engine: SchedulingEngine, event: ClinicEvent, actor: Optional[str]
) -> FanOutReport:
    first, last = event_days(event.starts_at, event.ends_at)
    return await engine.blocking.block_for_all(
        session,
        first,
        last,
        BlockKind.EVENT,
        event.id,
        event.title,
        actor,
        span=(event.starts_at, event.ends_at),
    )


async def _release_event(
    session: AsyncSession, engine: SchedulingEngine, event: ClinicEvent, actor: Optional[str]
) -> List[FanOutReport]:
    """
    Unblock the event's buckets on every provider, then restore any other
    block still covering those days.
    """
    first, last = event_days(event.starts_at, event.ends_at)
    report = await engine.blocking.unblock_for_all(
        session,
        first,
        last,
        actor,
        kind=BlockKind.EVENT,
        blocking_ref=event.id,
        span=(event.starts_at, event.ends_at),
    )
    return [report] + await _reapply_blocks(session, engine, first, last, actor)


async def create_event(
    session: AsyncSession,
    engine: SchedulingEngine,
    payload: EventCreateRequest,
    actor: Optional[str],
) -> EventOutcome:
    starts_at, ends_at = _normalize_event_span(payload.starts_at, payload.ends_at, payload.all_day)
    event = ClinicEvent(
        title=payload.title.strip(),
        starts_at=starts_at,
        ends_at=ends_at,
        all_day=payload.all_day,
        is_published=False,
        is_deleted=False,
        created_by=actor,
    )
    session.add(event)
    await session.flush()
    await session.refresh(event)

    if payload.publish:
        return await publish_event(session, engine, event.id, actor)
    return EventOutcome(event=EventPublic.model_validate(event))


async def publish_event(
    session: AsyncSession,
    engine: SchedulingEngine,
    event_id: UUID,
    actor: Optional[str],
) -> EventOutcome:
    """
    Make the event live and block it out on every active provider.
    Re-publishing re-runs the block, which converges.
    """
    event = await _get_event(session, event_id)
    event.is_published = True
    await session.flush()

    report = await _block_event(session, engine, event, actor)
    await session.refresh(event)
    logger.info(
        "Published event %s (%s): %d providers blocked, %d failed",
        event.id, event.title, len(report.results), len(report.failures),
    )
    return EventOutcome(event=EventPublic.model_validate(event), reports=[report])


async def unpublish_event(
    session: AsyncSession,
    engine: SchedulingEngine,
    event_id: UUID,
    actor: Optional[str],
) -> EventOutcome:
    event = await _get_event(session, event_id)
    reports: List[FanOutReport] = []
    if event.is_published:
        event.is_published = False
        await session.flush()
        reports = await _release_event(session, engine, event, actor)
    await session.refresh(event)
    return EventOutcome(event=EventPublic.model_validate(event), reports=reports)


async def update_event(
    session: AsyncSession,
    engine: SchedulingEngine,
    event_id: UUID,
    payload: EventUpdateRequest,
    actor: Optional[str],
) -> EventOutcome:
    """
    Change title or timing. A published event is released over its old span
    and blocked over the new one.
    """
    event = await _get_event(session, event_id)
    was_published = event.is_published
    all_day = event.all_day if payload.all_day is None else payload.all_day
    ends_at = payload.ends_at
    if ends_at is None:
        # A stored all-day event ends at the midnight after its last day
        ends_at = event.ends_at - timedelta(days=1) if event.all_day and all_day else event.ends_at
    starts_at, ends_at = _normalize_event_span(
        payload.starts_at or event.starts_at, ends_at, all_day
    )

    reports: List[FanOutReport] = []
    if was_published:
        # Released while unpublished so the re-apply pass skips it
        event.is_published = False
        await session.flush()
        reports.extend(await _release_event(session, engine, event, actor))

    if payload.title is not None:
        event.title = payload.title.strip()
    event.starts_at, event.ends_at, event.all_day = starts_at, ends_at, all_day

    if was_published:
        event.is_published = True
        await session.flush()
        reports.append(await _block_event(session, engine, event, actor))
    else:
        await session.flush()

    await session.refresh(event)
    return EventOutcome(event=EventPublic.model_validate(event), reports=reports)


async def delete_event(
    session: AsyncSession,
    engine: SchedulingEngine,
    event_id: UUID,
    actor: Optional[str],
) -> EventOutcome:
    """
    Soft delete. A published event is unpublished first.
    """
    event = await _get_event(session, event_id)
    reports: List[FanOutReport] = []
    if event.is_published:
        event.is_published = False
        await session.flush()
        reports = await _release_event(session, engine, event, actor)

    event.is_deleted = True
    await session.flush()
    await session.refresh(event)
    logger.info("Event %s deleted by %s", event.id, actor or "system")
    return EventOutcome(event=EventPublic.model_validate(event), reports=reports)
