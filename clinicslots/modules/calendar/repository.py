# clinicslots/modules/calendar/repository.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.calendar.models import ClinicEvent, LeavePeriod


# Leave
async def get_leave(session: AsyncSession, leave_id: UUID) -> Optional[LeavePeriod]:
    return await session.get(LeavePeriod, leave_id)


async def find_overlapping_leave(
    session: AsyncSession,
    *,
    provider_id: UUID,
    date_from: date,
    date_to: date,
    exclude_id: UUID | None = None,
) -> Optional[LeavePeriod]:
    """
    First leave of the provider intersecting [date_from, date_to], if any.
    """
    stmt = select(LeavePeriod).where(
        LeavePeriod.provider_id == provider_id,
        LeavePeriod.date_from <= date_to,
        LeavePeriod.date_to >= date_from,
    )
    if exclude_id is not None:
        stmt = stmt.where(LeavePeriod.id != exclude_id)
    result = await session.execute(stmt.order_by(LeavePeriod.date_from).limit(1))
    return result.scalar_one_or_none()


async def list_leaves_overlapping(
    session: AsyncSession,
    *,
    date_from: date,
    date_to: date,
    provider_id: UUID | None = None,
) -> Sequence[LeavePeriod]:
    """
    Leaves intersecting [date_from, date_to]; all providers unless one is given.
    """
    stmt = select(LeavePeriod).where(
        LeavePeriod.date_from <= date_to,
        LeavePeriod.date_to >= date_from,
    )
    if provider_id is not None:
        stmt = stmt.where(LeavePeriod.provider_id == provider_id)
    stmt = stmt.order_by(LeavePeriod.provider_id, LeavePeriod.date_from)
    return (await session.execute(stmt)).scalars().all()


async def is_on_leave(session: AsyncSession, *, provider_id: UUID, day: date) -> bool:
    return (
        await find_overlapping_leave(
            session, provider_id=provider_id, date_from=day, date_to=day
        )
    ) is not None


# Clinic events
async def get_event(session: AsyncSession, event_id: UUID) -> Optional[ClinicEvent]:
    return await session.get(ClinicEvent, event_id)


async def list_live_events_overlapping(
    session: AsyncSession, *, start: datetime, end: datetime
) -> Sequence[ClinicEvent]:
    """
    Published, non-deleted events intersecting [start, end).
    """
    stmt = (
        select(ClinicEvent)
        .where(
            ClinicEvent.is_published.is_(True),
            ClinicEvent.is_deleted.is_(False),
            ClinicEvent.starts_at < end,
            ClinicEvent.ends_at > start,
        )
        .order_by(ClinicEvent.starts_at)
    )
    return (await session.execute(stmt)).scalars().all()
