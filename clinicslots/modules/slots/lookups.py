# clinicslots/modules/slots/lookups.py
"""
Read-only capabilities the scheduling core consumes from neighbouring modules.

Each seam is a Protocol so the engine can be composed with other sources;
the Sql* classes are the default implementations over this database.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.appointments.models import Appointment, LIVE_STATUSES
from clinicslots.modules.calendar import repository as calendar_repo
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.providers.hours import window_for_day
from clinicslots.modules.providers.schemas import WorkingWindow
from clinicslots.modules.slots.errors import ProviderInactive, ProviderNotFound
from clinicslots.modules.slots.fallback import BookedInterval


class WorkingHoursLookup(Protocol):
    async def get_window(
        self, session: AsyncSession, provider_id: UUID, day: date
    ) -> WorkingWindow | None:
        """Window for the weekday of `day`; None when the provider is off."""
        ...


class LeaveLookup(Protocol):
    async def on_leave(self, session: AsyncSession, provider_id: UUID, day: date) -> bool:
        ...


class EventLookup(Protocol):
    async def overlapping(
        self, session: AsyncSession, start: datetime, end: datetime
    ) -> list[tuple[datetime, datetime]]:
        ...


class AppointmentLookup(Protocol):
    async def live_for_day(
        self, session: AsyncSession, provider_id: UUID, day: date
    ) -> list[BookedInterval]:
        ...


class ProviderDirectory(Protocol):
    async def active_provider_ids(self, session: AsyncSession) -> list[UUID]:
        ...


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class SqlWorkingHours:
    async def get_window(
        self, session: AsyncSession, provider_id: UUID, day: date
    ) -> WorkingWindow | None:
        provider = await providers_repo.get_by_id(session, provider_id)
        if provider is None:
            raise ProviderNotFound("provider_not_found")
        if not provider.is_active:
            raise ProviderInactive("provider_inactive")
        return window_for_day(provider.working_hours, day)


class SqlLeaveLookup:
    async def on_leave(self, session: AsyncSession, provider_id: UUID, day: date) -> bool:
        return await calendar_repo.is_on_leave(session, provider_id=provider_id, day=day)


class SqlEventLookup:
    async def overlapping(
        self, session: AsyncSession, start: datetime, end: datetime
    ) -> list[tuple[datetime, datetime]]:
        events = await calendar_repo.list_live_events_overlapping(session, start=start, end=end)
        return [(e.starts_at, e.ends_at) for e in events]


class SqlAppointmentLookup:
    async def live_for_day(
        self, session: AsyncSession, provider_id: UUID, day: date
    ) -> list[BookedInterval]:
        start, end = day_bounds(day)
        stmt = select(Appointment).where(
            Appointment.provider_id == provider_id,
            Appointment.starts_at >= start,
            Appointment.starts_at < end,
            Appointment.status.in_(LIVE_STATUSES),
        )
        rows: Sequence[Appointment] = (await session.execute(stmt)).scalars().all()
        return [
            BookedInterval(str(a.id), a.starts_at, a.duration_minutes) for a in rows
        ]


class SqlProviderDirectory:
    async def active_provider_ids(self, session: AsyncSession) -> list[UUID]:
        return await providers_repo.list_active_ids(session)
