# clinicslots/modules/slots/resolver.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.providers.schemas import WorkingWindow
from clinicslots.modules.slots.fallback import Bucket, generate_buckets, mark_overlaps
from clinicslots.modules.slots.grid import SlotGridStore
from clinicslots.modules.slots.instants import to_clinic_local
from clinicslots.modules.slots.lookups import (
    AppointmentLookup,
    EventLookup,
    LeaveLookup,
    WorkingHoursLookup,
    day_bounds,
)
from clinicslots.modules.slots.models import Slot, SlotStatus
from clinicslots.modules.slots.schemas import Availability, Provenance, ResolvedSlot

logger = logging.getLogger(__name__)

FallbackGenerator = Callable[[WorkingWindow, Optional[int]], list[Bucket]]


def _resolved(day: date, start, end, label: str, status: str) -> ResolvedSlot:
    return ResolvedSlot(
        start=datetime.combine(day, start),
        end=datetime.combine(day, end),
        time_slot=label,
        status=status,
    )


class AvailabilityResolver:
    """
    Answers "what can be booked for this provider on this day".

    Strategy: the persisted grid first; only when the day has no rows at all,
    synthesize an advisory list from declared hours. The result always says
    which of the two it came from.
    """

    def __init__(
        self,
        grid: SlotGridStore,
        hours: WorkingHoursLookup,
        leaves: LeaveLookup,
        events: EventLookup,
        appointments: AppointmentLookup,
        fallback: FallbackGenerator = generate_buckets,
    ):
        self.grid = grid
        self.hours = hours
        self.leaves = leaves
        self.events = events
        self.appointments = appointments
        self.fallback = fallback

    async def resolve(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        slot_minutes: int | None = None,
        exclude_appointment_id: str | UUID | None = None,
    ) -> Availability:
        """
        Ordered buckets of `day` with their current status.

        Raises ProviderNotFound / ProviderInactive; never raises for missing
        grid rows or missing working-hours configuration.
        """
        exclude = str(exclude_appointment_id) if exclude_appointment_id else None

        window = await self.hours.get_window(session, provider_id, day)
        if window is None:
            return Availability(
                provider_id=provider_id,
                day=day,
                provenance=Provenance.NOT_WORKING,
                grounded=True,
                message=f"Provider not working on {day:%A}",
            )

        rows = await self.grid.rows_for_day(session, provider_id, day)
        if not rows:
            return await self._from_fallback(session, provider_id, day, window, slot_minutes, exclude)

        return Availability(
            provider_id=provider_id,
            day=day,
            provenance=Provenance.GRID,
            grounded=True,
            working_window=window.label,
            slot_minutes=rows[0].duration_minutes,
            slots=self._from_grid(day, window, rows, exclude),
        )

    def _from_grid(
        self, day: date, window: WorkingWindow, rows: Sequence[Slot], exclude: str | None
    ) -> list[ResolvedSlot]:
        slots: list[ResolvedSlot] = []
        for row in sorted(rows, key=lambda r: r.start_time):
            # Rows outside the current hours (e.g. after an hours change) are hidden, not deleted
            if not window.covers(row.start_time, row.end_time):
                continue
            status = row.status
            if exclude and status == SlotStatus.BOOKED.value and row.booking_ref == exclude:
                status = SlotStatus.AVAILABLE.value
            slots.append(_resolved(day, row.start_time, row.end_time, row.time_slot, status))
        return slots

    async def _from_fallback(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        window: WorkingWindow,
        slot_minutes: int | None,
        exclude: str | None,
    ) -> Availability:
        buckets = self.fallback(window, slot_minutes)
        start, end = day_bounds(day)

        marked = mark_overlaps(
            day,
            buckets,
            on_leave=await self.leaves.on_leave(session, provider_id, day),
            events=await self.events.overlapping(session, start, end),
            appointments=await self.appointments.live_for_day(session, provider_id, day),
            exclude_appointment_id=exclude,
        )
        logger.warning(
            "No grid rows for provider %s on %s; serving %d ungrounded fallback slots",
            provider_id, day, len(marked),
        )
        return Availability(
            provider_id=provider_id,
            day=day,
            provenance=Provenance.FALLBACK,
            grounded=False,
            working_window=window.label,
            slot_minutes=slot_minutes or window.duration_minutes,
            slots=[_resolved(day, b.start, b.end, b.label, s.value) for b, s in marked],
            message="Synthesized from working hours; not booking-safe",
        )

    async def slot_at(
        self,
        session: AsyncSession,
        provider_id: UUID,
        starts_at: datetime,
        exclude_appointment_id: str | UUID | None = None,
    ) -> Optional[ResolvedSlot]:
        """
        The resolved bucket containing `starts_at`, or None when the instant
        falls outside every bucket of the day (outside hours, day off).
        """
        local = to_clinic_local(starts_at)
        availability = await self.resolve(
            session, provider_id, local.date(), exclude_appointment_id=exclude_appointment_id
        )
        for slot in availability.slots:
            if slot.start <= local < slot.end:
                return slot
        return None

    async def is_bookable(
        self,
        session: AsyncSession,
        provider_id: UUID,
        starts_at: datetime,
        exclude_appointment_id: str | UUID | None = None,
    ) -> bool:
        """
        Freshness check right before committing a booking. Advisory: the
        conditional write in the booking service is what actually decides.
        """
        slot = await self.slot_at(session, provider_id, starts_at, exclude_appointment_id)
        return slot is not None and slot.status == SlotStatus.AVAILABLE.value
