# clinicslots/modules/slots/booking.py
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.log import write_audit_log
from clinicslots.modules.slots.errors import BookingNotFound, SlotConflict, SlotNotFound
from clinicslots.modules.slots.grid import SlotGridStore
from clinicslots.modules.slots.instants import to_clinic_local
from clinicslots.modules.slots.models import Slot

logger = logging.getLogger(__name__)


class SlotBookingService:
    """
    Turns one available bucket into a booked one, and back.

    The only concurrency guard is the conditional UPDATE in
    SlotGridStore.claim: of N racing callers exactly one sees a row affected.
    """

    def __init__(self, grid: SlotGridStore):
        self.grid = grid

    async def book_slot(
        self,
        session: AsyncSession,
        provider_id: UUID,
        starts_at: datetime,
        appointment_id: str | UUID,
        subject_id: str | None,
        reason: str | None,
        actor: str | None,
    ) -> Slot:
        """
        Protocol:
          1) ensure the day's grid exists (insert-if-absent)
          2) locate the bucket containing `starts_at`, inside
             the current working window                    -> SlotNotFound
          3) conditional write available -> booked         -> SlotConflict
          4) return the updated row
        """
        local = to_clinic_local(starts_at)
        day = local.date()
        appointment_id = str(appointment_id)

        await self.grid.ensure_day(session, provider_id, day, actor)

        window = await self.grid.hours.get_window(session, provider_id, day)
        slot = None
        if window is not None:
            slot = await self.grid.find_containing(
                session, provider_id, day, local.time(), window=window
            )
        if slot is None:
            logger.warning("No bucket for provider %s at %s", provider_id, local.isoformat())
            raise SlotNotFound(f"no_slot_at_{local:%Y-%m-%dT%H:%M}")

        won = await self.grid.claim(
            session,
            slot.id,
            appointment_id=appointment_id,
            subject_id=subject_id,
            reason=reason,
            actor=actor,
        )
        await session.refresh(slot)
        if not won:
            logger.warning(
                "Slot %s %s for provider %s not available (status=%s)",
                day, slot.time_slot, provider_id, slot.status,
            )
            raise SlotConflict("slot_not_available", status=slot.status)

        await write_audit_log(
            session, actor, "BOOK_SLOT",
            provider=provider_id, date=day, slot=slot.time_slot, appointment=appointment_id,
        )
        logger.info(
            "Booked %s %s for provider %s (appointment %s)",
            day, slot.time_slot, provider_id, appointment_id,
        )
        return slot

    async def cancel_booking(
        self,
        session: AsyncSession,
        provider_id: UUID,
        starts_at: datetime,
        appointment_id: str | UUID,
        actor: str | None,
    ) -> Slot:
        """
        Free the bucket booked for `appointment_id` on that day.
        A second cancel raises BookingNotFound.
        """
        day = to_clinic_local(starts_at).date()
        appointment_id = str(appointment_id)

        slot = await self.grid.find_booking(session, provider_id, day, appointment_id)
        if slot is None or not await self.grid.release(
            session, slot.id, appointment_id=appointment_id, actor=actor
        ):
            raise BookingNotFound("booking_not_found")

        await session.refresh(slot)
        await write_audit_log(
            session, actor, "CANCEL_BOOKING",
            provider=provider_id, date=day, slot=slot.time_slot, appointment=appointment_id,
        )
        logger.info("Freed %s %s for provider %s", day, slot.time_slot, provider_id)
        return slot

    async def rebook_slot(
        self,
        session: AsyncSession,
        *,
        provider_id: UUID,
        old_starts_at: datetime,
        new_provider_id: UUID,
        new_starts_at: datetime,
        appointment_id: str | UUID,
        subject_id: str | None,
        reason: str | None,
        actor: str | None,
    ) -> Slot:
        """
        Move a booking. Runs in a SAVEPOINT: if the new bucket cannot be
        booked the old booking is left exactly as it was and the error
        propagates.
        """
        async with session.begin_nested():
            await self.cancel_booking(session, provider_id, old_starts_at, appointment_id, actor)
            return await self.book_slot(
                session, new_provider_id, new_starts_at, appointment_id, subject_id, reason, actor
            )
