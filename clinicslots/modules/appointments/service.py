# clinicslots/modules/appointments/service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.appointments.models import Appointment, ApptStatus
from clinicslots.modules.appointments.schemas import (
    AppointmentBooked,
    AppointmentCreateRequest,
    AppointmentPublic,
    AppointmentRescheduleRequest,
)
from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import BookingNotFound, SlotConflict, SlotNotFound
from clinicslots.modules.slots.instants import to_clinic_local
from clinicslots.modules.slots.models import Slot, SlotStatus

logger = logging.getLogger(__name__)


# Custom errors for router mapping to HTTP
class AppointmentNotFound(Exception):
    """
    No appointment found
    """


class AppointmentClosed(Exception):
    """
    The appointment is cancelled or completed and cannot be moved
    """


def _booked(appt: Appointment, slot: Slot) -> AppointmentBooked:
    return AppointmentBooked(
        appointment=AppointmentPublic.model_validate(appt),
        slot_date=slot.slot_date,
        time_slot=slot.time_slot,
    )


def _hold(appt: Appointment, slot: Slot) -> None:
    # The appointment takes the bucket's start and length
    appt.provider_id = slot.provider_id
    appt.starts_at = datetime.combine(slot.slot_date, slot.start_time)
    appt.duration_minutes = slot.duration_minutes


# CREATE
async def create_appointment(
    session: AsyncSession,
    engine: SchedulingEngine,
    payload: AppointmentCreateRequest,
    actor: Optional[str],
) -> AppointmentBooked:
    """
    Create an appointment holding one grid bucket.

    Logic:
    - re-check availability right before writing (cheap, advisory)
    - persist the appointment row to get its id
    - conditional write on the bucket; losing it raises SlotConflict and the
      caller's transaction rolls the appointment row back
    """
    local = to_clinic_local(payload.starts_at)
    current = await engine.resolver.slot_at(session, payload.provider_id, local)
    if current is None:
        logger.warning("No bucket for provider %s at %s", payload.provider_id, local.isoformat())
        raise SlotNotFound(f"no_slot_at_{local:%Y-%m-%dT%H:%M}")
    if current.status != SlotStatus.AVAILABLE.value:
        logger.warning(
            "Provider %s not bookable at %s (status=%s), rejecting before write",
            payload.provider_id, local.isoformat(), current.status,
        )
        raise SlotConflict("slot_not_available", status=current.status)

    appt = Appointment(
        provider_id=payload.provider_id,
        subject_ref=payload.subject_ref,
        starts_at=local,
        reason=payload.reason,
        status=ApptStatus.SCHEDULED.value,
    )
    session.add(appt)
    await session.flush()

    slot = await engine.booking.book_slot(
        session,
        payload.provider_id,
        local,
        appt.id,
        payload.subject_ref,
        payload.reason,
        actor,
    )
    _hold(appt, slot)
    await session.flush()
    await session.refresh(appt)
    return _booked(appt, slot)


# CANCEL
async def cancel_appointment(
    session: AsyncSession,
    engine: SchedulingEngine,
    appointment_id: UUID,
    actor: Optional[str],
) -> AppointmentPublic:
    """
    Free the bucket and mark the appointment cancelled.
    Cancelling twice returns the cancelled appointment.
    """
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise AppointmentNotFound("appointment_not_found")

    if appt.status == ApptStatus.CANCELLED.value:
        return AppointmentPublic.model_validate(appt)

    try:
        await engine.booking.cancel_booking(
            session, appt.provider_id, appt.starts_at, appt.id, actor
        )
    except BookingNotFound:
        logger.info("Appointment %s held no booked slot, nothing to free", appt.id)

    appt.status = ApptStatus.CANCELLED.value
    await session.flush()
    await session.refresh(appt)
    return AppointmentPublic.model_validate(appt)


# RESCHEDULE
async def reschedule_appointment(
    session: AsyncSession,
    engine: SchedulingEngine,
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    actor: Optional[str],
) -> AppointmentBooked:
    """
    Move a scheduled appointment to another bucket, possibly of another
    provider. On failure the original booking is kept.
    """
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise AppointmentNotFound("appointment_not_found")
    if appt.status != ApptStatus.SCHEDULED.value:
        raise AppointmentClosed(f"appointment_{appt.status}")

    slot = await engine.booking.rebook_slot(
        session,
        provider_id=appt.provider_id,
        old_starts_at=appt.starts_at,
        new_provider_id=payload.provider_id or appt.provider_id,
        new_starts_at=payload.starts_at,
        appointment_id=appt.id,
        subject_id=appt.subject_ref,
        reason=appt.reason,
        actor=actor,
    )
    _hold(appt, slot)
    await session.flush()
    await session.refresh(appt)
    logger.info("Appointment %s moved to %s %s", appt.id, slot.slot_date, slot.time_slot)
    return _booked(appt, slot)
