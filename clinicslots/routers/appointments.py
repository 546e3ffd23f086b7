# clinicslots/routers/appointments.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.db.sql import get_session
from clinicslots.dependencies import get_actor, get_engine, raise_http
from clinicslots.modules.appointments.schemas import (
    AppointmentBooked,
    AppointmentCreateRequest,
    AppointmentPublic,
    AppointmentRescheduleRequest,
)
from clinicslots.modules.appointments.service import (
    AppointmentClosed,
    AppointmentNotFound,
    cancel_appointment,
    create_appointment,
    reschedule_appointment,
)
from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import SchedulingError

router = APIRouter(tags=["appointments"])


@router.post(
    "/appointments",
    response_model=AppointmentBooked,
    status_code=status.HTTP_201_CREATED,
    summary="Book a slot and create the appointment",
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    try:
        return await create_appointment(session, engine, payload, actor)
    except SchedulingError as e:
        raise_http(e)


@router.put(
    "/appointments/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Cancel an appointment and free its slot",
)
async def appointments_cancel(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    try:
        return await cancel_appointment(session, engine, appointment_id, actor)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="appointment_not_found",
        )
    except SchedulingError as e:
        raise_http(e)


@router.put(
    "/appointments/{appointment_id}/reschedule",
    response_model=AppointmentBooked,
    summary="Move an appointment to another slot",
)
async def appointments_reschedule(
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    try:
        return await reschedule_appointment(session, engine, appointment_id, payload, actor)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="appointment_not_found",
        )
    except AppointmentClosed as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e) or "appointment_closed",
        )
    except SchedulingError as e:
        raise_http(e)
