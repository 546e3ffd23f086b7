# clinicslots/routers/calendar.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.db.sql import get_session
from clinicslots.dependencies import get_actor, get_engine, raise_http
from clinicslots.modules.calendar.schemas import (
    EventCreateRequest,
    EventOutcome,
    EventUpdateRequest,
    LeaveCreateRequest,
    LeaveOutcome,
    LeaveUpdateRequest,
)
from clinicslots.modules.calendar import service as calendar_svc
from clinicslots.modules.calendar.service import (
    CalendarError,
    EventNotFound,
    InvalidDateRange,
    LeaveNotFound,
    LeaveOverlap,
)
from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import SchedulingError

router = APIRouter(tags=["calendar"])

_CALENDAR_STATUS = {
    LeaveNotFound: status.HTTP_404_NOT_FOUND,
    EventNotFound: status.HTTP_404_NOT_FOUND,
    LeaveOverlap: status.HTTP_409_CONFLICT,
    InvalidDateRange: 422,
}


async def _run(call):
    try:
        return await call
    except CalendarError as e:
        raise HTTPException(
            status_code=_CALENDAR_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST),
            detail=str(e) or "calendar_error",
        )
    except SchedulingError as e:
        raise_http(e)


# Leave
@router.post(
    "/leaves",
    response_model=LeaveOutcome,
    status_code=status.HTTP_201_CREATED,
    summary="Record provider leave and block its slots",
)
async def leaves_create(
    payload: LeaveCreateRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.create_leave(session, engine, payload, actor))


@router.put("/leaves/{leave_id}", response_model=LeaveOutcome)
async def leaves_update(
    leave_id: UUID,
    payload: LeaveUpdateRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.update_leave(session, engine, leave_id, payload, actor))


@router.delete("/leaves/{leave_id}", response_model=LeaveOutcome)
async def leaves_delete(
    leave_id: UUID,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.delete_leave(session, engine, leave_id, actor))


# Clinic events
@router.post(
    "/clinic-events",
    response_model=EventOutcome,
    status_code=status.HTTP_201_CREATED,
    summary="Create a clinic-wide event (optionally published)",
)
async def events_create(
    payload: EventCreateRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.create_event(session, engine, payload, actor))


@router.put("/clinic-events/{event_id}", response_model=EventOutcome)
async def events_update(
    event_id: UUID,
    payload: EventUpdateRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.update_event(session, engine, event_id, payload, actor))


@router.post("/clinic-events/{event_id}/publish", response_model=EventOutcome)
async def events_publish(
    event_id: UUID,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.publish_event(session, engine, event_id, actor))


@router.post("/clinic-events/{event_id}/unpublish", response_model=EventOutcome)
async def events_unpublish(
    event_id: UUID,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.unpublish_event(session, engine, event_id, actor))


@router.delete("/clinic-events/{event_id}", response_model=EventOutcome)
async def events_delete(
    event_id: UUID,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    return await _run(calendar_svc.delete_event(session, engine, event_id, actor))
