# clinicslots/routers/providers.py
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.core.config import settings
from clinicslots.db.sql import get_session
from clinicslots.dependencies import get_actor, get_engine, raise_http
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import ProviderNotFound, SchedulingError
from clinicslots.modules.slots.schemas import (
    Availability,
    GeneratedDays,
    GenerateRangeRequest,
    SlotPublic,
)

router = APIRouter(prefix="/providers", tags=["slots"])


@router.get(
    "/{provider_id}/availability",
    response_model=Availability,
    summary="Bookable buckets of one provider day",
)
async def provider_availability(
    provider_id: UUID,
    day: date = Query(..., alias="date"),
    slot_minutes: Optional[int] = Query(None, ge=5, le=240),
    exclude_appointment_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
):
    try:
        return await engine.resolver.resolve(
            session, provider_id, day, slot_minutes, exclude_appointment_id
        )
    except SchedulingError as e:
        raise_http(e)


@router.get(
    "/{provider_id}/slots",
    response_model=list[SlotPublic],
    summary="Raw grid rows of one provider day",
)
async def provider_slots(
    provider_id: UUID,
    day: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
):
    if not await providers_repo.get_by_id(session, provider_id):
        raise_http(ProviderNotFound("provider_not_found"))
    return await engine.grid.rows_for_day(session, provider_id, day)


@router.post(
    "/{provider_id}/slots/generate",
    response_model=GeneratedDays,
    summary="Materialize the grid for a date range",
)
async def provider_generate(
    provider_id: UUID,
    payload: GenerateRangeRequest,
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    date_to = payload.date_to or payload.date_from + timedelta(days=settings.GRID_HORIZON_DAYS - 1)
    try:
        days = await engine.blocking.materialize_range(
            session, provider_id, payload.date_from, date_to, actor
        )
    except SchedulingError as e:
        raise_http(e)
    return GeneratedDays(provider_id=provider_id, days=days)


@router.post(
    "/{provider_id}/slots/regenerate",
    summary="Rebuild one day after a working-hours change",
)
async def provider_regenerate(
    provider_id: UUID,
    day: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    engine: SchedulingEngine = Depends(get_engine),
    actor: str = Depends(get_actor),
):
    try:
        deleted, created = await engine.blocking.regenerate_day(session, provider_id, day, actor)
    except SchedulingError as e:
        raise_http(e)
    return {"provider_id": str(provider_id), "date": day.isoformat(), "deleted": deleted, "created": created}
