# clinicslots/dependencies.py
from __future__ import annotations

from typing import NoReturn, Optional

from fastapi import Header, HTTPException, Request, status

from clinicslots.modules.slots.engine import SchedulingEngine
from clinicslots.modules.slots.errors import (
    BookingNotFound,
    ProviderInactive,
    ProviderNotFound,
    SchedulingError,
    SlotConflict,
    SlotNotFound,
)

_SCHEDULING_STATUS = {
    ProviderNotFound: status.HTTP_404_NOT_FOUND,
    ProviderInactive: status.HTTP_409_CONFLICT,
    SlotNotFound: 422,
    SlotConflict: status.HTTP_409_CONFLICT,
    BookingNotFound: status.HTTP_404_NOT_FOUND,
}


def get_engine(request: Request) -> SchedulingEngine:
    """
    The engine built in the app lifespan.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="engine_not_ready",
        )
    return engine


async def get_actor(request: Request, x_actor: Optional[str] = Header(None)) -> str:
    """
    Who is acting, for audit columns. Authentication lives in front of this
    service; an absent header is recorded as "system".
    """
    actor = getattr(request.state, "actor", None)
    if actor:
        return actor
    return (x_actor or "").strip() or "system"


def raise_http(exc: SchedulingError) -> NoReturn:
    """
    Translate a typed scheduling failure into an HTTPException.
    """
    code = _SCHEDULING_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=code, detail=str(exc) or "scheduling_error") from exc
