# clinicslots/routers/health.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.db.sql import get_session, ping_db
from clinicslots.modules.slots.models import Slot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_root(request: Request):
    """Liveness, plus whether the lifespan has built the scheduling engine."""
    ready = getattr(request.app.state, "engine", None) is not None
    return {"status": "ok", "engine": "ready" if ready else "starting"}


@router.get("/health/db")
async def health_db(session: AsyncSession = Depends(get_session)):
    """
    Readiness: the database answers and the slot grid table is reachable.
    Returns 503 otherwise.
    """
    try:
        dialect = await ping_db(session)
        grid_rows = (await session.execute(select(func.count()).select_from(Slot))).scalar_one()
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="database_unavailable") from exc
    return {"status": "ok", "database": dialect, "grid_rows": grid_rows}
