# clinicslots/modules/providers/repository.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.providers.models import Provider


async def get_by_id(session: AsyncSession, provider_id: UUID) -> Optional[Provider]:
    """
    Returns a Provider by primary key or None if not found.
    """
    return await session.get(Provider, provider_id)


async def list_active_ids(session: AsyncSession) -> list[UUID]:
    stmt = select(Provider.id).where(Provider.is_active.is_(True)).order_by(Provider.code)
    return list((await session.execute(stmt)).scalars().all())


async def create_provider(
    session: AsyncSession,
    *,
    code: str,
    display_name: str,
    working_hours: dict[str, Any] | None = None,
    is_active: bool = True,
) -> Provider:
    provider = Provider(
        code=code.strip(),
        display_name=display_name.strip(),
        working_hours=working_hours or {},
        is_active=is_active,
    )
    session.add(provider)
    await session.flush()
    return provider


async def set_working_hours(
    session: AsyncSession, *, provider_id: UUID, working_hours: dict[str, Any]
) -> Optional[Provider]:
    provider = await get_by_id(session, provider_id)
    if not provider:
        return None
    # JSON columns are not mutation-tracked, assign a fresh dict
    provider.working_hours = dict(working_hours)
    await session.flush()
    return provider
