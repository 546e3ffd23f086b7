from __future__ import annotations

from typing import Any

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.providers.models import AuditLog


def format_details(details: dict[str, Any]) -> str | None:
    """`key=value` pairs in call order, None values dropped."""
    parts = [f"{k}={v}" for k, v in details.items() if v is not None]
    return " ".join(parts) or None


async def write_audit_log(
    session: AsyncSession,
    actor: str | None,
    action: str,
    **details: Any,
) -> None:
    """
    Append an audit entry in the caller's transaction, so it commits or rolls
    back together with the grid change it describes.

    action:
        "BOOK_SLOT"
        "CANCEL_BOOKING"
        "BLOCK_SLOTS"
        "UNBLOCK_SLOTS"
        "REGENERATE_DAY"
    """
    await session.execute(
        insert(AuditLog).values(
            actor=actor or "system",
            action=action,
            details=format_details(details),
        )
    )
