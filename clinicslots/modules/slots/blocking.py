# clinicslots/modules/slots/blocking.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.log import write_audit_log
from clinicslots.modules.slots.grid import SlotGridStore
from clinicslots.modules.slots.lookups import ProviderDirectory, WorkingHoursLookup
from clinicslots.modules.slots.models import BLOCKED_STATUSES, BlockKind
from clinicslots.modules.slots.schemas import (
    BlockResult,
    FanOutReport,
    ProviderFailure,
    UnblockResult,
)

logger = logging.getLogger(__name__)

Span = Optional[tuple[datetime, datetime]]


def iter_days(date_from: date, date_to: date) -> Iterator[date]:
    """Every calendar day in [date_from, date_to]."""
    day = date_from
    while day <= date_to:
        yield day
        day += timedelta(days=1)


class BlockingService:
    """
    Range blocking for leave and clinic events.

    Not transactional across days: each day is its own set of statements and
    re-running an operation converges to the same state.
    """

    def __init__(
        self,
        grid: SlotGridStore,
        hours: WorkingHoursLookup,
        directory: ProviderDirectory,
    ):
        self.grid = grid
        self.hours = hours
        self.directory = directory

    async def block_slots(
        self,
        session: AsyncSession,
        provider_id: UUID,
        date_from: date,
        date_to: date,
        kind: BlockKind,
        blocking_ref: str | UUID,
        reason: str | None,
        actor: str | None,
        span: Span = None,
    ) -> BlockResult:
        """
        Block every available bucket in the range. Booked buckets are never
        overwritten; they are reported as skipped.
        """
        result = BlockResult(provider_id=provider_id, date_from=date_from, date_to=date_to)
        for day in iter_days(date_from, date_to):
            result.materialized += await self.grid.ensure_day(session, provider_id, day, actor)
            blocked, skipped, already = await self.grid.block_day(
                session,
                provider_id,
                day,
                status=kind.status,
                blocking_ref=str(blocking_ref),
                reason=reason,
                actor=actor,
                span=span,
            )
            result.blocked += blocked
            result.skipped += skipped
            result.already_blocked += already

        if result.skipped:
            logger.warning(
                "Blocking %s for provider %s left %d booked slots in place (%s..%s)",
                kind.value, provider_id, result.skipped, date_from, date_to,
            )
        await write_audit_log(
            session, actor, "BLOCK_SLOTS",
            provider=provider_id, date_from=date_from, date_to=date_to, kind=kind.value,
            ref=blocking_ref, blocked=result.blocked, skipped=result.skipped,
        )
        logger.info(
            "Blocked %d slots (%s) for provider %s %s..%s",
            result.blocked, kind.value, provider_id, date_from, date_to,
        )
        return result

    async def unblock_slots(
        self,
        session: AsyncSession,
        provider_id: UUID,
        date_from: date,
        date_to: date,
        actor: str | None,
        kind: BlockKind | None = None,
        blocking_ref: str | UUID | None = None,
        span: Span = None,
    ) -> UnblockResult:
        """
        Return blocked buckets in the range to available. `kind` and
        `blocking_ref` narrow which blocks are released.
        """
        statuses = (kind.status.value,) if kind else BLOCKED_STATUSES
        ref = str(blocking_ref) if blocking_ref is not None else None

        result = UnblockResult(provider_id=provider_id, date_from=date_from, date_to=date_to)
        for day in iter_days(date_from, date_to):
            result.unblocked += await self.grid.unblock_day(
                session, provider_id, day,
                actor=actor, statuses=statuses, blocking_ref=ref, span=span,
            )

        await write_audit_log(
            session, actor, "UNBLOCK_SLOTS",
            provider=provider_id, date_from=date_from, date_to=date_to,
            kind=kind.value if kind else None, ref=ref, unblocked=result.unblocked,
        )
        logger.info(
            "Unblocked %d slots for provider %s %s..%s",
            result.unblocked, provider_id, date_from, date_to,
        )
        return result

    # Clinic-wide fan-out
    async def _for_each_provider(
        self, session: AsyncSession, operation, provider_ids: list[UUID] | None
    ) -> FanOutReport:
        if provider_ids is None:
            provider_ids = await self.directory.active_provider_ids(session)

        report = FanOutReport()
        for provider_id in provider_ids:
            # One SAVEPOINT per provider; a failure here does not undo the others
            try:
                async with session.begin_nested():
                    report.results.append(await operation(session, provider_id))
            except Exception as exc:
                logger.warning("Fan-out step failed for provider %s: %s", provider_id, exc)
                report.failures.append(ProviderFailure(provider_id=provider_id, error=str(exc)))
        if report.failures:
            logger.warning(
                "Fan-out finished with %d of %d providers failed",
                len(report.failures), len(provider_ids),
            )
        return report

    async def block_for_all(
        self,
        session: AsyncSession,
        date_from: date,
        date_to: date,
        kind: BlockKind,
        blocking_ref: str | UUID,
        reason: str | None,
        actor: str | None,
        span: Span = None,
        provider_ids: list[UUID] | None = None,
    ) -> FanOutReport:
        """Block the range for every active provider (or the given ones)."""

        async def _block(session: AsyncSession, provider_id: UUID) -> BlockResult:
            return await self.block_slots(
                session, provider_id, date_from, date_to, kind, blocking_ref, reason, actor, span
            )

        return await self._for_each_provider(session, _block, provider_ids)

    async def unblock_for_all(
        self,
        session: AsyncSession,
        date_from: date,
        date_to: date,
        actor: str | None,
        kind: BlockKind | None = None,
        blocking_ref: str | UUID | None = None,
        span: Span = None,
        provider_ids: list[UUID] | None = None,
    ) -> FanOutReport:
        async def _unblock(session: AsyncSession, provider_id: UUID) -> UnblockResult:
            return await self.unblock_slots(
                session, provider_id, date_from, date_to, actor, kind, blocking_ref, span
            )

        return await self._for_each_provider(session, _unblock, provider_ids)

    # Grid maintenance
    async def materialize_range(
        self,
        session: AsyncSession,
        provider_id: UUID,
        date_from: date,
        date_to: date,
        actor: str | None = None,
    ) -> list[date]:
        """
        Make sure every working day in the range has its grid.
        Returns the days that have rows afterwards.
        """
        days: list[date] = []
        for day in iter_days(date_from, date_to):
            if await self.hours.get_window(session, provider_id, day) is None:
                continue
            await self.grid.ensure_day(session, provider_id, day, actor)
            days.append(day)
        logger.info(
            "Grid ready for provider %s on %d days (%s..%s)",
            provider_id, len(days), date_from, date_to,
        )
        return days

    async def regenerate_day(
        self, session: AsyncSession, provider_id: UUID, day: date, actor: str | None
    ) -> tuple[int, int]:
        deleted, created = await self.grid.regenerate_day(session, provider_id, day, actor)
        await write_audit_log(
            session, actor, "REGENERATE_DAY",
            provider=provider_id, date=day, deleted=deleted, created=created,
        )
        return deleted, created
