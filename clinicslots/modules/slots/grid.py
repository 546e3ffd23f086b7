# clinicslots/modules/slots/grid.py
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicslots.modules.providers.schemas import WorkingWindow, minutes_of
from clinicslots.modules.slots.fallback import Bucket, generate_buckets
from clinicslots.modules.slots.lookups import WorkingHoursLookup
from clinicslots.modules.slots.models import BLOCKED_STATUSES, Slot, SlotStatus

logger = logging.getLogger(__name__)

_BUCKET_KEY = ("provider_id", "slot_date", "start_time", "end_time")

_CLEARED_BOOKING = {
    "booking_ref": None,
    "booking_subject": None,
    "booking_reason": None,
}
_CLEARED_BLOCKING = {
    "blocking_ref": None,
    "blocking_reason": None,
}


def _span_on_day(day: date, span: tuple[datetime, datetime] | None):
    """
    Clip `span` to `day`. Returns (lower, upper) bucket-time bounds where
    None means unbounded on that side, or False if the span misses the day.
    """
    if span is None:
        return None, None
    midnight = datetime.combine(day, time.min)
    next_midnight = midnight + timedelta(days=1)
    start, end = span
    if start >= next_midnight or end <= midnight:
        return False
    lower = start.time() if start > midnight else None
    upper = end.time() if end < next_midnight else None
    return lower, upper


class SlotGridStore:
    """
    Durable slot grid: one row per (provider, day, bucket).

    Every mutation is a single UPDATE/INSERT guarded by a WHERE clause on the
    current status, so concurrent callers never need an external lock.
    """

    def __init__(self, hours: WorkingHoursLookup):
        self.hours = hours

    # Reads
    def _day_query(self, provider_id: UUID, day: date):
        # Writes are bulk UPDATEs, so always reload rows already in the session
        return (
            select(Slot)
            .where(Slot.provider_id == provider_id, Slot.slot_date == day)
            .execution_options(populate_existing=True)
        )

    async def count_day(self, session: AsyncSession, provider_id: UUID, day: date) -> int:
        stmt = select(func.count()).select_from(Slot).where(
            Slot.provider_id == provider_id, Slot.slot_date == day
        )
        return (await session.execute(stmt)).scalar_one()

    async def rows_for_day(
        self, session: AsyncSession, provider_id: UUID, day: date
    ) -> Sequence[Slot]:
        stmt = self._day_query(provider_id, day).order_by(Slot.start_time)
        return (await session.execute(stmt)).scalars().all()

    async def find_containing(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        at: time,
        window: WorkingWindow | None = None,
    ) -> Optional[Slot]:
        """
        The bucket whose [start, end) contains `at` (minute precision).
        Buckets never overlap, so there is at most one.

        With `window`, a row the window does not cover (left over from older
        hours) counts as no bucket.
        """
        at = time(at.hour, at.minute)
        stmt = self._day_query(provider_id, day).where(
            Slot.start_time <= at, Slot.end_time > at
        )
        slot = (await session.execute(stmt.limit(1))).scalar_one_or_none()
        if slot is not None and window is not None:
            if not window.covers(slot.start_time, slot.end_time):
                return None
        return slot

    async def find_booking(
        self, session: AsyncSession, provider_id: UUID, day: date, appointment_id: str
    ) -> Optional[Slot]:
        stmt = self._day_query(provider_id, day).where(
            Slot.booking_ref == appointment_id,
            Slot.status == SlotStatus.BOOKED.value,
        )
        return (await session.execute(stmt.limit(1))).scalar_one_or_none()

    # Materialization
    def _insert_for(self, session: AsyncSession):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert
        if dialect == "sqlite":
            return sqlite_insert
        return None

    async def insert_buckets(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        buckets: Iterable[Bucket],
        duration_minutes: int,
        actor: str | None = None,
    ) -> int:
        """
        Insert-if-absent. A bucket that already exists is left alone and is not
        an error, so racing materializations converge on one row per bucket.
        """
        rows = [
            {
                "id": uuid.uuid4(),
                "provider_id": provider_id,
                "slot_date": day,
                "start_time": b.start,
                "end_time": b.end,
                "duration_minutes": duration_minutes,
                "status": SlotStatus.AVAILABLE.value,
                "last_modified_by": actor,
            }
            for b in buckets
        ]
        if not rows:
            return 0

        insert_ = self._insert_for(session)
        if insert_ is not None:
            stmt = insert_(Slot).values(rows).on_conflict_do_nothing(index_elements=list(_BUCKET_KEY))
            res = await session.execute(stmt)
            return res.rowcount or 0  # type: ignore

        # Generic dialects: one savepoint per row, duplicate key means "already there"
        inserted = 0
        for row in rows:
            try:
                async with session.begin_nested():
                    session.add(Slot(**row))
                inserted += 1
            except IntegrityError:
                continue
        return inserted

    async def ensure_day(
        self, session: AsyncSession, provider_id: UUID, day: date, actor: str | None = None
    ) -> int:
        """
        Materialize the day's grid from declared hours if it has no rows yet.
        Returns the number of rows created (0 when already present or off).
        """
        if await self.count_day(session, provider_id, day):
            return 0

        window = await self.hours.get_window(session, provider_id, day)
        if window is None:
            logger.info("Provider %s not working on %s, no grid created", provider_id, day)
            return 0

        created = await self.insert_buckets(
            session, provider_id, day, generate_buckets(window), window.duration_minutes, actor
        )
        logger.info(
            "Materialized %d slots for provider %s on %s (%s, %d min)",
            created, provider_id, day, window.label, window.duration_minutes,
        )
        return created

    async def regenerate_day(
        self, session: AsyncSession, provider_id: UUID, day: date, actor: str | None = None
    ) -> tuple[int, int]:
        """
        Rebuild a day after a working-hours change.

        Only `available` rows are deleted; booked and blocked rows stay and new
        buckets overlapping them are not created. Returns (deleted, created).
        """
        res = await session.execute(
            delete(Slot).where(
                Slot.provider_id == provider_id,
                Slot.slot_date == day,
                Slot.status == SlotStatus.AVAILABLE.value,
            )
        )
        deleted = res.rowcount or 0  # type: ignore

        window = await self.hours.get_window(session, provider_id, day)
        if window is None:
            return deleted, 0

        kept = await self.rows_for_day(session, provider_id, day)
        taken = [(minutes_of(s.start_time), minutes_of(s.end_time)) for s in kept]
        fresh = [
            b for b in generate_buckets(window)
            if not any(minutes_of(b.start) < e and s < minutes_of(b.end) for s, e in taken)
        ]
        created = await self.insert_buckets(
            session, provider_id, day, fresh, window.duration_minutes, actor
        )
        logger.info(
            "Regenerated provider %s on %s: %d removed, %d created, %d kept",
            provider_id, day, deleted, created, len(kept),
        )
        return deleted, created

    # Conditional writes
    async def claim(
        self,
        session: AsyncSession,
        slot_id: UUID,
        *,
        appointment_id: str,
        subject_id: str | None,
        reason: str | None,
        actor: str | None,
    ) -> bool:
        """
        available -> booked, only if the row is still available at write time.
        """
        stmt = (
            update(Slot)
            .where(Slot.id == slot_id, Slot.status == SlotStatus.AVAILABLE.value)
            .values(
                status=SlotStatus.BOOKED.value,
                booking_ref=appointment_id,
                booking_subject=subject_id,
                booking_reason=reason,
                last_modified_by=actor,
                **_CLEARED_BLOCKING,
            )
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(stmt)
        return (res.rowcount or 0) == 1  # type: ignore

    async def release(
        self, session: AsyncSession, slot_id: UUID, *, appointment_id: str, actor: str | None
    ) -> bool:
        """
        booked -> available, only if the row still carries this booking.
        """
        stmt = (
            update(Slot)
            .where(
                Slot.id == slot_id,
                Slot.status == SlotStatus.BOOKED.value,
                Slot.booking_ref == appointment_id,
            )
            .values(
                status=SlotStatus.AVAILABLE.value,
                last_modified_by=actor,
                **_CLEARED_BOOKING,
            )
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(stmt)
        return (res.rowcount or 0) == 1  # type: ignore

    def _scoped(self, stmt, provider_id: UUID, day: date, lower, upper):
        stmt = stmt.where(Slot.provider_id == provider_id, Slot.slot_date == day)
        if lower is not None:
            stmt = stmt.where(Slot.end_time > lower)
        if upper is not None:
            stmt = stmt.where(Slot.start_time < upper)
        return stmt

    async def block_day(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        *,
        status: SlotStatus,
        blocking_ref: str,
        reason: str | None,
        actor: str | None,
        span: tuple[datetime, datetime] | None = None,
    ) -> tuple[int, int, int]:
        """
        Block every available row of the day (or of `span` within it).
        Returns (blocked, skipped_booked, already_blocked).
        """
        bounds = _span_on_day(day, span)
        if bounds is False:
            return 0, 0, 0
        lower, upper = bounds

        counts_stmt = self._scoped(
            select(Slot.status, func.count()).group_by(Slot.status),
            provider_id, day, lower, upper,
        )
        counts = dict((await session.execute(counts_stmt)).all())
        skipped = counts.get(SlotStatus.BOOKED.value, 0)
        already = sum(counts.get(s, 0) for s in BLOCKED_STATUSES)

        stmt = self._scoped(
            update(Slot).where(Slot.status == SlotStatus.AVAILABLE.value),
            provider_id, day, lower, upper,
        ).values(
            status=status.value,
            blocking_ref=blocking_ref,
            blocking_reason=reason,
            last_modified_by=actor,
            **_CLEARED_BOOKING,
        ).execution_options(synchronize_session=False)
        res = await session.execute(stmt)
        return res.rowcount or 0, skipped, already  # type: ignore

    async def unblock_day(
        self,
        session: AsyncSession,
        provider_id: UUID,
        day: date,
        *,
        actor: str | None,
        statuses: Sequence[str] = BLOCKED_STATUSES,
        blocking_ref: str | None = None,
        span: tuple[datetime, datetime] | None = None,
    ) -> int:
        bounds = _span_on_day(day, span)
        if bounds is False:
            return 0
        lower, upper = bounds

        stmt = self._scoped(
            update(Slot).where(Slot.status.in_(list(statuses))),
            provider_id, day, lower, upper,
        )
        if blocking_ref is not None:
            stmt = stmt.where(Slot.blocking_ref == blocking_ref)
        stmt = stmt.values(
            status=SlotStatus.AVAILABLE.value,
            last_modified_by=actor,
            **_CLEARED_BLOCKING,
        ).execution_options(synchronize_session=False)
        res = await session.execute(stmt)
        return res.rowcount or 0  # type: ignore
