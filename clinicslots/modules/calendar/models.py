# clinicslots/modules/calendar/models.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from clinicslots.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class LeavePeriod(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Provider leave, inclusive on both ends. Creating one blocks the grid,
    removing it unblocks the same range.
    """

    __tablename__ = "leave_periods"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Not available"
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        CheckConstraint("date_from <= date_to", name="ck_leave_range_order"),
        Index("ix_leave_provider_range", "provider_id", "date_from", "date_to"),
    )


class ClinicEvent(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Clinic-wide blackout. Applies to every active provider while published
    and not soft-deleted. Instants are naive clinic-local times.
    """

    __tablename__ = "clinic_events"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    all_day: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_event_time_order"),
        Index("ix_event_live_range", "is_published", "is_deleted", "starts_at", "ends_at"),
    )

    @property
    def is_live(self) -> bool:
        return self.is_published and not self.is_deleted
