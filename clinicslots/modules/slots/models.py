# clinicslots/modules/slots/models.py
from __future__ import annotations

import uuid
from datetime import date, time
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from clinicslots.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class SlotStatus(PyEnum):
    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED_LEAVE = "blocked_leave"
    BLOCKED_EVENT = "blocked_event"
    BLOCKED_OTHER = "blocked_other"

    @property
    def is_blocked(self) -> bool:
        return self.value.startswith("blocked_")


class BlockKind(PyEnum):
    LEAVE = "leave"
    EVENT = "event"
    OTHER = "other"

    @property
    def status(self) -> SlotStatus:
        return SlotStatus(f"blocked_{self.value}")


BLOCKED_STATUSES = tuple(s.value for s in SlotStatus if s.is_blocked)


class Slot(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    One fixed-length bucket of one provider's day. Ground truth for bookability.
    """

    __tablename__ = "slots"
    __repr_attrs__ = ("provider_id", "slot_date", "start_time", "status", "booking_ref", "blocking_ref")

    provider_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SlotStatus.AVAILABLE.value,
        server_default=SlotStatus.AVAILABLE.value,
    )

    # Set iff status == booked
    booking_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    booking_subject: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    booking_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Set iff status is blocked_*
    blocking_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    blocking_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    last_modified_by: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_slot_time_order"),
        CheckConstraint(
            "status IN ('available', 'booked', 'blocked_leave', 'blocked_event', 'blocked_other')",
            name="ck_slot_status_valid",
        ),
        CheckConstraint(
            "(status = 'available' AND booking_ref IS NULL AND blocking_ref IS NULL)"
            " OR (status = 'booked' AND booking_ref IS NOT NULL AND blocking_ref IS NULL)"
            " OR (status IN ('blocked_leave', 'blocked_event', 'blocked_other')"
            " AND booking_ref IS NULL AND blocking_ref IS NOT NULL)",
            name="ck_slot_refs_exclusive",
        ),
        # One row per bucket
        UniqueConstraint(
            "provider_id", "slot_date", "start_time", "end_time",
            name="uq_slot_provider_day_bucket",
        ),
        Index("ix_slot_provider_day_status", "provider_id", "slot_date", "status"),
        Index("ix_slot_booking_ref", "booking_ref"),
    )

    @property
    def time_slot(self) -> str:
        """Legacy "HH:MM-HH:MM" label."""
        return f"{self.start_time:%H:%M}-{self.end_time:%H:%M}"

    @property
    def status_enum(self) -> SlotStatus:
        return SlotStatus(self.status)
