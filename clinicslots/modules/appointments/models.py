# clinicslots/modules/appointments/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinicslots.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class ApptStatus(PyEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


LIVE_STATUSES = (ApptStatus.SCHEDULED.value, ApptStatus.COMPLETED.value)


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Minimal appointment record. The slot grid references it by id only.
    """

    __tablename__ = "appointments"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("providers.id", ondelete="RESTRICT"),
        nullable=False,
    )
    subject_ref: Mapped[str] = mapped_column(String(64), nullable=False)

    # Naive clinic-local instant
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ApptStatus.SCHEDULED.value,
        server_default=ApptStatus.SCHEDULED.value,
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        Index("ix_appt_provider_start", "provider_id", "starts_at"),
    )
