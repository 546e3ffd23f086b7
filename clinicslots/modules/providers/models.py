# clinicslots/modules/providers/models.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from clinicslots.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    actor: Mapped[str] = mapped_column(String(120), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    details: Mapped[Optional[str]] = mapped_column()
    timestamp: Mapped[dt.datetime] = mapped_column(server_default=func.now())

    __table_args__ = (Index("ix_audit_logs_timestamp", "timestamp"),)


class Provider(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A bookable clinician. Profile management lives elsewhere; the scheduling
    core only reads `is_active` and the working-hours declaration.
    """

    __tablename__ = "providers"
    __repr_attrs__ = ("code", "display_name", "is_active")

    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    # Weekday -> {"is_working", "start", "end", "slot_minutes"} or legacy "09:00-17:00"
    working_hours: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    __table_args__ = (Index("ix_providers_active", "is_active"),)
