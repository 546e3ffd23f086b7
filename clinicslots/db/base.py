# clinicslots/db/base.py
from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for the scheduling tables."""


class UUIDPKMixin:
    """UUID (v4) primary key."""

    id: Mapped[uuid.UUID] = mapped_column(default=uuid.uuid4, primary_key=True)


class TimestampMixin:
    """created_at / updated_at filled by the database."""

    created_at: Mapped[dt.datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )


class ReprMixin:
    """
    __repr__ over `__repr_attrs__` (every column when empty).

    Attributes that are not loaded print as `...`: touching them on an
    AsyncSession would need an implicit lazy load, which is not allowed.
    """

    __repr_attrs__: tuple[str, ...] = ()

    def __repr__(self) -> str:
        state = inspect(self)
        keys = self.__repr_attrs__ or tuple(state.mapper.columns.keys())
        parts = [
            f"{k}=..." if k in state.unloaded else f"{k}={getattr(self, k)!r}"
            for k in keys
        ]
        return f"<{type(self).__name__} {' '.join(parts)}>"


__all__ = ["Base", "UUIDPKMixin", "TimestampMixin", "ReprMixin"]
