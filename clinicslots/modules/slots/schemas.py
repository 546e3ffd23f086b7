# clinicslots/modules/slots/schemas.py
from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class Provenance(str, Enum):
    GRID = "grid"
    FALLBACK = "fallback"
    NOT_WORKING = "not_working"


class SlotPublic(BaseModel):
    """
    A persisted grid row.
    """
    id: UUID
    provider_id: UUID
    slot_date: date
    start_time: time
    end_time: time
    time_slot: str
    duration_minutes: int
    status: str
    booking_ref: Optional[str] = None
    booking_subject: Optional[str] = None
    blocking_ref: Optional[str] = None
    blocking_reason: Optional[str] = None
    last_modified_by: Optional[str] = None

    class Config:
        from_attributes = True


class ResolvedSlot(BaseModel):
    """
    One bucket of a resolved day, with absolute instants.
    """
    start: datetime
    end: datetime
    time_slot: str
    status: str


class Availability(BaseModel):
    """
    Result of resolving a provider's day.
    - grounded=False means the list was synthesized without a grid and is
      advisory: booking re-derives everything from the grid.
    """
    provider_id: UUID
    day: date
    provenance: Provenance
    grounded: bool
    working_window: Optional[str] = None
    slot_minutes: Optional[int] = None
    slots: List[ResolvedSlot] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def bookable(self) -> List[ResolvedSlot]:
        return [s for s in self.slots if s.status == "available"]


class BlockResult(BaseModel):
    provider_id: UUID
    date_from: date
    date_to: date
    blocked: int = 0
    # booked rows left untouched
    skipped: int = 0
    # rows already carrying a block (re-run or another workflow's block)
    already_blocked: int = 0
    materialized: int = 0


class UnblockResult(BaseModel):
    provider_id: UUID
    date_from: date
    date_to: date
    unblocked: int = 0


class ProviderFailure(BaseModel):
    provider_id: UUID
    error: str


class FanOutReport(BaseModel):
    """
    Per-provider outcome of a clinic-wide block/unblock.
    """
    results: List[Union[BlockResult, UnblockResult]] = Field(default_factory=list)
    failures: List[ProviderFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class GenerateRangeRequest(BaseModel):
    date_from: date
    date_to: Optional[date] = None

    @field_validator("date_to")
    @classmethod
    def _to_after_from(cls, v, info):
        start = info.data.get("date_from")
        if v and start and v < start:
            raise ValueError("date_to must not be before date_from")
        return v


class GeneratedDays(BaseModel):
    provider_id: UUID
    days: List[date]
