# clinicslots/modules/calendar/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clinicslots.modules.slots.schemas import BlockResult, FanOutReport, UnblockResult


class LeaveCreateRequest(BaseModel):
    provider_id: UUID
    date_from: date
    date_to: date
    reason: str = Field("Not available", max_length=255)

    @field_validator("date_to")
    @classmethod
    def _to_after_from(cls, v, info):
        start = info.data.get("date_from")
        if start and v < start:
            raise ValueError("date_to must not be before date_from")
        return v


class LeaveUpdateRequest(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    reason: Optional[str] = Field(None, max_length=255)


class LeavePublic(BaseModel):
    id: UUID
    provider_id: UUID
    date_from: date
    date_to: date
    reason: str
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveOutcome(BaseModel):
    """
    The leave plus what happened to the grid.
    """
    leave: LeavePublic
    blocked: Optional[BlockResult] = None
    unblocked: Optional[UnblockResult] = None


class EventCreateRequest(BaseModel):
    """
    Instants are clinic-local. With all_day the times are ignored and the
    event covers whole days from starts_at's date to ends_at's date.
    """
    title: str = Field(..., min_length=1, max_length=200)
    starts_at: datetime
    ends_at: datetime
    all_day: bool = False
    publish: bool = False

    @field_validator("ends_at")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("starts_at")
        if start and v < start:
            raise ValueError("ends_at must not be before starts_at")
        return v


class EventUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    all_day: Optional[bool] = None


class EventPublic(BaseModel):
    id: UUID
    title: str
    starts_at: datetime
    ends_at: datetime
    all_day: bool
    is_published: bool
    is_deleted: bool
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EventOutcome(BaseModel):
    event: EventPublic
    reports: List[FanOutReport] = Field(default_factory=list)
