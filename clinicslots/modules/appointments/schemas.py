# clinicslots/modules/appointments/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentCreateRequest(BaseModel):
    """
    Payload to create an appointment.
    - starts_at may be naive (clinic-local) or carry an offset.
    - the slot length comes from the provider's grid, not the client.
    """
    provider_id: UUID
    subject_ref: str = Field(..., min_length=1, max_length=64)
    starts_at: datetime
    reason: Optional[str] = Field(None, max_length=255)


class AppointmentRescheduleRequest(BaseModel):
    starts_at: datetime
    # Moving to another provider is allowed
    provider_id: Optional[UUID] = None


class AppointmentPublic(BaseModel):
    """
    DTO returns a detailed appointment.
    """
    id: UUID
    provider_id: UUID
    subject_ref: str
    starts_at: datetime
    duration_minutes: int
    reason: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class AppointmentBooked(BaseModel):
    """
    The appointment with the grid bucket it holds.
    """
    appointment: AppointmentPublic
    slot_date: date
    time_slot: str
