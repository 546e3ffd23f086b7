# clinicslots/modules/slots/errors.py
from __future__ import annotations


# Routers map these to HTTP status codes
class SchedulingError(Exception):
    """
    Base class for typed scheduling failures.
    """


class ProviderNotFound(SchedulingError):
    """
    No provider with that id
    """


class ProviderInactive(SchedulingError):
    """
    Provider exists but is deactivated
    """


class SlotNotFound(SchedulingError):
    """
    The requested instant does not fall inside any bucket of the day
    """


class SlotConflict(SchedulingError):
    """
    The conditional write lost: the bucket is no longer available.
    Callers pick another time, they do not retry the same instant.
    """

    def __init__(self, message: str, *, status: str | None = None):
        super().__init__(message)
        self.status = status


class BookingNotFound(SchedulingError):
    """
    No booked bucket carries that appointment id (already cancelled)
    """
