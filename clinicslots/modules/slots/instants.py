# clinicslots/modules/slots/instants.py
from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from clinicslots.core.config import settings


@lru_cache
def clinic_zone() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TIMEZONE)


def to_clinic_local(instant: datetime) -> datetime:
    """
    Naive clinic-local datetime truncated to the minute.

    Grid buckets are wall-clock times of the clinic; aware instants are
    converted first, naive ones are taken as already local.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(clinic_zone()).replace(tzinfo=None)
    return instant.replace(second=0, microsecond=0)
