# clinicslots/modules/providers/hours.py
"""
Working-hours declarations.

Provider profiles store one entry per weekday in two historical shapes:

- object: {"is_working": true, "start": "09:00", "end": "17:00", "slot_minutes": 30}
- legacy string: "09:00-17:00", "Not Available" or "-"

Everything is parsed here, once, into a WorkingWindow (or None for a day off).
Anything missing or unreadable falls back to the clinic default window.
"""
from __future__ import annotations

import logging
import re
from datetime import date, time
from typing import Any, Mapping

from clinicslots.core.config import settings
from clinicslots.modules.providers.schemas import WorkingWindow

logger = logging.getLogger(__name__)

_WEEKDAY_KEYS = (
    ("mon", "monday"),
    ("tue", "tuesday"),
    ("wed", "wednesday"),
    ("thu", "thursday"),
    ("fri", "friday"),
    ("sat", "saturday"),
    ("sun", "sunday"),
)

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_OFF_MARKERS = ("not", "off", "closed")


def parse_hhmm(value: str) -> time:
    m = _HHMM.match(value or "")
    if not m:
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    return time(int(m.group(1)), int(m.group(2)))


def default_window() -> WorkingWindow:
    return WorkingWindow(
        start=parse_hhmm(settings.DEFAULT_DAY_START),
        end=parse_hhmm(settings.DEFAULT_DAY_END),
        duration_minutes=settings.DEFAULT_SLOT_MINUTES,
    )


def _entry_for(declaration: Mapping[str, Any], weekday: int) -> Any:
    short, full = _WEEKDAY_KEYS[weekday]
    for key, value in declaration.items():
        if str(key).strip().lower() in (short, full):
            return value
    return None


def parse_day_entry(entry: Any, slot_minutes: int | None = None) -> WorkingWindow | None:
    """
    Parse a single weekday entry. Returns None when the provider is off.
    """
    duration = slot_minutes or settings.DEFAULT_SLOT_MINUTES

    if entry is None:
        return default_window()

    try:
        if isinstance(entry, str):
            raw = entry.strip()
            if raw == "-" or raw.lower().startswith(_OFF_MARKERS):
                return None
            start, end = raw.split("-", 1)
            return WorkingWindow(parse_hhmm(start), parse_hhmm(end), duration)

        if isinstance(entry, Mapping):
            if not entry.get("is_working", True):
                return None
            start = entry.get("start") or entry.get("startTime")
            end = entry.get("end") or entry.get("endTime")
            minutes = int(entry.get("slot_minutes") or duration)
            return WorkingWindow(parse_hhmm(start), parse_hhmm(end), minutes)
    except (ValueError, TypeError) as exc:
        logger.warning("Malformed working-hours entry %r (%s); using default window", entry, exc)
        return default_window()

    logger.warning("Unsupported working-hours entry %r; using default window", entry)
    return default_window()


def window_for_day(
    declaration: Mapping[str, Any] | None, day: date, slot_minutes: int | None = None
) -> WorkingWindow | None:
    """Working window for the weekday of `day`, None if the provider is off."""
    if not declaration:
        return default_window()
    return parse_day_entry(_entry_for(declaration, day.weekday()), slot_minutes)
