# tests/test_hours.py
from datetime import time

import pytest

from clinicslots.modules.providers.hours import parse_day_entry, parse_hhmm, window_for_day
from clinicslots.modules.providers.schemas import WorkingWindow
from tests.conftest import HOURS, MONDAY, SUNDAY, TUESDAY


def test_object_entry():
    w = parse_day_entry({"is_working": True, "start": "08:30", "end": "12:00", "slot_minutes": 15})
    assert w == WorkingWindow(time(8, 30), time(12, 0), 15)
    assert w.label == "08:30-12:00"


def test_legacy_string_entry_uses_default_slot_length():
    w = parse_day_entry("09:00-17:00")
    assert (w.start, w.end, w.duration_minutes) == (time(9), time(17), 30)


@pytest.mark.parametrize("entry", ["Not Available", "-", "off", "Closed", {"is_working": False}])
def test_day_off_markers(entry):
    assert parse_day_entry(entry) is None


def test_camel_case_keys_accepted():
    w = parse_day_entry({"startTime": "10:00", "endTime": "11:00"})
    assert (w.start, w.end) == (time(10), time(11))


@pytest.mark.parametrize("entry", ["nine to five", {"start": "25:00", "end": "26:00"}, 42])
def test_malformed_entry_falls_back_to_default(entry):
    assert parse_day_entry(entry) == WorkingWindow(time(9), time(17), 30)


def test_inverted_window_falls_back_to_default():
    assert parse_day_entry("17:00-09:00") == WorkingWindow(time(9), time(17), 30)


def test_window_for_day_by_weekday():
    assert window_for_day(HOURS, MONDAY).end == time(12)
    assert window_for_day(HOURS, TUESDAY) == WorkingWindow(time(9), time(10), 30)
    assert window_for_day(HOURS, SUNDAY) is None


def test_full_and_capitalized_weekday_keys():
    assert window_for_day({"Monday": "10:00-11:00"}, MONDAY).start == time(10)
    assert window_for_day({"MON": "10:00-11:00"}, MONDAY).start == time(10)


def test_missing_declaration_uses_default_window():
    assert window_for_day({}, MONDAY) == WorkingWindow(time(9), time(17), 30)
    assert window_for_day(None, MONDAY) == WorkingWindow(time(9), time(17), 30)


def test_parse_hhmm_rejects_garbage():
    with pytest.raises(ValueError):
        parse_hhmm("9am")


def test_window_covers():
    w = WorkingWindow(time(9), time(12), 30)
    assert w.covers(time(9), time(9, 30))
    assert w.covers(time(11, 30), time(12))
    assert not w.covers(time(11, 45), time(12, 15))
