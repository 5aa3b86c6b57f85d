"""Tests for time utilities."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from greenhealth.utils.time_utils import (
    combine_date_time,
    format_due,
    format_relative_time,
    from_utc,
    parse_date,
    parse_time_of_day,
    to_utc,
)


def test_to_utc():
    """Test timezone conversion to UTC."""
    # Create a datetime in EDT (March is DST)
    dt = datetime(2026, 3, 15, 14, 30, tzinfo=ZoneInfo("America/New_York"))
    utc_dt = to_utc(dt, "America/New_York")

    assert utc_dt.tzinfo == ZoneInfo("UTC")
    # EDT is UTC-4, so 14:30 EDT = 18:30 UTC
    assert utc_dt.hour == 18


def test_from_utc():
    """Test timezone conversion from UTC."""
    dt = datetime(2026, 3, 15, 19, 30, tzinfo=ZoneInfo("UTC"))
    edt_dt = from_utc(dt, "America/New_York")

    assert edt_dt.tzinfo == ZoneInfo("America/New_York")
    assert edt_dt.hour == 15  # 19:30 UTC = 15:30 EDT


def test_combine_date_time():
    """Date and time of day are combined in the owner's timezone."""
    due = combine_date_time(date(2024, 1, 1), "08:00", "Europe/Berlin")

    assert due == datetime(2024, 1, 1, 7, 0, tzinfo=ZoneInfo("UTC"))


def test_parse_date():
    now = datetime(2024, 1, 1, 23, 30, tzinfo=ZoneInfo("UTC"))

    assert parse_date("today", "UTC", now) == date(2024, 1, 1)
    assert parse_date("Tomorrow", "UTC", now) == date(2024, 1, 2)
    assert parse_date("in 3 days", "UTC", now) == date(2024, 1, 4)
    assert parse_date("in 2 weeks", "UTC", now) == date(2024, 1, 15)
    assert parse_date("2024-03-15", "UTC", now) == date(2024, 3, 15)
    # Already Jan 2 in Tokyo
    assert parse_date("today", "Asia/Tokyo", now) == date(2024, 1, 2)

    with pytest.raises(ValueError):
        parse_date("someday", "UTC", now)


def test_parse_time_of_day():
    assert parse_time_of_day("8:05") == "08:05"
    assert parse_time_of_day("17:30") == "17:30"

    with pytest.raises(ValueError):
        parse_time_of_day("25:00")


def test_format_due():
    """Matches the reminder list format, e.g. "Jan 1, 2024 at 8:00 AM"."""
    dt = datetime(2024, 1, 1, 8, 0, tzinfo=ZoneInfo("UTC"))

    assert format_due(dt, "UTC") == "Jan 1, 2024 at 8:00 AM"
    assert format_due(dt, "America/New_York") == "Jan 1, 2024 at 3:00 AM"
    assert format_due(datetime(2024, 7, 4, 0, 15, tzinfo=ZoneInfo("UTC")), "UTC") == (
        "Jul 4, 2024 at 12:15 AM"
    )


def test_format_relative_time():
    """Test relative time formatting."""
    now = datetime(2026, 3, 15, 12, 0, tzinfo=ZoneInfo("UTC"))

    # Future
    future_5min = datetime(2026, 3, 15, 12, 5, tzinfo=ZoneInfo("UTC"))
    assert format_relative_time(future_5min, now) == "in 5 minutes"

    # Overdue
    overdue_2h = datetime(2026, 3, 15, 10, 0, tzinfo=ZoneInfo("UTC"))
    assert format_relative_time(overdue_2h, now) == "2 hours overdue"
