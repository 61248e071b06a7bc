"""
Unit tests for fixed-offset calendar utilities.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from routine_sync.core.exceptions import ValidationError
from routine_sync.models.enums import Weekday
from routine_sync.utils.datetime_utils import (
    add_days,
    fixed_zone,
    parse_iso_date,
    to_iso_date,
    today_start,
    weekday_of,
)

SEOUL = fixed_zone(540)


class TestTodayStart:
    """Tests for today_start."""

    def test_returns_local_midnight(self):
        now = datetime(2024, 1, 19, 3, 0, tzinfo=timezone.utc)  # 12:00 local
        result = today_start(SEOUL, now)
        assert result == datetime(2024, 1, 19, 0, 0, tzinfo=SEOUL)
        assert result.utcoffset() == timedelta(hours=9)

    def test_late_utc_evening_is_next_local_day(self):
        """23:00 UTC is already the next day at +09:00."""
        now = datetime(2024, 1, 19, 23, 0, tzinfo=timezone.utc)
        assert today_start(SEOUL, now) == datetime(2024, 1, 20, 0, 0, tzinfo=SEOUL)

    def test_naive_now_is_taken_as_utc(self):
        now = datetime(2024, 1, 19, 16, 0)  # 01:00 on the 20th locally
        assert today_start(SEOUL, now).date() == date(2024, 1, 20)

    def test_uses_configured_zone_by_default(self):
        now = datetime(2024, 1, 19, 15, 30, tzinfo=timezone.utc)
        assert today_start(now=now).utcoffset() == timedelta(minutes=540)


class TestCalendarArithmetic:
    """Tests for add_days, to_iso_date and weekday_of."""

    def test_add_days_crosses_month_and_year(self):
        start = datetime(2023, 12, 29, tzinfo=SEOUL)
        assert to_iso_date(add_days(start, 4), SEOUL) == "2024-01-02"

    def test_add_days_over_leap_day(self):
        start = datetime(2024, 2, 28, tzinfo=SEOUL)
        assert to_iso_date(add_days(start, 1), SEOUL) == "2024-02-29"
        assert to_iso_date(add_days(start, 2), SEOUL) == "2024-03-01"

    def test_to_iso_date_uses_zone_local_fields(self):
        instant = datetime(2024, 1, 19, 20, 0, tzinfo=timezone.utc)
        assert to_iso_date(instant, SEOUL) == "2024-01-20"
        assert to_iso_date(instant, timezone.utc) == "2024-01-19"

    def test_to_iso_date_is_zero_padded(self):
        assert to_iso_date(datetime(2024, 3, 5, tzinfo=SEOUL), SEOUL) == "2024-03-05"

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2024, 1, 14), Weekday.SUNDAY),
            (date(2024, 1, 15), Weekday.MONDAY),
            (date(2024, 1, 19), Weekday.FRIDAY),
            (date(2024, 1, 20), Weekday.SATURDAY),
        ],
    )
    def test_weekday_of(self, day, expected):
        instant = datetime(day.year, day.month, day.day, 12, tzinfo=SEOUL)
        assert weekday_of(instant, SEOUL) == expected

    def test_weekday_of_follows_zone(self):
        """Friday 20:00 UTC is Saturday at +09:00."""
        instant = datetime(2024, 1, 19, 20, 0, tzinfo=timezone.utc)
        assert weekday_of(instant, SEOUL) == Weekday.SATURDAY
        assert weekday_of(instant, timezone.utc) == Weekday.FRIDAY


class TestParseIsoDate:
    """Tests for parse_iso_date."""

    def test_valid_date(self):
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2023-02-29", "2024-13-01", "tomorrow", ""])
    def test_invalid_date_raises(self, value):
        with pytest.raises(ValidationError):
            parse_iso_date(value)
