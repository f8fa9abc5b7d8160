"""
Tests for time utilities.

Verifies epoch-millisecond conversions and that naive datetimes are read
as UTC for session bucketing.
"""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import patch

from sigmon_app.utils.time import (
    datetime_to_ms, format_ms, ms_to_datetime, now_ms, to_utc, utc_hour
)


class TestNowMs:
    """Test now_ms function."""

    def test_uses_wall_clock(self):
        """Should scale time.time() to milliseconds."""
        with patch('sigmon_app.utils.time.time.time', return_value=1700000000.1234):
            assert now_ms() == 1700000000123


class TestConversions:
    """Test ms/datetime conversions."""

    def test_ms_to_datetime_is_aware_utc(self):
        result = ms_to_datetime(0)
        assert result == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert result.tzinfo is timezone.utc

    def test_datetime_to_ms_round_trip(self):
        value = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert ms_to_datetime(datetime_to_ms(value)) == value

    def test_naive_datetime_treated_as_utc(self):
        naive = datetime(2024, 1, 15, 10, 30)
        aware = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert datetime_to_ms(naive) == datetime_to_ms(aware)

    def test_offset_datetime_converted(self):
        new_york = timezone(timedelta(hours=-5))
        value = datetime(2024, 1, 15, 5, 30, tzinfo=new_york)
        assert to_utc(value) == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_format_ms(self):
        assert format_ms(0) == "1970-01-01T00:00:00+00:00"


class TestUtcHour:
    """Test utc_hour function."""

    @pytest.mark.parametrize("value, expected", [
        (datetime(2024, 1, 15, 23, 59, tzinfo=timezone.utc), 23),
        (datetime(2024, 1, 15, 0, 0), 0),
        (datetime_to_ms(datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc)), 13),
    ])
    def test_hour_of_day(self, value, expected):
        assert utc_hour(value) == expected

    def test_none_means_now(self):
        assert 0 <= utc_hour(None) <= 23
