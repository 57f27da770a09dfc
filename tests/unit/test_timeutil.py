"""Tests for ledgerpulse/timeutil.py"""

from datetime import date, datetime, timezone

import pytest
import pytz

from ledgerpulse.timeutil import (
    date_key,
    day_bounds,
    month_bounds,
    parse_date_key,
    parse_timestamp,
    subtract_months,
    to_storage,
)

SP = pytz.timezone("America/Sao_Paulo")


class TestParseTimestamp:
    def test_iso_with_z(self):
        assert parse_timestamp("2025-03-15T12:00:00Z") == datetime(2025, 3, 15, 12, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1742050800000) == datetime(2025, 3, 15, 15, tzinfo=timezone.utc)

    def test_date_becomes_midnight(self):
        assert parse_timestamp(date(2025, 3, 15)) == datetime(2025, 3, 15)

    @pytest.mark.parametrize("value", [None, "", "not a date", object()])
    def test_unusable_values(self, value):
        assert parse_timestamp(value) is None


class TestDateKeys:
    def test_date_key_in_business_timezone(self):
        instant = datetime(2025, 3, 15, 2, 0, tzinfo=timezone.utc)
        assert date_key(instant, SP) == "2025-03-14"
        assert date_key(instant, pytz.utc) == "2025-03-15"

    def test_naive_datetime_is_business_local(self):
        assert date_key(datetime(2025, 3, 15, 23, 0), SP) == "2025-03-15"

    def test_parse_date_key_ignores_time_part(self):
        assert parse_date_key("2025-03-15T10:00:00") == date(2025, 3, 15)

    def test_parse_date_key_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_date_key("15/03/2025")


class TestBounds:
    def test_day_bounds(self):
        start, end = day_bounds(date(2025, 3, 15), SP)
        assert to_storage(start) == "2025-03-15T03:00:00.000000+00:00"
        assert to_storage(end) == "2025-03-16T02:59:59.999000+00:00"

    def test_month_bounds_december(self):
        start, end = month_bounds(2024, 12, SP)
        assert start.date() == date(2024, 12, 1)
        assert end.date() == date(2024, 12, 31)

    def test_month_bounds_february_leap_year(self):
        _, end = month_bounds(2024, 2, SP)
        assert end.date() == date(2024, 2, 29)

    def test_storage_strings_sort_chronologically(self):
        early = to_storage(datetime(2025, 3, 15, 9, 5), SP)
        late = to_storage(datetime(2025, 3, 15, 10, 0), SP)
        assert early < late


class TestSubtractMonths:
    def test_crosses_year(self):
        assert subtract_months(datetime(2025, 3, 15), 12) == datetime(2024, 3, 15)

    def test_clamps_day(self):
        assert subtract_months(datetime(2025, 3, 31), 1) == datetime(2025, 2, 28)
