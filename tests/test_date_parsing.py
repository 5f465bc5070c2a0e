"""
Tests for spreadsheet date parsing.
"""
from datetime import date, datetime, timedelta, timezone

import pandas as pd
import pytest

from sheetmap.utils.date import (
    from_spreadsheet_serial,
    parse_date_value,
    parse_dotted_date,
    parse_flexible_datetime,
    to_iso_string,
)


class TestSpreadsheetSerial:
    def test_serial_one_is_last_day_of_1899(self):
        assert parse_date_value(1) == "1899-12-31T00:00:00.000Z"

    def test_modern_serial(self):
        assert parse_date_value(45292) == "2024-01-01T00:00:00.000Z"
        assert parse_date_value(45356) == "2024-03-05T00:00:00.000Z"

    def test_fractional_serial_carries_time(self):
        assert parse_date_value(45292.5) == "2024-01-01T12:00:00.000Z"

    def test_formula(self):
        expected = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(
            milliseconds=(45000 - 25569) * 86400 * 1000
        )
        assert from_spreadsheet_serial(45000) == expected

    @pytest.mark.parametrize("value", [0, -3, 0.5, float("nan"), float("inf"), True])
    def test_non_serial_numbers(self, value):
        assert parse_date_value(value) is None


class TestStrings:
    def test_dotted_day_first(self):
        assert parse_date_value("05.03.2024") == "2024-03-05T00:00:00.000Z"

    def test_iso_strings(self):
        assert parse_date_value("2024-03-05") == "2024-03-05T00:00:00.000Z"
        assert parse_date_value("2024-09-04T23:09:18Z") == "2024-09-04T23:09:18.000Z"

    def test_unambiguous_slash_dates(self):
        assert parse_date_value("20/10/2025") == "2025-10-20T00:00:00.000Z"
        assert parse_date_value("10/20/2025") == "2025-10-20T00:00:00.000Z"

    def test_strict_dotted_fallback_ignores_suffix(self):
        assert parse_date_value("05.03.2024 г.") == "2024-03-05T00:00:00.000Z"

    @pytest.mark.parametrize("word", ["now", "today", " Today ", "TOMORROW", "yesterday"])
    def test_relative_words_are_not_dates(self, word):
        assert parse_date_value(word) is None
        assert parse_flexible_datetime(word) is None

    def test_garbage_is_none(self):
        assert parse_date_value("not a date") is None
        assert parse_date_value("   ") is None


class TestNativeValues:
    def test_datetime_and_date(self):
        assert parse_date_value(datetime(2024, 3, 5, 8, 15, 30, 250000)) == "2024-03-05T08:15:30.250Z"
        assert parse_date_value(date(2024, 3, 5)) == "2024-03-05T00:00:00.000Z"

    def test_aware_values_converted_to_utc(self):
        moscow = timezone(timedelta(hours=3))
        assert parse_date_value(datetime(2024, 3, 5, 3, 0, tzinfo=moscow)) == "2024-03-05T00:00:00.000Z"

    def test_pandas_timestamp(self):
        assert parse_date_value(pd.Timestamp("2024-03-05 10:00")) == "2024-03-05T10:00:00.000Z"


def test_parse_dotted_date_rejects_impossible_dates():
    assert parse_dotted_date("31.02.2024") is None
    assert parse_dotted_date("5.3.2024") is None
    assert parse_dotted_date("05.03.2024") == datetime(2024, 3, 5, tzinfo=timezone.utc)


def test_parse_flexible_datetime_returns_utc_timestamp():
    parsed = parse_flexible_datetime("2024-03-05 10:00")

    assert isinstance(parsed, pd.Timestamp)
    assert str(parsed.tz) == "UTC"
    assert to_iso_string(parsed) == "2024-03-05T10:00:00.000Z"


def test_to_iso_string_rejects_non_dates():
    assert to_iso_string("2024-03-05") is None
    assert to_iso_string(None) is None
