"""
Tests for per-type value coercion.
"""
import math
from datetime import date, datetime
from decimal import Decimal

import pytest

from sheetmap.domain.imports.coercion import coerce_phone_value, coerce_value
from sheetmap.domain.imports.models import FieldType
from sheetmap.domain.imports.policy import HeaderPolicy


@pytest.mark.parametrize("field_type", list(FieldType))
@pytest.mark.parametrize("empty", [None, "", "   ", float("nan")])
def test_empty_values_are_null_for_every_type(field_type, empty):
    assert coerce_value(empty, field_type) is None


class TestText:
    def test_strings_are_trimmed(self):
        assert coerce_value("  hello  ", FieldType.STRING) == "hello"
        assert coerce_value(" note ", FieldType.TEXT) == "note"

    def test_non_strings_are_stringified(self):
        assert coerce_value(123.0, FieldType.STRING) == "123"
        assert coerce_value(12.5, FieldType.STRING) == "12.5"
        assert coerce_value(42, FieldType.TEXT) == "42"
        assert coerce_value(True, FieldType.STRING) == "true"

    def test_unknown_types_pass_strings_through(self):
        assert coerce_value("POINT(1 2)", "geometry") == "POINT(1 2)"
        assert coerce_value(7, "uuid") == "7"
        assert coerce_value("x", None) == "x"


class TestInteger:
    def test_numbers_are_floored(self):
        assert coerce_value(3.7, FieldType.INTEGER) == 3
        assert coerce_value(-3.2, FieldType.INTEGER) == -4
        assert coerce_value(10, FieldType.INTEGER) == 10
        assert coerce_value(Decimal("5.9"), FieldType.INTEGER) == 5

    def test_strings_parse_leading_integer(self):
        assert coerce_value("42", FieldType.INTEGER) == 42
        assert coerce_value(" -7 ", FieldType.INTEGER) == -7
        assert coerce_value("12abc", FieldType.INTEGER) == 12
        assert coerce_value("3.7", FieldType.INTEGER) == 3

    def test_digit_grouping(self):
        assert coerce_value("1 500", FieldType.INTEGER) == 1500
        assert coerce_value("1\u00a0500\u00a0000", FieldType.INTEGER) == 1500000
        assert coerce_value("1,234,567", FieldType.INTEGER) == 1234567
        assert coerce_value("12 шт", FieldType.INTEGER) == 12

    def test_unparsable_is_null(self):
        assert coerce_value("abc", FieldType.INTEGER) is None
        assert coerce_value(float("inf"), FieldType.INTEGER) is None

    def test_big_integer_alias(self):
        assert coerce_value("9000000000", "bigInteger") == 9000000000


class TestFloat:
    def test_numbers_pass_through(self):
        assert coerce_value(2, FieldType.FLOAT) == 2
        assert coerce_value(2.5, FieldType.DECIMAL) == 2.5

    def test_strings_parse(self):
        assert coerce_value("3.14", FieldType.FLOAT) == pytest.approx(3.14)
        assert coerce_value("1e3", FieldType.FLOAT) == 1000.0
        assert coerce_value("12.5 kg", FieldType.DECIMAL) == 12.5

    def test_decimal_comma(self):
        assert coerce_value("3,5", FieldType.FLOAT) == 3.5

    def test_digit_grouping(self):
        assert coerce_value("1,234.5", FieldType.FLOAT) == 1234.5
        assert coerce_value("1 234,5", FieldType.DECIMAL) == 1234.5
        assert coerce_value("1.234,5", FieldType.FLOAT) == 1234.5
        assert coerce_value("-2 500.75 руб", FieldType.FLOAT) == -2500.75

    def test_unparsable_is_null(self):
        assert coerce_value("n/a", FieldType.FLOAT) is None


class TestBoolean:
    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "да", "Да", "yes", 1, 1.0, True])
    def test_truthy(self, raw):
        assert coerce_value(raw, FieldType.BOOLEAN) is True

    @pytest.mark.parametrize("raw", ["false", "no", "0", "нет", "maybe", 0, 2, False])
    def test_everything_else_is_false(self, raw):
        assert coerce_value(raw, FieldType.BOOLEAN) is False

    def test_truthy_tokens_are_configurable(self):
        policy = HeaderPolicy(truthy_tokens=["oui"])

        assert coerce_value("Oui", FieldType.BOOLEAN, policy) is True
        assert coerce_value("true", FieldType.BOOLEAN, policy) is False


class TestDates:
    @pytest.mark.parametrize("field_type", [FieldType.DATE, FieldType.DATETIME, FieldType.TIMESTAMP])
    def test_same_cascade_for_all_date_types(self, field_type):
        assert coerce_value("05.03.2024", field_type) == "2024-03-05T00:00:00.000Z"
        assert coerce_value(45292, field_type) == "2024-01-01T00:00:00.000Z"

    def test_native_dates(self):
        assert coerce_value(datetime(2024, 3, 5, 10, 30), FieldType.DATETIME) == "2024-03-05T10:30:00.000Z"
        assert coerce_value(date(2024, 3, 5), FieldType.DATE) == "2024-03-05T00:00:00.000Z"

    def test_unparsable_is_null(self):
        assert coerce_value("not a date", FieldType.DATE) is None
        assert coerce_value(0, FieldType.DATE) is None


class TestJson:
    def test_objects_pass_through(self):
        payload = {"tags": ["a", "b"]}
        assert coerce_value(payload, FieldType.JSON) is payload

    def test_strings_are_parsed(self):
        assert coerce_value('{"a": 1}', FieldType.JSON) == {"a": 1}
        assert coerce_value("[1, 2]", FieldType.JSON) == [1, 2]

    def test_invalid_json_falls_back_to_raw_string(self):
        assert coerce_value("{broken", FieldType.JSON) == "{broken"


class TestPhoneCoercion:
    def test_text_fields_get_digits(self):
        assert coerce_phone_value("8 (999) 123-45-67", FieldType.STRING) == "79991234567"
        assert coerce_phone_value(89991234567, "uuid") == "79991234567"

    def test_numeric_fields_get_numbers(self):
        assert coerce_phone_value("+7 999 123-45-67", FieldType.INTEGER) == 79991234567

    def test_other_types_ignore_phone_rule(self):
        assert coerce_phone_value("yes", FieldType.BOOLEAN) is True
