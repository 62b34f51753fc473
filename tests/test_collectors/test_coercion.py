"""Tests for cell value coercion."""

import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pgbouncer_exporter.collectors.coercion import to_float


class TestNumericValues:
    """Integers, floats and decimals convert exactly."""

    @pytest.mark.parametrize("value, expected", [
        (0, 0.0),
        (42, 42.0),
        (-7, -7.0),
        (3.25, 3.25),
        (Decimal("12.5"), 12.5),
        (True, 1.0),
    ])
    def test_numeric(self, value, expected):
        assert to_float(value) == (expected, True)


class TestTimestamps:
    """Timestamps convert to whole seconds since the epoch."""

    def test_aware_timestamp(self):
        value = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert to_float(value) == (1577836800.0, True)

    def test_naive_timestamp_is_utc(self):
        assert to_float(datetime(2020, 1, 1)) == (1577836800.0, True)

    def test_fractional_seconds_truncated(self):
        value = datetime(2020, 1, 1, 0, 0, 1, 900000, tzinfo=timezone.utc)
        assert to_float(value) == (1577836801.0, True)

    def test_other_timezone(self):
        value = datetime(2020, 1, 1, 2, tzinfo=timezone(timedelta(hours=2)))
        assert to_float(value) == (1577836800.0, True)


class TestTextValues:
    """Text and raw bytes are parsed as base-10 floats."""

    def test_text_float(self):
        assert to_float("42.5") == (42.5, True)

    def test_text_integer(self):
        assert to_float("100") == (100.0, True)

    def test_text_exponent(self):
        assert to_float("1e3") == (1000.0, True)

    def test_bytes(self):
        assert to_float(b"7") == (7.0, True)

    def test_memoryview(self):
        assert to_float(memoryview(b"2.5")) == (2.5, True)

    @pytest.mark.parametrize("value", ["abc", "", " 42", "42 ", "1_000", "12ms", b"abc", b"\xff\xfe"])
    def test_unparseable(self, value):
        result, ok = to_float(value)
        assert math.isnan(result)
        assert ok is False


def test_null_is_nan_and_ok():
    """NULL is a legitimate missing value, not an error."""
    result, ok = to_float(None)
    assert math.isnan(result)
    assert ok is True


@pytest.mark.parametrize("value", [object(), [1], {"a": 1}, timedelta(seconds=1)])
def test_unsupported_type(value):
    """Unsupported representations fail."""
    result, ok = to_float(value)
    assert math.isnan(result)
    assert ok is False
