"""Unit tests for the loose cell parsing helpers."""
from datetime import date, datetime

import pandas as pd
import pytest

from firstlook.services.parsing import (
    is_missing,
    looks_date,
    looks_numeric,
    normalize_key,
    parse_date,
    parse_number,
    strided_sample,
    value_key,
)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "   ", float("nan"), pd.NaT])
def test_is_missing_true(value):
    """None, NaN and blank strings are missing."""
    assert is_missing(value)


@pytest.mark.unit
@pytest.mark.parametrize("value", [0, 0.0, False, "0", "n/a"])
def test_is_missing_false(value):
    """Zeros, False and placeholder text are real values."""
    assert not is_missing(value)


@pytest.mark.unit
@pytest.mark.parametrize("raw, expected", [
    ("$1,234.56", 1234.56),
    ("(123)", -123.0),
    ("45%", 45.0),
    ("1,234", 1234.0),
    ("1,234,567", 1234567.0),
    ("1234,5", 1234.5),
    ("1 234", 1234.0),
    ("€ 5", 5.0),
    (" 12", 12.0),
    ("1e3", 1000.0),
    ("-7.5", -7.5),
    (42, 42.0),
    (3.25, 3.25),
])
def test_parse_number_formats(raw, expected):
    """Loosely formatted numbers parse to floats."""
    assert parse_number(raw) == pytest.approx(expected)


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["A12", "12A", "abc", "1,2,3", "", None, True, float("inf"), "%"])
def test_parse_number_rejects(raw):
    """Mixed tokens, booleans and non-finite values are not numbers."""
    assert parse_number(raw) is None


@pytest.mark.unit
def test_looks_numeric():
    """looks_numeric mirrors parse_number."""
    assert looks_numeric("1,000")
    assert not looks_numeric("order-1")


@pytest.mark.unit
def test_parse_date_iso():
    """ISO strings parse to naive timestamps."""
    assert parse_date("2024-03-15") == pd.Timestamp(2024, 3, 15)
    assert parse_date("2024-03-15T10:30:00") == pd.Timestamp(2024, 3, 15, 10, 30)


@pytest.mark.unit
def test_parse_date_timezone_converted_to_utc():
    """Timezone-aware strings are converted to UTC and made naive."""
    parsed = parse_date("2024-01-01T10:00:00+02:00")
    assert parsed == pd.Timestamp(2024, 1, 1, 8, 0)
    assert parsed.tzinfo is None


@pytest.mark.unit
def test_parse_date_day_first_fallback():
    """Day-first dates with an impossible month still parse."""
    assert parse_date("15/03/2024") == pd.Timestamp(2024, 3, 15)


@pytest.mark.unit
def test_parse_date_native_values():
    """date and datetime objects are accepted."""
    assert parse_date(date(2024, 1, 2)) == pd.Timestamp(2024, 1, 2)
    assert parse_date(datetime(2024, 1, 2, 3, 4)) == pd.Timestamp(2024, 1, 2, 3, 4)


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["12345", 20240315, 1.5, "hello", "2024", "", None, "A-12-B"])
def test_parse_date_rejects(raw):
    """Plain numbers and free text are never dates."""
    assert parse_date(raw) is None
    assert not looks_date(raw)


@pytest.mark.unit
def test_value_key_canonical():
    """Equal values share a key regardless of representation."""
    assert value_key(3.0) == value_key(3) == "3"
    assert value_key(True) == "true"
    assert value_key(None) == ""
    assert value_key(2.5) == "2.5"
    assert value_key("US") == "US"


@pytest.mark.unit
def test_strided_sample_bounded_and_deterministic():
    """Samples never exceed the requested size and repeat exactly."""
    items = list(range(1000))
    sample = strided_sample(items, 250)
    assert len(sample) == 250
    assert sample == strided_sample(items, 250)
    assert sample[0] == 0 and sample[1] == 4


@pytest.mark.unit
def test_strided_sample_small_input_returned_whole():
    """Short inputs are returned as-is."""
    assert strided_sample([1, 2, 3], 250) == [1, 2, 3]


@pytest.mark.unit
def test_normalize_key():
    """Keys ignore case, spaces and punctuation."""
    assert normalize_key(" Order Value (EUR) ") == "ordervalueeur"
    assert normalize_key("order_value_EUR") == "ordervalueeur"
