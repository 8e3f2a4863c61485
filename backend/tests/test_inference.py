"""
Unit tests for type inference and identifier detection.
"""
import pytest

from firstlook.core.schemas import CategoricalColumnProfile, NumericColumnProfile, TopValue
from firstlook.services.identifiers import (
    is_identifier_like,
    is_likely_identifier,
    is_name_list,
    is_numeric_identifier,
    name_hints_identifier,
)
from firstlook.services.type_inference import infer_column_type


@pytest.mark.unit
@pytest.mark.parametrize("name", ["id", "ID", "order_id", "Customer Id", "uuid", "row_guid", "api_key", "password_hash"])
def test_name_hints_identifier(name):
    """Key-like column names are recognized."""
    assert name_hints_identifier(name)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["amount", "paid", "country", "video", None])
def test_name_without_identifier_hint(name):
    """Ordinary names do not trigger the hint."""
    assert not name_hints_identifier(name)


@pytest.mark.unit
def test_token_values_are_identifiers():
    """Unique compact tokens are identifiers."""
    values = [f"AB{i:04d}X" for i in range(50)]
    assert is_likely_identifier(values)


@pytest.mark.unit
def test_repeated_values_are_not_identifiers():
    """Low uniqueness rules out an identifier."""
    values = ["red", "green", "blue"] * 20
    assert not is_likely_identifier(values)


@pytest.mark.unit
def test_unique_numbers_and_dates_are_not_token_identifiers():
    """Amounts and timestamps are unique without being identifiers."""
    amounts = [f"{i * 1.37:.2f}" for i in range(1, 60)]
    dates = [f"2024-01-{d:02d}" for d in range(1, 29)]
    assert not is_likely_identifier(amounts)
    assert not is_likely_identifier(dates)


@pytest.mark.unit
def test_too_few_values_are_not_identifiers():
    """Short columns are never flagged by content."""
    assert not is_likely_identifier([f"AB{i:04d}X" for i in range(10)])


@pytest.mark.unit
def test_sequential_numbers_are_numeric_identifiers():
    """1..N and evenly stepped runs are index-like."""
    assert is_numeric_identifier("seq", [float(i) for i in range(1, 51)])
    assert is_numeric_identifier("ref", [float(1000 + 10 * i) for i in range(60)])


@pytest.mark.unit
def test_measure_with_extreme_value_is_not_numeric_identifier():
    """A unique integer measure with a wide range is kept as a measure."""
    numbers = [float(v) for v in list(range(1, 100)) + [10000]]
    assert not is_numeric_identifier("amount", numbers)


@pytest.mark.unit
def test_fractional_or_repeated_numbers_are_not_identifiers():
    """Fractional values or repeats rule out a numeric identifier."""
    assert not is_numeric_identifier("price", [i + 0.5 for i in range(60)])
    assert not is_numeric_identifier("units", [float(i % 10) for i in range(60)])


@pytest.mark.unit
def test_numeric_identifier_needs_enough_values():
    """Short columns only match on the name hint."""
    short = [float(i) for i in range(1, 11)]
    assert not is_numeric_identifier("n", short)
    assert is_numeric_identifier("row_id", short)


@pytest.mark.unit
def test_identifier_like_numeric_profile():
    """Dense unique integer ranges are identifier-like; wide ones are not."""
    dense = NumericColumnProfile(
        missing=0, unique_count=100, non_missing_count=100, min=1, max=100, integer_valued=True
    )
    wide = NumericColumnProfile(
        missing=0, unique_count=100, non_missing_count=100, min=1, max=10000, integer_valued=True
    )
    assert is_identifier_like("n", dense)
    assert not is_identifier_like("amount", wide)


@pytest.mark.unit
def test_unique_fractional_measure_is_not_identifier_like():
    """A fully unique float measure keeps its KPIs and charts."""
    prices = NumericColumnProfile(
        missing=0, unique_count=100, non_missing_count=100, min=1.25, max=99.75, integer_valued=False
    )
    assert not is_identifier_like("price", prices)
    assert is_identifier_like("price_id", prices)


@pytest.mark.unit
def test_identifier_like_categorical_profile():
    """Flagged or near-unique categorical columns are identifier-like."""
    flagged = CategoricalColumnProfile(missing=0, unique_count=3, non_missing_count=100, inferred_as_identifier=True)
    unique = CategoricalColumnProfile(missing=0, unique_count=95, non_missing_count=100)
    few = CategoricalColumnProfile(missing=0, unique_count=5, non_missing_count=100)
    assert is_identifier_like("label", flagged)
    assert is_identifier_like("label", unique)
    assert not is_identifier_like("label", few)
    assert is_identifier_like("order_id", None)
    assert not is_identifier_like("label", None)


@pytest.mark.unit
def test_name_list_detection():
    """Long lists of mostly unique names are name lists."""
    names = CategoricalColumnProfile(
        missing=0, unique_count=60, non_missing_count=100,
        top_values=[TopValue(value="Ann", count=3, pct=3.0)],
    )
    segments = CategoricalColumnProfile(
        missing=0, unique_count=4, non_missing_count=100,
        top_values=[TopValue(value="A", count=40, pct=40.0)],
    )
    assert is_name_list(names)
    assert not is_name_list(segments)


@pytest.mark.unit
def test_infer_numeric():
    """Mostly numeric columns are numeric."""
    values = [str(i) for i in range(50)] + ["n/a"] * 5
    assert infer_column_type(values, "score") == "numeric"


@pytest.mark.unit
def test_infer_date():
    """Date-shaped text is a date."""
    values = [f"2024-02-{d:02d}" for d in range(1, 29)]
    assert infer_column_type(values, "created") == "date"


@pytest.mark.unit
def test_infer_text():
    """Long free text is text."""
    values = [
        "The delivery arrived late but the support team was helpful.",
        "Great product, would definitely buy it again next season.",
    ] * 15
    assert infer_column_type(values, "comment") == "text"


@pytest.mark.unit
def test_infer_categorical_and_identifier():
    """Short repeated labels are categorical; key names are identifiers."""
    assert infer_column_type(["red", "green", "blue"] * 10, "color") == "categorical"
    assert infer_column_type(["a", "b"], "user_id") == "identifier"
    assert infer_column_type([f"AB{i:04d}X" for i in range(40)], "ref") == "identifier"


@pytest.mark.unit
def test_infer_empty_column():
    """An all-missing column falls back to categorical."""
    assert infer_column_type([None, "", "  "], "blank") == "categorical"
