"""Unit tests for the insight generator."""
import pytest

from firstlook.services.insights import SEVERITY_ORDER, generate_insights, main_metric_column, suggest_questions
from firstlook.services.kpis import select_kpis
from firstlook.services.profiler import profile_dataset


def _insights(rows):
    profile = profile_dataset(rows)
    return generate_insights(profile, select_kpis(rows, profile))


@pytest.mark.unit
def test_outlier_skew_and_headline(skewed_rows):
    """An extreme value triggers an outlier warning on the main metric."""
    insights = _insights(skewed_rows)
    assert [i.id for i in insights] == ["outlier-amount", "headline-total-amount", "skew-amount"]

    outlier = insights[0]
    assert outlier.severity == "warning"
    assert outlier.action == "investigate"
    assert 'Main metric "amount"' in outlier.text
    assert "explain amount" in outlier.suggested_questions

    assert insights[1].text == "Headline: Total amount = 14,950 (useful for top-line reporting)."


@pytest.mark.unit
def test_dominant_category(concentrated_rows):
    """A category holding most rows is called out."""
    insight = next(i for i in _insights(concentrated_rows) if i.id == "dominance-country")
    assert '"US"' in insight.text
    assert "~80%" in insight.text
    assert insight.action == "segment"
    assert insight.column == "country"


@pytest.mark.unit
def test_missing_value_severity():
    """Heavily missing columns warn; moderately missing ones inform."""
    rows = [
        {"a": i, "b": i if i % 2 else None, "c": None if i < 3 else "x"}
        for i in range(10)
    ]
    by_id = {i.id: i for i in _insights(rows)}
    assert by_id["b-missing"].severity == "warning"
    assert "~50%" in by_id["b-missing"].text
    assert by_id["c-missing"].severity == "info"
    assert "a-missing" not in by_id


@pytest.mark.unit
def test_quality_insights():
    """Duplicates, empty and constant columns are reported."""
    rows = [{"a": 1, "gone": None, "flat": "k"}] * 3 + [{"a": 2, "gone": None, "flat": "k"}]
    by_id = {i.id: i for i in _insights(rows)}
    assert by_id["duplicates"].severity == "warning"
    assert "2 duplicate row(s)" in by_id["duplicates"].text
    assert "gone" in by_id["empty-cols"].text
    assert "flat" in by_id["constant-cols"].text


@pytest.mark.unit
def test_insights_sorted_deduplicated_and_capped():
    """At most six insights, warnings first, ids unique."""
    rows = [{f"col{j}": (i if i % 2 else None) for j in range(8)} for i in range(20)]
    insights = _insights(rows)
    assert len(insights) == 6
    ids = [i.id for i in insights]
    assert len(ids) == len(set(ids))
    ranks = [SEVERITY_ORDER[i.severity] for i in insights]
    assert ranks == sorted(ranks)


@pytest.mark.unit
def test_time_coverage_insight(mixed_rows):
    """A date column gives a coverage note."""
    coverage = next(i for i in _insights(mixed_rows) if i.id == "date-coverage")
    assert "2023-01-01 → 2023-12-24" in coverage.text
    assert "Enough granularity" in coverage.text


@pytest.mark.unit
def test_main_metric_column(skewed_rows, concentrated_rows):
    """The main metric follows the sum KPI."""
    profile = profile_dataset(skewed_rows)
    assert main_metric_column(profile, select_kpis(skewed_rows, profile)) == "amount"

    profile = profile_dataset(concentrated_rows)
    assert main_metric_column(profile, select_kpis(concentrated_rows, profile)) is None


@pytest.mark.unit
def test_suggest_questions():
    """Suggestions are parameterized by column and free of duplicates."""
    questions = suggest_questions("amount", "outlier")
    assert questions[0] == "explain amount"
    assert len(questions) == len(set(questions))
    assert suggest_questions(None, "missing")[-1] == "summarise dataset"
    assert suggest_questions("x", "unknown") == []
