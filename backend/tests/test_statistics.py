"""Unit tests for the numeric helpers."""
import math

import pytest

from firstlook.services.statistics import (
    choose_bins,
    compute_box,
    compute_histogram,
    correlation_matrix,
    mean,
    median,
    pearson,
    quantile_sorted,
    sample_stdev,
)


@pytest.mark.unit
def test_quantiles_interpolate():
    """Quantiles interpolate linearly between neighbours."""
    values = [1, 2, 3, 4]
    assert quantile_sorted(values, 0.5) == pytest.approx(2.5)
    assert quantile_sorted(values, 0.25) == pytest.approx(1.75)
    assert quantile_sorted([], 0.5) is None
    assert quantile_sorted([7], 0.9) == 7


@pytest.mark.unit
def test_median_even_and_odd():
    """Median averages the middle pair for even counts."""
    assert median([1, 2, 3, 4]) == 2.5
    assert median([1, 2, 3]) == 2
    assert median([]) is None


@pytest.mark.unit
def test_sample_stdev():
    """Sample standard deviation uses N-1."""
    assert sample_stdev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.1381, rel=1e-3)
    assert sample_stdev([5]) is None


@pytest.mark.unit
def test_pearson_bounds_and_guards():
    """Perfect relationships hit the bounds; degenerate input gives None."""
    xs = list(range(10))
    assert pearson(xs, [2 * x + 1 for x in xs]) == pytest.approx(1.0)
    assert pearson(xs, [-x for x in xs]) == pytest.approx(-1.0)
    assert pearson(xs, [3] * 10) is None
    assert pearson(xs[:5], xs[:5]) is None
    assert pearson(xs, xs[:9]) is None


@pytest.mark.unit
def test_choose_bins():
    """Bin count grows with the number of values."""
    assert choose_bins(20) == 8
    assert choose_bins(100) == 10
    assert choose_bins(500) == 12
    assert choose_bins(5000) == 14


@pytest.mark.unit
def test_histogram_counts_every_value():
    """Counts sum to the total and the maximum lands in the last bin."""
    values = list(range(1, 101))
    hist = compute_histogram(values, 10)
    assert sum(hist["counts"]) == hist["total"] == 100
    assert len(hist["edges"]) == 11
    assert hist["edges"][0] == 1 and hist["edges"][-1] == pytest.approx(100)
    assert hist["counts"][-1] > 0


@pytest.mark.unit
def test_histogram_constant_column():
    """A constant column puts every value in the first bin."""
    hist = compute_histogram([5.0] * 20, 8)
    assert hist["counts"][0] == 20
    assert sum(hist["counts"]) == 20
    assert compute_histogram([], 8) is None


@pytest.mark.unit
def test_histogram_span_beyond_float_range():
    """Values near the float limit still get finite edges and fair bins."""
    values = [-1e308, 1e308] * 25
    hist = compute_histogram(values, 10)

    assert hist["edges"][0] == -1e308
    assert hist["edges"][-1] == 1e308
    assert all(math.isfinite(edge) for edge in hist["edges"])
    assert hist["counts"][0] == 25
    assert hist["counts"][-1] == 25
    assert sum(hist["counts"]) == 50


@pytest.mark.unit
def test_summaries_near_float_limit():
    """Mean, median, stdev and quantiles stay finite for huge magnitudes."""
    values = sorted([-1e308, 1e308] * 25)
    assert abs(mean(values)) < 1e300
    assert median([1e308, 1e308]) == 1e308
    assert quantile_sorted([1e308, 1e308], 0.5) == 1e308
    assert quantile_sorted([-1e308, 1e308], 0.5) == pytest.approx(0.0)
    assert math.isfinite(sample_stdev(values))
    assert compute_box(values) is None

    assert mean([2.0, 4.0]) == 3.0
    assert mean([]) is None


@pytest.mark.unit
def test_box_with_outlier():
    """Tukey fences flag the extreme value and whiskers stay inside."""
    values = list(range(1, 100)) + [10000]
    box = compute_box(values)
    assert box["q1"] == pytest.approx(25.75)
    assert box["median"] == pytest.approx(50.5)
    assert box["q3"] == pytest.approx(75.25)
    assert box["outliers"] == [10000.0]
    assert box["min"] == 1
    assert box["max"] == 99
    assert box["min"] <= box["q1"] <= box["median"] <= box["q3"] <= box["max"]


@pytest.mark.unit
def test_box_needs_enough_values():
    """Fewer than the minimum number of values gives no box."""
    assert compute_box(list(range(11))) is None


@pytest.mark.unit
def test_correlation_matrix_shape():
    """The matrix is symmetric with a unit diagonal; undefined pairs read 0."""
    a = list(range(20))
    b = [x * 2 for x in a]
    c = [1] * 20
    matrix = correlation_matrix([a, b, c])
    assert [matrix[i][i] for i in range(3)] == [1.0, 1.0, 1.0]
    assert matrix[0][1] == pytest.approx(1.0)
    assert matrix[0][2] == 0.0
    for i in range(3):
        for j in range(3):
            assert matrix[i][j] == matrix[j][i]
