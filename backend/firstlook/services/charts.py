"""
Chart candidate generation and diversity selection.

This module builds scored chart specifications (histogram, box plot, bar,
time series, scatter, correlation matrix) from the raw rows and the dataset
profile, then keeps a balanced subset so a single chart type or purpose
never dominates the result.
"""
import logging
import math
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.performance import track_performance
from firstlook.core.schemas import (
    BarChart,
    BoxChart,
    CategoricalColumnProfile,
    ChartCandidate,
    ChartSpec,
    CorrelationChart,
    DatasetProfile,
    DateColumnProfile,
    HistogramChart,
    NumericColumnProfile,
    ScatterChart,
    ScatterPoint,
    TimeChart,
    TimePoint,
)
from firstlook.services.formatting import round_half_up
from firstlook.services.identifiers import (
    is_identifier_like,
    is_name_list,
    is_numeric_identifier,
    name_hints_identifier,
)
from firstlook.services.parsing import is_missing, parse_date, parse_number, strided_sample, value_key
from firstlook.services.statistics import (
    choose_bins,
    compute_box,
    compute_histogram,
    correlation_matrix,
    pearson,
    sample_stdev,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Column roles
# ---------------------------------------------------------------------------

def _is_flagged_identifier(column: str, info: Any) -> bool:
    if name_hints_identifier(column):
        return True
    return isinstance(info, CategoricalColumnProfile) and info.inferred_as_identifier


def detect_date_like_columns(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> List[str]:
    """
    Re-scan columns on a bounded row sample for date-like content.

    Returns the columns where at least ``fallback_date_ratio`` of sampled
    non-missing values parse as dates, best first.
    """
    sample = strided_sample(rows, thresholds.sample_size)
    found = []
    for col in columns:
        values = [(row or {}).get(col) for row in sample]
        values = [v for v in values if not is_missing(v)]
        if len(values) < thresholds.fallback_min_seen:
            continue
        ratio = sum(1 for v in values if parse_date(v) is not None) / len(values)
        unique_ratio = len({value_key(v) for v in values}) / len(values)
        if ratio >= thresholds.fallback_date_ratio:
            found.append((ratio * 100 + min(20.0, unique_ratio * 20), col))
    found.sort(key=lambda item: -item[0])
    return [col for _, col in found]


def detect_numeric_like_columns(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> List[str]:
    """Numeric counterpart of ``detect_date_like_columns``."""
    sample = strided_sample(rows, thresholds.sample_size)
    found = []
    for col in columns:
        values = [(row or {}).get(col) for row in sample]
        values = [v for v in values if not is_missing(v)]
        if len(values) < thresholds.fallback_min_seen:
            continue
        ratio = sum(1 for v in values if parse_number(v) is not None) / len(values)
        unique_ratio = len({value_key(v) for v in values}) / len(values)
        if ratio >= thresholds.fallback_numeric_ratio:
            found.append((ratio * 100 + min(10.0, unique_ratio * 10), col))
    found.sort(key=lambda item: -item[0])
    return [col for _, col in found]


class _ColumnRoles:
    """Numeric, date and categorical column lists after fallback recovery."""

    def __init__(self, rows: Sequence[Mapping[str, Any]], profile: DatasetProfile, thresholds: Thresholds):
        columns = list(profile.columns)
        numeric = [
            col for col, info in profile.columns.items()
            if isinstance(info, NumericColumnProfile) and not is_identifier_like(col, info, thresholds)
        ]
        dates = [col for col, info in profile.columns.items() if isinstance(info, DateColumnProfile)]

        rescan = [
            col for col in columns
            if col not in numeric and col not in dates
            and not isinstance(profile.columns[col], NumericColumnProfile)
            and not _is_flagged_identifier(col, profile.columns[col])
        ]
        for col in detect_date_like_columns(rows, rescan, thresholds):
            logger.debug("Recovered a date column missed by the profiler")
            dates.append(col)

        rescan = [col for col in rescan if col not in dates]
        for col in detect_numeric_like_columns(rows, rescan, thresholds):
            numbers = [n for n in (parse_number((row or {}).get(col)) for row in rows) if n is not None]
            if is_numeric_identifier(col, numbers, thresholds):
                continue
            logger.debug("Recovered a numeric column missed by the profiler")
            numeric.append(col)

        self.numeric = numeric
        self.dates = dates
        self.categorical = [col for col in columns if col not in numeric and col not in dates]


# ---------------------------------------------------------------------------
# Candidate builders
# ---------------------------------------------------------------------------

def _histogram_candidate(col: str, values: List[float], thresholds: Thresholds) -> Optional[ChartCandidate]:
    if len(values) < thresholds.min_histogram_values:
        return None
    bins = choose_bins(len(values))
    hist = compute_histogram(values, bins)
    if hist is None:
        return None

    score = math.log10(hist["total"] + 1) * 10 + math.log10(hist["max"] - hist["min"] + 1) * 10
    spec = HistogramChart(
        title=f"Distribution of {col}",
        column=col,
        bin_count=bins,
        edges=hist["edges"],
        counts=hist["counts"],
        min=hist["min"],
        max=hist["max"],
        total=hist["total"],
    )
    return ChartCandidate(spec=spec, score=score, purpose="distribution")


def _box_candidate(col: str, values: List[float], thresholds: Thresholds) -> Optional[ChartCandidate]:
    box = compute_box(values, thresholds.min_box_values)
    if box is None:
        return None

    outlier_rate = len(box["outliers"]) / max(1, box["total"])
    score = (
        math.log10(box["total"] + 1) * 10
        + math.log10(abs(box["iqr"]) + 1) * 12
        + min(25.0, outlier_rate * 120)
    )
    spec = BoxChart(
        title=f"Spread of {col}",
        column=col,
        min=box["min"],
        q1=box["q1"],
        median=box["median"],
        q3=box["q3"],
        max=box["max"],
        iqr=box["iqr"],
        outliers=box["outliers"][: thresholds.max_box_outliers],
        total=box["total"],
    )
    return ChartCandidate(spec=spec, score=score, purpose="distribution")


def _bar_candidate(col: str, rows: Sequence[Mapping[str, Any]], thresholds: Thresholds) -> Optional[ChartCandidate]:
    present = [v for v in ((row or {}).get(col) for row in rows) if not is_missing(v)]
    if not present:
        return None

    counter = Counter(value_key(v) for v in present)
    ranked = sorted(counter.items(), key=lambda item: -item[1])[: thresholds.max_bars]
    labels = [label for label, _ in ranked]
    counts = [count for _, count in ranked]
    other = len(present) - sum(counts)
    if other > 0:
        labels.append("Other")
        counts.append(other)

    total = sum(counts)
    dominance = counts[0] / total
    score = math.log10(total + 1) * 10 + dominance * 60
    spec = BarChart(title=f"Top {col} values", column=col, labels=labels, counts=counts, max_bars=thresholds.max_bars)
    return ChartCandidate(spec=spec, score=score, purpose="composition")


def build_time_series(
    dates: Sequence[Optional[pd.Timestamp]],
    values: Sequence[Optional[float]],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Optional[Dict]:
    """
    Sum a numeric column per day (span up to ``day_granularity_max_days``)
    or per month, over rows where both the date and the value parse.
    """
    pairs = [(d, y) for d, y in zip(dates, values) if d is not None and y is not None]
    if len(pairs) < thresholds.min_time_pairs:
        return None

    series = pd.Series([y for _, y in pairs], index=pd.DatetimeIndex([d for d, _ in pairs])).sort_index()
    days = max(1, round_half_up((series.index[-1] - series.index[0]).total_seconds() / 86400))
    granularity = "day" if days <= thresholds.day_granularity_max_days else "month"
    key_format = "%Y-%m-%d" if granularity == "day" else "%Y-%m"

    totals = series.groupby(series.index.strftime(key_format)).sum().sort_index()
    if len(totals) < thresholds.min_time_points:
        return None

    return {
        "granularity": granularity,
        "points": [TimePoint(x=str(x), y=float(y)) for x, y in totals.items()],
    }


def _time_candidate(
    date_col: str,
    value_col: str,
    dates: Sequence[Optional[pd.Timestamp]],
    values: Sequence[Optional[float]],
    thresholds: Thresholds,
) -> Optional[ChartCandidate]:
    built = build_time_series(dates, values, thresholds)
    if built is None:
        return None

    ys = [p.y for p in built["points"]]
    score = len(ys) * 2 + math.log10(abs(max(ys) - min(ys)) + 1) * 12
    spec = TimeChart(
        title=f"{value_col} over {date_col}",
        x_column=date_col,
        y_column=value_col,
        granularity=built["granularity"],
        points=built["points"],
    )
    return ChartCandidate(spec=spec, score=score, purpose="trend")


def _scatter_candidate(
    x_col: str,
    y_col: str,
    x_values: Sequence[Optional[float]],
    y_values: Sequence[Optional[float]],
    thresholds: Thresholds,
) -> Optional[ChartCandidate]:
    pairs = [(x, y) for x, y in zip(x_values, y_values) if x is not None and y is not None]
    if len(pairs) < thresholds.min_scatter_pairs:
        return None

    xs = [x for x, _ in pairs]
    ys = [y for _, y in pairs]
    n = len(pairs)
    limit = thresholds.max_scatter_points
    if n > limit:
        shown = [pairs[(i * n) // limit] for i in range(limit)]
    else:
        shown = pairs

    r = pearson(xs, ys, thresholds.min_pearson_values)
    sx = sample_stdev(xs) or 0.0
    sy = sample_stdev(ys) or 0.0
    score = n * 0.02 + abs(r or 0.0) * 80 + math.log10(sx + sy + 1) * 10
    spec = ScatterChart(
        title=f"{y_col} vs {x_col}",
        x_column=x_col,
        y_column=y_col,
        points=[ScatterPoint(x=x, y=y) for x, y in shown],
        correlation=r,
    )
    return ChartCandidate(spec=spec, score=score, purpose="relationship")


def _correlation_candidate(
    numeric_cols: Sequence[str],
    parsed: Dict[str, List[Optional[float]]],
    thresholds: Thresholds,
) -> Optional[ChartCandidate]:
    if len(numeric_cols) < thresholds.min_correlation_columns:
        return None

    ranking = []
    for col in numeric_cols:
        present = [v for v in parsed[col] if v is not None]
        spread = sample_stdev(present) or 0.0
        unique = len(set(present))
        ranking.append((math.log10(spread + 1) * 10 + math.log10(unique + 1) * 2, col))
    ranking.sort(key=lambda item: -item[0])
    columns = [col for _, col in ranking[: thresholds.max_correlation_columns]]

    complete = [
        values for values in zip(*(parsed[col] for col in columns))
        if all(v is not None for v in values)
    ]
    if len(complete) < thresholds.min_correlation_rows:
        return None

    series = [[row[i] for row in complete] for i in range(len(columns))]
    matrix = correlation_matrix(series, thresholds.min_pearson_values)
    strongest = max(
        (abs(matrix[i][j]) for i in range(len(columns)) for j in range(len(columns)) if i != j),
        default=0.0,
    )
    score = len(columns) * 10 + len(complete) * 0.03 + strongest * 120
    spec = CorrelationChart(title="Correlation (numeric)", columns=columns, matrix=matrix)
    return ChartCandidate(spec=spec, score=score, purpose="relationship")


def build_candidates(
    rows: Sequence[Mapping[str, Any]],
    profile: DatasetProfile,
    thresholds: Optional[Thresholds] = None,
) -> List[ChartCandidate]:
    """
    Build every structurally valid chart candidate for a dataset.

    Identifier-like columns never contribute, including columns recovered
    by the fallback detectors. Only the single best scatter pair is kept.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if not rows or not profile.columns:
        return []

    roles = _ColumnRoles(rows, profile, thresholds)
    numbers = {col: [parse_number((row or {}).get(col)) for row in rows] for col in roles.numeric}
    candidates: List[ChartCandidate] = []

    for col in roles.numeric:
        values = [v for v in numbers[col] if v is not None]
        for candidate in (_histogram_candidate(col, values, thresholds), _box_candidate(col, values, thresholds)):
            if candidate is not None:
                candidates.append(candidate)

    for col in roles.categorical:
        info = profile.columns.get(col)
        if is_identifier_like(col, info, thresholds) or is_name_list(info, thresholds):
            continue
        candidate = _bar_candidate(col, rows, thresholds)
        if candidate is not None:
            candidates.append(candidate)

    for date_col in roles.dates:
        if name_hints_identifier(date_col):
            continue
        dates = [parse_date((row or {}).get(date_col)) for row in rows]
        for value_col in roles.numeric:
            candidate = _time_candidate(date_col, value_col, dates, numbers[value_col], thresholds)
            if candidate is not None:
                candidates.append(candidate)

    best_scatter = None
    for i, x_col in enumerate(roles.numeric):
        for y_col in roles.numeric[i + 1:]:
            candidate = _scatter_candidate(x_col, y_col, numbers[x_col], numbers[y_col], thresholds)
            if candidate is not None and (best_scatter is None or candidate.score > best_scatter.score):
                best_scatter = candidate
    if best_scatter is not None:
        candidates.append(best_scatter)

    correlation = _correlation_candidate(roles.numeric, numbers, thresholds)
    if correlation is not None:
        candidates.append(correlation)

    logger.debug(f"Built {len(candidates)} chart candidates")
    return candidates


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def select_diverse(
    candidates: Sequence[ChartCandidate],
    thresholds: Optional[Thresholds] = None,
) -> List[ChartCandidate]:
    """
    Greedy, score-ordered selection under per-purpose and per-type caps.

    When fewer than ``min_charts`` pass the caps, the next best candidates
    are added regardless of caps. The result never exceeds ``max_charts``.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    ranked = sorted(candidates, key=lambda c: -c.score)

    picked: List[int] = []
    purpose_counts: Counter = Counter()
    type_counts: Counter = Counter()

    for index, candidate in enumerate(ranked):
        if len(picked) >= thresholds.max_charts:
            break
        chart_type = candidate.spec.type
        if purpose_counts[candidate.purpose] >= thresholds.purpose_caps.get(candidate.purpose, 2):
            continue
        if type_counts[chart_type] >= thresholds.type_caps.get(chart_type, 2):
            continue
        picked.append(index)
        purpose_counts[candidate.purpose] += 1
        type_counts[chart_type] += 1

    if len(picked) < thresholds.min_charts:
        for index in range(len(ranked)):
            if len(picked) >= thresholds.min_charts:
                break
            if index not in picked:
                picked.append(index)

    return [ranked[index] for index in picked[: thresholds.max_charts]]


@track_performance("generate_charts")
def generate_charts(
    rows: Sequence[Mapping[str, Any]],
    profile: DatasetProfile,
    thresholds: Optional[Thresholds] = None,
) -> List[ChartSpec]:
    """
    Generate the curated chart set for a dataset.

    Returns between ``min_charts`` and ``max_charts`` chart specs, or fewer
    when fewer candidates are structurally possible.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    candidates = build_candidates(rows, profile, thresholds)
    selected = select_diverse(candidates, thresholds)
    logger.debug(
        f"Selected {len(selected)} of {len(candidates)} charts: "
        f"{', '.join(c.spec.type for c in selected)}"
    )
    return [candidate.spec for candidate in selected]
