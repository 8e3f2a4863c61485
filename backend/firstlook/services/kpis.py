"""
KPI selection service.

Picks a short, ordered strip of headline metrics: row count, duplicates,
missing rate, one numeric "story" (total, average, range), the most telling
categorical column and the widest date span.
"""
import logging
import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.performance import track_performance
from firstlook.core.schemas import (
    KPI,
    CategoricalColumnProfile,
    DatasetProfile,
    DateColumnProfile,
    NumericColumnProfile,
    TopValue,
)
from firstlook.services.formatting import fmt_compact, fmt_count, fmt_pct, round_half_up
from firstlook.services.identifiers import is_identifier_like, is_name_list
from firstlook.services.parsing import parse_number

logger = logging.getLogger(__name__)


def score_numeric_column(column: str, info: NumericColumnProfile, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> float:
    """
    Relevance of a numeric column as the headline metric.

    Zero for identifier-like columns, fewer than the minimum number of values,
    or a flat (zero-range) column.
    """
    if is_identifier_like(column, info, thresholds):
        return 0.0
    if info.non_missing_count < thresholds.kpi_min_numeric_values:
        return 0.0
    if info.min is None or info.max is None:
        return 0.0

    value_range = abs(info.max - info.min)
    if value_range == 0:
        return 0.0

    spread = info.stdev if info.stdev is not None else value_range
    return math.log10(info.non_missing_count + 1) * 12 + math.log10(spread + 1) * 10


def score_categorical_column(info: CategoricalColumnProfile, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> float:
    dominance = info.top_values[0].pct
    unique_ratio = info.unique_count / info.non_missing_count if info.non_missing_count else 0.0

    if info.unique_count <= thresholds.kpi_small_cardinality:
        cardinality_bonus = 30
    elif info.unique_count <= thresholds.kpi_medium_cardinality:
        cardinality_bonus = 15
    else:
        cardinality_bonus = 0
    sparsity_bonus = 10 if unique_ratio < thresholds.kpi_sparse_uniqueness else 0

    return dominance * 2 + cardinality_bonus + sparsity_bonus


def _best_categorical(
    profile: DatasetProfile, thresholds: Thresholds
) -> Optional[Tuple[str, TopValue]]:
    best = None
    best_score = None
    for col, info in profile.columns.items():
        if not isinstance(info, CategoricalColumnProfile) or not info.top_values:
            continue
        if is_identifier_like(col, info, thresholds) or is_name_list(info, thresholds):
            continue
        score = score_categorical_column(info, thresholds)
        if best_score is None or score > best_score:
            best, best_score = (col, info.top_values[0]), score
    return best


def _best_date(profile: DatasetProfile) -> Optional[Tuple[str, str, str]]:
    best = None
    best_days = None
    for col, info in profile.columns.items():
        if not isinstance(info, DateColumnProfile) or not info.min or not info.max:
            continue
        days = abs((pd.Timestamp(info.max) - pd.Timestamp(info.min)).total_seconds()) / 86400
        if best_days is None or days > best_days:
            best, best_days = (col, info.min, info.max), days
    return best


def _missing_rate(profile: DatasetProfile) -> Optional[float]:
    total_missing = 0
    total_cells = 0
    for info in profile.columns.values():
        total_missing += info.missing
        total_cells += info.missing + info.non_missing_count
    if total_cells == 0:
        return None
    return total_missing / total_cells * 100


def _numeric_story(
    rows: Sequence[Mapping[str, Any]], profile: DatasetProfile, thresholds: Thresholds
) -> List[KPI]:
    ranked = []
    for col, info in profile.columns.items():
        if not isinstance(info, NumericColumnProfile):
            continue
        score = score_numeric_column(col, info, thresholds)
        if score > 0:
            ranked.append((score, col))
    ranked.sort(key=lambda item: -item[0])

    for _, col in ranked[: thresholds.kpi_numeric_candidates]:
        numbers = [n for n in (parse_number((row or {}).get(col)) for row in rows) if n is not None]
        if len(numbers) < thresholds.kpi_min_numeric_values:
            continue

        series = pd.Series(numbers, dtype=float)
        with np.errstate(over="ignore", invalid="ignore"):
            total = float(series.sum())
        if not math.isfinite(total):
            logger.debug("Skipping numeric KPI column whose total overflows")
            continue
        logger.debug(f"Numeric KPI column chosen from {len(ranked)} candidates")
        # one numeric story per strip
        return [
            KPI(column=col, label=f"Total {col}", value=fmt_compact(total), type="sum"),
            KPI(column=col, label=f"Average {col}", value=fmt_compact(total / len(numbers)), type="mean"),
            KPI(
                column=col,
                label=f"{col} range",
                value=f"{fmt_compact(series.min())} → {fmt_compact(series.max())}",
                type="range",
            ),
        ]
    return []


@track_performance("select_kpis")
def select_kpis(
    rows: Sequence[Mapping[str, Any]],
    profile: DatasetProfile,
    thresholds: Optional[Thresholds] = None,
) -> List[KPI]:
    """
    Select headline KPIs for a dataset.

    Args:
        rows: The raw rows the profile was computed from
        profile: Dataset profile
        thresholds: Heuristic thresholds (defaults to ``DEFAULT_THRESHOLDS``)

    Returns:
        At most ``max_kpis`` KPIs with "Rows" always first. Empty input gives
        an empty list.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if not rows:
        return []

    kpis: List[KPI] = [KPI(label="Rows", value=fmt_count(len(rows)), type="count")]

    if profile.duplicates > 0:
        kpis.append(KPI(label="Duplicates", value=fmt_count(profile.duplicates), type="count"))

    missing_rate = _missing_rate(profile)
    if missing_rate is not None:
        kpis.append(KPI(label="Missing rate", value=fmt_pct(missing_rate), type="rate"))

    kpis.extend(_numeric_story(rows, profile, thresholds))

    categorical = _best_categorical(profile, thresholds)
    if categorical:
        col, top = categorical
        kpis.append(KPI(
            column=col,
            label=f"Top {col}",
            value=f"{top.value} ({round_half_up(top.pct)}%)",
            type="top",
        ))

    date_span = _best_date(profile)
    if date_span:
        col, start, end = date_span
        kpis.append(KPI(
            column=col,
            label=f"Date span ({col})",
            value=f"{start[:10]} → {end[:10]}",
            type="span",
        ))

    return kpis[: thresholds.max_kpis]
