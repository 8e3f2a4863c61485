"""
Identifier and name-list predicates.

Identifier-like columns (row keys, hashes, sequential indexes) carry no
analytical signal and are excluded from statistics, KPIs and charts. These
predicates are the single source of truth for that decision so the profiler,
KPI selector and chart generator always agree.
"""
import re
from typing import Any, Optional, Sequence

import numpy as np

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.schemas import CategoricalColumnProfile, NumericColumnProfile
from firstlook.services.parsing import looks_date, looks_numeric, safe_string, strided_sample

ID_NAME_RE = re.compile(r"(^id$|_id$| id$|uuid|guid|hash|token|key$|^key|identifier)")
TOKEN_RE = re.compile(r"^[A-Za-z0-9\-_]+$")


def name_hints_identifier(column: Optional[str]) -> bool:
    """Column names like ``id``, ``order_id``, ``uuid`` or ``api_key``."""
    return bool(ID_NAME_RE.search(str(column or "").strip().lower()))


def is_likely_identifier(values: Sequence[Any], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """
    Content heuristic for text identifiers.

    Requires very high uniqueness and compact token-shaped values. Columns
    that are mostly numeric or mostly dates are rejected: amounts and
    timestamps are often unique without being identifiers.
    """
    texts = [text for text in (safe_string(v) for v in values) if text]
    if len(texts) < thresholds.id_min_values:
        return False

    total = len(texts)
    if sum(1 for t in texts if looks_numeric(t)) / total >= thresholds.id_numeric_guard:
        return False
    if sum(1 for t in texts if looks_date(t)) / total >= thresholds.id_date_guard:
        return False

    unique_ratio = len(set(texts)) / total
    avg_length = sum(len(t) for t in texts) / total
    tokens = [t for t in texts if TOKEN_RE.match(t)]
    token_ratio = len(tokens) / total
    long_token_ratio = sum(1 for t in tokens if len(t) >= thresholds.id_long_token_length) / total

    return (
        unique_ratio > thresholds.id_uniqueness_ratio
        and token_ratio > thresholds.id_token_ratio
        and (avg_length <= thresholds.id_max_avg_length or long_token_ratio > thresholds.id_long_token_ratio)
    )


def _is_even_sequence(sorted_unique: np.ndarray, thresholds: Thresholds) -> bool:
    """Strided check for an increasing, evenly spaced run (1..N, 1000, 1010, ...)."""
    count = len(sorted_unique)
    if count < thresholds.numeric_id_min_values:
        return False

    steps = min(thresholds.numeric_id_max_steps, count - 1)
    stride = max(1, (count - 1) // steps)
    diffs = np.diff(sorted_unique[::stride])
    if len(diffs) == 0:
        return False

    if np.mean(diffs >= 0) <= thresholds.numeric_id_monotonic_ratio:
        return False

    typical = float(np.median(diffs))
    if typical <= 0:
        return False
    tolerance = 1e-6 * max(1.0, abs(typical))
    if np.mean(np.abs(diffs - typical) <= tolerance) <= thresholds.numeric_id_sequence_ratio:
        return False

    # the whole span must follow the same step, not just most of it
    unit = typical / stride
    span = float(sorted_unique[-1] - sorted_unique[0])
    return span <= thresholds.index_like_range_factor * unit * (count - 1)


def is_numeric_identifier(
    column: Optional[str],
    numbers: Sequence[float],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """
    Numeric identifiers: integer-like, almost all unique, and either an evenly
    spaced sequence or a value range about as wide as the number of values.
    """
    if name_hints_identifier(column):
        return True
    if len(numbers) < thresholds.numeric_id_min_values:
        return False

    values = np.asarray(numbers, dtype=float)
    sorted_unique = np.unique(values)
    if len(sorted_unique) / len(values) < thresholds.numeric_id_uniqueness:
        return False

    sample = np.asarray(strided_sample(values, thresholds.numeric_id_integer_sample))
    if np.mean(np.abs(sample - np.round(sample)) < 1e-9) < thresholds.numeric_id_integer_ratio:
        return False

    if _is_even_sequence(sorted_unique, thresholds):
        return True

    value_range = float(sorted_unique[-1] - sorted_unique[0])
    return 0 < value_range <= len(sorted_unique) * thresholds.index_like_range_factor


def is_identifier_like(column: str, info: Any, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """
    Shared exclusion rule for KPIs and charts.

    Numeric profiles are identifier-like when almost every value is unique,
    integral and packed into an index-sized range. Categorical profiles are
    identifier-like when flagged by the profiler or more than 90% unique.
    """
    if name_hints_identifier(column):
        return True
    if info is None:
        return False

    if isinstance(info, CategoricalColumnProfile):
        if info.inferred_as_identifier:
            return True
        if not info.non_missing_count:
            return False
        return info.unique_count / info.non_missing_count > thresholds.categorical_id_uniqueness

    if isinstance(info, NumericColumnProfile):
        if info.unique_count < thresholds.like_id_min_unique or not info.integer_valued:
            return False
        if info.unique_count / max(1, info.non_missing_count) <= thresholds.like_id_uniqueness:
            return False
        if info.min is None or info.max is None:
            return False
        return (info.max - info.min) <= info.unique_count * thresholds.index_like_range_factor

    return False


def is_name_list(info: Any, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """Long free-form lists (names, descriptions) that make poor bar charts or KPIs."""
    if not isinstance(info, CategoricalColumnProfile) or not info.non_missing_count:
        return False
    top_pct = info.top_values[0].pct if info.top_values else 0.0
    unique_ratio = info.unique_count / info.non_missing_count
    return (
        info.unique_count >= thresholds.name_list_min_unique
        and unique_ratio > thresholds.name_list_uniqueness
        and top_pct < thresholds.name_list_max_top_pct
    )
