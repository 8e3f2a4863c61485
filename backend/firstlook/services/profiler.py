import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.performance import track_performance
from firstlook.core.sanitization import sanitize_for_logging
from firstlook.core.schemas import (
    CategoricalColumnProfile,
    DatasetProfile,
    DateColumnProfile,
    NumericColumnProfile,
    TopValue,
)
from firstlook.services.identifiers import is_likely_identifier, is_numeric_identifier, name_hints_identifier
from firstlook.services.parsing import (
    is_missing,
    looks_date,
    looks_numeric,
    parse_date,
    parse_number,
    strided_sample,
    value_key,
)
from firstlook.services.statistics import mean, median, sample_stdev
from firstlook.services.type_inference import infer_column_type

logger = logging.getLogger(__name__)


def column_names(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Union of keys across all rows, in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in (row or {}):
            seen.setdefault(key, None)
    return list(seen)


def rows_to_frame(rows: Sequence[Mapping[str, Any]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Load rows into an object-dtype DataFrame.

    Object dtype keeps every cell exactly as delivered; absent keys become NaN,
    which the parsing helpers treat as missing.
    """
    columns = columns if columns is not None else column_names(rows)
    return pd.DataFrame([row or {} for row in rows], columns=columns, dtype=object)


def count_duplicates(frame: pd.DataFrame) -> int:
    """Rows whose full-value fingerprint repeats an earlier row."""
    if frame.empty:
        return 0
    fingerprints = pd.Series(
        ["||".join(value_key(v) for v in row) for row in frame.itertuples(index=False, name=None)]
    )
    return int(fingerprints.duplicated().sum())


def decide_type(
    column: str,
    present: List[Any],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Tuple[str, str]:
    """
    Decide the profile type of a column and the reason for it.

    Identifier checks run first (name hint, token heuristic, numeric sequence),
    then date and numeric by parse ratio over a strided sample, then the
    first-pass inference hint, with categorical as the fallback.
    """
    if not present:
        return "categorical", "empty"

    if name_hints_identifier(column):
        return "identifier", "name-hint"

    sample = strided_sample(present, thresholds.sample_size)
    if is_likely_identifier(sample, thresholds):
        return "identifier", "id-like"

    total = len(sample)
    numeric_ratio = sum(1 for v in sample if looks_numeric(v)) / total
    date_ratio = sum(1 for v in sample if looks_date(v)) / total

    if numeric_ratio >= thresholds.profile_hint_ratio:
        numbers = [n for n in (parse_number(v) for v in present) if n is not None]
        if is_numeric_identifier(column, numbers, thresholds):
            return "identifier", "numeric-id-pattern"

    if date_ratio >= thresholds.profile_date_ratio and date_ratio >= numeric_ratio:
        return "date", f"date_ratio={date_ratio:.2f}"

    if numeric_ratio >= thresholds.profile_numeric_ratio:
        return "numeric", f"numeric_ratio={numeric_ratio:.2f}"

    hinted = infer_column_type(sample, thresholds=thresholds)
    if hinted == "date" and date_ratio >= thresholds.profile_hint_ratio:
        return "date", "hint+ok"
    if hinted == "numeric" and numeric_ratio >= thresholds.profile_hint_ratio:
        return "numeric", "hint+ok"

    return "categorical", "fallback"


def _top_values(counter: Counter, non_missing: int, limit: int) -> List[TopValue]:
    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(counter.items(), key=lambda item: -item[1])[:limit]
    return [
        TopValue(value=value, count=count, pct=count / max(1, non_missing) * 100)
        for value, count in ranked
    ]


def _numeric_profile(present: List[Any], missing: int, unique_count: int, reason: str) -> NumericColumnProfile:
    numbers = np.sort(np.asarray([n for n in (parse_number(v) for v in present) if n is not None], dtype=float))
    if len(numbers) == 0:
        return NumericColumnProfile(missing=missing, unique_count=unique_count, non_missing_count=0, parse_reason=reason)

    return NumericColumnProfile(
        missing=missing,
        unique_count=unique_count,
        non_missing_count=int(len(numbers)),
        min=float(numbers[0]),
        max=float(numbers[-1]),
        mean=mean(numbers),
        median=median(numbers),
        stdev=sample_stdev(numbers),
        zeros=int((numbers == 0).sum()),
        negatives=int((numbers < 0).sum()),
        integer_valued=bool(np.all(np.abs(numbers - np.round(numbers)) < 1e-9)),
        parse_reason=reason,
    )


def _date_profile(present: List[Any], missing: int, reason: str) -> DateColumnProfile:
    dates = sorted(d for d in (parse_date(v) for v in present) if d is not None)
    return DateColumnProfile(
        missing=missing,
        unique_count=len(set(dates)),
        non_missing_count=len(dates),
        min=dates[0].isoformat() if dates else None,
        max=dates[-1].isoformat() if dates else None,
        parse_reason=reason,
    )


@track_performance("profile_dataset")
def profile_dataset(
    rows: Sequence[Mapping[str, Any]],
    thresholds: Optional[Thresholds] = None,
) -> DatasetProfile:
    """
    Profile a dataset and return its column-level and dataset-level facts.

    Args:
        rows: Sequence of string-keyed scalar maps (keys may differ per row)
        thresholds: Heuristic thresholds (defaults to ``DEFAULT_THRESHOLDS``)

    Returns:
        DatasetProfile with one ColumnProfile per column in first-seen order.
        Identifier columns are stored as categorical profiles flagged with
        ``inferred_as_identifier``.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if not rows:
        return DatasetProfile()

    columns = column_names(rows)
    frame = rows_to_frame(rows, columns)
    row_count = len(frame)

    empty_columns: List[str] = []
    constant_columns: List[str] = []
    profiles: Dict[str, Any] = {}

    for col in columns:
        series = frame[col]
        missing_mask = series.map(is_missing).astype(bool)
        missing = int(missing_mask.sum())
        present = series[~missing_mask].tolist()

        counter = Counter(value_key(v) for v in present)
        unique_count = len(counter)

        if missing == row_count:
            empty_columns.append(col)
        if present and unique_count == 1:
            constant_columns.append(col)

        kind, reason = decide_type(col, present, thresholds)
        logger.debug(f"Column '{sanitize_for_logging(str(col))}' typed as {kind} ({reason})")

        if kind == "numeric":
            profiles[col] = _numeric_profile(present, missing, unique_count, reason)
        elif kind == "date":
            profiles[col] = _date_profile(present, missing, reason)
        else:
            profiles[col] = CategoricalColumnProfile(
                missing=missing,
                unique_count=unique_count,
                non_missing_count=len(present),
                top_values=_top_values(counter, len(present), thresholds.top_values),
                inferred_as_identifier=kind == "identifier",
                parse_reason=reason,
            )

    return DatasetProfile(
        row_count=row_count,
        column_count=len(columns),
        duplicates=count_duplicates(frame),
        empty_columns=empty_columns,
        constant_columns=constant_columns,
        columns=profiles,
    )
