"""
Type inference service.

Classifies a column from a bounded sample of its raw values as numeric, date,
categorical, free text or identifier.
"""
import logging
from typing import Any, Optional, Sequence

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.schemas import InferredType
from firstlook.services.identifiers import is_likely_identifier, name_hints_identifier
from firstlook.services.parsing import is_missing, looks_date, looks_numeric, safe_string, strided_sample

logger = logging.getLogger(__name__)


def infer_column_type(
    values: Sequence[Any],
    name: Optional[str] = None,
    thresholds: Optional[Thresholds] = None,
) -> InferredType:
    """
    Infer the type of a column from its raw values.

    Args:
        values: Raw cell values for one column (missing values allowed)
        name: Optional column name, used for identifier hints
        thresholds: Heuristic thresholds (defaults to ``DEFAULT_THRESHOLDS``)

    Returns:
        One of "identifier", "numeric", "date", "text", "categorical"
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS

    present = [v for v in values if not is_missing(v)]
    if not present:
        return "categorical"

    if name_hints_identifier(name):
        return "identifier"

    sample = strided_sample(present, thresholds.sample_size)
    if is_likely_identifier(sample, thresholds):
        return "identifier"

    total = len(sample)
    if sum(1 for v in sample if looks_numeric(v)) / total >= thresholds.infer_numeric_ratio:
        return "numeric"

    if sum(1 for v in sample if looks_date(v)) / total >= thresholds.infer_date_ratio:
        return "date"

    average_length = sum(len(safe_string(v)) for v in sample) / total
    if average_length > thresholds.text_min_avg_length:
        return "text"

    return "categorical"
