"""
Loose cell parsing shared by every stage of the pipeline.

Cells arrive as loosely-typed scalars (numbers, text, date-like text,
boolean-ish text). These helpers decide whether a cell is missing, and try to
read it as a number or a date. A cell that fails to parse is simply not
usable for that purpose; nothing here raises on bad content.
"""
import math
import re
import warnings
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, TypeVar

import numpy as np
import pandas as pd

T = TypeVar("T")

CURRENCY_RE = re.compile(r"[£€$₹₽¥₩₦₱₫₪₴₲₵₸₺₼₾₿]")
NUMERIC_LITERAL_RE = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?$", re.IGNORECASE)
THOUSANDS_RE = re.compile(r"^[-+]?\d{1,3}(?:,\d{3})+$")

# A string has to look like a calendar date before the general parser sees it.
DATE_SHAPE_RE = re.compile(
    r"""
    \d{4}-\d{1,2}-\d{1,2}                          # 2024-01-31, 2024-01-31T10:00
    | \d{4}[/.]\d{1,2}[/.]\d{1,2}                  # 2024/01/31
    | \d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}            # 31/01/2024, 01-31-24
    | [A-Za-z]{3,}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}   # Jan 31, 2024
    | \d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]{3,}\.?,?\s+\d{4}   # 31 Jan 2024
    | [A-Za-z]{3,}\.?\s+\d{4}                      # January 2024
    """,
    re.VERBOSE,
)
DMY_RE = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})$")


def is_missing(value: Any) -> bool:
    """None, NaN/NA or a blank string."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float):
        return math.isnan(value)
    if value is pd.NaT or value is pd.NA:
        return True
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, (bool, np.bool_))


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a loosely formatted number.

    Handles currency symbols, non-breaking spaces, thousands separators,
    decimal commas, a trailing percent sign and "(123)" negatives. Mixed
    tokens like "A12" or "12A" are rejected.
    """
    if is_missing(value):
        return None
    if _is_number(value):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()

    text = CURRENCY_RE.sub("", text)
    text = re.sub(r"\s+", "", text)
    if text.endswith("%"):
        text = text[:-1]
    if not text:
        return None

    if "," in text:
        if "." in text:
            text = text.replace(",", "")
        elif THOUSANDS_RE.match(text):
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            return None

    if not NUMERIC_LITERAL_RE.match(text):
        return None

    number = float(text)
    if not math.isfinite(number):
        return None
    return -number if negative else number


def looks_numeric(value: Any) -> bool:
    return parse_number(value) is not None


def _naive(ts: Any) -> Optional[pd.Timestamp]:
    if ts is pd.NaT or not isinstance(ts, pd.Timestamp):
        return None
    if ts.tzinfo is not None:
        return ts.tz_convert("UTC").tz_localize(None)
    return ts


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a date-like cell into a naive pandas Timestamp.

    Plain numbers are never treated as dates. Strings must be shaped like a
    calendar date; they go through the general parser first and fall back to
    day-first ``D/M/Y`` / ``D-M-Y`` with 2- or 4-digit years.
    """
    if is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        return _naive(value)
    if isinstance(value, (datetime, date, np.datetime64)):
        try:
            return _naive(pd.Timestamp(value))
        except (ValueError, OverflowError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if looks_numeric(text) or not DATE_SHAPE_RE.search(text):
        return None

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = _naive(pd.Timestamp(text))
        if parsed is not None:
            return parsed
    except (ValueError, OverflowError):
        pass

    match = DMY_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return pd.Timestamp(year=year, month=month, day=day)
        except (ValueError, OverflowError):
            return None

    return None


def looks_date(value: Any) -> bool:
    return parse_date(value) is not None


def value_key(value: Any) -> str:
    """Canonical string key for uniqueness counting and row fingerprints."""
    if is_missing(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, (float, np.floating)):
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return str(value)


def safe_string(value: Any) -> str:
    return "" if is_missing(value) else str(value).strip()


def strided_sample(items: Sequence[T], size: int) -> List[T]:
    """Deterministic, evenly strided sample of at most ``size`` items."""
    if len(items) <= size:
        return list(items)
    step = max(1, len(items) // size)
    return list(items[::step][:size])


def normalize_key(text: Any) -> str:
    """Case, space and punctuation-insensitive key for column names."""
    return re.sub(r"[^a-z0-9]", "", str(text).strip().lower())
