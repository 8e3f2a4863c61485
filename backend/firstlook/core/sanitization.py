"""
Sanitization helpers for user-provided questions, column names and cells.
"""
import re
from datetime import date, datetime
from typing import Any

CONTROL_CHARS_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]')


def sanitize_for_logging(value: Any, max_length: int = 500) -> str:
    """
    Make a value safe to log (prevents log injection).

    Args:
        value: Value to sanitize; non-strings are converted with str()
        max_length: Maximum length before truncation

    Returns:
        Single-line string without control characters
    """
    if value is None:
        return ""
    value = str(value)
    if not value:
        return ""

    value = re.sub(r'[\r\n]', ' ', value)
    value = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', value)

    if len(value) > max_length:
        value = value[:max_length] + "..."

    return value


def validate_column_name(name: Any, max_length: int = 1000) -> bool:
    """
    Check that a row key is usable as a column name.

    Header cells often carry newlines and tabs, which are allowed; other
    control characters and over-long names are not.
    """
    if not isinstance(name, str) or len(name) > max_length:
        return False
    return not CONTROL_CHARS_RE.search(name)


def is_scalar_cell(value: Any) -> bool:
    """Cells must be plain scalars: null, bool, number, text or a date."""
    return value is None or isinstance(value, (bool, int, float, str, date, datetime))
