"""
Display formatting for KPI values and generated sentences.
"""
import math
from typing import Any, Optional


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def fmt_count(value: int) -> str:
    """Thousands-separated integer, e.g. ``1,234``."""
    return f"{int(value):,}"


def fmt_pct(value: Optional[float]) -> str:
    """Whole-number percentage, e.g. ``42%``. Non-finite input reads as 0%."""
    if value is None or not math.isfinite(value):
        value = 0.0
    return f"{round_half_up(value)}%"


def fmt_compact(value: Any) -> str:
    """
    Compact number for headline values.

    Billions and millions get a ``B``/``M`` suffix with two decimals, values
    from a thousand up are rounded and comma-separated, smaller integers are
    shown as-is and everything else keeps two decimals.
    """
    if value is None:
        return "n/a"
    number = float(value)
    if not math.isfinite(number):
        return str(number)

    magnitude = abs(number)
    if magnitude >= 1_000_000_000:
        return f"{number / 1_000_000_000:.2f}B"
    if magnitude >= 1_000_000:
        return f"{number / 1_000_000:.2f}M"
    if magnitude >= 1_000:
        return f"{round_half_up(number):,}"
    if number.is_integer():
        return str(int(number))
    return f"{number:.2f}"
