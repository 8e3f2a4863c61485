"""
Numeric helpers used by the profiler and the chart generator.

All functions accept plain sequences of floats, skip non-finite values and
return ``None`` (or an empty result) when there is not enough data instead
of raising.
"""
import math
from typing import Dict, List, Optional, Sequence

import numpy as np


def _clean(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[np.isfinite(arr)]


def quantile_sorted(sorted_values: Sequence[float], q: float) -> Optional[float]:
    """Linear-interpolation quantile of an already sorted sequence."""
    n = len(sorted_values)
    if n == 0:
        return None
    if n == 1:
        return float(sorted_values[0])
    pos = (n - 1) * q
    base = int(math.floor(pos))
    rest = pos - base
    lower = float(sorted_values[base])
    upper = float(sorted_values[min(n - 1, base + 1)])
    gap = upper - lower
    if not math.isfinite(gap):
        return lower * (1 - rest) + upper * rest
    return lower + gap * rest


def median(sorted_values: Sequence[float]) -> Optional[float]:
    """Middle value; the average of the two middle values for even counts."""
    n = len(sorted_values)
    if n == 0:
        return None
    mid = n // 2
    if n % 2 == 0:
        return float(sorted_values[mid - 1]) / 2 + float(sorted_values[mid]) / 2
    return float(sorted_values[mid])


def sample_stdev(values: Sequence[float]) -> Optional[float]:
    """Sample standard deviation (N-1 denominator), ``None`` below two values."""
    arr = _clean(values)
    if len(arr) < 2:
        return None
    with np.errstate(over="ignore", invalid="ignore"):
        spread = float(np.std(arr, ddof=1))
    if not math.isfinite(spread):
        # squares overflow near the float limit; work on a unit scale instead
        scale = float(np.max(np.abs(arr)))
        spread = float(np.std(arr / scale, ddof=1)) * scale
    return spread if math.isfinite(spread) else None


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean that stays finite when the plain sum would overflow."""
    arr = _clean(values)
    if len(arr) == 0:
        return None
    with np.errstate(over="ignore", invalid="ignore"):
        average = float(arr.mean())
    if not math.isfinite(average):
        average = float(np.sum(arr / len(arr)))
    return average


def pearson(xs: Sequence[float], ys: Sequence[float], min_values: int = 8) -> Optional[float]:
    """
    Pearson correlation of two equal-length sequences.

    Returns ``None`` for mismatched lengths, fewer than ``min_values`` pairs
    or a zero-variance input.
    """
    if len(xs) != len(ys) or len(xs) < min_values:
        return None

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if not math.isfinite(denominator) or denominator == 0:
        return None

    r = float(np.dot(dx, dy)) / denominator
    if not math.isfinite(r):
        return None
    # float noise can push |r| a hair past 1
    return max(-1.0, min(1.0, r))


def choose_bins(n: int) -> int:
    if n <= 30:
        return 8
    if n <= 200:
        return 10
    if n <= 1000:
        return 12
    return 14


def compute_histogram(values: Sequence[float], bins: int) -> Optional[Dict]:
    """
    Equal-width histogram over [min, max].

    Every value lands in exactly one bin (the maximum goes in the last bin),
    so ``sum(counts) == total``. A constant column uses a span of 1. Ranges
    wider than the largest float are binned on half-scale values.
    """
    arr = np.sort(_clean(values))
    if len(arr) == 0 or bins < 1:
        return None

    low = float(arr[0])
    high = float(arr[-1])
    span = (high - low) or 1.0

    if math.isfinite(span):
        edges = [low + span * i / bins for i in range(bins + 1)]
        positions = np.floor((arr - low) / span * bins)
    else:
        half_span = high / 2 - low / 2
        edges = [low * (1 - i / bins) + high * (i / bins) for i in range(bins + 1)]
        positions = np.floor((arr / 2 - low / 2) / half_span * bins)
    positions = positions.astype(int)
    indexes = np.clip(positions, 0, bins - 1)
    counts = np.bincount(indexes, minlength=bins)

    return {
        "min": low,
        "max": high,
        "edges": edges,
        "counts": [int(c) for c in counts],
        "total": int(len(arr)),
    }


def compute_box(values: Sequence[float], min_values: int = 12) -> Optional[Dict]:
    """
    Five-number summary with Tukey fences.

    Whiskers end at the most extreme values inside the fences, clamped so
    that ``min <= q1`` and ``max >= q3`` always hold. ``None`` when the
    interquartile range is wider than the largest float.
    """
    arr = np.sort(_clean(values))
    if len(arr) < min_values:
        return None

    q1 = quantile_sorted(arr, 0.25)
    mid = quantile_sorted(arr, 0.5)
    q3 = quantile_sorted(arr, 0.75)
    iqr = q3 - q1
    if not math.isfinite(iqr):
        return None
    low_fence = q1 - 1.5 * iqr
    high_fence = q3 + 1.5 * iqr

    outside = (arr < low_fence) | (arr > high_fence)
    inside = arr[~outside]
    whisker_low = float(inside[0]) if len(inside) else float(arr[0])
    whisker_high = float(inside[-1]) if len(inside) else float(arr[-1])

    return {
        "min": min(whisker_low, q1),
        "q1": q1,
        "median": mid,
        "q3": q3,
        "max": max(whisker_high, q3),
        "iqr": iqr,
        "outliers": [float(v) for v in arr[outside]],
        "total": int(len(arr)),
    }


def correlation_matrix(series: List[Sequence[float]], min_values: int = 8) -> List[List[float]]:
    """
    Symmetric Pearson matrix with a unit diagonal.

    Undefined pairs (zero variance) are reported as 0.
    """
    size = len(series)
    matrix = [[0.0] * size for _ in range(size)]
    for i in range(size):
        matrix[i][i] = 1.0
        for j in range(i + 1, size):
            r = pearson(series[i], series[j], min_values)
            value = 0.0 if r is None else r
            matrix[i][j] = value
            matrix[j][i] = value
    return matrix
