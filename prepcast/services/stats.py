"""
Statistics library, the numeric foundation for every engine.

All summary functions take a non-empty sequence of finite numbers; callers
filter their input with `numeric_values` first.  Standard deviation is the
population form (divisor n) throughout, and skewness / kurtosis are the raw
standardized moments (kurtosis is NOT excess, so ~3 for a normal sample).
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional, Sequence

import numpy as np
import pandas as pd


# ─────────────────────────────────────────────────────────────────────────────
# Value parsing
# ─────────────────────────────────────────────────────────────────────────────

def to_number(value: Any) -> Optional[float]:
    """Return `value` as a finite float, or None when it is missing / not numeric."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def is_missing(value: Any) -> bool:
    """None, NaN and blank strings count as missing cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return value is pd.NA or value is pd.NaT


def numeric_values(values: Iterable[Any]) -> list[float]:
    """Keep only the numeric cells of `values`, converted to float."""
    result = []
    for value in values:
        number = to_number(value)
        if number is not None:
            result.append(number)
    return result


def numeric_ratio(values: Iterable[Any]) -> float:
    """Share of non-missing cells that parse as finite numbers (0.0 when all missing)."""
    present = [v for v in values if not is_missing(v)]
    if not present:
        return 0.0
    return len(numeric_values(present)) / len(present)


def is_numeric_column(series: pd.Series, threshold: float = 0.5) -> bool:
    return numeric_ratio(series.tolist()) >= threshold


# ─────────────────────────────────────────────────────────────────────────────
# Summary statistics
# ─────────────────────────────────────────────────────────────────────────────

def mean(values: Sequence[float]) -> float:
    return float(np.mean(np.asarray(values, dtype=float)))


def median(values: Sequence[float]) -> float:
    """Middle value; average of the two middle values for an even count."""
    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2
    if n % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


def std(values: Sequence[float]) -> float:
    """Population standard deviation (divisor n, not n-1)."""
    return float(np.std(np.asarray(values, dtype=float)))


def quartiles(values: Sequence[float]) -> dict[str, float]:
    """
    Split-halves quartiles.

    q1 is the median of the lower half `s[0 : n // 2]` and q3 the median of the
    upper half `s[ceil(n / 2) : n]`.  For odd n the middle element belongs to
    neither half.  This is a fixed convention the outlier thresholds depend on,
    so it is not swapped for an interpolated percentile.

        >>> quartiles([1, 2, 3, 4, 5, 100])
        {'q1': 2.0, 'q3': 5.0, 'iqr': 3.0}
    """
    ordered = sorted(values)
    n = len(ordered)
    lower = ordered[: n // 2]
    upper = ordered[math.ceil(n / 2):]

    # A single value has empty halves; both quartiles collapse onto it.
    q1 = median(lower) if lower else median(ordered)
    q3 = median(upper) if upper else median(ordered)
    return {"q1": float(q1), "q3": float(q3), "iqr": float(q3 - q1)}


def _standardized_moment(values: Sequence[float], order: int) -> float:
    arr = np.asarray(values, dtype=float)
    sigma = float(np.std(arr))
    if sigma == 0:
        return 0.0
    z = (arr - arr.mean()) / sigma
    return float(np.mean(z ** order))


def skewness(values: Sequence[float]) -> float:
    """Third standardized moment (Pearson, not bias-corrected)."""
    return _standardized_moment(values, 3)


def kurtosis(values: Sequence[float]) -> float:
    """Fourth standardized moment; ~3 for normally distributed data."""
    return _standardized_moment(values, 4)


def variance(values: Sequence[float]) -> float:
    return float(np.var(np.asarray(values, dtype=float)))
