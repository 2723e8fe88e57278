"""
Lightweight time-series forecasting.

Picks the first usable numeric column and projects it forward with exponential
smoothing: Holt's double smoothing when the series has a clear linear trend,
otherwise simple smoothing plus a short-window slope.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from prepcast.schemas.analysis import ForecastResult, ForecastSuitability, TimeSeriesCandidate
from prepcast.services import stats

MIN_ROWS = 10
MIN_SMOOTHING_POINTS = 3
NUMERIC_SHARE = 0.8
MIN_VARIANCE = 0.001
TREND_THRESHOLD = 0.3
TREND_WINDOW = 5

SES_ALPHA = 0.3
HOLT_ALPHA = 0.3
HOLT_BETA = 0.1

DATE_KEYWORDS = ("date", "time", "year", "month", "day", "timestamp")


class ForecastingError(ValueError):
    """Raised when a series cannot support the requested forecast."""


def _has_date_column(columns: Sequence[str]) -> bool:
    return any(keyword in col.lower() for col in columns for keyword in DATE_KEYWORDS)


def detect_time_series_column(df: pd.DataFrame, columns: Sequence[str]) -> Optional[TimeSeriesCandidate]:
    """
    First column (in the given order) that is >= 80% numeric with some variance.

    No ranking across candidates: the first qualifying column wins.
    """
    if df is None or len(df) < MIN_ROWS:
        return None

    for col in columns:
        if col not in df.columns:
            continue
        present = [v for v in df[col].tolist() if not stats.is_missing(v)]
        values = stats.numeric_values(present)
        if not values or len(values) < len(present) * NUMERIC_SHARE:
            continue
        if stats.variance(values) > MIN_VARIANCE:
            return TimeSeriesCandidate(
                column=col,
                values=values,
                has_date=_has_date_column(columns),
                original_length=len(df),
            )
    return None


def simple_exponential_smoothing(values: Sequence[float], steps: int = 5, alpha: float = SES_ALPHA) -> list[float]:
    """SES level plus the slope of the last few points."""
    if values is None or len(values) < MIN_SMOOTHING_POINTS:
        raise ForecastingError(f"Need at least {MIN_SMOOTHING_POINTS} data points for forecasting")

    smoothed = values[0]
    for v in values[1:]:
        smoothed = alpha * v + (1 - alpha) * smoothed

    window = min(TREND_WINDOW, len(values))
    recent = values[-window:]
    trend = (recent[-1] - recent[0]) / window

    return [smoothed + trend * (k + 1) for k in range(steps)]


def double_exponential_smoothing(
    values: Sequence[float], steps: int = 5, alpha: float = HOLT_ALPHA, beta: float = HOLT_BETA
) -> list[float]:
    """Holt's linear method."""
    if values is None or len(values) < MIN_SMOOTHING_POINTS:
        raise ForecastingError(f"Need at least {MIN_SMOOTHING_POINTS} data points for forecasting")

    level = values[0]
    trend = values[1] - values[0]
    for v in values[1:]:
        prev_level = level
        level = alpha * v + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend

    return [level + k * trend for k in range(1, steps + 1)]


def calculate_trend_strength(values: Sequence[float]) -> float:
    """|Pearson r| between each value and its position."""
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum()))
    if denominator == 0:
        return 0.0
    return abs(float((dx * dy).sum()) / denominator)


def calculate_confidence(values: Sequence[float]) -> float:
    """90 - 50·CV, clamped to [60, 95]."""
    mu = stats.mean(values)
    if mu == 0:
        return 60.0
    cv = stats.std(values) / abs(mu)
    return min(95.0, max(60.0, 90 - cv * 50))


def auto_forecast(values: Sequence[float], steps: int = 5) -> ForecastResult:
    if values is None or len(values) < MIN_ROWS:
        raise ForecastingError(f"Need at least {MIN_ROWS} data points for reliable forecasting")

    values = [float(v) for v in values]
    trend_strength = calculate_trend_strength(values)

    if trend_strength > TREND_THRESHOLD:
        predictions = double_exponential_smoothing(values, steps, HOLT_ALPHA, HOLT_BETA)
        method = "Double Exponential Smoothing (Holt)"
    else:
        predictions = simple_exponential_smoothing(values, steps, SES_ALPHA)
        method = "Simple Exponential Smoothing"

    return ForecastResult(
        predictions=[round(p, 4) for p in predictions],
        method=method,
        confidence=calculate_confidence(values),
        trend_strength=round(trend_strength * 100, 1),
    )


def validate_forecasting_suitability(df: pd.DataFrame, columns: Sequence[str]) -> ForecastSuitability:
    candidate = detect_time_series_column(df, columns)
    if candidate is None:
        return ForecastSuitability(
            suitable=False,
            reason=(
                "No suitable numeric time-series column found. Need at least one numeric "
                f"column with {MIN_ROWS}+ values and some variance."
            ),
        )

    if len(candidate.values) < MIN_ROWS:
        return ForecastSuitability(
            suitable=False,
            reason=(
                f"Insufficient data points ({len(candidate.values)}). "
                f"Need at least {MIN_ROWS} values for reliable forecasting."
            ),
        )

    return ForecastSuitability(
        suitable=True,
        column=candidate.column,
        data_points=len(candidate.values),
        has_date=candidate.has_date,
    )
