"""
Histogram & distribution engine.

Buckets a numeric column, describes its shape (skewness / kurtosis / normality)
and recommends an outlier method for the cleaning step.  Outlier counting uses
the cleaning pipeline's own predicates so a preview never disagrees with what
a clean would actually touch.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Optional, Sequence

import pandas as pd

from prepcast.schemas.analysis import (
    DistributionAnalysis,
    DistributionMetrics,
    HistogramBin,
    HistogramResult,
    OutlierRecommendation,
)
from prepcast.services import stats
from prepcast.services.cleaning import ColumnStats, is_outlier

HISTOGRAM_NUMERIC_THRESHOLD = 0.7
MIN_BINS = 5
MAX_BINS = 20


def optimal_bin_count(n: int) -> int:
    """Sturges' rule, clamped to [5, 20]."""
    if n <= 0:
        return MIN_BINS
    return max(MIN_BINS, min(MAX_BINS, math.ceil(1 + 3.322 * math.log10(n))))


def generate_histogram(values: Sequence[float], bin_count: Optional[int] = None) -> Optional[HistogramResult]:
    if not values:
        return None

    bins_n = bin_count or optimal_bin_count(len(values))
    lo = float(min(values))
    hi = float(max(values))
    bin_width = (hi - lo) / bins_n

    bins = []
    for i in range(bins_n):
        bin_min = lo + i * bin_width
        bin_max = lo + (i + 1) * bin_width
        bins.append(
            HistogramBin(
                range=f"{bin_min:.1f}-{bin_max:.1f}",
                min=bin_min,
                max=bin_max,
                midpoint=(bin_min + bin_max) / 2,
            )
        )

    for v in values:
        # Rightmost bin is closed so the maximum lands inside it
        idx = min(math.floor((v - lo) / bin_width), bins_n - 1) if bin_width > 0 else 0
        if 0 <= idx < bins_n:
            bins[idx].count += 1

    total = len(values)
    for b in bins:
        b.frequency = b.count / total

    return HistogramResult(
        bins=bins,
        bin_width=bin_width,
        min=lo,
        max=hi,
        range=hi - lo,
        bin_count=bins_n,
        total_values=total,
    )


MAX_INDEX_KEY = 2 ** 32 - 2


def _round_tenth(v: float) -> float:
    # Half-up to one decimal, so 0.25 -> 0.3
    return math.floor(v * 10 + 0.5) / 10


def _is_index_key(key: float) -> bool:
    return key.is_integer() and 0 <= key <= MAX_INDEX_KEY


def _mode(values: Sequence[float]) -> float:
    """
    Most frequent value after rounding to one decimal.

    Ties go to the LAST candidate in key order: non-negative whole numbers
    ascending first, then every other key in first-seen order.
    """
    counts = Counter(_round_tenth(v) for v in values)
    whole = sorted(k for k in counts if _is_index_key(k))
    rest = [k for k in counts if not _is_index_key(k)]

    best = None
    for key in whole + rest:
        if best is None or counts[key] >= counts[best]:
            best = key
    return float(best)


def _skewness_label(skew: float) -> str:
    if skew > 0.5:
        return "Right-skewed"
    if skew < -0.5:
        return "Left-skewed"
    return "Symmetric"


def _kurtosis_label(kurt: float) -> str:
    if kurt > 4:
        return "Heavy tails"
    if kurt < 2:
        return "Light tails"
    return "Normal tails"


def compute_distribution_metrics(values: Sequence[float]) -> Optional[DistributionMetrics]:
    """Shape metrics; None for fewer than 3 values."""
    if not values or len(values) < 3:
        return None

    skew = stats.skewness(values)
    kurt = stats.kurtosis(values)

    return DistributionMetrics(
        mean=stats.mean(values),
        median=stats.median(values),
        mode=_mode(values),
        std=stats.std(values),
        skewness=round(skew, 3),
        skewness_label=_skewness_label(skew),
        kurtosis=round(kurt, 3),
        kurtosis_label=_kurtosis_label(kurt),
        is_normal=abs(skew) < 0.5 and abs(kurt - 3) < 1,
        sample_size=len(values),
    )


def recommend_outlier_method(metrics: Optional[DistributionMetrics]) -> OutlierRecommendation:
    if metrics is None:
        return OutlierRecommendation(method="zscore", threshold=3.0, reason="Default")

    if metrics.is_normal:
        return OutlierRecommendation(
            method="zscore", threshold=3.0, reason="Normal distribution detected"
        )
    if abs(metrics.skewness) > 0.5:
        return OutlierRecommendation(
            method="iqr", threshold=1.5, reason=f"{metrics.skewness_label} - IQR is more robust"
        )
    if metrics.kurtosis > 4:
        return OutlierRecommendation(
            method="winsorize", threshold=0.05, reason="Heavy tails - Cap extreme values"
        )
    return OutlierRecommendation(method="zscore", threshold=3.0, reason="Standard method")


def count_outliers(values: Sequence[float], method: str, threshold: float) -> int:
    if not values:
        return 0
    col_stats = ColumnStats.from_values(list(values))
    return sum(1 for v in values if is_outlier(v, col_stats, method, threshold))


def histogram_columns(df: pd.DataFrame, columns: Sequence[str]) -> list[str]:
    """Columns numeric enough (>= 70% of non-missing cells) to chart."""
    return [
        col for col in columns
        if col in df.columns and stats.numeric_ratio(df[col].tolist()) >= HISTOGRAM_NUMERIC_THRESHOLD
    ]


def analyze_distribution(
    column: str,
    raw_values: Sequence[float],
    cleaned_values: Optional[Sequence[float]] = None,
    bin_count: Optional[int] = None,
    method: Optional[str] = None,
    threshold: Optional[float] = None,
) -> DistributionAnalysis:
    """
    Before/after view of one column.

    The recommendation always comes from the raw distribution.  Outliers are
    counted with `method` / `threshold` when given, otherwise with the
    recommended ones.
    """
    raw_metrics = compute_distribution_metrics(raw_values)
    recommendation = recommend_outlier_method(raw_metrics)
    method = method or recommendation.method
    threshold = threshold if threshold is not None else recommendation.threshold

    analysis = DistributionAnalysis(
        column=column,
        raw_histogram=generate_histogram(raw_values, bin_count),
        raw_metrics=raw_metrics,
        recommendation=recommendation,
        raw_outlier_count=count_outliers(raw_values, method, threshold),
    )
    if cleaned_values is not None:
        analysis.cleaned_histogram = generate_histogram(cleaned_values, bin_count)
        analysis.cleaned_metrics = compute_distribution_metrics(cleaned_values)
        analysis.cleaned_outlier_count = count_outliers(cleaned_values, method, threshold)
    return analysis
