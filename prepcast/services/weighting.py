"""
Weighted statistics: survey-weighted estimates for the cleaned table.

For each numeric column:
    weighted mean        Σ(v·w) / Σw
    weighted variance    Σ(w·(v - mean)²) / Σw
    effective n (Kish)   (Σw)² / Σ(w²)
    standard error       sqrt(variance / effective n)
    margin of error      1.96 · standard error   (95%, normal critical value)
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np
import pandas as pd

from prepcast.schemas.cleaning import WeightConfig, WeightedStats
from prepcast.services import stats

NUMERIC_COLUMN_THRESHOLD = 0.5
Z_CRITICAL_95 = 1.96


def _weights_for(df: pd.DataFrame, weight_column: str | None) -> list[float]:
    if not weight_column or weight_column not in df.columns:
        return [1.0] * len(df)
    weights = []
    for raw in df[weight_column].tolist():
        w = stats.to_number(raw)
        # A non-numeric weight cell keeps the unit weight
        if w is None:
            w = 1.0
        weights.append(max(w, 0.0))
    return weights


def weighted_column_stats(
    values: list[float], weights: list[float], compute_margin_of_error: bool = True
) -> WeightedStats | None:
    """Weighted estimates for paired values/weights; None when Σw is zero."""
    if not values:
        return None

    v = np.asarray(values, dtype=float)
    w = np.asarray(weights, dtype=float)
    sum_w = float(w.sum())
    if sum_w == 0:
        return None

    weighted_mean = float((v * w).sum() / sum_w)
    variance = float((w * (v - weighted_mean) ** 2).sum() / sum_w)
    effective_n = sum_w ** 2 / float((w ** 2).sum())
    standard_error = math.sqrt(variance / effective_n)

    return WeightedStats(
        mean=weighted_mean,
        standard_error=standard_error,
        margin_of_error=Z_CRITICAL_95 * standard_error if compute_margin_of_error else None,
        sample_size=len(values),
        effective_sample_size=effective_n,
    )


def compute_weighted_stats(
    df: pd.DataFrame, columns: Iterable[str], config: WeightConfig
) -> dict[str, WeightedStats]:
    weights = _weights_for(df, config.weight_column)
    result: dict[str, WeightedStats] = {}

    for col in columns:
        if col == config.weight_column or col not in df.columns:
            continue
        raw = df[col].tolist()
        if stats.numeric_ratio(raw) < NUMERIC_COLUMN_THRESHOLD:
            continue

        values, col_weights = [], []
        for cell, w in zip(raw, weights):
            number = stats.to_number(cell)
            if number is None:
                continue
            values.append(number)
            col_weights.append(w)

        col_stats = weighted_column_stats(values, col_weights, config.compute_margin_of_error)
        if col_stats is not None:
            result[col] = col_stats

    return result
