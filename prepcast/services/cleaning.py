"""
DataCleaningPipeline — missing-value imputation and outlier treatment.

Works on a copy of the uploaded table; the caller's DataFrame is never mutated.

Phase 1: Column statistics  (computed once from the ORIGINAL numeric values)
Phase 2: Missing-data handling  (mean | median | multiple imputation)
Phase 3: Outlier treatment  (zscore -> mean, iqr -> median, winsorize -> clamp)

Two modes:
  full   : every row is processed
  delta  : only the positional row indices passed to run(), typically rows a
           user edited by hand.  Statistics still come from the full dataset so
           thresholds do not drift across repeated partial re-cleans.

Bad cells are expected input: text in a numeric column is imputed like a null
and nothing here raises for data-quality problems.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from prepcast.schemas.cleaning import CleaningConfig, CleaningLogEntry
from prepcast.services import stats

NUMERIC_COLUMN_THRESHOLD = 0.5
WINSORIZE_STD_MULTIPLIER = 2.0
MULTIPLE_IMPUTATION_NOISE = 0.1


@dataclass(frozen=True)
class ColumnStats:
    mean: float
    median: float
    std: float
    q1: float
    q3: float
    iqr: float

    @classmethod
    def from_values(cls, values: list[float]) -> "ColumnStats":
        q = stats.quartiles(values)
        return cls(
            mean=stats.mean(values),
            median=stats.median(values),
            std=stats.std(values),
            q1=q["q1"],
            q3=q["q3"],
            iqr=q["iqr"],
        )

    def winsorize_bounds(self) -> tuple[float, float]:
        spread = WINSORIZE_STD_MULTIPLIER * self.std
        return self.mean - spread, self.mean + spread


# ─────────────────────────────────────────────────────────────────────────────
# Outlier predicates (shared with the histogram engine's outlier counter)
# ─────────────────────────────────────────────────────────────────────────────

def is_outlier(value: float, col_stats: ColumnStats, method: str, threshold: float) -> bool:
    if method == "zscore":
        if col_stats.std <= 0:
            return False
        return abs((value - col_stats.mean) / col_stats.std) > threshold
    if method == "iqr":
        lower = col_stats.q1 - threshold * col_stats.iqr
        upper = col_stats.q3 + threshold * col_stats.iqr
        return value < lower or value > upper
    if method == "winsorize":
        # Fixed mean ± 2·std band; the threshold parameter is not used here.
        lower, upper = col_stats.winsorize_bounds()
        return value < lower or value > upper
    return False


def treat_outlier(value: float, col_stats: ColumnStats, method: str) -> float:
    if method == "zscore":
        return col_stats.mean
    if method == "iqr":
        return col_stats.median
    if method == "winsorize":
        lower, upper = col_stats.winsorize_bounds()
        return max(lower, min(upper, value))
    return value


class DataCleaningPipeline:
    def __init__(
        self,
        df: pd.DataFrame,
        columns: Iterable[str],
        config: CleaningConfig,
        rng: Optional[np.random.Generator] = None,
        reference_df: Optional[pd.DataFrame] = None,
    ):
        self.df = df.copy()
        # Thresholds come from here; defaults to the frame being cleaned
        self.reference_df = reference_df if reference_df is not None else df
        self.columns = list(columns)
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()
        self.column_stats: dict[str, ColumnStats] = {}
        self.logs: list[CleaningLogEntry] = []
        self.summary = {
            "rows_processed": 0,
            "columns_cleaned": [],
            "columns_skipped": [],
            "missing_filled": 0,
            "outliers_treated": 0,
        }

    # ─────────────────────────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────────────────────────

    def _log(
        self,
        action: str,
        reason: str,
        column_name: Optional[str] = None,
        row_index: Optional[int] = None,
        original_value: Any = None,
        new_value: Any = None,
    ):
        self.logs.append(
            CleaningLogEntry(
                row_index=row_index,
                column_name=column_name,
                action=action,
                original_value=str(original_value) if original_value is not None else None,
                new_value=str(new_value) if new_value is not None else None,
                reason=reason,
                timestamp=datetime.now(timezone.utc),
            )
        )

    # ─────────────────────────────────────────────────────────────────
    # PHASE 1: Column statistics
    # ─────────────────────────────────────────────────────────────────

    def compute_column_stats(self) -> dict[str, ColumnStats]:
        """Stats per eligible column from the pre-mutation values."""
        self.column_stats = {}
        for col in self.columns:
            if col not in self.df.columns or col not in self.reference_df.columns:
                self.summary["columns_skipped"].append(col)
                continue
            raw = self.reference_df[col].tolist()
            if stats.numeric_ratio(raw) < NUMERIC_COLUMN_THRESHOLD:
                self.summary["columns_skipped"].append(col)
                continue
            values = stats.numeric_values(raw)
            if not values:
                self.summary["columns_skipped"].append(col)
                continue
            self.column_stats[col] = ColumnStats.from_values(values)
        return self.column_stats

    # ─────────────────────────────────────────────────────────────────
    # PHASE 2: Missing-data handling
    # ─────────────────────────────────────────────────────────────────

    def impute_value(self, col_stats: ColumnStats) -> float:
        method = self.config.missing_value_method
        if method == "mean":
            return col_stats.mean
        if method == "median":
            return col_stats.median
        if method == "multiple":
            # Single noisy draw around the median standing in for multiple imputation
            noise = (self.rng.random() - 0.5) * col_stats.std * MULTIPLE_IMPUTATION_NOISE
            return col_stats.median + noise
        return col_stats.median

    # ─────────────────────────────────────────────────────────────────
    # PHASE 3: Outlier treatment
    # ─────────────────────────────────────────────────────────────────

    def clean_cell(self, column: str, row_index: int, value: Any) -> Any:
        """Return the cleaned value for one cell of an eligible column."""
        col_stats = self.column_stats[column]
        method = self.config.outlier_method
        threshold = self.config.outlier_threshold

        number = stats.to_number(value)
        if number is None:
            number = self.impute_value(col_stats)
            self._log(
                action="fill_missing",
                reason=f"Missing or non-numeric value filled with {self.config.missing_value_method} ({number:.4g})",
                column_name=column,
                row_index=row_index,
                original_value=value,
                new_value=round(number, 4),
            )
            self.summary["missing_filled"] += 1
            value = number

        if is_outlier(number, col_stats, method, threshold):
            treated = treat_outlier(number, col_stats, method)
            self._log(
                action="treat_outlier",
                reason=f"Value {number:.4g} flagged by {method} (threshold {threshold:g}), replaced with {treated:.4g}",
                column_name=column,
                row_index=row_index,
                original_value=value,
                new_value=round(treated, 4),
            )
            self.summary["outliers_treated"] += 1
            return treated

        return value

    # ─────────────────────────────────────────────────────────────────
    # Run
    # ─────────────────────────────────────────────────────────────────

    def run(self, row_indices: Optional[Iterable[int]] = None) -> pd.DataFrame:
        """Clean every row, or only `row_indices` (positional) for a delta clean."""
        self.compute_column_stats()

        n_rows = len(self.df)
        if row_indices is None:
            targets = list(range(n_rows))
        else:
            targets = sorted({int(i) for i in row_indices if 0 <= int(i) < n_rows})

        for col, col_stats in self.column_stats.items():
            values = self.df[col].tolist()
            for idx in targets:
                values[idx] = self.clean_cell(col, idx, values[idx])
            self.df[col] = pd.Series(values, index=self.df.index, dtype=object).infer_objects()
            self.summary["columns_cleaned"].append(col)

        self.summary["rows_processed"] = len(targets)
        return self.df


def clean_data(
    df: pd.DataFrame,
    columns: Iterable[str],
    config: CleaningConfig,
    row_indices: Optional[Iterable[int]] = None,
    rng: Optional[np.random.Generator] = None,
    reference_df: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """Functional entry point: returns a cleaned copy of `df`."""
    pipeline = DataCleaningPipeline(df, columns, config, rng=rng, reference_df=reference_df)
    return pipeline.run(row_indices)
