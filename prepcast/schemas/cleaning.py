from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class CleaningConfig(BaseModel):
    # 'mean' | 'median' | 'multiple'  (anything else imputes the median)
    missing_value_method: str = "median"
    # 'zscore' | 'iqr' | 'winsorize'  (anything else leaves outliers untouched)
    outlier_method: str = "iqr"
    outlier_threshold: float = 1.5

    model_config = {"frozen": True}


class WeightConfig(BaseModel):
    weight_column: Optional[str] = None
    compute_margin_of_error: bool = True

    model_config = {"frozen": True}


class CleaningLogEntry(BaseModel):
    row_index: Optional[int]
    column_name: Optional[str]
    action: str   # 'fill_missing' | 'treat_outlier'
    original_value: Optional[str]
    new_value: Optional[str]
    reason: str
    timestamp: datetime


class CleanRequest(BaseModel):
    config: CleaningConfig
    columns: Optional[list[str]] = None
    # Positional row indices for a delta clean; None cleans every row
    row_indices: Optional[list[int]] = None


class CleanResponse(BaseModel):
    session_id: str
    mode: str   # 'full' | 'delta'
    summary: dict[str, Any]
    rows: list[dict[str, Any]]


class WeightedStats(BaseModel):
    mean: float
    standard_error: float
    margin_of_error: Optional[float]
    sample_size: int
    effective_sample_size: float


class WeightsResponse(BaseModel):
    session_id: str
    weight_config: WeightConfig
    statistics: dict[str, WeightedStats] = Field(default_factory=dict)
