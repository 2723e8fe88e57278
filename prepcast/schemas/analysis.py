from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ── Histogram & distribution ─────────────────────────────────────────────────

class HistogramBin(BaseModel):
    range: str
    min: float
    max: float
    midpoint: float
    count: int = 0
    frequency: float = 0.0


class HistogramResult(BaseModel):
    bins: list[HistogramBin]
    bin_width: float
    min: float
    max: float
    range: float
    bin_count: int
    total_values: int


class DistributionMetrics(BaseModel):
    mean: float
    median: float
    mode: float
    std: float
    skewness: float
    skewness_label: str
    kurtosis: float
    kurtosis_label: str
    is_normal: bool
    sample_size: int


class OutlierRecommendation(BaseModel):
    method: str
    threshold: float
    reason: str


class DistributionAnalysis(BaseModel):
    column: str
    raw_histogram: Optional[HistogramResult]
    cleaned_histogram: Optional[HistogramResult] = None
    raw_metrics: Optional[DistributionMetrics]
    cleaned_metrics: Optional[DistributionMetrics] = None
    recommendation: OutlierRecommendation
    raw_outlier_count: int
    cleaned_outlier_count: Optional[int] = None


# ── Plausibility (PDAE) ──────────────────────────────────────────────────────

class PlausibilityStatus(str, Enum):
    VALID = "valid"
    IMPOSSIBLE = "impossible"
    IMPLAUSIBLE = "implausible"
    RARE = "rare"


class PlausibilityFlag(BaseModel):
    row: Optional[int] = None
    column: str
    value: Any = None
    status: PlausibilityStatus
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)
    suggested_actions: list[str] = Field(default_factory=list)
    label: str = "Validation Insight"


class PlausibilityReport(BaseModel):
    total_records: int
    flagged_count: int
    trust_score: int
    flags: list[PlausibilityFlag] = Field(default_factory=list)


# ── Forecasting ──────────────────────────────────────────────────────────────

class TimeSeriesCandidate(BaseModel):
    column: str
    values: list[float]
    has_date: bool
    original_length: int


class ForecastResult(BaseModel):
    predictions: list[float]
    method: str
    confidence: float
    trend_strength: float   # percent, one decimal


class ForecastSuitability(BaseModel):
    suitable: bool
    reason: Optional[str] = None
    column: Optional[str] = None
    data_points: Optional[int] = None
    has_date: Optional[bool] = None


class ForecastResponse(BaseModel):
    session_id: str
    column: str
    historical_data_points: int
    forecast: ForecastResult


# ── Domain detection ─────────────────────────────────────────────────────────

class DomainDetection(BaseModel):
    domain: str
    source: str   # 'ai' | 'rules'
    scores: dict[str, float] = Field(default_factory=dict)
