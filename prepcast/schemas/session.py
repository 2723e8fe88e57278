from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from prepcast.schemas.analysis import ForecastResult
from prepcast.schemas.cleaning import CleaningConfig, WeightedStats


class SessionCreateRequest(BaseModel):
    name: str
    columns: list[str]
    rows: list[dict[str, Any]]
    detect_domain: bool = True


class SessionResponse(BaseModel):
    id: str
    name: str
    columns: list[str]
    row_count: int
    domain: Optional[str] = None
    cleaning_config: Optional[CleaningConfig] = None
    has_cleaned_data: bool = False
    created_at: datetime
    updated_at: datetime


class DomainResponse(BaseModel):
    session_id: str
    domain: str
    source: str
    scores: dict[str, float] = Field(default_factory=dict)
    recommended_config: CleaningConfig


class ReportForecast(BaseModel):
    column: str
    historical_data_points: int
    forecast: ForecastResult


class ProcessingReport(BaseModel):
    file_name: str
    processing_date: datetime
    records_processed: int
    variables_analyzed: int
    detected_domain: str
    cleaning_config: Optional[CleaningConfig]
    confidence_level: int = 95
    statistics: dict[str, WeightedStats] = Field(default_factory=dict)
    forecast: Optional[ReportForecast] = None


class RowEditRequest(BaseModel):
    # Column -> new raw value for one row of the working snapshot
    values: dict[str, Any]
