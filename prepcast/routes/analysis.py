from __future__ import annotations

from typing import Optional

import pandas as pd
from fastapi import APIRouter, HTTPException, Query

from prepcast.config import settings
from prepcast.schemas.analysis import (
    DistributionAnalysis,
    ForecastResponse,
    ForecastSuitability,
    PlausibilityReport,
)
from prepcast.schemas.session import ProcessingReport
from prepcast.services import stats
from prepcast.services.forecasting import (
    ForecastingError,
    auto_forecast,
    detect_time_series_column,
    validate_forecasting_suitability,
)
from prepcast.services.histogram import analyze_distribution, histogram_columns
from prepcast.services.plausibility import generate_plausibility_report
from prepcast.services.report import build_processing_report
from prepcast.services.session_store import get_session, update_session

router = APIRouter(prefix="/sessions", tags=["analysis"])


def _get_session_or_404(session_id: str) -> dict:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _frame(session: dict, source: str) -> pd.DataFrame:
    """'raw' or 'cleaned' snapshot as a DataFrame."""
    if source == "cleaned":
        if session.get("cleaned_rows") is None:
            raise HTTPException(
                status_code=422,
                detail="No cleaned data for this session. Run a clean first.",
            )
        return pd.DataFrame(session["cleaned_rows"], columns=session["columns"])
    return pd.DataFrame(session["raw_rows"], columns=session["columns"])


# ─────────────────────────────────────────────────────────────────────────────
# Distribution preview
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{session_id}/distribution", response_model=DistributionAnalysis)
def distribution(
    session_id: str,
    column: Optional[str] = None,
    bins: Optional[int] = Query(None, ge=1),
):
    session = _get_session_or_404(session_id)
    raw = _frame(session, "raw")

    eligible = histogram_columns(raw, session["columns"])
    if not eligible:
        raise HTTPException(status_code=422, detail="No numeric columns to chart")
    column = column or eligible[0]
    if column not in eligible:
        raise HTTPException(status_code=422, detail=f"Column '{column}' is not numeric enough to chart")

    cleaned_values = None
    if session.get("cleaned_rows") is not None:
        cleaned_values = stats.numeric_values(_frame(session, "cleaned")[column].tolist())

    config = session.get("cleaning_config") or {}
    return analyze_distribution(
        column,
        stats.numeric_values(raw[column].tolist()),
        cleaned_values,
        bin_count=bins,
        method=config.get("outlier_method"),
        threshold=config.get("outlier_threshold"),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Plausibility flags
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{session_id}/plausibility", response_model=PlausibilityReport)
def plausibility(
    session_id: str,
    source: str = "raw",
    domain: Optional[str] = None,
    source_trust: str = "medium",
):
    session = _get_session_or_404(session_id)
    df = _frame(session, source)
    return generate_plausibility_report(
        df,
        session["columns"],
        domain=domain or session.get("domain") or "general",
        source_trust=source_trust,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Forecasting
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{session_id}/forecast/suitability", response_model=ForecastSuitability)
def forecast_suitability(session_id: str, source: str = "cleaned"):
    session = _get_session_or_404(session_id)
    return validate_forecasting_suitability(_frame(session, source), session["columns"])


@router.post("/{session_id}/forecast", response_model=ForecastResponse)
def forecast(session_id: str, steps: Optional[int] = None, source: str = "cleaned"):
    session = _get_session_or_404(session_id)
    df = _frame(session, source)

    suitability = validate_forecasting_suitability(df, session["columns"])
    if not suitability.suitable:
        raise HTTPException(status_code=422, detail=suitability.reason)

    candidate = detect_time_series_column(df, session["columns"])
    try:
        result = auto_forecast(candidate.values, steps or settings.FORECAST_STEPS)
    except ForecastingError as e:
        raise HTTPException(status_code=422, detail=str(e))

    response = ForecastResponse(
        session_id=session_id,
        column=candidate.column,
        historical_data_points=len(candidate.values),
        forecast=result,
    )
    update_session(session_id, forecast=response.model_dump(exclude={"session_id"}))
    return response


# ─────────────────────────────────────────────────────────────────────────────
# Report
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{session_id}/report", response_model=ProcessingReport)
def report(session_id: str):
    return build_processing_report(_get_session_or_404(session_id))
