from __future__ import annotations

import math

import pandas as pd
from fastapi import APIRouter, HTTPException

from prepcast.schemas.cleaning import (
    CleaningLogEntry,
    CleanRequest,
    CleanResponse,
    WeightConfig,
    WeightsResponse,
)
from prepcast.services.cleaning import DataCleaningPipeline
from prepcast.services.session_store import get_session, update_session
from prepcast.services.weighting import compute_weighted_stats

router = APIRouter(prefix="/sessions", tags=["cleaning"])


def _get_session_or_404(session_id: str) -> dict:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _get_cleaned_or_422(session: dict) -> pd.DataFrame:
    if session.get("cleaned_rows") is None:
        raise HTTPException(
            status_code=422,
            detail="No cleaned data for this session. Run a clean first.",
        )
    return pd.DataFrame(session["cleaned_rows"], columns=session["columns"])


def _records(df: pd.DataFrame) -> list[dict]:
    """DataFrame rows as JSON-safe dicts (NaN becomes null)."""
    records = df.to_dict(orient="records")
    return [
        {k: (None if isinstance(v, float) and math.isnan(v) else v) for k, v in row.items()}
        for row in records
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Clean (full or delta)
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{session_id}/clean", response_model=CleanResponse)
def clean(session_id: str, payload: CleanRequest):
    session = _get_session_or_404(session_id)
    columns = payload.columns or session["columns"]

    # Delta cleans re-clean edited rows of the current cleaned snapshot, but
    # thresholds always come from the original upload.
    raw = pd.DataFrame(session["raw_rows"], columns=session["columns"])

    if payload.row_indices is None:
        pipeline = DataCleaningPipeline(raw, columns, payload.config)
        cleaned = pipeline.run()
        mode = "full"
    else:
        base = pd.DataFrame(session.get("cleaned_rows") or session["raw_rows"], columns=session["columns"])
        pipeline = DataCleaningPipeline(base, columns, payload.config, reference_df=raw)
        cleaned = pipeline.run(payload.row_indices)
        mode = "delta"

    rows = _records(cleaned)
    audit = session.get("audit_trail") or []
    audit.extend(entry.model_dump(mode="json") for entry in pipeline.logs)
    update_session(
        session_id,
        cleaned_rows=rows,
        cleaning_config=payload.config.model_dump(),
        audit_trail=audit,
    )
    return CleanResponse(session_id=session_id, mode=mode, summary=pipeline.summary, rows=rows)


@router.get("/{session_id}/audit-trail", response_model=list[CleaningLogEntry])
def audit_trail(session_id: str, limit: int = 100, offset: int = 0):
    session = _get_session_or_404(session_id)
    return (session.get("audit_trail") or [])[offset: offset + limit]


# ─────────────────────────────────────────────────────────────────────────────
# Weighted statistics
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{session_id}/weights", response_model=WeightsResponse)
def weights(session_id: str, payload: WeightConfig):
    session = _get_session_or_404(session_id)
    df = _get_cleaned_or_422(session)

    if payload.weight_column and payload.weight_column not in df.columns:
        raise HTTPException(status_code=422, detail=f"Unknown weight column '{payload.weight_column}'")

    statistics = compute_weighted_stats(df, session["columns"], payload)
    update_session(
        session_id,
        weight_config=payload.model_dump(),
        statistics={col: s.model_dump() for col, s in statistics.items()},
    )
    return WeightsResponse(session_id=session_id, weight_config=payload, statistics=statistics)
