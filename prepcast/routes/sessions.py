from __future__ import annotations

from fastapi import APIRouter, HTTPException

from prepcast.schemas.session import (
    DomainResponse,
    RowEditRequest,
    SessionCreateRequest,
    SessionResponse,
)
from prepcast.services.domain_detector import classify_domain, recommended_cleaning_config
from prepcast.services.session_store import (
    create_session,
    delete_session,
    get_session,
    update_session,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _get_session_or_404(session_id: str) -> dict:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _to_response(session: dict) -> SessionResponse:
    return SessionResponse(
        id=session["id"],
        name=session["name"],
        columns=session["columns"],
        row_count=len(session["raw_rows"]),
        domain=session.get("domain"),
        cleaning_config=session.get("cleaning_config"),
        has_cleaned_data=session.get("cleaned_rows") is not None,
        created_at=session["created_at"],
        updated_at=session["updated_at"],
    )


@router.post("", response_model=SessionResponse, status_code=201)
def create(payload: SessionCreateRequest):
    # Every row exposes every declared column; absent keys become nulls
    rows = [{col: row.get(col) for col in payload.columns} for row in payload.rows]
    session = create_session(payload.name, payload.columns, rows)

    if payload.detect_domain:
        detection = classify_domain(payload.columns, rows[:5])
        session = update_session(
            session["id"],
            domain=detection.domain,
            cleaning_config=recommended_cleaning_config(detection.domain).model_dump(),
        )
    return _to_response(session)


@router.get("/{session_id}", response_model=SessionResponse)
def read(session_id: str):
    return _to_response(_get_session_or_404(session_id))


@router.delete("/{session_id}", status_code=204)
def delete(session_id: str):
    _get_session_or_404(session_id)
    delete_session(session_id)


@router.post("/{session_id}/detect-domain", response_model=DomainResponse)
def detect_domain(session_id: str):
    session = _get_session_or_404(session_id)
    detection = classify_domain(session["columns"], session["raw_rows"][:5])
    config = recommended_cleaning_config(detection.domain)
    update_session(session_id, domain=detection.domain)
    return DomainResponse(
        session_id=session_id,
        domain=detection.domain,
        source=detection.source,
        scores=detection.scores,
        recommended_config=config,
    )


@router.patch("/{session_id}/rows/{row_index}", response_model=SessionResponse)
def edit_row(session_id: str, row_index: int, payload: RowEditRequest):
    """Hand-edit one row of the working snapshot (cleaned if present, else raw)."""
    session = _get_session_or_404(session_id)
    unknown = [col for col in payload.values if col not in session["columns"]]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown columns: {', '.join(unknown)}")

    target = "cleaned_rows" if session.get("cleaned_rows") is not None else "raw_rows"
    rows = session[target]
    if not 0 <= row_index < len(rows):
        raise HTTPException(status_code=404, detail="Row not found")

    rows[row_index].update(payload.values)
    return _to_response(update_session(session_id, **{target: rows}))
