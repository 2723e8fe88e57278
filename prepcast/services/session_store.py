"""Redis-backed session store for raw / cleaned snapshots and computed results.

Each session is one JSON document.  The engines never read this module; it
only holds what the HTTP layer hands back to them on the next request.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import redis

from prepcast.config import settings

_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

_TTL = settings.SESSION_TTL_SECONDS


def _key(session_id: str) -> str:
    return f"prepcast_session:{session_id}"


def _save(session: dict) -> None:
    _client.setex(_key(session["id"]), _TTL, json.dumps(session, default=str))


def create_session(name: str, columns: list[str], rows: list[dict[str, Any]]) -> dict:
    """Store a new session holding the raw table snapshot."""
    now = datetime.now(timezone.utc).isoformat()
    session = {
        "id": uuid.uuid4().hex,
        "name": name,
        "columns": list(columns),
        "raw_rows": rows,
        "cleaned_rows": None,
        "domain": None,
        "cleaning_config": None,
        "weight_config": None,
        "statistics": None,
        "forecast": None,
        "audit_trail": [],
        "created_at": now,
        "updated_at": now,
    }
    _save(session)
    return session


def get_session(session_id: str) -> dict | None:
    """Return the session or None if missing / expired."""
    raw = _client.get(_key(session_id))
    if raw is None:
        return None
    return json.loads(raw)


def update_session(session_id: str, **fields: Any) -> dict | None:
    """Merge `fields` into the stored session and refresh its TTL."""
    session = get_session(session_id)
    if session is None:
        return None
    session.update(fields)
    session["updated_at"] = datetime.now(timezone.utc).isoformat()
    _save(session)
    return session


def delete_session(session_id: str) -> bool:
    return bool(_client.delete(_key(session_id)))
