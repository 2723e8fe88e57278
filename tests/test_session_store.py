"""
Tests for the Redis-backed session store (against an in-memory FakeRedis).
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta

from prepcast.config import settings
from prepcast.services.session_store import (
    create_session,
    delete_session,
    get_session,
    update_session,
)


class TestSessionStore:

    def test_create_and_read_back(self, fake_redis):
        session = create_session("survey.csv", ["age"], [{"age": 30}])
        loaded = get_session(session["id"])

        assert loaded["name"] == "survey.csv"
        assert loaded["raw_rows"] == [{"age": 30}]
        assert loaded["cleaned_rows"] is None
        assert loaded["audit_trail"] == []

    def test_stored_with_ttl(self, fake_redis):
        session = create_session("s", ["a"], [])
        key = f"prepcast_session:{session['id']}"
        assert fake_redis.ttls[key] == settings.SESSION_TTL_SECONDS
        assert json.loads(fake_redis.store[key])["id"] == session["id"]

    def test_missing_session(self, fake_redis):
        assert get_session("nope") is None
        assert update_session("nope", domain="hr") is None

    def test_update_merges_fields(self, fake_redis):
        session = create_session("s", ["a"], [{"a": 1}])
        updated = update_session(session["id"], domain="hr", cleaned_rows=[{"a": 2}])

        assert updated["domain"] == "hr"
        assert get_session(session["id"])["cleaned_rows"] == [{"a": 2}]
        assert get_session(session["id"])["raw_rows"] == [{"a": 1}]

    def test_timestamps_are_utc_aware(self, fake_redis):
        session = create_session("s", ["a"], [])
        created = datetime.fromisoformat(session["created_at"])
        assert created.utcoffset() == timedelta(0)

        updated = update_session(session["id"], domain="hr")
        assert datetime.fromisoformat(updated["updated_at"]).tzinfo is not None

    def test_delete(self, fake_redis):
        session = create_session("s", ["a"], [])
        assert delete_session(session["id"]) is True
        assert get_session(session["id"]) is None
        assert delete_session(session["id"]) is False
