"""
Shared fixtures.

FakeRedis stands in for the Redis client so the session store and the HTTP
routes can be exercised without a server.
"""

from __future__ import annotations

import sys
import os

# ── Make the prepcast package importable without installing it ─────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from prepcast.config import settings
from prepcast.services import session_store


class FakeRedis:
    """Minimal in-memory stand-in for the get / setex / delete calls we make."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        existed = key in self.store
        self.store.pop(key, None)
        self.ttls.pop(key, None)
        return int(existed)


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(session_store, "_client", fake)
    return fake


@pytest.fixture
def no_openai(monkeypatch):
    """Force the keyword fallback for domain detection."""
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
