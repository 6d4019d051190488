"""Unit tests for sessions/store.py -- both backings share one behavioural suite.

Covers:
- create() issues distinct opaque identifiers bound to the principal
- get() returns None for unknown, destroyed and expired identifiers
- destroy() is idempotent
- purge_expired() removes only expired records
- build_session_store() picks the backing named by settings
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

from core.config import Settings
from sessions.store import InMemorySessionStore, SessionStore, SqlSessionStore, build_session_store

TTL = 3600


@pytest.fixture(params=["memory", "sql"])
def store(request, clock) -> Generator[SessionStore, None, None]:
    if request.param == "memory":
        s: SessionStore = InMemorySessionStore(ttl_seconds=TTL, clock=clock)
    else:
        s = SqlSessionStore("sqlite:///:memory:", ttl_seconds=TTL, clock=clock)
    yield s
    s.close()


def test_create_then_get(store: SessionStore, clock) -> None:
    record = store.create("a@x.com")
    assert record.user_email == "a@x.com"
    assert record.expires_at == clock.now + TTL
    assert store.get(record.session_id) == record


def test_identifiers_are_distinct_and_opaque(store: SessionStore) -> None:
    first = store.create("a@x.com")
    second = store.create("a@x.com")
    assert first.session_id != second.session_id
    assert "a@x.com" not in first.session_id
    assert len(first.session_id) >= 32


def test_unknown_and_empty_identifiers(store: SessionStore) -> None:
    assert store.get("no-such-session") is None
    assert store.get("") is None


def test_destroy_is_idempotent(store: SessionStore) -> None:
    record = store.create("a@x.com")
    store.destroy(record.session_id)
    store.destroy(record.session_id)
    assert store.get(record.session_id) is None


def test_record_expires_after_ttl(store: SessionStore, clock) -> None:
    record = store.create("a@x.com")
    clock.advance(TTL - 1)
    assert store.get(record.session_id) is not None
    clock.advance(2)
    assert store.get(record.session_id) is None


def test_purge_expired_keeps_live_records(store: SessionStore, clock) -> None:
    old = store.create("old@x.com")
    clock.advance(TTL / 2)
    fresh = store.create("fresh@x.com")
    clock.advance(TTL / 2 + 1)
    assert store.purge_expired() == 1
    assert store.get(old.session_id) is None
    assert store.get(fresh.session_id) is not None


def test_in_memory_store_drops_expired_record_on_lookup(clock) -> None:
    store = InMemorySessionStore(ttl_seconds=10, clock=clock)
    record = store.create("a@x.com")
    assert record.session_id in store._records
    clock.advance(11)
    assert store.get(record.session_id) is None
    assert record.session_id not in store._records


def test_build_session_store_selects_backing() -> None:
    memory = build_session_store(Settings(session_backend="memory", session_ttl_seconds=60))
    assert isinstance(memory, InMemorySessionStore)
    assert memory.ttl_seconds == 60

    database = build_session_store(Settings(session_backend="database", database_url="sqlite:///:memory:"))
    try:
        assert isinstance(database, SqlSessionStore)
    finally:
        database.close()
