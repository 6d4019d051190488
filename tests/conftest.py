"""
tests/conftest.py -- Shared test fixtures for ShopGate.

This module provides:
  - FakeClock: a settable time source injected into session stores
  - user_store / session_store / flow: unit-level fixtures on in-memory DBs
  - count_users: row counter used to assert on the users table directly
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - web_client: TestClient with follow_redirects=False for web route tests

Design: the web fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The uuid suffix keeps every test on its own database.

BCRYPT_ROUNDS must be set before any auth import: auth.tokens reads
settings at module load and hashes its timing dummy immediately.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth import so get_settings() picks them up.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import column, func, select, table

from asgi import app
from auth.flow import AuthFlow
from auth.store import UserStore
from sessions.store import InMemorySessionStore

TTL = 3600


class FakeClock:
    """Callable time source. advance() moves it forward by N seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


_users_table = table("users", column("email"))


def _shared_memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def count_users():
    """Return count(store, email=None): rows in the users table, optionally for one email."""

    def _count(store: UserStore, email: str | None = None) -> int:
        query = select(func.count()).select_from(_users_table)
        if email is not None:
            query = query.where(_users_table.c.email == email)
        with store.engine.connect() as conn:
            return conn.execute(query).scalar()

    return _count


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(ttl_seconds=TTL, clock=clock)


@pytest.fixture
def flow(user_store: UserStore, session_store: InMemorySessionStore) -> AuthFlow:
    return AuthFlow(user_store, session_store)


# ---------------------------------------------------------------------------
# Web fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, session_store: InMemorySessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.auth_flow = AuthFlow(user_store, session_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def web_client() -> Generator[tuple[TestClient, FakeClock, UserStore], None, None]:
    """Yield (client, clock, user_store) for web route integration tests.

    follow_redirects=False is essential: tests assert on redirect locations,
    which are invisible once the client follows the redirect.
    """
    clock = FakeClock()
    user_store = UserStore(_shared_memory_url("test_users"))
    session_store = InMemorySessionStore(ttl_seconds=TTL, clock=clock)

    app.router.lifespan_context = _patch_lifespan(user_store, session_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, clock, user_store

    user_store.close()
