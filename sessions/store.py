"""
sessions/store.py -- Pluggable server-side session stores.

SessionStore is the abstraction the auth flow and route gate depend on.
Two backings ship:

  InMemorySessionStore -- process-local dict. Used by tests and
      single-process deployments. Sessions do not survive a restart.

  SqlSessionStore -- `sessions` table through SQLAlchemy Core. Survives
      restarts and can be shared by every worker pointed at the same
      database.

Both take an injectable clock (default time.time) so expiry can be tested
without sleeping. Expired records are removed lazily on lookup and in bulk by
purge_expired(), which the API lifespan calls on a timer.

Usage:
    store = build_session_store(get_settings())
    record = store.create("a@x.com")
    store.get(record.session_id)    # SessionRecord or None
    store.destroy(record.session_id)
    store.purge_expired()

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlalchemy import Column, Float, MetaData, String, Table
from sqlalchemy.engine import Engine

from core.database import make_engine
from sessions.models import SessionRecord

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("shopgate.sessions")

_DEFAULT_TTL = 60 * 60  # 1 hour in seconds

Clock = Callable[[], float]


def _new_session_id() -> str:
    # 256 bits of entropy. The identifier is opaque; it carries no identity.
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Maps opaque session identifiers to principals with a fixed TTL."""

    def __init__(self, ttl_seconds: int = _DEFAULT_TTL, clock: Clock = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def create(self, user_email: str) -> SessionRecord:
        """Create and persist a new session for user_email."""
        record = SessionRecord(
            session_id=_new_session_id(),
            user_email=user_email,
            expires_at=self.clock() + self.ttl_seconds,
        )
        self._save(record)
        return record

    def get(self, session_id: str) -> SessionRecord | None:
        """Return the live record for session_id, or None if absent or expired."""
        if not session_id:
            return None
        record = self._load(session_id)
        if record is None:
            return None
        if record.is_expired(self.clock()):
            self.destroy(session_id)
            return None
        return record

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        """Remove the record if present. Unknown identifiers are ignored."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Delete every expired record. Returns the number removed."""

    @abstractmethod
    def _save(self, record: SessionRecord) -> None: ...

    @abstractmethod
    def _load(self, session_id: str) -> SessionRecord | None: ...

    def close(self) -> None:
        pass


class InMemorySessionStore(SessionStore):
    # FastAPI runs sync handlers in a thread pool, so the dict is shared
    # between worker threads.

    def __init__(self, ttl_seconds: int = _DEFAULT_TTL, clock: Clock = time.time) -> None:
        super().__init__(ttl_seconds, clock)
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def _save(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.session_id] = record

    def _load(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._records.get(session_id)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, rec in self._records.items() if rec.is_expired(now)]
            for sid in expired:
                del self._records[sid]
        return len(expired)


_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("session_id", String(64), primary_key=True),
    Column("user_email", String(255), nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)


class SqlSessionStore(SessionStore):
    """Session records in a relational table.

    No foreign key to users: accounts are never deleted by the application,
    and keeping the tables independent lets sessions live in a different
    database from credentials if needed.
    """

    def __init__(
        self,
        db_url: str,
        ttl_seconds: int = _DEFAULT_TTL,
        clock: Clock = time.time,
        ssl_ca: str = "",
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self.engine: Engine = make_engine(db_url, ssl_ca)
        _metadata.create_all(self.engine)

    def _save(self, record: SessionRecord) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                _sessions.insert().values(
                    session_id=record.session_id,
                    user_email=record.user_email,
                    expires_at=record.expires_at,
                )
            )

    def _load(self, session_id: str) -> SessionRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.session_id == session_id)).fetchone()
        if row is None:
            return None
        return SessionRecord(session_id=row.session_id, user_email=row.user_email, expires_at=row.expires_at)

    def destroy(self, session_id: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))

    def purge_expired(self) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= self.clock()))
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def build_session_store(settings: Settings, clock: Clock = time.time) -> SessionStore:
    """Return the backing selected by SESSION_BACKEND."""
    if settings.session_backend == "database":
        logger.info("Using database session store")
        return SqlSessionStore(
            settings.resolved_database_url,
            ttl_seconds=settings.session_ttl_seconds,
            clock=clock,
            ssl_ca=settings.db_ssl_ca,
        )
    logger.info("Using in-memory session store")
    return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds, clock=clock)
