"""
core/database.py -- SQLAlchemy engine construction shared by every store.

Both auth/store.py and sessions/store.py open their engine here so SQLite
pragmas, pool options and TLS settings are decided in one place.

SQLite:
  check_same_thread=False because FastAPI runs sync route handlers in a
  thread pool. WAL journal mode is set per-connection because SQLite PRAGMAs
  are not inherited by new connections from the pool.

Server databases (MySQL, PostgreSQL):
  pool_pre_ping=True so a connection dropped by the server is replaced
  before it is handed to a request. When a CA bundle is configured the driver
  is told to verify the server certificate.

Layer rule: no imports from api/, web/, auth/, or sessions/.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _tls_connect_args(backend: str, ssl_ca: str) -> dict:
    if backend == "mysql":
        return {"ssl": {"ca": ssl_ca}}
    if backend == "postgresql":
        return {"sslmode": "verify-full", "sslrootcert": ssl_ca}
    return {}


def make_engine(db_url: str, ssl_ca: str = "") -> Engine:
    """Create an Engine for db_url, enabling TLS when ssl_ca is given.

    Every store uses the returned engine through `with engine.connect()` /
    `with engine.begin()` blocks, so a pooled connection is always released,
    whether the statement succeeds, violates a constraint, or raises.
    """
    backend = make_url(db_url).get_backend_name()
    if backend == "sqlite":
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _set_wal_mode)
        return engine

    connect_args = _tls_connect_args(backend, ssl_ca) if ssl_ca else {}
    return create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)
