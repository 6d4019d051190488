"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and flow code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Email uniqueness is enforced by the UNIQUE constraint on users.email, not by
  a read-before-write check, so two concurrent registrations cannot both win.

Connections:
  Every method acquires a connection in a `with` block. The connection goes
  back to the pool on every exit path, including IntegrityError.

Layer rule: no imports from api/, web/, or sessions/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine

from auth.models import User
from core.database import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///shopgate.db")
        store.create_user(User(email="a@x.com", password_hash=hash_password("secret")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str, ssl_ca: str = "") -> None:
        self.engine: Engine = make_engine(db_url, ssl_ca)
        _metadata.create_all(self.engine)

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email is already
        registered. AuthFlow.register() turns that into a conflict outcome.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    password_hash=user.password_hash,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
