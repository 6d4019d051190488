"""
sessions/models.py -- Session record dataclass.

A record maps an opaque session_id (the cookie value) to the principal that
logged in. expires_at is epoch seconds, compared against the owning store's
clock.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_email: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
