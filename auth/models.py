"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the flow
controller do the work; these only own the shape.

Layer rule: no imports from api/, web/, or sessions/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is the login identifier and is compared exactly as stored
    (case-sensitive). password_hash is an opaque bcrypt string; the plaintext
    never leaves the request that produced it.
    """

    email: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None
