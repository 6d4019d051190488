"""
auth/tokens.py -- Password hashing and session cookie helpers.

Security design decisions:
  Passwords: bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 10).
       Bcrypt suits low-entropy secrets because its cost factor makes
       brute-force expensive, and checkpw() compares in constant time. The
       _DUMMY_HASH constant enables timing equalization in AuthFlow.login()
       so response time does not reveal whether an email is registered.

  Cookie: httpOnly, SameSite=Lax, Secure when SECURE_COOKIES=true, max_age
       equal to the session TTL so cookie and server record expire together.

Layer rule: no imports from api/, web/, or sessions/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import get_settings

logger = logging.getLogger("shopgate.auth")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Password hashing (bcrypt, direct usage)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 0) -> str:
    """Return a bcrypt hash of the given plaintext password.

    rounds=0 uses Settings.bcrypt_rounds. Passwords longer than 72 bytes are
    truncated before hashing; bcrypt 4.x and later refuse longer input
    outright, and earlier releases truncated silently.
    """
    cost = rounds if rounds > 0 else _settings.bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is treated as a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("shopgate_timing_dummy")


def burn_dummy_check(plain: str) -> None:
    """Run one bcrypt comparison whose result is discarded."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Session cookie
# ---------------------------------------------------------------------------


def set_session_cookie(response, session_id: str) -> None:
    """Write the session identifier as an httpOnly cookie on the response.

    Max-Age matches Settings.session_ttl_seconds so the browser drops the
    cookie when the server-side record expires.

    Args:
        response:   FastAPI/Starlette response object.
        session_id: Opaque identifier returned by the session store.
    """
    response.set_cookie(
        _settings.session_cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_ttl_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(_settings.session_cookie_name)
