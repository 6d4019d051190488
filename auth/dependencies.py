"""
auth/dependencies.py -- Route gate and FastAPI Depends() helpers.

authorize() is the gate itself: a pure function over a SessionStore, so it
can be exercised without HTTP. The request helpers read the session cookie
and call it.

try_get_current_session() is the soft variant (returns None on failure).
get_current_session() wraps it and raises HTTP 401 if unauthenticated; the
JSON API uses it. HTML routes call try_get_current_session() and redirect
instead.

Layer rule: no imports from web/ or api/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from sessions.models import SessionRecord
from sessions.store import SessionStore

logger = logging.getLogger("shopgate.auth")


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    principal: str | None = None
    session: SessionRecord | None = None


_DENIED = GateDecision(allowed=False)


def authorize(sessions: SessionStore, session_ref: str | None) -> GateDecision:
    """Allow the request if session_ref names a live session.

    Missing, unknown and expired references are all denied. Expired records
    are removed by the store during the lookup.
    """
    if not session_ref:
        return _DENIED
    record = sessions.get(session_ref)
    if record is None:
        return _DENIED
    return GateDecision(allowed=True, principal=record.user_email, session=record)


def session_ref_from(request: Request) -> str | None:
    return request.cookies.get(get_settings().session_cookie_name)


def try_get_current_session(request: Request) -> SessionRecord | None:
    """Return the live SessionRecord for this request, or None.

    A session store error is logged and treated as no session.
    """
    try:
        decision = authorize(request.app.state.session_store, session_ref_from(request))
    except SQLAlchemyError:
        logger.exception("Session lookup failed")
        return None
    return decision.session if decision.allowed else None


def get_current_session(request: Request) -> SessionRecord:
    """Require a live session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: SessionRecord = Depends(get_current_session)): ...
    """
    session = try_get_current_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return session
