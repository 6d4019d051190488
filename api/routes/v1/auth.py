"""
api/routes/v1/auth.py -- Session introspection endpoint.

Routes:
  GET /api/v1/auth/me -- the principal behind the session cookie (requires auth)

Registration, login and logout are form posts served by web/routes.py; this
router only lets scripts and front-end code ask "who am I" as JSON.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import MeResponse
from auth.dependencies import get_current_session
from sessions.models import SessionRecord

router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
async def me(session: SessionRecord = Depends(get_current_session)) -> MeResponse:
    """Return identity information for the current session."""
    return MeResponse.from_session(session)
