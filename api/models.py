"""
API request and response models for ShopGate JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
sessions/models.py, which own the internal domain representation.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict

from sessions.models import SessionRecord


class ErrorDetail(BaseModel):
    """Structured error body. code is machine-readable, message is for humans."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every /api/ error handler."""

    error: ErrorDetail


class MeResponse(BaseModel):
    """Response body for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    email: str
    expires_at: datetime

    @classmethod
    def from_session(cls, session: SessionRecord) -> "MeResponse":
        return cls(
            email=session.user_email,
            expires_at=datetime.fromtimestamp(session.expires_at, tz=timezone.utc),
        )
