"""
auth/flow.py -- Registration, login and logout orchestration.

AuthFlow is the only place that combines the password hasher, the user
store and the session store. It never builds HTTP responses: every method
returns an AuthResult whose Outcome the web layer maps to a status code.

Security:
  Unknown email and wrong password produce the same UNAUTHORIZED result, and
  bcrypt runs in both branches so response time does not separate them.
  Store faults are logged with traceback here and surface to callers only as
  INTERNAL_ERROR -- driver messages never reach a response body.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from auth.store import UserStore
from auth.tokens import burn_dummy_check, hash_password, verify_password
from sessions.models import SessionRecord
from sessions.store import SessionStore

logger = logging.getLogger("shopgate.auth")


class Outcome(str, Enum):
    CREATED = "created"
    AUTHENTICATED = "authenticated"
    LOGGED_OUT = "logged_out"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class AuthResult:
    """Result of one AuthFlow call.

    principal is set for CREATED and AUTHENTICATED; session only for
    AUTHENTICATED.
    """

    outcome: Outcome
    principal: str | None = None
    session: SessionRecord | None = None


class AuthFlow:
    """Auth flow controller. Both stores are injected.

    Usage:
        flow = AuthFlow(UserStore(url), InMemorySessionStore())
        flow.register("a@x.com", "secret")
        result = flow.login("a@x.com", "secret")
        flow.logout(result.session.session_id)
    """

    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    def register(self, email: str | None, password: str | None) -> AuthResult:
        if not email or not password:
            return AuthResult(Outcome.INVALID_INPUT)

        user = User(email=email, password_hash=hash_password(password))
        try:
            self.users.create_user(user)
        except IntegrityError:
            logger.info("Registration rejected: email already registered")
            return AuthResult(Outcome.CONFLICT)
        except SQLAlchemyError:
            logger.exception("Registration failed: user store error")
            return AuthResult(Outcome.INTERNAL_ERROR)

        logger.info("Registered new account")
        return AuthResult(Outcome.CREATED, principal=email)

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Verify credentials and open a session.

        Do NOT return before bcrypt has run on the unknown-email branch --
        that reintroduces the timing side channel.
        """
        if not email or not password:
            return AuthResult(Outcome.INVALID_INPUT)

        try:
            user = self.users.get_by_email(email)
        except SQLAlchemyError:
            logger.exception("Login failed: user store error")
            return AuthResult(Outcome.INTERNAL_ERROR)

        if user is None:
            burn_dummy_check(password)
            logger.debug("Login rejected")
            return AuthResult(Outcome.UNAUTHORIZED)
        if not verify_password(password, user.password_hash):
            logger.debug("Login rejected")
            return AuthResult(Outcome.UNAUTHORIZED)

        try:
            session = self.sessions.create(user.email)
        except SQLAlchemyError:
            logger.exception("Login failed: session store error")
            return AuthResult(Outcome.INTERNAL_ERROR)

        logger.info("Login succeeded")
        return AuthResult(Outcome.AUTHENTICATED, principal=user.email, session=session)

    def logout(self, session_ref: str | None) -> AuthResult:
        """Destroy the referenced session. Logging out twice is not an error."""
        if session_ref:
            self.sessions.destroy(session_ref)
        return AuthResult(Outcome.LOGGED_OUT)
