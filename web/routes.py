"""
web/routes.py -- Jinja2 template routes for the ShopGate web UI.

These routes serve server-rendered HTML and form posts. They reach the auth
flow and session store through app.state (wired by the API lifespan) and
translate AuthResult outcomes into status codes and redirects.

Routes:
  GET  /          -- landing page
  GET  /register  -- registration form
  POST /register  -- create account, redirect /login?registered=1
  GET  /login     -- login form
  POST /login     -- verify credentials, set session cookie, redirect /shopping
  POST /logout    -- destroy session, clear cookie, redirect /
  GET  /shopping  -- gated page (redirects to /login without a live session)

Form fields default to "" so a missing field reaches AuthFlow and comes back
as INVALID_INPUT (400) instead of FastAPI's 422 validation error.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from auth.dependencies import authorize, session_ref_from, try_get_current_session
from auth.flow import AuthFlow, AuthResult, Outcome
from auth.tokens import clear_session_cookie, set_session_cookie

logger = logging.getLogger("shopgate.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# ---------------------------------------------------------------------------
# Outcome -> response mapping
# ---------------------------------------------------------------------------

# Client-visible messages per outcome. Unknown email and wrong password share
# UNAUTHORIZED, so they share a message as well.
_ERROR_MESSAGES: dict[Outcome, str] = {
    Outcome.INVALID_INPUT: "Email and password required.",
    Outcome.CONFLICT: "Email already registered.",
    Outcome.UNAUTHORIZED: "Invalid email or password.",
}

_STATUS_CODES: dict[Outcome, int] = {
    Outcome.INVALID_INPUT: 400,
    Outcome.CONFLICT: 409,
    Outcome.UNAUTHORIZED: 401,
    Outcome.INTERNAL_ERROR: 500,
}

# Whitelist for ?registered= / ?expired= notices on /login. Raw query values
# are never rendered.
_NOTICES: dict[str, str] = {
    "registered": "Registration successful. Please log in.",
    "expired": "Your session has expired. Please log in again.",
}


def _auth_flow(request: Request) -> AuthFlow:
    return request.app.state.auth_flow


def _render_failure(request: Request, template: str, result: AuthResult) -> Response:
    status = _STATUS_CODES[result.outcome]
    if result.outcome is Outcome.INTERNAL_ERROR:
        return PlainTextResponse("Server error", status_code=status)
    return templates.TemplateResponse(
        request,
        template,
        {"error_msg": _ERROR_MESSAGES[result.outcome]},
        status_code=status,
    )


def _require_auth(request: Request) -> Optional[Response]:
    """Gate a protected page.

    Returns a RedirectResponse to /login if the request has no live session,
    None if OK. A stale cookie (expired or unknown) is deleted in the redirect
    and the login page is told to show the expired notice.

    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    session_ref = session_ref_from(request)
    decision = authorize(request.app.state.session_store, session_ref)
    if decision.allowed:
        request.state.principal = decision.principal
        return None
    if session_ref:
        resp = RedirectResponse("/login?expired=1", status_code=302)
        clear_session_cookie(resp)
        return resp
    return RedirectResponse("/login", status_code=302)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    session = try_get_current_session(request)
    return templates.TemplateResponse(
        request,
        "index.html",
        {"principal": session.user_email if session else None},
    )


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "register.html", {})


@router.post("/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> Response:
    """Handle the registration form."""
    result = _auth_flow(request).register(email, password)
    if result.outcome is Outcome.CREATED:
        return RedirectResponse("/login?registered=1", status_code=302)
    return _render_failure(request, "register.html", result)


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> Response:
    """Render the login form. Already-authenticated users go straight to /shopping."""
    if try_get_current_session(request) is not None:
        return RedirectResponse("/shopping", status_code=302)

    notice = None
    for key, message in _NOTICES.items():
        if request.query_params.get(key) == "1":
            notice = message
    return templates.TemplateResponse(request, "login.html", {"notice": notice})


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> Response:
    """Handle the login form. Success replaces any prior session and sets the cookie."""
    result = _auth_flow(request).login(email, password)
    if result.outcome is not Outcome.AUTHENTICATED:
        resp = _render_failure(request, "login.html", result)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    # Drop whatever session the browser presented before handing out a new one.
    previous = session_ref_from(request)
    if previous and previous != result.session.session_id:
        _auth_flow(request).logout(previous)

    resp = RedirectResponse("/shopping", status_code=302)
    set_session_cookie(resp, result.session.session_id)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Destroy the session, clear the cookie, and go back to the landing page."""
    _auth_flow(request).logout(session_ref_from(request))
    resp = RedirectResponse("/", status_code=302)
    clear_session_cookie(resp)
    return resp


@router.get("/shopping", response_class=HTMLResponse)
def shopping(request: Request) -> Response:
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(
        request,
        "shopping.html",
        {"principal": request.state.principal},
    )
