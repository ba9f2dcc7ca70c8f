"""
web/routes.py -- Server-rendered pages: landing page, sign-in form, protected area.

Routes:
  GET  /                      -- public landing page
  GET  /login                 -- sign-in form
  POST /login                 -- handle the sign-in form
  POST /logout                -- clear the session cookie, redirect /login
  GET  /dashboard             -- protected home
  GET  /dashboard/{section}   -- protected sub-pages

Access control is NOT done here: the authorization_gate middleware in
api/main.py has already classified the path and redirected callers without a
session (or signed-in callers hitting /login) before these handlers run.

A failed sign-in re-renders the same form with the orchestrator's short
message. The message comes from a fixed vocabulary, never from the request.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from auth.dependencies import get_session
from auth.models import SignInSuccess
from auth.orchestrator import SignInOrchestrator
from auth.sessions import SessionIssuer
from core.config import GateConfig

logger = logging.getLogger("authgate.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()


def _safe_next(next_url: Optional[str], config: GateConfig) -> Optional[str]:
    """Validate a post-login redirect target. Only accept protected-area paths.

    Prevents open redirect attacks where an attacker crafts a URL like:
      /login?next=https://attacker.com  or  /login?next=//attacker.com

    We only allow paths that start with "/", do not start with "//", contain
    no backslash, and sit inside the protected area. Anything else yields None
    and the caller falls back to the protected home.
    """
    if not next_url or not next_url.startswith("/") or next_url.startswith("//") or "\\" in next_url:
        return None
    if not next_url.startswith(config.protected_prefix):
        return None
    return next_url


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "home.html",
        {"session": get_session(request), "config": request.app.state.gate_config},
    )


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the sign-in form."""
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": None, "next": request.query_params.get("next", ""), "identifier": ""},
    )


@router.post("/login", response_class=HTMLResponse)
async def login_post(request: Request):
    """Handle the sign-in form submission.

    The orchestrator call does one store read plus a bcrypt round, so it runs
    in the threadpool to keep the event loop free.
    """
    orchestrator: SignInOrchestrator = request.app.state.orchestrator
    sessions: SessionIssuer = request.app.state.sessions
    config: GateConfig = request.app.state.gate_config

    form = await request.form()
    result = await run_in_threadpool(orchestrator.authenticate, form, form.get("previous_state"))
    if not isinstance(result, SignInSuccess):
        identifier = form.get("identifier")
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "error_msg": result.message,
                "next": form.get("next") or "",
                "identifier": identifier if isinstance(identifier, str) else "",
            },
        )

    logger.info("Signed in %r", result.identity.email)
    target = _safe_next(form.get("next"), config) or result.redirect_to
    resp = RedirectResponse(target, status_code=302)
    sessions.set_cookie(resp, result.grant)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the sign-in page."""
    sessions: SessionIssuer = request.app.state.sessions
    config: GateConfig = request.app.state.gate_config
    resp = RedirectResponse(config.login_path, status_code=302)
    sessions.clear_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Protected area
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    return _render_dashboard(request, section="overview")


@router.get("/dashboard/{section:path}", response_class=HTMLResponse)
def dashboard_section(request: Request, section: str) -> HTMLResponse:
    return _render_dashboard(request, section=section.strip("/") or "overview")


def _render_dashboard(request: Request, section: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"session": get_session(request), "section": section},
    )
