"""
auth/dependencies.py -- FastAPI Depends() helpers for session lookup.

Two auth methods are checked in priority order:
  1. Session cookie -- set by the web sign-in form and the JSON login.
  2. Authorization: Bearer <token> header -- API clients holding the token.

get_session() is the soft variant (always returns a SessionState).
require_identity() wraps it and raises HTTP 401 if no session is present.

Neither helper touches the identity store; a valid signature is enough.

Layer rule: no imports from web/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import SessionIdentity, SessionState
from auth.sessions import SessionIssuer


def get_session(request: Request) -> SessionState:
    """Return the request's session state. Never raises."""
    sessions: SessionIssuer = request.app.state.sessions
    return sessions.read_request(request)


def require_identity(request: Request) -> SessionIdentity:
    """Require a signed-in caller. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: SessionIdentity = Depends(require_identity)): ...
    """
    state = get_session(request)
    if state.identity is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return state.identity
