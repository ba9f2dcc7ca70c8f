"""
api/routes/v1/auth.py -- JSON sign-in endpoints.

Routes:
  POST /api/v1/auth/login   -- credential login; sets the session cookie
  POST /api/v1/auth/logout  -- clears the cookie; 200
  GET  /api/v1/auth/me      -- identity bound to the current session (requires auth)

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Wrong password, unknown identifier, and malformed input all return the same
  401 body -- SignInOrchestrator already collapsed them.
  Store outages return 503 with a generic message; the cause is only logged.
  Cache-Control: no-store on every login response.

/api/ paths are excluded from the route gate, so these handlers answer 401
themselves instead of redirecting.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, MeResponse
from auth.dependencies import require_identity
from auth.models import SessionIdentity, SignInSuccess
from auth.orchestrator import SignInOrchestrator
from auth.sessions import SessionIssuer
from core.config import get_settings

router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with identifier and secret; set the session cookie.

    Plain def: the identity store round trip runs in FastAPI's threadpool,
    not on the event loop.
    """
    orchestrator: SignInOrchestrator = request.app.state.orchestrator
    sessions: SessionIssuer = request.app.state.sessions

    result = orchestrator.authenticate({"identifier": body.identifier, "secret": body.secret})
    if not isinstance(result, SignInSuccess):
        status_code, code = (503, "store_unavailable") if result.operational else (401, "invalid_credentials")
        resp = JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=ErrorDetail(code=code, message=result.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.grant.token,
            expires_in=result.grant.expires_in,
            email=result.identity.email,
            name=result.identity.name,
            redirect_to=result.redirect_to,
        ).model_dump(),
    )
    sessions.set_cookie(resp, result.grant)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
async def logout(request: Request) -> JSONResponse:
    """Clear the session cookie."""
    sessions: SessionIssuer = request.app.state.sessions
    resp = JSONResponse(content={"message": "Logged out."})
    sessions.clear_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(identity: SessionIdentity = Depends(require_identity)) -> MeResponse:
    """Return the identity the current session was established for."""
    return MeResponse(email=identity.email, name=identity.name, user_id=identity.user_id)
