"""
api/main.py -- FastAPI application entry point for AuthGate.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  3. log_requests          -- method, path, status, latency
  4. authorization_gate    -- route classification + session presence, runs
                              before any route handler

Lifespan builds the process-wide objects once (GateConfig, IdentityStore,
SessionIssuer, CredentialVerifier, SignInOrchestrator) and hangs them on
app.state. Nothing mutates them afterwards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.orchestrator import SignInOrchestrator
from auth.sessions import SessionIssuer
from auth.store import IdentityStore
from auth.verifier import CredentialVerifier
from core.config import GateConfig, get_settings
from core.gate import RedirectTo, authorize, is_excluded

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")
gate_logger = logging.getLogger("authgate.gate")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth objects on startup, release the store on shutdown."""
    settings = get_settings()
    logger.info("AuthGate starting up")
    app.state.gate_config = GateConfig.from_settings(settings)
    app.state.identity_store = IdentityStore(settings.database_url, timeout=settings.store_timeout_seconds)
    app.state.sessions = SessionIssuer(settings)
    app.state.orchestrator = SignInOrchestrator(
        CredentialVerifier(app.state.identity_store),
        app.state.sessions,
        app.state.gate_config,
    )
    logger.info(
        "Gate configured (login_path=%s, protected_prefix=%s, excluded=%d patterns)",
        app.state.gate_config.login_path,
        app.state.gate_config.protected_prefix,
        len(app.state.gate_config.excluded),
    )

    yield

    app.state.identity_store.close()
    logger.info("AuthGate shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AuthGate",
    description="Credential sign-in and route authorization gate.",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Route authorization gate
#
# Registered first so it ends up innermost of the http middlewares but still
# ahead of every route handler. Excluded paths (API, static assets) are
# passed straight through; everything else gets a Continue or a 302.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def authorization_gate(request: Request, call_next):
    config: GateConfig = request.app.state.gate_config
    path = request.url.path
    if is_excluded(path, config):
        return await call_next(request)

    session = request.app.state.sessions.read_request(request)
    decision = authorize(path, session.present, config)
    if isinstance(decision, RedirectTo):
        location = decision.path
        if location == config.login_path:
            # Let the sign-in form send the caller back where they were going.
            location = f"{location}?next={quote(path, safe='/')}"
        gate_logger.debug("Gate redirect %s -> %s", path, location)
        return RedirectResponse(location, status_code=302)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=get_settings().allowed_hosts,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only; the client receives a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
