"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - _make_test_store(): creates an isolated in-memory identity store
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - web_client: TestClient with follow_redirects=False for gate/web route tests
  - api_client: TestClient for the JSON auth API
  - gate_config / settings: plain objects for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

DEBUG and ALLOWED_HOSTS must be set before any api/auth/core import so
get_settings() auto-generates SECRET_KEY and TrustedHostMiddleware accepts
the TestClient's "testserver" host.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any project import -- get_settings() is cached on first call.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import IdentityRecord
from auth.orchestrator import SignInOrchestrator
from auth.passwords import hash_password
from auth.sessions import SessionIssuer
from auth.store import IdentityStore
from auth.verifier import CredentialVerifier
from core.config import GateConfig, Settings, get_settings

KNOWN_EMAIL = "user@example.com"
KNOWN_SECRET = "correctpass"
KNOWN_NAME = "Test User"

# bcrypt is slow on purpose; hash once per session.
KNOWN_HASH = hash_password(KNOWN_SECRET)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> IdentityStore:
    """Create an isolated named shared-memory identity store seeded with one identity."""
    store = IdentityStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")
    store.create_identity(IdentityRecord(email=KNOWN_EMAIL, name=KNOWN_NAME, password_hash=KNOWN_HASH))
    return store


def _patch_lifespan(store: IdentityStore, sessions: SessionIssuer, config: GateConfig):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.gate_config = config
        app.state.identity_store = store
        app.state.sessions = sessions
        app.state.orchestrator = SignInOrchestrator(CredentialVerifier(store), sessions, config)
        yield

    return test_lifespan


def _client(db_suffix: str, **client_kwargs) -> Generator[tuple[TestClient, str], None, None]:
    store = _make_test_store(db_suffix)
    sessions = SessionIssuer(get_settings())
    token = sessions.establish(store.lookup(KNOWN_EMAIL)).token

    app.router.lifespan_context = _patch_lifespan(store, sessions, GateConfig.from_settings(get_settings()))

    with TestClient(app, raise_server_exceptions=True, **client_kwargs) as client:
        yield client, token

    store.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def web_client(request) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for web route integration tests.

    follow_redirects=False is essential: we assert on redirect *locations*
    (e.g. 302 to /login), which are invisible once the client follows them.
    """
    yield from _client(f"web_{request.module.__name__.rpartition('.')[2]}", follow_redirects=False)


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for JSON API integration tests."""
    yield from _client(f"api_{request.module.__name__.rpartition('.')[2]}", follow_redirects=False)


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(debug=True, secret_key="k" * 32)


@pytest.fixture
def gate_config() -> GateConfig:
    return GateConfig()


@pytest.fixture
def known_identity() -> IdentityRecord:
    return IdentityRecord(id=1, email=KNOWN_EMAIL, name=KNOWN_NAME, password_hash=KNOWN_HASH)
