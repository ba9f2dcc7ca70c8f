"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, login_path -> LOGIN_PATH).

  GateConfig: the route-authorization subset of Settings, frozen and built
      once at process start (GateConfig.from_settings). The gate and the
      sign-in orchestrator receive it by reference; nothing mutates it.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. The session JWT
  signature relies on key entropy.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a
  hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

# Paths the gate never looks at: API routes answer with 401 on their own,
# static assets and images carry no protected content.
DEFAULT_EXCLUDED_PATTERNS: tuple[str, ...] = (
    r"^/api(/|$)",
    r"^/static/",
    r"^/favicon\.ico$",
    r"\.png$",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Identity store
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///authgate.db"
    store_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_cookie_name: str = "session"
    session_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # Route authorization
    # ------------------------------------------------------------------

    login_path: str = "/login"
    protected_prefix: str = "/dashboard"
    excluded_patterns: list[str] = list(DEFAULT_EXCLUDED_PATTERNS)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@dataclass(frozen=True)
class GateConfig:
    """Static route-authorization configuration.

    login_path is the sign-in entry point, protected_prefix is both the
    protected-area prefix and its home page. excluded holds the compiled
    allowlist of paths the gate never evaluates.
    """

    login_path: str = "/login"
    protected_prefix: str = "/dashboard"
    excluded: tuple[re.Pattern, ...] = tuple(re.compile(p) for p in DEFAULT_EXCLUDED_PATTERNS)

    def __post_init__(self) -> None:
        for name in ("login_path", "protected_prefix"):
            value = getattr(self, name)
            if not value.startswith("/") or value.startswith("//"):
                raise ValueError(f"{name} must be an absolute path, got {value!r}")
        if self.login_path.startswith(self.protected_prefix):
            # The sign-in page inside the protected area would redirect to itself.
            raise ValueError("login_path must not live under protected_prefix")

    @property
    def protected_home(self) -> str:
        return self.protected_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "GateConfig":
        return cls(
            login_path=settings.login_path.rstrip("/") or "/",
            protected_prefix=settings.protected_prefix.rstrip("/") or "/",
            excluded=tuple(re.compile(p) for p in settings.excluded_patterns),
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
