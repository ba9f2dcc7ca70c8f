"""
auth/models.py -- Domain types for credential verification and sessions.

Pattern: Data class (pure data containers). Stores and services do the work.

  IdentityRecord       -- a stored principal, read-only to the core.
  CredentialSubmission -- pydantic schema for one sign-in attempt. The secret
                          is excluded from repr so it cannot leak through a
                          log line or a traceback.
  VerificationOutcome  -- Verified | NotFound | MalformedInput | Mismatch |
                          StoreUnavailable. Each variant is a frozen dataclass;
                          callers dispatch with isinstance().
  SessionState         -- presence of a signed-in identity on a request.
  SignInResult         -- SignInSuccess | SignInFailure, the orchestrator's
                          answer to the HTTP layer.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

# Address-like: one "@", no whitespace, a dot somewhere in the domain part.
IDENTIFIER_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_SECRET_LENGTH = 6
# bcrypt only looks at the first 72 bytes and bcrypt>=5 rejects longer input.
MAX_SECRET_BYTES = 72


@dataclass
class IdentityRecord:
    """A registered principal.

    email is the natural key and is matched case-sensitively. password_hash is
    a bcrypt hash; the plaintext is never stored.
    """

    email: str
    password_hash: str = field(repr=False)
    name: str = ""
    id: Optional[int] = None
    created_at: Optional[str] = None


class CredentialSubmission(BaseModel):
    """Shape check for a sign-in attempt. Exists for one verification call only."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    identifier: str = Field(max_length=255)
    secret: str = Field(repr=False)

    @field_validator("identifier")
    @classmethod
    def identifier_is_address(cls, value: str) -> str:
        if not IDENTIFIER_PATTERN.match(value):
            raise PydanticCustomError("identifier_format", "Please enter a valid email address.")
        return value

    @field_validator("secret")
    @classmethod
    def secret_meets_policy(cls, value: str) -> str:
        if len(value) < MIN_SECRET_LENGTH:
            raise PydanticCustomError(
                "secret_too_short",
                "Password must be at least {min_length} characters.",
                {"min_length": MIN_SECRET_LENGTH},
            )
        if len(value.encode("utf-8")) > MAX_SECRET_BYTES:
            raise PydanticCustomError(
                "secret_too_long",
                "Password must be at most {max_bytes} bytes.",
                {"max_bytes": MAX_SECRET_BYTES},
            )
        return value


# ---------------------------------------------------------------------------
# Verification outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Verified:
    identity: IdentityRecord


@dataclass(frozen=True)
class NotFound:
    identifier: str


@dataclass(frozen=True)
class MalformedInput:
    field_errors: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class Mismatch:
    identifier: str


@dataclass(frozen=True)
class StoreUnavailable:
    cause: Exception


VerificationOutcome = Union[Verified, NotFound, MalformedInput, Mismatch, StoreUnavailable]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionIdentity:
    """The identity a session was established for, as carried in the token."""

    email: str
    name: str = ""
    user_id: Optional[int] = None


@dataclass(frozen=True)
class SessionState:
    identity: Optional[SessionIdentity] = None

    @property
    def present(self) -> bool:
        return self.identity is not None


@dataclass(frozen=True)
class SessionGrant:
    """A freshly issued session token and its lifetime in seconds."""

    token: str = field(repr=False)
    expires_in: int = 0


# ---------------------------------------------------------------------------
# Sign-in results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignInSuccess:
    identity: IdentityRecord
    grant: SessionGrant
    redirect_to: str


@dataclass(frozen=True)
class SignInFailure:
    message: str
    # True when the store failed rather than the credentials.
    operational: bool = False


SignInResult = Union[SignInSuccess, SignInFailure]
