"""
auth/sessions.py -- Session tokens: issue, read, and cookie transport.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       email (sub), user_id, display name, and expiry. Decoding returns None on
       any failure -- an invalid or expired token is simply "no session".

  Cookie: httpOnly, samesite=lax, secure when SECURE_COOKIES=true, max_age
       equal to the token lifetime so both expire together.

The gate only needs presence, and read_session() answers that without
touching the identity store: the signature is the proof.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from auth.models import IdentityRecord, SessionGrant, SessionIdentity, SessionState
from core.config import Settings

logger = logging.getLogger("authgate.sessions")

_ALGORITHM = "HS256"


class SessionIssuer:
    """Creates and reads signed session tokens.

    Usage:
        sessions = SessionIssuer(get_settings())
        grant = sessions.establish(identity)
        sessions.set_cookie(response, grant)
        state = sessions.read(request.cookies.get(sessions.cookie_name))
    """

    def __init__(self, settings: Settings) -> None:
        self._secret_key = settings.secret_key
        self._expire_seconds = settings.session_expire_seconds
        self._secure = settings.secure_cookies
        self.cookie_name = settings.session_cookie_name

    def establish(self, identity: IdentityRecord) -> SessionGrant:
        """Issue a session token bound to identity."""
        expire = datetime.now(timezone.utc) + timedelta(seconds=self._expire_seconds)
        payload = {
            "sub": identity.email,
            "user_id": identity.id,
            "name": identity.name,
            "exp": expire,
        }
        token = jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)
        return SessionGrant(token=token, expires_in=self._expire_seconds)

    def decode(self, token: str) -> Optional[dict]:
        """Decode and verify a token. Returns the payload dict or None on any failure."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("Rejected session token: %s", exc)
            return None
        if not payload.get("sub"):
            return None
        return payload

    def read(self, token: Optional[str]) -> SessionState:
        if not token:
            return SessionState()
        payload = self.decode(token)
        if payload is None:
            return SessionState()
        return SessionState(
            identity=SessionIdentity(
                email=payload["sub"],
                name=payload.get("name") or "",
                user_id=payload.get("user_id"),
            )
        )

    def read_request(self, request) -> SessionState:
        """Session state from the cookie, falling back to an Authorization: Bearer header."""
        token = request.cookies.get(self.cookie_name)
        if not token:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                token = auth_header[7:]
        return self.read(token)

    def set_cookie(self, response, grant: SessionGrant) -> None:
        response.set_cookie(
            self.cookie_name,
            value=grant.token,
            httponly=True,
            samesite="lax",
            secure=self._secure,
            max_age=grant.expires_in,
        )

    def clear_cookie(self, response) -> None:
        response.delete_cookie(self.cookie_name)
