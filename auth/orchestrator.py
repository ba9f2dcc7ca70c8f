"""
auth/orchestrator.py -- Sign-in: untyped form in, SignInResult out.

Two states, one transition:

    Unauthenticated --(verifier says Verified)--> Authenticated

Outcome mapping (enumeration resistance):

    MalformedInput, NotFound, Mismatch  -> SignInFailure("Invalid credentials.")
    StoreUnavailable                    -> SignInFailure("Something went wrong.")
                                           + ERROR log for operators
    Verified                            -> session issued, SignInSuccess
    anything else                       -> UnhandledOutcomeError (raised)

The orchestrator never retries the store: an automatic retry of a password
check would let a client bypass rate limiting.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from auth.errors import UnhandledOutcomeError
from auth.models import (
    MalformedInput,
    Mismatch,
    NotFound,
    SignInFailure,
    SignInResult,
    SignInSuccess,
    StoreUnavailable,
    Verified,
)
from auth.sessions import SessionIssuer
from auth.verifier import CredentialVerifier
from core.config import GateConfig

logger = logging.getLogger("authgate.auth")

INVALID_CREDENTIALS = "Invalid credentials."
SOMETHING_WENT_WRONG = "Something went wrong."


class SignInOrchestrator:
    """Drives the verifier from a form submission and establishes the session.

    Usage:
        orchestrator = SignInOrchestrator(verifier, sessions, gate_config)
        result = orchestrator.authenticate(await request.form())
    """

    def __init__(self, verifier: CredentialVerifier, sessions: SessionIssuer, config: GateConfig) -> None:
        self._verifier = verifier
        self._sessions = sessions
        self._config = config

    def authenticate(self, form: Mapping[str, Any], previous_state: Optional[str] = None) -> SignInResult:
        """Verify the identifier/secret fields of form and sign the caller in.

        previous_state is the message from the last attempt, passed back by
        the form. It does not influence the result.
        """
        outcome = self._verifier.verify(
            {
                "identifier": form.get("identifier"),
                "secret": form.get("secret"),
            }
        )

        if isinstance(outcome, Verified):
            grant = self._sessions.establish(outcome.identity)
            return SignInSuccess(identity=outcome.identity, grant=grant, redirect_to=self._config.protected_home)
        if isinstance(outcome, (MalformedInput, NotFound, Mismatch)):
            return SignInFailure(message=INVALID_CREDENTIALS)
        if isinstance(outcome, StoreUnavailable):
            logger.error("Sign-in failed: identity store unavailable (%s)", outcome.cause)
            return SignInFailure(message=SOMETHING_WENT_WRONG, operational=True)
        raise UnhandledOutcomeError(outcome)
