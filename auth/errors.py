"""
auth/errors.py -- Exception types raised across the auth layer.

Input and authentication failures are NOT exceptions: the verifier returns
them as VerificationOutcome values. Exceptions are reserved for conditions
the caller must not mistake for a wrong password:

  IdentityNotFoundError  -- the store has no record for the identifier.
                            Raised by IdentityStore.lookup(); the verifier
                            turns it into a NotFound outcome.
  StoreUnavailableError  -- connection failure or timeout talking to the
                            store. Turned into StoreUnavailable, never into
                            "invalid credentials".
  UnhandledOutcomeError  -- the orchestrator met an outcome it has no mapping
                            for. Always propagates.
"""

from __future__ import annotations


class AuthGateError(Exception):
    """Base class for AuthGate errors."""


class IdentityNotFoundError(AuthGateError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"No identity record for {identifier!r}")
        self.identifier = identifier


class StoreUnavailableError(AuthGateError):
    """The identity store could not be reached or did not answer in time."""


class UnhandledOutcomeError(AuthGateError):
    def __init__(self, outcome: object) -> None:
        super().__init__(f"No sign-in mapping for outcome {type(outcome).__name__}")
        self.outcome = outcome
