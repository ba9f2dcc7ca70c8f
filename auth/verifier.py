"""
auth/verifier.py -- Credential verification against the identity store.

verify() runs three steps and reports the result as a VerificationOutcome:

  1. Shape check (CredentialSubmission). Failure -> MalformedInput with
     per-field messages. The store is not consulted.
  2. store.lookup(identifier).
       IdentityNotFoundError -> NotFound (after one dummy bcrypt comparison)
       StoreUnavailableError -> StoreUnavailable(cause)
       anything else         -> propagates
  3. Constant-time secret comparison (auth.passwords.verify_password).
       equal -> Verified(identity), otherwise Mismatch.

NotFound and Mismatch stay distinct here so operators can tell them apart in
the logs. The orchestrator collapses them into one user-facing message.

The raw secret is never logged. The verifier performs a single read and no
writes, so an aborted request leaves nothing half-applied.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Union

from pydantic import ValidationError

from auth.errors import IdentityNotFoundError, StoreUnavailableError
from auth.models import (
    CredentialSubmission,
    MalformedInput,
    Mismatch,
    NotFound,
    StoreUnavailable,
    VerificationOutcome,
    Verified,
)
from auth.passwords import DUMMY_HASH, verify_password
from auth.store import IdentityStore

logger = logging.getLogger("authgate.auth")


def field_errors_from(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten a pydantic ValidationError into {field: [messages]}."""
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        key = str(err["loc"][0]) if err["loc"] else "form"
        errors.setdefault(key, []).append(err["msg"])
    return errors


class CredentialVerifier:
    """Decides whether a credential submission matches a stored identity.

    Usage:
        verifier = CredentialVerifier(store)
        outcome = verifier.verify({"identifier": "a@example.com", "secret": "hunter22"})
        if isinstance(outcome, Verified): ...
    """

    def __init__(self, store: IdentityStore) -> None:
        self._store = store

    def verify(self, submission: Union[CredentialSubmission, Mapping[str, Any]]) -> VerificationOutcome:
        if not isinstance(submission, CredentialSubmission):
            try:
                submission = CredentialSubmission.model_validate(
                    dict(submission) if isinstance(submission, Mapping) else submission
                )
            except ValidationError as exc:
                return MalformedInput(field_errors=field_errors_from(exc))

        identifier = submission.identifier
        try:
            record = self._store.lookup(identifier)
        except IdentityNotFoundError:
            # Pay the same bcrypt cost as a real comparison before answering.
            verify_password(submission.secret, DUMMY_HASH)
            logger.info("Sign-in rejected: no identity for %r", identifier)
            return NotFound(identifier=identifier)
        except StoreUnavailableError as exc:
            return StoreUnavailable(cause=exc)

        if not verify_password(submission.secret, record.password_hash):
            logger.info("Sign-in rejected: secret mismatch for %r", identifier)
            return Mismatch(identifier=identifier)

        logger.info("Identity verified: %r", identifier)
        return Verified(identity=record)
