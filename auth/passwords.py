"""
auth/passwords.py -- Password hashing and constant-time verification.

Passwords: bcrypt used directly (no passlib wrapper). Bcrypt is the right
choice for low-entropy secrets because its cost factor makes brute force
expensive.

Comparison: verify_password() recomputes the bcrypt digest of the candidate
using the stored hash as salt and compares the two digests with
hmac.compare_digest(). The running time of compare_digest() does not depend
on where the first differing byte sits. The explicit call keeps that
guarantee visible here instead of relying on how a given bcrypt release
implements checkpw().

A stored hash bcrypt cannot parse raises ValueError. That is a data defect,
not a wrong password, so it propagates.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import hmac

import bcrypt


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only accepts 72 bytes of input; CredentialSubmission enforces that
    limit before anything reaches this function.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def constant_time_equals(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    expected = hashed.encode("utf-8")
    candidate = bcrypt.hashpw(plain.encode("utf-8"), expected)
    return constant_time_equals(candidate, expected)


# Timing equalization dummy hash.
# Computed once at module load so the first sign-in attempt is not measurably
# slower than subsequent ones. The verifier runs a comparison against it when
# the identifier is unknown, so both branches pay one bcrypt round.
DUMMY_HASH: str = hash_password("authgate_timing_dummy")
