"""Unit tests for auth/verifier.py and auth/passwords.py.

Covers:
- malformed input returns MalformedInput and never calls the store
- correct secret -> Verified with the stored identity
- wrong secret -> Mismatch, unknown identifier -> NotFound
- store outage -> StoreUnavailable; any other store error propagates
- a corrupt stored hash propagates instead of reading as a mismatch
- the secret comparison goes through hmac.compare_digest
- comparison time does not track the position of the first differing byte

The store is a MagicMock(spec=IdentityStore) so call counts can be asserted.
"""

import statistics
import time
from unittest.mock import MagicMock

import pytest

from auth import passwords
from auth.errors import IdentityNotFoundError, StoreUnavailableError
from auth.models import CredentialSubmission, MalformedInput, Mismatch, NotFound, StoreUnavailable, Verified
from auth.store import IdentityStore
from auth.verifier import CredentialVerifier


@pytest.fixture
def store(known_identity):
    stub = MagicMock(spec=IdentityStore)
    stub.lookup.return_value = known_identity
    return stub


@pytest.fixture
def verifier(store):
    return CredentialVerifier(store)


class TestMalformedInput:
    @pytest.mark.parametrize(
        "form, field",
        [
            ({"identifier": "not-an-email", "secret": "correctpass"}, "identifier"),
            ({"identifier": "user@localhost", "secret": "correctpass"}, "identifier"),
            ({"identifier": "user @example.com", "secret": "correctpass"}, "identifier"),
            ({"identifier": "", "secret": "correctpass"}, "identifier"),
            ({"identifier": None, "secret": "correctpass"}, "identifier"),
            ({"secret": "correctpass"}, "identifier"),
            ({"identifier": "user@example.com", "secret": "12345"}, "secret"),
            ({"identifier": "user@example.com", "secret": ""}, "secret"),
            ({"identifier": "user@example.com", "secret": None}, "secret"),
            ({"identifier": "user@example.com", "secret": "x" * 73}, "secret"),
            ({"identifier": "user@example.com", "secret": "é" * 40}, "secret"),
        ],
    )
    def test_never_touches_store(self, verifier, store, form, field):
        outcome = verifier.verify(form)
        assert isinstance(outcome, MalformedInput)
        assert field in outcome.field_errors
        store.lookup.assert_not_called()

    def test_field_messages(self, verifier):
        outcome = verifier.verify({"identifier": "nope", "secret": "abc"})
        assert outcome.field_errors == {
            "identifier": ["Please enter a valid email address."],
            "secret": ["Password must be at least 6 characters."],
        }

    def test_non_mapping_input(self, verifier, store):
        outcome = verifier.verify(None)
        assert isinstance(outcome, MalformedInput)
        store.lookup.assert_not_called()

    def test_six_character_secret_accepted(self, verifier, store):
        verifier.verify({"identifier": "user@example.com", "secret": "123456"})
        store.lookup.assert_called_once_with("user@example.com")

    def test_secret_hidden_from_repr(self):
        submission = CredentialSubmission(identifier="user@example.com", secret="hunter2hunter2")
        assert "hunter2hunter2" not in repr(submission)


class TestVerify:
    def test_correct_secret_verifies(self, verifier, store, known_identity):
        outcome = verifier.verify({"identifier": "user@example.com", "secret": "correctpass"})
        assert outcome == Verified(identity=known_identity)
        store.lookup.assert_called_once_with("user@example.com")

    def test_accepts_validated_submission(self, verifier, known_identity):
        submission = CredentialSubmission(identifier="user@example.com", secret="correctpass")
        assert verifier.verify(submission) == Verified(identity=known_identity)

    def test_wrong_secret_is_mismatch(self, verifier):
        outcome = verifier.verify({"identifier": "user@example.com", "secret": "wrongpass"})
        assert outcome == Mismatch(identifier="user@example.com")

    def test_unknown_identifier_is_not_found(self, verifier, store, monkeypatch):
        store.lookup.side_effect = IdentityNotFoundError("ghost@example.com")
        calls = []
        real_verify = passwords.verify_password
        monkeypatch.setattr(
            "auth.verifier.verify_password", lambda plain, hashed: calls.append(hashed) or real_verify(plain, hashed)
        )
        outcome = verifier.verify({"identifier": "ghost@example.com", "secret": "whatever1"})
        assert outcome == NotFound(identifier="ghost@example.com")
        # Unknown identifiers still pay for one bcrypt comparison.
        assert calls == [passwords.DUMMY_HASH]

    def test_store_outage_is_store_unavailable(self, verifier, store):
        cause = StoreUnavailableError("Identity store unavailable")
        store.lookup.side_effect = cause
        outcome = verifier.verify({"identifier": "user@example.com", "secret": "correctpass"})
        assert isinstance(outcome, StoreUnavailable)
        assert outcome.cause is cause

    def test_unexpected_store_error_propagates(self, verifier, store):
        store.lookup.side_effect = KeyError("schema drift")
        with pytest.raises(KeyError):
            verifier.verify({"identifier": "user@example.com", "secret": "correctpass"})

    def test_corrupt_stored_hash_propagates(self, verifier, store, known_identity):
        known_identity.password_hash = "not-a-bcrypt-hash"
        with pytest.raises(ValueError):
            verifier.verify({"identifier": "user@example.com", "secret": "correctpass"})

    def test_secret_never_logged(self, verifier, store, caplog):
        caplog.set_level("DEBUG")
        verifier.verify({"identifier": "user@example.com", "secret": "wrongpass"})
        store.lookup.side_effect = IdentityNotFoundError("ghost@example.com")
        verifier.verify({"identifier": "ghost@example.com", "secret": "wrongpass"})
        assert "wrongpass" not in caplog.text
        assert "user@example.com" in caplog.text


class TestConstantTimeComparison:
    def test_verify_password_uses_compare_digest(self, monkeypatch):
        calls = []
        real = passwords.hmac.compare_digest

        def spy(a, b):
            calls.append((a, b))
            return real(a, b)

        monkeypatch.setattr(passwords.hmac, "compare_digest", spy)
        hashed = passwords.hash_password("correctpass")
        assert passwords.verify_password("correctpass", hashed)
        assert not passwords.verify_password("wrongpass", hashed)
        assert len(calls) == 2

    def test_duration_does_not_track_first_mismatch(self):
        size = 64 * 1024
        expected = b"a" * size
        early = b"b" + b"a" * (size - 1)
        late = b"a" * (size - 1) + b"b"

        def median_ns(candidate: bytes) -> float:
            samples = []
            for _ in range(301):
                start = time.perf_counter_ns()
                passwords.constant_time_equals(candidate, expected)
                samples.append(time.perf_counter_ns() - start)
            return statistics.median(samples)

        # Best of three medians damps scheduler noise.
        early_ns = min(median_ns(early) for _ in range(3))
        late_ns = min(median_ns(late) for _ in range(3))
        ratio = late_ns / early_ns
        assert 0.5 < ratio < 2.0, f"early={early_ns}ns late={late_ns}ns"
