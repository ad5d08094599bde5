"""Unit tests for auth/passwords.py -- bcrypt hashing and verification."""

from unittest.mock import patch

import pytest

from auth import passwords
from auth.passwords import dummy_verify, hash_password, verify_password
from core.exceptions import HashingFailure, UpstreamFailure


class TestHashPassword:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("secret1")
        assert hashed != "secret1"
        assert hashed.startswith("$2")

    def test_same_password_hashes_differently(self):
        """Fresh salt per call -- identical inputs must not produce identical digests."""
        assert hash_password("secret1") != hash_password("secret1")

    def test_explicit_rounds_are_encoded_in_hash(self):
        assert hash_password("secret1", rounds=5).startswith("$2b$05$")

    def test_invalid_cost_factor_raises_hashing_failure(self):
        with pytest.raises(HashingFailure):
            hash_password("secret1", rounds=3)

    def test_hashing_failure_is_an_upstream_failure(self):
        """The API renders HashingFailure exactly like any other backing-service error."""
        with pytest.raises(UpstreamFailure) as exc_info:
            hash_password("secret1", rounds=99)
        assert exc_info.value.code == "upstream_error"
        assert exc_info.value.status_code == 502


class TestVerifyPassword:
    def test_correct_password_verifies(self):
        hashed = hash_password("secret1")
        assert verify_password("secret1", hashed) is True

    def test_wrong_password_is_false_not_exception(self):
        hashed = hash_password("secret1")
        assert verify_password("secret2", hashed) is False

    def test_malformed_hash_is_false(self):
        assert verify_password("secret1", "not-a-bcrypt-hash") is False

    def test_empty_hash_is_false(self):
        assert verify_password("secret1", "") is False


class TestDummyVerify:
    def test_runs_a_bcrypt_check(self):
        with patch("auth.passwords.verify_password", return_value=False) as mock_verify:
            dummy_verify("whatever")
        mock_verify.assert_called_once()
        assert mock_verify.call_args.args[0] == "whatever"

    def test_does_not_hash_on_call(self):
        """The throwaway hash exists before the first login, so no call pays for hashing."""
        assert verify_password("mealplanner_timing_dummy", passwords._DUMMY_HASH)
        with patch("auth.passwords.hash_password") as mock_hash:
            dummy_verify("first unknown login")
        mock_hash.assert_not_called()

    def test_never_raises(self):
        assert dummy_verify("anything at all") is None
