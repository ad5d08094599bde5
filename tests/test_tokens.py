"""Unit tests for auth/tokens.py -- TokenCodec issue and verify.

Covers:
- Round trip: claims carry user_id/email/issuer and expire exactly 24h after issue
- Rejection of expired, foreign-secret, tampered, malformed and wrong-issuer tokens
- Algorithm confusion: "none" and asymmetric algorithms refused; HMAC family accepted
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import ACCEPTED_ALGORITHMS, InvalidToken, TokenCodec

_SECRET = "unit-test-secret-with-plenty-of-entropy-123456"
_ISSUER = "mealplanner-backend"


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret=_SECRET, issuer=_ISSUER)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _valid_payload(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": 7,
        "email": "a@b.com",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=1)).timestamp()),
        "iss": _ISSUER,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestIssueAndVerify:
    def test_round_trip_preserves_identity(self, codec):
        claims = codec.verify(codec.issue(42, "a@b.com"))
        assert claims.user_id == 42
        assert claims.email == "a@b.com"
        assert claims.issuer == _ISSUER

    def test_expiry_is_exactly_24h_after_issue(self, codec):
        claims = codec.verify(codec.issue(1, "a@b.com"))
        assert claims.expires_at - claims.issued_at == timedelta(hours=24)

    def test_issued_at_is_now(self, codec):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        claims = codec.verify(codec.issue(1, "a@b.com"))
        after = datetime.now(timezone.utc)
        assert before <= claims.issued_at <= after

    def test_custom_ttl(self):
        short = TokenCodec(secret=_SECRET, issuer=_ISSUER, ttl_seconds=60)
        claims = short.verify(short.issue(1, "a@b.com"))
        assert claims.expires_at - claims.issued_at == timedelta(seconds=60)

    def test_tokens_issued_in_same_second_differ(self, codec):
        now = datetime.now(timezone.utc)
        first = codec.issue(1, "a@b.com", now=now)
        second = codec.issue(1, "a@b.com", now=now)
        assert first != second
        assert codec.verify(first).token_id != codec.verify(second).token_id

    def test_signed_with_hs256(self, codec):
        assert jwt.get_unverified_header(codec.issue(1, "a@b.com"))["alg"] == "HS256"

    def test_other_hmac_algorithms_accepted(self, codec):
        for alg in ACCEPTED_ALGORITHMS:
            token = jwt.encode(_valid_payload(), _SECRET, algorithm=alg)
            assert codec.verify(token).user_id == 7


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestVerifyRejects:
    def test_expired_token_rejected(self, codec):
        past = datetime.now(timezone.utc) - timedelta(hours=25)
        token = codec.issue(1, "a@b.com", now=past)
        with pytest.raises(InvalidToken, match="expired"):
            codec.verify(token)

    def test_different_secret_rejected(self, codec):
        other = TokenCodec(secret="some-other-secret-entirely-000000000", issuer=_ISSUER)
        with pytest.raises(InvalidToken):
            codec.verify(other.issue(1, "a@b.com"))

    def test_tampered_payload_rejected(self, codec):
        header, _payload, signature = codec.issue(1, "a@b.com").split(".")
        forged = ".".join([header, _b64(_valid_payload(user_id=999)), signature])
        with pytest.raises(InvalidToken):
            codec.verify(forged)

    def test_alg_none_rejected(self, codec):
        token = ".".join([_b64({"alg": "none", "typ": "JWT"}), _b64(_valid_payload()), ""])
        with pytest.raises(InvalidToken, match="algorithm"):
            codec.verify(token)

    def test_asymmetric_alg_header_rejected(self, codec):
        """An RS256 header is refused before any key is used (algorithm confusion)."""
        signed = jwt.encode(_valid_payload(), _SECRET, algorithm="HS256")
        _header, payload, signature = signed.split(".")
        token = ".".join([_b64({"alg": "RS256", "typ": "JWT"}), payload, signature])
        with pytest.raises(InvalidToken, match="algorithm"):
            codec.verify(token)

    def test_wrong_issuer_rejected(self, codec):
        token = jwt.encode(_valid_payload(iss="someone-else"), _SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_missing_user_id_rejected(self, codec):
        payload = _valid_payload()
        del payload["user_id"]
        token = jwt.encode(payload, _SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken, match="user_id"):
            codec.verify(token)

    def test_missing_exp_rejected(self, codec):
        payload = _valid_payload()
        del payload["exp"]
        token = jwt.encode(payload, _SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            codec.verify(token)

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b", "a.b.c", "....", "Bearer xyz"])
    def test_malformed_input_rejected(self, codec, garbage):
        with pytest.raises(InvalidToken):
            codec.verify(garbage)


class TestConstruction:
    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenCodec(secret="", issuer=_ISSUER)

    def test_non_positive_ttl_refused(self):
        with pytest.raises(ValueError):
            TokenCodec(secret=_SECRET, issuer=_ISSUER, ttl_seconds=0)
