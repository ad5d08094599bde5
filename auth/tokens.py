"""
auth/tokens.py -- Session token codec (JWT via python-jose).

Security design decisions:
  Algorithm: tokens are issued with HS256. Verification accepts only the HMAC
       family (HS256/HS384/HS512). The header's alg is checked before the
       signature so "none" and asymmetric algorithms (RS256 and friends, the
       classic algorithm-confusion vector) are refused up front.

  Claims: user_id, email, iat, exp, iss, jti. exp is exactly ttl seconds after
       iat (both whole seconds). jti is a random nonce so two tokens issued to
       the same user in the same second are still distinct strings.

  Stateless: nothing about issued tokens is stored. Validity is signature +
       expiry + issuer at verification time, never a database lookup. Logout
       is client-side discard; a leaked token stays valid until exp.

  Secret: passed into TokenCodec by the caller (api/main.py reads it from
       Settings once at startup). This module never reads configuration.

Layer rule: no imports from api/, usage/, or preferences/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenClaims

logger = logging.getLogger("mealplanner.auth")

SIGNING_ALGORITHM = "HS256"
ACCEPTED_ALGORITHMS = ("HS256", "HS384", "HS512")
DEFAULT_TTL_SECONDS = 24 * 60 * 60


class InvalidToken(Exception):
    """Token failed verification. reason is for logs, never for the client."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TokenCodec:
    """Issue and verify signed session tokens.

    Usage:
        codec = TokenCodec(secret=settings.jwt_secret, issuer="mealplanner-backend")
        token = codec.issue(42, "a@b.com")
        claims = codec.verify(token)   # TokenClaims, or raises InvalidToken
    """

    def __init__(self, secret: str, issuer: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        if not secret:
            raise ValueError("TokenCodec requires a non-empty secret")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret = secret
        self.issuer = issuer
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: int, email: str, now: datetime | None = None) -> str:
        """Encode a signed token for user_id/email valid for ttl_seconds from now."""
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self.ttl_seconds)
        payload = {
            "user_id": user_id,
            "email": email,
            "iat": issued_at,
            "exp": expires_at,
            "iss": self.issuer,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secret, algorithm=SIGNING_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Check algorithm, signature, expiry and issuer; return the claims.

        Raises InvalidToken on any failure. Callers at the HTTP boundary must
        collapse every InvalidToken into the same Unauthenticated response.
        """
        if not token or not isinstance(token, str):
            raise InvalidToken("empty token")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidToken(f"malformed header: {e}") from e
        alg = header.get("alg")
        if alg not in ACCEPTED_ALGORITHMS:
            raise InvalidToken(f"unexpected signing algorithm {alg!r}")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=list(ACCEPTED_ALGORITHMS),
                issuer=self.issuer,
                options={"require_exp": True, "require_iat": True, "require_iss": True},
            )
        except ExpiredSignatureError as e:
            raise InvalidToken("expired") from e
        except JWTError as e:
            raise InvalidToken(f"rejected: {e}") from e

        user_id = payload.get("user_id")
        email = payload.get("email")
        # bool is an int subclass; a token claiming user_id=true is not ours.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidToken("missing or non-integer user_id claim")
        if not isinstance(email, str) or not email:
            raise InvalidToken("missing email claim")

        return TokenClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            issuer=payload["iss"],
            token_id=str(payload.get("jti", "")),
        )
