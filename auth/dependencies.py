"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

This is the authentication gate for every protected route. The single token
carrier is the Authorization header:

    Authorization: Bearer <token>

Login and Register return the token in the JSON body for the client to
present this way; no cookie is read or set.

Every rejection -- header missing, wrong scheme, wrong shape, bad signature,
wrong algorithm, expired -- raises the same Unauthenticated error. The
internal reason is logged at DEBUG and never reaches the client.

try_get_identity() is the soft variant (returns None on failure).
get_current_identity() wraps it and raises Unauthenticated.

Verification is pure computation on the TokenCodec held in app.state: no
database round-trip on the protected path.

Layer rule: no imports from api/, usage/, or preferences/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Identity
from auth.tokens import InvalidToken, TokenCodec
from core.exceptions import Unauthenticated

logger = logging.getLogger("mealplanner.auth.gate")

AUTH_SCHEME = "Bearer"


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" value, or None.

    Exactly two space-separated parts are required and the scheme is
    case-sensitive.
    """
    if not header_value:
        return None
    parts = header_value.split(" ")
    if len(parts) != 2 or parts[0] != AUTH_SCHEME or not parts[1]:
        return None
    return parts[1]


def try_get_identity(request: Request) -> Identity | None:
    """Attempt to authenticate the request. Never raises.

    On success the identity is also written to request.state.user_id and
    request.state.email for handlers that read request scope directly.
    """
    codec: TokenCodec = request.app.state.token_codec

    header = request.headers.get("Authorization")
    if not header:
        logger.debug("Rejected %s: no Authorization header", request.url.path)
        return None

    token = extract_bearer_token(header)
    if token is None:
        logger.debug("Rejected %s: malformed Authorization header", request.url.path)
        return None

    try:
        claims = codec.verify(token)
    except InvalidToken as e:
        logger.debug("Rejected %s: %s", request.url.path, e.reason)
        return None

    request.state.user_id = claims.user_id
    request.state.email = claims.email
    return Identity(user_id=claims.user_id, email=claims.email)


def get_current_identity(request: Request) -> Identity:
    """Require authentication. Raises Unauthenticated (HTTP 401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    identity = try_get_identity(request)
    if identity is None:
        raise Unauthenticated()
    return identity
