"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and flows do
the work; these only own shape.

Layer rule: no imports from api/, usage/, or preferences/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    email is the login key and is stored exactly as submitted (case-sensitive).
    hashed_password is a bcrypt digest and must never leave the server -- API
    models copy id and email only.
    """

    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token. Immutable once issued."""

    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime
    issuer: str
    token_id: str


@dataclass(frozen=True)
class Identity:
    """The verified caller injected into request scope by the authentication gate."""

    user_id: int
    email: str


@dataclass(frozen=True)
class Session:
    """Result of Register/Login: the account plus a freshly issued token."""

    user: User
    token: str
