"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler, has no
compatibility shim, and is actively maintained.

bcrypt only looks at the first 72 bytes of input and current releases refuse
longer input outright, so auth/flows.py caps passwords at MAX_PASSWORD_BYTES
before they get here.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import get_settings
from core.exceptions import HashingFailure

logger = logging.getLogger("mealplanner.auth")

MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of plain.

    A fresh salt per call means two hashes of the same password differ.
    rounds defaults to Settings.bcrypt_rounds. Any failure inside bcrypt
    (invalid cost factor, oversized input) raises HashingFailure.
    """
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    try:
        salt = bcrypt.gensalt(rounds=cost)
        return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        logger.error("bcrypt hashing failed (rounds=%s): %s", cost, e)
        raise HashingFailure(str(e)) from e


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if plain matches the bcrypt hash.

    checkpw compares in constant time. A mismatch, a malformed stored hash,
    or an oversized candidate all return False rather than raising.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Computed at import so the first unknown-email login costs the same as every
# other: one bcrypt check, never a hash plus a check.
_DUMMY_HASH: str = hash_password("mealplanner_timing_dummy")


def dummy_verify(plain: str) -> None:
    """Burn one bcrypt check against a throwaway hash.

    Login calls this when the email is unknown so the response takes as long
    as a wrong-password attempt and timing does not reveal which accounts exist.
    """
    verify_password(plain, _DUMMY_HASH)
