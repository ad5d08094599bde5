"""
auth/flows.py -- Register, Login and Logout.

Each flow orchestrates the password hasher, the token codec and the user
store, and raises core.exceptions errors that the API layer renders. The
flows are plain functions taking their collaborators as arguments so they
run the same under FastAPI and in unit tests.

Security:
  Login never says which half of the credentials was wrong. An unknown email
  still pays for one bcrypt check (dummy_verify) so response time does not
  leak account existence either.

  Logout is stateless. Tokens are not tracked server-side, so there is
  nothing to invalidate; the client discards its token and a copied token
  remains valid until it expires.

Layer rule: no imports from api/, usage/, or preferences/.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email

from auth.models import Session, User
from auth.passwords import MAX_PASSWORD_BYTES, dummy_verify, hash_password, verify_password
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.exceptions import Conflict, InvalidCredentials, ValidationFailed

logger = logging.getLogger("mealplanner.auth")

MIN_PASSWORD_LENGTH = 6
MAX_EMAIL_LENGTH = 255

LOGOUT_MESSAGE = "Logged out successfully"


def validate_registration(email: str, password: str) -> None:
    """Raise ValidationFailed listing every bad field, or return None."""
    errors: dict[str, str] = {}
    if not email:
        errors["email"] = "Email is required."
    elif len(email) > MAX_EMAIL_LENGTH or not _is_valid_email(email):
        errors["email"] = "Email must be a valid email address."

    if not password:
        errors["password"] = "Password is required."
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    elif len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors["password"] = f"Password must be at most {MAX_PASSWORD_BYTES} bytes."

    if errors:
        raise ValidationFailed(errors)


def _is_valid_email(email: str) -> bool:
    # Shape check only. The address is stored exactly as submitted, so the
    # normalized form email-validator returns is discarded.
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        logger.debug("Rejected registration email: %s", e)
        return False
    return True


def register(
    store: UserStore,
    codec: TokenCodec,
    email: str,
    password: str,
    rounds: int | None = None,
) -> Session:
    """Create an account and log it in.

    Raises ValidationFailed, Conflict (email taken), HashingFailure or
    StoreFailure. Returns the new user plus a token.
    """
    validate_registration(email, password)

    if store.exists_by_email(email):
        raise Conflict()

    hashed = hash_password(password, rounds=rounds)
    # insert_user raises Conflict itself if a concurrent register won the race.
    user_id = store.insert_user(email, hashed)
    logger.info("Registered user id=%d", user_id)

    user = User(id=user_id, email=email, hashed_password=hashed)
    return Session(user=user, token=codec.issue(user_id, email))


def authenticate(store: UserStore, email: str, password: str) -> User:
    """Return the user whose credentials match, or raise InvalidCredentials.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against a dummy hash (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash
    Both outcomes raise the same InvalidCredentials.
    """
    missing: dict[str, str] = {}
    if not email:
        missing["email"] = "Email is required."
    if not password:
        missing["password"] = "Password is required."
    if missing:
        raise ValidationFailed(missing)

    user = store.find_by_email(email)
    if user is None:
        dummy_verify(password)
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user


def login(store: UserStore, codec: TokenCodec, email: str, password: str) -> Session:
    """Verify credentials and issue a fresh token."""
    user = authenticate(store, email, password)
    logger.info("Login succeeded for user id=%d", user.id)
    return Session(user=user, token=codec.issue(user.id, user.email))


def logout() -> str:
    """Acknowledge a logout. Performs no server-side invalidation."""
    return LOGOUT_MESSAGE
