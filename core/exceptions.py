"""
core/exceptions.py -- Error taxonomy shared by every layer.

Each error carries a machine-readable code, a human message, the HTTP status
the API layer should answer with, and optional structured details. api/main.py
has one exception handler for AppError that renders all of them into the same
ErrorResponse envelope, so routes and services just raise.

Two classes are deliberately coarse:
  InvalidCredentials -- unknown email and wrong password look identical.
  Unauthenticated    -- missing, malformed, forged and expired tokens look identical.
Do not add subclasses or messages that tell these cases apart to the client.

Layer rule: core/ is the kernel. No imports from api/, auth/, usage/, or preferences/.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for every error the API translates into a structured response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["detail"] = self.details
        return payload


class ValidationFailed(AppError):
    """Malformed input. details maps each offending field to a message."""

    status_code = 422
    code = "validation_error"
    default_message = "Request validation failed."

    def __init__(self, fields: dict[str, str]) -> None:
        super().__init__(details=dict(fields))
        self.fields = dict(fields)


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "User already exists."


class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid email or password."

    def __init__(self) -> None:
        # No message override: the response must never depend on which check failed.
        super().__init__()


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."

    def __init__(self) -> None:
        super().__init__()


class QuotaExceeded(AppError):
    status_code = 429
    code = "quota_exceeded"
    default_message = "Meal request limit reached."

    def __init__(self, used: int, limit: int) -> None:
        super().__init__(
            f"Meal request limit reached ({used}/{limit}).",
            details={"used": used, "limit": limit},
        )
        self.used = used
        self.limit = limit


class UpstreamFailure(AppError):
    """A store or remote call failed or timed out. Never carries internal detail outward."""

    status_code = 502
    code = "upstream_error"
    default_message = "A backing service is unavailable. Please try again later."

    def __init__(self, message: Optional[str] = None) -> None:
        # message is for logs only; the client always gets default_message.
        super().__init__()
        self.internal_message = message or ""


class StoreFailure(UpstreamFailure):
    """The credential/usage/preferences database failed or timed out."""


class HashingFailure(UpstreamFailure):
    """The password hashing primitive raised (bad cost factor, oversized input)."""
