"""
API request and response models for MealPlanner REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
usage/models.py and preferences/models.py, which own the internal domain
representation. Route handlers map between the two.

Credential shape rules (email format, password length) are NOT duplicated
here; auth/flows.py owns them and raises ValidationFailed with per-field
messages. These models only enforce presence, type and hard size caps.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserInfo(BaseModel):
    """Public view of a user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str


class AuthResponse(BaseModel):
    """Response for register and login.

    token is presented on protected calls as "Authorization: Bearer <token>".
    """

    model_config = ConfigDict(frozen=True)

    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ProfileResponse(BaseModel):
    """Response for GET /api/v1/profile -- the identity carried by the token."""

    model_config = ConfigDict(frozen=True)

    user: UserInfo


# ---------------------------------------------------------------------------
# Usage and meal assistant
# ---------------------------------------------------------------------------


class UsageResponse(BaseModel):
    """Response for GET /api/v1/usage."""

    model_config = ConfigDict(frozen=True)

    used: int
    remaining: int
    limit: int


class MealRequest(BaseModel):
    """Request body for POST /api/v1/llm -- ingredients or a free-text question."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=4000)


class MealResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    response: str
    usage: UsageResponse


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class PreferencesRequest(BaseModel):
    """Request body for PUT /api/v1/preferences."""

    model_config = ConfigDict(str_strip_whitespace=True)

    dietary_restrictions: str = Field(default="", max_length=500)
    max_cooking_time: int = Field(default=0, ge=0, le=24 * 60, description="Minutes; 0 means no limit.")


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    dietary_restrictions: str
    max_cooking_time: int


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class ComponentHealthResponse(BaseModel):
    """Response for GET /api/v1/health/db and /api/v1/health/llm."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    component: str
    state: str
