"""
api/routes/v1/auth.py -- Session endpoints and the caller's profile.

Routes:
  POST /api/v1/auth/register   -- create account; returns token (auto-login)
  POST /api/v1/auth/login      -- password login; returns token
  POST /api/v1/auth/logout     -- stateless; tells the client to drop its token
  GET  /api/v1/profile         -- identity carried by the token (requires auth)

Security:
  POST /register and /login are rate-limited per IP (Settings.auth_rate_limit).
  auth.flows.login() provides timing equalization -- use it, never inline
  find_by_email() + verify_password().
  Cache-Control: no-store on every response that carries a token.
  Tokens travel only in the JSON body and the Authorization header; no cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, MessageResponse, ProfileResponse, RegisterRequest, UserInfo
from auth import flows
from auth.dependencies import get_current_identity
from auth.models import Identity, Session
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/register: public, rate-limited
# - POST /api/v1/auth/login:    public, rate-limited
# - POST /api/v1/auth/logout:   public -- there is nothing server-side to end
# - GET  /api/v1/profile:       requires auth (get_current_identity)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.auth_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a session token for it.

    422 validation_error for a malformed email or a password shorter than
    6 characters; 409 conflict if the email is already registered.
    """
    user_store: UserStore = request.app.state.user_store
    codec: TokenCodec = request.app.state.token_codec
    session = flows.register(user_store, codec, body.email, body.password)
    return _session_response(session, "User registered successfully", codec)


@limiter.limit(_settings.auth_rate_limit)
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a fresh session token.

    Returns the same 401 invalid_credentials for an unknown email and a wrong
    password, so the endpoint cannot be used to probe which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    codec: TokenCodec = request.app.state.token_codec
    session = flows.login(user_store, codec, body.email, body.password)
    return _session_response(session, "Login successful", codec)


@router.post("/auth/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Acknowledge logout. The client must discard its token; the server keeps no session."""
    return MessageResponse(message=flows.logout())


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
async def profile(identity: Identity = Depends(get_current_identity)) -> ProfileResponse:
    """Return the user id and email the gate verified from the token."""
    return ProfileResponse(user=UserInfo(id=identity.user_id, email=identity.email))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(session: Session, message: str, codec: TokenCodec) -> JSONResponse:
    resp = JSONResponse(
        status_code=200,
        content=AuthResponse(
            message=message,
            token=session.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=codec.ttl_seconds,
            user=UserInfo(id=session.user.id, email=session.user.email),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
