"""
api/main.py -- FastAPI application entry point for MealPlanner.

Run with:      python main.py
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one log line per request with status and latency

Lifespan builds every long-lived collaborator once -- the three stores, the
usage ledger, the token codec (holding the signing secret) and the meal
assistant client -- and tears them down symmetrically on shutdown. Routes
reach them through request.app.state; nothing is looked up globally.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ComponentHealthResponse, ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.meals import router as meals_router
from api.routes.v1.preferences import router as preferences_router
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.exceptions import AppError, Unauthenticated, UpstreamFailure
from core.llm import CompletionClient
from preferences.store import PreferencesStore
from usage.ledger import UsageLedger
from usage.store import UsageStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("mealplanner.api")

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    The signing secret is read here, once, and handed to TokenCodec. No other
    code touches it.
    """
    settings = get_settings()
    logger.info("MealPlanner API starting up")

    app.state.user_store = UserStore(settings.database_url, settings.store_timeout_seconds)
    usage_store = UsageStore(settings.database_url, settings.store_timeout_seconds)
    app.state.usage_ledger = UsageLedger(usage_store, default_limit=settings.default_max_meals)
    app.state.preferences_store = PreferencesStore(settings.database_url, settings.store_timeout_seconds)
    logger.info("Stores initialized")

    app.state.token_codec = TokenCodec(
        secret=settings.jwt_secret,
        issuer=settings.token_issuer,
        ttl_seconds=settings.token_expire_seconds,
    )
    app.state.llm = CompletionClient(
        api_key=settings.anthropic_api_key,
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout_seconds,
    )
    if not app.state.llm.is_configured:
        logger.warning("ANTHROPIC_API_KEY not set -- meal assistant calls will fail with 502")

    yield

    # Shutdown
    app.state.llm.close()
    app.state.preferences_store.close()
    usage_store.close()
    app.state.user_store.close()
    logger.info("MealPlanner API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="MealPlanner API",
    description="Account sessions and a quota-limited meal planning assistant.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().origins,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=12 * 3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(meals_router, prefix="/api/v1", tags=["Meals"])
app.include_router(preferences_router, prefix="/api/v1", tags=["Preferences"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render any core.exceptions error as the standard envelope.

    UpstreamFailure keeps its internal message for the log only. 401s carry
    WWW-Authenticate so clients know the expected scheme.
    """
    if isinstance(exc, UpstreamFailure):
        logger.warning(
            "Upstream failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.internal_message or exc.__class__.__name__,
        )
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(**exc.to_dict())).model_dump(),
    )
    if isinstance(exc, Unauthenticated):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail={"limit": str(exc.detail)},
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with one message per offending field, same shape as ValidationFailed."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=_field_errors(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


def _field_errors(errors) -> dict[str, str]:
    # loc is ("body", "email") for body fields; drop the location prefix.
    fields: dict[str, str] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        fields.setdefault(name, err.get("msg", "Invalid value."))
    return fields


# ---------------------------------------------------------------------------
# Health endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable.
# No auth and no rate limit -- load balancers and monitors must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)


@app.get("/api/v1/health/db", tags=["Health"], response_model=ComponentHealthResponse)
def health_db(request: Request):
    """503 if the database does not answer a trivial query."""
    if not request.app.state.user_store.ping():
        return _component_down("database", "The database is unreachable.")
    return ComponentHealthResponse(component="database", state="connected")


@app.get("/api/v1/health/llm", tags=["Health"], response_model=ComponentHealthResponse)
async def health_llm(request: Request):
    """503 if no meal assistant API key is configured."""
    if not request.app.state.llm.is_configured:
        return _component_down("llm", "The meal assistant is not configured.")
    return ComponentHealthResponse(component="llm", state="configured")


def _component_down(component: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            error=ErrorDetail(code="unavailable", message=message, detail={"component": component})
        ).model_dump(),
    )
