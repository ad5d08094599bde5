"""
tests/conftest.py -- Shared test fixtures for MealPlanner tests.

This module provides:
  - FakeCompletionClient: stands in for the meal assistant; records prompts
  - make_test_stores(): isolated in-memory DBs for users, usage and preferences
  - _patch_lifespan(): wires test collaborators into app.state, bypassing real startup
  - api_client: TestClient plus a pre-registered user for integration tests
  - user_store / codec: unit-test fixtures for the auth flows

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any application import: BCRYPT_ROUNDS=4 keeps
hashing fast, RATE_LIMIT_ENABLED=false stops slowapi from throttling the
suite's many logins, and JWT_SECRET avoids the dev-fallback warning.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any core/auth/api import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth import flows
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.exceptions import UpstreamFailure
from preferences.store import PreferencesStore
from usage.ledger import UsageLedger
from usage.store import UsageStore

TEST_ISSUER = "mealplanner-test"

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCompletionClient:
    """In-process meal assistant. Set fail=True to simulate an upstream outage."""

    def __init__(self, reply: str = "Try a vegetable stir-fry.") -> None:
        self.reply = reply
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return True

    def invoke(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.fail:
            raise UpstreamFailure("simulated outage")
        return self.reply

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def make_test_stores(db_suffix: str) -> tuple[UserStore, UsageStore, PreferencesStore]:
    """Create stores sharing one named in-memory database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = _memory_url(f"test_mealplanner_{db_suffix}")
    return UserStore(db_url=url), UsageStore(db_url=url), PreferencesStore(db_url=url)


def make_codec() -> TokenCodec:
    return TokenCodec(secret=get_settings().jwt_secret, issuer=TEST_ISSUER)


def _patch_lifespan(
    user_store: UserStore,
    usage_store: UsageStore,
    prefs_store: PreferencesStore,
    codec: TokenCodec,
    llm: FakeCompletionClient,
):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.usage_ledger = UsageLedger(usage_store, default_limit=20)
        app.state.preferences_store = prefs_store
        app.state.token_codec = codec
        app.state.llm = llm
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    token: str
    user_id: int
    email: str
    llm: FakeCompletionClient

    @property
    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for HTTP integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores and a fake
    meal assistant. A user (chef@example.com / secret1) is registered before
    the client starts.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, usage_store, prefs_store = make_test_stores(suffix)
    codec = make_codec()
    llm = FakeCompletionClient()

    session = flows.register(user_store, codec, "chef@example.com", "secret1")

    app.router.lifespan_context = _patch_lifespan(user_store, usage_store, prefs_store, codec, llm)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            token=session.token,
            user_id=session.user.id,
            email=session.user.email,
            llm=llm,
        )

    user_store.close()
    usage_store.close()
    prefs_store.close()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(db_url="sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def codec() -> TokenCodec:
    return make_codec()
