"""
api/routes/v1/meals.py -- The metered meal assistant and its quota.

Routes:
  POST /api/v1/llm    -- ask the meal assistant (requires auth, counts against quota)
  GET  /api/v1/usage  -- current quota usage (requires auth)

A call to /llm is counted only if the assistant answered. Over the limit it
returns 429 quota_exceeded with used/limit in the error detail and the
assistant is never called. If the assistant fails the caller gets 502
upstream_error and the call is not counted.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MealRequest, MealResponse, UsageResponse
from auth.dependencies import get_current_identity
from auth.models import Identity
from core.config import get_settings
from core.llm import CompletionClient
from preferences.prompts import build_meal_prompt
from preferences.store import PreferencesStore
from usage.ledger import UsageLedger
from usage.models import UsageCheck

router = APIRouter()


@router.post("/llm", response_model=MealResponse)
def ask_meal_assistant(
    request: Request,
    body: MealRequest,
    identity: Identity = Depends(get_current_identity),
) -> MealResponse:
    """Send the user's message, plus their saved preferences, to the meal assistant."""
    ledger: UsageLedger = request.app.state.usage_ledger
    prefs_store: PreferencesStore = request.app.state.preferences_store
    llm: CompletionClient = request.app.state.llm
    system_prompt = get_settings().llm_system_prompt

    def _call() -> str:
        prefs = prefs_store.get(identity.user_id)
        return llm.invoke(system_prompt, build_meal_prompt(body.message, prefs))

    text, usage = ledger.consume(identity.user_id, _call)
    return MealResponse(response=text, usage=_to_usage_response(usage))


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> UsageResponse:
    """Return how many meal requests the user has made and how many remain."""
    ledger: UsageLedger = request.app.state.usage_ledger
    return _to_usage_response(ledger.check_and_reserve(identity.user_id))


def _to_usage_response(check: UsageCheck) -> UsageResponse:
    return UsageResponse(used=check.used, remaining=check.remaining, limit=check.limit)
