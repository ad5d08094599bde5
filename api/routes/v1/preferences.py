"""
api/routes/v1/preferences.py -- Saved meal preferences.

Routes:
  GET /api/v1/preferences  -- current preferences; empty defaults if never saved
  PUT /api/v1/preferences  -- replace preferences
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import PreferencesRequest, PreferencesResponse
from auth.dependencies import get_current_identity
from auth.models import Identity
from preferences.models import Preferences
from preferences.store import PreferencesStore

router = APIRouter()


@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> PreferencesResponse:
    store: PreferencesStore = request.app.state.preferences_store
    prefs = store.get(identity.user_id) or Preferences()
    return PreferencesResponse(**prefs.to_dict())


@router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    request: Request,
    body: PreferencesRequest,
    identity: Identity = Depends(get_current_identity),
) -> PreferencesResponse:
    store: PreferencesStore = request.app.state.preferences_store
    prefs = Preferences(
        dietary_restrictions=body.dietary_restrictions,
        max_cooking_time=body.max_cooking_time,
    )
    store.upsert(identity.user_id, prefs)
    return PreferencesResponse(**prefs.to_dict())
