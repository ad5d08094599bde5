"""Prompt construction for the meal assistant."""

from __future__ import annotations

from typing import Optional

from preferences.models import Preferences


def build_meal_prompt(message: str, prefs: Optional[Preferences] = None) -> str:
    """Append the user's saved dietary constraints to their message.

    Unset preferences (empty restrictions, zero cooking time) add nothing.
    """
    prompt = message
    if prefs is not None:
        if prefs.dietary_restrictions:
            prompt += f"\nDietary restrictions: {prefs.dietary_restrictions}"
        if prefs.max_cooking_time > 0:
            prompt += f"\nMaximum cooking time: {prefs.max_cooking_time} minutes"
    return prompt
