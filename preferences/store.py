"""
preferences/store.py -- SQLAlchemy Core persistence for meal preferences.

One row per user in user_preference; the preferences themselves are a JSON
blob in the user_preference column so new fields need no migration.

Layer rule: no imports from api/, auth/, or usage/.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine

from core.database import DEFAULT_DB_URL, DEFAULT_TIMEOUT, guarded, make_engine, now_iso
from core.exceptions import StoreFailure
from preferences.models import Preferences

logger = logging.getLogger("mealplanner.preferences")

_metadata = MetaData()

_preferences = Table(
    "user_preference",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, unique=True),
    Column("user_preference", Text),  # JSON blob
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_UPSERT = text(
    """
    INSERT INTO user_preference (user_id, user_preference, created_at, updated_at)
    VALUES (:user_id, :blob, :stamp, :stamp)
    ON CONFLICT (user_id) DO UPDATE SET
        user_preference = excluded.user_preference,
        updated_at = excluded.updated_at
    """
)


class PreferencesStore:
    """Repository for per-user Preferences.

    Usage:
        store = PreferencesStore()
        store.upsert(42, Preferences(dietary_restrictions="vegan"))
        store.get(42)
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.engine: Engine = make_engine(db_url, timeout)
        _metadata.create_all(self.engine)

    def get(self, user_id: int) -> Preferences | None:
        """Return the user's preferences, or None if they never saved any."""
        with guarded(self.engine, "get_preferences") as conn:
            row = conn.execute(
                _preferences.select().where(_preferences.c.user_id == user_id)
            ).fetchone()
        if row is None or not row.user_preference:
            return None
        try:
            return Preferences.from_dict(json.loads(row.user_preference))
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Unreadable preferences blob for user id=%d: %s", user_id, e)
            raise StoreFailure(f"corrupt preferences for user {user_id}") from e

    def upsert(self, user_id: int, prefs: Preferences) -> None:
        """Insert or replace the user's preferences."""
        with guarded(self.engine, "upsert_preferences") as conn:
            conn.execute(
                _UPSERT,
                {"user_id": user_id, "blob": json.dumps(prefs.to_dict()), "stamp": now_iso()},
            )
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()
