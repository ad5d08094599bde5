"""
usage/store.py -- SQLAlchemy Core persistence for per-user quota records.

Pattern: Repository + Data Mapper (same as auth/store.py).

Concurrency:
  increment_usage() is a single UPDATE ... SET meal_count = meal_count + 1.
  The database serializes concurrent updates to the same row, so two requests
  for the same user can never read the same old value and both write old+1.
  Do not replace it with a SELECT followed by an UPDATE.

  create_usage() is INSERT ... ON CONFLICT(user_id) DO NOTHING, so two
  first-time checks racing for the same user both succeed and leave one row.

Layer rule: no imports from api/, auth/, or preferences/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, text
from sqlalchemy.engine import Engine

from core.database import DEFAULT_DB_URL, DEFAULT_TIMEOUT, guarded, make_engine, now_iso, ping
from usage.models import DEFAULT_MAX_MEALS, UsageRecord

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_tracking = Table(
    "users_tracking",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, unique=True),
    Column("meal_count", Integer, nullable=False, server_default="0"),
    Column("max_meals", Integer, nullable=False, server_default=str(DEFAULT_MAX_MEALS)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_CREATE_IF_ABSENT = text(
    """
    INSERT INTO users_tracking (user_id, meal_count, max_meals, created_at, updated_at)
    VALUES (:user_id, :meal_count, :max_meals, :created_at, :updated_at)
    ON CONFLICT (user_id) DO NOTHING
    """
)


class UsageStore:
    """Repository for UsageRecord rows.

    Usage:
        store = UsageStore()
        store.create_usage(42)
        store.increment_usage(42)
        store.get_usage(42).meal_count   # 1
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.engine: Engine = make_engine(db_url, timeout)
        _metadata.create_all(self.engine)

    def get_usage(self, user_id: int) -> UsageRecord | None:
        with guarded(self.engine, "get_usage") as conn:
            row = conn.execute(_tracking.select().where(_tracking.c.user_id == user_id)).fetchone()
        return _row_to_record(row) if row is not None else None

    def create_usage(self, user_id: int, count: int = 0, max_meals: int = DEFAULT_MAX_MEALS) -> None:
        """Create the quota row for user_id unless one already exists."""
        stamp = now_iso()
        with guarded(self.engine, "create_usage") as conn:
            conn.execute(
                _CREATE_IF_ABSENT,
                {
                    "user_id": user_id,
                    "meal_count": count,
                    "max_meals": max_meals,
                    "created_at": stamp,
                    "updated_at": stamp,
                },
            )
            conn.commit()

    def increment_usage(self, user_id: int) -> bool:
        """Atomically add one to meal_count. Returns False if no row exists."""
        with guarded(self.engine, "increment_usage") as conn:
            result = conn.execute(
                _tracking.update()
                .where(_tracking.c.user_id == user_id)
                .values(meal_count=_tracking.c.meal_count + 1, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        return ping(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def _row_to_record(row) -> UsageRecord:
    return UsageRecord(
        id=row.id,
        user_id=row.user_id,
        meal_count=row.meal_count,
        max_meals=row.max_meals,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
