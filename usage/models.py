"""
usage/models.py -- Domain dataclasses for the meal request quota.

Layer rule: no imports from api/, auth/, or preferences/.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_MEALS = 20


@dataclass
class UsageRecord:
    """One row of users_tracking: how many metered calls a user has made.

    meal_count only ever goes up, one atomic step at a time. The ceiling is
    checked before each call, not enforced by the database.
    """

    user_id: int
    meal_count: int = 0
    max_meals: int = DEFAULT_MAX_MEALS
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class UsageCheck:
    """Snapshot returned by UsageLedger.check_and_reserve()."""

    allowed: bool
    used: int
    remaining: int
    limit: int

    @classmethod
    def from_record(cls, record: UsageRecord) -> "UsageCheck":
        return cls(
            allowed=record.meal_count < record.max_meals,
            used=record.meal_count,
            remaining=max(record.max_meals - record.meal_count, 0),
            limit=record.max_meals,
        )
