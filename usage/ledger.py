"""
usage/ledger.py -- Quota gate for the metered meal assistant call.

Protocol for one metered call:
  1. check_and_reserve(user_id): load the quota row, creating it lazily with
     meal_count=0 on first use. Refuse when meal_count >= max_meals.
  2. The caller performs the metered action.
  3. Only if the action succeeded: record_success(user_id), one atomic
     increment in the store.

consume() runs all three steps around a callable.

Failure direction:
  If the action fails nothing is counted. If the action succeeds but the
  increment fails, the user already has their answer -- the failure is logged
  at ERROR and swallowed. Quota can therefore drift low (under-count) under
  store hiccups, never high. This is the only swallowed error in the service.

  Because check and increment are separate steps, N concurrent calls that all
  pass the check when meal_count = max_meals - 1 can each succeed, leaving
  meal_count above the ceiling by up to N-1. Every increment is still counted
  exactly once.

Layer rule: no imports from api/, auth/, or preferences/.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from core.exceptions import AppError, QuotaExceeded
from usage.models import DEFAULT_MAX_MEALS, UsageCheck, UsageRecord
from usage.store import UsageStore

logger = logging.getLogger("mealplanner.usage")

T = TypeVar("T")


class UsageLedger:
    """Per-user counter for the metered action, backed by UsageStore."""

    def __init__(self, store: UsageStore, default_limit: int = DEFAULT_MAX_MEALS) -> None:
        self.store = store
        self.default_limit = default_limit

    def check_and_reserve(self, user_id: int) -> UsageCheck:
        """Return the user's current usage and whether another call is allowed.

        Creates the quota row on first use. Raises StoreFailure if the store
        is unreachable.
        """
        record = self.store.get_usage(user_id)
        if record is None:
            self.store.create_usage(user_id, count=0, max_meals=self.default_limit)
            # Re-read: a concurrent first call may have created the row first.
            record = self.store.get_usage(user_id) or UsageRecord(
                user_id=user_id, meal_count=0, max_meals=self.default_limit
            )
            logger.info("Created usage record for user id=%d (limit=%d)", user_id, record.max_meals)
        return UsageCheck.from_record(record)

    def increment(self, user_id: int) -> bool:
        """Atomically count one successful metered call.

        Returns False if there was no quota row to update. Propagates StoreFailure.
        """
        return self.store.increment_usage(user_id)

    def record_success(self, user_id: int) -> bool:
        """Count a successful call without ever failing the caller.

        Returns False (after logging) if the increment was not stored.
        """
        try:
            stored = self.increment(user_id)
        except AppError as e:
            reason = getattr(e, "internal_message", "") or e.message
            logger.error("Usage increment lost for user id=%d: %s", user_id, reason)
            return False
        if not stored:
            # check_and_reserve always runs first, so the row was removed
            # between check and increment.
            logger.error("Usage increment lost for user id=%d: no usage record", user_id)
        return stored

    def consume(self, user_id: int, action: Callable[[], T]) -> tuple[T, UsageCheck]:
        """Run action under the quota.

        Raises QuotaExceeded without calling action when the user is at the
        ceiling. Exceptions from action propagate and nothing is counted.
        Returns the action's result and the usage after this call.
        """
        check = self.check_and_reserve(user_id)
        if not check.allowed:
            logger.info("Quota refused for user id=%d (%d/%d)", user_id, check.used, check.limit)
            raise QuotaExceeded(used=check.used, limit=check.limit)

        result = action()

        used = check.used + 1 if self.record_success(user_id) else check.used
        after = UsageCheck(
            allowed=used < check.limit,
            used=used,
            remaining=max(check.limit - used, 0),
            limit=check.limit,
        )
        return result, after
