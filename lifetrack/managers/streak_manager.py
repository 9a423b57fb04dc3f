"""Streak Manager - Materialized streak records.

StreakRecords are a cache over the completion ledger. Every recompute is a
full ledger scan followed by a full-replace upsert, so calling it any number
of times, in any order, converges on the same record.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.ledger_engine import LedgerEngine
from ..engines.streak_engine import StreakEngine
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..type_defs import StreakData, StreakResult


class StreakManager(BaseManager):
    """Manager for per-habit streak records.

    Responsibilities:
    - Recompute a habit's record after every ledger mutation
    - Re-emit as STREAKS_UPDATED so gamification runs after streaks
    - Refresh all records when the calendar day moves on
    """

    async def async_setup(self) -> None:
        """Subscribe to ledger changes."""
        self.listen(const.SIGNAL_SUFFIX_COMPLETION_CHANGED, self._on_completion_changed)

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def _on_completion_changed(self, payload: dict[str, Any]) -> None:
        user_id = payload["user_id"]
        habit_id = payload["habit_id"]
        await self._async_recompute(user_id, habit_id)
        await self.async_emit(const.SIGNAL_SUFFIX_STREAKS_UPDATED, **payload)

    # =========================================================================
    # Queries
    # =========================================================================

    async def async_get_streak(self, habit_id: str) -> StreakData:
        """Return the stored record for a habit.

        Current streaks are as of the last recompute; call async_refresh()
        after a day boundary to re-anchor them to today.

        Raises:
            NotFoundError: Habit does not exist for this user.
        """
        user_id = self._require_user_id()
        await self._async_get_owned(
            const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
        )
        record = await self.store.async_select_one(
            const.TABLE_HABIT_STREAKS,
            eq={const.DATA_USER_ID: user_id, const.DATA_STREAK_HABIT_ID: habit_id},
        )
        if record is None:
            # Habit predates its record; derive one without persisting
            return await self._async_build(user_id, habit_id)
        return record  # type: ignore[return-value]

    async def async_get_streaks(self) -> list[StreakData]:
        """Return every stored record for the user."""
        user_id = self._require_user_id()
        return await self._async_records(user_id)

    async def async_get_summary(self) -> StreakResult:
        """Best current and longest streak across all habits."""
        user_id = self._require_user_id()
        return await self._async_summary(user_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def async_recompute(self, habit_id: str) -> StreakData:
        """Recompute and persist one habit's record."""
        user_id = self._require_user_id()

        async def _unit() -> StreakData:
            await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            return await self._async_recompute(user_id, habit_id)

        return await self.coordinator.async_run_mutation("streak_recompute", _unit)

    async def async_refresh(self) -> list[StreakData]:
        """Recompute every habit's record for today (e.g. after midnight)."""
        user_id = self._require_user_id()

        async def _unit() -> list[StreakData]:
            records = await self._async_refresh_all(user_id)
            await self.async_emit(
                const.SIGNAL_SUFFIX_STREAKS_UPDATED,
                user_id=user_id,
                habit_id=None,
                date=None,
                added=False,
            )
            return records

        return await self.coordinator.async_run_mutation("streak_refresh", _unit)

    # =========================================================================
    # Internals (callable from within a running unit)
    # =========================================================================

    async def _async_build(self, user_id: str, habit_id: str) -> StreakData:
        completions = await self.store.async_select(
            const.TABLE_HABIT_COMPLETIONS,
            eq={const.DATA_USER_ID: user_id, const.DATA_COMPLETION_HABIT_ID: habit_id},
        )
        existing = await self.store.async_select_one(
            const.TABLE_HABIT_STREAKS,
            eq={const.DATA_USER_ID: user_id, const.DATA_STREAK_HABIT_ID: habit_id},
        )
        return StreakEngine.build_record(
            user_id,
            habit_id,
            LedgerEngine.completion_dates(completions),  # type: ignore[arg-type]
            self._today(),
            existing[const.DATA_ID] if existing else "",
        )

    async def _async_recompute(self, user_id: str, habit_id: str) -> StreakData:
        record: dict[str, Any] = dict(await self._async_build(user_id, habit_id))
        if not record[const.DATA_ID]:
            del record[const.DATA_ID]
        stored = await self.store.async_upsert(
            const.TABLE_HABIT_STREAKS,
            record,
            on_conflict=(const.DATA_USER_ID, const.DATA_STREAK_HABIT_ID),
        )
        const.LOGGER.debug(
            "Streak for habit %s: current=%s longest=%s",
            habit_id,
            stored[const.DATA_STREAK_CURRENT],
            stored[const.DATA_STREAK_LONGEST],
        )
        return stored  # type: ignore[return-value]

    async def _async_refresh_all(self, user_id: str) -> list[StreakData]:
        habits = await self.store.async_select(
            const.TABLE_HABITS, eq={const.DATA_USER_ID: user_id}
        )
        return [
            await self._async_recompute(user_id, habit[const.DATA_ID])
            for habit in habits
        ]

    async def _async_records(self, user_id: str) -> list[StreakData]:
        return await self.store.async_select(
            const.TABLE_HABIT_STREAKS, eq={const.DATA_USER_ID: user_id}
        )  # type: ignore[return-value]

    async def _async_summary(self, user_id: str) -> StreakResult:
        return StreakEngine.summarize(await self._async_records(user_id))
