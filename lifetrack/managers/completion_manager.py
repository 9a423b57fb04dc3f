"""Completion Manager - The per-habit completion ledger.

Owns the ``habit_completions`` table: at most one row per (habit, date).
Every successful mutation emits COMPLETION_CHANGED inside the same store
transaction; StreakManager and GamificationManager recompute from the full
ledger in response, in that order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.ledger_engine import LEDGER_ACTION_ADD, TOGGLE_VALUE, LedgerEngine
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import date

    from ..type_defs import CompletionData, ToggleResult


class CompletionManager(BaseManager):
    """Manager for the completion ledger.

    Responsibilities:
    - toggle / set value / remove completions for a (habit, date)
    - Input validation before any store write
    - Emitting COMPLETION_CHANGED so derived state is recomputed

    NOT responsible for:
    - Streaks (StreakManager) or XP (GamificationManager)
    """

    async def async_setup(self) -> None:
        """Nothing to subscribe to; the ledger is the source of truth."""

    # =========================================================================
    # Queries
    # =========================================================================

    async def async_get(
        self, habit_id: str, completion_date: str | date
    ) -> CompletionData | None:
        """Return the completion for (habit, date), or None."""
        day = LedgerEngine.normalize_date(completion_date)
        user_id = self._require_user_id()
        return await self._async_find(user_id, habit_id, day)  # type: ignore[return-value]

    async def async_list(
        self,
        habit_id: str,
        start: str | date | None = None,
        end: str | date | None = None,
    ) -> list[CompletionData]:
        """Return a habit's completions ordered by date, optionally bounded.

        Both bounds are inclusive.
        """
        first = LedgerEngine.normalize_date(start) if start is not None else None
        last = LedgerEngine.normalize_date(end) if end is not None else None
        user_id = self._require_user_id()
        await self._async_get_owned(
            const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
        )
        rows = await self.store.async_select(
            const.TABLE_HABIT_COMPLETIONS,
            eq={const.DATA_COMPLETION_HABIT_ID: habit_id, const.DATA_USER_ID: user_id},
            order_by=const.DATA_COMPLETION_DATE,
        )
        return [
            row
            for row in rows
            if (first is None or row[const.DATA_COMPLETION_DATE] >= first)
            and (last is None or row[const.DATA_COMPLETION_DATE] <= last)
        ]  # type: ignore[return-value]

    # =========================================================================
    # Mutations
    # =========================================================================

    async def async_toggle(
        self, habit_id: str, completion_date: str | date
    ) -> ToggleResult:
        """Add a value-1 completion, or remove the existing one.

        Calling twice for the same (habit, date) restores the original state.

        Returns:
            {"added": True, "completion": row} or {"added": False}
        """
        day = LedgerEngine.normalize_date(completion_date)
        user_id = self._require_user_id()

        async def _unit() -> ToggleResult:
            await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            existing = await self._async_find(user_id, habit_id, day)

            if LedgerEngine.plan_toggle(existing) == LEDGER_ACTION_ADD:
                completion = await self.store.async_insert(
                    const.TABLE_HABIT_COMPLETIONS,
                    LedgerEngine.build_completion(
                        user_id, habit_id, day, TOGGLE_VALUE, self._now_iso()
                    ),
                )
                await self._async_changed(user_id, habit_id, day, added=True)
                return {"added": True, "completion": completion}  # type: ignore[typeddict-item]

            await self._async_delete(user_id, habit_id, day)
            await self._async_changed(user_id, habit_id, day, added=False)
            return {"added": False}

        return await self.coordinator.async_run_mutation("completion_toggle", _unit)

    async def async_set_value(
        self, habit_id: str, completion_date: str | date, value: Any
    ) -> CompletionData:
        """Upsert a completion with an explicit magnitude.

        Raises:
            InvalidInputError: value <= 0, not a number, or malformed date.
        """
        day = LedgerEngine.normalize_date(completion_date)
        magnitude = LedgerEngine.validate_value(value)
        user_id = self._require_user_id()

        async def _unit() -> CompletionData:
            await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            existing = await self._async_find(user_id, habit_id, day)
            row: dict[str, Any] = dict(
                LedgerEngine.build_completion(
                    user_id, habit_id, day, magnitude, self._now_iso()
                )
            )
            if existing is not None:
                row[const.DATA_ID] = existing[const.DATA_ID]
                row[const.DATA_COMPLETION_COMPLETED_AT] = existing[
                    const.DATA_COMPLETION_COMPLETED_AT
                ]
            completion = await self.store.async_upsert(
                const.TABLE_HABIT_COMPLETIONS,
                row,
                on_conflict=(const.DATA_COMPLETION_HABIT_ID, const.DATA_COMPLETION_DATE),
            )
            await self._async_changed(user_id, habit_id, day, added=True)
            return completion  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("completion_set_value", _unit)

    async def async_remove(self, habit_id: str, completion_date: str | date) -> bool:
        """Delete the completion for (habit, date) if present.

        Returns:
            True if a row was removed; False (not an error) if there was none.
        """
        day = LedgerEngine.normalize_date(completion_date)
        user_id = self._require_user_id()

        async def _unit() -> bool:
            deleted = await self._async_delete(user_id, habit_id, day)
            if not deleted:
                const.LOGGER.debug(
                    "No completion to remove for habit %s on %s", habit_id, day
                )
                return False
            await self._async_changed(user_id, habit_id, day, added=False)
            return True

        return await self.coordinator.async_run_mutation("completion_remove", _unit)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _async_find(
        self, user_id: str, habit_id: str, day: str
    ) -> dict[str, Any] | None:
        return await self.store.async_select_one(
            const.TABLE_HABIT_COMPLETIONS,
            eq={
                const.DATA_USER_ID: user_id,
                const.DATA_COMPLETION_HABIT_ID: habit_id,
                const.DATA_COMPLETION_DATE: day,
            },
        )

    async def _async_delete(self, user_id: str, habit_id: str, day: str) -> int:
        return await self.store.async_delete(
            const.TABLE_HABIT_COMPLETIONS,
            eq={
                const.DATA_USER_ID: user_id,
                const.DATA_COMPLETION_HABIT_ID: habit_id,
                const.DATA_COMPLETION_DATE: day,
            },
        )

    async def _async_changed(
        self, user_id: str, habit_id: str, day: str, *, added: bool
    ) -> None:
        const.LOGGER.debug(
            "Ledger %s for habit %s on %s", "add" if added else "remove", habit_id, day
        )
        await self.async_emit(
            const.SIGNAL_SUFFIX_COMPLETION_CHANGED,
            user_id=user_id,
            habit_id=habit_id,
            date=day,
            added=added,
        )
