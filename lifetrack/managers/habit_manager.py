"""Habit Manager - Habit catalogue CRUD, archiving and ordering.

Habits own their completions and streak record; deleting a habit cascades to
both, after which the user's streak summary and stats are refreshed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.task_engine import TaskEngine
from ..schemas import HABIT_CREATE_SCHEMA, HABIT_UPDATE_SCHEMA, validate
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import HabitData


class HabitManager(BaseManager):
    """Manager for the habit catalogue.

    Responsibilities:
    - Create/update/archive/delete habits for the authenticated user
    - Keep a zeroed StreakRecord alongside every new habit
    - Bulk reordering with partial-failure reporting

    NOT responsible for:
    - Completions (handled by CompletionManager)
    - Streak computation (handled by StreakManager)
    """

    async def async_setup(self) -> None:
        """Nothing to subscribe to; habits only emit."""

    # =========================================================================
    # Queries
    # =========================================================================

    async def async_get(self, habit_id: str) -> HabitData:
        """Return a habit.

        Raises:
            NotAuthenticatedError: No user signed in.
            NotFoundError: Habit does not exist for this user.
        """
        user_id = self._require_user_id()
        return await self._async_get_owned(
            const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
        )  # type: ignore[return-value]

    async def async_list(self, include_archived: bool = False) -> list[HabitData]:
        """Return the user's habits ordered by position."""
        user_id = self._require_user_id()
        rows = await self.store.async_select(
            const.TABLE_HABITS,
            eq={const.DATA_USER_ID: user_id},
            order_by=const.DATA_ORDER,
        )
        if not include_archived:
            rows = [r for r in rows if r.get(const.DATA_HABIT_ARCHIVED_AT) is None]
        return rows  # type: ignore[return-value]

    # =========================================================================
    # Mutations
    # =========================================================================

    async def async_create(self, payload: Mapping[str, Any]) -> HabitData:
        """Create a habit after the current last position.

        Raises:
            InvalidInputError: Payload failed validation (nothing written).
        """
        data: dict[str, Any] = validate(HABIT_CREATE_SCHEMA, dict(payload))
        user_id = self._require_user_id()

        async def _unit() -> HabitData:
            existing = await self.store.async_select(
                const.TABLE_HABITS, eq={const.DATA_USER_ID: user_id}
            )
            now_iso = self._now_iso()
            habit = await self.store.async_insert(
                const.TABLE_HABITS,
                {
                    **data,
                    const.DATA_USER_ID: user_id,
                    const.DATA_ORDER: TaskEngine.next_order(existing),
                    const.DATA_HABIT_ARCHIVED_AT: None,
                    const.DATA_CREATED_AT: now_iso,
                },
            )
            await self.store.async_upsert(
                const.TABLE_HABIT_STREAKS,
                {
                    const.DATA_USER_ID: user_id,
                    const.DATA_STREAK_HABIT_ID: habit[const.DATA_ID],
                    const.DATA_STREAK_CURRENT: 0,
                    const.DATA_STREAK_LONGEST: 0,
                    const.DATA_STREAK_LAST_COMPLETED_DATE: None,
                },
                on_conflict=(const.DATA_USER_ID, const.DATA_STREAK_HABIT_ID),
            )
            const.LOGGER.debug(
                "Created habit '%s' (%s)",
                habit[const.DATA_HABIT_TITLE],
                habit[const.DATA_ID],
            )
            return habit  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("habit_create", _unit)

    async def async_update(
        self, habit_id: str, changes: Mapping[str, Any]
    ) -> HabitData:
        """Apply partial changes to a habit."""
        data: dict[str, Any] = validate(HABIT_UPDATE_SCHEMA, dict(changes))
        user_id = self._require_user_id()

        async def _unit() -> HabitData:
            habit = await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            if not data:
                return habit  # type: ignore[return-value]
            rows = await self.store.async_update(
                const.TABLE_HABITS,
                data,
                eq={const.DATA_ID: habit_id, const.DATA_USER_ID: user_id},
            )
            return rows[0]  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("habit_update", _unit)

    async def async_archive(self, habit_id: str) -> HabitData:
        """Hide a habit from active lists without touching its history."""
        return await self._async_set_archived(habit_id, archived=True)

    async def async_unarchive(self, habit_id: str) -> HabitData:
        """Restore an archived habit."""
        return await self._async_set_archived(habit_id, archived=False)

    async def async_delete(self, habit_id: str) -> None:
        """Delete a habit with its completions and streak record.

        XP already granted for its completions is kept.
        """
        user_id = self._require_user_id()

        async def _unit() -> None:
            await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            await self.store.async_delete(
                const.TABLE_HABITS,
                eq={const.DATA_ID: habit_id, const.DATA_USER_ID: user_id},
            )
            const.LOGGER.debug("Deleted habit %s", habit_id)
            await self.async_emit(
                const.SIGNAL_SUFFIX_HABIT_DELETED, user_id=user_id, habit_id=habit_id
            )

        await self.coordinator.async_run_mutation("habit_delete", _unit)

    async def async_reorder(self, ordered_ids: list[str]) -> None:
        """Assign positions 0..n-1 following ordered_ids.

        Raises:
            PartialBulkFailureError: Some ids are unknown; all others applied.
        """
        user_id = self._require_user_id()

        async def _unit() -> tuple[list[str], list[str]]:
            habits = await self.store.async_select(
                const.TABLE_HABITS, eq={const.DATA_USER_ID: user_id}
            )
            return await self._async_apply_order(
                const.TABLE_HABITS,
                user_id,
                ordered_ids,
                (h[const.DATA_ID] for h in habits),
            )

        applied, missing = await self.coordinator.async_run_mutation(
            "habit_reorder", _unit
        )
        self._raise_partial(missing, applied, "Habit reorder")

    async def _async_set_archived(self, habit_id: str, *, archived: bool) -> HabitData:
        user_id = self._require_user_id()

        async def _unit() -> HabitData:
            await self._async_get_owned(
                const.TABLE_HABITS, habit_id, user_id, const.LABEL_HABIT
            )
            rows = await self.store.async_update(
                const.TABLE_HABITS,
                {const.DATA_HABIT_ARCHIVED_AT: self._now_iso() if archived else None},
                eq={const.DATA_ID: habit_id, const.DATA_USER_ID: user_id},
            )
            # The active-habit set feeds perfect-day evaluation
            await self.async_emit(
                const.SIGNAL_SUFFIX_HABIT_ARCHIVED,
                user_id=user_id,
                habit_id=habit_id,
                archived=archived,
            )
            return rows[0]  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("habit_archive", _unit)
