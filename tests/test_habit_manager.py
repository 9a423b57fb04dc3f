"""Tests for HabitManager - catalogue CRUD, archive, delete cascade, reorder."""

from __future__ import annotations

import pytest

from lifetrack import const
from lifetrack.coordinator import LifeTrackCoordinator
from lifetrack.exceptions import (
    InvalidInputError,
    NotFoundError,
    PartialBulkFailureError,
)
from lifetrack.store import MemoryStore

from tests.conftest import make_habit_payload


class TestCreate:
    """Test habit creation."""

    async def test_defaults_and_zero_streak(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore
    ) -> None:
        habit = await coordinator.habits.async_create(make_habit_payload())

        assert habit[const.DATA_HABIT_FREQUENCY] == {
            const.DATA_FREQUENCY_TYPE: const.HABIT_FREQUENCY_DAILY
        }
        assert habit[const.DATA_HABIT_COLOR] == const.DEFAULT_HABIT_COLOR
        assert habit[const.DATA_ORDER] == 0
        streaks = store.tables[const.TABLE_HABIT_STREAKS]
        assert len(streaks) == 1
        assert streaks[0][const.DATA_STREAK_CURRENT] == 0

    async def test_appended_after_last(self, coordinator: LifeTrackCoordinator) -> None:
        await coordinator.habits.async_create(make_habit_payload("A"))
        second = await coordinator.habits.async_create(make_habit_payload("B"))
        assert second[const.DATA_ORDER] == 1

    async def test_weekly_requires_days_per_week(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore
    ) -> None:
        payload = make_habit_payload(
            frequency={const.DATA_FREQUENCY_TYPE: const.HABIT_FREQUENCY_WEEKLY}
        )
        with pytest.raises(InvalidInputError) as err:
            await coordinator.habits.async_create(payload)
        assert err.value.field.startswith(const.DATA_HABIT_FREQUENCY)
        assert store.tables[const.TABLE_HABITS] == []

    async def test_missing_title(self, coordinator: LifeTrackCoordinator) -> None:
        with pytest.raises(InvalidInputError) as err:
            await coordinator.habits.async_create({})
        assert err.value.field == const.DATA_HABIT_TITLE


class TestUpdateArchive:
    """Test update and archive visibility."""

    async def test_update(self, coordinator: LifeTrackCoordinator) -> None:
        habit = await coordinator.habits.async_create(make_habit_payload())
        updated = await coordinator.habits.async_update(
            habit[const.DATA_ID], {const.DATA_HABIT_TITLE: "Stretch"}
        )
        assert updated[const.DATA_HABIT_TITLE] == "Stretch"

    async def test_update_unknown(self, coordinator: LifeTrackCoordinator) -> None:
        with pytest.raises(NotFoundError):
            await coordinator.habits.async_update("nope", {const.DATA_HABIT_TITLE: "x"})

    async def test_archive_hides_from_list(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        habit = await coordinator.habits.async_create(make_habit_payload())
        await coordinator.habits.async_archive(habit[const.DATA_ID])

        assert await coordinator.habits.async_list() == []
        assert len(await coordinator.habits.async_list(include_archived=True)) == 1

        await coordinator.habits.async_unarchive(habit[const.DATA_ID])
        assert len(await coordinator.habits.async_list()) == 1


class TestDelete:
    """Test delete cascade and stats refresh."""

    async def test_cascade(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore
    ) -> None:
        habit = await coordinator.habits.async_create(make_habit_payload())
        habit_id = habit[const.DATA_ID]
        for day in ("2024-01-14", "2024-01-15"):
            await coordinator.completions.async_toggle(habit_id, day)

        await coordinator.habits.async_delete(habit_id)

        tables = store.tables
        assert tables[const.TABLE_HABITS] == []
        assert tables[const.TABLE_HABIT_COMPLETIONS] == []
        assert tables[const.TABLE_HABIT_STREAKS] == []

        stats = await coordinator.gamification.async_get_user_stats()
        assert stats[const.DATA_STATS_CURRENT_STREAK] == 0
        assert stats[const.DATA_STATS_LONGEST_STREAK] == 0
        # XP already granted stays
        assert stats[const.DATA_STATS_HABITS_COMPLETED] == 2


class TestReorder:
    """Test bulk reorder with partial failure."""

    async def test_partial_failure_applies_known_ids(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        a = await coordinator.habits.async_create(make_habit_payload("A"))
        b = await coordinator.habits.async_create(make_habit_payload("B"))

        with pytest.raises(PartialBulkFailureError) as err:
            await coordinator.habits.async_reorder(
                [b[const.DATA_ID], "ghost", a[const.DATA_ID]]
            )

        assert err.value.failed_ids == ["ghost"]
        assert set(err.value.applied_ids) == {a[const.DATA_ID], b[const.DATA_ID]}
        titles = [h[const.DATA_HABIT_TITLE] for h in await coordinator.habits.async_list()]
        assert titles == ["B", "A"]
