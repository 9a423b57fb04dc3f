"""Tests for GamificationManager - stats, achievements and events."""

from __future__ import annotations

from typing import Any

import pytest

from lifetrack import const
from lifetrack.coordinator import LifeTrackCoordinator
from lifetrack.store import MemoryStore

from tests.conftest import make_habit_payload, make_task_payload

RULES = [
    {"type": "first_habit", "requirement_kind": const.REQUIREMENT_FIRST_HABIT, "xp_reward": 25},
    {"type": "first_task", "requirement_kind": const.REQUIREMENT_FIRST_TASK, "xp_reward": 25},
    {"type": "streak_3", "requirement_kind": const.REQUIREMENT_STREAK, "target_value": 3},
    {"type": "perfect_day", "requirement_kind": const.REQUIREMENT_PERFECT_DAY, "xp_reward": 100},
    {"type": "level_3", "requirement_kind": const.REQUIREMENT_LEVEL, "target_value": 3},
]  # fmt: skip


@pytest.fixture
def engine_config(engine_config: dict[str, Any]) -> dict[str, Any]:
    return {**engine_config, const.CONF_ACHIEVEMENT_RULES: RULES}


@pytest.fixture
def received(coordinator: LifeTrackCoordinator) -> dict[str, list[dict[str, Any]]]:
    """Collect ACHIEVEMENT_UNLOCKED and LEVEL_CHANGED payloads."""
    events: dict[str, list[dict[str, Any]]] = {"achievements": [], "levels": []}
    coordinator.events.connect(
        const.SIGNAL_SUFFIX_ACHIEVEMENT_UNLOCKED, events["achievements"].append
    )
    coordinator.events.connect(const.SIGNAL_SUFFIX_LEVEL_CHANGED, events["levels"].append)
    return events


async def unlocked_types(coordinator: LifeTrackCoordinator) -> list[str]:
    return [
        a[const.DATA_ACHIEVEMENT_TYPE]
        for a in await coordinator.gamification.async_list_achievements()
    ]


class TestStats:
    """Test stats queries."""

    async def test_new_user_is_zeroed(self, coordinator: LifeTrackCoordinator) -> None:
        stats = await coordinator.gamification.async_get_user_stats()
        assert stats[const.DATA_STATS_TOTAL_XP] == 0
        assert stats[const.DATA_STATS_LEVEL] == 1

    async def test_xp_progress(self, coordinator: LifeTrackCoordinator) -> None:
        task = await coordinator.tasks.async_create(make_task_payload())
        await coordinator.tasks.async_set_status(
            task[const.DATA_ID], const.TASK_STATUS_DONE
        )

        # 15 task XP + 25 first_task reward
        progress = await coordinator.gamification.async_get_xp_progress()
        assert progress["total_xp"] == 40
        assert progress["level"] == 1
        assert progress["xp_remaining"] == 60
        assert progress["progress_percent"] == 40


class TestAchievements:
    """Test achievement unlocking through the full pipeline."""

    async def test_first_completion_unlocks(
        self,
        coordinator: LifeTrackCoordinator,
        received: dict[str, list[dict[str, Any]]],
    ) -> None:
        """One habit done today: first_habit and perfect_day, with rewards."""
        habit = await coordinator.habits.async_create(make_habit_payload())
        await coordinator.completions.async_toggle(habit[const.DATA_ID], "2024-01-15")

        assert await unlocked_types(coordinator) == ["first_habit", "perfect_day"]
        assert await coordinator.gamification.async_has_achievement("perfect_day")
        assert not await coordinator.gamification.async_has_achievement("streak_3")

        stats = await coordinator.gamification.async_get_user_stats()
        assert stats[const.DATA_STATS_TOTAL_XP] == 135
        assert stats[const.DATA_STATS_LEVEL] == 2

        assert [e["achievement_type"] for e in received["achievements"]] == [
            "first_habit",
            "perfect_day",
        ]
        assert received["levels"] == [
            {"user_id": "user-1", "old_level": 1, "new_level": 2}
        ]

    async def test_unlock_recorded_once(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore
    ) -> None:
        """Further qualifying events never add a second record for a type."""
        habit = await coordinator.habits.async_create(make_habit_payload())
        habit_id = habit[const.DATA_ID]
        for day in ("2024-01-13", "2024-01-14", "2024-01-15"):
            await coordinator.completions.async_toggle(habit_id, day)
        await coordinator.completions.async_toggle(habit_id, "2024-01-15")
        await coordinator.completions.async_toggle(habit_id, "2024-01-15")
        await coordinator.gamification.async_recalculate()

        types = await unlocked_types(coordinator)
        assert sorted(types) == sorted(set(types))
        assert "streak_3" in types
        reward_events = [
            e
            for e in store.tables[const.TABLE_XP_EVENTS]
            if e[const.DATA_XP_SOURCE] == const.XP_SOURCE_ACHIEVEMENT
        ]
        assert len(reward_events) == len(types)

    async def test_perfect_day_needs_every_active_habit(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        first = await coordinator.habits.async_create(make_habit_payload("A"))
        await coordinator.habits.async_create(make_habit_payload("B"))
        await coordinator.completions.async_toggle(first[const.DATA_ID], "2024-01-15")

        assert not await coordinator.gamification.async_has_achievement("perfect_day")

    async def test_archived_habits_do_not_block_perfect_day(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        first = await coordinator.habits.async_create(make_habit_payload("A"))
        second = await coordinator.habits.async_create(make_habit_payload("B"))
        await coordinator.habits.async_archive(second[const.DATA_ID])
        await coordinator.completions.async_toggle(first[const.DATA_ID], "2024-01-15")

        assert await coordinator.gamification.async_has_achievement("perfect_day")

    async def test_archiving_open_habit_completes_perfect_day(
        self,
        coordinator: LifeTrackCoordinator,
        received: dict[str, list[dict[str, Any]]],
    ) -> None:
        """Archiving re-evaluates without waiting for another completion."""
        first = await coordinator.habits.async_create(make_habit_payload("A"))
        second = await coordinator.habits.async_create(make_habit_payload("B"))
        await coordinator.completions.async_toggle(first[const.DATA_ID], "2024-01-15")
        assert not await coordinator.gamification.async_has_achievement("perfect_day")

        await coordinator.habits.async_archive(second[const.DATA_ID])

        assert await coordinator.gamification.async_has_achievement("perfect_day")
        assert received["achievements"][-1]["achievement_type"] == "perfect_day"

    async def test_level_rule_unlocks_at_threshold(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        """A level rule unlocks once accumulated XP crosses the threshold."""
        habit = await coordinator.habits.async_create(make_habit_payload())
        await coordinator.completions.async_toggle(habit[const.DATA_ID], "2024-01-15")
        task = await coordinator.tasks.async_create(make_task_payload())
        await coordinator.tasks.async_set_status(
            task[const.DATA_ID], const.TASK_STATUS_DONE
        )

        # 135 + 15 task + 25 first_task = 175: still level 2
        assert not await coordinator.gamification.async_has_achievement("level_3")

        for n in range(8):
            extra = await coordinator.tasks.async_create(make_task_payload(f"T{n}"))
            await coordinator.tasks.async_set_status(
                extra[const.DATA_ID], const.TASK_STATUS_DONE
            )

        # 175 + 8 * 15 = 295 ≥ 250
        assert await coordinator.gamification.async_has_achievement("level_3")
