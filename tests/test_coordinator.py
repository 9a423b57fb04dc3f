"""Tests for LifeTrackCoordinator - mutation units, rollback, cancellation."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import pytest

from lifetrack import const
from lifetrack.coordinator import LifeTrackCoordinator
from lifetrack.exceptions import InvalidInputError
from lifetrack.store import MemoryStore

from tests.conftest import FrozenClock, make_habit_payload


@pytest.fixture
async def habit_id(coordinator: LifeTrackCoordinator) -> str:
    habit = await coordinator.habits.async_create(make_habit_payload())
    return habit[const.DATA_ID]


# =============================================================================
# TEST: CLOCK AND CONFIG
# =============================================================================


class TestClock:
    """Test the user's calendar day."""

    def test_today_in_configured_time_zone(self, store: MemoryStore) -> None:
        """23:30 UTC is already the next day in Berlin."""
        clock = FrozenClock(datetime(2024, 1, 15, 23, 30, tzinfo=UTC))
        coord = LifeTrackCoordinator(
            store, {const.CONF_TIME_ZONE: "Europe/Berlin"}, clock=clock
        )
        assert coord.today().isoformat() == "2024-01-16"
        assert coord.now_iso() == "2024-01-15T23:30:00+00:00"

    def test_invalid_config_rejected(self, store: MemoryStore) -> None:
        with pytest.raises(InvalidInputError):
            LifeTrackCoordinator(store, {const.CONF_XP_HABIT_COMPLETION: -5})


# =============================================================================
# TEST: ATOMIC MUTATIONS
# =============================================================================


class TestMutationUnits:
    """A failing stage rolls back every earlier stage."""

    async def test_listener_failure_rolls_back_ledger(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore, habit_id: str
    ) -> None:
        def _boom(payload: dict[str, Any]) -> None:
            raise RuntimeError("gamification store down")

        coordinator.events.connect(const.SIGNAL_SUFFIX_STREAKS_UPDATED, _boom)
        before = store.tables

        with pytest.raises(RuntimeError, match="gamification store down"):
            await coordinator.completions.async_toggle(habit_id, "2024-01-15")

        assert store.tables == before

    async def test_retry_after_failure_converges(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore, habit_id: str
    ) -> None:
        """Retrying the whole mutation gives the same state as one clean run."""
        failures = [RuntimeError("flaky")]

        def _flaky(payload: dict[str, Any]) -> None:
            if failures:
                raise failures.pop()

        coordinator.events.connect(const.SIGNAL_SUFFIX_STREAKS_UPDATED, _flaky)
        with pytest.raises(RuntimeError):
            await coordinator.completions.async_toggle(habit_id, "2024-01-15")
        await coordinator.completions.async_toggle(habit_id, "2024-01-15")

        tables = store.tables
        assert len(tables[const.TABLE_HABIT_COMPLETIONS]) == 1
        assert len(tables[const.TABLE_XP_EVENTS]) == 1
        assert tables[const.TABLE_HABIT_STREAKS][0][const.DATA_STREAK_CURRENT] == 1

    async def test_nested_mutation_joins_outer_unit(
        self, coordinator: LifeTrackCoordinator
    ) -> None:
        """A unit that calls another public mutation does not deadlock."""

        async def _outer() -> str:
            habit = await coordinator.habits.async_create(make_habit_payload())
            return habit[const.DATA_ID]

        habit_id = await asyncio.wait_for(
            coordinator.async_run_mutation("outer", _outer), timeout=1
        )
        assert (await coordinator.habits.async_get(habit_id))[const.DATA_ID] == habit_id


# =============================================================================
# TEST: CANCELLATION
# =============================================================================


class TestCancellation:
    """Caller cancellation never leaves a half-applied mutation."""

    async def test_cancel_before_unit_starts_writes_nothing(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore, habit_id: str
    ) -> None:
        held = asyncio.Event()
        release = asyncio.Event()

        async def _hold_store() -> None:
            async with store.transaction():
                held.set()
                await release.wait()

        holder = asyncio.create_task(_hold_store())
        await held.wait()

        caller = asyncio.create_task(
            coordinator.completions.async_toggle(habit_id, "2024-01-15")
        )
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        await holder
        await asyncio.sleep(0)

        assert store.tables[const.TABLE_HABIT_COMPLETIONS] == []

    async def test_cancel_mid_unit_lets_it_finish(
        self, coordinator: LifeTrackCoordinator, store: MemoryStore, habit_id: str
    ) -> None:
        reached = asyncio.Event()
        gate = asyncio.Event()

        async def _slow(payload: dict[str, Any]) -> None:
            reached.set()
            await gate.wait()

        coordinator.events.connect(const.SIGNAL_SUFFIX_COMPLETION_CHANGED, _slow)
        caller = asyncio.create_task(
            coordinator.completions.async_toggle(habit_id, "2024-01-15")
        )
        await reached.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        gate.set()
        # Waits for the detached unit to commit and release the store
        async with store.transaction():
            pass

        tables = store.tables
        assert len(tables[const.TABLE_HABIT_COMPLETIONS]) == 1
        assert tables[const.TABLE_HABIT_STREAKS][0][const.DATA_STREAK_CURRENT] == 1
        assert len(tables[const.TABLE_XP_EVENTS]) == 1
