"""Shared fixtures for LifeTrack tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from lifetrack import const
from lifetrack.coordinator import LifeTrackCoordinator
from lifetrack.store import MemoryStore

TEST_USER_ID = "user-1"

# 2024-01-15 12:00 UTC, a Monday
TEST_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        """Move forward by a timedelta given as keyword arguments."""
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at TEST_NOW."""
    return FrozenClock(TEST_NOW)


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store signed in as TEST_USER_ID."""
    return MemoryStore(user_id=TEST_USER_ID)


@pytest.fixture
def engine_config() -> dict[str, Any]:
    """Small, explicit game balance; modules override when they need rules."""
    return {
        const.CONF_XP_HABIT_COMPLETION: 10,
        const.CONF_XP_TASK_COMPLETION: 15,
        const.CONF_LEVEL_THRESHOLDS: [0, 100, 250, 500],
        const.CONF_ACHIEVEMENT_RULES: [],
    }


@pytest.fixture
async def coordinator(
    store: MemoryStore, engine_config: dict[str, Any], clock: FrozenClock
) -> Any:
    """Set-up coordinator over the in-memory store."""
    coord = LifeTrackCoordinator(store, engine_config, clock=clock)
    await coord.async_setup()
    yield coord
    await coord.async_unload()


def make_habit_payload(title: str = "Meditate", **overrides: Any) -> dict[str, Any]:
    """Minimal valid habit payload."""
    return {const.DATA_HABIT_TITLE: title, **overrides}


def make_task_payload(title: str = "Pay rent", **overrides: Any) -> dict[str, Any]:
    """Minimal valid task payload."""
    return {const.DATA_TASK_TITLE: title, **overrides}
