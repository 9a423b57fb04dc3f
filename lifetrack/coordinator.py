# File: coordinator.py
"""Coordinator for the LifeTrack engine.

Owns the store, the validated engine configuration, the event dispatcher and
every manager. Callers talk to the managers through the coordinator:

    coordinator = LifeTrackCoordinator(store, {"time_zone": "Europe/Berlin"})
    await coordinator.async_setup()
    await coordinator.completions.async_toggle(habit_id, "2024-01-15")

Every public mutation runs as one unit via ``async_run_mutation()``: the whole
pipeline (write, streak recompute, gamification, recurrence) shares a single
store transaction and either commits completely or rolls back.
"""

from __future__ import annotations

import asyncio
from contextvars import ContextVar
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from . import const
from .config import build_engine_config
from .managers import (
    CompletionManager,
    EventDispatcher,
    GamificationManager,
    HabitManager,
    StreakManager,
    TaskManager,
)
from .utils.dt_utils import dt_now_iso, dt_now_utc, dt_today_local, get_time_zone

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from datetime import date, datetime

    from .managers.base_manager import BaseManager
    from .store import LifeTrackStore

_T = TypeVar("_T")

# Set inside a running unit; nested mutations join it instead of re-locking
_IN_UNIT: ContextVar[bool] = ContextVar("lifetrack_in_unit", default=False)


class LifeTrackCoordinator:
    """Entry point wiring store, configuration and managers together."""

    def __init__(
        self,
        store: LifeTrackStore,
        config: Mapping[str, Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Persistent store boundary
            config: Raw engine settings (validated here)
            clock: Returns the current aware datetime; defaults to UTC now

        Raises:
            InvalidInputError: If config fails validation.
        """
        self.store = store
        self.config = build_engine_config(config)
        self.events = EventDispatcher()
        self._clock = clock or dt_now_utc
        self._time_zone = get_time_zone(self.config[const.CONF_TIME_ZONE])

        # Subscription order matters: streaks recompute before gamification
        self.habits = HabitManager(self)
        self.completions = CompletionManager(self)
        self.streaks = StreakManager(self)
        self.tasks = TaskManager(self)
        self.gamification = GamificationManager(self)

    @property
    def managers(self) -> list[BaseManager]:
        """Managers in setup order."""
        return [
            self.habits,
            self.completions,
            self.streaks,
            self.tasks,
            self.gamification,
        ]

    async def async_setup(self) -> None:
        """Set up every manager (subscribe to events)."""
        for manager in self.managers:
            await manager.async_setup()
        const.LOGGER.debug("LifeTrack coordinator set up")

    async def async_unload(self) -> None:
        """Remove every manager subscription."""
        for manager in self.managers:
            await manager.async_unload()

    # -------------------------------------------------------------------------
    # Clock
    # -------------------------------------------------------------------------

    def today(self) -> date:
        """The user's local calendar date."""
        return dt_today_local(self._clock(), self._time_zone)

    def now_iso(self) -> str:
        """The current instant as a UTC ISO string."""
        return dt_now_iso(self._clock())

    # -------------------------------------------------------------------------
    # Mutation units
    # -------------------------------------------------------------------------

    async def async_run_mutation(
        self, label: str, unit: Callable[[], Awaitable[_T]]
    ) -> _T:
        """Run unit inside one store transaction.

        Called from inside a running unit (e.g. by an event listener), unit
        joins the outer transaction.

        Cancellation: if the caller is cancelled before unit has entered the
        transaction, unit is cancelled and nothing is written. Once unit is
        running it is shielded and allowed to finish (commit or roll back)
        while the caller still sees CancelledError.
        """
        if _IN_UNIT.get():
            return await unit()

        entered = asyncio.Event()

        async def _run() -> _T:
            _IN_UNIT.set(True)
            async with self.store.transaction():
                entered.set()
                return await unit()

        const.LOGGER.debug("Running mutation '%s'", label)
        task = asyncio.create_task(_run(), name=f"{const.DOMAIN}_{label}")
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not entered.is_set():
                task.cancel()
            else:
                const.LOGGER.debug(
                    "Caller of '%s' cancelled; letting the unit finish", label
                )
                task.add_done_callback(partial(_log_detached_result, label))
            raise


def _log_detached_result(label: str, task: asyncio.Task[Any]) -> None:
    """Report the outcome of a unit whose caller went away."""
    if task.cancelled():
        return
    err = task.exception()
    if err is not None:
        const.LOGGER.error(
            "Mutation '%s' failed after its caller was cancelled: %s", label, err
        )
