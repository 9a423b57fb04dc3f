"""Base manager class and event dispatcher for LifeTrack managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import inspect
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.task_engine import TaskEngine
from ..exceptions import NotAuthenticatedError, NotFoundError, PartialBulkFailureError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import date

    from ..coordinator import LifeTrackCoordinator
    from ..store import LifeTrackStore
    from ..type_defs import EngineConfig


class EventDispatcher:
    """Instance-scoped manager-to-manager events.

    Listeners run one after another in subscription order and are awaited by
    the emitter, so every stage of a mutation finishes before the emitting
    call returns. A listener exception propagates to the emitter and aborts
    the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[[dict[str, Any]], Any]]] = {}

    def connect(
        self, suffix: str, callback: Callable[[dict[str, Any]], Any]
    ) -> Callable[[], None]:
        """Subscribe callback (sync or async) and return an unsubscribe function."""
        self._listeners.setdefault(suffix, []).append(callback)

        def _unsubscribe() -> None:
            listeners = self._listeners.get(suffix, [])
            if callback in listeners:
                listeners.remove(callback)

        return _unsubscribe

    async def async_send(self, suffix: str, payload: dict[str, Any]) -> None:
        """Deliver payload to every listener of suffix, in order."""
        for callback in list(self._listeners.get(suffix, [])):
            result = callback(payload)
            if inspect.isawaitable(result):
                await result


class BaseManager(ABC):
    """Base class for all LifeTrack managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (async_emit)
    - Instance-scoped event listening (listen)
    - Authenticated user lookup, "today" and "now" from the coordinator

    Data Persistence:
    - Public mutations run through coordinator.async_run_mutation() so that
      every stage shares one store transaction
    - Event handlers run inside the emitter's unit and must call the
      internal ``_async_*`` methods, never the public wrapped ones

    Subclasses must implement:
    - async_setup(): Subscribe to events, initialize state
    """

    def __init__(self, coordinator: LifeTrackCoordinator) -> None:
        """Initialize manager.

        Args:
            coordinator: Parent coordinator owning the store and config
        """
        self.coordinator = coordinator
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def store(self) -> LifeTrackStore:
        """The coordinator's store."""
        return self.coordinator.store

    @property
    def config(self) -> EngineConfig:
        """The validated engine configuration."""
        return self.coordinator.config

    async def async_emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to other managers and wait for them.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_TASK_COMPLETED)
            **payload: Event data dict passed to listeners

        Example:
            await self.async_emit(
                const.SIGNAL_SUFFIX_COMPLETION_CHANGED,
                user_id=user_id,
                habit_id=habit_id,
                date="2024-01-15",
                added=True,
            )
        """
        const.LOGGER.debug(
            "Emitting event '%s' with payload keys: %s", suffix, list(payload.keys())
        )
        await self.coordinator.events.async_send(suffix, payload)

    def listen(self, suffix: str, callback: Callable[..., Any]) -> None:
        """Subscribe to instance-scoped event; removed by async_unload()."""
        self._unsubscribers.append(self.coordinator.events.connect(suffix, callback))
        const.LOGGER.debug(
            "Manager %s listening to event '%s'", self.__class__.__name__, suffix
        )

    async def async_unload(self) -> None:
        """Remove every subscription made through listen()."""
        while self._unsubscribers:
            self._unsubscribers.pop()()

    # -------------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------------

    def _require_user_id(self) -> str:
        """Return the authenticated user id.

        Raises:
            NotAuthenticatedError: If the store has no user.
        """
        user_id = self.store.get_user_id()
        if not user_id:
            raise NotAuthenticatedError
        return user_id

    def _today(self) -> date:
        return self.coordinator.today()

    def _now_iso(self) -> str:
        return self.coordinator.now_iso()

    async def _async_get_owned(
        self, table: str, entity_id: str, user_id: str, label: str
    ) -> dict[str, Any]:
        """Fetch a row owned by user_id or raise NotFoundError."""
        row = await self.store.async_select_one(
            table, eq={const.DATA_ID: entity_id, const.DATA_USER_ID: user_id}
        )
        if row is None:
            const.LOGGER.error("%s '%s' not found", label, entity_id)
            raise NotFoundError(label, entity_id)
        return row

    async def _async_apply_order(
        self,
        table: str,
        user_id: str,
        ordered_ids: list[str],
        existing_ids: Iterable[str],
    ) -> tuple[list[str], list[str]]:
        """Write positions 0..n-1 for the known ids.

        Returns:
            (applied ids, unknown ids)
        """
        positions, missing = TaskEngine.plan_reorder(ordered_ids, existing_ids)
        for item_id, position in positions.items():
            await self.store.async_update(
                table,
                {const.DATA_ORDER: position},
                eq={const.DATA_ID: item_id, const.DATA_USER_ID: user_id},
            )
        return list(positions), missing

    @staticmethod
    def _raise_partial(missing: list[str], applied: list[str], label: str) -> None:
        """Raise PartialBulkFailureError when any id was unknown."""
        if not missing:
            return
        const.LOGGER.warning("%s skipped unknown ids: %s", label, missing)
        raise PartialBulkFailureError(
            missing,
            applied,
            {item_id: const.TRANS_KEY_ERROR_NOT_FOUND for item_id in missing},
        )

    @abstractmethod
    async def async_setup(self) -> None:
        """Set up the manager (subscribe to events, initialize state).

        Called once during coordinator initialization.
        Subclasses should subscribe to events here using self.listen().
        """
