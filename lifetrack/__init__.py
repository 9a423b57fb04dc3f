"""LifeTrack progress and recurrence engine.

Habit completion ledger, streaks, recurring tasks and XP/achievements behind
one coordinator.
"""

from .config import build_engine_config, load_engine_config
from .coordinator import LifeTrackCoordinator
from .exceptions import (
    InvalidInputError,
    LifeTrackError,
    NotAuthenticatedError,
    NotFoundError,
    PartialBulkFailureError,
    StoreError,
)
from .store import JsonFileStore, LifeTrackStore, MemoryStore

__all__ = [
    "InvalidInputError",
    "JsonFileStore",
    "LifeTrackCoordinator",
    "LifeTrackError",
    "LifeTrackStore",
    "MemoryStore",
    "NotAuthenticatedError",
    "NotFoundError",
    "PartialBulkFailureError",
    "StoreError",
    "build_engine_config",
    "load_engine_config",
]
