"""Type definitions for LifeTrack data structures.

TypedDict is used for rows whose keys are fixed at design time (habits,
completions, streak records, tasks, stats, achievements, journal entries and
configuration). Store filters and partial updates, whose keys are chosen at
runtime, stay as ``dict[str, Any]``.

IMPORTANT: This file must NOT import from managers or the coordinator to avoid
circular dependencies. Only import from typing.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation lives in
schemas.py (voluptuous).
"""

from collections.abc import Callable
from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str  # Opaque authenticated user id
HabitId = str  # UUID string
TaskId = str  # UUID string
SubtaskId = str  # UUID string
ISODatetime = str  # ISO 8601 datetime string "2024-01-15T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2024-01-15"

LevelCurve = Callable[[int], int]  # xp_for_level(level) -> cumulative XP


# =============================================================================
# Habit Types
# =============================================================================


class FrequencyPolicy(TypedDict):
    """How often a habit is meant to be performed.

    Only the field matching ``type`` is required: ``days_per_week`` for weekly,
    ``days`` (0=Monday..6=Sunday) for specific_days, ``times_per_month`` for
    monthly. The engine stores and echoes these; streaks ignore them.
    """

    type: str
    days_per_week: NotRequired[int]
    days: NotRequired[list[int]]
    times_per_month: NotRequired[int]


class TrackingPolicy(TypedDict):
    """Boolean habits record value 1; quantitative ones a magnitude."""

    type: str
    target: NotRequired[float]
    unit: NotRequired[str]


class HabitData(TypedDict):
    """A habit row."""

    id: HabitId
    user_id: UserId
    title: str
    description: NotRequired[str | None]
    area_id: NotRequired[str | None]
    project_id: NotRequired[str | None]
    notebook_id: NotRequired[str | None]
    frequency: FrequencyPolicy
    tracking: TrackingPolicy
    color: str
    icon: NotRequired[str | None]
    reminder_enabled: NotRequired[bool]
    reminder_time: NotRequired[str | None]
    order: int
    archived_at: ISODatetime | None
    created_at: ISODatetime


class CompletionData(TypedDict):
    """A ledger row. (habit_id, date) is the natural key."""

    id: str
    user_id: UserId
    habit_id: HabitId
    date: ISODate
    value: float
    completed_at: ISODatetime


class ToggleResult(TypedDict):
    """Result of CompletionManager.async_toggle()."""

    added: bool
    completion: NotRequired[CompletionData]


class StreakResult(TypedDict):
    """Output of StreakEngine.compute_streak()."""

    current: int
    longest: int


class StreakData(TypedDict):
    """Materialized streak cache, one per (user, habit)."""

    id: str
    user_id: UserId
    habit_id: HabitId
    current_streak: int
    longest_streak: int
    last_completed_date: ISODate | None


# =============================================================================
# Task Types
# =============================================================================


class RecurrencePolicy(TypedDict):
    """A task's rule for generating its next occurrence."""

    type: str
    interval: int
    end_date: NotRequired[ISODate | None]


class SubtaskData(TypedDict):
    """An ordered child of a task."""

    id: SubtaskId
    user_id: UserId
    task_id: TaskId
    title: str
    done: bool
    order: int
    created_at: ISODatetime


class TaskData(TypedDict):
    """A task row.

    ``subtasks`` is never stored on the row itself; managers attach it when
    returning a task to callers.
    """

    id: TaskId
    user_id: UserId
    title: str
    description: NotRequired[str | None]
    area_id: NotRequired[str | None]
    project_id: NotRequired[str | None]
    notebook_id: NotRequired[str | None]
    due_date: ISODate | None
    priority: str
    status: str
    tags: list[str]
    recurrence: RecurrencePolicy | None
    recurrence_source_id: NotRequired[TaskId | None]
    recurrence_advanced_at: NotRequired[ISODatetime | None]
    estimated_minutes: NotRequired[int | None]
    linked_transaction_id: NotRequired[str | None]
    order: int
    completed_at: ISODatetime | None
    created_at: ISODatetime
    subtasks: NotRequired[list[SubtaskData]]


# =============================================================================
# Gamification Types
# =============================================================================


class AchievementRule(TypedDict):
    """One entry of the externally supplied achievement rule table."""

    type: str
    requirement_kind: str
    target_value: int
    xp_reward: int


class AchievementData(TypedDict):
    """A recorded unlock. (user_id, type) is unique."""

    id: str
    user_id: UserId
    type: str
    unlocked_at: ISODatetime
    data: NotRequired[dict[str, Any]]


class XpEventData(TypedDict):
    """Append-only XP journal entry. (user_id, event_key) is unique."""

    id: str
    user_id: UserId
    event_key: str
    source: str
    reference_id: str
    amount: int
    created_at: ISODatetime


class UserStatsData(TypedDict):
    """Singleton per user, derived from the XP journal and streak records."""

    user_id: UserId
    total_xp: int
    level: int
    habits_completed: int
    tasks_completed: int
    current_streak: int
    longest_streak: int
    updated_at: ISODatetime


class XpProgress(TypedDict):
    """Output of GamificationEngine.get_xp_progress()."""

    level: int
    total_xp: int
    current_level_xp: int
    next_level_xp: int
    xp_into_level: int
    xp_remaining: int
    progress_percent: int


class EvaluationContext(TypedDict):
    """Everything the engine needs to evaluate achievement rules.

    Built by GamificationManager; the engine never reads the store.
    """

    stats: UserStatsData
    unlocked_types: set[str]
    perfect_day: bool
    perfect_week: bool


# =============================================================================
# Configuration
# =============================================================================


class EngineConfig(TypedDict):
    """Validated engine configuration (see schemas.CONFIG_SCHEMA)."""

    xp_habit_completion: int
    xp_task_completion: int
    level_curve: LevelCurve
    achievement_rules: list[AchievementRule]
    copy_linked_transaction: bool
    copy_subtasks_on_recurrence: bool
    recurrence_anchor: str
    time_zone: str
