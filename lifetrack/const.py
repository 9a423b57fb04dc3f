# File: const.py
"""Constants for the LifeTrack progress and recurrence engine.

This file centralizes table names, row keys, status values, requirement kinds,
signal suffixes and default configuration for consistency across the engines,
managers and store.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General Information
# ------------------------------------------------------------------------------------------------
LIFETRACK_TITLE = "LifeTrack"

DOMAIN = "lifetrack"

# Logger
LOGGER = logging.getLogger(__package__)

# Storage and Versioning
STORAGE_VERSION = 1
STORAGE_KEY_VERSION = "version"
STORAGE_KEY_TABLES = "tables"

# ------------------------------------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------------------------------------
TABLE_ACHIEVEMENTS = "achievements"
TABLE_HABIT_COMPLETIONS = "habit_completions"
TABLE_HABIT_STREAKS = "habit_streaks"
TABLE_HABITS = "habits"
TABLE_SUBTASKS = "subtasks"
TABLE_TASKS = "tasks"
TABLE_USER_STATS = "user_stats"
TABLE_XP_EVENTS = "xp_events"

ALL_TABLES = (
    TABLE_HABITS,
    TABLE_HABIT_COMPLETIONS,
    TABLE_HABIT_STREAKS,
    TABLE_TASKS,
    TABLE_SUBTASKS,
    TABLE_USER_STATS,
    TABLE_ACHIEVEMENTS,
    TABLE_XP_EVENTS,
)

# ------------------------------------------------------------------------------------------------
# Common Row Keys
# ------------------------------------------------------------------------------------------------
DATA_CREATED_AT = "created_at"
DATA_ID = "id"
DATA_ORDER = "order"
DATA_USER_ID = "user_id"

# Habits
DATA_HABIT_AREA_ID = "area_id"
DATA_HABIT_ARCHIVED_AT = "archived_at"
DATA_HABIT_COLOR = "color"
DATA_HABIT_DESCRIPTION = "description"
DATA_HABIT_FREQUENCY = "frequency"
DATA_HABIT_ICON = "icon"
DATA_HABIT_NOTEBOOK_ID = "notebook_id"
DATA_HABIT_PROJECT_ID = "project_id"
DATA_HABIT_REMINDER_ENABLED = "reminder_enabled"
DATA_HABIT_REMINDER_TIME = "reminder_time"
DATA_HABIT_TITLE = "title"
DATA_HABIT_TRACKING = "tracking"

# Habit frequency policy (nested under DATA_HABIT_FREQUENCY)
DATA_FREQUENCY_DAYS = "days"
DATA_FREQUENCY_DAYS_PER_WEEK = "days_per_week"
DATA_FREQUENCY_TIMES_PER_MONTH = "times_per_month"
DATA_FREQUENCY_TYPE = "type"

# Habit tracking policy (nested under DATA_HABIT_TRACKING)
DATA_TRACKING_TARGET = "target"
DATA_TRACKING_TYPE = "type"
DATA_TRACKING_UNIT = "unit"

# Habit completions
DATA_COMPLETION_COMPLETED_AT = "completed_at"
DATA_COMPLETION_DATE = "date"
DATA_COMPLETION_HABIT_ID = "habit_id"
DATA_COMPLETION_VALUE = "value"

# Habit streaks
DATA_STREAK_CURRENT = "current_streak"
DATA_STREAK_HABIT_ID = "habit_id"
DATA_STREAK_LAST_COMPLETED_DATE = "last_completed_date"
DATA_STREAK_LONGEST = "longest_streak"

# Tasks
DATA_TASK_AREA_ID = "area_id"
DATA_TASK_COMPLETED_AT = "completed_at"
DATA_TASK_DESCRIPTION = "description"
DATA_TASK_DUE_DATE = "due_date"
DATA_TASK_ESTIMATED_MINUTES = "estimated_minutes"
DATA_TASK_LINKED_TRANSACTION_ID = "linked_transaction_id"
DATA_TASK_NOTEBOOK_ID = "notebook_id"
DATA_TASK_PRIORITY = "priority"
DATA_TASK_PROJECT_ID = "project_id"
DATA_TASK_RECURRENCE = "recurrence"
DATA_TASK_RECURRENCE_ADVANCED_AT = "recurrence_advanced_at"
DATA_TASK_RECURRENCE_SOURCE_ID = "recurrence_source_id"
DATA_TASK_STATUS = "status"
DATA_TASK_SUBTASKS = "subtasks"
DATA_TASK_TAGS = "tags"
DATA_TASK_TITLE = "title"

# Task recurrence policy (nested under DATA_TASK_RECURRENCE)
DATA_RECURRENCE_END_DATE = "end_date"
DATA_RECURRENCE_INTERVAL = "interval"
DATA_RECURRENCE_TYPE = "type"

# Subtasks
DATA_SUBTASK_DONE = "done"
DATA_SUBTASK_TASK_ID = "task_id"
DATA_SUBTASK_TITLE = "title"

# User stats
DATA_STATS_CURRENT_STREAK = "current_streak"
DATA_STATS_HABITS_COMPLETED = "habits_completed"
DATA_STATS_LEVEL = "level"
DATA_STATS_LONGEST_STREAK = "longest_streak"
DATA_STATS_TASKS_COMPLETED = "tasks_completed"
DATA_STATS_TOTAL_XP = "total_xp"
DATA_STATS_UPDATED_AT = "updated_at"

# Achievements
DATA_ACHIEVEMENT_DATA = "data"
DATA_ACHIEVEMENT_TYPE = "type"
DATA_ACHIEVEMENT_UNLOCKED_AT = "unlocked_at"

# Achievement rules (external rule table)
DATA_RULE_REQUIREMENT_KIND = "requirement_kind"
DATA_RULE_TARGET_VALUE = "target_value"
DATA_RULE_TYPE = "type"
DATA_RULE_XP_REWARD = "xp_reward"

# XP journal
DATA_XP_AMOUNT = "amount"
DATA_XP_EVENT_KEY = "event_key"
DATA_XP_REFERENCE_ID = "reference_id"
DATA_XP_SOURCE = "source"

# ------------------------------------------------------------------------------------------------
# Habit Policies
# ------------------------------------------------------------------------------------------------
HABIT_FREQUENCY_DAILY = "daily"
HABIT_FREQUENCY_MONTHLY = "monthly"
HABIT_FREQUENCY_SPECIFIC_DAYS = "specific_days"
HABIT_FREQUENCY_WEEKLY = "weekly"

HABIT_FREQUENCY_OPTIONS = [
    HABIT_FREQUENCY_DAILY,
    HABIT_FREQUENCY_WEEKLY,
    HABIT_FREQUENCY_SPECIFIC_DAYS,
    HABIT_FREQUENCY_MONTHLY,
]

HABIT_TRACKING_BOOLEAN = "boolean"
HABIT_TRACKING_QUANTITATIVE = "quantitative"

HABIT_TRACKING_OPTIONS = [HABIT_TRACKING_BOOLEAN, HABIT_TRACKING_QUANTITATIVE]

DEFAULT_HABIT_COLOR = "#22c55e"

# ------------------------------------------------------------------------------------------------
# Task States and Priorities
# ------------------------------------------------------------------------------------------------
TASK_STATUS_DONE = "done"
TASK_STATUS_IN_PROGRESS = "in_progress"
TASK_STATUS_PENDING = "pending"

TASK_STATUS_OPTIONS = [TASK_STATUS_PENDING, TASK_STATUS_IN_PROGRESS, TASK_STATUS_DONE]

TASK_PRIORITY_HIGH = "high"
TASK_PRIORITY_LOW = "low"
TASK_PRIORITY_MEDIUM = "medium"
TASK_PRIORITY_URGENT = "urgent"

TASK_PRIORITY_OPTIONS = [
    TASK_PRIORITY_LOW,
    TASK_PRIORITY_MEDIUM,
    TASK_PRIORITY_HIGH,
    TASK_PRIORITY_URGENT,
]

# ------------------------------------------------------------------------------------------------
# Recurrence
# ------------------------------------------------------------------------------------------------
RECURRENCE_DAILY = "daily"
RECURRENCE_MONTHLY = "monthly"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_YEARLY = "yearly"

RECURRENCE_OPTIONS = [
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_MONTHLY,
    RECURRENCE_YEARLY,
]

# Which date a completed recurring task advances from
RECURRENCE_ANCHOR_COMPLETION_DATE = "completion_date"
RECURRENCE_ANCHOR_DUE_DATE = "due_date"

RECURRENCE_ANCHOR_OPTIONS = [
    RECURRENCE_ANCHOR_DUE_DATE,
    RECURRENCE_ANCHOR_COMPLETION_DATE,
]

# Safety limit for occurrence previews
MAX_RECURRENCE_PREVIEW = 366

# ------------------------------------------------------------------------------------------------
# Gamification
# ------------------------------------------------------------------------------------------------
REQUIREMENT_FIRST_HABIT = "first_habit"
REQUIREMENT_FIRST_TASK = "first_task"
REQUIREMENT_HABITS_COMPLETED = "habits_completed"
REQUIREMENT_LEVEL = "level"
REQUIREMENT_PERFECT_DAY = "perfect_day"
REQUIREMENT_PERFECT_WEEK = "perfect_week"
REQUIREMENT_STREAK = "streak"
REQUIREMENT_TASKS_COMPLETED = "tasks_completed"

REQUIREMENT_KIND_OPTIONS = [
    REQUIREMENT_HABITS_COMPLETED,
    REQUIREMENT_TASKS_COMPLETED,
    REQUIREMENT_STREAK,
    REQUIREMENT_LEVEL,
    REQUIREMENT_FIRST_HABIT,
    REQUIREMENT_FIRST_TASK,
    REQUIREMENT_PERFECT_DAY,
    REQUIREMENT_PERFECT_WEEK,
]

PERFECT_WEEK_DAYS = 7

XP_SOURCE_ACHIEVEMENT = "achievement"
XP_SOURCE_HABIT = "habit"
XP_SOURCE_TASK = "task"

# Level search stops here even if the curve keeps growing
MAX_LEVEL = 1000

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_ACHIEVEMENT_RULES = "achievement_rules"
CONF_COPY_LINKED_TRANSACTION = "copy_linked_transaction"
CONF_COPY_SUBTASKS_ON_RECURRENCE = "copy_subtasks_on_recurrence"
CONF_LEVEL_CURVE = "level_curve"
CONF_LEVEL_THRESHOLDS = "level_thresholds"
CONF_RECURRENCE_ANCHOR = "recurrence_anchor"
CONF_TIME_ZONE = "time_zone"
CONF_XP_HABIT_COMPLETION = "xp_habit_completion"
CONF_XP_TASK_COMPLETION = "xp_task_completion"

# ------------------------------------------------------------------------------------------------
# Default Values
# ------------------------------------------------------------------------------------------------
DEFAULT_COPY_LINKED_TRANSACTION = False
DEFAULT_COPY_SUBTASKS_ON_RECURRENCE = True
DEFAULT_RECURRENCE_ANCHOR = RECURRENCE_ANCHOR_DUE_DATE
DEFAULT_RECURRENCE_INTERVAL = 1
DEFAULT_TASK_PRIORITY = TASK_PRIORITY_MEDIUM
DEFAULT_TIME_ZONE = "UTC"
DEFAULT_XP_HABIT_COMPLETION = 10
DEFAULT_XP_TASK_COMPLETION = 15
DEFAULT_ZERO = 0

# Cumulative XP required to reach each level (index 0 = level 1)
DEFAULT_LEVEL_THRESHOLDS = [
    0, 100, 250, 500, 850, 1300, 1850, 2500, 3250, 4100,
    5050, 6100, 7250, 8500, 9850, 11300, 12850, 14500, 16250, 18100,
]  # fmt: skip

DEFAULT_ACHIEVEMENT_RULES = [
    {"type": "first_habit", "requirement_kind": REQUIREMENT_FIRST_HABIT, "target_value": 1, "xp_reward": 25},
    {"type": "first_task", "requirement_kind": REQUIREMENT_FIRST_TASK, "target_value": 1, "xp_reward": 25},
    {"type": "streak_3", "requirement_kind": REQUIREMENT_STREAK, "target_value": 3, "xp_reward": 30},
    {"type": "streak_7", "requirement_kind": REQUIREMENT_STREAK, "target_value": 7, "xp_reward": 75},
    {"type": "streak_30", "requirement_kind": REQUIREMENT_STREAK, "target_value": 30, "xp_reward": 200},
    {"type": "streak_100", "requirement_kind": REQUIREMENT_STREAK, "target_value": 100, "xp_reward": 500},
    {"type": "habits_10", "requirement_kind": REQUIREMENT_HABITS_COMPLETED, "target_value": 10, "xp_reward": 50},
    {"type": "habits_50", "requirement_kind": REQUIREMENT_HABITS_COMPLETED, "target_value": 50, "xp_reward": 150},
    {"type": "habits_100", "requirement_kind": REQUIREMENT_HABITS_COMPLETED, "target_value": 100, "xp_reward": 300},
    {"type": "habits_500", "requirement_kind": REQUIREMENT_HABITS_COMPLETED, "target_value": 500, "xp_reward": 750},
    {"type": "tasks_10", "requirement_kind": REQUIREMENT_TASKS_COMPLETED, "target_value": 10, "xp_reward": 50},
    {"type": "tasks_50", "requirement_kind": REQUIREMENT_TASKS_COMPLETED, "target_value": 50, "xp_reward": 150},
    {"type": "tasks_100", "requirement_kind": REQUIREMENT_TASKS_COMPLETED, "target_value": 100, "xp_reward": 300},
    {"type": "level_5", "requirement_kind": REQUIREMENT_LEVEL, "target_value": 5, "xp_reward": 100},
    {"type": "level_10", "requirement_kind": REQUIREMENT_LEVEL, "target_value": 10, "xp_reward": 250},
    {"type": "level_20", "requirement_kind": REQUIREMENT_LEVEL, "target_value": 20, "xp_reward": 500},
    {"type": "perfect_day", "requirement_kind": REQUIREMENT_PERFECT_DAY, "target_value": 1, "xp_reward": 100},
    {"type": "perfect_week", "requirement_kind": REQUIREMENT_PERFECT_WEEK, "target_value": 1, "xp_reward": 300},
]  # fmt: skip

# ------------------------------------------------------------------------------------------------
# Signals (manager-to-manager events)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
SIGNAL_SUFFIX_COMPLETION_CHANGED = "completion_changed"
SIGNAL_SUFFIX_HABIT_ARCHIVED = "habit_archived"
SIGNAL_SUFFIX_HABIT_DELETED = "habit_deleted"
SIGNAL_SUFFIX_LEVEL_CHANGED = "level_changed"
SIGNAL_SUFFIX_STREAKS_UPDATED = "streaks_updated"
SIGNAL_SUFFIX_TASK_COMPLETED = "task_completed"

# ------------------------------------------------------------------------------------------------
# Entity Labels
# ------------------------------------------------------------------------------------------------
LABEL_COMPLETION = "Completion"
LABEL_HABIT = "Habit"
LABEL_SUBTASK = "Subtask"
LABEL_TASK = "Task"

# ------------------------------------------------------------------------------------------------
# Translation Keys (errors)
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_INVALID_INPUT = "invalid_input"
TRANS_KEY_ERROR_NOT_AUTHENTICATED = "not_authenticated"
TRANS_KEY_ERROR_NOT_FOUND = "not_found"
TRANS_KEY_ERROR_PARTIAL_BULK_FAILURE = "partial_bulk_failure"
TRANS_KEY_ERROR_STORE_FAILURE = "store_failure"
TRANS_KEY_ERROR_UNKNOWN = "unknown_error"
