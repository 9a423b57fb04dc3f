"""Engine modules for LifeTrack.

Contains pure computation engines (no store access):
- ledger_engine: Completion validation, row building and toggle planning
- streak_engine: Calendar-day streak computation and perfect-day runs
- schedule_engine: Recurrence calculation and next-instance planning
- task_engine: Task state machine, transitions and ordering
- gamification_engine: XP, levels and achievement evaluation
"""

# Use relative imports within package to avoid mypy module resolution issues
from .gamification_engine import (
    AggregationResult,
    GamificationEngine,
    build_level_curve,
)
from .ledger_engine import LEDGER_ACTION_ADD, LEDGER_ACTION_REMOVE, LedgerEngine
from .schedule_engine import RecurrenceEngine, plan_next_instance
from .streak_engine import StreakEngine
from .task_engine import TaskEngine, TransitionEffect

__all__ = [
    "LEDGER_ACTION_ADD",
    "LEDGER_ACTION_REMOVE",
    "AggregationResult",
    "GamificationEngine",
    "LedgerEngine",
    "RecurrenceEngine",
    "StreakEngine",
    "TaskEngine",
    "TransitionEffect",
    "build_level_curve",
    "plan_next_instance",
]
