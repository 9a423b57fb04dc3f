"""Manager modules for LifeTrack.

Managers orchestrate engines against the store (stateful):
- habit_manager: Habit catalogue CRUD, archiving and ordering
- completion_manager: The completion ledger
- streak_manager: Materialized streak records
- task_manager: Task lifecycle, recurrence advance and subtasks
- gamification_manager: XP journal, stats and achievements
"""

from .base_manager import BaseManager, EventDispatcher
from .completion_manager import CompletionManager
from .gamification_manager import GamificationManager
from .habit_manager import HabitManager
from .streak_manager import StreakManager
from .task_manager import TaskManager, TaskStatusResult

__all__ = [
    "BaseManager",
    "CompletionManager",
    "EventDispatcher",
    "GamificationManager",
    "HabitManager",
    "StreakManager",
    "TaskManager",
    "TaskStatusResult",
]
