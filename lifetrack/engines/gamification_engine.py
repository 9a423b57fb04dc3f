"""Gamification Engine - Pure logic for XP, levels, and achievement evaluation.

This engine provides stateless, pure Python functions for:
- Level calculation from cumulative XP through an injected level curve
- XP progress towards the next level
- UserStats aggregation from the append-only XP journal
- Achievement rule evaluation via a requirement-kind handler registry
- Unlock resolution to a fixpoint (reward XP can unlock level rules)

ARCHITECTURE: This is a pure logic engine with NO store access.
All functions are static methods that operate on passed-in data.

PURITY REQUIREMENT: This engine receives ALL data via parameters. The
GamificationManager is responsible for loading the journal, streak records
and habit data and for persisting whatever this engine returns.

Requirement kinds:
- habits_completed, tasks_completed: cumulative counters
- streak: current OR longest streak summary
- level: derived level
- first_habit, first_task: counter >= target (default 1)
- perfect_day, perfect_week: every active habit done today / 7 days running
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..utils.math_utils import calculate_percentage

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import (
        AchievementRule,
        EvaluationContext,
        LevelCurve,
        StreakResult,
        UserStatsData,
        XpEventData,
        XpProgress,
    )


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler function signature: (context, rule) -> met
RequirementHandler = Callable[["EvaluationContext", "AchievementRule"], bool]


# =============================================================================
# RESULT DATA STRUCTURE
# =============================================================================


@dataclass
class AggregationResult:
    """Outcome of GamificationEngine.resolve().

    Attributes:
        stats: Recomputed UserStats (including any reward XP)
        unlocked: Rules newly unlocked in this pass, in rule-table order
        new_xp_events: Journal rows to append for the unlock rewards
    """

    stats: UserStatsData
    unlocked: list[AchievementRule] = field(default_factory=list)
    new_xp_events: list[XpEventData] = field(default_factory=list)


# =============================================================================
# LEVEL CURVE
# =============================================================================


def build_level_curve(thresholds: list[int]) -> LevelCurve:
    """Turn a cumulative threshold table into an ``xp_for_level`` function.

    ``thresholds[0]`` is the XP for level 1. Levels past the end of the table
    keep growing by the table's last step, so the curve never plateaus unless
    the table itself does.

    Examples (default table):
        xp_for_level(1) → 0
        xp_for_level(2) → 100
        xp_for_level(20) → 18100
        xp_for_level(21) → 19950
    """
    table = list(thresholds) or [0]
    last_step = table[-1] - table[-2] if len(table) > 1 else 0

    def xp_for_level(level: int) -> int:
        if level <= 1:
            return table[0]
        if level <= len(table):
            return table[level - 1]
        return table[-1] + (level - len(table)) * last_step

    return xp_for_level


# =============================================================================
# GAMIFICATION ENGINE
# =============================================================================


class GamificationEngine:
    """Pure logic engine for gamification evaluation.

    All methods are static - no instance state.

    Evaluation Flow:
        1. Manager loads the XP journal, unlocked types and streak records
        2. Engine aggregates stats and evaluates rules against them
        3. Each unlock adds its reward to the journal; repeat until stable
        4. Manager persists the new journal rows, unlocks and stats
    """

    # =========================================================================
    # REQUIREMENT HANDLER REGISTRY
    # =========================================================================

    # Maps rule requirement_kind to handler function
    _REQUIREMENT_HANDLERS: dict[str, RequirementHandler] = {}

    @classmethod
    def _register_handlers(cls) -> None:
        """Register all requirement handlers.

        Called lazily before the first evaluation.
        """
        if cls._REQUIREMENT_HANDLERS:
            return  # Already registered

        cls._REQUIREMENT_HANDLERS = {
            # Cumulative counters
            const.REQUIREMENT_HABITS_COMPLETED: cls._evaluate_habits_completed,
            const.REQUIREMENT_TASKS_COMPLETED: cls._evaluate_tasks_completed,
            const.REQUIREMENT_FIRST_HABIT: cls._evaluate_habits_completed,
            const.REQUIREMENT_FIRST_TASK: cls._evaluate_tasks_completed,
            # Derived values
            const.REQUIREMENT_STREAK: cls._evaluate_streak,
            const.REQUIREMENT_LEVEL: cls._evaluate_level,
            # Daily completion
            const.REQUIREMENT_PERFECT_DAY: cls._evaluate_perfect_day,
            const.REQUIREMENT_PERFECT_WEEK: cls._evaluate_perfect_week,
        }

    # =========================================================================
    # LEVELS AND XP
    # =========================================================================

    @staticmethod
    def calculate_level(total_xp: int, level_curve: LevelCurve) -> int:
        """Largest level L >= 1 whose threshold does not exceed total_xp.

        The search stops early if the curve stops increasing, since every
        further level would be free.
        """
        level = 1
        while level < const.MAX_LEVEL:
            current_threshold = level_curve(level)
            next_threshold = level_curve(level + 1)
            if next_threshold <= current_threshold:
                const.LOGGER.warning(
                    "Level curve is not increasing at level %s (%s -> %s); "
                    "capping level",
                    level,
                    current_threshold,
                    next_threshold,
                )
                break
            if next_threshold > total_xp:
                break
            level += 1
        return level

    @staticmethod
    def get_xp_progress(total_xp: int, level_curve: LevelCurve) -> XpProgress:
        """Describe progress from the current level to the next.

        progress_percent is 100 when the curve plateaus (nothing to earn).
        """
        level = GamificationEngine.calculate_level(total_xp, level_curve)
        current_level_xp = level_curve(level)
        next_level_xp = level_curve(level + 1)
        span = next_level_xp - current_level_xp
        xp_into_level = total_xp - current_level_xp
        return {
            "level": level,
            "total_xp": total_xp,
            "current_level_xp": current_level_xp,
            "next_level_xp": next_level_xp,
            "xp_into_level": xp_into_level,
            "xp_remaining": max(0, next_level_xp - total_xp),
            "progress_percent": calculate_percentage(xp_into_level, span),
        }

    # =========================================================================
    # XP JOURNAL
    # =========================================================================

    @staticmethod
    def habit_event_key(habit_id: str, completion_date: str) -> str:
        """Journal key granting habit XP once per (habit, date)."""
        return f"{const.XP_SOURCE_HABIT}:{habit_id}:{completion_date}"

    @staticmethod
    def task_event_key(task_id: str) -> str:
        """Journal key granting task XP once per task."""
        return f"{const.XP_SOURCE_TASK}:{task_id}"

    @staticmethod
    def achievement_event_key(achievement_type: str) -> str:
        """Journal key granting an achievement reward once."""
        return f"{const.XP_SOURCE_ACHIEVEMENT}:{achievement_type}"

    @staticmethod
    def build_xp_event(
        user_id: str,
        source: str,
        reference_id: str,
        amount: int,
        event_key: str,
        now_iso: str,
    ) -> XpEventData:
        """Create an XP journal row."""
        return {
            const.DATA_ID: str(uuid.uuid4()),
            const.DATA_USER_ID: user_id,
            const.DATA_XP_EVENT_KEY: event_key,
            const.DATA_XP_SOURCE: source,
            const.DATA_XP_REFERENCE_ID: reference_id,
            const.DATA_XP_AMOUNT: int(amount),
            const.DATA_CREATED_AT: now_iso,
        }  # type: ignore[return-value]

    @staticmethod
    def aggregate_stats(
        user_id: str,
        xp_events: Iterable[XpEventData],
        streak_summary: StreakResult,
        level_curve: LevelCurve,
        now_iso: str,
    ) -> UserStatsData:
        """Recompute UserStats from the journal and the streak summary.

        Counters only ever see appended rows, so they never decrease.
        """
        total_xp = 0
        habits_completed = 0
        tasks_completed = 0
        for event in xp_events:
            total_xp += int(event.get(const.DATA_XP_AMOUNT, 0))
            source = event.get(const.DATA_XP_SOURCE)
            if source == const.XP_SOURCE_HABIT:
                habits_completed += 1
            elif source == const.XP_SOURCE_TASK:
                tasks_completed += 1

        return {
            const.DATA_USER_ID: user_id,
            const.DATA_STATS_TOTAL_XP: total_xp,
            const.DATA_STATS_LEVEL: GamificationEngine.calculate_level(
                total_xp, level_curve
            ),
            const.DATA_STATS_HABITS_COMPLETED: habits_completed,
            const.DATA_STATS_TASKS_COMPLETED: tasks_completed,
            const.DATA_STATS_CURRENT_STREAK: streak_summary["current"],
            const.DATA_STATS_LONGEST_STREAK: streak_summary["longest"],
            const.DATA_STATS_UPDATED_AT: now_iso,
        }  # type: ignore[return-value]

    # =========================================================================
    # ACHIEVEMENT EVALUATION
    # =========================================================================

    @classmethod
    def evaluate_rule(cls, context: EvaluationContext, rule: AchievementRule) -> bool:
        """Check whether a single rule is met (ignores prior unlocks)."""
        cls._register_handlers()
        kind = rule.get(const.DATA_RULE_REQUIREMENT_KIND)
        handler = cls._REQUIREMENT_HANDLERS.get(kind or "")
        if handler is None:
            const.LOGGER.warning(
                "Unknown requirement kind '%s' for achievement '%s'; never unlocks",
                kind,
                rule.get(const.DATA_RULE_TYPE),
            )
            return False
        return handler(context, rule)

    @classmethod
    def evaluate_achievements(
        cls, context: EvaluationContext, rules: Iterable[AchievementRule]
    ) -> list[AchievementRule]:
        """Return rules that are met and not yet unlocked, in table order."""
        newly_met: list[AchievementRule] = []
        for rule in rules:
            if rule[const.DATA_RULE_TYPE] in context["unlocked_types"]:
                continue
            if cls.evaluate_rule(context, rule):
                newly_met.append(rule)
        return newly_met

    @classmethod
    def resolve(
        cls,
        *,
        user_id: str,
        rules: list[AchievementRule],
        xp_events: list[XpEventData],
        unlocked_types: set[str],
        streak_summary: StreakResult,
        perfect_day: bool,
        perfect_week: bool,
        level_curve: LevelCurve,
        now_iso: str,
    ) -> AggregationResult:
        """Aggregate stats and unlock achievements until nothing changes.

        Each pass can only add unlocks, and there are finitely many rules, so
        the loop terminates after at most len(rules) + 1 passes.
        """
        journal = list(xp_events)
        unlocked = set(unlocked_types)
        result_unlocked: list[AchievementRule] = []
        result_events: list[XpEventData] = []

        while True:
            stats = cls.aggregate_stats(
                user_id, journal, streak_summary, level_curve, now_iso
            )
            context: EvaluationContext = {
                "stats": stats,
                "unlocked_types": unlocked,
                "perfect_day": perfect_day,
                "perfect_week": perfect_week,
            }
            newly_met = cls.evaluate_achievements(context, rules)
            if not newly_met:
                return AggregationResult(
                    stats=stats, unlocked=result_unlocked, new_xp_events=result_events
                )

            for rule in newly_met:
                achievement_type = rule[const.DATA_RULE_TYPE]
                unlocked.add(achievement_type)
                result_unlocked.append(rule)
                event = cls.build_xp_event(
                    user_id,
                    const.XP_SOURCE_ACHIEVEMENT,
                    achievement_type,
                    int(rule.get(const.DATA_RULE_XP_REWARD, 0)),
                    cls.achievement_event_key(achievement_type),
                    now_iso,
                )
                journal.append(event)
                result_events.append(event)

    # =========================================================================
    # REQUIREMENT HANDLERS
    # =========================================================================

    @staticmethod
    def _target(rule: AchievementRule, default: int = 0) -> int:
        value: Any = rule.get(const.DATA_RULE_TARGET_VALUE)
        return int(value) if value is not None else default

    @staticmethod
    def _evaluate_habits_completed(
        context: EvaluationContext, rule: AchievementRule
    ) -> bool:
        target = GamificationEngine._target(rule, default=1)
        return context["stats"][const.DATA_STATS_HABITS_COMPLETED] >= target

    @staticmethod
    def _evaluate_tasks_completed(
        context: EvaluationContext, rule: AchievementRule
    ) -> bool:
        target = GamificationEngine._target(rule, default=1)
        return context["stats"][const.DATA_STATS_TASKS_COMPLETED] >= target

    @staticmethod
    def _evaluate_streak(context: EvaluationContext, rule: AchievementRule) -> bool:
        """Met by the current streak or by the longest streak ever."""
        target = GamificationEngine._target(rule)
        stats = context["stats"]
        return (
            stats[const.DATA_STATS_CURRENT_STREAK] >= target
            or stats[const.DATA_STATS_LONGEST_STREAK] >= target
        )

    @staticmethod
    def _evaluate_level(context: EvaluationContext, rule: AchievementRule) -> bool:
        return context["stats"][const.DATA_STATS_LEVEL] >= GamificationEngine._target(
            rule
        )

    @staticmethod
    def _evaluate_perfect_day(
        context: EvaluationContext, rule: AchievementRule
    ) -> bool:
        return context["perfect_day"]

    @staticmethod
    def _evaluate_perfect_week(
        context: EvaluationContext, rule: AchievementRule
    ) -> bool:
        return context["perfect_week"]
