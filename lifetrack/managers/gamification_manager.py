"""Gamification Manager - XP journal, user stats and achievement unlocks.

ARCHITECTURE:
- GamificationManager = "The Judge" (STATEFUL orchestration, store access)
- GamificationEngine = Pure evaluation logic (STATELESS)

Every XP grant is appended to ``xp_events`` under a natural key
(``habit:<id>:<date>``, ``task:<id>``, ``achievement:<type>``), so a retried
event never grants twice. UserStats is then recomputed from the journal and
the streak records rather than incremented, which is why un-completing a habit
or task never lowers XP or counters.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.gamification_engine import AggregationResult, GamificationEngine
from ..engines.ledger_engine import LedgerEngine
from ..engines.streak_engine import StreakEngine
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..type_defs import AchievementData, UserStatsData, XpProgress


class GamificationManager(BaseManager):
    """Manager for XP, levels and achievements.

    Responsibilities:
    - Journal habit XP once per (habit, date) and task XP once per task
    - Recompute UserStats (XP, level, counters, streak summary)
    - Evaluate the achievement rule table and record first unlocks
    - Emit ACHIEVEMENT_UNLOCKED / LEVEL_CHANGED

    NOT responsible for:
    - Streak computation (StreakManager)
    - Defining XP amounts, the level curve or rules (injected config)
    """

    async def async_setup(self) -> None:
        """Subscribe to the events that can change stats."""
        self.listen(const.SIGNAL_SUFFIX_STREAKS_UPDATED, self._on_streaks_updated)
        self.listen(const.SIGNAL_SUFFIX_TASK_COMPLETED, self._on_task_completed)
        self.listen(const.SIGNAL_SUFFIX_HABIT_DELETED, self._on_habit_deleted)
        self.listen(const.SIGNAL_SUFFIX_HABIT_ARCHIVED, self._on_habit_archived)

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def _on_streaks_updated(self, payload: dict[str, Any]) -> None:
        """Habit completion added or removed; streaks are already current.

        Removal only refreshes the streak mirror; journaled XP stays.
        """
        user_id = payload["user_id"]
        if payload.get("added"):
            habit_id = payload["habit_id"]
            day = payload["date"]
            await self._async_journal(
                user_id,
                const.XP_SOURCE_HABIT,
                habit_id,
                self.config[const.CONF_XP_HABIT_COMPLETION],
                GamificationEngine.habit_event_key(habit_id, day),
            )
        await self._async_recalculate(user_id)

    async def _on_task_completed(self, payload: dict[str, Any]) -> None:
        user_id = payload["user_id"]
        task_id = payload["task_id"]
        await self._async_journal(
            user_id,
            const.XP_SOURCE_TASK,
            task_id,
            self.config[const.CONF_XP_TASK_COMPLETION],
            GamificationEngine.task_event_key(task_id),
        )
        await self._async_recalculate(user_id)

    async def _on_habit_deleted(self, payload: dict[str, Any]) -> None:
        await self._async_recalculate(payload["user_id"])

    async def _on_habit_archived(self, payload: dict[str, Any]) -> None:
        """Archiving changes which habits a perfect day requires."""
        await self._async_recalculate(payload["user_id"])

    # =========================================================================
    # Queries
    # =========================================================================

    async def async_get_user_stats(self) -> UserStatsData:
        """Return the stored stats, or a zeroed record for a new user."""
        user_id = self._require_user_id()
        stats = await self.store.async_select_one(
            const.TABLE_USER_STATS, eq={const.DATA_USER_ID: user_id}
        )
        if stats is not None:
            return stats  # type: ignore[return-value]
        return GamificationEngine.aggregate_stats(
            user_id,
            [],
            {"current": 0, "longest": 0},
            self.config[const.CONF_LEVEL_CURVE],
            self._now_iso(),
        )

    async def async_get_xp_progress(self) -> XpProgress:
        """Level, XP into the level and XP remaining to the next one."""
        stats = await self.async_get_user_stats()
        return GamificationEngine.get_xp_progress(
            int(stats[const.DATA_STATS_TOTAL_XP]), self.config[const.CONF_LEVEL_CURVE]
        )

    async def async_list_achievements(self) -> list[AchievementData]:
        """Return unlocked achievements, oldest first."""
        user_id = self._require_user_id()
        return await self.store.async_select(
            const.TABLE_ACHIEVEMENTS,
            eq={const.DATA_USER_ID: user_id},
            order_by=const.DATA_ACHIEVEMENT_UNLOCKED_AT,
        )  # type: ignore[return-value]

    async def async_has_achievement(self, achievement_type: str) -> bool:
        """Whether achievement_type has been unlocked."""
        user_id = self._require_user_id()
        row = await self.store.async_select_one(
            const.TABLE_ACHIEVEMENTS,
            eq={
                const.DATA_USER_ID: user_id,
                const.DATA_ACHIEVEMENT_TYPE: achievement_type,
            },
        )
        return row is not None

    # =========================================================================
    # Mutations
    # =========================================================================

    async def async_recalculate(self) -> AggregationResult:
        """Recompute stats and evaluate achievements now.

        Useful after changing the rule table or at a day boundary.
        """
        user_id = self._require_user_id()

        async def _unit() -> AggregationResult:
            return await self._async_recalculate(user_id)

        return await self.coordinator.async_run_mutation("gamification_recalc", _unit)

    # =========================================================================
    # Internals (callable from within a running unit)
    # =========================================================================

    async def _async_journal(
        self,
        user_id: str,
        source: str,
        reference_id: str,
        amount: int,
        event_key: str,
    ) -> bool:
        """Append an XP event unless its key is already journaled."""
        existing = await self.store.async_select_one(
            const.TABLE_XP_EVENTS,
            eq={const.DATA_USER_ID: user_id, const.DATA_XP_EVENT_KEY: event_key},
        )
        if existing is not None:
            const.LOGGER.debug("XP event '%s' already granted", event_key)
            return False
        await self.store.async_insert(
            const.TABLE_XP_EVENTS,
            GamificationEngine.build_xp_event(
                user_id, source, reference_id, amount, event_key, self._now_iso()
            ),
        )
        const.LOGGER.debug("Granted %s XP for '%s'", amount, event_key)
        return True

    async def _async_perfect_day_count(self, user_id: str) -> int:
        """Consecutive perfect days ending today, up to a week."""
        habits = await self.store.async_select(
            const.TABLE_HABITS, eq={const.DATA_USER_ID: user_id}
        )
        active_ids = [
            h[const.DATA_ID] for h in habits if h.get(const.DATA_HABIT_ARCHIVED_AT) is None
        ]
        if not active_ids:
            return 0

        today = self._today()
        window_start = (today - timedelta(days=const.PERFECT_WEEK_DAYS - 1)).isoformat()
        completions = await self.store.async_select(
            const.TABLE_HABIT_COMPLETIONS,
            eq={const.DATA_USER_ID: user_id},
            in_={const.DATA_COMPLETION_HABIT_ID: active_ids},
        )
        recent = [
            c for c in completions if c[const.DATA_COMPLETION_DATE] >= window_start
        ]
        return StreakEngine.count_perfect_days(
            active_ids,
            LedgerEngine.group_dates_by_habit(recent),  # type: ignore[arg-type]
            today,
            const.PERFECT_WEEK_DAYS,
        )

    async def _async_recalculate(self, user_id: str) -> AggregationResult:
        """Recompute stats, unlock achievements and persist everything."""
        previous = await self.store.async_select_one(
            const.TABLE_USER_STATS, eq={const.DATA_USER_ID: user_id}
        )
        xp_events = await self.store.async_select(
            const.TABLE_XP_EVENTS, eq={const.DATA_USER_ID: user_id}
        )
        achievements = await self.store.async_select(
            const.TABLE_ACHIEVEMENTS, eq={const.DATA_USER_ID: user_id}
        )
        streak_records = await self.store.async_select(
            const.TABLE_HABIT_STREAKS, eq={const.DATA_USER_ID: user_id}
        )
        perfect_days = await self._async_perfect_day_count(user_id)
        now_iso = self._now_iso()

        result = GamificationEngine.resolve(
            user_id=user_id,
            rules=self.config[const.CONF_ACHIEVEMENT_RULES],
            xp_events=xp_events,  # type: ignore[arg-type]
            unlocked_types={a[const.DATA_ACHIEVEMENT_TYPE] for a in achievements},
            streak_summary=StreakEngine.summarize(streak_records),  # type: ignore[arg-type]
            perfect_day=perfect_days >= 1,
            perfect_week=perfect_days >= const.PERFECT_WEEK_DAYS,
            level_curve=self.config[const.CONF_LEVEL_CURVE],
            now_iso=now_iso,
        )

        if result.new_xp_events:
            await self.store.async_insert_many(
                const.TABLE_XP_EVENTS, result.new_xp_events
            )
        for rule in result.unlocked:
            await self.store.async_insert(
                const.TABLE_ACHIEVEMENTS,
                {
                    const.DATA_USER_ID: user_id,
                    const.DATA_ACHIEVEMENT_TYPE: rule[const.DATA_RULE_TYPE],
                    const.DATA_ACHIEVEMENT_UNLOCKED_AT: now_iso,
                    const.DATA_ACHIEVEMENT_DATA: {
                        const.DATA_RULE_REQUIREMENT_KIND: rule[
                            const.DATA_RULE_REQUIREMENT_KIND
                        ],
                        const.DATA_RULE_TARGET_VALUE: rule.get(
                            const.DATA_RULE_TARGET_VALUE
                        ),
                        const.DATA_RULE_XP_REWARD: rule.get(const.DATA_RULE_XP_REWARD),
                    },
                },
            )
        await self.store.async_upsert(
            const.TABLE_USER_STATS, result.stats, on_conflict=(const.DATA_USER_ID,)
        )

        for rule in result.unlocked:
            const.LOGGER.info(
                "Achievement unlocked: %s (+%s XP)",
                rule[const.DATA_RULE_TYPE],
                rule.get(const.DATA_RULE_XP_REWARD, 0),
            )
            await self.async_emit(
                const.SIGNAL_SUFFIX_ACHIEVEMENT_UNLOCKED,
                user_id=user_id,
                achievement_type=rule[const.DATA_RULE_TYPE],
                xp_reward=rule.get(const.DATA_RULE_XP_REWARD, 0),
            )

        old_level = int(previous[const.DATA_STATS_LEVEL]) if previous else 1
        new_level = int(result.stats[const.DATA_STATS_LEVEL])
        if new_level != old_level:
            const.LOGGER.info("Level changed: %s -> %s", old_level, new_level)
            await self.async_emit(
                const.SIGNAL_SUFFIX_LEVEL_CHANGED,
                user_id=user_id,
                old_level=old_level,
                new_level=new_level,
            )

        return result
