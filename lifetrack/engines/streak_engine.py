"""Streak Engine - Pure streak computation over a habit's completion dates.

A streak is a run of calendar-consecutive dates. The current streak is the run
ending today or yesterday (one day of grace so a habit not yet marked today
does not show as broken); the longest streak is the longest run ever.

Frequency policies are deliberately NOT considered: a 3x/week habit done on
Monday and Friday yields two isolated 1-day runs.

Design Principles:
    - Stateless: operates on passed data, never reads the store
    - Recomputation, not increment: the same inputs always give the same output
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_parse_date

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import StreakData, StreakResult


_ONE_DAY = timedelta(days=1)


class StreakEngine:
    """Pure logic engine for streak statistics.

    All methods are static - no instance state.
    """

    @staticmethod
    def compute_streak(
        completion_dates: Iterable[date | str], today: date
    ) -> StreakResult:
        """Compute current and longest streak.

        Args:
            completion_dates: Dates with a completion (duplicates ignored)
            today: The user's current calendar date

        Returns:
            StreakResult with ``current`` and ``longest``. ``longest`` is
            always >= ``current``.

        Examples:
            {01-13, 01-14, 01-15}, today=01-15 → current=3, longest=3
            {01-13, 01-14, 01-15}, today=01-16 → current=3, longest=3
            {01-13, 01-14, 01-15}, today=01-17 → current=0, longest=3
        """
        days = sorted(StreakEngine._to_dates(completion_dates))
        if not days:
            return {"current": 0, "longest": 0}

        longest = 1
        run = 1
        for previous, current in zip(days, days[1:], strict=False):
            if current - previous == _ONE_DAY:
                run += 1
            else:
                run = 1
            longest = max(longest, run)

        # `run` now holds the length of the final run, which ends on days[-1]
        last = days[-1]
        if last in (today, today - _ONE_DAY):
            current_streak = run
        elif last < today:
            current_streak = 0
        else:
            # Completions dated after today do not extend the active run
            current_streak = StreakEngine._run_ending_at(days, today)

        return {"current": current_streak, "longest": max(longest, current_streak)}

    @staticmethod
    def last_completed_date(completion_dates: Iterable[date | str]) -> str | None:
        """Return the most recent completion date as ISO string, or None."""
        days = StreakEngine._to_dates(completion_dates)
        return max(days).isoformat() if days else None

    @staticmethod
    def build_record(
        user_id: str,
        habit_id: str,
        completion_dates: Iterable[date | str],
        today: date,
        record_id: str,
    ) -> StreakData:
        """Build the full-replace StreakRecord row for a habit."""
        days = StreakEngine._to_dates(completion_dates)
        result = StreakEngine.compute_streak(days, today)
        return {
            const.DATA_ID: record_id,
            const.DATA_USER_ID: user_id,
            const.DATA_STREAK_HABIT_ID: habit_id,
            const.DATA_STREAK_CURRENT: result["current"],
            const.DATA_STREAK_LONGEST: result["longest"],
            const.DATA_STREAK_LAST_COMPLETED_DATE: StreakEngine.last_completed_date(
                days
            ),
        }  # type: ignore[return-value]

    @staticmethod
    def summarize(records: Iterable[StreakData]) -> StreakResult:
        """User-level streak summary: maxima over all habit records."""
        current = 0
        longest = 0
        for record in records:
            current = max(current, int(record.get(const.DATA_STREAK_CURRENT, 0)))
            longest = max(longest, int(record.get(const.DATA_STREAK_LONGEST, 0)))
        return {"current": current, "longest": max(longest, current)}

    @staticmethod
    def count_perfect_days(
        active_habit_ids: Iterable[str],
        dates_by_habit: Mapping[str, set[date]],
        today: date,
        max_days: int,
    ) -> int:
        """Count consecutive days ending today on which every active habit was done.

        Returns 0 when there are no active habits. Counting stops at max_days.
        """
        habit_ids = list(active_habit_ids)
        if not habit_ids:
            return 0

        count = 0
        day = today
        while count < max_days:
            if not all(day in dates_by_habit.get(h, ()) for h in habit_ids):
                break
            count += 1
            day -= _ONE_DAY
        return count

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _to_dates(values: Iterable[date | str]) -> set[date]:
        result: set[date] = set()
        for value in values:
            parsed = dt_parse_date(value)
            if parsed is not None:
                result.add(parsed)
        return result

    @staticmethod
    def _run_ending_at(days: list[date], anchor: date) -> int:
        """Length of the run that ends on anchor or anchor - 1 day."""
        present = set(days)
        end = anchor if anchor in present else anchor - _ONE_DAY
        run = 0
        while end in present:
            run += 1
            end -= _ONE_DAY
        return run
