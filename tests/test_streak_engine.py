"""Tests for StreakEngine - pure logic, no store needed."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from lifetrack import const
from lifetrack.engines.streak_engine import StreakEngine

JAN_13 = date(2024, 1, 13)
JAN_14 = date(2024, 1, 14)
JAN_15 = date(2024, 1, 15)

# =============================================================================
# TEST: CURRENT AND LONGEST STREAK
# =============================================================================


class TestComputeStreak:
    """Test compute_streak() over calendar-day runs."""

    def test_empty_ledger(self) -> None:
        """No completions → both streaks are 0."""
        assert StreakEngine.compute_streak([], JAN_15) == {"current": 0, "longest": 0}

    def test_run_ending_today(self) -> None:
        """Three consecutive days ending today count fully."""
        result = StreakEngine.compute_streak([JAN_13, JAN_14, JAN_15], JAN_15)
        assert result == {"current": 3, "longest": 3}

    def test_grace_day(self) -> None:
        """A run ending yesterday is still current."""
        result = StreakEngine.compute_streak([JAN_13, JAN_14, JAN_15], date(2024, 1, 16))
        assert result == {"current": 3, "longest": 3}

    def test_broken_after_grace(self) -> None:
        """Two days without a completion resets the current streak."""
        result = StreakEngine.compute_streak([JAN_13, JAN_14, JAN_15], date(2024, 1, 17))
        assert result == {"current": 0, "longest": 3}

    def test_gap_splits_runs(self) -> None:
        """Longest is the best run; current is only the active one."""
        dates = [
            date(2024, 1, 1),
            date(2024, 1, 2),
            date(2024, 1, 3),
            date(2024, 1, 4),
            JAN_14,
            JAN_15,
        ]
        assert StreakEngine.compute_streak(dates, JAN_15) == {
            "current": 2,
            "longest": 4,
        }

    def test_accepts_iso_strings_and_duplicates(self) -> None:
        """ISO strings are parsed and duplicates collapse."""
        result = StreakEngine.compute_streak(
            ["2024-01-14", "2024-01-15", "2024-01-15"], JAN_15
        )
        assert result == {"current": 2, "longest": 2}

    def test_future_completion_does_not_extend_current(self) -> None:
        """A completion dated after today is not part of the active run."""
        dates = [JAN_14, JAN_15, date(2024, 1, 20)]
        result = StreakEngine.compute_streak(dates, JAN_15)
        assert result["current"] == 2
        assert result["longest"] == 2

    def test_frequency_policy_is_ignored(self) -> None:
        """A Mon/Fri habit yields isolated one-day runs."""
        dates = [date(2024, 1, 8), date(2024, 1, 12), JAN_15]
        assert StreakEngine.compute_streak(dates, JAN_15) == {
            "current": 1,
            "longest": 1,
        }

    @pytest.mark.parametrize("offset", range(0, 40, 3))
    def test_longest_never_below_current(self, offset: int) -> None:
        """longest >= current for any today."""
        dates = [date(2024, 1, 1) + timedelta(days=d) for d in (0, 1, 2, 10, 11, 20)]
        today = date(2024, 1, 1) + timedelta(days=offset)
        result = StreakEngine.compute_streak(dates, today)
        assert result["longest"] >= result["current"]

    def test_recompute_converges(self) -> None:
        """Same inputs give identical results."""
        dates = {JAN_13, JAN_15}
        first = StreakEngine.compute_streak(dates, JAN_15)
        second = StreakEngine.compute_streak(dates, JAN_15)
        assert first == second


# =============================================================================
# TEST: RECORD BUILDING AND SUMMARY
# =============================================================================


class TestStreakRecords:
    """Test record construction and the user summary."""

    def test_build_record(self) -> None:
        """Record carries both streaks and the last completed date."""
        record = StreakEngine.build_record(
            "user-1", "habit-1", ["2024-01-14", "2024-01-15"], JAN_15, "rec-1"
        )
        assert record[const.DATA_ID] == "rec-1"
        assert record[const.DATA_STREAK_CURRENT] == 2
        assert record[const.DATA_STREAK_LONGEST] == 2
        assert record[const.DATA_STREAK_LAST_COMPLETED_DATE] == "2024-01-15"

    def test_build_record_empty(self) -> None:
        """No completions → zero streaks and no last date."""
        record = StreakEngine.build_record("user-1", "habit-1", [], JAN_15, "")
        assert record[const.DATA_STREAK_LAST_COMPLETED_DATE] is None
        assert record[const.DATA_STREAK_CURRENT] == 0

    def test_summarize_takes_maxima(self) -> None:
        """Summary is the max current and max longest over records."""
        records = [
            {const.DATA_STREAK_CURRENT: 2, const.DATA_STREAK_LONGEST: 9},
            {const.DATA_STREAK_CURRENT: 5, const.DATA_STREAK_LONGEST: 5},
        ]
        assert StreakEngine.summarize(records) == {"current": 5, "longest": 9}

    def test_summarize_no_records(self) -> None:
        assert StreakEngine.summarize([]) == {"current": 0, "longest": 0}


# =============================================================================
# TEST: PERFECT DAYS
# =============================================================================


class TestPerfectDays:
    """Test count_perfect_days()."""

    def test_no_active_habits(self) -> None:
        """Nothing to complete is never perfect."""
        assert StreakEngine.count_perfect_days([], {}, JAN_15, 7) == 0

    def test_all_done_today(self) -> None:
        dates = {"a": {JAN_15}, "b": {JAN_15, JAN_14}}
        assert StreakEngine.count_perfect_days(["a", "b"], dates, JAN_15, 7) == 1

    def test_one_habit_missing_today(self) -> None:
        dates = {"a": {JAN_15}, "b": {JAN_14}}
        assert StreakEngine.count_perfect_days(["a", "b"], dates, JAN_15, 7) == 0

    def test_capped_at_max_days(self) -> None:
        """Counting stops at max_days."""
        days = {JAN_15 - timedelta(days=n) for n in range(10)}
        assert StreakEngine.count_perfect_days(["a"], {"a": days}, JAN_15, 7) == 7
