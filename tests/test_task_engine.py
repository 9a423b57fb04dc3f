"""Tests for TaskEngine - pure logic, no store needed."""

from __future__ import annotations

import pytest

from lifetrack import const
from lifetrack.engines.task_engine import TaskEngine

NOW_ISO = "2024-01-15T12:00:00+00:00"

# =============================================================================
# TEST: STATE TRANSITION VALIDATION
# =============================================================================


class TestStateTransitions:
    """Test the task status matrix."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (const.TASK_STATUS_PENDING, const.TASK_STATUS_IN_PROGRESS),
            (const.TASK_STATUS_PENDING, const.TASK_STATUS_DONE),
            (const.TASK_STATUS_IN_PROGRESS, const.TASK_STATUS_PENDING),
            (const.TASK_STATUS_IN_PROGRESS, const.TASK_STATUS_DONE),
            (const.TASK_STATUS_DONE, const.TASK_STATUS_PENDING),
            (const.TASK_STATUS_DONE, const.TASK_STATUS_DONE),
        ],
    )
    def test_allowed(self, current: str, target: str) -> None:
        assert TaskEngine.can_transition(current, target)

    def test_done_to_in_progress_not_allowed(self) -> None:
        """DONE → IN_PROGRESS must go through PENDING."""
        assert not TaskEngine.can_transition(
            const.TASK_STATUS_DONE, const.TASK_STATUS_IN_PROGRESS
        )

    def test_unknown_status(self) -> None:
        assert not TaskEngine.can_transition("archived", const.TASK_STATUS_PENDING)
        assert not TaskEngine.can_transition("archived", "archived")


# =============================================================================
# TEST: TRANSITION EFFECTS
# =============================================================================


class TestCalculateTransition:
    """Test which stages each transition runs."""

    def test_complete(self) -> None:
        """PENDING → DONE stamps completion, awards XP, plans recurrence."""
        effect = TaskEngine.calculate_transition(
            const.TASK_STATUS_PENDING, const.TASK_STATUS_DONE
        )
        assert effect is not None
        assert effect.changed
        assert effect.set_completed_at
        assert effect.award_completion
        assert effect.plan_recurrence
        assert not effect.clear_completed_at

    def test_repeat_done_reruns_idempotent_stages(self) -> None:
        """DONE → DONE leaves the row alone but re-runs later stages."""
        effect = TaskEngine.calculate_transition(
            const.TASK_STATUS_DONE, const.TASK_STATUS_DONE
        )
        assert effect is not None
        assert not effect.changed
        assert not effect.set_completed_at
        assert effect.award_completion
        assert effect.plan_recurrence

    def test_uncomplete(self) -> None:
        """DONE → PENDING clears completed_at and nothing else."""
        effect = TaskEngine.calculate_transition(
            const.TASK_STATUS_DONE, const.TASK_STATUS_PENDING
        )
        assert effect is not None
        assert effect.clear_completed_at
        assert not effect.award_completion
        assert not effect.plan_recurrence

    def test_start(self) -> None:
        effect = TaskEngine.calculate_transition(
            const.TASK_STATUS_PENDING, const.TASK_STATUS_IN_PROGRESS
        )
        assert effect is not None
        assert effect.changed
        assert not effect.clear_completed_at

    def test_invalid_returns_none(self) -> None:
        assert (
            TaskEngine.calculate_transition(
                const.TASK_STATUS_DONE, const.TASK_STATUS_IN_PROGRESS
            )
            is None
        )


# =============================================================================
# TEST: ROW CONSTRUCTION AND ORDERING
# =============================================================================


class TestBuildRows:
    """Test task and subtask construction."""

    def test_build_task_defaults(self) -> None:
        task = TaskEngine.build_task(
            "user-1", {const.DATA_TASK_TITLE: "Call mom"}, 3, NOW_ISO
        )
        assert task[const.DATA_USER_ID] == "user-1"
        assert task[const.DATA_ORDER] == 3
        assert task[const.DATA_TASK_STATUS] == const.TASK_STATUS_PENDING
        assert task[const.DATA_TASK_PRIORITY] == const.DEFAULT_TASK_PRIORITY
        assert task[const.DATA_TASK_COMPLETED_AT] is None
        assert task[const.DATA_TASK_TAGS] == []
        assert const.DATA_TASK_SUBTASKS not in task

    def test_build_task_created_done(self) -> None:
        """A task created as done gets completed_at."""
        task = TaskEngine.build_task(
            "user-1",
            {const.DATA_TASK_TITLE: "x", const.DATA_TASK_STATUS: const.TASK_STATUS_DONE},
            0,
            NOW_ISO,
        )
        assert task[const.DATA_TASK_COMPLETED_AT] == NOW_ISO

    def test_copy_subtasks_resets_and_renumbers(self) -> None:
        subtasks = [
            {const.DATA_SUBTASK_TITLE: "b", const.DATA_SUBTASK_DONE: True, const.DATA_ORDER: 7},
            {const.DATA_SUBTASK_TITLE: "a", const.DATA_SUBTASK_DONE: True, const.DATA_ORDER: 2},
        ]
        copies = TaskEngine.copy_subtasks(subtasks, "task-2", "user-1", NOW_ISO)
        assert [c[const.DATA_SUBTASK_TITLE] for c in copies] == ["a", "b"]
        assert [c[const.DATA_ORDER] for c in copies] == [0, 1]
        assert all(not c[const.DATA_SUBTASK_DONE] for c in copies)
        assert all(c[const.DATA_SUBTASK_TASK_ID] == "task-2" for c in copies)


class TestOrdering:
    """Test ordering helpers."""

    def test_next_order_empty(self) -> None:
        assert TaskEngine.next_order([]) == 0

    def test_next_order_after_max(self) -> None:
        rows = [{const.DATA_ORDER: 4}, {const.DATA_ORDER: 1}]
        assert TaskEngine.next_order(rows) == 5

    def test_plan_reorder_reports_unknown(self) -> None:
        positions, missing = TaskEngine.plan_reorder(["b", "zz", "a"], ["a", "b"])
        assert positions == {"b": 0, "a": 2}
        assert missing == ["zz"]
