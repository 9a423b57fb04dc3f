"""Task Engine - Pure logic for task status transitions and ordering.

This engine provides stateless, pure Python functions for:
- State transition validation (pending, in_progress, done)
- TransitionEffect planning (completion timestamp, gamification, recurrence)
- Task and subtask row construction
- Ordering helpers (next position, bulk reorder planning)

ARCHITECTURE: This is a pure logic engine with NO store access.
All functions are static methods that operate on passed-in data.
State management belongs in TaskManager.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
import uuid

from .. import const

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import SubtaskData, TaskData


# =============================================================================
# TRANSITION EFFECT DATA STRUCTURE
# =============================================================================


@dataclass
class TransitionEffect:
    """Effect of a task status transition.

    Returned by TaskEngine.calculate_transition() to describe what the
    manager should write and which later stages to run.

    Attributes:
        new_status: Target status
        changed: Whether the status field actually changes
        set_completed_at: Stamp completed_at with the current time
        clear_completed_at: Reset completed_at to None
        award_completion: Fire the task-completed gamification event
        plan_recurrence: Invoke the recurrence planner
    """

    new_status: str
    changed: bool = True
    set_completed_at: bool = False
    clear_completed_at: bool = False
    award_completion: bool = False
    plan_recurrence: bool = False


# =============================================================================
# TASK ENGINE
# =============================================================================


class TaskEngine:
    """Pure logic engine for task state transitions.

    All methods are static - no instance state.
    """

    # Valid state transitions matrix
    VALID_TRANSITIONS: dict[str, list[str]] = {
        const.TASK_STATUS_PENDING: [
            const.TASK_STATUS_IN_PROGRESS,
            const.TASK_STATUS_DONE,
        ],
        const.TASK_STATUS_IN_PROGRESS: [
            const.TASK_STATUS_PENDING,
            const.TASK_STATUS_DONE,
        ],
        # Un-complete only; XP and recurring instances are not retracted
        const.TASK_STATUS_DONE: [
            const.TASK_STATUS_PENDING,
        ],
    }

    # =========================================================================
    # STATE TRANSITION LOGIC
    # =========================================================================

    @staticmethod
    def can_transition(current_status: str, target_status: str) -> bool:
        """Validate if a status transition is allowed.

        Staying in the same status is always allowed (retry-safe no-op).
        """
        if current_status == target_status:
            return target_status in TaskEngine.VALID_TRANSITIONS
        return target_status in TaskEngine.VALID_TRANSITIONS.get(current_status, [])

    @staticmethod
    def calculate_transition(
        current_status: str, target_status: str
    ) -> TransitionEffect | None:
        """Plan the effects of moving a task to target_status.

        Returns:
            TransitionEffect, or None if the transition is not allowed.

        Re-applying ``done`` to a done task re-runs the idempotent later stages
        (journaled XP, source-guarded recurrence) without touching the row, so
        a retried mutation converges.
        """
        if not TaskEngine.can_transition(current_status, target_status):
            return None

        if target_status == const.TASK_STATUS_DONE:
            return TransitionEffect(
                new_status=target_status,
                changed=current_status != target_status,
                set_completed_at=current_status != target_status,
                award_completion=True,
                plan_recurrence=True,
            )

        return TransitionEffect(
            new_status=target_status,
            changed=current_status != target_status,
            clear_completed_at=current_status == const.TASK_STATUS_DONE,
        )

    # =========================================================================
    # ROW CONSTRUCTION
    # =========================================================================

    @staticmethod
    def build_task(
        user_id: str,
        payload: Mapping[str, Any],
        order: int,
        now_iso: str,
    ) -> TaskData:
        """Create a task row from a validated payload."""
        task: dict[str, Any] = {
            const.DATA_TASK_DESCRIPTION: None,
            const.DATA_TASK_AREA_ID: None,
            const.DATA_TASK_PROJECT_ID: None,
            const.DATA_TASK_NOTEBOOK_ID: None,
            const.DATA_TASK_DUE_DATE: None,
            const.DATA_TASK_PRIORITY: const.DEFAULT_TASK_PRIORITY,
            const.DATA_TASK_STATUS: const.TASK_STATUS_PENDING,
            const.DATA_TASK_TAGS: [],
            const.DATA_TASK_RECURRENCE: None,
            const.DATA_TASK_RECURRENCE_ADVANCED_AT: None,
            const.DATA_TASK_RECURRENCE_SOURCE_ID: None,
            const.DATA_TASK_ESTIMATED_MINUTES: None,
            const.DATA_TASK_LINKED_TRANSACTION_ID: None,
            const.DATA_TASK_COMPLETED_AT: None,
        }
        task.update({k: v for k, v in payload.items() if k != const.DATA_TASK_SUBTASKS})
        task.update(
            {
                const.DATA_ID: str(uuid.uuid4()),
                const.DATA_USER_ID: user_id,
                const.DATA_ORDER: order,
                const.DATA_CREATED_AT: now_iso,
            }
        )
        if task[const.DATA_TASK_STATUS] == const.TASK_STATUS_DONE:
            task[const.DATA_TASK_COMPLETED_AT] = now_iso
        return task  # type: ignore[return-value]

    @staticmethod
    def build_subtask(
        user_id: str, task_id: str, title: str, order: int, now_iso: str
    ) -> SubtaskData:
        """Create a not-done subtask row."""
        return {
            const.DATA_ID: str(uuid.uuid4()),
            const.DATA_USER_ID: user_id,
            const.DATA_SUBTASK_TASK_ID: task_id,
            const.DATA_SUBTASK_TITLE: title,
            const.DATA_SUBTASK_DONE: False,
            const.DATA_ORDER: order,
            const.DATA_CREATED_AT: now_iso,
        }  # type: ignore[return-value]

    @staticmethod
    def copy_subtasks(
        subtasks: Iterable[SubtaskData],
        new_task_id: str,
        user_id: str,
        now_iso: str,
    ) -> list[SubtaskData]:
        """Copy subtasks onto a new task, reset to not done, renumbered 0..n-1."""
        ordered = sorted(subtasks, key=lambda st: st.get(const.DATA_ORDER, 0))
        return [
            TaskEngine.build_subtask(
                user_id, new_task_id, st[const.DATA_SUBTASK_TITLE], index, now_iso
            )
            for index, st in enumerate(ordered)
        ]

    # =========================================================================
    # ORDERING
    # =========================================================================

    @staticmethod
    def next_order(rows: Iterable[Mapping[str, Any]]) -> int:
        """Position after the current maximum (0 for an empty list)."""
        return max((int(r.get(const.DATA_ORDER, 0)) for r in rows), default=-1) + 1

    @staticmethod
    def plan_reorder(
        ordered_ids: list[str], existing_ids: Iterable[str]
    ) -> tuple[dict[str, int], list[str]]:
        """Assign sequential positions to a requested ordering.

        Positions follow the index in ordered_ids, so applied items keep the
        place the caller asked for even when some ids are unknown.

        Returns:
            (position by id for known ids, unknown ids)
        """
        known = set(existing_ids)
        positions: dict[str, int] = {}
        missing: list[str] = []
        for index, item_id in enumerate(ordered_ids):
            if item_id in known:
                positions[item_id] = index
            else:
                missing.append(item_id)
        return positions, missing
