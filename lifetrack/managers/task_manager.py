"""Task Manager - Task lifecycle, recurrence advance and subtasks.

Status changes follow TaskEngine.VALID_TRANSITIONS. Entering ``done`` runs,
in order and inside one store transaction:

1. the status write (completed_at stamped)
2. TASK_COMPLETED → GamificationManager journals XP and recomputes stats
3. the recurrence planner, which creates at most one next instance per
   completed task (the original row is stamped with
   ``recurrence_advanced_at``, even when the chain has ended)

Leaving ``done`` only clears completed_at: XP and already-created instances
are kept.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, TypedDict

from .. import const
from ..engines.schedule_engine import plan_next_instance
from ..engines.task_engine import TaskEngine
from ..exceptions import InvalidInputError
from ..schemas import (
    TASK_CREATE_SCHEMA,
    TASK_STATUS_SCHEMA,
    TASK_UPDATE_SCHEMA,
    validate,
)
from ..utils.dt_utils import as_local, dt_parse_date, get_time_zone
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date

    from ..type_defs import SubtaskData, TaskData


class TaskStatusResult(TypedDict):
    """Result of TaskManager.async_set_status()."""

    task: TaskData
    next_task: TaskData | None


class TaskManager(BaseManager):
    """Manager for tasks and their subtasks.

    Responsibilities:
    - Task CRUD, ordering and bulk deletion
    - Status transitions with gamification and recurrence side effects
    - Subtask CRUD and ordering

    NOT responsible for:
    - XP and achievements (GamificationManager, via TASK_COMPLETED)
    - Due-date arithmetic (RecurrenceEngine)
    """

    async def async_setup(self) -> None:
        """Nothing to subscribe to; tasks only emit."""

    # =========================================================================
    # Queries
    # =========================================================================

    async def async_get(self, task_id: str) -> TaskData:
        """Return a task with its subtasks.

        Raises:
            NotFoundError: Task does not exist for this user.
        """
        user_id = self._require_user_id()
        task = await self._async_get_owned(
            const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
        )
        return await self._async_with_subtasks(task)

    async def async_list(self, status: str | None = None) -> list[TaskData]:
        """Return the user's tasks ordered by position, optionally by status."""
        if status is not None:
            status = validate(TASK_STATUS_SCHEMA, status)
        user_id = self._require_user_id()
        eq: dict[str, Any] = {const.DATA_USER_ID: user_id}
        if status is not None:
            eq[const.DATA_TASK_STATUS] = status
        tasks = await self.store.async_select(
            const.TABLE_TASKS, eq=eq, order_by=const.DATA_ORDER
        )
        return [await self._async_with_subtasks(task) for task in tasks]

    async def async_get_open_by_linked_transaction(
        self, transaction_id: str
    ) -> TaskData | None:
        """Return the not-done task linked to a financial transaction, if any."""
        user_id = self._require_user_id()
        rows = await self.store.async_select(
            const.TABLE_TASKS,
            eq={
                const.DATA_USER_ID: user_id,
                const.DATA_TASK_LINKED_TRANSACTION_ID: transaction_id,
            },
            neq={const.DATA_TASK_STATUS: const.TASK_STATUS_DONE},
            order_by=const.DATA_TASK_DUE_DATE,
            limit=1,
        )
        return await self._async_with_subtasks(rows[0]) if rows else None

    # =========================================================================
    # Task mutations
    # =========================================================================

    async def async_create(self, payload: Mapping[str, Any]) -> TaskData:
        """Create a task (and optional subtasks) after the last position.

        Creating a task directly as done records completed_at but does not
        grant XP; only a status transition does.
        """
        data: dict[str, Any] = validate(TASK_CREATE_SCHEMA, dict(payload))
        subtask_titles: list[str] = data.pop(const.DATA_TASK_SUBTASKS, [])
        user_id = self._require_user_id()

        async def _unit() -> TaskData:
            now_iso = self._now_iso()
            task = TaskEngine.build_task(
                user_id, data, await self._async_next_order(user_id), now_iso
            )
            stored = await self.store.async_insert(const.TABLE_TASKS, task)
            if subtask_titles:
                await self.store.async_insert_many(
                    const.TABLE_SUBTASKS,
                    [
                        TaskEngine.build_subtask(
                            user_id, stored[const.DATA_ID], title, index, now_iso
                        )
                        for index, title in enumerate(subtask_titles)
                    ],
                )
            const.LOGGER.debug("Created task '%s'", stored[const.DATA_TASK_TITLE])
            return await self._async_with_subtasks(stored)

        return await self.coordinator.async_run_mutation("task_create", _unit)

    async def async_update(self, task_id: str, changes: Mapping[str, Any]) -> TaskData:
        """Apply partial changes; status goes through async_set_status()."""
        data: dict[str, Any] = validate(TASK_UPDATE_SCHEMA, dict(changes))
        user_id = self._require_user_id()

        async def _unit() -> TaskData:
            task = await self._async_get_owned(
                const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
            )
            if data:
                rows = await self.store.async_update(
                    const.TABLE_TASKS,
                    data,
                    eq={const.DATA_ID: task_id, const.DATA_USER_ID: user_id},
                )
                task = rows[0]
            return await self._async_with_subtasks(task)

        return await self.coordinator.async_run_mutation("task_update", _unit)

    async def async_set_status(self, task_id: str, status: str) -> TaskStatusResult:
        """Move a task to a new status.

        Returns:
            The updated task and the next recurring instance created by this
            call (None when nothing was created).

        Raises:
            InvalidInputError: Unknown status or disallowed transition.
            NotFoundError: Task does not exist for this user.
        """
        target = validate(TASK_STATUS_SCHEMA, status)
        user_id = self._require_user_id()

        async def _unit() -> TaskStatusResult:
            task = await self._async_get_owned(
                const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
            )
            current = task[const.DATA_TASK_STATUS]
            effect = TaskEngine.calculate_transition(current, target)
            if effect is None:
                raise InvalidInputError(
                    const.DATA_TASK_STATUS, f"cannot move from {current} to {target}"
                )

            # Stage 1: status write
            if effect.changed:
                values: dict[str, Any] = {const.DATA_TASK_STATUS: effect.new_status}
                if effect.set_completed_at:
                    values[const.DATA_TASK_COMPLETED_AT] = self._now_iso()
                if effect.clear_completed_at:
                    values[const.DATA_TASK_COMPLETED_AT] = None
                rows = await self.store.async_update(
                    const.TABLE_TASKS,
                    values,
                    eq={const.DATA_ID: task_id, const.DATA_USER_ID: user_id},
                )
                task = rows[0]
                const.LOGGER.debug("Task %s: %s -> %s", task_id, current, target)

            # Stage 2: gamification
            if effect.award_completion:
                await self.async_emit(
                    const.SIGNAL_SUFFIX_TASK_COMPLETED, user_id=user_id, task_id=task_id
                )

            # Stage 3: recurrence
            next_task = None
            if effect.plan_recurrence:
                task, next_task = await self._async_advance_recurrence(task)

            return {
                "task": await self._async_with_subtasks(task),
                "next_task": next_task,
            }

        return await self.coordinator.async_run_mutation("task_set_status", _unit)

    async def async_delete(self, task_id: str) -> None:
        """Delete a task and its subtasks."""
        user_id = self._require_user_id()

        async def _unit() -> None:
            await self._async_get_owned(
                const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
            )
            await self.store.async_delete(
                const.TABLE_TASKS,
                eq={const.DATA_ID: task_id, const.DATA_USER_ID: user_id},
            )

        await self.coordinator.async_run_mutation("task_delete", _unit)

    async def async_delete_many(self, task_ids: list[str]) -> list[str]:
        """Delete several tasks.

        Returns:
            The deleted ids when every id was found.

        Raises:
            PartialBulkFailureError: Some ids are unknown; the rest were deleted.
        """
        user_id = self._require_user_id()

        async def _unit() -> tuple[list[str], list[str]]:
            rows = await self.store.async_select(
                const.TABLE_TASKS,
                eq={const.DATA_USER_ID: user_id},
                in_={const.DATA_ID: task_ids},
            )
            found = {row[const.DATA_ID] for row in rows}
            applied = [tid for tid in task_ids if tid in found]
            missing = [tid for tid in task_ids if tid not in found]
            if applied:
                await self.store.async_delete(
                    const.TABLE_TASKS,
                    eq={const.DATA_USER_ID: user_id},
                    in_={const.DATA_ID: applied},
                )
            return applied, missing

        applied, missing = await self.coordinator.async_run_mutation(
            "task_delete_many", _unit
        )
        self._raise_partial(missing, applied, "Bulk delete")
        return applied

    async def async_reorder(self, ordered_ids: list[str]) -> None:
        """Assign positions 0..n-1 following ordered_ids.

        Raises:
            PartialBulkFailureError: Some ids are unknown; all others applied.
        """
        user_id = self._require_user_id()

        async def _unit() -> tuple[list[str], list[str]]:
            tasks = await self.store.async_select(
                const.TABLE_TASKS, eq={const.DATA_USER_ID: user_id}
            )
            return await self._async_apply_order(
                const.TABLE_TASKS,
                user_id,
                ordered_ids,
                (t[const.DATA_ID] for t in tasks),
            )

        applied, missing = await self.coordinator.async_run_mutation(
            "task_reorder", _unit
        )
        self._raise_partial(missing, applied, "Task reorder")

    # =========================================================================
    # Subtasks
    # =========================================================================

    async def async_add_subtask(self, task_id: str, title: str) -> SubtaskData:
        """Append a subtask to a task."""
        clean_title = title.strip() if isinstance(title, str) else ""
        if not clean_title:
            raise InvalidInputError(const.DATA_SUBTASK_TITLE, "must not be empty")
        user_id = self._require_user_id()

        async def _unit() -> SubtaskData:
            await self._async_get_owned(
                const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
            )
            siblings = await self._async_subtasks(task_id)
            return await self.store.async_insert(
                const.TABLE_SUBTASKS,
                TaskEngine.build_subtask(
                    user_id,
                    task_id,
                    clean_title,
                    TaskEngine.next_order(siblings),
                    self._now_iso(),
                ),
            )  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("subtask_add", _unit)

    async def async_toggle_subtask(self, subtask_id: str) -> SubtaskData:
        """Flip a subtask's done flag."""
        user_id = self._require_user_id()

        async def _unit() -> SubtaskData:
            subtask = await self._async_get_owned(
                const.TABLE_SUBTASKS, subtask_id, user_id, const.LABEL_SUBTASK
            )
            rows = await self.store.async_update(
                const.TABLE_SUBTASKS,
                {const.DATA_SUBTASK_DONE: not subtask[const.DATA_SUBTASK_DONE]},
                eq={const.DATA_ID: subtask_id, const.DATA_USER_ID: user_id},
            )
            return rows[0]  # type: ignore[return-value]

        return await self.coordinator.async_run_mutation("subtask_toggle", _unit)

    async def async_delete_subtask(self, subtask_id: str) -> None:
        """Delete a subtask."""
        user_id = self._require_user_id()

        async def _unit() -> None:
            await self._async_get_owned(
                const.TABLE_SUBTASKS, subtask_id, user_id, const.LABEL_SUBTASK
            )
            await self.store.async_delete(
                const.TABLE_SUBTASKS,
                eq={const.DATA_ID: subtask_id, const.DATA_USER_ID: user_id},
            )

        await self.coordinator.async_run_mutation("subtask_delete", _unit)

    async def async_reorder_subtasks(self, task_id: str, ordered_ids: list[str]) -> None:
        """Assign positions 0..n-1 to a task's subtasks.

        Raises:
            PartialBulkFailureError: Some ids are not subtasks of this task.
        """
        user_id = self._require_user_id()

        async def _unit() -> tuple[list[str], list[str]]:
            await self._async_get_owned(
                const.TABLE_TASKS, task_id, user_id, const.LABEL_TASK
            )
            subtasks = await self._async_subtasks(task_id)
            return await self._async_apply_order(
                const.TABLE_SUBTASKS,
                user_id,
                ordered_ids,
                (st[const.DATA_ID] for st in subtasks),
            )

        applied, missing = await self.coordinator.async_run_mutation(
            "subtask_reorder", _unit
        )
        self._raise_partial(missing, applied, "Subtask reorder")

    # =========================================================================
    # Internals
    # =========================================================================

    async def _async_advance_recurrence(
        self, task: dict[str, Any]
    ) -> tuple[dict[str, Any], TaskData | None]:
        """Create the next instance of a completed recurring task, once.

        Returns:
            The stamped task and the new instance, if any.
        """
        if not task.get(const.DATA_TASK_RECURRENCE):
            return task, None

        task_id = task[const.DATA_ID]
        user_id = task[const.DATA_USER_ID]
        if task.get(const.DATA_TASK_RECURRENCE_ADVANCED_AT):
            const.LOGGER.debug(
                "Task %s already advanced at %s",
                task_id,
                task[const.DATA_TASK_RECURRENCE_ADVANCED_AT],
            )
            return task, None

        now_iso = self._now_iso()
        rows = await self.store.async_update(
            const.TABLE_TASKS,
            {const.DATA_TASK_RECURRENCE_ADVANCED_AT: now_iso},
            eq={const.DATA_ID: task_id, const.DATA_USER_ID: user_id},
        )
        task = rows[0]
        next_task = plan_next_instance(
            task,
            self._completion_date(task),
            order=await self._async_next_order(user_id),
            now_iso=now_iso,
            anchor=self.config[const.CONF_RECURRENCE_ANCHOR],
            copy_linked_transaction=self.config[const.CONF_COPY_LINKED_TRANSACTION],
        )
        if next_task is None:
            const.LOGGER.debug("Task %s recurrence has ended", task_id)
            return task, None

        stored = await self.store.async_insert(const.TABLE_TASKS, next_task)
        if self.config[const.CONF_COPY_SUBTASKS_ON_RECURRENCE]:
            subtasks = await self._async_subtasks(task_id)
            if subtasks:
                await self.store.async_insert_many(
                    const.TABLE_SUBTASKS,
                    TaskEngine.copy_subtasks(
                        subtasks, stored[const.DATA_ID], user_id, now_iso
                    ),
                )
        const.LOGGER.info(
            "Created recurring task '%s' due %s",
            stored[const.DATA_TASK_TITLE],
            stored[const.DATA_TASK_DUE_DATE],
        )
        return task, await self._async_with_subtasks(stored)

    def _completion_date(self, task: Mapping[str, Any]) -> date:
        """Local calendar date of completed_at (today if missing)."""
        completed_at = task.get(const.DATA_TASK_COMPLETED_AT)
        if completed_at:
            try:
                stamp = datetime.fromisoformat(completed_at)
            except ValueError:
                parsed = dt_parse_date(completed_at)
                if parsed is not None:
                    return parsed
            else:
                tz = get_time_zone(self.config[const.CONF_TIME_ZONE])
                return as_local(stamp, tz).date()
        return self._today()

    async def _async_next_order(self, user_id: str) -> int:
        tasks = await self.store.async_select(
            const.TABLE_TASKS, eq={const.DATA_USER_ID: user_id}
        )
        return TaskEngine.next_order(tasks)

    async def _async_subtasks(self, task_id: str) -> list[SubtaskData]:
        return await self.store.async_select(
            const.TABLE_SUBTASKS,
            eq={const.DATA_SUBTASK_TASK_ID: task_id},
            order_by=const.DATA_ORDER,
        )  # type: ignore[return-value]

    async def _async_with_subtasks(self, task: Mapping[str, Any]) -> TaskData:
        return {
            **task,
            const.DATA_TASK_SUBTASKS: await self._async_subtasks(task[const.DATA_ID]),
        }  # type: ignore[return-value]
