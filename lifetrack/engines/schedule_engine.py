"""Schedule Engine for LifeTrack recurring tasks.

Hybrid approach, same as calendar-style schedulers:
- `dateutil.rrule` for fixed-length units (DAILY, WEEKLY)
- `dateutil.relativedelta` for month/year clamping (Jan 31 + 1 month = Feb 29
  in a leap year, never Mar 2)

IMPORTANT: This module must NOT import from managers or the coordinator to
avoid circular imports. Only import from const.py, type_defs.py, utils and
standard libraries.
"""

from __future__ import annotations

from datetime import date, datetime, time
from itertools import islice
from typing import TYPE_CHECKING, Any, ClassVar
import uuid

from dateutil.rrule import DAILY, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import (
    TIME_UNIT_DAYS,
    TIME_UNIT_MONTHS,
    TIME_UNIT_WEEKS,
    TIME_UNIT_YEARS,
    dt_add_interval,
    dt_parse_date,
)

if TYPE_CHECKING:
    from ..type_defs import RecurrencePolicy, TaskData


# Fields carried verbatim from a completed task to its next instance
_CARRIED_TASK_FIELDS: tuple[str, ...] = (
    const.DATA_USER_ID,
    const.DATA_TASK_TITLE,
    const.DATA_TASK_DESCRIPTION,
    const.DATA_TASK_PRIORITY,
    const.DATA_TASK_AREA_ID,
    const.DATA_TASK_PROJECT_ID,
    const.DATA_TASK_NOTEBOOK_ID,
    const.DATA_TASK_ESTIMATED_MINUTES,
)


class RecurrenceEngine:
    """Next-occurrence calculator for a single recurrence policy.

    Handles the four recurrence types: DAILY, WEEKLY, MONTHLY, YEARLY, each
    with an integer interval and an optional inclusive end date.
    """

    # Mapping from recurrence type to calendar unit
    RECURRENCE_TO_UNIT: ClassVar[dict[str, str]] = {
        const.RECURRENCE_DAILY: TIME_UNIT_DAYS,
        const.RECURRENCE_WEEKLY: TIME_UNIT_WEEKS,
        const.RECURRENCE_MONTHLY: TIME_UNIT_MONTHS,
        const.RECURRENCE_YEARLY: TIME_UNIT_YEARS,
    }

    # Types that can be expanded with rrule without clamping concerns
    RECURRENCE_TO_RRULE: ClassVar[dict[str, int]] = {
        const.RECURRENCE_DAILY: DAILY,
        const.RECURRENCE_WEEKLY: WEEKLY,
    }

    def __init__(self, recurrence: RecurrencePolicy | dict[str, Any]) -> None:
        """Initialize the engine with a recurrence policy.

        Args:
            recurrence: RecurrencePolicy (type, interval, optional end_date)

        Raises:
            ValueError: If the recurrence type is unknown.

        Note:
            Invalid interval values (<=0 or missing) are coerced to 1.
            An unparseable end date is treated as absent.
        """
        self._type = recurrence.get(const.DATA_RECURRENCE_TYPE)
        if self._type not in self.RECURRENCE_TO_UNIT:
            raise ValueError(f"Unknown recurrence type: {self._type}")

        interval = recurrence.get(
            const.DATA_RECURRENCE_INTERVAL, const.DEFAULT_RECURRENCE_INTERVAL
        )
        self._interval = max(1, int(interval)) if interval else 1

        self._end_date: date | None = dt_parse_date(
            recurrence.get(const.DATA_RECURRENCE_END_DATE)
        )

    @property
    def end_date(self) -> date | None:
        """Inclusive last allowed due date, if any."""
        return self._end_date

    def next_due(self, base: date) -> date | None:
        """Calculate the due date one interval after base.

        Args:
            base: Date to advance from (due date or completion date)

        Returns:
            The next due date, or None if it falls after the end date.
        """
        next_date = dt_add_interval(
            base, self.RECURRENCE_TO_UNIT[self._type], self._interval
        )
        if self._end_date is not None and next_date > self._end_date:
            const.LOGGER.debug(
                "RecurrenceEngine: %s is past end date %s, chain ends",
                next_date,
                self._end_date,
            )
            return None
        return next_date

    def preview(self, start: date, limit: int = 10) -> list[date]:
        """List upcoming due dates after start, as repeated advances would.

        Args:
            start: Current due date (not included in the result)
            limit: Maximum number of dates (capped at MAX_RECURRENCE_PREVIEW)

        Returns:
            Due dates in ascending order, stopping at the end date.
        """
        limit = max(0, min(limit, const.MAX_RECURRENCE_PREVIEW))
        if limit == 0:
            return []

        if self._type in self.RECURRENCE_TO_RRULE:
            # rrule rejects count and until together
            bound: dict[str, Any] = (
                {"until": datetime.combine(self._end_date, time.min)}
                if self._end_date
                else {"count": limit + 1}
            )
            rule = rrule(
                self.RECURRENCE_TO_RRULE[self._type],
                dtstart=datetime.combine(start, time.min),
                interval=self._interval,
                **bound,
            )
            # First rrule occurrence is dtstart itself
            return [occurrence.date() for occurrence in islice(rule, 1, limit + 1)]

        # Month/year units chain through relativedelta so each step clamps
        # exactly like a real completion-driven advance would.
        results: list[date] = []
        current: date | None = start
        while len(results) < limit:
            current = self.next_due(current)
            if current is None:
                break
            results.append(current)
        return results


# =============================================================================
# NEXT INSTANCE PLANNING
# =============================================================================


def resolve_recurrence_base(
    task: TaskData | dict[str, Any],
    completion_date: date,
    anchor: str = const.DEFAULT_RECURRENCE_ANCHOR,
) -> date:
    """Pick the date a completed task advances from.

    With the due-date anchor the task's due date is used when present, so a
    late completion keeps the original cadence. Otherwise (or without a due
    date) the completion date is used.
    """
    if anchor == const.RECURRENCE_ANCHOR_DUE_DATE:
        due = dt_parse_date(task.get(const.DATA_TASK_DUE_DATE))
        if due is not None:
            return due
    return completion_date


def plan_next_instance(
    task: TaskData | dict[str, Any],
    completion_date: date,
    *,
    order: int,
    now_iso: str,
    anchor: str = const.DEFAULT_RECURRENCE_ANCHOR,
    copy_linked_transaction: bool = const.DEFAULT_COPY_LINKED_TRANSACTION,
) -> TaskData | None:
    """Produce the next instance of a recurring task, or None.

    Never mutates the completed task.

    Args:
        task: The task that was just completed
        completion_date: Local calendar date of the completion
        order: Position for the new task (caller passes max order + 1)
        now_iso: Creation timestamp for the new row
        anchor: const.RECURRENCE_ANCHOR_* choosing the advance base date
        copy_linked_transaction: Carry linked_transaction_id to the new task

    Returns:
        A new pending TaskData with a fresh id, or None when the task has no
        recurrence or the chain has reached its end date.
    """
    recurrence = task.get(const.DATA_TASK_RECURRENCE)
    if not recurrence:
        return None

    engine = RecurrenceEngine(recurrence)
    base = resolve_recurrence_base(task, completion_date, anchor)
    next_due = engine.next_due(base)
    if next_due is None:
        return None

    new_task: dict[str, Any] = {
        field: task.get(field) for field in _CARRIED_TASK_FIELDS if field in task
    }
    new_task.update(
        {
            const.DATA_ID: str(uuid.uuid4()),
            const.DATA_TASK_TAGS: list(task.get(const.DATA_TASK_TAGS) or []),
            const.DATA_TASK_RECURRENCE: dict(recurrence),
            const.DATA_TASK_RECURRENCE_SOURCE_ID: task[const.DATA_ID],
            const.DATA_TASK_RECURRENCE_ADVANCED_AT: None,
            const.DATA_TASK_DUE_DATE: next_due.isoformat(),
            const.DATA_TASK_STATUS: const.TASK_STATUS_PENDING,
            const.DATA_TASK_COMPLETED_AT: None,
            const.DATA_TASK_LINKED_TRANSACTION_ID: (
                task.get(const.DATA_TASK_LINKED_TRANSACTION_ID)
                if copy_linked_transaction
                else None
            ),
            const.DATA_ORDER: order,
            const.DATA_CREATED_AT: now_iso,
        }
    )
    return new_task  # type: ignore[return-value]
