"""Ledger Engine - Pure logic for the per-habit completion ledger.

This engine provides stateless, pure Python functions for:
- Completion value validation (boolean vs quantitative habits)
- Calendar date normalization for the (habit_id, date) natural key
- Completion row construction
- Toggle planning (add vs remove)

ARCHITECTURE: This is a pure logic engine with NO store access.
All functions are static methods that operate on passed-in data.
State management belongs in CompletionManager.
"""

from __future__ import annotations

from datetime import date
from numbers import Real
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..exceptions import InvalidInputError
from ..utils.dt_utils import dt_parse_date

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import CompletionData


# Toggle actions returned by LedgerEngine.plan_toggle()
LEDGER_ACTION_ADD = "add"
LEDGER_ACTION_REMOVE = "remove"

# Value recorded by toggle() for any habit
TOGGLE_VALUE = 1


class LedgerEngine:
    """Pure logic engine for completion ledger operations.

    All methods are static - no instance state.
    """

    @staticmethod
    def normalize_date(date_input: str | date | None) -> str:
        """Return the ISO calendar date used as part of the ledger key.

        Raises:
            InvalidInputError: If the date is missing or malformed.
        """
        parsed = dt_parse_date(date_input)
        if parsed is None:
            raise InvalidInputError(
                const.DATA_COMPLETION_DATE, f"not an ISO date: {date_input!r}"
            )
        return parsed.isoformat()

    @staticmethod
    def validate_value(value: Any) -> float:
        """Validate an explicit completion value.

        Booleans are rejected even though they are ints in Python; a magnitude
        must be a real number strictly greater than zero.

        Raises:
            InvalidInputError: If the value is not a positive number.
        """
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidInputError(
                const.DATA_COMPLETION_VALUE, f"not a number: {value!r}"
            )
        if value != value or value <= 0:  # NaN or non-positive
            raise InvalidInputError(
                const.DATA_COMPLETION_VALUE, f"must be greater than 0, got {value}"
            )
        return float(value)

    @staticmethod
    def build_completion(
        user_id: str,
        habit_id: str,
        completion_date: str,
        value: float,
        now_iso: str,
    ) -> CompletionData:
        """Create a new completion row with a fresh identity."""
        return {
            const.DATA_ID: str(uuid.uuid4()),
            const.DATA_USER_ID: user_id,
            const.DATA_COMPLETION_HABIT_ID: habit_id,
            const.DATA_COMPLETION_DATE: completion_date,
            const.DATA_COMPLETION_VALUE: value,
            const.DATA_COMPLETION_COMPLETED_AT: now_iso,
        }  # type: ignore[return-value]

    @staticmethod
    def plan_toggle(existing: CompletionData | None) -> str:
        """Decide what a toggle does given the current ledger row (if any)."""
        return LEDGER_ACTION_REMOVE if existing else LEDGER_ACTION_ADD

    @staticmethod
    def completion_dates(completions: Iterable[CompletionData]) -> set[date]:
        """Extract the set of calendar dates from completion rows.

        Rows with an unparseable date are skipped.
        """
        dates: set[date] = set()
        for row in completions:
            parsed = dt_parse_date(row.get(const.DATA_COMPLETION_DATE))
            if parsed is not None:
                dates.add(parsed)
        return dates

    @staticmethod
    def group_dates_by_habit(
        completions: Iterable[CompletionData],
    ) -> dict[str, set[date]]:
        """Group completion dates by habit id."""
        grouped: dict[str, set[date]] = {}
        for row in completions:
            parsed = dt_parse_date(row.get(const.DATA_COMPLETION_DATE))
            if parsed is None:
                continue
            grouped.setdefault(row[const.DATA_COMPLETION_HABIT_ID], set()).add(parsed)
        return grouped
