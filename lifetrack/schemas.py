# File: schemas.py
"""Voluptuous schemas for LifeTrack payloads and configuration.

Every payload is validated here before any store write; ``validate()`` turns a
voluptuous error into ``InvalidInputError`` naming the offending field.
"""

from __future__ import annotations

import copy
from typing import Any

import voluptuous as vol

from . import const
from .exceptions import InvalidInputError
from .utils.dt_utils import dt_to_iso_date, get_time_zone

# --- Field Validators ---


def _iso_date(value: Any) -> str:
    """Normalize a calendar date to YYYY-MM-DD."""
    try:
        return dt_to_iso_date(value)
    except (TypeError, ValueError) as err:
        raise vol.Invalid(f"expected ISO date, got {value!r}") from err


def _optional_iso_date(value: Any) -> str | None:
    return None if value is None else _iso_date(value)


def _reminder_time(value: Any) -> str | None:
    """Accept HH:MM (24h) or None."""
    if value is None:
        return None
    if isinstance(value, str):
        parts = value.split(":")
        if (
            len(parts) == 2
            and all(p.isdigit() for p in parts)
            and 0 <= int(parts[0]) <= 23
            and 0 <= int(parts[1]) <= 59
        ):
            return f"{int(parts[0]):02d}:{int(parts[1]):02d}"
    raise vol.Invalid(f"expected HH:MM, got {value!r}")


def _level_curve(value: Any) -> Any:
    """Accept any callable ``xp_for_level(level) -> int``."""
    if not callable(value):
        raise vol.Invalid("level_curve must be callable")
    return value


def _time_zone(value: Any) -> str:
    try:
        get_time_zone(value)
    except ValueError as err:
        raise vol.Invalid(str(err)) from err
    return str(value)


def _strictly_increasing(values: list[int]) -> list[int]:
    if any(b <= a for a, b in zip(values, values[1:], strict=False)):
        raise vol.Invalid("level thresholds must be strictly increasing")
    return values


def _unique_rule_types(rules: list[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: set[str] = set()
    for rule in rules:
        rule_type = rule[const.DATA_RULE_TYPE]
        if rule_type in seen:
            raise vol.Invalid(f"duplicate achievement type '{rule_type}'")
        seen.add(rule_type)
    return rules


_NON_EMPTY_STRING = vol.All(str, vol.Strip, vol.Length(min=1))
_OPTIONAL_STRING = vol.Any(None, str)
_NON_NEGATIVE_INT = vol.All(vol.Coerce(int), vol.Range(min=0))


# --- Habit Policies ---


def _validate_frequency_variant(value: dict[str, Any]) -> dict[str, Any]:
    """Require the field that belongs to the selected frequency type."""
    required = {
        const.HABIT_FREQUENCY_WEEKLY: const.DATA_FREQUENCY_DAYS_PER_WEEK,
        const.HABIT_FREQUENCY_SPECIFIC_DAYS: const.DATA_FREQUENCY_DAYS,
        const.HABIT_FREQUENCY_MONTHLY: const.DATA_FREQUENCY_TIMES_PER_MONTH,
    }.get(value[const.DATA_FREQUENCY_TYPE])
    if required and not value.get(required):
        raise vol.Invalid(
            f"'{required}' is required for {value[const.DATA_FREQUENCY_TYPE]} habits",
            path=[required],
        )
    if const.DATA_FREQUENCY_DAYS in value:
        value[const.DATA_FREQUENCY_DAYS] = sorted(set(value[const.DATA_FREQUENCY_DAYS]))
    return value


FREQUENCY_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(const.DATA_FREQUENCY_TYPE): vol.In(
                const.HABIT_FREQUENCY_OPTIONS
            ),
            vol.Optional(const.DATA_FREQUENCY_DAYS_PER_WEEK): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=7)
            ),
            vol.Optional(const.DATA_FREQUENCY_DAYS): [
                vol.All(vol.Coerce(int), vol.Range(min=0, max=6))
            ],
            vol.Optional(const.DATA_FREQUENCY_TIMES_PER_MONTH): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=31)
            ),
        }
    ),
    _validate_frequency_variant,
)


def _validate_tracking_variant(value: dict[str, Any]) -> dict[str, Any]:
    if (
        value[const.DATA_TRACKING_TYPE] == const.HABIT_TRACKING_QUANTITATIVE
        and const.DATA_TRACKING_TARGET not in value
    ):
        raise vol.Invalid(
            "'target' is required for quantitative habits",
            path=[const.DATA_TRACKING_TARGET],
        )
    return value


TRACKING_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(const.DATA_TRACKING_TYPE): vol.In(
                const.HABIT_TRACKING_OPTIONS
            ),
            vol.Optional(const.DATA_TRACKING_TARGET): vol.All(
                vol.Coerce(float), vol.Range(min=0, min_included=False)
            ),
            vol.Optional(const.DATA_TRACKING_UNIT): _OPTIONAL_STRING,
        }
    ),
    _validate_tracking_variant,
)

_HABIT_FIELDS: dict[Any, Any] = {
    vol.Optional(const.DATA_HABIT_DESCRIPTION): _OPTIONAL_STRING,
    vol.Optional(const.DATA_HABIT_AREA_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_HABIT_PROJECT_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_HABIT_NOTEBOOK_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_HABIT_ICON): _OPTIONAL_STRING,
    vol.Optional(const.DATA_HABIT_REMINDER_ENABLED): bool,
    vol.Optional(const.DATA_HABIT_REMINDER_TIME): _reminder_time,
}

HABIT_CREATE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_HABIT_TITLE): _NON_EMPTY_STRING,
        vol.Optional(
            const.DATA_HABIT_FREQUENCY,
            default=lambda: {const.DATA_FREQUENCY_TYPE: const.HABIT_FREQUENCY_DAILY},
        ): FREQUENCY_SCHEMA,
        vol.Optional(
            const.DATA_HABIT_TRACKING,
            default=lambda: {const.DATA_TRACKING_TYPE: const.HABIT_TRACKING_BOOLEAN},
        ): TRACKING_SCHEMA,
        vol.Optional(const.DATA_HABIT_COLOR, default=const.DEFAULT_HABIT_COLOR): str,
        **_HABIT_FIELDS,
    }
)

HABIT_UPDATE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_HABIT_TITLE): _NON_EMPTY_STRING,
        vol.Optional(const.DATA_HABIT_FREQUENCY): FREQUENCY_SCHEMA,
        vol.Optional(const.DATA_HABIT_TRACKING): TRACKING_SCHEMA,
        vol.Optional(const.DATA_HABIT_COLOR): str,
        **_HABIT_FIELDS,
    }
)


# --- Tasks ---

RECURRENCE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RECURRENCE_TYPE): vol.In(const.RECURRENCE_OPTIONS),
        vol.Optional(
            const.DATA_RECURRENCE_INTERVAL, default=const.DEFAULT_RECURRENCE_INTERVAL
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(const.DATA_RECURRENCE_END_DATE, default=None): _optional_iso_date,
    }
)

_TASK_FIELDS: dict[Any, Any] = {
    vol.Optional(const.DATA_TASK_DESCRIPTION): _OPTIONAL_STRING,
    vol.Optional(const.DATA_TASK_AREA_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_TASK_PROJECT_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_TASK_NOTEBOOK_ID): _OPTIONAL_STRING,
    vol.Optional(const.DATA_TASK_DUE_DATE): _optional_iso_date,
    vol.Optional(const.DATA_TASK_TAGS): [str],
    vol.Optional(const.DATA_TASK_RECURRENCE): vol.Any(None, RECURRENCE_SCHEMA),
    vol.Optional(const.DATA_TASK_ESTIMATED_MINUTES): vol.Any(None, _NON_NEGATIVE_INT),
    vol.Optional(const.DATA_TASK_LINKED_TRANSACTION_ID): _OPTIONAL_STRING,
}

TASK_CREATE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_TASK_TITLE): _NON_EMPTY_STRING,
        vol.Optional(
            const.DATA_TASK_PRIORITY, default=const.DEFAULT_TASK_PRIORITY
        ): vol.In(const.TASK_PRIORITY_OPTIONS),
        vol.Optional(const.DATA_TASK_STATUS, default=const.TASK_STATUS_PENDING): vol.In(
            const.TASK_STATUS_OPTIONS
        ),
        # Titles of subtasks to create alongside the task
        vol.Optional(const.DATA_TASK_SUBTASKS, default=list): [_NON_EMPTY_STRING],
        **_TASK_FIELDS,
    }
)

# Status is changed only through TaskManager.async_set_status()
TASK_UPDATE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_TASK_TITLE): _NON_EMPTY_STRING,
        vol.Optional(const.DATA_TASK_PRIORITY): vol.In(const.TASK_PRIORITY_OPTIONS),
        **_TASK_FIELDS,
    }
)

TASK_STATUS_SCHEMA = vol.In(const.TASK_STATUS_OPTIONS)


# --- Gamification Content ---

ACHIEVEMENT_RULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RULE_TYPE): _NON_EMPTY_STRING,
        vol.Required(const.DATA_RULE_REQUIREMENT_KIND): vol.In(
            const.REQUIREMENT_KIND_OPTIONS
        ),
        vol.Optional(const.DATA_RULE_TARGET_VALUE, default=1): _NON_NEGATIVE_INT,
        vol.Optional(const.DATA_RULE_XP_REWARD, default=0): _NON_NEGATIVE_INT,
    }
)

ACHIEVEMENT_RULES_SCHEMA = vol.All([ACHIEVEMENT_RULE_SCHEMA], _unique_rule_types)

LEVEL_THRESHOLDS_SCHEMA = vol.All(
    [_NON_NEGATIVE_INT], vol.Length(min=1), _strictly_increasing
)


# --- Engine Configuration ---

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_XP_HABIT_COMPLETION, default=const.DEFAULT_XP_HABIT_COMPLETION
        ): _NON_NEGATIVE_INT,
        vol.Optional(
            const.CONF_XP_TASK_COMPLETION, default=const.DEFAULT_XP_TASK_COMPLETION
        ): _NON_NEGATIVE_INT,
        vol.Optional(const.CONF_LEVEL_CURVE): _level_curve,
        vol.Optional(const.CONF_LEVEL_THRESHOLDS): LEVEL_THRESHOLDS_SCHEMA,
        vol.Optional(
            const.CONF_ACHIEVEMENT_RULES,
            default=lambda: copy.deepcopy(const.DEFAULT_ACHIEVEMENT_RULES),
        ): ACHIEVEMENT_RULES_SCHEMA,
        vol.Optional(
            const.CONF_COPY_LINKED_TRANSACTION,
            default=const.DEFAULT_COPY_LINKED_TRANSACTION,
        ): bool,
        vol.Optional(
            const.CONF_COPY_SUBTASKS_ON_RECURRENCE,
            default=const.DEFAULT_COPY_SUBTASKS_ON_RECURRENCE,
        ): bool,
        vol.Optional(
            const.CONF_RECURRENCE_ANCHOR, default=const.DEFAULT_RECURRENCE_ANCHOR
        ): vol.In(const.RECURRENCE_ANCHOR_OPTIONS),
        vol.Optional(const.CONF_TIME_ZONE, default=const.DEFAULT_TIME_ZONE): _time_zone,
    }
)


def validate(schema: Any, data: Any) -> Any:
    """Run a schema and raise InvalidInputError on failure.

    Raises:
        InvalidInputError: field is the dotted path of the first error.
    """
    try:
        return schema(data)
    except vol.Invalid as err:
        field = ".".join(str(p) for p in err.path) or "payload"
        raise InvalidInputError(field, err.msg) from err
