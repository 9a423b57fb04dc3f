# File: utils/dt_utils.py
"""Date and time utilities for LifeTrack.

Pure Python date/time functions. Uses standard library datetime and zoneinfo,
plus python-dateutil for calendar-aware interval arithmetic.

Calendar dates are exchanged as ISO strings ("2024-01-15") and timestamps as
UTC ISO 8601 strings, matching how rows are stored.

Functions:
    - get_time_zone: Resolve an IANA zone name
    - dt_now_utc: Current datetime in UTC
    - dt_now_iso: Current UTC datetime as ISO string
    - as_utc / as_local: Timezone conversion
    - dt_today_local: Local calendar date of an instant
    - dt_parse_date: Parse a strict ISO calendar date
    - dt_to_iso_date: Normalize a date or ISO string to an ISO string
    - dt_add_interval: Add N days/weeks/months/years with month-end clamping
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Third-party date utilities
from dateutil.relativedelta import relativedelta

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# These mirror const.py values but are defined locally for purity.
# ==============================================================================

DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

TIME_UNIT_DAYS = "days"
TIME_UNIT_WEEKS = "weeks"
TIME_UNIT_MONTHS = "months"
TIME_UNIT_YEARS = "years"


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def get_time_zone(name: str | None) -> ZoneInfo:
    """Resolve an IANA time zone name.

    Args:
        name: Zone name such as "Europe/Berlin". Empty or None means UTC.

    Returns:
        ZoneInfo for the zone.

    Raises:
        ValueError: If the zone is unknown.
    """
    if not name:
        return DEFAULT_TIME_ZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise ValueError(f"Unknown time zone: {name}") from err


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_now_iso(now: datetime | None = None) -> str:
    """Return an instant (default: now) as a UTC ISO 8601 string.

    Example:
        "2024-01-15T14:30:00+00:00"
    """
    return as_utc(now or dt_now_utc()).isoformat()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC. Naive values are assumed to be UTC."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to the given timezone (default UTC).

    Naive values are assumed to be UTC.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


def dt_today_local(now: datetime | None = None, tz: ZoneInfo | None = None) -> date:
    """Return the local calendar date of an instant.

    Args:
        now: Instant to convert. Uses the current time if not provided.
        tz: Timezone defining the user's calendar day.

    Returns:
        Calendar date in the given timezone.

    Example:
        23:30 UTC on 2024-01-15 is 2024-01-16 in Europe/Berlin.
    """
    return as_local(now or dt_now_utc(), tz).date()


# ==============================================================================
# Date Parsing
# ==============================================================================


def dt_parse_date(date_input: str | date | None) -> date | None:
    """Parse a calendar date, strictly in ISO format (YYYY-MM-DD).

    Datetime inputs are reduced to their date part.

    Returns:
        datetime.date, or None if the input is missing or malformed.
    """
    if date_input is None:
        return None
    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input
    if not isinstance(date_input, str):
        return None
    try:
        return date.fromisoformat(date_input.strip())
    except ValueError:
        _LOGGER.debug("Could not parse date: %s", date_input)
        return None


def dt_to_iso_date(date_input: str | date) -> str:
    """Normalize a date or ISO string to "YYYY-MM-DD".

    Raises:
        ValueError: If the input cannot be parsed.
    """
    parsed = dt_parse_date(date_input)
    if parsed is None:
        raise ValueError(f"Invalid date: {date_input!r}")
    return parsed.isoformat()


# ==============================================================================
# Interval Arithmetic
# ==============================================================================


def dt_add_interval(base: date, interval_unit: str, delta: int) -> date:
    """Add a calendar interval to a date.

    Month and year arithmetic clamps to the last valid day of the target month
    instead of overflowing into the next one.

    Args:
        base: Starting date
        interval_unit: One of TIME_UNIT_DAYS/WEEKS/MONTHS/YEARS
        delta: Number of units to add

    Returns:
        The shifted date.

    Raises:
        ValueError: If interval_unit is not supported.

    Examples:
        dt_add_interval(date(2024, 1, 31), "days", 1) → 2024-02-01
        dt_add_interval(date(2024, 1, 31), "months", 1) → 2024-02-29
        dt_add_interval(date(2023, 1, 31), "months", 1) → 2023-02-28
        dt_add_interval(date(2024, 2, 29), "years", 1) → 2025-02-28
    """
    if interval_unit == TIME_UNIT_DAYS:
        return base + timedelta(days=delta)
    if interval_unit == TIME_UNIT_WEEKS:
        return base + timedelta(weeks=delta)
    if interval_unit == TIME_UNIT_MONTHS:
        return base + relativedelta(months=delta)
    if interval_unit == TIME_UNIT_YEARS:
        return base + relativedelta(years=delta)
    raise ValueError(f"Unsupported interval unit: {interval_unit}")
