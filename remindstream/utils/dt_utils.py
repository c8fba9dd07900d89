# File: utils/dt_utils.py
"""Date and time utilities for RemindStream.

Pure Python date/time functions with no dependency on the rest of the package.
All functions here can be unit tested in isolation.

Calendar fields (date, weekday, day-of-month, time-of-day) are read in the
timezone passed as `tz`; instants are compared in UTC. Callers that omit `tz`
get DEFAULT_TIME_ZONE (UTC). Nothing in this module mutates module state.

Functions:
    - dt_now_utc: Current time
    - as_utc / as_local: Timezone conversion
    - dt_parse_date / dt_parse / dt_to_utc / dt_to_iso: Parsing and normalization
    - dt_parse_time_of_day: Parse "HH:MM" strings
    - dt_with_time_of_day / dt_time_of_day: Wall-clock time helpers
    - dt_add_days / dt_add_months_on_day: Calendar arithmetic (local wall clock)
    - dt_days_between / dt_iso_weekday / dt_days_in_month: Calendar queries
"""

from __future__ import annotations

from calendar import monthrange
from datetime import UTC, date, datetime, time, timedelta
import logging
from typing import TYPE_CHECKING, cast
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

if TYPE_CHECKING:
    from datetime import tzinfo

_LOGGER = logging.getLogger(__name__)

# Zone used when a caller passes no tz
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# Return type constants
HELPER_RETURN_DATETIME = "datetime"
HELPER_RETURN_DATETIME_UTC = "datetime_utc"
HELPER_RETURN_DATE = "date"
HELPER_RETURN_ISO_DATETIME = "iso_datetime"
HELPER_RETURN_ISO_DATE = "iso_date"


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to UTC timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be local time.
        tz: Zone for naive values. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in UTC timezone
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=tz or DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be local time.
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=tz_info)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts formats:
    - "2025-04-07" (ISO format)
    - "04/07/2025" (US format)
    - "2025/04/07"

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: tzinfo | None = None,
    return_type: str | None = HELPER_RETURN_DATETIME,
) -> datetime | date | str | None:
    """Normalize various datetime input formats to a consistent format.

    Args:
        dt_input: String, date or datetime to normalize, or None
        default_tzinfo: Timezone to use if the input is naive
                        (defaults to DEFAULT_TIME_ZONE if None)
        return_type: One of the HELPER_RETURN_* constants

    Returns:
        Normalized datetime, date, or string based on return_type, or None if
        the input could not be parsed.

    Example:
        >>> dt_parse("2024-01-01T09:00:00Z", return_type=HELPER_RETURN_ISO_DATETIME)
        '2024-01-01T09:00:00+00:00'
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            parsed_date = dt_parse_date(dt_input)
            if parsed_date:
                result = datetime.combine(parsed_date, datetime.min.time())
            else:
                return None
    elif isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, datetime.min.time())
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)

    return dt_format(result, return_type)


def dt_to_utc(
    dt_input: str | datetime | None, tz: ZoneInfo | None = None
) -> datetime | None:
    """Parse a datetime string or value, apply `tz` if naive, convert to UTC.

    Example:
        "2025-04-07T14:30:00+02:00" → datetime.datetime(2025, 4, 7, 12, 30, tzinfo=UTC)
    """
    if not dt_input:
        return None

    result = dt_parse(
        dt_input,
        default_tzinfo=tz or DEFAULT_TIME_ZONE,
        return_type=HELPER_RETURN_DATETIME_UTC,
    )
    return cast("datetime | None", result)


def dt_to_iso(dt_obj: datetime) -> str:
    """Return the UTC ISO 8601 string used for persisted reminder timestamps."""
    return as_utc(dt_obj).isoformat()


def dt_format(
    dt_obj: datetime,
    return_type: str | None = HELPER_RETURN_DATETIME,
) -> datetime | date | str:
    """Format a datetime object according to the specified return_type.

    DATE and ISO_DATE read the calendar date in the datetime's own zone.
    """
    if return_type == HELPER_RETURN_DATETIME:
        return dt_obj
    if return_type == HELPER_RETURN_DATETIME_UTC:
        return as_utc(dt_obj)
    if return_type == HELPER_RETURN_DATE:
        return dt_obj.date()
    if return_type == HELPER_RETURN_ISO_DATETIME:
        return dt_obj.isoformat()
    if return_type == HELPER_RETURN_ISO_DATE:
        return dt_obj.date().isoformat()
    return dt_obj


def dt_parse_time_of_day(time_str: str | None) -> time | None:
    """Parse an "HH:MM" string (as stored on stream items) into a `time`.

    Returns:
        time(hour, minute) or None if the value is missing or malformed.

    Example:
        >>> dt_parse_time_of_day("06:45")
        datetime.time(6, 45)
    """
    if not time_str or not isinstance(time_str, str):
        return None

    try:
        hour_str, minute_str = time_str.strip().split(":")
        hour = int(hour_str)
        minute = int(minute_str)
    except (ValueError, AttributeError) as exc:
        _LOGGER.warning(
            "Invalid time of day: %s (expected HH:MM): %s", time_str, exc
        )
        return None

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        _LOGGER.warning("Invalid time of day: %s (out of range)", time_str)
        return None

    return time(hour, minute)


# ==============================================================================
# Wall-Clock Helpers
# ==============================================================================


def dt_time_of_day(dt_obj: datetime, tz: ZoneInfo | None = None) -> time:
    """Return the local wall-clock time of a datetime, without sub-seconds."""
    local_dt = as_local(dt_obj, tz)
    return time(local_dt.hour, local_dt.minute, local_dt.second)


def dt_with_time_of_day(
    dt_obj: datetime, time_of_day: time, tz: ZoneInfo | None = None
) -> datetime:
    """Return the same local calendar day with its wall-clock time replaced.

    The result stays in the local timezone; microseconds are dropped.
    """
    local_dt = as_local(dt_obj, tz)
    return local_dt.replace(
        hour=time_of_day.hour,
        minute=time_of_day.minute,
        second=time_of_day.second,
        microsecond=0,
    )


# ==============================================================================
# Calendar Arithmetic
# ==============================================================================


def dt_add_days(dt_obj: datetime, days: int, tz: ZoneInfo | None = None) -> datetime:
    """Add calendar days in local wall-clock time (DST keeps the clock reading)."""
    return as_local(dt_obj, tz) + timedelta(days=days)


def dt_add_months_on_day(
    dt_obj: datetime, months: int, day: int, tz: ZoneInfo | None = None
) -> datetime:
    """Move `months` forward and onto `day`, clamped to the month length.

    Uses relativedelta clamping (Jan 31 + 1 month on day 31 = Feb 28/29).

    Example:
        dt_add_months_on_day(datetime(2024, 1, 20, ...), 1, 31)
        → datetime(2024, 2, 29, ...)
    """
    return as_local(dt_obj, tz) + relativedelta(months=months, day=day)


def dt_days_between(
    start: datetime, end: datetime, tz: ZoneInfo | None = None
) -> int:
    """Count local calendar days from `start` to `end` (negative if reversed)."""
    return (as_local(end, tz).date() - as_local(start, tz).date()).days


def dt_iso_weekday(dt_obj: datetime, tz: ZoneInfo | None = None) -> int:
    """Return the local ISO weekday (1=Monday .. 7=Sunday)."""
    return as_local(dt_obj, tz).isoweekday()


def dt_days_in_month(dt_obj: datetime, tz: ZoneInfo | None = None) -> int:
    """Return the number of days in the local month of `dt_obj`."""
    local_dt = as_local(dt_obj, tz)
    return monthrange(local_dt.year, local_dt.month)[1]
