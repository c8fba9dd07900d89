"""Tests for utils/dt_utils.py - pure date/time helpers."""

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from remindstream.utils import dt_utils
from remindstream.utils.dt_utils import (
    HELPER_RETURN_DATE,
    HELPER_RETURN_ISO_DATE,
    HELPER_RETURN_ISO_DATETIME,
    as_local,
    as_utc,
    dt_add_days,
    dt_add_months_on_day,
    dt_days_between,
    dt_days_in_month,
    dt_iso_weekday,
    dt_now_utc,
    dt_parse,
    dt_parse_date,
    dt_parse_time_of_day,
    dt_time_of_day,
    dt_to_iso,
    dt_to_utc,
    dt_with_time_of_day,
)

# ============================================================================
# Timezone conversion
# ============================================================================


class TestTimezoneConversion:
    """Explicit zone arguments and the UTC fallback."""

    def test_as_local_uses_given_zone(self, local_tz: ZoneInfo) -> None:
        """12:00 UTC is 13:00 in Berlin in winter."""
        assert as_local(datetime(2024, 1, 1, 12, tzinfo=UTC), local_tz).hour == 13

    def test_without_zone_falls_back_to_utc(self) -> None:
        """No tz argument means UTC."""
        assert as_local(datetime(2024, 1, 1, 12, tzinfo=UTC)).hour == 12
        assert as_utc(datetime(2024, 1, 1, 12)) == datetime(2024, 1, 1, 12, tzinfo=UTC)

    def test_naive_values_are_local(self, local_tz: ZoneInfo) -> None:
        """Naive datetimes are read as wall-clock time in the given zone."""
        assert as_utc(datetime(2024, 1, 1, 12), local_tz) == datetime(
            2024, 1, 1, 11, tzinfo=UTC
        )

    def test_zone_arguments_leave_module_default_alone(
        self, local_tz: ZoneInfo
    ) -> None:
        """Passing a zone never changes the module fallback."""
        dt_add_days(datetime(2024, 1, 1, tzinfo=UTC), 1, local_tz)
        dt_to_utc("2024-01-01T09:00:00", local_tz)
        assert dt_utils.DEFAULT_TIME_ZONE == ZoneInfo("UTC")


# ============================================================================
# Clock
# ============================================================================


class TestClock:
    """Current time helpers."""

    @freeze_time("2024-03-10 23:30:00", tz_offset=0)
    def test_now_utc_is_aware(self) -> None:
        """dt_now_utc returns an aware UTC datetime."""
        now = dt_now_utc()
        assert now.utcoffset().total_seconds() == 0
        assert (now.hour, now.minute) == (23, 30)


# ============================================================================
# Parsing
# ============================================================================


class TestParsing:
    """String parsing and normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2025-04-07", date(2025, 4, 7)),
            ("04/07/2025", date(2025, 4, 7)),
            ("2025/04/07", date(2025, 4, 7)),
            ("not a date", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_date(self, value: str | None, expected: date | None) -> None:
        """Several date formats are accepted."""
        assert dt_parse_date(value) == expected

    def test_to_utc_from_offset_string(self) -> None:
        """Offset strings are converted to UTC."""
        assert dt_to_utc("2025-04-07T14:30:00+02:00") == datetime(
            2025, 4, 7, 12, 30, tzinfo=UTC
        )

    def test_to_utc_accepts_z_suffix(self) -> None:
        """The Z suffix written by JavaScript clients parses."""
        assert dt_to_utc("2024-01-01T09:00:00.000Z") == datetime(
            2024, 1, 1, 9, tzinfo=UTC
        )

    def test_to_utc_naive_string_uses_zone(self, local_tz: ZoneInfo) -> None:
        """A naive string is wall-clock time in the given zone."""
        assert dt_to_utc("2024-07-01T09:00:00", local_tz) == datetime(
            2024, 7, 1, 7, tzinfo=UTC
        )

    def test_to_utc_invalid(self) -> None:
        """Garbage yields None."""
        assert dt_to_utc("yesterday-ish") is None
        assert dt_to_utc(None) is None

    def test_parse_return_types(self, local_tz: ZoneInfo) -> None:
        """return_type selects the output shape; dates follow the value's zone."""
        value = "2024-01-01T09:00:00+00:00"
        assert dt_parse(value, return_type=HELPER_RETURN_DATE) == date(2024, 1, 1)
        assert dt_parse(value, return_type=HELPER_RETURN_ISO_DATE) == "2024-01-01"
        assert (
            dt_parse("2024-01-01T09:00:00Z", return_type=HELPER_RETURN_ISO_DATETIME)
            == "2024-01-01T09:00:00+00:00"
        )
        late = as_local(datetime(2024, 1, 1, 23, 30, tzinfo=UTC), local_tz)
        assert dt_parse(late, return_type=HELPER_RETURN_ISO_DATE) == "2024-01-02"

    def test_to_iso_is_utc(self, local_tz: ZoneInfo) -> None:
        """Persisted timestamps are always UTC ISO strings."""
        value = datetime(2024, 7, 1, 9, 0, tzinfo=local_tz)
        assert dt_to_iso(value) == "2024-07-01T07:00:00+00:00"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("06:45", time(6, 45)),
            ("00:00", time(0, 0)),
            ("23:59", time(23, 59)),
            ("24:00", None),
            ("7", None),
            ("aa:bb", None),
            (None, None),
        ],
    )
    def test_parse_time_of_day(self, value: str | None, expected: time | None) -> None:
        """HH:MM strings parse; out-of-range or malformed values do not."""
        assert dt_parse_time_of_day(value) == expected


# ============================================================================
# Wall clock and calendar arithmetic
# ============================================================================


class TestCalendar:
    """Calendar arithmetic in an explicit zone."""

    def test_with_time_of_day_drops_microseconds(self) -> None:
        """Time replaced, sub-seconds removed."""
        value = datetime(2024, 1, 1, 3, 4, 5, 678, tzinfo=UTC)
        result = dt_with_time_of_day(value, time(9, 30))
        assert result == datetime(2024, 1, 1, 9, 30, tzinfo=UTC)

    def test_time_of_day_is_read_in_zone(self, local_tz: ZoneInfo) -> None:
        """08:15:30 UTC reads as 09:15:30 in Berlin in winter."""
        value = datetime(2024, 1, 1, 8, 15, 30, tzinfo=UTC)
        assert dt_time_of_day(value) == time(8, 15, 30)
        assert dt_time_of_day(value, local_tz) == time(9, 15, 30)

    def test_add_days_keeps_wall_clock_over_dst(self, local_tz: ZoneInfo) -> None:
        """Adding a day over spring-forward keeps 09:00 local (23h elapsed)."""
        start = datetime(2024, 3, 30, 9, 0, tzinfo=local_tz)
        result = dt_add_days(start, 1, local_tz)
        assert result.hour == 9
        assert as_utc(result) == datetime(2024, 3, 31, 7, 0, tzinfo=UTC)

    @pytest.mark.parametrize(
        ("start", "months", "day", "expected"),
        [
            (datetime(2024, 1, 20, tzinfo=UTC), 1, 31, datetime(2024, 2, 29, tzinfo=UTC)),
            (datetime(2023, 1, 20, tzinfo=UTC), 1, 31, datetime(2023, 2, 28, tzinfo=UTC)),
            (datetime(2024, 3, 1, tzinfo=UTC), 1, 31, datetime(2024, 4, 30, tzinfo=UTC)),
            (datetime(2024, 11, 5, tzinfo=UTC), 2, 15, datetime(2025, 1, 15, tzinfo=UTC)),
            (datetime(2024, 2, 1, tzinfo=UTC), 0, 31, datetime(2024, 2, 29, tzinfo=UTC)),
        ],
    )
    def test_add_months_on_day_clamps(
        self, start: datetime, months: int, day: int, expected: datetime
    ) -> None:
        """Target day is clamped to the month's length."""
        assert dt_add_months_on_day(start, months, day) == expected

    def test_days_between_uses_local_dates(self, local_tz: ZoneInfo) -> None:
        """22:30 and 23:30 UTC fall on consecutive Berlin dates."""
        start = datetime(2024, 1, 1, 22, 30, tzinfo=UTC)  # Jan 1 23:30 Berlin
        end = datetime(2024, 1, 1, 23, 30, tzinfo=UTC)  # Jan 2 00:30 Berlin
        assert dt_days_between(start, end, local_tz) == 1
        assert dt_days_between(end, start, local_tz) == -1
        assert dt_days_between(start, end) == 0

    def test_iso_weekday_and_month_length(self, local_tz: ZoneInfo) -> None:
        """ISO weekday numbering and month length."""
        monday = datetime(2024, 1, 1, 12, tzinfo=UTC)
        assert dt_iso_weekday(monday) == 1
        assert dt_iso_weekday(datetime(2024, 1, 7, 12, tzinfo=UTC)) == 7
        assert dt_days_in_month(datetime(2024, 2, 10, tzinfo=UTC)) == 29
        # Jan 31 23:30 UTC is already February in Berlin
        assert dt_days_in_month(datetime(2024, 1, 31, 23, 30, tzinfo=UTC), local_tz) == 29
