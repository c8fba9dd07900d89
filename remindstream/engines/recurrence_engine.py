"""Recurrence Engine for RemindStream.

Computes the next fire time of a reminder from its recurrence rule, its anchor
(original due time) and a reference instant:

- Sub-daily rules (HOURLY, MINUTELY) are stepped in absolute time after
  aligning minutes/seconds to the anchor.
- Day-granularity rules (DAILY, WEEKLY, WEEKDAYS, MONTHLY) search candidate
  days carrying the anchor's wall-clock time, phase-locked to the anchor.
- `dateutil.relativedelta` handles month arithmetic with clamping
  (day 31 in February = Feb 28/29).

ARCHITECTURE: This is a pure logic engine. It never reads the clock or any
module-level zone; callers pass the reference instant and the user's zone
explicitly. State management belongs in
ReminderManager.

IMPORTANT: This module must NOT import from managers to avoid circular imports.
Only import from const.py and utils.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import ClassVar
from zoneinfo import ZoneInfo

from .. import const
from ..utils.dt_utils import (
    as_local,
    as_utc,
    dt_add_days,
    dt_add_months_on_day,
    dt_days_between,
    dt_days_in_month,
    dt_iso_weekday,
    dt_time_of_day,
    dt_with_time_of_day,
)


class InvalidRecurrenceError(ValueError):
    """Raised when a recurrence rule is constructed with out-of-range fields.

    Attributes:
        kind: Recurrence kind being constructed
        field_name: Name of the offending field
        value: The rejected value
    """

    def __init__(self, kind: str, field_name: str, value: object) -> None:
        """Initialize InvalidRecurrenceError."""
        self.kind = kind
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid {field_name} for {kind} recurrence: {value!r}")


def _is_int(value: object) -> bool:
    """Return True for real integers (bool is rejected)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _check_interval(kind: str, interval: object) -> None:
    if not _is_int(interval) or interval < const.MIN_INTERVAL:  # type: ignore[operator]
        raise InvalidRecurrenceError(kind, const.DATA_RECURRENCE_INTERVAL, interval)


# =============================================================================
# RECURRENCE RULES (one frozen dataclass per kind)
# =============================================================================


@dataclass(frozen=True)
class NoRecurrence:
    """One-shot reminder: there is no next occurrence."""

    kind: ClassVar[str] = const.RECURRENCE_NONE
    interval: ClassVar[int] = 1


@dataclass(frozen=True)
class DailyRule:
    """Every `interval` days, phase-locked to the anchor date."""

    interval: int = 1
    kind: ClassVar[str] = const.RECURRENCE_DAILY

    def __post_init__(self) -> None:
        _check_interval(self.kind, self.interval)


@dataclass(frozen=True)
class WeeklyRule:
    """Every `interval` weeks on the given ISO weekdays.

    An empty `weekdays` set means "the anchor's weekday".
    """

    interval: int = 1
    weekdays: frozenset[int] = field(default_factory=frozenset)
    kind: ClassVar[str] = const.RECURRENCE_WEEKLY

    def __post_init__(self) -> None:
        _check_interval(self.kind, self.interval)
        if not isinstance(self.weekdays, Iterable) or isinstance(self.weekdays, str):
            raise InvalidRecurrenceError(
                self.kind, const.DATA_RECURRENCE_WEEKDAYS, self.weekdays
            )
        weekdays = frozenset(self.weekdays)
        for day in weekdays:
            if not _is_int(day) or not const.ISO_MONDAY <= day <= const.ISO_SUNDAY:
                raise InvalidRecurrenceError(
                    self.kind, const.DATA_RECURRENCE_WEEKDAYS, day
                )
        # Frozen dataclass: normalize lists/sets to frozenset in place
        object.__setattr__(self, "weekdays", weekdays)


@dataclass(frozen=True)
class WeekdaysRule:
    """Monday to Friday. The interval is never honored for this kind."""

    kind: ClassVar[str] = const.RECURRENCE_WEEKDAYS
    interval: ClassVar[int] = 1


@dataclass(frozen=True)
class MonthlyRule:
    """On `day_of_month` (or the anchor's day) of each month.

    Matching ignores `interval`; only the month jump uses it.
    """

    interval: int = 1
    day_of_month: int | None = None
    kind: ClassVar[str] = const.RECURRENCE_MONTHLY

    def __post_init__(self) -> None:
        _check_interval(self.kind, self.interval)
        if self.day_of_month is None:
            return
        if (
            not _is_int(self.day_of_month)
            or not const.MIN_DAY_OF_MONTH <= self.day_of_month <= const.MAX_DAY_OF_MONTH
        ):
            raise InvalidRecurrenceError(
                self.kind, const.DATA_RECURRENCE_DAY_OF_MONTH, self.day_of_month
            )


@dataclass(frozen=True)
class HourlyRule:
    """Every `interval` hours at the anchor's minute and second."""

    interval: int = 1
    kind: ClassVar[str] = const.RECURRENCE_HOURLY

    def __post_init__(self) -> None:
        _check_interval(self.kind, self.interval)


@dataclass(frozen=True)
class MinutelyRule:
    """Every `interval` minutes at the anchor's second."""

    interval: int = 1
    kind: ClassVar[str] = const.RECURRENCE_MINUTELY

    def __post_init__(self) -> None:
        _check_interval(self.kind, self.interval)


RecurrenceRule = (
    NoRecurrence
    | DailyRule
    | WeeklyRule
    | WeekdaysRule
    | MonthlyRule
    | HourlyRule
    | MinutelyRule
)

RULE_TYPES: dict[str, type[RecurrenceRule]] = {
    const.RECURRENCE_NONE: NoRecurrence,
    const.RECURRENCE_DAILY: DailyRule,
    const.RECURRENCE_WEEKLY: WeeklyRule,
    const.RECURRENCE_WEEKDAYS: WeekdaysRule,
    const.RECURRENCE_MONTHLY: MonthlyRule,
    const.RECURRENCE_HOURLY: HourlyRule,
    const.RECURRENCE_MINUTELY: MinutelyRule,
}


@dataclass(frozen=True)
class NextFireResult:
    """Outcome of a next-fire computation.

    Attributes:
        fire_at: The computed instant (UTC), or the anchor for NoRecurrence
        used_fallback: True when the search limit was hit and `fire_at` is
            the "reference + 1 day" fallback rather than a rule match
    """

    fire_at: datetime
    used_fallback: bool = False


# =============================================================================
# PUBLIC API
# =============================================================================


def compute_next_fire_at(
    rule: RecurrenceRule,
    anchor: datetime,
    reference: datetime,
    tz: ZoneInfo | None = None,
) -> datetime:
    """Compute the next occurrence of `rule` strictly after `reference`.

    Args:
        rule: Recurrence rule of the reminder.
        anchor: Original due time; supplies time-of-day and interval phase.
        reference: Instant the next occurrence must follow (usually "now").
        tz: Zone whose calendar the rule is read in (UTC when omitted).

    Returns:
        UTC datetime strictly after `reference`, or `anchor` unchanged when
        the rule is NoRecurrence.
    """
    return resolve_next_fire(rule, anchor, reference, tz).fire_at


def resolve_next_fire(
    rule: RecurrenceRule,
    anchor: datetime,
    reference: datetime,
    tz: ZoneInfo | None = None,
) -> NextFireResult:
    """Compute the next occurrence and report whether the fallback was used."""
    const.LOGGER.debug(
        "RecurrenceEngine: next fire for %s (anchor=%s, reference=%s, tz=%s)",
        rule,
        anchor,
        reference,
        tz,
    )

    if isinstance(rule, NoRecurrence):
        return NextFireResult(fire_at=anchor)

    anchor_utc = as_utc(anchor, tz)
    reference_utc = as_utc(reference, tz)

    if rule.kind in const.SUB_DAILY_KINDS:
        return NextFireResult(
            fire_at=_next_sub_daily(rule, anchor_utc, reference_utc, tz)
        )
    return _next_day_granularity(rule, anchor_utc, reference_utc, tz)


def matches_rule(
    candidate: datetime,
    rule: RecurrenceRule,
    anchor: datetime,
    tz: ZoneInfo | None = None,
) -> bool:
    """Check whether the candidate's local calendar day satisfies the rule.

    Args:
        candidate: Candidate datetime (any timezone).
        rule: Day-granularity recurrence rule.
        anchor: Anchor datetime (phase origin).
        tz: Zone whose calendar days are compared (UTC when omitted).

    Returns:
        True if the candidate day is an occurrence day of the rule.
    """
    if isinstance(rule, DailyRule):
        if rule.interval == 1:
            return True
        return dt_days_between(anchor, candidate, tz) % rule.interval == 0

    if isinstance(rule, WeekdaysRule):
        return const.ISO_MONDAY <= dt_iso_weekday(candidate, tz) <= const.ISO_FRIDAY

    if isinstance(rule, WeeklyRule):
        target_days = rule.weekdays or frozenset({dt_iso_weekday(anchor, tz)})
        if dt_iso_weekday(candidate, tz) not in target_days:
            return False
        return _week_in_phase(candidate, rule.interval, anchor, tz)

    if isinstance(rule, MonthlyRule):
        return as_local(candidate, tz).day == _effective_month_day(
            candidate, rule, anchor, tz
        )

    return False


def advance_candidate(
    candidate: datetime,
    rule: RecurrenceRule,
    anchor: datetime,
    tz: ZoneInfo | None = None,
) -> datetime:
    """Advance a non-matching candidate to the next day that could match.

    From a phase-aligned candidate this is the plain step for the kind
    (+interval days, +interval weeks, +interval months, +1 day). From an
    off-phase candidate it jumps straight to the next aligned position so the
    search always terminates.

    Returns:
        Advanced datetime (`tz` for day rules, UTC for sub-daily).
    """
    if isinstance(rule, HourlyRule):
        return as_utc(candidate, tz) + timedelta(hours=rule.interval)
    if isinstance(rule, MinutelyRule):
        return as_utc(candidate, tz) + timedelta(minutes=rule.interval)

    if isinstance(rule, MonthlyRule):
        target_day = _target_month_day(rule, anchor, tz)
        candidate_day = as_local(candidate, tz).day
        if _effective_month_day(candidate, rule, anchor, tz) > candidate_day:
            return dt_add_months_on_day(candidate, 0, target_day, tz)
        return dt_add_months_on_day(candidate, rule.interval, target_day, tz)

    if isinstance(rule, WeeklyRule):
        if not rule.weekdays:
            return _next_period_multiple(
                candidate, anchor, rule.interval * const.DAYS_PER_WEEK, tz
            )
        next_day = dt_add_days(candidate, 1, tz)
        if _week_in_phase(next_day, rule.interval, anchor, tz):
            return next_day
        week = dt_days_between(anchor, next_day, tz) // const.DAYS_PER_WEEK
        aligned_week = week + rule.interval - week % rule.interval
        return dt_add_days(anchor, aligned_week * const.DAYS_PER_WEEK, tz)

    if isinstance(rule, DailyRule):
        return _next_period_multiple(candidate, anchor, rule.interval, tz)

    return dt_add_days(candidate, rule.interval, tz)


# =============================================================================
# RECURRENCE ENGINE (object facade)
# =============================================================================


class RecurrenceEngine:
    """Bind a rule to an anchor and answer next-occurrence queries.

    Example:
        engine = RecurrenceEngine(DailyRule(interval=3), anchor, user_tz)
        engine.next_fire_at(reference)
    """

    def __init__(
        self, rule: RecurrenceRule, anchor: datetime, tz: ZoneInfo | None = None
    ) -> None:
        """Initialize the engine with a validated rule, its anchor and zone."""
        self._rule = rule
        self._anchor = anchor
        self._tz = tz

    @property
    def rule(self) -> RecurrenceRule:
        """Return the bound rule."""
        return self._rule

    @property
    def anchor(self) -> datetime:
        """Return the bound anchor."""
        return self._anchor

    @property
    def timezone(self) -> ZoneInfo | None:
        """Return the bound zone (None means UTC)."""
        return self._tz

    def next_fire_at(self, reference: datetime) -> datetime:
        """Next occurrence strictly after `reference`."""
        return compute_next_fire_at(self._rule, self._anchor, reference, self._tz)

    def resolve(self, reference: datetime) -> NextFireResult:
        """Next occurrence with the fallback flag."""
        return resolve_next_fire(self._rule, self._anchor, reference, self._tz)

    def get_occurrences(
        self, start: datetime, end: datetime, limit: int = 100
    ) -> list[datetime]:
        """Generate occurrences in (start, end] by repeated application.

        Each result becomes the reference for the next computation.

        Args:
            start: Range start (exclusive).
            end: Range end (inclusive).
            limit: Maximum occurrences to return (safety limit).

        Returns:
            List of occurrence datetimes (UTC), strictly increasing.
        """
        if isinstance(self._rule, NoRecurrence):
            return []

        occurrences: list[datetime] = []
        end_utc = as_utc(end, self._tz)
        current = self.next_fire_at(start)

        while current <= end_utc and len(occurrences) < limit:
            occurrences.append(current)
            current = self.next_fire_at(current)

        return occurrences


# =============================================================================
# Private helpers
# =============================================================================


def _next_sub_daily(
    rule: HourlyRule | MinutelyRule,
    anchor_utc: datetime,
    reference_utc: datetime,
    tz: ZoneInfo | None,
) -> datetime:
    """Align to the anchor's minute/second, then step past the reference."""
    anchor_local = as_local(anchor_utc, tz)
    candidate_local = as_local(max(reference_utc, anchor_utc), tz)

    if isinstance(rule, HourlyRule):
        unit = timedelta(hours=1)
        candidate_local = candidate_local.replace(
            minute=anchor_local.minute, second=anchor_local.second, microsecond=0
        )
    else:
        unit = timedelta(minutes=1)
        candidate_local = candidate_local.replace(
            second=anchor_local.second, microsecond=0
        )

    candidate = as_utc(candidate_local)
    if candidate <= reference_utc:
        candidate = candidate + unit

    while candidate <= reference_utc:
        candidate = advance_candidate(candidate, rule, anchor_utc, tz)

    return candidate


def _next_day_granularity(
    rule: RecurrenceRule,
    anchor_utc: datetime,
    reference_utc: datetime,
    tz: ZoneInfo | None,
) -> NextFireResult:
    """Search day by day (bounded) for the first matching candidate."""
    time_of_day = dt_time_of_day(anchor_utc, tz)

    candidate = dt_with_time_of_day(max(reference_utc, anchor_utc), time_of_day, tz)
    if as_utc(candidate) <= reference_utc:
        candidate = dt_with_time_of_day(
            dt_add_days(candidate, 1, tz), time_of_day, tz
        )

    for _ in range(const.MAX_RECURRENCE_ITERATIONS):
        if matches_rule(candidate, rule, anchor_utc, tz):
            return NextFireResult(fire_at=as_utc(candidate))
        candidate = dt_with_time_of_day(
            advance_candidate(candidate, rule, anchor_utc, tz), time_of_day, tz
        )

    fallback = reference_utc + timedelta(days=const.FALLBACK_DAYS)
    const.LOGGER.warning(
        "RecurrenceEngine: Max iterations reached for %s (anchor=%s), "
        "falling back to %s",
        rule,
        anchor_utc,
        fallback,
    )
    return NextFireResult(fire_at=fallback, used_fallback=True)


def _week_in_phase(
    candidate: datetime, interval: int, anchor: datetime, tz: ZoneInfo | None
) -> bool:
    """Weeks counted from the anchor date must be a multiple of `interval`."""
    if interval == 1:
        return True
    weeks = dt_days_between(anchor, candidate, tz) // const.DAYS_PER_WEEK
    return weeks % interval == 0


def _next_period_multiple(
    candidate: datetime, anchor: datetime, period_days: int, tz: ZoneInfo | None
) -> datetime:
    """First day after `candidate` that is a whole number of periods from the anchor."""
    elapsed = dt_days_between(anchor, candidate, tz)
    return dt_add_days(anchor, (elapsed // period_days + 1) * period_days, tz)


def _target_month_day(
    rule: MonthlyRule, anchor: datetime, tz: ZoneInfo | None
) -> int:
    return rule.day_of_month or as_local(anchor, tz).day


def _effective_month_day(
    candidate: datetime, rule: MonthlyRule, anchor: datetime, tz: ZoneInfo | None
) -> int:
    """Target day clamped to the candidate month's length."""
    return min(_target_month_day(rule, anchor, tz), dt_days_in_month(candidate, tz))
