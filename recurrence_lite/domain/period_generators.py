"""Recurrence kind registry and period generators for recurrence_lite.

Every generator is a pure function ``advance(cursor, params) -> datetime``
returning the start of the next period. Cursors are timezone-aware datetimes
and the arithmetic is wall-clock arithmetic in the cursor's own zone, so a
weekly 09:00 meeting stays at 09:00 across DST changes.

Usage:
    generator = get_period_generator("monthlySpecific")
    params = PeriodParams.from_series(series)
    next_start = generator(series.start, params)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from recurrence_lite.calendar.lite_datetime_utils import calendar_weekday
from recurrence_lite.calendar.lite_models import LiteRecurrenceSeries, RecurrenceKind
from recurrence_lite.lite_exceptions import LiteUnsupportedRecurrenceError

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)

# Python weekday() numbers of Saturday and Sunday
WEEKEND = (5, 6)


@dataclass(frozen=True)
class PeriodParams:
    """Kind parameters derived once from a series anchor."""

    kind: RecurrenceKind
    anchor_day: int = 1  # day of month the monthly/yearly kinds re-anchor on
    weekdays: tuple[int, ...] = ()  # customWeekly, 1=Sunday .. 7=Saturday
    weekday: int = 0  # monthlySpecific weekday, Python numbering (Monday=0)
    ordinal: int = 1  # monthlySpecific N in "Nth weekday of month"

    @classmethod
    def from_series(cls, series: LiteRecurrenceSeries) -> PeriodParams:
        anchor = series.start
        return cls(
            kind=series.kind,
            anchor_day=anchor.day,
            weekdays=series.weekdays,
            weekday=anchor.weekday(),
            ordinal=weekday_ordinal(anchor),
        )


PeriodGenerator = Callable[[datetime, PeriodParams], datetime]


def weekday_ordinal(anchor: datetime) -> int:
    """Count matches of the anchor's weekday from day 1 up to the anchor day.

    >>> weekday_ordinal(datetime(2024, 9, 20))  # third Friday of September
    3
    """
    return (anchor.day - 1) // 7 + 1


def nth_weekday_of_month(month_start: datetime, weekday: int, ordinal: int) -> datetime:
    """Return the ordinal-th ``weekday`` of the month starting at ``month_start``.

    Months with fewer matches fall back to the last match, so "5th Monday"
    degrades to "last Monday". The time of day of ``month_start`` is kept.
    """
    matches: list[datetime] = []
    day = month_start
    while day.month == month_start.month:
        if day.weekday() == weekday:
            matches.append(day)
            if len(matches) == ordinal:
                break
        day += ONE_DAY
    return matches[-1]


def advance_daily(cursor: datetime, params: PeriodParams) -> datetime:
    return cursor + ONE_DAY


def advance_workdays(cursor: datetime, params: PeriodParams) -> datetime:
    """Next Monday..Friday strictly after the cursor."""
    nxt = cursor + ONE_DAY
    while nxt.weekday() in WEEKEND:
        nxt += ONE_DAY
    return nxt


def advance_weekly(cursor: datetime, params: PeriodParams) -> datetime:
    return cursor + ONE_WEEK


def advance_biweekly(cursor: datetime, params: PeriodParams) -> datetime:
    return cursor + 2 * ONE_WEEK


def advance_custom_weekly(cursor: datetime, params: PeriodParams) -> datetime:
    """Next listed weekday after the cursor, wrapping into the following week."""
    for offset in range(1, 8):
        candidate = cursor + timedelta(days=offset)
        if calendar_weekday(candidate) in params.weekdays:
            return candidate
    # PeriodParams without weekdays: behave like plain weekly
    return cursor + ONE_WEEK


def advance_monthly(cursor: datetime, params: PeriodParams) -> datetime:
    """Same day of the next month, clipped to short months and re-anchored."""
    return cursor + relativedelta(months=1, day=params.anchor_day)


def advance_monthly_specific(cursor: datetime, params: PeriodParams) -> datetime:
    """Nth weekday of the following month."""
    month_start = cursor + relativedelta(months=1, day=1)
    return nth_weekday_of_month(month_start, params.weekday, params.ordinal)


def advance_yearly(cursor: datetime, params: PeriodParams) -> datetime:
    return cursor + relativedelta(years=1, day=params.anchor_day)


PERIOD_GENERATORS: dict[RecurrenceKind, PeriodGenerator] = {
    RecurrenceKind.DAILY: advance_daily,
    RecurrenceKind.WORKDAYS: advance_workdays,
    RecurrenceKind.WEEKLY: advance_weekly,
    RecurrenceKind.BIWEEKLY: advance_biweekly,
    RecurrenceKind.CUSTOM_WEEKLY: advance_custom_weekly,
    RecurrenceKind.MONTHLY: advance_monthly,
    RecurrenceKind.MONTHLY_SPECIFIC: advance_monthly_specific,
    RecurrenceKind.YEARLY: advance_yearly,
}

# Kinds whose period has a fixed length in days
FIXED_PERIODS: dict[RecurrenceKind, timedelta] = {
    RecurrenceKind.DAILY: ONE_DAY,
    RecurrenceKind.WEEKLY: ONE_WEEK,
    RecurrenceKind.BIWEEKLY: 2 * ONE_WEEK,
}


def get_period_generator(kind: RecurrenceKind | str) -> PeriodGenerator:
    """Look up the period generator for a recurrence kind.

    Args:
        kind: RecurrenceKind member or its string tag (e.g. "customWeekly")

    Returns:
        The kind's advance function

    Raises:
        LiteUnsupportedRecurrenceError: If the tag is not a registered kind
    """
    try:
        return PERIOD_GENERATORS[RecurrenceKind(kind)]
    except (ValueError, KeyError) as e:
        raise LiteUnsupportedRecurrenceError(f"Unsupported recurrence kind: {kind!r}") from e


def jump_towards(cursor: datetime, params: PeriodParams, target: datetime) -> datetime:
    """Move the cursor by whole periods to a period start not after ``target``.

    Used by the expander to skip far-away periods without stepping through
    each one. The result stays on the series' lattice of period starts and
    may still be a few periods short of ``target``; customWeekly is never
    jumped here.
    """
    if target <= cursor:
        return cursor

    kind = params.kind
    if kind in FIXED_PERIODS:
        periods = (target - cursor) // FIXED_PERIODS[kind] - 1
        if periods > 0:
            return cursor + periods * FIXED_PERIODS[kind]
    elif kind == RecurrenceKind.WORKDAYS:
        weeks = (target - cursor).days // 7 - 1
        if weeks > 0:
            return cursor + weeks * ONE_WEEK
    elif kind in (RecurrenceKind.MONTHLY, RecurrenceKind.MONTHLY_SPECIFIC):
        months = (target.year - cursor.year) * 12 + target.month - cursor.month - 1
        if months > 0:
            if kind == RecurrenceKind.MONTHLY:
                return cursor + relativedelta(months=months, day=params.anchor_day)
            month_start = cursor + relativedelta(months=months, day=1)
            return nth_weekday_of_month(month_start, params.weekday, params.ordinal)
    elif kind == RecurrenceKind.YEARLY:
        years = target.year - cursor.year - 1
        if years > 0:
            return cursor + relativedelta(years=years, day=params.anchor_day)
    return cursor


def first_period_start(series: LiteRecurrenceSeries, params: PeriodParams) -> datetime:
    """Return the first period start on or after the anchor.

    The anchor itself unless it does not match the kind: a workdays anchor on
    a weekend moves to the next Monday, a customWeekly anchor on an unlisted
    weekday moves to the next listed one.
    """
    cursor = series.start
    if series.kind == RecurrenceKind.WORKDAYS and cursor.weekday() in WEEKEND:
        return advance_workdays(cursor, params)
    if series.kind == RecurrenceKind.CUSTOM_WEEKLY and calendar_weekday(cursor) not in params.weekdays:
        return advance_custom_weekly(cursor, params)
    return cursor


def iter_period_starts(series: LiteRecurrenceSeries) -> Iterator[datetime]:
    """Lazily yield period starts of a series, beginning at its first period start.

    The sequence is unbounded; callers bound it (see window_expander).
    """
    params = PeriodParams.from_series(series)
    generator = get_period_generator(series.kind)

    cursor = first_period_start(series, params)

    while True:
        yield cursor
        cursor = generator(cursor, params)
