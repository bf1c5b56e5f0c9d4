"""Window-bounded expansion of recurrence series into raw occurrences.

The expander walks a series from its anchor with the kind's period generator
and emits every occurrence that overlaps ``[date_from, date_to]`` clipped to
the series bounds. Two limits keep every call finite:

- at most ``max_instances`` occurrences are emitted; hitting the cap is a
  truncation (logged, ``truncated=True``), not an error
- the skip phase that walks up to the window is counted against
  ``SKIP_BUDGET`` after jumping over whole periods where the kind allows it
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from recurrence_lite.calendar.lite_datetime_utils import calendar_weekday, ensure_timezone_aware
from recurrence_lite.calendar.lite_models import (
    LiteExpansionResult,
    LiteOccurrence,
    LiteRecurrenceSeries,
    RecurrenceKind,
)

from .period_generators import (
    ONE_WEEK,
    PeriodParams,
    first_period_start,
    get_period_generator,
    jump_towards,
)

logger = logging.getLogger(__name__)

# Global safety cap on raw occurrences per expansion call
MAX_INSTANCES = 1000

# Generator steps allowed between the (jumped) anchor and the window start
SKIP_BUDGET = 10_000


def effective_window(
    series: LiteRecurrenceSeries, date_from: datetime, date_to: datetime
) -> tuple[datetime, datetime]:
    """Clip the query window to the series' first/last instance bounds."""
    start = ensure_timezone_aware(date_from)
    end = ensure_timezone_aware(date_to)
    if series.first_instance is not None and series.first_instance > start:
        start = series.first_instance
    if series.last_instance is not None and series.last_instance < end:
        end = series.last_instance
    return start, end


def expand(
    series: LiteRecurrenceSeries,
    date_from: datetime,
    date_to: datetime,
    max_instances: int = MAX_INSTANCES,
) -> LiteExpansionResult:
    """Expand a series into the raw occurrences overlapping a window.

    Args:
        series: Series to expand
        date_from: Inclusive window start; occurrences ending before it are skipped
        date_to: Inclusive bound for occurrence starts
        max_instances: Cap on emitted occurrences

    Returns:
        LiteExpansionResult with occurrences ascending by start
    """
    window_start, window_end = effective_window(series, date_from, date_to)
    if window_start > window_end:
        logger.debug(
            "Series %s: effective window is empty (%s > %s)",
            series.series_id,
            window_start,
            window_end,
        )
        return LiteExpansionResult(series_id=series.series_id)

    if series.kind == RecurrenceKind.CUSTOM_WEEKLY:
        return _expand_custom_weekly(series, window_start, window_end, max_instances)

    params = PeriodParams.from_series(series)
    generator = get_period_generator(series.kind)
    duration = series.duration

    cursor = _skip_to_window(series, params, window_start, duration)
    if cursor is None:
        return LiteExpansionResult(series_id=series.series_id, truncated=True)

    occurrences: list[LiteOccurrence] = []
    truncated = False
    while cursor <= window_end:
        if len(occurrences) >= max_instances:
            truncated = True
            break
        occurrences.append(LiteOccurrence(start=cursor, end=cursor + duration))
        cursor = generator(cursor, params)

    if truncated:
        _log_truncation(series, max_instances)
    return LiteExpansionResult(
        series_id=series.series_id, occurrences=occurrences, truncated=truncated
    )


def _skip_to_window(
    series: LiteRecurrenceSeries,
    params: PeriodParams,
    window_start: datetime,
    duration: timedelta,
) -> Optional[datetime]:
    """Advance from the first period start to the first occurrence not ending before the window.

    Returns None when the skip budget runs out.
    """
    generator = get_period_generator(params.kind)
    cursor = first_period_start(series, params)
    if cursor + duration < window_start:
        cursor = jump_towards(cursor, params, window_start - duration)

    steps = 0
    while cursor + duration < window_start:
        steps += 1
        if steps > SKIP_BUDGET:
            logger.warning(
                "Series %s: gave up skipping to %s after %d periods",
                series.series_id,
                window_start,
                SKIP_BUDGET,
            )
            return None
        cursor = generator(cursor, params)
    return cursor


def _expand_custom_weekly(
    series: LiteRecurrenceSeries,
    window_start: datetime,
    window_end: datetime,
    max_instances: int,
) -> LiteExpansionResult:
    """Emit one occurrence per listed weekday per week.

    Weeks run Sunday..Saturday. Each candidate must start inside the window,
    end inside the window and not precede the anchor.
    """
    anchor = series.start
    duration = series.duration

    # Sunday of the anchor's week, at the anchor's time of day
    week_start = anchor - timedelta(days=calendar_weekday(anchor) - 1)

    # skip whole weeks whose Saturday ends before the window
    weeks = (window_start - week_start).days // 7 - 1
    if weeks > 0:
        week_start += weeks * ONE_WEEK

    occurrences: list[LiteOccurrence] = []
    truncated = False
    while week_start <= window_end and not truncated:
        for day in series.weekdays:
            start = week_start + timedelta(days=day - 1)
            end = start + duration
            if start < anchor or start < window_start or end > window_end:
                continue
            if len(occurrences) >= max_instances:
                truncated = True
                break
            occurrences.append(LiteOccurrence(start=start, end=end))
        week_start += ONE_WEEK

    if truncated:
        _log_truncation(series, max_instances)
    return LiteExpansionResult(
        series_id=series.series_id, occurrences=occurrences, truncated=truncated
    )


def _log_truncation(series: LiteRecurrenceSeries, max_instances: int) -> None:
    logger.info(
        "Series %s: expansion truncated at %d instances (kind=%s)",
        series.series_id,
        max_instances,
        series.kind.value,
    )
