"""Occurrence pipeline: expansion, exception overlay and instance completion.

Usage:
    pipeline = LiteOccurrencePipeline(max_instances=500)
    result = pipeline.materialize(series, date_from, date_to, deletions, modifications)

    # several series merged in ascending start order
    result = pipeline.materialize_many([LiteSeriesRequest(series=a), LiteSeriesRequest(series=b)], date_from)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from recurrence_lite.calendar.lite_datetime_utils import ensure_timezone_aware
from recurrence_lite.calendar.lite_models import (
    LiteEventInstance,
    LiteExceptionState,
    LiteMaterializationResult,
    LiteOccurrence,
    LiteRecurrenceParseResult,
    LiteRecurrenceSeries,
)

from .exception_overlay import ExceptionKey, Modifications, apply_exceptions
from .window_expander import MAX_INSTANCES, expand

if TYPE_CHECKING:
    from recurrence_lite.config_loader import Config

logger = logging.getLogger(__name__)


@dataclass
class LiteSeriesRequest:
    """One series together with its stored exceptions."""

    series: LiteRecurrenceSeries
    deletions: set[ExceptionKey] = field(default_factory=set)
    modifications: Optional[Modifications] = None


def resolve_window(date_from: datetime, date_to: Optional[datetime]) -> tuple[datetime, datetime]:
    """Return the query window, a single-moment window when no end is given."""
    start = ensure_timezone_aware(date_from)
    end = ensure_timezone_aware(date_to) if date_to is not None else start
    return start, end


def exclusive_end(end: datetime, all_day: bool) -> datetime:
    """All-day ends are inclusive dates; the exclusive end is the day after."""
    return end + timedelta(days=1) if all_day else end


def build_event_instance(
    series: LiteRecurrenceSeries, occurrence: LiteOccurrence
) -> LiteEventInstance:
    """Complete an occurrence into the record handed to rendering collaborators."""
    title = occurrence.title if occurrence.title is not None else series.title
    description = occurrence.description if occurrence.description is not None else series.description
    return LiteEventInstance(
        series_id=series.series_id,
        start=occurrence.start,
        end=occurrence.end,
        end_exclusive=exclusive_end(occurrence.end, series.all_day),
        original_start=occurrence.original_start,
        all_day=series.all_day,
        recurrent=True,
        is_modified=occurrence.exception == LiteExceptionState.MODIFIED,
        title=title,
        description=description,
    )


def build_single_instance(
    event_id: str,
    dates: LiteRecurrenceParseResult,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> LiteEventInstance:
    """Instance for a non-recurrent record."""
    return LiteEventInstance(
        series_id=event_id,
        start=dates.start,
        end=dates.end,
        end_exclusive=exclusive_end(dates.end, dates.all_day),
        original_start=dates.start,
        all_day=dates.all_day,
        recurrent=False,
        title=title,
        description=description,
    )


def overlaps(instance: LiteEventInstance, date_from: datetime, date_to: datetime) -> bool:
    """Window check used for non-recurrent instances."""
    return instance.start <= date_to and instance.end >= date_from


class LiteOccurrencePipeline:
    """Drives the window expander and exception overlay for one or many series."""

    def __init__(self, max_instances: int = MAX_INSTANCES):
        """Initialize pipeline.

        Args:
            max_instances: Per-series cap passed to the window expander
        """
        self.max_instances = max_instances

    @classmethod
    def from_config(cls, config: Config) -> LiteOccurrencePipeline:
        return cls(max_instances=config.max_instances)

    def materialize(
        self,
        series: LiteRecurrenceSeries,
        date_from: datetime,
        date_to: Optional[datetime] = None,
        deletions: Optional[Iterable[ExceptionKey]] = None,
        modifications: Optional[Modifications] = None,
    ) -> LiteMaterializationResult:
        """Materialize one series for a query window.

        Args:
            series: Series to expand
            date_from: Inclusive window start
            date_to: Inclusive window end; None means date_from
            deletions: Original starts to suppress
            modifications: Modifications keyed by original start

        Returns:
            LiteMaterializationResult with instances ascending by start
        """
        window_start, window_end = resolve_window(date_from, date_to)
        return self._run(
            [LiteSeriesRequest(series, set(deletions or ()), modifications or {})],
            window_start,
            window_end,
        )

    def materialize_many(
        self,
        requests: Iterable[LiteSeriesRequest],
        date_from: datetime,
        date_to: Optional[datetime] = None,
    ) -> LiteMaterializationResult:
        """Materialize several series and merge them in ascending start order."""
        window_start, window_end = resolve_window(date_from, date_to)
        return self._run(requests, window_start, window_end)

    def _run(
        self,
        requests: Iterable[LiteSeriesRequest],
        window_start: datetime,
        window_end: datetime,
    ) -> LiteMaterializationResult:
        result = LiteMaterializationResult()
        for request in requests:
            series = request.series
            expansion = expand(series, window_start, window_end, self.max_instances)
            if expansion.truncated:
                result.truncated_series.append(series.series_id)

            overlay = apply_exceptions(
                expansion.occurrences, request.deletions, request.modifications, series
            )
            if overlay.unmatched:
                result.unmatched_modifications[series.series_id] = overlay.unmatched

            result.instances.extend(
                build_event_instance(series, occurrence) for occurrence in overlay.occurrences
            )

        # modified occurrences may have moved; series are merged here too
        result.instances.sort(key=lambda inst: (inst.start, inst.series_id or ""))
        logger.debug(
            "Materialized %d instance(s) for window %s .. %s",
            len(result.instances),
            window_start,
            window_end,
        )
        return result
