"""Overlay of per-occurrence exceptions on raw occurrences.

Exceptions are keyed by the epoch milliseconds of the occurrence start the
unmodified generator produced. A deletion drops the occurrence; a
modification retargets it. A modification never creates an occurrence: those
whose original start was not generated are returned as unmatched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Optional, Union

from recurrence_lite.calendar.lite_datetime_utils import guess_end_date, to_epoch_millis
from recurrence_lite.calendar.lite_models import (
    LiteExceptionState,
    LiteModification,
    LiteOccurrence,
    LiteOverlayResult,
    LiteRecurrenceSeries,
)

logger = logging.getLogger(__name__)

ExceptionKey = Union[datetime, int]
Modifications = Union[Mapping[ExceptionKey, LiteModification], Iterable[LiteModification]]


def deletion_keys(deletions: Optional[Iterable[ExceptionKey]]) -> frozenset[int]:
    """Normalize deletion markers to epoch-millisecond keys."""
    if not deletions:
        return frozenset()
    return frozenset(to_epoch_millis(key) for key in deletions)


def modification_index(modifications: Optional[Modifications]) -> dict[int, LiteModification]:
    """Index modifications by epoch-millisecond key.

    Accepts a mapping (keys are datetimes or epoch milliseconds) or a plain
    iterable of LiteModification, in which case each modification's own
    original_start is the key. Returns a new dict; the input is not touched.
    """
    if not modifications:
        return {}
    if isinstance(modifications, Mapping):
        return {to_epoch_millis(key): mod for key, mod in modifications.items()}

    index: dict[int, LiteModification] = {}
    for mod in modifications:
        if mod.key in index:
            logger.warning("Duplicate modification for original start %s; keeping the last", mod.original_start)
        index[mod.key] = mod
    return index


def _pick_text(override: Optional[str], fallback: Optional[str]) -> Optional[str]:
    if override is not None and override.strip():
        return override
    return fallback


def merge_modification(
    occurrence: LiteOccurrence,
    modification: LiteModification,
    series: Optional[LiteRecurrenceSeries] = None,
) -> LiteOccurrence:
    """Build the occurrence a modification turns ``occurrence`` into.

    Unset start keeps the occurrence start. Unset end keeps the occurrence
    end unless the start moved, in which case the end is guessed from the new
    start. Blank title/description fall back to the series' own texts.
    """
    start = modification.start or occurrence.start
    if modification.end is not None:
        end = modification.end
    elif start == occurrence.start:
        end = occurrence.end
    else:
        end = guess_end_date(start, series.all_day if series is not None else False)

    return LiteOccurrence(
        start=start,
        end=end,
        original_start=occurrence.original_start,
        exception=LiteExceptionState.MODIFIED,
        title=_pick_text(modification.title, series.title if series is not None else None),
        description=_pick_text(
            modification.description, series.description if series is not None else None
        ),
    )


def apply_exceptions(
    raw: Iterable[LiteOccurrence],
    deletions: Optional[Iterable[ExceptionKey]] = None,
    modifications: Optional[Modifications] = None,
    series: Optional[LiteRecurrenceSeries] = None,
) -> LiteOverlayResult:
    """Apply deletions and modifications to raw occurrences.

    Args:
        raw: Occurrences from the window expander
        deletions: Original starts to suppress (datetimes or epoch milliseconds)
        modifications: Modifications keyed by original start, or a list of them
        series: Series the occurrences belong to, for text fallbacks and logging

    Returns:
        LiteOverlayResult with the final occurrences and unmatched modifications
    """
    deleted = deletion_keys(deletions)
    pending = modification_index(modifications)
    series_id = series.series_id if series is not None else "?"

    occurrences: list[LiteOccurrence] = []
    dropped = 0
    for occurrence in raw:
        key = occurrence.original_key
        if key in deleted:
            dropped += 1
            if pending.pop(key, None) is not None:
                logger.debug(
                    "Series %s: deletion overrides modification at %s",
                    series_id,
                    occurrence.original_start,
                )
            continue

        modification = pending.pop(key, None)
        if modification is not None:
            occurrences.append(merge_modification(occurrence, modification, series))
        else:
            occurrences.append(occurrence)

    unmatched = list(pending.values())
    if dropped:
        logger.debug("Series %s: dropped %d deleted occurrence(s)", series_id, dropped)
    if unmatched:
        logger.info(
            "Series %s: dropped %d unmatched modification(s)", series_id, len(unmatched)
        )
        for mod in unmatched:
            logger.debug(
                "Series %s: no occurrence generated for modification at %s",
                series_id,
                mod.original_start,
            )

    return LiteOverlayResult(occurrences=occurrences, unmatched=unmatched)
