"""RRULE interpreter for the calendar import path - recurrence_lite.

Turns a DTSTART/DTEND pair plus an optional RRULE into a
LiteRecurrenceParseResult using the same frequency vocabulary as the period
generators. Only FREQ, INTERVAL, BYDAY and UNTIL are interpreted; other keys
are ignored. Malformed rules never raise: they degrade to a non-recurrent
result or to the default recurrence horizon.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Optional

from dateutil.relativedelta import relativedelta

from recurrence_lite.core.timezone_utils import normalize_timezone_name
from recurrence_lite.lite_exceptions import LiteImportRecordError, LiteRRuleParseError

from .lite_datetime_utils import (
    ICAL_DAY_TO_WEEKDAY,
    LiteDateTokenParser,
    guess_end_date,
    is_all_day_token,
    truncate_to_midnight,
)
from .lite_models import LiteRecurrenceParseResult, RecurrenceKind

if TYPE_CHECKING:
    from recurrence_lite.config_loader import Config

logger = logging.getLogger(__name__)

# Recurrence end used when the rule has no (usable) UNTIL
DEFAULT_HORIZON_YEARS = 5

WORKDAY_TOKENS = frozenset({"MO", "TU", "WE", "TH", "FR"})


class LiteRRuleInterpreter:
    """Interpret DTSTART/DTEND/RRULE of one import record."""

    def __init__(
        self,
        default_timezone: Optional[str] = None,
        horizon_years: int = DEFAULT_HORIZON_YEARS,
    ):
        """Initialize interpreter.

        Args:
            default_timezone: Zone for timed tokens without TZID and for all-day dates
            horizon_years: Years after the start date used when UNTIL is missing
        """
        self.token_parser = LiteDateTokenParser(default_timezone)
        self.horizon_years = horizon_years

    @classmethod
    def from_config(cls, config: Config) -> LiteRRuleInterpreter:
        return cls(
            default_timezone=config.default_timezone,
            horizon_years=config.recurrence_horizon_years,
        )

    @property
    def default_timezone(self) -> str:
        return self.token_parser.default_timezone

    def parse(
        self,
        dtstart: Optional[str],
        dtend: Optional[str],
        rrule: Optional[str] = None,
        dtstart_tzid: Optional[str] = None,
        dtend_tzid: Optional[str] = None,
    ) -> LiteRecurrenceParseResult:
        """Interpret the date and recurrence properties of a record.

        Args:
            dtstart: Raw DTSTART value (an inline ``TZID=zone:`` prefix is accepted)
            dtend: Raw DTEND value
            rrule: Raw RRULE value, None for a singular event
            dtstart_tzid: TZID parameter of DTSTART
            dtend_tzid: TZID parameter of DTEND

        Returns:
            LiteRecurrenceParseResult

        Raises:
            LiteImportRecordError: If DTSTART/DTEND is missing or malformed
        """
        if not dtstart or not dtstart.strip():
            raise LiteImportRecordError("Record has no DTSTART")
        if not dtend or not dtend.strip():
            raise LiteImportRecordError("Record has no DTEND")

        inline_tzid, start_value = self.token_parser.split_tzid(dtstart.strip())
        start_tzid = dtstart_tzid or inline_tzid
        all_day = is_all_day_token(start_value)

        start = self._parse_record_date(dtstart, start_tzid, "DTSTART")
        end = self._parse_record_date(dtend, dtend_tzid or start_tzid, "DTEND")

        if all_day:
            start = truncate_to_midnight(start)
            # DTEND of an all-day event is exclusive
            end = truncate_to_midnight(end) - timedelta(days=1)
            if end < start:
                end = start
        elif end < start:
            logger.warning("DTEND %s is before DTSTART %s; guessing the end", dtend, dtstart)
            end = guess_end_date(start, all_day=False)

        result: dict[str, Any] = {
            "start": start,
            "end": end,
            "all_day": all_day,
            "time_zone": self._zone_name(start_value, start_tzid, all_day),
        }

        if rrule is None or not rrule.strip():
            return LiteRecurrenceParseResult(**result)

        try:
            parts = self.parse_rrule_string(rrule)
        except LiteRRuleParseError as e:
            logger.warning("Ignoring recurrence rule %r: %s", rrule, e)
            return LiteRecurrenceParseResult(**result)

        frequency = self.map_frequency(parts)
        if not frequency:
            logger.info("Unsupported recurrence rule %r; importing as a single event", rrule)
            return LiteRecurrenceParseResult(**result)

        return LiteRecurrenceParseResult(
            **result,
            is_recurrent=True,
            recurrence_frequency=frequency,
            first_instance=start,
            recurrence_end=self.recurrence_end(parts, start),
        )

    def parse_rrule_string(self, rrule_string: str) -> dict[str, Any]:
        """Parse RRULE string into components.

        Args:
            rrule_string: RRULE string (e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO")

        Returns:
            Dictionary with "freq", and "interval", "byday", "until" when present

        Raises:
            LiteRRuleParseError: If RRULE string is invalid
        """
        if not rrule_string or not rrule_string.strip():
            raise LiteRRuleParseError("Empty RRULE string")

        text = rrule_string.strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:"):]

        rrule_dict: dict[str, Any] = {}
        for part in text.split(";"):
            if "=" not in part:
                continue
            key, value = part.split("=", 1)
            key = key.strip().lower()
            value = value.strip()

            if key == "freq":
                rrule_dict["freq"] = value.upper()
            elif key == "interval":
                try:
                    rrule_dict["interval"] = int(value)
                except ValueError as e:
                    raise LiteRRuleParseError(f"INTERVAL is not an integer: {value!r}") from e
            elif key == "byday":
                rrule_dict["byday"] = _reduce_day_tokens(value)
            elif key == "until":
                rrule_dict["until"] = value

        if not rrule_dict.get("freq"):
            raise LiteRRuleParseError("RRULE missing required FREQ parameter")
        return rrule_dict

    def map_frequency(self, parts: dict[str, Any]) -> str:
        """Map parsed RRULE parts to a frequency tag, "" when unsupported."""
        freq = parts["freq"]
        if freq != "WEEKLY":
            return freq.lower()

        byday: list[str] = parts.get("byday", [])
        if WORKDAY_TOKENS.issubset(byday):
            return RecurrenceKind.WORKDAYS.value
        if parts.get("interval") == 2:
            return RecurrenceKind.BIWEEKLY.value
        if len(byday) > 1:
            return ""
        return RecurrenceKind.WEEKLY.value

    def recurrence_end(self, parts: dict[str, Any], start: datetime) -> datetime:
        """Return UNTIL, or the start date (midnight UTC) plus the horizon."""
        until = parts.get("until")
        if until:
            try:
                return self.token_parser.parse_token(until)
            except ValueError:
                logger.warning("Unparseable UNTIL %r; using %d year horizon", until, self.horizon_years)

        start_date = start.astimezone(UTC).date()
        return datetime.combine(start_date, time(), UTC) + relativedelta(years=self.horizon_years)

    def _parse_record_date(self, token: str, tzid: Optional[str], name: str) -> datetime:
        try:
            return self.token_parser.parse_token(token, tzid)
        except ValueError as e:
            raise LiteImportRecordError(f"Malformed {name} {token!r}: {e}") from e

    def _zone_name(self, value: str, tzid: Optional[str], all_day: bool) -> str:
        if not all_day and value.endswith("Z"):
            return "UTC"
        if not all_day and tzid:
            return normalize_timezone_name(tzid) or self.default_timezone
        return self.default_timezone


def _reduce_day_tokens(value: str) -> list[str]:
    """Split a BYDAY list, dropping ordinal prefixes (``1MO`` -> ``MO``)."""
    days: list[str] = []
    for token in value.split(","):
        day = token.strip().upper()[-2:]
        if day in ICAL_DAY_TO_WEEKDAY and day not in days:
            days.append(day)
    return days
