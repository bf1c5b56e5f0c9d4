"""ICS batch import for recurrence_lite.

Reads a whole iCalendar document with the icalendar library, orders VEVENTs
by their raw DTSTART text, skips repeated UIDs and interprets each record's
dates and recurrence rule.
"""

import logging
from typing import Any, Optional, cast

from icalendar import Calendar

from recurrence_lite.lite_exceptions import LiteImportRecordError, LiteUnsupportedRecurrenceError

from .lite_models import LiteImportedEvent, LiteImportResult
from .lite_rrule_interpreter import DEFAULT_HORIZON_YEARS, LiteRRuleInterpreter

logger = logging.getLogger(__name__)

# Organizer values that carry no information (exported by some servers)
UNKNOWN_ORGANIZER_MARKER = "unknownorganizer"


def _raw_value(prop: Any) -> Optional[str]:
    """Return the iCalendar text of a property value, or None if absent."""
    if prop is None:
        return None
    if isinstance(prop, list):
        if not prop:
            return None
        prop = prop[0]
    if hasattr(prop, "to_ical"):
        raw = prop.to_ical()
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
    return str(prop)


def _tzid(prop: Any) -> Optional[str]:
    params = getattr(prop, "params", None)
    if not params:
        return None
    return params.get("TZID")


def _address(prop: Any) -> str:
    """Plain text for an ORGANIZER/ATTENDEE value: ``Name <email>`` or the email."""
    email = str(prop).replace("mailto:", "").replace("MAILTO:", "")
    name = getattr(prop, "params", {}).get("CN")
    return f"{name} <{email}>" if name else email


class LiteICSImporter:
    """Import VEVENT records from ICS text."""

    def __init__(
        self,
        default_timezone: Optional[str] = None,
        strict: bool = False,
        horizon_years: int = DEFAULT_HORIZON_YEARS,
    ):
        """Initialize importer.

        Args:
            default_timezone: Zone for timed tokens without TZID
            strict: Re-raise the first record error instead of collecting it
            horizon_years: Recurrence horizon used when RRULE has no UNTIL
        """
        self.interpreter = LiteRRuleInterpreter(default_timezone, horizon_years)
        self.strict = strict

    @classmethod
    def from_config(cls, config: Any) -> "LiteICSImporter":
        return cls(
            default_timezone=config.default_timezone,
            strict=config.strict_import,
            horizon_years=config.recurrence_horizon_years,
        )

    def import_calendar(self, ics_text: str) -> LiteImportResult:
        """Import all VEVENTs of an ICS document.

        Args:
            ics_text: Full ICS document

        Returns:
            LiteImportResult with imported events, duplicate UIDs and per-record errors

        Raises:
            LiteImportRecordError: If the document cannot be parsed, or in strict
                mode for the first failing record
        """
        try:
            calendar = Calendar.from_ical(ics_text)
        except ValueError as e:
            raise LiteImportRecordError(f"Unparseable ICS document: {e}") from e

        components = list(cast("Calendar", calendar).walk("VEVENT"))
        result = LiteImportResult(total_components=len(components))

        # records are imported in DTSTART text order so a series master
        # precedes overrides sharing its UID
        components.sort(key=lambda comp: _raw_value(comp.get("DTSTART")) or "")

        seen: set[str] = set()
        for index, component in enumerate(components):
            uid = str(component.get("UID") or f"no-uid-{index}")
            if uid in seen:
                logger.debug("Skipping duplicate UID %s", uid)
                result.duplicates.append(uid)
                continue
            seen.add(uid)

            try:
                result.events.append(self.import_event(component, uid))
            except LiteImportRecordError as e:
                if self.strict:
                    raise
                logger.warning("Skipping record %s: %s", uid, e)
                result.add_error(uid, str(e))

        logger.info(
            "Imported %d of %d event(s) (%d recurring, %d duplicate, %d failed)",
            len(result.events),
            result.total_components,
            result.recurring_event_count,
            len(result.duplicates),
            len(result.errors),
        )
        return result

    def import_event(self, component: Any, uid: str) -> LiteImportedEvent:
        """Interpret one VEVENT.

        Raises:
            LiteImportRecordError: If DTSTART/DTEND is missing or malformed
        """
        dtstart = component.get("DTSTART")
        dtend = component.get("DTEND")
        rrule = component.get("RRULE")
        if isinstance(rrule, list):
            logger.warning("Record %s has %d RRULEs; only the first is used", uid, len(rrule))

        dates = self.interpreter.parse(
            _raw_value(dtstart),
            _raw_value(dtend),
            _raw_value(rrule),
            dtstart_tzid=_tzid(dtstart),
            dtend_tzid=_tzid(dtend),
        )

        title = str(component.get("SUMMARY") or "").strip()
        description = self.build_description(component)

        series = None
        if dates.is_recurrent:
            try:
                series = dates.to_series(series_id=uid, title=title, description=description)
            except LiteUnsupportedRecurrenceError as e:
                logger.info("Record %s keeps its rule but cannot be expanded: %s", uid, e)

        return LiteImportedEvent(
            uid=uid, title=title, description=description, dates=dates, series=series
        )

    def build_description(self, component: Any) -> str:
        """Assemble the plain text description of a record.

        One labelled line each for the organizer, every attendee and the
        location, then the DESCRIPTION body after a blank line.
        """
        lines: list[str] = []

        organizer = component.get("ORGANIZER")
        if organizer is not None and UNKNOWN_ORGANIZER_MARKER not in str(organizer):
            lines.append(f"Organizer: {_address(organizer)}")

        attendees = component.get("ATTENDEE", [])
        if not isinstance(attendees, list):
            attendees = [attendees]
        lines.extend(f"Attendee: {_address(attendee)}" for attendee in attendees)

        location = component.get("LOCATION")
        if location is not None:
            lines.append(f"Location: {location}")

        body = component.get("DESCRIPTION")
        if body is not None:
            lines.append("")
            lines.append(str(body))

        return "\n".join(lines)
