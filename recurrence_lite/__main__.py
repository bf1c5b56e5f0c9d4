"""Command-line entry for recurrence_lite.

Two sub-commands, both printing JSON:

- ``interpret`` runs the RRULE interpreter on a DTSTART/DTEND/RRULE triple
- ``expand`` imports an ICS file and materializes its events for a window
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn, Optional

from dateutil import parser as date_parser

from . import _init_logging
from .calendar.lite_ics_importer import LiteICSImporter
from .calendar.lite_rrule_interpreter import LiteRRuleInterpreter
from .config_loader import Config, apply_env_overrides, load_config
from .core.timezone_utils import resolve_zone
from .domain.occurrence_pipeline import (
    LiteOccurrencePipeline,
    LiteSeriesRequest,
    build_single_instance,
    overlaps,
    resolve_window,
)
from .lite_exceptions import LiteRecurrenceError
from .lite_logging import configure_lite_logging

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for recurrence_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="recurrence-lite",
        description="Recurrence Lite - expand recurring calendar events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m recurrence_lite interpret --dtstart 20240902T090000 --dtend 20240902T100000 \\
      --rrule "FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR" --tzid Europe/Berlin
  python -m recurrence_lite expand team.ics --from 2024-09-01 --to 2024-09-30
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: ./recurrence_lite.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    interpret = sub.add_parser("interpret", help="Interpret DTSTART/DTEND/RRULE values")
    interpret.add_argument("--dtstart", required=True, help="DTSTART value, e.g. 20240902T090000Z")
    interpret.add_argument("--dtend", required=True, help="DTEND value")
    interpret.add_argument("--rrule", help="RRULE value, e.g. FREQ=WEEKLY;INTERVAL=2")
    interpret.add_argument("--tzid", help="TZID parameter of DTSTART and DTEND")

    expand = sub.add_parser("expand", help="Import an ICS file and expand its events")
    expand.add_argument("file", metavar="FILE.ics", help="ICS file to import")
    expand.add_argument("--from", dest="date_from", required=True, help="Window start (ISO 8601)")
    expand.add_argument("--to", dest="date_to", help="Window end (ISO 8601); defaults to --from")

    return parser


def _parse_window_date(value: Optional[str], config: Config) -> Optional[datetime]:
    """Parse an ISO date; naive values are taken in the configured zone."""
    if value is None:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=resolve_zone(config.default_timezone))
    return parsed


def cmd_interpret(args: argparse.Namespace, config: Config) -> dict[str, Any]:
    """Run the interpreter and return the parse result as a JSON-ready dict."""
    interpreter = LiteRRuleInterpreter.from_config(config)
    result = interpreter.parse(
        args.dtstart, args.dtend, args.rrule, dtstart_tzid=args.tzid, dtend_tzid=args.tzid
    )
    return result.model_dump(mode="json")


def cmd_expand(args: argparse.Namespace, config: Config) -> dict[str, Any]:
    """Import an ICS file and return its instances for the requested window."""
    ics_text = Path(args.file).read_text(encoding="utf-8")
    imported = LiteICSImporter.from_config(config).import_calendar(ics_text)

    date_from, date_to = resolve_window(
        _parse_window_date(args.date_from, config),  # type: ignore[arg-type]
        _parse_window_date(args.date_to, config),
    )

    requests = [LiteSeriesRequest(series=event.series) for event in imported.events if event.series]
    materialized = LiteOccurrencePipeline.from_config(config).materialize_many(
        requests, date_from, date_to
    )

    instances = list(materialized.instances)
    for event in imported.events:
        if event.series is None:
            single = build_single_instance(event.uid, event.dates, event.title, event.description)
            if overlaps(single, date_from, date_to):
                instances.append(single)
    instances.sort(key=lambda inst: (inst.start, inst.series_id or ""))

    return {
        "window": {"from": date_from.isoformat(), "to": date_to.isoformat()},
        "instances": [inst.model_dump(mode="json") for inst in instances],
        "truncated_series": materialized.truncated_series,
        "duplicates": imported.duplicates,
        "errors": imported.errors,
    }


COMMANDS = {
    "interpret": cmd_interpret,
    "expand": cmd_expand,
}


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the recurrence_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        config = apply_env_overrides(load_config(args.config))
    except LiteRecurrenceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_lite_logging(debug_mode=args.debug)
    _init_logging("DEBUG" if args.debug else config.log_level)

    try:
        payload = COMMANDS[args.command](args, config)
    except (LiteRecurrenceError, OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        sys.exit(1)

    print(json.dumps(payload, indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()
