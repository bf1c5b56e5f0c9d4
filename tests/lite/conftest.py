from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from recurrence_lite.calendar.lite_models import LiteRecurrenceSeries, RecurrenceKind
from recurrence_lite.config_loader import Config


@pytest.fixture
def simple_config() -> Config:
    """Deterministic configuration used across lite tests."""
    return Config(
        max_instances=1000,
        default_timezone="UTC",
        recurrence_horizon_years=5,
        strict_import=False,
        log_level="INFO",
    )


@pytest.fixture
def test_timezone() -> str:
    """Return a deterministic timezone identifier for tests.

    Using a fixed timezone string avoids host-local timezone differences
    which can make datetime-sensitive tests flaky.
    """
    return "Europe/Berlin"


@pytest.fixture
def make_series() -> Callable[..., LiteRecurrenceSeries]:
    """Factory for series with sensible defaults (timed, one hour, weekly)."""

    def _make(
        start: datetime = datetime(2024, 1, 2, 10, 0, tzinfo=UTC),
        kind: RecurrenceKind | str = RecurrenceKind.WEEKLY,
        duration: timedelta | None = timedelta(hours=1),
        **kwargs: Any,
    ) -> LiteRecurrenceSeries:
        end = kwargs.pop("anchor_end", start + duration if duration is not None else None)
        return LiteRecurrenceSeries(
            series_id=kwargs.pop("series_id", "series-1"),
            anchor_start=start,
            anchor_end=end,
            kind=kind,
            **kwargs,
        )

    return _make


@pytest.fixture
def weekly_all_day_series() -> LiteRecurrenceSeries:
    """Weekly all-day series anchored Monday 1987-05-04, one day long."""
    return LiteRecurrenceSeries(
        series_id="weekly-all-day",
        anchor_start=datetime(1987, 5, 4, tzinfo=UTC),
        anchor_end=datetime(1987, 5, 5, tzinfo=UTC),
        all_day=True,
        kind=RecurrenceKind.WEEKLY,
    )


SAMPLE_ICS = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//recurrence-lite//tests//EN
BEGIN:VEVENT
UID:standup@example.com
SUMMARY: Daily standup
DTSTART;TZID=Europe/Berlin:20240902T093000
DTEND;TZID=Europe/Berlin:20240902T094500
RRULE:FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR;UNTIL=20240930T000000Z
ORGANIZER;CN=Alice:mailto:alice@example.com
ATTENDEE;CN=Bob:mailto:bob@example.com
ATTENDEE:mailto:carol@example.com
LOCATION:Room 1
DESCRIPTION:Quick sync
END:VEVENT
BEGIN:VEVENT
UID:offsite@example.com
SUMMARY:Offsite
DTSTART;VALUE=DATE:20240910
DTEND;VALUE=DATE:20240912
ORGANIZER:mailto:unknownorganizer@calendar.example.com
END:VEVENT
BEGIN:VEVENT
UID:review@example.com
SUMMARY:Review
DTSTART:20240903T140000Z
DTEND:20240903T150000Z
RRULE:FREQ=WEEKLY;BYDAY=MO,WE
END:VEVENT
BEGIN:VEVENT
UID:broken@example.com
SUMMARY:No end
DTSTART:20240904T080000Z
END:VEVENT
BEGIN:VEVENT
UID:standup@example.com
SUMMARY:Daily standup (moved)
DTSTART;TZID=Europe/Berlin:20240905T100000
DTEND;TZID=Europe/Berlin:20240905T101500
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics() -> str:
    """ICS document with recurring, all-day, unsupported, broken and duplicate records."""
    return SAMPLE_ICS


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear RECURRENCE_LITE_* variables so tests see only what they set."""
    for name in (
        "RECURRENCE_LITE_DEBUG",
        "RECURRENCE_LITE_LOG_LEVEL",
        "RECURRENCE_LITE_MAX_INSTANCES",
        "RECURRENCE_LITE_DEFAULT_TIMEZONE",
        "RECURRENCE_LITE_RECURRENCE_HORIZON_YEARS",
        "RECURRENCE_LITE_STRICT_IMPORT",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
