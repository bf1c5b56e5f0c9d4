"""Unit tests for LiteICSImporter."""

import logging
from datetime import UTC, datetime

import pytest

from recurrence_lite.calendar.lite_ics_importer import LiteICSImporter
from recurrence_lite.calendar.lite_models import RecurrenceKind
from recurrence_lite.lite_exceptions import LiteImportRecordError

pytestmark = pytest.mark.unit


@pytest.fixture
def imported(sample_ics):
    return LiteICSImporter().import_calendar(sample_ics)


def _event(result, uid):
    return next(event for event in result.events if event.uid == uid)


class TestImportCalendar:
    def test_counts(self, imported):
        assert imported.total_components == 5
        assert [event.uid for event in imported.events] == [
            "standup@example.com",
            "review@example.com",
            "offsite@example.com",
        ]
        assert imported.recurring_event_count == 1

    def test_duplicate_uid_keeps_earliest_record(self, imported):
        assert imported.duplicates == ["standup@example.com"]
        assert _event(imported, "standup@example.com").title == "Daily standup"

    def test_broken_record_is_collected(self, imported):
        assert list(imported.errors) == ["broken@example.com"]
        assert "DTEND" in imported.errors["broken@example.com"]

    def test_strict_mode_raises(self, sample_ics):
        with pytest.raises(LiteImportRecordError):
            LiteICSImporter(strict=True).import_calendar(sample_ics)

    def test_unparseable_document_raises(self):
        with pytest.raises(LiteImportRecordError):
            LiteICSImporter().import_calendar("definitely not an ics document")

    def test_summary_is_logged(self, sample_ics, caplog):
        with caplog.at_level(logging.INFO, logger="recurrence_lite.calendar.lite_ics_importer"):
            LiteICSImporter().import_calendar(sample_ics)
        assert "Imported 3 of 5 event(s)" in caplog.text


class TestImportedEvents:
    def test_workdays_series(self, imported):
        standup = _event(imported, "standup@example.com")
        assert standup.dates.recurrence_frequency == "workdays"
        assert standup.dates.time_zone == "Europe/Berlin"

        series = standup.series
        assert series is not None
        assert series.series_id == "standup@example.com"
        assert series.kind is RecurrenceKind.WORKDAYS
        assert series.anchor_start == datetime(2024, 9, 2, 7, 30, tzinfo=UTC)
        assert series.first_instance == series.anchor_start
        assert series.last_instance == datetime(2024, 9, 30, tzinfo=UTC)
        assert series.title == "Daily standup"

    def test_description_lines(self, imported):
        standup = _event(imported, "standup@example.com")
        assert standup.description == (
            "Organizer: Alice <alice@example.com>\n"
            "Attendee: Bob <bob@example.com>\n"
            "Attendee: carol@example.com\n"
            "Location: Room 1\n"
            "\n"
            "Quick sync"
        )
        assert standup.series.description == standup.description

    def test_all_day_record(self, imported):
        offsite = _event(imported, "offsite@example.com")
        assert offsite.dates.all_day is True
        assert offsite.dates.start == datetime(2024, 9, 10, tzinfo=UTC)
        assert offsite.dates.end == datetime(2024, 9, 11, tzinfo=UTC)
        assert offsite.series is None

    def test_unknown_organizer_is_omitted(self, imported):
        assert _event(imported, "offsite@example.com").description == ""

    def test_unsupported_rule_imports_as_single(self, imported):
        review = _event(imported, "review@example.com")
        assert review.dates.is_recurrent is False
        assert review.series is None

    def test_unmapped_frequency_keeps_rule_without_series(self):
        ics = (
            "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//test//EN\n"
            "BEGIN:VEVENT\nUID:hourly@example.com\nSUMMARY:Ping\n"
            "DTSTART:20240902T090000Z\nDTEND:20240902T091000Z\nRRULE:FREQ=HOURLY\n"
            "END:VEVENT\nEND:VCALENDAR\n"
        )
        result = LiteICSImporter().import_calendar(ics)
        event = result.events[0]
        assert event.dates.is_recurrent is True
        assert event.dates.recurrence_frequency == "hourly"
        assert event.series is None

    def test_from_config(self, simple_config):
        simple_config.strict_import = True
        importer = LiteICSImporter.from_config(simple_config)
        assert importer.strict is True
        assert importer.interpreter.default_timezone == "UTC"
