"""Data models for recurrence expansion and calendar import - recurrence_lite."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from recurrence_lite.lite_exceptions import LiteUnsupportedRecurrenceError
from .lite_datetime_utils import (
    ICAL_DAY_TO_WEEKDAY,
    ensure_timezone_aware,
    guess_end_date,
    to_epoch_millis,
    truncate_to_midnight,
)


class RecurrenceKind(str, Enum):
    """Recurrence frequency tags understood by the period generators."""

    DAILY = "daily"
    WORKDAYS = "workdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    CUSTOM_WEEKLY = "customWeekly"
    MONTHLY = "monthly"
    MONTHLY_SPECIFIC = "monthlySpecific"
    YEARLY = "yearly"


class LiteExceptionState(str, Enum):
    """Exception state of a materialized occurrence."""

    NONE = "none"
    MODIFIED = "modified"


def _aware_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_timezone_aware(value) if value is not None else None


class LiteRecurrenceSeries(BaseModel):
    """Immutable description of a recurring event."""

    series_id: str = Field(default="series", description="Identity used in log lines")
    title: Optional[str] = Field(default=None, description="Series-level title")
    description: Optional[str] = Field(default=None, description="Series-level description")

    anchor_start: datetime = Field(..., description="Start of the first (canonical) occurrence")
    anchor_end: Optional[datetime] = Field(
        default=None, description="End of the first occurrence; guessed when missing"
    )
    all_day: bool = Field(default=False, description="All-day series flag")

    kind: RecurrenceKind = Field(..., description="Recurrence frequency")
    weekdays: tuple[int, ...] = Field(
        default=(), description="customWeekly weekdays, 1=Sunday .. 7=Saturday, ascending"
    )

    first_instance: Optional[datetime] = Field(default=None, description="Inclusive lower bound")
    last_instance: Optional[datetime] = Field(default=None, description="Inclusive upper bound")

    model_config = ConfigDict(frozen=True)

    @field_validator("anchor_start", mode="after")
    @classmethod
    def _anchor_aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @field_validator("anchor_end", "first_instance", "last_instance", mode="after")
    @classmethod
    def _bounds_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _aware_or_none(value)

    @field_validator("weekdays", mode="before")
    @classmethod
    def _normalize_weekdays(cls, value: Any) -> tuple[int, ...]:
        """Accept weekday numbers, numeric strings or iCalendar day tokens."""
        if value is None:
            return ()
        if isinstance(value, (str, int)):
            value = [value]

        days: set[int] = set()
        for raw in value:
            if isinstance(raw, str):
                token = raw.strip().upper()
                day = ICAL_DAY_TO_WEEKDAY.get(token[-2:]) if not token.isdigit() else int(token)
                if day is None:
                    raise ValueError(f"Unknown weekday token: {raw!r}")
            else:
                day = int(raw)
            if not 1 <= day <= 7:
                raise ValueError(f"Weekday number out of range 1..7: {day}")
            days.add(day)
        return tuple(sorted(days))

    @model_validator(mode="after")
    def _check_invariants(self) -> "LiteRecurrenceSeries":
        if self.anchor_end is not None and self.anchor_end < self.anchor_start:
            raise ValueError("anchor_end must not be before anchor_start")
        if (
            self.first_instance is not None
            and self.last_instance is not None
            and self.last_instance < self.first_instance
        ):
            raise ValueError("last_instance must not be before first_instance")
        if self.kind == RecurrenceKind.CUSTOM_WEEKLY and not self.weekdays:
            raise ValueError("customWeekly series need at least one weekday")
        return self

    @property
    def start(self) -> datetime:
        """Anchor start used for period arithmetic (midnight for all-day series)."""
        if self.all_day:
            return truncate_to_midnight(self.anchor_start)
        return self.anchor_start

    @property
    def end(self) -> datetime:
        """Anchor end, guessed from the start when the series has none."""
        if self.anchor_end is None:
            return guess_end_date(self.start, self.all_day)
        return self.anchor_end

    @property
    def duration(self) -> timedelta:
        """Occurrence duration, in whole days for all-day series."""
        if self.all_day:
            return timedelta(days=(self.end.date() - self.start.date()).days)
        return self.end - self.start


class LiteOccurrence(BaseModel):
    """One materialized instance of a series."""

    start: datetime = Field(..., description="Occurrence start")
    end: datetime = Field(..., description="Occurrence end")
    original_start: datetime = Field(
        ..., description="Start the unmodified generator produced; equals start unless overridden"
    )
    exception: LiteExceptionState = Field(default=LiteExceptionState.NONE)
    title: Optional[str] = Field(default=None, description="Overridden title, if any")
    description: Optional[str] = Field(default=None, description="Overridden description, if any")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _default_original_start(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("original_start") is None:
            data = {**data, "original_start": data.get("start")}
        return data

    @field_validator("start", "end", "original_start", mode="after")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @property
    def original_key(self) -> int:
        """Epoch milliseconds of the original start (exception lookup key)."""
        return to_epoch_millis(self.original_start)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class LiteModification(BaseModel):
    """Ad-hoc modification of one occurrence, keyed by its original start."""

    original_start: datetime = Field(..., description="Start of the occurrence being modified")
    start: Optional[datetime] = Field(default=None, description="New start, if moved")
    end: Optional[datetime] = Field(default=None, description="New end, if changed")
    title: Optional[str] = Field(default=None, description="Replacement title")
    description: Optional[str] = Field(default=None, description="Replacement description")

    model_config = ConfigDict(frozen=True)

    @field_validator("original_start", mode="after")
    @classmethod
    def _original_aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @field_validator("start", "end", mode="after")
    @classmethod
    def _override_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _aware_or_none(value)

    @property
    def key(self) -> int:
        return to_epoch_millis(self.original_start)


class LiteExpansionResult(BaseModel):
    """Raw occurrences produced by the window expander."""

    series_id: str
    occurrences: list[LiteOccurrence] = Field(default_factory=list)
    truncated: bool = Field(default=False, description="True if the instance cap was hit")


class LiteOverlayResult(BaseModel):
    """Occurrences after deletions and modifications were applied."""

    occurrences: list[LiteOccurrence] = Field(default_factory=list)
    unmatched: list[LiteModification] = Field(
        default_factory=list, description="Modifications whose original occurrence was not generated"
    )

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)


class LiteEventInstance(BaseModel):
    """Event instance handed to rendering collaborators.

    Only the time, text and flag fields are produced here; colors,
    description_html and the permission flags are filled in elsewhere.
    """

    series_id: Optional[str] = Field(default=None, description="Series the instance belongs to")
    start: datetime = Field(..., description="Instance start")
    end: datetime = Field(..., description="Instance end (inclusive date for all-day instances)")
    end_exclusive: datetime = Field(..., description="A moment after the instance has ended")
    original_start: Optional[datetime] = Field(default=None, description="Unmodified start")
    all_day: bool = Field(default=False)
    recurrent: bool = Field(default=False)
    is_modified: bool = Field(default=False, description="Instance carries a modification")

    title: Optional[str] = None
    description: Optional[str] = None
    description_html: Optional[str] = None

    text_color: Optional[str] = None
    background_color: Optional[str] = None
    modifiable: Optional[bool] = None
    movable: Optional[bool] = None

    @field_serializer("start", "end", "end_exclusive")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    @field_serializer("original_start", when_used="unless-none")
    def serialize_original_start(self, dt: datetime) -> str:
        return dt.isoformat()


class LiteMaterializationResult(BaseModel):
    """Final instances for a query window, with diagnostics."""

    instances: list[LiteEventInstance] = Field(default_factory=list)
    unmatched_modifications: dict[str, list[LiteModification]] = Field(
        default_factory=dict, description="series_id -> dropped modifications"
    )
    truncated_series: list[str] = Field(default_factory=list)

    @property
    def unmatched_count(self) -> int:
        return sum(len(mods) for mods in self.unmatched_modifications.values())


class LiteRecurrenceParseResult(BaseModel):
    """Outcome of interpreting DTSTART/DTEND/RRULE of one import record."""

    start: datetime
    end: datetime = Field(..., description="Inclusive end (exclusive all-day DTEND minus one day)")
    all_day: bool = False
    time_zone: str = Field(default="UTC", description="Zone the timed tokens were read in")

    is_recurrent: bool = False
    recurrence_frequency: str = Field(default="", description="Kind tag, or empty if unsupported")
    first_instance: Optional[datetime] = None
    recurrence_end: Optional[datetime] = Field(default=None, description="UNTIL or default horizon")

    def to_series(
        self,
        series_id: str = "series",
        title: Optional[str] = None,
        description: Optional[str] = None,
        weekdays: tuple[int, ...] = (),
    ) -> LiteRecurrenceSeries:
        """Build the series the generators expand.

        Raises:
            LiteUnsupportedRecurrenceError: If the record is not recurrent or
                its frequency has no period generator
        """
        if not self.is_recurrent or not self.recurrence_frequency:
            raise LiteUnsupportedRecurrenceError(f"Record {series_id} is not recurrent")
        try:
            kind = RecurrenceKind(self.recurrence_frequency)
        except ValueError as e:
            raise LiteUnsupportedRecurrenceError(
                f"No period generator for frequency {self.recurrence_frequency!r}"
            ) from e

        return LiteRecurrenceSeries(
            series_id=series_id,
            title=title,
            description=description,
            anchor_start=self.start,
            anchor_end=self.end,
            all_day=self.all_day,
            kind=kind,
            weekdays=weekdays,
            first_instance=self.first_instance,
            last_instance=self.recurrence_end,
        )


class LiteImportedEvent(BaseModel):
    """One VEVENT after interpretation."""

    uid: str
    title: str = ""
    description: str = ""
    dates: LiteRecurrenceParseResult
    series: Optional[LiteRecurrenceSeries] = Field(
        default=None, description="Set when the record maps to a registered recurrence kind"
    )


class LiteImportResult(BaseModel):
    """Result of importing an ICS document."""

    events: list[LiteImportedEvent] = Field(default_factory=list)
    duplicates: list[str] = Field(default_factory=list, description="UIDs seen more than once")
    errors: dict[str, str] = Field(default_factory=dict, description="UID -> failure message")
    total_components: int = 0

    @property
    def recurring_event_count(self) -> int:
        return sum(1 for event in self.events if event.dates.is_recurrent)

    def add_error(self, uid: str, message: str) -> None:
        """Record a failed record."""
        self.errors[uid] = message
