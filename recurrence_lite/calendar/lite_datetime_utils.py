"""DateTime helpers for recurrence expansion and iCalendar date tokens.

Everything in the recurrence core works on timezone-aware datetimes. The
helpers here normalize inputs, convert to the epoch-millisecond keys used by
the exception overlay, and parse the three date token shapes accepted on
import (``yyyyMMdd``, ``yyyyMMdd'T'HHmmss`` and the same with a trailing
``Z``).
"""

import logging
import re
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Optional

from recurrence_lite.core.timezone_utils import DEFAULT_IMPORT_TIMEZONE, resolve_zone

logger = logging.getLogger(__name__)

# Hard wired duration of a timed event whose end is unknown
DEFAULT_EVENT_DURATION = timedelta(minutes=30)

# Length of a date-only token (yyyyMMdd); longer tokens carry a time part
ALL_DAY_TOKEN_LENGTH = 8

DATE_FORMAT = "%Y%m%d"
LOCAL_DATETIME_FORMAT = "%Y%m%dT%H%M%S"
UTC_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"

# Exact token shapes; strptime alone accepts single-digit fields
DATE_TOKEN_PATTERN = re.compile(r"^\d{8}(T\d{6}Z?)?$")

# iCalendar two-letter day tokens -> weekday numbers (1=Sunday .. 7=Saturday)
ICAL_DAY_TO_WEEKDAY: dict[str, int] = {
    "SU": 1,
    "MO": 2,
    "TU": 3,
    "WE": 4,
    "TH": 5,
    "FR": 6,
    "SA": 7,
}


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware

    Returns:
        Timezone-aware datetime (UTC if originally naive)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_epoch_millis(value: datetime | int) -> int:
    """Return the epoch-millisecond key for an occurrence start.

    Integers are taken to be keys already. Naive datetimes count as UTC.
    """
    if isinstance(value, int):
        return value
    aware = ensure_timezone_aware(value)
    return int(aware.timestamp() * 1000)


def truncate_to_midnight(dt: datetime) -> datetime:
    """Drop the time-of-day, keeping the date and the timezone."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def calendar_weekday(dt: datetime | date) -> int:
    """Weekday number with 1=Sunday .. 7=Saturday.

    >>> calendar_weekday(date(1987, 5, 4))  # a Monday
    2
    """
    return (dt.weekday() + 1) % 7 + 1


def guess_end_date(start: datetime, all_day: bool) -> datetime:
    """Guess the end of an event (or event modification) without one.

    All-day events last the start day itself: the inclusive end date equals
    the start date. Timed events get DEFAULT_EVENT_DURATION.
    """
    if all_day:
        return start
    return start + DEFAULT_EVENT_DURATION


def is_all_day_token(token: str) -> bool:
    """Return True for date-only tokens.

    In an ICS file there is no flag marking an all-day event; instead the
    start and end carry only a date, so the token is at most 8 characters.
    """
    return len(token.strip()) <= ALL_DAY_TOKEN_LENGTH


class LiteDateTokenParser:
    """Parse iCalendar date tokens into timezone-aware datetimes.

    Handles:
    - ``20250623``: all-day, midnight in the default zone
    - ``20250623T083000``: local time in the TZID zone, else the default zone
    - ``20250623T083000Z``: UTC
    - ``TZID=Europe/Berlin:20250623T083000``: inline TZID prefix
    """

    def __init__(self, default_timezone: Optional[str] = None):
        """Initialize token parser.

        Args:
            default_timezone: Zone for tokens without TZID (defaults to UTC)
        """
        self.default_timezone = default_timezone or DEFAULT_IMPORT_TIMEZONE

    @property
    def default_zone(self) -> tzinfo:
        return resolve_zone(self.default_timezone)

    def split_tzid(self, token: str) -> tuple[Optional[str], str]:
        """Split an inline ``TZID=<zone>:<value>`` prefix from a token."""
        if not token.startswith("TZID="):
            return None, token
        tzid_part, _, value = token.rpartition(":")
        return tzid_part[len("TZID="):].strip(), value

    def parse_token(self, token: str, tzid: Optional[str] = None) -> datetime:
        """Parse a DTSTART/DTEND/UNTIL value.

        Args:
            token: Raw token text
            tzid: Value of the TZID parameter, if any

        Returns:
            Timezone-aware datetime

        Raises:
            ValueError: If the token matches none of the accepted formats
        """
        if not token or not token.strip():
            raise ValueError("Empty date token")

        inline_tzid, value = self.split_tzid(token.strip())
        tzid = tzid or inline_tzid
        if not DATE_TOKEN_PATTERN.match(value):
            raise ValueError(f"Unsupported date token: {value!r}")

        if is_all_day_token(value):
            return self.parse_date(value)

        if value.endswith("Z"):
            return datetime.strptime(value, UTC_DATETIME_FORMAT).replace(tzinfo=UTC)

        naive = datetime.strptime(value, LOCAL_DATETIME_FORMAT)
        zone = resolve_zone(tzid, self.default_timezone) if tzid else self.default_zone
        return naive.replace(tzinfo=zone)

    def parse_date(self, token: str) -> datetime:
        """Parse a date-only token to midnight in the default zone."""
        value = token.strip()
        if len(value) != ALL_DAY_TOKEN_LENGTH or not value.isdigit():
            raise ValueError(f"Unsupported date token: {value!r}")
        parsed = datetime.strptime(value, DATE_FORMAT)
        return parsed.replace(tzinfo=self.default_zone)
