"""Timezone name resolution utilities for recurrence_lite."""

from __future__ import annotations

import datetime
import logging
import zoneinfo
from functools import lru_cache

logger = logging.getLogger(__name__)

# Default zone for import tokens that carry no TZID
DEFAULT_IMPORT_TIMEZONE = "UTC"

# Windows timezone names to IANA identifier mapping
# Common Windows timezones used in ICS files from Outlook/Exchange
WINDOWS_TZ_MAP: dict[str, str] = {
    # US Timezones
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",  # Arizona (no DST)
    # Europe
    "GMT Standard Time": "Europe/London",
    "Central European Standard Time": "Europe/Warsaw",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "E. Europe Standard Time": "Europe/Chisinau",
    "GTB Standard Time": "Europe/Bucharest",
    "FLE Standard Time": "Europe/Helsinki",
    "Russian Standard Time": "Europe/Moscow",
    # Asia & Pacific
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "India Standard Time": "Asia/Kolkata",
    "Singapore Standard Time": "Asia/Singapore",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "New Zealand Standard Time": "Pacific/Auckland",
    # UTC variants
    "UTC": "UTC",
    "Coordinated Universal Time": "UTC",
}

# Timezone aliases mapping (obsolete/deprecated IANA names to current names)
TZ_ALIAS_MAP: dict[str, str] = {
    "US/Pacific": "America/Los_Angeles",
    "US/Mountain": "America/Denver",
    "US/Central": "America/Chicago",
    "US/Eastern": "America/New_York",
    "GMT": "UTC",
    "Etc/UTC": "UTC",
    "Etc/GMT": "UTC",
    "Zulu": "UTC",
    "Z": "UTC",
}


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier.

    Args:
        windows_tz: Windows timezone name (e.g., "Mountain Standard Time")

    Returns:
        IANA timezone identifier (e.g., "America/Denver") or None if not found
    """
    return WINDOWS_TZ_MAP.get(windows_tz)


def normalize_timezone_name(tz_str: str | None) -> str | None:
    """Normalize timezone string to canonical IANA timezone identifier.

    Resolution order: Windows name, alias, plain IANA name. Every candidate is
    validated with zoneinfo.

    Examples:
        >>> normalize_timezone_name("Pacific Standard Time")
        'America/Los_Angeles'
        >>> normalize_timezone_name("GMT")
        'UTC'
        >>> normalize_timezone_name("Invalid/Timezone") is None
        True
    """
    if not tz_str:
        return None

    candidate = tz_str.strip().strip('"')
    candidate = windows_tz_to_iana(candidate) or TZ_ALIAS_MAP.get(candidate, candidate)
    try:
        zoneinfo.ZoneInfo(candidate)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.debug("Timezone %r could not be resolved", tz_str)
        return None
    return candidate


@lru_cache(maxsize=64)
def resolve_zone(tz_str: str | None, fallback: str = DEFAULT_IMPORT_TIMEZONE) -> datetime.tzinfo:
    """Resolve a timezone name to a tzinfo, falling back to ``fallback``.

    UTC resolves to ``datetime.UTC`` so that datetimes built from UTC tokens
    compare and serialize like any other UTC value.
    """
    name = normalize_timezone_name(tz_str)
    if name is None:
        if tz_str:
            logger.warning("Unknown timezone %r; using %s", tz_str, fallback)
        name = normalize_timezone_name(fallback) or DEFAULT_IMPORT_TIMEZONE
    if name == "UTC":
        return datetime.UTC
    return zoneinfo.ZoneInfo(name)
