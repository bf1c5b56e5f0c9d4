"""Unit tests for recurrence_lite.core.timezone_utils module."""

import datetime
import zoneinfo

import pytest

from recurrence_lite.core.timezone_utils import (
    WINDOWS_TZ_MAP,
    normalize_timezone_name,
    resolve_zone,
    windows_tz_to_iana,
)

pytestmark = pytest.mark.unit


class TestWindowsTimezoneMapping:
    @pytest.mark.parametrize(
        ("windows_name", "iana"),
        [
            ("Pacific Standard Time", "America/Los_Angeles"),
            ("W. Europe Standard Time", "Europe/Berlin"),
            ("FLE Standard Time", "Europe/Helsinki"),
            ("Tokyo Standard Time", "Asia/Tokyo"),
        ],
    )
    def test_windows_tz_to_iana(self, windows_name, iana):
        assert windows_tz_to_iana(windows_name) == iana

    def test_unknown_windows_name_returns_none(self):
        assert windows_tz_to_iana("Atlantis Standard Time") is None

    def test_every_mapped_zone_exists(self):
        for iana in WINDOWS_TZ_MAP.values():
            zoneinfo.ZoneInfo(iana)


class TestNormalizeTimezoneName:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Europe/Berlin", "Europe/Berlin"),
            ("Eastern Standard Time", "America/New_York"),
            ("US/Pacific", "America/Los_Angeles"),
            ("GMT", "UTC"),
            ('"Europe/Paris"', "Europe/Paris"),
        ],
    )
    def test_normalize_known_names(self, raw, expected):
        assert normalize_timezone_name(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "Invalid/Timezone"])
    def test_normalize_unknown_names(self, raw):
        assert normalize_timezone_name(raw) is None


class TestResolveZone:
    def test_utc_resolves_to_datetime_utc(self):
        assert resolve_zone("UTC") is datetime.UTC
        assert resolve_zone("Z") is datetime.UTC

    def test_iana_name_resolves_to_zoneinfo(self):
        assert resolve_zone("Europe/Berlin") == zoneinfo.ZoneInfo("Europe/Berlin")

    def test_unknown_name_uses_fallback(self):
        assert resolve_zone("No/Such_Zone", "Asia/Tokyo") == zoneinfo.ZoneInfo("Asia/Tokyo")

    def test_none_uses_fallback(self):
        assert resolve_zone(None) is datetime.UTC
