"""Unit tests for recurrence_lite.__main__ module.

Tests cover CLI argument parsing, both sub-commands and the exit codes of
the main entry point.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from recurrence_lite.__main__ import _create_parser, main


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory so no recurrence_lite.yaml is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


@pytest.mark.unit
class TestCreateParser:
    """Tests for argument parser creation."""

    def test_create_parser_when_called_then_returns_parser(self) -> None:
        parser = _create_parser()

        assert parser.prog == "recurrence-lite"
        assert "Recurrence Lite" in parser.description

    def test_create_parser_when_interpret_then_parses_values(self) -> None:
        args = _create_parser().parse_args(
            ["interpret", "--dtstart", "20240902T090000", "--dtend", "20240902T100000", "--tzid", "Europe/Berlin"]
        )
        assert args.command == "interpret"
        assert args.rrule is None
        assert args.tzid == "Europe/Berlin"
        assert args.debug is False

    def test_create_parser_when_expand_then_to_is_optional(self) -> None:
        args = _create_parser().parse_args(["--debug", "expand", "team.ics", "--from", "2024-09-01"])
        assert args.file == "team.ics"
        assert args.date_from == "2024-09-01"
        assert args.date_to is None
        assert args.debug is True

    def test_create_parser_when_no_command_then_exits(self) -> None:
        with pytest.raises(SystemExit):
            _create_parser().parse_args([])

    def test_create_parser_when_expand_without_from_then_exits(self) -> None:
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["expand", "team.ics"])


@pytest.mark.unit
class TestMainInterpret:
    def test_main_when_interpret_then_prints_parse_result(
        self, isolated_cwd: Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = _run(
            [
                "interpret",
                "--dtstart",
                "20240902T090000Z",
                "--dtend",
                "20240902T100000Z",
                "--rrule",
                "FREQ=WEEKLY;INTERVAL=2",
            ]
        )

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["is_recurrent"] is True
        assert payload["recurrence_frequency"] == "biweekly"
        assert payload["all_day"] is False

    def test_main_when_dtstart_malformed_then_exits_one(self, isolated_cwd: Path) -> None:
        assert _run(["interpret", "--dtstart", "yesterday", "--dtend", "20240902T100000Z"]) == 1


@pytest.mark.unit
class TestMainExpand:
    @pytest.fixture
    def ics_file(self, isolated_cwd: Path, sample_ics: str) -> Path:
        path = isolated_cwd / "team.ics"
        path.write_text(sample_ics, encoding="utf-8")
        return path

    def test_main_when_expand_then_prints_instances(
        self, ics_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = _run(["expand", str(ics_file), "--from", "2024-09-01", "--to", "2024-09-30"])

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        instances = payload["instances"]

        standups = [inst for inst in instances if inst["series_id"] == "standup@example.com"]
        assert len(standups) == 20  # workdays 09-02 .. 09-27, UNTIL 09-30
        assert all(inst["recurrent"] for inst in standups)
        assert {inst["series_id"] for inst in instances} == {
            "standup@example.com",
            "review@example.com",
            "offsite@example.com",
        }
        assert len(instances) == 22
        assert instances[0]["series_id"] == "standup@example.com"
        assert payload["duplicates"] == ["standup@example.com"]
        assert list(payload["errors"]) == ["broken@example.com"]
        assert payload["truncated_series"] == []

    def test_main_when_window_misses_singles_then_only_series(
        self, ics_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = _run(["expand", str(ics_file), "--from", "2024-09-16", "--to", "2024-09-20T23:59"])

        assert code == 0
        instances = json.loads(capsys.readouterr().out)["instances"]
        assert len(instances) == 5
        assert all(inst["series_id"] == "standup@example.com" for inst in instances)

    def test_main_when_max_instances_configured_then_series_is_truncated(
        self, ics_file: Path, isolated_cwd: Path, capsys: pytest.CaptureFixture
    ) -> None:
        (isolated_cwd / "recurrence_lite.yaml").write_text("max_instances: 3\n")

        code = _run(["expand", str(ics_file), "--from", "2024-09-01", "--to", "2024-09-30"])

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["truncated_series"] == ["standup@example.com"]

    def test_main_when_file_missing_then_exits_one(self, isolated_cwd: Path) -> None:
        assert _run(["expand", str(isolated_cwd / "missing.ics"), "--from", "2024-09-01"]) == 1

    def test_main_when_window_date_invalid_then_exits_one(self, ics_file: Path) -> None:
        assert _run(["expand", str(ics_file), "--from", "first of september"]) == 1


@pytest.mark.unit
class TestMainConfig:
    def test_main_when_config_invalid_then_exits_two(
        self, isolated_cwd: Path, capsys: pytest.CaptureFixture
    ) -> None:
        config_path = isolated_cwd / "bad.yaml"
        config_path.write_text("- not\n- a mapping\n")

        code = _run(
            ["--config", str(config_path), "interpret", "--dtstart", "20240902", "--dtend", "20240903"]
        )

        assert code == 2
        assert "Error:" in capsys.readouterr().err
