"""
AVONLEA Command Line Tests

Run:
    pytest tests/unit/test_cli.py -v
"""

import json
import logging

import pytest

from avonlea.cli import build_parser, main
from avonlea.logging_config import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """No config discovery, no env overrides, logger restored afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AVONLEA_LOG_LEVEL", raising=False)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestParser:
    """Tests for build_parser()."""

    def test_moon_date(self):
        args = build_parser().parse_args(["moon", "--date", "2024-05-20T22:00"])
        assert args.command == "moon"
        assert (args.date.year, args.date.hour) == (2024, 22)

    def test_bad_date(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["moon", "--date", "tomorrow"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMoonCommand:
    """Tests for `avonlea moon`."""

    def test_prints_configured_start(self, capsys):
        assert main(["--log-level", "ERROR", "moon"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["julian_date"] == pytest.approx(2460451.54167, abs=1e-5)
        assert data["phase_name"] == "Waxing Gibbous"
        assert data["visible"] is True

    def test_default_log_level_keeps_stdout_json(self, capsys):
        """Log lines go to stderr so stdout stays a single JSON document."""
        assert main(["moon"]) == 0
        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert data["phase_name"] == "Waxing Gibbous"
        assert "Moon at" in captured.err

    def test_explicit_date(self, capsys):
        assert main(["--log-level", "ERROR", "moon", "--date", "2000-01-01T15:00"]) == 0
        data = json.loads(capsys.readouterr().out)
        # 15:00 at UTC-3 is 18:00 UTC
        assert data["julian_date"] == pytest.approx(2451545.25, abs=1e-5)

    def test_shape(self, capsys):
        assert main(["--log-level", "ERROR", "moon", "--shape"]) == 0
        out = capsys.readouterr().out
        rows = out.strip().splitlines()[-6:]
        assert all(len(row) == 6 for row in rows)
        assert any("#" in row for row in rows)

    def test_config_file(self, tmp_path, capsys):
        path = tmp_path / "night.yaml"
        path.write_text("moon:\n  year: 2000\n  month: 1\n  day: 1\n  hour: 9\n")
        assert main(["--config", str(path), "--log-level", "ERROR", "moon"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["julian_date"] == pytest.approx(2451545.0, abs=1e-5)

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "none.yaml"), "moon"]) == 2


class TestRunCommand:
    """Tests for `avonlea run`."""

    def test_runs_for_duration(self, tmp_path):
        path = tmp_path / "fixed.yaml"
        path.write_text("weather:\n  source: fixed\n  fixed_state: snowy\n")
        assert main(["--config", str(path), "--log-level", "ERROR",
                     "run", "--duration", "0.1"]) == 0
