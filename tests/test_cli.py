"""
Tests for the command line interface.
"""

from pathlib import Path

import pendulum
from typer.testing import CliRunner

from bookingslots import __version__
from bookingslots.cli.app import app

runner = CliRunner()

EXAMPLE_CONFIG = str(Path(__file__).parent.parent / "config.example.yaml")
TZ = "Asia/Kolkata"


def _next_monday() -> str:
    today = pendulum.today(TZ)
    return today.add(days=7 - today.weekday()).format("YYYY-MM-DD")


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_providers():
    result = runner.invoke(app, ["list-providers", "--config", EXAMPLE_CONFIG])

    assert result.exit_code == 0
    assert "pandit-sharma" in result.output
    assert "acharya-iyer" in result.output


def test_slots_for_next_monday():
    monday = _next_monday()

    result = runner.invoke(
        app,
        ["slots", "pandit-sharma", "--config", EXAMPLE_CONFIG, "--start", monday, "--end", monday, "--mock"],
    )

    assert result.exit_code == 0
    # 09:00-12:00 and 15:00-18:00 with 30 minute sessions and 15 minute buffers
    assert "8 open slot(s)" in result.output
    assert "09:00 - 09:30" in result.output
    assert "15:45 - 16:15" in result.output


def test_slots_with_duration():
    monday = _next_monday()

    result = runner.invoke(
        app,
        ["slots", "acharya-iyer", "-c", EXAMPLE_CONFIG, "--start", monday, "--end", monday, "-d", "45"],
    )

    assert result.exit_code == 0
    assert "(45 min)" in result.output


def test_slots_duration_out_of_bounds():
    monday = _next_monday()

    result = runner.invoke(
        app,
        ["slots", "pandit-sharma", "-c", EXAMPLE_CONFIG, "--start", monday, "--end", monday, "-d", "500"],
    )

    assert result.exit_code == 1
    assert "Duration must be between" in result.output


def test_slots_unknown_provider():
    result = runner.invoke(app, ["slots", "nobody", "--config", EXAMPLE_CONFIG])

    assert result.exit_code == 1
    assert "Unknown provider" in result.output


def test_slots_missing_config(tmp_path):
    result = runner.invoke(app, ["slots", "pandit-sharma", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_check_bookable():
    result = runner.invoke(
        app,
        [
            "check", "pandit-sharma", "--config", EXAMPLE_CONFIG,
            "--date", _next_monday(), "--start", "09:15", "--end", "09:45",
        ],
    )

    assert result.exit_code == 0
    assert "is bookable" in result.output


def test_check_outside_working_hours():
    result = runner.invoke(
        app,
        [
            "check", "pandit-sharma", "--config", EXAMPLE_CONFIG,
            "--date", _next_monday(), "--start", "13:00", "--end", "13:30",
        ],
    )

    assert result.exit_code == 2
    assert "outside working hours" in result.output


def test_check_invalid_time():
    result = runner.invoke(
        app,
        [
            "check", "pandit-sharma", "--config", EXAMPLE_CONFIG,
            "--date", _next_monday(), "--start", "9am", "--end", "10:00",
        ],
    )

    assert result.exit_code == 1
    assert "Invalid time of day" in result.output
