"""Tests for output formatting module."""

import json
from datetime import datetime
from io import StringIO
from unittest.mock import Mock

import pytest
from rich.console import Console

from cronledger.cli.output import (
    format_datetime,
    format_duration,
    format_status,
    print_json,
    print_key_value,
    print_result,
)


def make_console() -> Console:
    return Console(file=StringIO(), width=120, color_system=None)


class TestPrintJson:
    """Test print_json function."""

    def test_uses_rich_json(self) -> None:
        """Test that a Rich JSON renderable is printed."""
        mock_console = Mock()
        print_json({"key": "value"}, console_instance=mock_console)

        mock_console.print.assert_called_once()
        renderable = mock_console.print.call_args[0][0]
        assert type(renderable).__name__ == "JSON"

    def test_datetimes_serialized(self) -> None:
        """Test that non-JSON values are converted with str()."""
        console = make_console()
        print_json({"at": datetime(2026, 1, 5, 12, 0)}, console_instance=console)
        assert json.loads(console.file.getvalue()) == {"at": "2026-01-05 12:00:00"}


class TestPrintResult:
    """Test print_result function."""

    def test_success(self) -> None:
        """Test a successful result with details."""
        console = make_console()
        print_result(True, "Job 'ping' completed", {"next run": "2026-01-05 00:05", "error": None},
                     console_instance=console)

        output = console.file.getvalue()
        assert "✓ Job 'ping' completed" in output
        assert "next run: 2026-01-05 00:05" in output
        assert "error" not in output

    def test_failure(self) -> None:
        """Test a failed result."""
        console = make_console()
        print_result(False, "Job 'ping' failed", console_instance=console)
        assert "✗ Job 'ping' failed" in console.file.getvalue()


class TestPrintKeyValue:
    """Test print_key_value function."""

    def test_values(self) -> None:
        """Test formatting of different value types."""
        console = make_console()
        print_key_value(
            {"jobs": 3, "healthy": True, "since": datetime(2026, 1, 5, 8, 30), "zone": None},
            title="Scheduler",
            console_instance=console,
        )

        output = console.file.getvalue()
        assert "Scheduler" in output
        assert "3" in output
        assert "Yes" in output
        assert "2026-01-05 08:30" in output
        assert "N/A" in output


class TestFormatters:
    """Test formatting helpers."""

    def test_format_datetime(self) -> None:
        """Test datetime formatting to the minute."""
        assert format_datetime(datetime(2026, 1, 5, 8, 30, 45)) == "2026-01-05 08:30"
        assert format_datetime(None) == "N/A"
        assert format_datetime(None, empty="never") == "never"

    def test_format_status(self) -> None:
        """Test status coloring."""
        assert format_status("failed") == "[red]failed[/red]"
        assert format_status("weird") == "[white]weird[/white]"
        assert format_status(None) == "[dim]none[/dim]"

    @pytest.mark.parametrize("seconds,expected", [
        (5, "5.0s"),
        (90, "1m 30s"),
        (3661, "1h 1m"),
    ])
    def test_format_duration(self, seconds: float, expected: str) -> None:
        """Test duration formatting."""
        assert format_duration(seconds) == expected
