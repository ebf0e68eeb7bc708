"""Tests for the cron command group."""

import json

from typer.testing import CliRunner

from cronledger.cli.exit_codes import ExitCode
from cronledger.main import app


class TestCronDescribe:
    """Tests for 'cron describe'."""

    def test_describe(self, runner: CliRunner, cli_config) -> None:
        """Test describing an expression."""
        result = runner.invoke(app, ["cron", "describe", "30 9 * 1,4,7,10 mon-fri"])

        assert result.exit_code == 0, result.output
        assert "30 9 * 1,4,7,10 1-5: At 09:30 on weekdays in January, April, July, October" in result.output

    def test_describe_alias(self, runner: CliRunner, cli_config) -> None:
        """Test describing an alias."""
        result = runner.invoke(app, ["cron", "describe", "hourly"])

        assert result.exit_code == 0, result.output
        assert "At minute 0 past every hour" in result.output

    def test_describe_invalid(self, runner: CliRunner, cli_config) -> None:
        """Test describing an invalid expression."""
        result = runner.invoke(app, ["cron", "describe", "0 25 * * *"])

        assert result.exit_code == ExitCode.INVALID_SCHEDULE
        assert "Invalid value for field 'hours'" in result.output


class TestCronNext:
    """Tests for 'cron next'."""

    def test_next_json(self, runner: CliRunner, cli_config) -> None:
        """Test upcoming runs from a fixed start."""
        result = runner.invoke(app, [
            "-q", "cron", "next", "0 12 * * *",
            "--from", "2026-01-05T13:00:00", "--count", "2", "--json",
        ])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == ["2026-01-06T12:00:00", "2026-01-07T12:00:00"]

    def test_next_table(self, runner: CliRunner, cli_config) -> None:
        """Test the run time table."""
        result = runner.invoke(app, ["cron", "next", "0 0 29 2 *", "--from", "2026-03-01", "-n", "1"])

        assert result.exit_code == 0, result.output
        assert "2028-02-29 00:00" in result.output
        assert "Tuesday" in result.output

    def test_next_from_now(self, runner: CliRunner, cli_config) -> None:
        """Test the default start time."""
        result = runner.invoke(app, ["-q", "cron", "next", "* * * * *", "--json"])

        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)) == 5

    def test_next_exhausted(self, runner: CliRunner, cli_config) -> None:
        """Test an expression with no future runs."""
        result = runner.invoke(app, ["cron", "next", "0 0 1 1 * 2020", "--from", "2026-01-01"])

        assert result.exit_code == ExitCode.INVALID_SCHEDULE
        assert "No valid year found after 2026" in result.output


class TestCronValidate:
    """Tests for 'cron validate'."""

    def test_valid(self, runner: CliRunner, cli_config) -> None:
        """Test a valid expression."""
        result = runner.invoke(app, ["cron", "validate", "*/15 9-17 * * mon-fri"])

        assert result.exit_code == 0, result.output
        assert "Valid cron expression: */15 9-17 * * mon-fri" in result.output

    def test_invalid(self, runner: CliRunner, cli_config) -> None:
        """Test an invalid expression."""
        result = runner.invoke(app, ["cron", "validate", "0 0 * * 5-1"])

        assert result.exit_code == ExitCode.INVALID_SCHEDULE
        assert "Start value (5) cannot be greater than end value (1)" in result.output


class TestCronAliases:
    """Tests for 'cron aliases'."""

    def test_json(self, runner: CliRunner, cli_config) -> None:
        """Test the alias table as JSON."""
        result = runner.invoke(app, ["-q", "cron", "aliases", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["aliases"]["hourly"] == "0 * * * *"
        assert data["intervals"]["minutely"] == 60

    def test_table(self, runner: CliRunner, cli_config) -> None:
        """Test the alias table."""
        result = runner.invoke(app, ["cron", "aliases"])

        assert result.exit_code == 0, result.output
        assert "every_5_minutes" in result.output
        assert "minutely" in result.output
