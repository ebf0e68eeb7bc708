"""Tests for error handler module."""

import pytest
import typer
from sqlalchemy.exc import OperationalError

from cronledger.cli.error_handler import get_error_context, handle_errors
from cronledger.cli.exit_codes import ExitCode
from cronledger.exceptions import (
    ConfigurationError,
    CronLedgerError,
    CronParseError,
    DuplicateJobError,
    ExecutionNotFoundError,
    InvalidFieldCountError,
    JobBlockedError,
    JobNotFoundError,
    NoValidTimestampError,
)


class TestCronLedgerError:
    """Test base CronLedgerError class."""

    def test_basic_error(self) -> None:
        """Test basic error creation."""
        error = CronLedgerError("Test error")
        assert error.message == "Test error"
        assert error.exit_code == ExitCode.GENERAL_ERROR
        assert error.details == {}

    def test_error_with_exit_code(self) -> None:
        """Test error with custom exit code."""
        error = CronLedgerError("Test error", exit_code=ExitCode.CONFIGURATION_ERROR)
        assert error.exit_code == ExitCode.CONFIGURATION_ERROR

    def test_error_str_without_details(self) -> None:
        """Test string representation without details."""
        assert str(CronLedgerError("Test error")) == "Test error"

    def test_error_str_with_details(self) -> None:
        """Test string representation with details."""
        error = CronLedgerError("Test error", details={"job": "backup"})
        assert str(error) == "Test error (job=backup)"


class TestErrorExitCodes:
    """Test exit codes of the specific errors."""

    @pytest.mark.parametrize("error,code", [
        (ConfigurationError("x"), ExitCode.CONFIGURATION_ERROR),
        (CronParseError("x"), ExitCode.INVALID_SCHEDULE),
        (InvalidFieldCountError("x", count=3), ExitCode.INVALID_SCHEDULE),
        (NoValidTimestampError("x"), ExitCode.INVALID_SCHEDULE),
        (DuplicateJobError("x"), ExitCode.REGISTRATION_ERROR),
        (JobNotFoundError("x"), ExitCode.NOT_FOUND),
        (ExecutionNotFoundError("x"), ExitCode.NOT_FOUND),
        (JobBlockedError("x"), ExitCode.RUN_REJECTED),
    ])
    def test_exit_code(self, error: CronLedgerError, code: int) -> None:
        """Test that every error carries its exit code."""
        assert error.exit_code == code

    def test_parse_error_fields(self) -> None:
        """Test the field limits kept on parse errors."""
        error = CronParseError("bad", field="hours", value="25", minimum=0, maximum=23)
        assert (error.field, error.value, error.minimum, error.maximum) == ("hours", "25", 0, 23)


class TestHandleErrors:
    """Test handle_errors decorator."""

    def test_passes_return_value(self) -> None:
        """Test that successful calls are untouched."""
        @handle_errors
        def command():
            return "ok"

        assert command() == "ok"

    def test_cronledger_error(self, capsys) -> None:
        """Test that library errors exit with their code and show details."""
        @handle_errors
        def command():
            raise JobBlockedError("Job 'backup' is blocked", details={"reason": "3 failures"})

        with pytest.raises(typer.Exit) as exc_info:
            command()

        assert exc_info.value.exit_code == ExitCode.RUN_REJECTED
        err = capsys.readouterr().err
        assert "Job 'backup' is blocked" in err
        assert "3 failures" in err

    def test_markup_is_escaped(self, capsys) -> None:
        """Test that brackets in messages are printed literally."""
        @handle_errors
        def command():
            raise CronParseError("Invalid format for field 'minutes': [5]")

        with pytest.raises(typer.Exit):
            command()
        assert "[5]" in capsys.readouterr().err

    def test_database_error(self, capsys) -> None:
        """Test that database errors map to the storage exit code."""
        @handle_errors
        def command():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        with pytest.raises(typer.Exit) as exc_info:
            command()

        assert exc_info.value.exit_code == ExitCode.STORAGE_ERROR
        assert "database is locked" in capsys.readouterr().err

    def test_keyboard_interrupt(self) -> None:
        """Test cancellation."""
        @handle_errors
        def command():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            command()
        assert exc_info.value.exit_code == ExitCode.CANCELLED

    def test_typer_exit_passes_through(self) -> None:
        """Test that explicit exits keep their code."""
        @handle_errors
        def command():
            raise typer.Exit(code=ExitCode.JOB_FAILED)

        with pytest.raises(typer.Exit) as exc_info:
            command()
        assert exc_info.value.exit_code == ExitCode.JOB_FAILED

    def test_unexpected_error(self, capsys) -> None:
        """Test the generic error path."""
        @handle_errors
        def command():
            raise RuntimeError("something odd")

        with pytest.raises(typer.Exit) as exc_info:
            command()

        assert exc_info.value.exit_code == ExitCode.GENERAL_ERROR
        assert "something odd" in capsys.readouterr().err

    def test_preserves_metadata(self) -> None:
        """Test that the wrapper keeps the function name and docstring."""
        @handle_errors
        def command():
            """Docstring."""

        assert command.__name__ == "command"
        assert command.__doc__ == "Docstring."


class TestGetErrorContext:
    """Test get_error_context."""

    def test_short_context(self) -> None:
        """Test the condensed context."""
        try:
            raise ValueError("bad value")
        except ValueError:
            context = get_error_context()
        assert "ValueError: bad value" in context

    def test_verbose_context(self) -> None:
        """Test the full traceback."""
        try:
            raise ValueError("bad value")
        except ValueError:
            context = get_error_context(verbose=True)
        assert context.startswith("Traceback")
