"""Exceptions raised by the cron parser, the job registry and the scheduler.

Every exception carries an ``exit_code`` so the CLI error handler can map
it to a process status without knowing the concrete type.
"""

from typing import Any, Optional

from cronledger.cli.exit_codes import ExitCode


class CronLedgerError(Exception):
    """Base exception for cronledger.

    Attributes:
        message: Error message
        exit_code: Exit code to use when the error reaches the CLI
        details: Optional dictionary of additional error details
    """

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(CronLedgerError):
    """Raised for unusable configuration or a broken job registration hook."""

    exit_code = ExitCode.CONFIGURATION_ERROR


# Cron expressions

class CronParseError(CronLedgerError):
    """A cron expression or one of its fields failed validation.

    The field limits are kept on the exception so callers can point at
    the offending part without parsing the message.
    """

    exit_code = ExitCode.INVALID_SCHEDULE

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[str] = None,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum


class InvalidFieldCountError(CronParseError):
    """The expression did not split into 5 or 6 fields."""

    def __init__(self, message: str, count: int) -> None:
        super().__init__(message)
        self.count = count


class NoValidTimestampError(CronLedgerError):
    """No timestamp satisfying the expression could be found."""

    exit_code = ExitCode.INVALID_SCHEDULE


# Registry

class RegistrationError(CronLedgerError):
    """Hard registration failure; nothing was registered."""

    exit_code = ExitCode.REGISTRATION_ERROR


class EmptyJobNameError(RegistrationError):
    pass


class DuplicateJobError(RegistrationError):
    pass


class CallbackNotInvocableError(RegistrationError):
    pass


class JobNotFoundError(CronLedgerError):
    """No job with the given name is registered."""

    exit_code = ExitCode.NOT_FOUND


class ExecutionNotFoundError(CronLedgerError):
    """An admin action found no execution row in the expected state."""

    exit_code = ExitCode.NOT_FOUND


# Running

class JobRunError(CronLedgerError):
    """The job cannot be run in its current state."""

    exit_code = ExitCode.RUN_REJECTED


class JobInactiveError(JobRunError):
    pass


class JobValidationError(JobRunError):
    pass


class JobAlreadyRunningError(JobRunError):
    pass


class JobBlockedError(JobRunError):
    pass
