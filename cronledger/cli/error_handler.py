"""Global exception handling for the cronledger CLI.

This module provides a decorator that ensures consistent error reporting
and exit codes across all CLI commands. The exception classes themselves
live in :mod:`cronledger.exceptions` because the library raises them too.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging
import traceback

import typer
from rich.console import Console
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError

from cronledger.cli.exit_codes import ExitCode
from cronledger.exceptions import CronLedgerError

# Console for error output (stderr)
console = Console(stderr=True)

# Logger for error logging
logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    This decorator catches all exceptions and converts them to appropriate
    error messages and exit codes. It handles:

    - CronLedgerError subclasses: Display error message with appropriate exit code
    - SQLAlchemy errors: Show the database error with the storage exit code
    - KeyboardInterrupt: Show cancellation message with exit code 130
    - Other exceptions: Show generic error with option for verbose details

    Args:
        func: The function to wrap

    Returns:
        Wrapped function with error handling

    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise JobNotFoundError("Job 'backup' not found")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CronLedgerError as e:
            # Log the error for debugging
            logger.error(
                f"{type(e).__name__}: {e.message}",
                extra={"exit_code": e.exit_code, "details": e.details},
            )

            # Display user-friendly error
            console.print(f"[red]Error:[/red] {escape(e.message)}")

            # Show details if available
            if e.details:
                for key, value in e.details.items():
                    console.print(f"  [dim]{key}:[/dim] {value}")

            raise typer.Exit(code=e.exit_code)

        except SQLAlchemyError as e:
            logger.exception("Database error")
            console.print(f"[red]Database error:[/red] {escape(str(getattr(e, 'orig', None) or e))}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except (typer.Exit, typer.Abort):
            # Re-raise typer.Exit and typer.Abort as-is
            raise

        except Exception as e:
            # Log full exception for debugging
            logger.exception("Unexpected error occurred")

            # Display generic error to user
            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --debug for more details[/dim]")

            raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]


def get_error_context(verbose: bool = False) -> str:
    """Get formatted error context for debugging.

    Args:
        verbose: If True, include full traceback

    Returns:
        Formatted error context string
    """
    exc_info = traceback.format_exc()

    if verbose:
        return exc_info

    # Get just the exception type and message
    lines = exc_info.strip().split("\n")
    if len(lines) >= 2:
        return f"{lines[-2]}: {lines[-1]}"

    return exc_info
