"""Main CLI entry point for cronledger."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cronledger import __app_name__, __version__
from cronledger.cli import config, cron, db, jobs, run
from cronledger.cli.exit_codes import ExitCode

# Create the main Typer app
app = typer.Typer(
    name=__app_name__,
    help="cronledger - Cron scheduler with a persisted job execution ledger.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Console for CLI output
console = Console()

# Register command groups
app.command("tick")(run.tick)
app.add_typer(run.app, name="run")
app.add_typer(jobs.app, name="jobs")
app.add_typer(cron.app, name="cron")
app.add_typer(db.app, name="db")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


def _setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
    default_level: str = "WARNING",
) -> None:
    """Set up logging configuration based on CLI options.

    Args:
        verbose: Enable INFO level logging
        debug: Enable DEBUG level logging
        quiet: Suppress non-error output
        log_file: Optional log file path
        default_level: Level used when no flag is given (from configuration)
    """
    # Determine log level
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.getLevelName(default_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    # Configure format
    if debug:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Set up handlers
    handlers: list[logging.Handler] = []

    # Add file handler if specified
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        handlers.append(file_handler)

    # Add console handler unless quiet mode
    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        handlers.append(console_handler)
    elif not log_file:
        # In quiet mode without log file, add null handler to prevent warnings
        handlers.append(logging.NullHandler())

    # Configure root logger
    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        format=format_str,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, debug={debug}")


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging with source locations).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log to file (logs DEBUG level regardless of console settings).",
    ),
) -> None:
    """cronledger - Cron scheduler with a persisted job execution ledger.

    Jobs are registered in Python by a hook function
    ([cyan]--jobs package.module:function[/cyan] or
    [cyan]scheduler.jobs_module[/cyan] in the configuration) that receives
    the scheduler. Every scheduled and attempted execution is kept in the
    ledger database.

    [bold]Core Commands:[/bold]

    • [cyan]tick[/cyan] - Run due jobs once (call it from cron)
    • [cyan]run[/cyan] - Keep running due jobs in the foreground
    • [cyan]jobs[/cyan] - List, run, retry, block and unblock jobs
    • [cyan]cron[/cyan] - Describe, validate and preview cron expressions
    • [cyan]db[/cyan] - Initialize and prune the ledger database
    • [cyan]config[/cyan] - Manage configuration

    [bold]Examples:[/bold]

        cronledger tick --jobs myapp.jobs:register
        cronledger jobs list --jobs myapp.jobs:register
        cronledger cron next "0 9 * * mon-fri"
    """
    from cronledger.config import get_config, load_config, set_config

    # Validate mutually exclusive options
    if quiet and verbose:
        console.print("[red]Error:[/red] --quiet and --verbose are mutually exclusive")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    if quiet and debug:
        console.print("[red]Error:[/red] --quiet and --debug are mutually exclusive")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    if config_file is not None:
        set_config(load_config(config_file))
    settings = get_config()

    # Set up logging
    _setup_logging(
        verbose=verbose,
        debug=debug,
        quiet=quiet,
        log_file=log_file or settings.logging.file,
        default_level=settings.logging.level,
    )

    # Log startup info in debug mode
    logger = logging.getLogger(__name__)
    logger.debug(f"cronledger v{__version__} starting")
    logger.debug(f"Options: verbose={verbose}, debug={debug}, quiet={quiet}")


__all__ = ["app", "console"]


if __name__ == "__main__":
    app()
