"""cronledger cron command - Work with cron expressions."""

from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cronledger.cli.error_handler import handle_errors
from cronledger.cli.exit_codes import ExitCode
from cronledger.cli.output import print_json, print_result

app = typer.Typer(help="Parse, describe and preview cron expressions.")
console = Console()


@app.command("describe")
@handle_errors
def describe_expression(
    expression: str = typer.Argument(..., help="Cron expression or alias, quoted."),
) -> None:
    """Describe a cron expression in words.

    Example:
        cronledger cron describe "30 9 * * 1-5"
        cronledger cron describe hourly
    """
    from cronledger.schedule.description import describe
    from cronledger.schedule.expression import CronExpression

    parsed = CronExpression.parse(expression)
    console.print(f"[cyan]{parsed}[/cyan]: {describe(parsed)}")


@app.command("next")
@handle_errors
def next_runs(
    expression: str = typer.Argument(..., help="Cron expression or alias, quoted."),
    count: int = typer.Option(
        5,
        "--count",
        "-n",
        help="Number of run times to show.",
        min=1,
        max=100,
    ),
    start: Optional[datetime] = typer.Option(
        None,
        "--from",
        help="Start time (default: now in the configured time zone).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Show the next run times of a cron expression.

    Example:
        cronledger cron next "*/15 * * * *" --count 4
        cronledger cron next "0 0 29 2 *" --from 2026-03-01
    """
    from cronledger.config import get_config
    from cronledger.schedule.expression import CronExpression
    from cronledger.scheduler.clock import SystemClock

    config = get_config()
    parsed = CronExpression.parse(expression)
    if start is None:
        start = SystemClock(config.scheduler.timezone).now()

    times = parsed.next_run_times(start, count, config.scheduler.max_iterations)

    if json_output:
        print_json([t.isoformat() for t in times])
        return

    table = Table(title=f"Next runs of '{parsed}'")
    table.add_column("#", style="dim")
    table.add_column("Time", style="green")
    table.add_column("Weekday")
    for index, moment in enumerate(times, start=1):
        table.add_row(str(index), moment.strftime("%Y-%m-%d %H:%M"), moment.strftime("%A"))
    console.print(table)


@app.command("validate")
@handle_errors
def validate_expression(
    expression: str = typer.Argument(..., help="Cron expression or alias, quoted."),
) -> None:
    """Check a cron expression and report the first problem found.

    Example:
        cronledger cron validate "0 25 * * *"
    """
    from cronledger.schedule.expression import validate_cron_string

    error = validate_cron_string(expression)
    if error is None:
        print_result(True, f"Valid cron expression: {expression}")
        return

    print_result(False, "Invalid cron expression", {"error": error})
    raise typer.Exit(code=ExitCode.INVALID_SCHEDULE)


@app.command("aliases")
def list_aliases(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """List schedule aliases and the expressions they stand for.

    Example:
        cronledger cron aliases
    """
    from cronledger.schedule.aliases import RELATIVE_INTERVALS, aliases
    from cronledger.schedule.description import describe_schedule

    table_data = aliases()

    if json_output:
        print_json({"aliases": table_data, "intervals": RELATIVE_INTERVALS})
        return

    table = Table(title="Schedule Aliases")
    table.add_column("Alias", style="cyan")
    table.add_column("Expression", style="green")
    table.add_column("Description")
    for name, expression in table_data.items():
        table.add_row(name, expression, describe_schedule(expression))
    for name, seconds in RELATIVE_INTERVALS.items():
        if name not in table_data:
            table.add_row(name, f"+{seconds}s", f"Every {seconds} seconds after the last run")
    console.print(table)
