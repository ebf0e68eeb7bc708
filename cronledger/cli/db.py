"""cronledger db command - Manage the execution ledger database."""

from typing import Optional

import typer
from rich.console import Console

from cronledger.cli.error_handler import handle_errors
from cronledger.cli.output import print_result

app = typer.Typer(help="Manage the execution ledger database.")
console = Console()


@app.command("init")
@handle_errors
def init_db(
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Drop existing tables first (deletes all execution history).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Skip confirmation prompt.",
    ),
) -> None:
    """Create the ledger tables.

    Example:
        cronledger db init
        cronledger db init --reset --force
    """
    from cronledger.config import get_config
    from cronledger.database.connection import create_tables, reset_database

    config = get_config()

    if reset:
        if not force:
            confirm = typer.confirm("Delete all execution history?")
            if not confirm:
                raise typer.Abort()
        reset_database(config)
    else:
        create_tables(config)

    print_result(True, "Database initialized", {"url": config.database_url})


@app.command("cleanup")
@handle_errors
def cleanup_db(
    max_days: Optional[int] = typer.Option(
        None,
        "--max-days",
        "-d",
        help="Delete executions completed more than this many days ago.",
        min=1,
    ),
    max_records: Optional[int] = typer.Option(
        None,
        "--max-records",
        "-n",
        help="Keep at most this many finished executions.",
        min=1,
    ),
) -> None:
    """Prune finished executions by age and count.

    Pending, running and blocked executions are never deleted.

    Example:
        cronledger db cleanup
        cronledger db cleanup --max-days 7 --max-records 1000
    """
    from cronledger.scheduler.job_scheduler import JobScheduler

    scheduler = JobScheduler()
    deleted = scheduler.cleanup_history(max_days=max_days, max_records=max_records)

    print_result(
        True,
        f"Deleted {deleted['expired'] + deleted['excess']} executions",
        {"expired": deleted["expired"], "over limit": deleted["excess"]},
    )
