"""cronledger tick/run commands - Run due jobs once, or keep ticking."""

import logging
import signal
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console

from cronledger.cli.error_handler import handle_errors
from cronledger.cli.exit_codes import ExitCode
from cronledger.cli.output import print_json, print_result

app = typer.Typer(help="Run the scheduler in the foreground, ticking on an interval.")
console = Console()

logger = logging.getLogger(__name__)


@handle_errors
def tick(
    jobs: Optional[str] = typer.Option(
        None,
        "--jobs",
        "-j",
        help="Job registration hook, 'package.module:function'.",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Maximum number of due executions to run.",
        min=1,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON.",
    ),
) -> None:
    """Run every job whose pending execution is due, then exit.

    Meant to be called from cron or a systemd timer once a minute.

    Example:
        cronledger tick --jobs myapp.jobs:register
    """
    from cronledger.scheduler.job_scheduler import build_scheduler

    scheduler = build_scheduler(jobs_module=jobs)
    results = scheduler.run_due(limit)

    if json_output:
        print_json(results)
    elif not results:
        console.print("[dim]No jobs due.[/dim]")
    else:
        for name, success in results.items():
            print_result(success, f"{name}: {'completed' if success else 'failed'}")

    if not all(results.values()):
        raise typer.Exit(code=ExitCode.JOB_FAILED)


def _setup_listeners(background: Any) -> None:
    """Log tick outcomes reported by APScheduler."""
    from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

    def on_tick_error(event: Any) -> None:
        logger.error(f"Tick failed: {event.exception}")

    def on_tick_missed(event: Any) -> None:
        logger.warning(f"Tick missed at {event.scheduled_run_time}")

    background.add_listener(on_tick_error, EVENT_JOB_ERROR)
    background.add_listener(on_tick_missed, EVENT_JOB_MISSED)


@app.callback(invoke_without_command=True)
@handle_errors
def run(
    jobs: Optional[str] = typer.Option(
        None,
        "--jobs",
        "-j",
        help="Job registration hook, 'package.module:function'.",
    ),
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Seconds between ticks (default: scheduler.tick_interval).",
        min=1,
    ),
) -> None:
    """Keep running due jobs until interrupted.

    Ticks immediately, then every --interval seconds. Several of these
    processes may share one database; a due execution is only claimed once.

    Example:
        cronledger run --jobs myapp.jobs:register
        cronledger run --interval 30
    """
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    from cronledger.scheduler.job_scheduler import build_scheduler

    scheduler = build_scheduler(jobs_module=jobs)
    seconds = interval or scheduler.config.scheduler.tick_interval

    background = BlockingScheduler(timezone=scheduler.config.scheduler.timezone)
    background.add_job(
        scheduler.run_due,
        IntervalTrigger(seconds=seconds),
        id="cronledger-tick",
        name="cronledger tick",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(background.timezone),
    )
    _setup_listeners(background)

    def handle_sigterm(signum: int, frame: Any) -> None:
        logger.info("Received SIGTERM, shutting down")
        background.shutdown(wait=False)

    signal.signal(signal.SIGTERM, handle_sigterm)

    console.print(
        f"[bold green]Scheduler running[/bold green] "
        f"({len(scheduler.jobs)} jobs, tick every {seconds}s)"
    )
    logger.info(f"Scheduler started with {len(scheduler.active_jobs)} active jobs")

    try:
        background.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler interrupted")

    console.print("[green]✓[/green] Scheduler stopped")
