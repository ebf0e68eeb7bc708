"""cronledger jobs command - Inspect and operate registered jobs."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cronledger.cli.error_handler import handle_errors
from cronledger.cli.exit_codes import ExitCode
from cronledger.cli.output import (
    format_datetime,
    format_status,
    print_json,
    print_key_value,
    print_result,
)

app = typer.Typer(help="Inspect and operate registered jobs.")
console = Console()


def _jobs_option() -> Optional[str]:
    return typer.Option(
        None,
        "--jobs",
        "-j",
        help="Job registration hook, 'package.module:function'.",
    )


def _scheduler(jobs: Optional[str]):
    from cronledger.scheduler.job_scheduler import build_scheduler

    return build_scheduler(jobs_module=jobs)


def _next_run(scheduler, name: str) -> str:
    return format_datetime(scheduler.next_run_time(name), empty="not scheduled")


@app.command("list")
@handle_errors
def list_jobs(
    jobs: Optional[str] = _jobs_option(),
    status: Optional[str] = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by status (active, inactive, invalid).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """List registered jobs with their latest execution.

    Example:
        cronledger jobs list --jobs myapp.jobs:register
        cronledger jobs list --status invalid
    """
    scheduler = _scheduler(jobs)
    job_list = scheduler.jobs

    if status == "active":
        job_list = [j for j in job_list if j.active and not j.has_validation_error]
    elif status == "inactive":
        job_list = [j for j in job_list if not j.active]
    elif status == "invalid":
        job_list = [j for j in job_list if j.has_validation_error]
    elif status is not None:
        console.print(f"[red]Invalid status filter: {status}[/red]")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    if json_output:
        entries = []
        for job in job_list:
            entry = job.to_dict()
            latest = scheduler.get_latest_execution(job.name)
            entry["latest_execution"] = latest.to_dict() if latest else None
            entry["schedule_description"] = scheduler.schedule_description(job.name)
            entries.append(entry)
        print_json(entries)
        return

    if not job_list:
        console.print("[dim]No jobs registered.[/dim]")
        return

    table = Table(title="Registered Jobs")
    table.add_column("Name", style="cyan")
    table.add_column("Schedule", style="green")
    table.add_column("When")
    table.add_column("State", style="bold")
    table.add_column("Latest")
    table.add_column("Next Run")

    for job in job_list:
        if job.has_validation_error:
            state = "[red]invalid[/red]"
        elif job.active:
            state = "[green]active[/green]"
        else:
            state = "[yellow]inactive[/yellow]"

        latest = scheduler.get_latest_execution(job.name)

        table.add_row(
            job.name,
            job.schedule,
            scheduler.schedule_description(job.name),
            state,
            format_status(latest.status.value if latest else None),
            _next_run(scheduler, job.name),
        )

    console.print(table)


@app.command("run")
@handle_errors
def run_job(
    name: str = typer.Argument(..., help="Name of the job to run now."),
    jobs: Optional[str] = _jobs_option(),
) -> None:
    """Run a job immediately (outside of its schedule).

    Example:
        cronledger jobs run nightly-report --jobs myapp.jobs:register
    """
    scheduler = _scheduler(jobs)
    console.print(f"[bold]Running job:[/bold] {name}")

    success = scheduler.run(name)
    _report_run(scheduler, name, success)


@app.command("retry")
@handle_errors
def retry_job(
    name: str = typer.Argument(..., help="Name of the blocked job to retry."),
    jobs: Optional[str] = _jobs_option(),
) -> None:
    """Clear a blocked execution and run the job immediately.

    Example:
        cronledger jobs retry nightly-report
    """
    scheduler = _scheduler(jobs)
    console.print(f"[bold]Retrying job:[/bold] {name}")

    success = scheduler.retry(name)
    _report_run(scheduler, name, success)


def _report_run(scheduler, name: str, success: bool) -> None:
    finished = next(
        (r for r in scheduler.get_history(name, limit=3) if not r.is_open),
        None,
    )
    details = {
        "error": finished.error if finished and not success else None,
        "output": finished.output.strip() if finished and finished.output else None,
        "next run": _next_run(scheduler, name),
    }

    if success:
        print_result(True, f"Job '{name}' completed", details)
    else:
        print_result(False, f"Job '{name}' failed", details)
        raise typer.Exit(code=ExitCode.JOB_FAILED)


@app.command("block")
@handle_errors
def block_job(
    name: str = typer.Argument(..., help="Name of the job to block."),
    jobs: Optional[str] = _jobs_option(),
) -> None:
    """Block a job's pending execution so it does not run.

    Example:
        cronledger jobs block nightly-report
    """
    scheduler = _scheduler(jobs)
    execution = scheduler.block_pending(name)
    print_result(True, f"Job '{name}' blocked", {"execution": execution.id})


@app.command("unblock")
@handle_errors
def unblock_job(
    name: str = typer.Argument(..., help="Name of the job to unblock."),
    jobs: Optional[str] = _jobs_option(),
) -> None:
    """Delete a job's blocked execution and schedule it again.

    A job that still has too many consecutive failures is blocked again;
    use 'retry' to run it instead.

    Example:
        cronledger jobs unblock nightly-report --jobs myapp.jobs:register
    """
    scheduler = _scheduler(jobs)
    execution = scheduler.unblock(name)
    details = {}
    if execution is not None:
        details["status"] = execution.status.value
        details["scheduled"] = format_datetime(execution.scheduled_at)
    print_result(True, f"Job '{name}' unblocked", details)


@app.command("stop")
@handle_errors
def stop_job(
    name: str = typer.Argument(..., help="Name of the job whose execution is stuck."),
    jobs: Optional[str] = _jobs_option(),
) -> None:
    """Mark a job's running execution as failed.

    Use it for executions left running by a process that died.

    Example:
        cronledger jobs stop nightly-report
    """
    scheduler = _scheduler(jobs)
    scheduler.stop(name)
    print_result(True, f"Job '{name}' stopped", {"next run": _next_run(scheduler, name)})


@app.command("status")
@handle_errors
def scheduler_status(
    jobs: Optional[str] = _jobs_option(),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Show scheduler and ledger status.

    Example:
        cronledger jobs status --jobs myapp.jobs:register
    """
    scheduler = _scheduler(jobs)
    status = scheduler.get_status()

    if json_output:
        print_json(status)
        return

    executions = status.pop("executions")
    print_key_value(status, title="Scheduler")
    console.print()
    print_key_value(executions, title="Executions")

    stuck = scheduler.get_stuck_executions()
    if stuck:
        console.print()
        console.print("[yellow]Stuck executions:[/yellow]")
        for execution in stuck:
            console.print(
                f"  {execution.job_name} (execution {execution.id}) "
                f"running since {format_datetime(execution.started_at)}"
            )
