"""Job scheduler with a persisted execution ledger.

The JobScheduler owns the in-memory job registry and keeps the execution
ledger consistent with it. Every job holds at most one open row
(``pending``, ``running`` or ``blocked``); :meth:`JobScheduler.reconcile`
restores that after every registration and every run, and blocks jobs
that keep failing.

The scheduler has no clock loop of its own. Something external (cron,
systemd timer, ``cronledger tick`` or the ``cronledger run`` daemon) calls
:meth:`JobScheduler.run_due` periodically.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError

from cronledger.config import CronLedgerConfig, get_config
from cronledger.database.connection import create_tables, get_db_session
from cronledger.database.models import ExecutionStatus, JobExecution, OPEN_STATUSES
from cronledger.database.repositories import JobExecutionRepository
from cronledger.exceptions import (
    CallbackNotInvocableError,
    ConfigurationError,
    CronParseError,
    DuplicateJobError,
    EmptyJobNameError,
    ExecutionNotFoundError,
    JobAlreadyRunningError,
    JobBlockedError,
    JobInactiveError,
    JobNotFoundError,
    JobRunError,
    JobValidationError,
    NoValidTimestampError,
)
from cronledger.schedule.aliases import interval_for
from cronledger.schedule.description import describe
from cronledger.schedule.expression import CronBuilder, CronExpression
from cronledger.scheduler.clock import Clock, SystemClock
from cronledger.scheduler.job import ExecutionRecord, JobCallback, JobDefinition
from cronledger.scheduler.job_executor import (
    STALE_CALLBACK_ERROR,
    JobExecutor,
    resolve_import_path,
)

logger = logging.getLogger(__name__)

MANUAL_BLOCK_REASON = "Manually blocked by user"
MANUAL_STOP_REASON = "Manually stopped by user"

_OPEN_VALUES = tuple(status.value for status in OPEN_STATUSES)

ScheduleType = Union[str, CronExpression, CronBuilder, None]


class JobScheduler:
    """Registers jobs, runs them and keeps their execution ledger.

    Example:
        scheduler = JobScheduler(config)

        scheduler.register(
            "nightly-report",
            send_report,
            schedule="30 2 * * *",
            metadata={"to": "ops@example.com"},
        )

        # From a periodic tick
        scheduler.run_due()
    """

    def __init__(
        self,
        config: Optional[CronLedgerConfig] = None,
        clock: Optional[Clock] = None,
        executor: Optional[JobExecutor] = None,
    ) -> None:
        """Initialize the job scheduler.

        Args:
            config: cronledger configuration (uses global if not provided)
            clock: Time source (default: system clock in the configured zone)
            executor: Callback executor
        """
        self._config = config or get_config()
        settings = self._config.scheduler
        self._clock = clock or SystemClock(settings.timezone)
        self._executor = executor or JobExecutor()
        self._jobs: Dict[str, JobDefinition] = {}

        self._block_threshold = settings.block_threshold
        self._failure_window = settings.failure_window
        self._max_iterations = settings.max_iterations

        create_tables(self._config)

    @property
    def config(self) -> CronLedgerConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def jobs(self) -> List[JobDefinition]:
        """Get all registered jobs."""
        return list(self._jobs.values())

    @property
    def active_jobs(self) -> List[JobDefinition]:
        """Get all active jobs."""
        return [j for j in self._jobs.values() if j.active]

    def get_job(self, name: str) -> Optional[JobDefinition]:
        """Get a job by name.

        Args:
            name: Job name

        Returns:
            The job if registered, None otherwise
        """
        return self._jobs.get(name)

    def _require_job(self, name: str) -> JobDefinition:
        job = self._jobs.get(name)
        if job is None:
            raise JobNotFoundError(f"Job '{name}' not found")
        return job

    # Registry

    def register(
        self,
        name: str,
        callback: JobCallback,
        schedule: ScheduleType = "* * * * *",
        description: str = "",
        active: bool = True,
        metadata: Any = None,
    ) -> JobDefinition:
        """Register a job and schedule its first execution.

        An unusable schedule or metadata does not reject the registration:
        the job is stored with ``has_validation_error`` set and the fallback
        schedule, and it is never scheduled or run until re-registered.

        Args:
            name: Unique job name
            callback: Callable taking the metadata, or a
                ``"package.module:function"`` import path
            schedule: Cron string, alias, :class:`CronExpression` or
                :class:`CronBuilder`
            description: Free text shown in listings
            active: Whether the job may be scheduled and run
            metadata: JSON-serializable mapping passed to the callback

        Returns:
            The registered job

        Raises:
            EmptyJobNameError: If the name is empty
            DuplicateJobError: If a job with the name is already registered
            CallbackNotInvocableError: If the callback cannot be invoked
        """
        if not name or not name.strip():
            raise EmptyJobNameError("Job name cannot be empty")
        if name in self._jobs:
            raise DuplicateJobError(f"A job with name '{name}' already exists")
        if not self._executor.is_invocable(callback):
            raise CallbackNotInvocableError(
                f"The callback for job '{name}' is not callable",
                details={"callback": repr(callback)},
            )

        now = self._clock.now()
        errors: List[str] = []
        expression: Optional[CronExpression] = None
        interval: Optional[int] = None

        if isinstance(schedule, CronBuilder):
            try:
                schedule = schedule.build()
            except CronParseError as e:
                errors.append(f"Invalid schedule: {e.message}")
                schedule = None

        if isinstance(schedule, CronExpression):
            expression = schedule
            schedule_text = str(schedule)
        else:
            schedule_text = (schedule or "").strip()
            if not schedule_text:
                if not errors:
                    errors.append("Schedule cannot be empty")
            elif (seconds := interval_for(schedule_text)) is not None:
                interval = seconds
            else:
                try:
                    expression = CronExpression.parse(schedule_text)
                except CronParseError as e:
                    errors.append(f"Invalid schedule: {e.message}")

        if expression is not None:
            try:
                expression.next_run_after(now, self._max_iterations)
            except NoValidTimestampError as e:
                errors.append(f"Invalid schedule: {e.message}")

        if errors:
            schedule_text = self._config.scheduler.fallback_schedule
            expression = CronExpression.parse(schedule_text)
            interval = None

        if metadata is None:
            metadata = {}
        elif not isinstance(metadata, Mapping):
            errors.append(f"Metadata must be a mapping, got {type(metadata).__name__}")
        else:
            metadata = dict(metadata)
            try:
                json.dumps(metadata)
            except (TypeError, ValueError) as e:
                errors.append(f"Metadata is not JSON serializable: {e}")

        job = JobDefinition(
            name=name,
            callback=callback,
            schedule=schedule_text,
            description=description,
            active=active,
            metadata=metadata,
            expression=expression,
            interval=interval,
            has_validation_error=bool(errors),
            error_message="; ".join(errors) if errors else None,
            registered_at=now,
        )
        self._jobs[name] = job

        if errors:
            logger.warning(f"Registered job '{name}' with validation errors: {job.error_message}")
        else:
            logger.info(f"Registered job '{name}' with schedule '{schedule_text}'")

        try:
            self.reconcile(name)
        except NoValidTimestampError as e:
            logger.error(f"Could not schedule job '{name}': {e}")

        return job

    def unregister(self, name: str) -> None:
        """Remove a job from the registry.

        The ledger is left untouched; an open row stays until the job is
        registered again or an operator clears it.

        Args:
            name: Job name

        Raises:
            JobNotFoundError: If no job with the name is registered
        """
        self._require_job(name)
        del self._jobs[name]
        logger.info(f"Unregistered job '{name}'")

    def load_jobs(self, hook: str) -> int:
        """Register jobs by calling a ``"package.module:function"`` hook.

        The hook is called with this scheduler and registers jobs on it.

        Args:
            hook: Import path of the registration function

        Returns:
            Number of jobs the hook registered

        Raises:
            ConfigurationError: If the hook cannot be imported or called
        """
        try:
            register_jobs = resolve_import_path(hook)
        except (ValueError, ImportError, AttributeError) as e:
            raise ConfigurationError(
                f"Cannot load job registration hook '{hook}'",
                details={"error": str(e)},
            ) from e
        if not callable(register_jobs):
            raise ConfigurationError(f"Job registration hook '{hook}' is not callable")

        before = len(self._jobs)
        register_jobs(self)
        loaded = len(self._jobs) - before
        logger.info(f"Loaded {loaded} jobs from {hook}")
        return loaded

    # Scheduling

    def calculate_next_run(self, job: JobDefinition, after: datetime) -> datetime:
        """Compute when a job runs next after a given time.

        Raises:
            NoValidTimestampError: If the schedule has no further run time
        """
        if job.interval is not None:
            return after.replace(microsecond=0) + timedelta(seconds=job.interval)
        expression = job.expression or CronExpression.parse(job.schedule)
        return expression.next_run_after(after, self._max_iterations)

    def _insert(
        self,
        repo: JobExecutionRepository,
        job: JobDefinition,
        status: ExecutionStatus,
        scheduled_at: datetime,
        error: Optional[str] = None,
    ) -> JobExecution:
        try:
            return repo.create(
                job.name,
                status,
                scheduled_at,
                metadata=dict(job.metadata),
                error=error,
            )
        except IntegrityError:
            repo.session.rollback()
            logger.info(f"Job '{job.name}' got an open execution from another process")
            return repo.get_latest(job.name)

    def reconcile(self, name: str) -> Optional[ExecutionRecord]:
        """Bring the job's ledger in line with its state and history.

        Inactive or invalid jobs lose their pending row. Jobs whose recent
        terminal executions end in ``block_threshold`` failures get their
        open row blocked, or a new blocked row if none is open. Any other
        job without an open row gets a pending row at its next run time.

        Args:
            name: Job name

        Returns:
            The job's open execution afterwards, or None if it has none

        Raises:
            JobNotFoundError: If no job with the name is registered
            NoValidTimestampError: If a new row is needed but the schedule
                has no further run time; the ledger is left unchanged
        """
        job = self._require_job(name)
        now = self._clock.now()

        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            latest = repo.get_latest(name)
            open_row = latest if latest is not None and latest.status in _OPEN_VALUES else None

            if not job.is_schedulable:
                if latest is not None and latest.status == ExecutionStatus.PENDING.value:
                    repo.delete(latest)
                    state = "inactive" if not job.active else "invalid"
                    logger.info(f"Removed pending execution of {state} job '{name}'")
                    return None
                return ExecutionRecord.from_model(open_row) if open_row is not None else None

            failures = repo.get_consecutive_failures(name, self._failure_window)
            if failures >= self._block_threshold:
                reason = f"Blocked due to {failures} consecutive failures"
                if open_row is not None:
                    if open_row.status == ExecutionStatus.RUNNING.value:
                        logger.warning(
                            f"Job '{name}' has {failures} consecutive failures but is "
                            f"running; leaving execution {open_row.id} alone"
                        )
                        return ExecutionRecord.from_model(open_row)
                    execution = repo.block(open_row.id, reason)
                else:
                    scheduled_at = self.calculate_next_run(job, now)
                    execution = self._insert(repo, job, ExecutionStatus.BLOCKED, scheduled_at, error=reason)
                logger.warning(f"Job '{name}' blocked: {reason}")
                return ExecutionRecord.from_model(execution)

            if open_row is not None:
                logger.debug(f"Job '{name}' already has a {open_row.status} execution")
                return ExecutionRecord.from_model(open_row)

            scheduled_at = self.calculate_next_run(job, now)
            execution = self._insert(repo, job, ExecutionStatus.PENDING, scheduled_at)
            logger.info(f"Scheduled job '{name}' for {scheduled_at.isoformat()}")
            return ExecutionRecord.from_model(execution)

    def _reconcile_after_run(self, name: str) -> None:
        try:
            self.reconcile(name)
        except NoValidTimestampError as e:
            logger.error(f"Could not schedule next execution of job '{name}': {e}")

    # Execution

    def run(self, name: str) -> bool:
        """Run a job now and record the outcome.

        A due pending row is claimed with a conditional update, so two
        processes cannot both run it. Exceptions raised by the callback are
        recorded on the execution, never propagated.

        Args:
            name: Job name

        Returns:
            Whether the callback succeeded

        Raises:
            JobNotFoundError: If no job with the name is registered
            JobInactiveError: If the job is not active
            JobValidationError: If the job has validation errors
            JobAlreadyRunningError: If the job is already running
            JobBlockedError: If the job is blocked (see :meth:`retry`)
        """
        job = self._require_job(name)
        if not job.active:
            raise JobInactiveError(f"Job '{name}' is not active")
        if job.has_validation_error:
            raise JobValidationError(
                f"Job '{name}' has validation errors",
                details={"error": job.error_message},
            )

        started_at = self._clock.now()

        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            latest = repo.get_latest(name)

            if latest is not None and latest.status == ExecutionStatus.RUNNING.value:
                raise JobAlreadyRunningError(f"Job '{name}' is already running")
            if latest is not None and latest.status == ExecutionStatus.BLOCKED.value:
                raise JobBlockedError(
                    f"Job '{name}' is blocked",
                    details={"reason": latest.error} if latest.error else None,
                )

            if not self._executor.is_invocable(job.callback):
                if latest is not None and latest.status == ExecutionStatus.PENDING.value:
                    repo.fail(latest.id, STALE_CALLBACK_ERROR, started_at)
                else:
                    repo.create(
                        name,
                        ExecutionStatus.FAILED,
                        started_at,
                        metadata=dict(job.metadata),
                        completed_at=started_at,
                        error=STALE_CALLBACK_ERROR,
                    )
                execution_id = None
            elif latest is not None and latest.status == ExecutionStatus.PENDING.value:
                if not repo.mark_running(latest.id, started_at):
                    raise JobAlreadyRunningError(f"Job '{name}' is already running")
                execution_id = latest.id
            else:
                try:
                    execution = repo.create(
                        name,
                        ExecutionStatus.RUNNING,
                        started_at,
                        metadata=dict(job.metadata),
                        started_at=started_at,
                    )
                except IntegrityError:
                    raise JobAlreadyRunningError(f"Job '{name}' is already running")
                execution_id = execution.id

        if execution_id is None:
            logger.error(f"Job '{name}' failed: {STALE_CALLBACK_ERROR}")
            job.last_run = started_at
            job.last_result = False
            self._reconcile_after_run(name)
            return False

        logger.info(f"Running job '{name}' (execution {execution_id})")
        try:
            result = self._executor.execute(job.callback, dict(job.metadata))
        except BaseException as e:
            # SystemExit and KeyboardInterrupt still propagate, but the
            # claimed row must not stay running.
            error = f"Interrupted by {type(e).__name__}"
            with get_db_session(self._config) as session:
                JobExecutionRepository(session).fail(execution_id, error, self._clock.now())
            logger.error(f"Job '{name}' failed: {error}")
            job.last_run = started_at
            job.last_result = False
            self._reconcile_after_run(name)
            raise
        completed_at = self._clock.now()

        with get_db_session(self._config) as session:
            JobExecutionRepository(session).complete(
                execution_id,
                result.success,
                completed_at,
                output=result.output or None,
                error=result.error,
            )

        job.last_run = started_at
        job.last_result = result.success

        if result.success:
            logger.info(f"Job '{name}' completed")
        elif result.error:
            logger.warning(f"Job '{name}' failed: {result.error}")
        else:
            logger.warning(f"Job '{name}' failed: callback returned {result.return_value!r}")

        self._reconcile_after_run(name)
        return result.success

    def run_due(self, limit: Optional[int] = None) -> Dict[str, bool]:
        """Run every registered job whose pending execution is due.

        Jobs that cannot run (inactive, blocked, claimed by another process)
        are skipped with a warning.

        Args:
            limit: Maximum number of due executions to pick up
                (default: ``scheduler.due_batch_size``)

        Returns:
            Mapping of job name to callback success
        """
        now = self._clock.now()
        batch = limit or self._config.scheduler.due_batch_size

        with get_db_session(self._config) as session:
            due = [e.job_name for e in JobExecutionRepository(session).get_due_pending(now, batch)]

        results: Dict[str, bool] = {}
        for name in due:
            if name not in self._jobs:
                logger.warning(f"Execution due for unregistered job '{name}', skipping")
                continue
            try:
                results[name] = self.run(name)
            except JobRunError as e:
                logger.warning(f"Skipping due job '{name}': {e}")

        if due:
            logger.info(f"Tick ran {len(results)} of {len(due)} due jobs")
        return results

    # Operator actions

    def retry(self, name: str) -> bool:
        """Clear a blocked execution and run the job immediately.

        Args:
            name: Job name

        Returns:
            Whether the callback succeeded
        """
        self._require_job(name)

        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            latest = repo.get_latest(name)
            if latest is not None and latest.status == ExecutionStatus.BLOCKED.value:
                repo.delete(latest)
                logger.info(f"Cleared blocked execution {latest.id} of job '{name}' for retry")

        return self.run(name)

    def unblock(self, name: str) -> Optional[ExecutionRecord]:
        """Delete the job's blocked executions and reconcile.

        If the job's recent failures still reach the block threshold it is
        blocked again; use :meth:`retry` to run it instead.

        Args:
            name: Job name

        Returns:
            The job's open execution afterwards, or None if the job is not
            registered in this process

        Raises:
            ExecutionNotFoundError: If the job has no blocked execution
        """
        with get_db_session(self._config) as session:
            deleted = JobExecutionRepository(session).delete_blocked(name)

        if not deleted:
            raise ExecutionNotFoundError(f"Job '{name}' has no blocked execution")
        logger.info(f"Unblocked job '{name}'")

        if name in self._jobs:
            return self.reconcile(name)
        return None

    def block_pending(self, name: str, reason: str = MANUAL_BLOCK_REASON) -> ExecutionRecord:
        """Block a job's pending execution.

        Args:
            name: Job name
            reason: Reason stored on the execution

        Returns:
            The blocked execution

        Raises:
            ExecutionNotFoundError: If the job has no pending execution
        """
        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            latest = repo.get_latest(name)
            if latest is None or latest.status != ExecutionStatus.PENDING.value:
                raise ExecutionNotFoundError(f"Job '{name}' has no pending execution")
            record = ExecutionRecord.from_model(repo.block(latest.id, reason))

        logger.info(f"Blocked job '{name}': {reason}")
        return record

    def stop(self, name: str) -> Optional[ExecutionRecord]:
        """Mark a job's running execution failed and reconcile.

        Meant for executions left running by a process that died; it does
        not interrupt a callback that is still executing.

        Args:
            name: Job name

        Returns:
            The job's open execution afterwards, or None if the job is not
            registered in this process

        Raises:
            ExecutionNotFoundError: If the job has no running execution
        """
        now = self._clock.now()

        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            latest = repo.get_latest(name)
            if latest is None or latest.status != ExecutionStatus.RUNNING.value:
                raise ExecutionNotFoundError(f"Job '{name}' has no running execution")
            repo.fail(latest.id, MANUAL_STOP_REASON, now)

        logger.warning(f"Stopped execution {latest.id} of job '{name}'")

        if name in self._jobs:
            return self.reconcile(name)
        return None

    # Introspection

    def get_latest_execution(self, name: str) -> Optional[ExecutionRecord]:
        """Get the job's most recent execution."""
        with get_db_session(self._config) as session:
            latest = JobExecutionRepository(session).get_latest(name)
            return ExecutionRecord.from_model(latest) if latest is not None else None

    def next_run_time(self, name: str) -> Optional[datetime]:
        """Get when the job's pending execution is due, if it has one."""
        latest = self.get_latest_execution(name)
        if latest is None or latest.status != ExecutionStatus.PENDING:
            return None
        return latest.scheduled_at

    def schedule_description(self, name: str) -> str:
        """Describe the job's schedule in words.

        Jobs with validation errors are described by their error message.
        """
        job = self._require_job(name)
        if job.has_validation_error:
            return job.error_message or "Invalid schedule"
        if job.interval is not None:
            return f"Every {job.interval} seconds"
        return describe(job.expression or CronExpression.parse(job.schedule))

    def get_history(
        self,
        name: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        """Get execution history, newest first.

        Args:
            name: Filter by job name (optional)
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of executions
        """
        with get_db_session(self._config) as session:
            executions = JobExecutionRepository(session).get_history(name, limit, offset)
            return [ExecutionRecord.from_model(e) for e in executions]

    def get_stuck_executions(self, minutes: Optional[int] = None) -> List[ExecutionRecord]:
        """Get executions that have been running for longer than ``minutes``.

        Args:
            minutes: Age threshold (default: ``scheduler.stuck_after_minutes``)

        Returns:
            List of running executions, oldest first
        """
        if minutes is None:
            minutes = self._config.scheduler.stuck_after_minutes
        cutoff = self._clock.now() - timedelta(minutes=minutes)

        with get_db_session(self._config) as session:
            executions = JobExecutionRepository(session).get_stuck(cutoff)
            return [ExecutionRecord.from_model(e) for e in executions]

    def get_statistics(
        self,
        name: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Summarize executions by status.

        Args:
            name: Filter by job name (optional)
            since: Only count executions scheduled at or after this time

        Returns:
            Dictionary with total, by_status, success_rate and average_duration
        """
        with get_db_session(self._config) as session:
            return JobExecutionRepository(session).get_statistics(name, since)

    def cleanup_history(
        self,
        max_days: Optional[int] = None,
        max_records: Optional[int] = None,
    ) -> Dict[str, int]:
        """Prune terminal executions by age and by count.

        Args:
            max_days: Delete executions completed more than this many days
                ago (default: ``retention.max_days``)
            max_records: Keep at most this many terminal executions
                (default: ``retention.max_records``)

        Returns:
            Number of executions deleted by each rule
        """
        retention = self._config.retention
        if max_days is None:
            max_days = retention.max_days
        if max_records is None:
            max_records = retention.max_records
        cutoff = self._clock.now() - timedelta(days=max_days)

        with get_db_session(self._config) as session:
            repo = JobExecutionRepository(session)
            expired = repo.cleanup_old_executions(cutoff)
            excess = repo.cleanup_excess(max_records)

        logger.info(f"Cleaned up {expired} expired and {excess} excess execution records")
        return {"expired": expired, "excess": excess}

    def get_status(self) -> Dict[str, Any]:
        """Get scheduler status.

        Returns:
            Dictionary with scheduler status information
        """
        statistics = self.get_statistics()
        return {
            "timezone": self._config.scheduler.timezone,
            "now": self._clock.now().isoformat(),
            "total_jobs": len(self._jobs),
            "active_jobs": len(self.active_jobs),
            "invalid_jobs": sum(1 for j in self._jobs.values() if j.has_validation_error),
            "executions": statistics["by_status"],
            "stuck_executions": len(self.get_stuck_executions()),
        }


def build_scheduler(
    config: Optional[CronLedgerConfig] = None,
    jobs_module: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> JobScheduler:
    """Create a scheduler and run the job registration hook.

    Args:
        config: cronledger configuration (uses global if not provided)
        jobs_module: Registration hook (default: ``scheduler.jobs_module``)
        clock: Time source

    Returns:
        Scheduler with the hook's jobs registered
    """
    scheduler = JobScheduler(config, clock=clock)
    hook = jobs_module or scheduler.config.scheduler.jobs_module
    if hook:
        scheduler.load_jobs(hook)
    return scheduler
