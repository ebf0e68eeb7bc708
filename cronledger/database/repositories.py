"""Database repositories for cronledger.

Provides the data access patterns the scheduler needs on the execution
ledger: the latest row per job, failure streaks, state transitions and
housekeeping.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Dict, Any

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from cronledger.database.models import (
    ExecutionStatus,
    JobExecution,
    TERMINAL_STATUSES,
)

_TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


class JobExecutionRepository:
    """
    Repository for the job execution ledger.

    Every write commits immediately, so a row is visible to other
    scheduler processes as soon as the method returns.
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def create(
        self,
        job_name: str,
        status: ExecutionStatus,
        scheduled_at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        error: Optional[str] = None,
    ) -> JobExecution:
        """
        Insert an execution row.

        Args:
            job_name: Name of the job
            status: Initial status
            scheduled_at: When the execution is due
            metadata: Snapshot of the job metadata
            started_at: When execution started, for rows created running
            completed_at: When execution ended, for rows created failed
            error: Reason, for rows created blocked or failed

        Returns:
            Created JobExecution instance

        Raises:
            sqlalchemy.exc.IntegrityError: If the job already has an open row
        """
        execution = JobExecution(
            job_name=job_name,
            status=ExecutionStatus(status).value,
            scheduled_at=scheduled_at,
            started_at=started_at,
            completed_at=completed_at,
            error=error,
            execution_metadata=metadata,
        )
        self.session.add(execution)
        self.session.commit()
        self.session.refresh(execution)
        return execution

    def get_by_id(self, execution_id: int) -> Optional[JobExecution]:
        """
        Get an execution by its ID.

        Args:
            execution_id: Execution ID

        Returns:
            JobExecution if found, None otherwise
        """
        return self.session.query(JobExecution).filter(
            JobExecution.id == execution_id
        ).first()

    def get_latest(self, job_name: str) -> Optional[JobExecution]:
        """
        Get the most recently inserted row for a job.

        Args:
            job_name: Name of the job

        Returns:
            Latest JobExecution if the job has any, None otherwise
        """
        return self.session.query(JobExecution).filter(
            JobExecution.job_name == job_name
        ).order_by(desc(JobExecution.id)).first()

    def get_recent_terminal(self, job_name: str, limit: int = 10) -> List[JobExecution]:
        """
        Get the most recent completed or failed rows for a job, newest first.

        Args:
            job_name: Name of the job
            limit: Maximum number of rows

        Returns:
            List of terminal executions
        """
        return self.session.query(JobExecution).filter(
            JobExecution.job_name == job_name,
            JobExecution.status.in_(_TERMINAL_VALUES),
        ).order_by(desc(JobExecution.id)).limit(limit).all()

    def get_consecutive_failures(self, job_name: str, window: int = 10) -> int:
        """
        Count failures at the head of the job's recent terminal history.

        Counting stops at the first completed row; at most ``window`` rows
        are inspected.

        Args:
            job_name: Name of the job
            window: Number of recent terminal rows to inspect

        Returns:
            Number of consecutive failures
        """
        failures = 0
        for execution in self.get_recent_terminal(job_name, limit=window):
            if execution.status != ExecutionStatus.FAILED.value:
                break
            failures += 1
        return failures

    def mark_running(self, execution_id: int, started_at: datetime) -> bool:
        """
        Move a pending row to running.

        The update only applies while the row is still pending, so two
        processes racing for the same row cannot both claim it.

        Args:
            execution_id: Execution ID
            started_at: Start time to record

        Returns:
            True if this call claimed the row, False otherwise
        """
        updated = self.session.query(JobExecution).filter(
            JobExecution.id == execution_id,
            JobExecution.status == ExecutionStatus.PENDING.value,
        ).update(
            {
                JobExecution.status: ExecutionStatus.RUNNING.value,
                JobExecution.started_at: started_at,
            },
            synchronize_session=False,
        )
        self.session.commit()
        return updated == 1

    def complete(
        self,
        execution_id: int,
        success: bool,
        completed_at: datetime,
        output: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Optional[JobExecution]:
        """
        Record the outcome of a run.

        Args:
            execution_id: Execution ID
            success: Whether the callback succeeded
            completed_at: When the callback returned
            output: Captured output
            error: Error message, stored only for failures

        Returns:
            Updated JobExecution, or None if the row no longer exists
        """
        execution = self.get_by_id(execution_id)
        if execution is None:
            return None

        execution.status = (
            ExecutionStatus.COMPLETED.value if success else ExecutionStatus.FAILED.value
        )
        execution.completed_at = completed_at
        if execution.started_at is None:
            execution.started_at = completed_at
        execution.output = output
        if not success and error:
            execution.error = error

        self.session.commit()
        self.session.refresh(execution)
        return execution

    def fail(
        self,
        execution_id: int,
        error: str,
        completed_at: datetime,
    ) -> Optional[JobExecution]:
        """
        Mark a row failed without running it.

        Args:
            execution_id: Execution ID
            error: Failure reason
            completed_at: Time to record as completion

        Returns:
            Updated JobExecution, or None if the row no longer exists
        """
        execution = self.get_by_id(execution_id)
        if execution is None:
            return None

        execution.status = ExecutionStatus.FAILED.value
        execution.error = error
        execution.completed_at = completed_at
        self.session.commit()
        self.session.refresh(execution)
        return execution

    def block(self, execution_id: int, reason: str) -> Optional[JobExecution]:
        """
        Mark a row blocked, or refresh the reason on an already blocked row.

        Args:
            execution_id: Execution ID
            reason: Block reason stored in the error column

        Returns:
            Updated JobExecution, or None if the row no longer exists
        """
        execution = self.get_by_id(execution_id)
        if execution is None:
            return None

        execution.status = ExecutionStatus.BLOCKED.value
        execution.error = reason
        self.session.commit()
        self.session.refresh(execution)
        return execution

    def block_pending(self, job_name: str, reason: str) -> int:
        """
        Block every pending row of a job.

        Args:
            job_name: Name of the job
            reason: Block reason

        Returns:
            Number of rows blocked
        """
        updated = self.session.query(JobExecution).filter(
            JobExecution.job_name == job_name,
            JobExecution.status == ExecutionStatus.PENDING.value,
        ).update(
            {
                JobExecution.status: ExecutionStatus.BLOCKED.value,
                JobExecution.error: reason,
            },
            synchronize_session=False,
        )
        self.session.commit()
        return updated

    def delete(self, execution: JobExecution) -> None:
        """
        Delete an execution row.

        Args:
            execution: Execution to delete
        """
        self.session.delete(execution)
        self.session.commit()

    def delete_blocked(self, job_name: str) -> int:
        """
        Delete every blocked row of a job.

        Args:
            job_name: Name of the job

        Returns:
            Number of rows deleted
        """
        deleted = self.session.query(JobExecution).filter(
            JobExecution.job_name == job_name,
            JobExecution.status == ExecutionStatus.BLOCKED.value,
        ).delete(synchronize_session=False)
        self.session.commit()
        return deleted

    def get_due_pending(self, now: datetime, limit: int = 10) -> List[JobExecution]:
        """
        Get pending rows whose scheduled time has arrived, oldest first.

        Args:
            now: Current wall-clock time
            limit: Maximum number of rows

        Returns:
            List of due executions
        """
        return self.session.query(JobExecution).filter(
            JobExecution.status == ExecutionStatus.PENDING.value,
            JobExecution.scheduled_at <= now,
        ).order_by(JobExecution.scheduled_at, JobExecution.id).limit(limit).all()

    def get_history(
        self,
        job_name: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[JobExecution]:
        """
        Get execution history.

        Args:
            job_name: Filter by job name (optional)
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of job executions, newest first
        """
        query = self.session.query(JobExecution).order_by(desc(JobExecution.id))

        if job_name:
            query = query.filter(JobExecution.job_name == job_name)

        return query.offset(offset).limit(limit).all()

    def get_by_status(
        self,
        status: ExecutionStatus,
        limit: int = 100,
    ) -> List[JobExecution]:
        """
        Get executions in a given status, newest first.

        Args:
            status: Status to filter on
            limit: Maximum number of results

        Returns:
            List of job executions
        """
        return self.session.query(JobExecution).filter(
            JobExecution.status == ExecutionStatus(status).value
        ).order_by(desc(JobExecution.id)).limit(limit).all()

    def get_stuck(self, started_before: datetime) -> List[JobExecution]:
        """
        Get running rows that started before a cutoff.

        Args:
            started_before: Cutoff time

        Returns:
            List of running executions, oldest first
        """
        return self.session.query(JobExecution).filter(
            JobExecution.status == ExecutionStatus.RUNNING.value,
            JobExecution.started_at < started_before,
        ).order_by(JobExecution.started_at).all()

    def get_statistics(
        self,
        job_name: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Summarize executions by status.

        Args:
            job_name: Filter by job name (optional)
            since: Only count rows scheduled at or after this time (optional)

        Returns:
            Dictionary with total, per-status counts, success rate (percent
            of terminal rows that completed) and average duration in seconds
        """
        query = self.session.query(JobExecution.status, func.count(JobExecution.id))
        if job_name:
            query = query.filter(JobExecution.job_name == job_name)
        if since is not None:
            query = query.filter(JobExecution.scheduled_at >= since)

        counts = {status.value: 0 for status in ExecutionStatus}
        for status, count in query.group_by(JobExecution.status).all():
            counts[status] = count

        finished_query = self.session.query(JobExecution).filter(
            JobExecution.status.in_(_TERMINAL_VALUES),
            JobExecution.started_at.isnot(None),
            JobExecution.completed_at.isnot(None),
        )
        if job_name:
            finished_query = finished_query.filter(JobExecution.job_name == job_name)
        if since is not None:
            finished_query = finished_query.filter(JobExecution.scheduled_at >= since)

        durations = [e.duration for e in finished_query.all() if e.duration is not None]

        terminal = counts[ExecutionStatus.COMPLETED.value] + counts[ExecutionStatus.FAILED.value]
        success_rate = (
            round(counts[ExecutionStatus.COMPLETED.value] / terminal * 100, 2)
            if terminal else None
        )

        return {
            "total": sum(counts.values()),
            "by_status": counts,
            "success_rate": success_rate,
            "average_duration": round(sum(durations) / len(durations), 3) if durations else None,
        }

    def cleanup_old_executions(self, before: datetime) -> int:
        """
        Delete terminal executions completed before a given time.

        Args:
            before: Delete executions completed before this time

        Returns:
            Number of executions deleted
        """
        deleted = self.session.query(JobExecution).filter(
            JobExecution.status.in_(_TERMINAL_VALUES),
            JobExecution.completed_at < before,
        ).delete(synchronize_session=False)
        self.session.commit()
        return deleted

    def cleanup_excess(self, max_records: int) -> int:
        """
        Keep at most ``max_records`` terminal rows, deleting the oldest.

        Open rows are never deleted.

        Args:
            max_records: Number of terminal rows to keep

        Returns:
            Number of executions deleted
        """
        terminal = self.session.query(JobExecution).filter(
            JobExecution.status.in_(_TERMINAL_VALUES)
        )
        excess = terminal.count() - max_records
        if excess <= 0:
            return 0

        ids = [
            row.id for row in self.session.query(JobExecution.id).filter(
                JobExecution.status.in_(_TERMINAL_VALUES)
            ).order_by(JobExecution.id).limit(excess).all()
        ]
        deleted = self.session.query(JobExecution).filter(
            JobExecution.id.in_(ids)
        ).delete(synchronize_session=False)
        self.session.commit()
        return deleted

    def count(self, job_name: Optional[str] = None) -> int:
        """
        Count execution rows.

        Args:
            job_name: Filter by job name (optional)

        Returns:
            Number of rows
        """
        query = self.session.query(JobExecution)
        if job_name:
            query = query.filter(JobExecution.job_name == job_name)
        return query.count()
