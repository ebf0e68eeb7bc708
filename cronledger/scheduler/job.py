"""Job definitions and execution records.

A :class:`JobDefinition` lives only in the memory of the process that
registered it; an :class:`ExecutionRecord` is a detached, read-only copy of
a ledger row handed to callers once the database session is closed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from cronledger.database.models import ExecutionStatus, JobExecution
from cronledger.schedule.expression import CronExpression

# A callable, or an import path like "myapp.tasks:send_report"
JobCallback = Union[Callable[..., Any], str]


@dataclass
class JobDefinition:
    """A registered job.

    Attributes:
        name: Unique job name
        callback: Callable invoked with the job metadata
        schedule: Effective schedule text (the fallback schedule when the
            supplied one was invalid)
        description: Free text shown in listings
        active: Whether the job may be scheduled and run
        metadata: Mapping passed to the callback on every run
        expression: Parsed cron expression, None for interval schedules
        interval: Seconds between runs for relative interval schedules
        has_validation_error: Registration found a soft error
        error_message: Every soft error found, joined with "; "
        registered_at: When the job was registered
        last_run: When this process last ran the job
        last_result: Outcome of that run
    """

    name: str
    callback: JobCallback
    schedule: str
    description: str = ""
    active: bool = True
    metadata: Any = field(default_factory=dict)
    expression: Optional[CronExpression] = None
    interval: Optional[int] = None
    has_validation_error: bool = False
    error_message: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_result: Optional[bool] = None

    @property
    def is_schedulable(self) -> bool:
        """Active jobs without validation errors get upcoming executions."""
        return self.active and not self.has_validation_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schedule": self.schedule,
            "description": self.description,
            "active": self.active,
            "metadata": self.metadata if isinstance(self.metadata, dict) else repr(self.metadata),
            "interval": self.interval,
            "has_validation_error": self.has_validation_error,
            "error_message": self.error_message,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result,
        }


@dataclass(frozen=True)
class ExecutionRecord:
    """Snapshot of one execution ledger row."""

    id: int
    job_name: str
    status: ExecutionStatus
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output: Optional[str] = None
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_model(cls, execution: JobExecution) -> "ExecutionRecord":
        return cls(
            id=execution.id,
            job_name=execution.job_name,
            status=ExecutionStatus(execution.status),
            scheduled_at=execution.scheduled_at,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            output=execution.output,
            error=execution.error,
            metadata=execution.execution_metadata,
        )

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal

    @property
    def duration(self) -> Optional[float]:
        """Run time in seconds, when both start and end are known."""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_name": self.job_name,
            "status": self.status.value,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration,
            "output": self.output,
            "error": self.error,
            "metadata": self.metadata,
        }
