"""
SQLAlchemy models for the execution ledger.

One row per scheduled or attempted execution of a job. A job may hold at
most one open row (pending, running or blocked). On SQLite and PostgreSQL a
partial unique index makes the database refuse a second one; other backends
rely on the conditional status update alone.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, Integer, JSON, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, declarative_base

# Create base class for all models
Base = declarative_base()


class ExecutionStatus(str, Enum):
    """Lifecycle states of an execution row."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)
OPEN_STATUSES = (ExecutionStatus.PENDING, ExecutionStatus.RUNNING, ExecutionStatus.BLOCKED)

_OPEN_ROW_CLAUSE = text("status IN ('pending', 'running', 'blocked')")


class JobExecution(Base):
    """
    Job execution ledger row.

    ``job_name`` refers to a job registered in the running process; the
    reference is not enforced because job definitions are never stored.
    """

    __tablename__ = "job_executions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ExecutionStatus.PENDING.value, index=True
    )

    # Timing
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Results
    output: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Snapshot of the job metadata when the row was written.
    # Named 'execution_metadata' to avoid conflict with SQLAlchemy's reserved 'metadata' attribute
    execution_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )

    # Only SQLite and PostgreSQL support partial indexes; elsewhere the index
    # would be a plain UNIQUE on job_name, so it is not created at all.
    __table_args__ = (
        Index(
            "uq_job_executions_open_row",
            "job_name",
            unique=True,
            sqlite_where=_OPEN_ROW_CLAUSE,
            postgresql_where=_OPEN_ROW_CLAUSE,
        ).ddl_if(dialect=("sqlite", "postgresql")),
        Index("ix_job_executions_job_name_id", "job_name", "id"),
    )

    @property
    def duration(self) -> Optional[float]:
        """Run time in seconds, when both start and end are known."""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert execution to dictionary representation."""
        return {
            "id": self.id,
            "job_name": self.job_name,
            "status": self.status,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "output": self.output,
            "error": self.error,
            "metadata": self.execution_metadata,
        }

    def __repr__(self) -> str:
        return f"<JobExecution(id={self.id}, job_name={self.job_name!r}, status={self.status!r})>"
