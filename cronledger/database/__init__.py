"""Execution ledger storage for cronledger."""

from cronledger.database.connection import (
    create_tables,
    dispose_engines,
    drop_tables,
    get_db_session,
    init_engine,
    reset_database,
)
from cronledger.database.models import Base, ExecutionStatus, JobExecution
from cronledger.database.repositories import JobExecutionRepository

__all__ = [
    "Base",
    "ExecutionStatus",
    "JobExecution",
    "JobExecutionRepository",
    "create_tables",
    "dispose_engines",
    "drop_tables",
    "get_db_session",
    "init_engine",
    "reset_database",
]
