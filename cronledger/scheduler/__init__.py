"""Job scheduler with a persisted execution ledger.

The scheduler keeps a registry of cron-scheduled jobs, records every
scheduled and attempted execution in the database, and blocks jobs that
keep failing.
"""

from cronledger.scheduler.clock import Clock, SystemClock
from cronledger.scheduler.job import ExecutionRecord, JobDefinition
from cronledger.scheduler.job_executor import CallbackResult, JobExecutor
from cronledger.scheduler.job_scheduler import JobScheduler, build_scheduler

__all__ = [
    "CallbackResult",
    "Clock",
    "ExecutionRecord",
    "JobDefinition",
    "JobExecutor",
    "JobScheduler",
    "SystemClock",
    "build_scheduler",
]
