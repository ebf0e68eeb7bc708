"""Cron expression parsing, schedule aliases and schedule descriptions."""

from cronledger.schedule.aliases import ALIASES, RELATIVE_INTERVALS, interval_for, is_alias, resolve
from cronledger.schedule.description import describe, describe_schedule
from cronledger.schedule.expression import (
    CronBuilder,
    CronExpression,
    FIELD_LIMITS,
    FIELD_NAMES,
    validate_cron_string,
)

__all__ = [
    "ALIASES",
    "RELATIVE_INTERVALS",
    "CronBuilder",
    "CronExpression",
    "FIELD_LIMITS",
    "FIELD_NAMES",
    "describe",
    "describe_schedule",
    "interval_for",
    "is_alias",
    "resolve",
    "validate_cron_string",
]
