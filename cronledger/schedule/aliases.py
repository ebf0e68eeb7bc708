"""Named schedules.

Two tables are kept. ``ALIASES`` maps a name to a canonical five-field cron
string and is consulted before parsing. ``RELATIVE_INTERVALS`` holds the
fixed-length fallbacks, used only for names the alias table does not know
(``minutely``): such a job runs a fixed number of seconds after "now"
instead of on a calendar boundary.
"""

from typing import Dict, Optional

ALIASES: Dict[str, str] = {
    "yearly": "0 0 1 1 *",
    "annually": "0 0 1 1 *",
    "monthly": "0 0 1 * *",
    "weekly": "0 0 * * 0",
    "daily": "0 0 * * *",
    "midnight": "0 0 * * *",
    "hourly": "0 * * * *",
    "every_minute": "* * * * *",
    "every_5_minutes": "*/5 * * * *",
    "every_10_minutes": "*/10 * * * *",
    "every_15_minutes": "*/15 * * * *",
    "every_30_minutes": "*/30 * * * *",
    "twice_daily": "0 0,12 * * *",
    "weekdays": "0 0 * * 1-5",
    "weekends": "0 0 * * 0,6",
}

# Seconds; monthly and yearly are approximations (30 and 365 days).
RELATIVE_INTERVALS: Dict[str, int] = {
    "minutely": 60,
    "hourly": 3600,
    "daily": 86400,
    "weekly": 604800,
    "monthly": 2592000,
    "yearly": 31536000,
}


def _key(name: str) -> str:
    return name.strip().lower()


def resolve(name_or_expression: str) -> str:
    """Resolve an alias to its cron string.

    Lookup is case-insensitive and ignores surrounding whitespace. Input
    that is not an alias is returned unchanged so it can be parsed as a
    literal cron expression.
    """
    return ALIASES.get(_key(name_or_expression), name_or_expression)


def is_alias(name: str) -> bool:
    """Check whether ``name`` is a known cron alias."""
    return _key(name) in ALIASES


def interval_for(name: str) -> Optional[int]:
    """Return the relative interval in seconds for names without a cron alias.

    Names present in the alias table always resolve to their cron string,
    so this only returns a value for interval-only names such as
    ``minutely``.
    """
    key = _key(name)
    if key in ALIASES:
        return None
    return RELATIVE_INTERVALS.get(key)


def aliases() -> Dict[str, str]:
    """Get a copy of the alias table."""
    return dict(ALIASES)
