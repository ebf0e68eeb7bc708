"""Human-readable descriptions of cron expressions.

Purely derived from the expression text, for display in listings:

    "*/5 * * * *"          -> "Every 5 minutes"
    "0 8 * * 1"            -> "At 08:00 on Monday"
    "30 9 * 1,4,7,10 1-5"  -> "At 09:30 on weekdays in January, April, July, October"
"""

import re
from typing import List

from cronledger.exceptions import CronParseError
from cronledger.schedule.expression import CronExpression

MONTHS = {
    1: "January", 2: "February", 3: "March", 4: "April", 5: "May", 6: "June",
    7: "July", 8: "August", 9: "September", 10: "October", 11: "November",
    12: "December",
}

DAYS = {
    0: "Sunday", 1: "Monday", 2: "Tuesday", 3: "Wednesday", 4: "Thursday",
    5: "Friday", 6: "Saturday",
}

_NUMBER = re.compile(r"^[0-9]+$")
_RANGE = re.compile(r"^([0-9]+)-([0-9]+)$")
_EVERY = re.compile(r"^\*/([0-9]+)$")


def ordinal(number: int) -> str:
    """Format a number with its English ordinal suffix (1st, 2nd, 11th...)."""
    if number % 100 in (11, 12, 13):
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _named(value: str, names: dict) -> str:
    return names.get(int(value), value) if _NUMBER.match(value) else value


def _minute_phrase(minutes: str) -> str:
    if minutes == "*":
        return "every minute"
    every = _EVERY.match(minutes)
    if every:
        return f"every {every.group(1)} minutes"
    return f"at minutes {minutes}"


def _hours_display(hours: str) -> str:
    if _RANGE.match(hours):
        start, end = hours.split("-")
        return f"{int(start):02d}:00-{int(end):02d}:00"
    if all(_NUMBER.match(h) for h in hours.split(",")):
        return ", ".join(f"{int(h):02d}:00" for h in hours.split(","))
    return f"hours {hours}"


def _time_part(minutes: str, hours: str) -> str:
    single_minute = bool(_NUMBER.match(minutes))

    if hours == "*":
        if single_minute:
            return f"at minute {int(minutes)} past every hour"
        return _minute_phrase(minutes)

    every = _EVERY.match(hours)
    if every:
        if single_minute:
            return f"every {every.group(1)} hours at minute {int(minutes)}"
        return f"{_minute_phrase(minutes)} of every {every.group(1)} hours"

    if _NUMBER.match(hours):
        if single_minute:
            return f"at {int(hours):02d}:{int(minutes):02d}"
        return f"{_minute_phrase(minutes)} during {int(hours):02d}:00"

    hour_list = hours.split(",")
    if single_minute and all(_NUMBER.match(h) for h in hour_list):
        return "at " + ", ".join(f"{int(h):02d}:{int(minutes):02d}" for h in hour_list)

    if single_minute and _RANGE.match(hours):
        start, end = hours.split("-")
        return (
            f"at minute {int(minutes)} past every hour "
            f"from {int(start):02d}:00 through {int(end):02d}:00"
        )

    return f"{_minute_phrase(minutes)} during {_hours_display(hours)}"


def _day_of_month_display(day_of_month: str) -> str:
    every = _EVERY.match(day_of_month)
    if every:
        return f"every {every.group(1)} days"
    if _RANGE.match(day_of_month):
        start, end = day_of_month.split("-")
        return f"the {ordinal(int(start))} through {ordinal(int(end))}"
    parts = day_of_month.split(",")
    if all(_NUMBER.match(p) for p in parts):
        return "the " + ", ".join(ordinal(int(p)) for p in parts)
    return f"day-of-month {day_of_month}"


def _day_of_week_display(day_of_week: str) -> str:
    if day_of_week == "1-5":
        return "weekdays"
    if set(day_of_week.split(",")) == {"0", "6"}:
        return "weekends"
    if _RANGE.match(day_of_week):
        start, end = day_of_week.split("-")
        return f"{_named(start, DAYS)} through {_named(end, DAYS)}"
    parts = day_of_week.split(",")
    if all(_NUMBER.match(p) for p in parts):
        return ", ".join(_named(p, DAYS) for p in parts)
    return f"day-of-week {day_of_week}"


def _day_part(day_of_month: str, day_of_week: str) -> str:
    if day_of_month != "*" and day_of_week != "*":
        return f"on {_day_of_month_display(day_of_month)} and {_day_of_week_display(day_of_week)}"
    if day_of_month != "*":
        return f"on {_day_of_month_display(day_of_month)}"
    if day_of_week != "*":
        return f"on {_day_of_week_display(day_of_week)}"
    return ""


def _month_part(month: str) -> str:
    if month == "*":
        return ""
    every = _EVERY.match(month)
    if every:
        return f"every {every.group(1)} months"
    if _RANGE.match(month):
        start, end = month.split("-")
        return f"from {_named(start, MONTHS)} through {_named(end, MONTHS)}"
    parts = month.split(",")
    if all(_NUMBER.match(p) for p in parts):
        return "in " + ", ".join(_named(p, MONTHS) for p in parts)
    return f"in months {month}"


def _year_part(year: str) -> str:
    if year == "*":
        return ""
    every = _EVERY.match(year)
    if every:
        return f"every {every.group(1)} years"
    if "," in year:
        return f"in years {year}"
    if "-" in year:
        return f"from year {year}"
    return f"in {year}"


def describe(expression: CronExpression) -> str:
    """Describe a parsed :class:`~cronledger.schedule.expression.CronExpression`."""
    fields = expression.fields()
    minutes = fields["minutes"]
    hours = fields["hours"]

    if all(fields[name] == "*" for name in ("minutes", "hours", "day_of_month", "month", "day_of_week")):
        parts: List[str] = ["every minute"]
    else:
        parts = [_time_part(minutes, hours)]
        parts.append(_day_part(fields["day_of_month"], fields["day_of_week"]))
        parts.append(_month_part(fields["month"]))
    parts.append(_year_part(fields["year"]))

    text = " ".join(p for p in parts if p)
    return text[:1].upper() + text[1:]


def describe_schedule(schedule: str) -> str:
    """Describe a cron string or alias.

    Unparseable input yields the validation error message instead of
    raising, so listings can show it in place of the description.
    """
    try:
        return describe(CronExpression.parse(schedule))
    except CronParseError as e:
        return e.message
