"""Cron expression parsing, matching and next-run search.

A :class:`CronExpression` holds six fields: minutes, hours, day_of_month,
month, day_of_week and an optional year. Each field is ``*``, a number, a
comma separated list, an inclusive range ``a-b`` or a stepped value
(``*/n``, ``a-b/n`` or ``a/n``, the last meaning every n-th value from
``a`` up to the field maximum). Month and day-of-week names are converted
to numbers before validation.

Unlike POSIX cron, day_of_month and day_of_week are combined with AND:
``0 0 13 * 5`` only matches Friday the 13th.

Example:
    expr = CronExpression.parse("*/15 9-17 * * mon-fri")
    expr.matches(datetime(2024, 1, 8, 9, 30))      # True
    expr.next_run_after(datetime(2024, 1, 8, 17, 50))  # 2024-01-09 09:00
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import MAXYEAR, datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from cronledger.exceptions import CronParseError, InvalidFieldCountError, NoValidTimestampError
from cronledger.schedule.aliases import resolve

FIELD_NAMES: Tuple[str, ...] = (
    "minutes",
    "hours",
    "day_of_month",
    "month",
    "day_of_week",
    "year",
)

FIELD_LIMITS: Dict[str, Tuple[int, int]] = {
    "minutes": (0, 59),
    "hours": (0, 23),
    "day_of_month": (1, 31),
    "month": (1, 12),
    "day_of_week": (0, 6),
    "year": (0, 2099),
}

MONTH_NAMES: Dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}

DAY_NAMES: Dict[str, int] = {
    "sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6,
    "sunday": 0, "monday": 1, "tuesday": 2, "wednesday": 3, "thursday": 4,
    "friday": 5, "saturday": 6,
}

_NAME_TABLES: Dict[str, Dict[str, int]] = {
    "month": MONTH_NAMES,
    "day_of_week": DAY_NAMES,
}

_RANGE_RE = re.compile(r"^([0-9]+)-([0-9]+)$")
_NUMBER_RE = re.compile(r"^[0-9]+$")

DEFAULT_MAX_ITERATIONS = 10000

FieldValue = Union[str, int]


def field_descriptions() -> Dict[str, str]:
    """Get a short description of what each field accepts."""
    return {
        "minutes": "Minutes (0-59)",
        "hours": "Hours (0-23)",
        "day_of_month": "Day of month (1-31)",
        "month": "Month (1-12 or names)",
        "day_of_week": "Day of week (0-6, where 0=Sunday, or names)",
        "year": "Year (optional)",
    }


def _convert_name(token: str, table: Dict[str, int]) -> str:
    number = table.get(token.lower())
    return str(number) if number is not None else token


def convert_named_values(value: str, table: Dict[str, int]) -> str:
    """Replace month or day names with their numbers.

    Names inside lists, ranges and stepped ranges are converted as well.
    Unknown names are left alone so validation reports them.
    """
    if "," in value:
        return ",".join(convert_named_values(part, table) for part in value.split(","))

    if "/" in value:
        base, step = value.split("/", 1)
        return f"{convert_named_values(base, table)}/{step}"

    if value.count("-") == 1:
        start, end = value.split("-")
        return f"{_convert_name(start, table)}-{_convert_name(end, table)}"

    return _convert_name(value, table)


def _out_of_range(field_name: str, value: str, number: int) -> CronParseError:
    minimum, maximum = FIELD_LIMITS[field_name]
    hint = ""
    if field_name == "day_of_week" and 1 <= number <= 31:
        hint = " Did you mean to use this value for day_of_month instead?"
    elif field_name == "hours" and 0 <= number <= 59:
        hint = " Did you mean to use this value for minutes instead?"
    return CronParseError(
        f"Invalid value for field '{field_name}': {value} (min: {minimum}, max: {maximum}).{hint}",
        field=field_name,
        value=value,
        minimum=minimum,
        maximum=maximum,
    )


def validate_field(value: str, field_name: str) -> None:
    """Validate one field, raising :class:`CronParseError` on the first problem."""
    if field_name not in FIELD_LIMITS:
        raise CronParseError(f"Unknown field: '{field_name}'", field=field_name, value=value)

    if value == "*":
        return

    minimum, maximum = FIELD_LIMITS[field_name]

    if "," in value:
        for part in value.split(","):
            validate_field(part, field_name)
        return

    match = _RANGE_RE.match(value)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if not minimum <= start <= maximum:
            raise CronParseError(
                f"Invalid start value for field '{field_name}': {start} (min: {minimum}, max: {maximum})",
                field=field_name, value=value, minimum=minimum, maximum=maximum,
            )
        if not minimum <= end <= maximum:
            raise CronParseError(
                f"Invalid end value for field '{field_name}': {end} (min: {minimum}, max: {maximum})",
                field=field_name, value=value, minimum=minimum, maximum=maximum,
            )
        if start > end:
            raise CronParseError(
                f"Start value ({start}) cannot be greater than end value ({end}) for field '{field_name}'",
                field=field_name, value=value, minimum=minimum, maximum=maximum,
            )
        return

    if "/" in value:
        base, step = value.split("/", 1)
        if not _NUMBER_RE.match(step) or int(step) < 1:
            raise CronParseError(
                f"Invalid step for field '{field_name}': {step}",
                field=field_name, value=value, minimum=minimum, maximum=maximum,
            )
        if base == "*":
            return
        if not (_NUMBER_RE.match(base) or _RANGE_RE.match(base)):
            raise CronParseError(
                f"Invalid format for field '{field_name}': {value}",
                field=field_name, value=value, minimum=minimum, maximum=maximum,
            )
        validate_field(base, field_name)
        return

    if _NUMBER_RE.match(value):
        number = int(value)
        if not minimum <= number <= maximum:
            raise _out_of_range(field_name, value, number)
        return

    raise CronParseError(
        f"Invalid format for field '{field_name}': {value}",
        field=field_name, value=value, minimum=minimum, maximum=maximum,
    )


def normalize_field(value: FieldValue, field_name: str) -> str:
    """Convert a field value to its canonical text form and validate it."""
    text = str(value).strip()
    table = _NAME_TABLES.get(field_name)
    if table is not None:
        text = convert_named_values(text, table)
    validate_field(text, field_name)
    return text


def expand_field(value: str, field_name: str) -> Optional[FrozenSet[int]]:
    """Expand a validated field into the set of values it allows.

    Returns ``None`` for ``*`` so callers can skip the membership test.
    A list with a ``*`` member (``1,*``) allows everything too.
    """
    parts = value.split(",")
    if "*" in parts:
        return None

    minimum, maximum = FIELD_LIMITS[field_name]
    values: set = set()

    for part in parts:
        match = _RANGE_RE.match(part)
        if match:
            values.update(range(int(match.group(1)), int(match.group(2)) + 1))
        elif "/" in part:
            base, step_text = part.split("/", 1)
            step = int(step_text)
            if base == "*":
                start, end = minimum, maximum
            else:
                base_range = _RANGE_RE.match(base)
                if base_range:
                    start, end = int(base_range.group(1)), int(base_range.group(2))
                else:
                    start, end = int(base), maximum
            values.update(range(start, end + 1, step))
        else:
            values.add(int(part))

    return frozenset(values)


def _next_in(allowed: FrozenSet[int], current: int) -> Optional[int]:
    candidates = [v for v in allowed if v > current]
    return min(candidates) if candidates else None


def _day_of_week(moment: datetime) -> int:
    # 0 = Sunday
    return moment.isoweekday() % 7


@dataclass(frozen=True)
class CronExpression:
    """An immutable, validated cron expression.

    Construct it with :meth:`parse` from text, with :class:`CronBuilder`
    field by field, or directly from field values. Field values are
    stored in canonical form (names converted to numbers).
    """

    minutes: str = "*"
    hours: str = "*"
    day_of_month: str = "*"
    month: str = "*"
    day_of_week: str = "*"
    year: str = "*"

    _allowed: Dict[str, Optional[FrozenSet[int]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        allowed: Dict[str, Optional[FrozenSet[int]]] = {}
        for name in FIELD_NAMES:
            text = normalize_field(getattr(self, name), name)
            object.__setattr__(self, name, text)
            allowed[name] = expand_field(text, name)
        object.__setattr__(self, "_allowed", allowed)

    @classmethod
    def parse(cls, expression: str) -> "CronExpression":
        """Parse a cron string or alias.

        Args:
            expression: Five or six whitespace separated fields, or an
                alias such as ``hourly``

        Returns:
            The parsed expression

        Raises:
            InvalidFieldCountError: If the string does not have 5 or 6 fields
            CronParseError: If a field fails validation
        """
        text = resolve(expression).strip()
        parts = text.split()
        if len(parts) not in (5, 6):
            raise InvalidFieldCountError(
                f"CRON string must contain 5 or 6 parts, found {len(parts)}: '{text}'",
                count=len(parts),
            )
        return cls(*parts)

    @property
    def has_year(self) -> bool:
        return self.year != "*"

    def fields(self) -> Dict[str, str]:
        """Get the canonical text of every field, keyed by field name."""
        return {name: getattr(self, name) for name in FIELD_NAMES}

    def to_cron_string(self, include_year: bool = False) -> str:
        """Serialize back to cron syntax.

        Args:
            include_year: Append the year as a sixth field

        Returns:
            Space separated cron fields
        """
        names = FIELD_NAMES if include_year else FIELD_NAMES[:5]
        return " ".join(getattr(self, name) for name in names)

    def __str__(self) -> str:
        return self.to_cron_string(include_year=self.has_year)

    @property
    def description(self) -> str:
        """Human-readable summary of the schedule."""
        from cronledger.schedule.description import describe

        return describe(self)

    def _field_matches(self, name: str, value: int) -> bool:
        allowed = self._allowed[name]
        return allowed is None or value in allowed

    def _day_matches(self, moment: datetime) -> bool:
        return (
            self._field_matches("day_of_month", moment.day)
            and self._field_matches("day_of_week", _day_of_week(moment))
        )

    def matches(self, moment: datetime) -> bool:
        """Check whether a timestamp (to the minute) satisfies every field."""
        return (
            self._field_matches("minutes", moment.minute)
            and self._field_matches("hours", moment.hour)
            and self._day_matches(moment)
            and self._field_matches("month", moment.month)
            and self._field_matches("year", moment.year)
        )

    def next_run_after(
        self,
        start: datetime,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> datetime:
        """Find the first matching minute strictly after ``start``.

        The search jumps field by field (year, month, day, hour, minute)
        rather than stepping minute by minute; ``max_iterations`` bounds the
        number of jumps.

        Raises:
            NoValidTimestampError: If the year field has no value after the
                current one, or no match is found within ``max_iterations``
        """
        moment = start.replace(second=0, microsecond=0) + timedelta(minutes=1)
        allowed = self._allowed

        for _ in range(max_iterations):
            years = allowed["year"]
            if years is not None and moment.year not in years:
                next_year = _next_in(years, moment.year)
                if next_year is None:
                    raise NoValidTimestampError(f"No valid year found after {moment.year}")
                moment = moment.replace(year=next_year, month=1, day=1, hour=0, minute=0)
                continue

            if not self._field_matches("month", moment.month):
                next_month = _next_in(allowed["month"], moment.month)
                if next_month is None:
                    moment = self._start_of_year(moment.year + 1, moment)
                else:
                    moment = moment.replace(month=next_month, day=1, hour=0, minute=0)
                continue

            if not self._day_matches(moment):
                days_in_month = calendar.monthrange(moment.year, moment.month)[1]
                next_day = None
                for day in range(moment.day + 1, days_in_month + 1):
                    if self._day_matches(moment.replace(day=day)):
                        next_day = day
                        break
                if next_day is None:
                    if moment.month == 12:
                        moment = self._start_of_year(moment.year + 1, moment)
                    else:
                        moment = moment.replace(month=moment.month + 1, day=1, hour=0, minute=0)
                else:
                    moment = moment.replace(day=next_day, hour=0, minute=0)
                continue

            if not self._field_matches("hours", moment.hour):
                next_hour = _next_in(allowed["hours"], moment.hour)
                if next_hour is None:
                    moment = moment.replace(hour=0, minute=0) + timedelta(days=1)
                else:
                    moment = moment.replace(hour=next_hour, minute=0)
                continue

            if not self._field_matches("minutes", moment.minute):
                next_minute = _next_in(allowed["minutes"], moment.minute)
                if next_minute is None:
                    moment = moment.replace(minute=0) + timedelta(hours=1)
                else:
                    moment = moment.replace(minute=next_minute)
                continue

            return moment

        raise NoValidTimestampError(
            f"Could not find a valid timestamp after {max_iterations} iterations"
        )

    @staticmethod
    def _start_of_year(year: int, moment: datetime) -> datetime:
        if year > MAXYEAR:
            raise NoValidTimestampError(f"No valid year found after {moment.year}")
        return moment.replace(year=year, month=1, day=1, hour=0, minute=0)

    def next_run_times(
        self,
        start: datetime,
        count: int,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> List[datetime]:
        """Get the next ``count`` matching timestamps after ``start``."""
        times: List[datetime] = []
        moment = start
        for _ in range(count):
            moment = self.next_run_after(moment, max_iterations)
            times.append(moment)
        return times


class CronBuilder:
    """Fluent builder for :class:`CronExpression`.

    Each setter validates its value immediately, so a bad field fails at
    the call that set it.

    Example:
        expr = (
            CronBuilder()
            .minutes(30)
            .hours(9)
            .month("jan,apr,jul,oct")
            .day_of_week("mon-fri")
            .build()
        )
    """

    def __init__(self) -> None:
        self._fields: Dict[str, str] = {name: "*" for name in FIELD_NAMES}

    def _set(self, name: str, value: FieldValue) -> "CronBuilder":
        self._fields[name] = normalize_field(value, name)
        return self

    def minutes(self, value: FieldValue) -> "CronBuilder":
        return self._set("minutes", value)

    def hours(self, value: FieldValue) -> "CronBuilder":
        return self._set("hours", value)

    def day_of_month(self, value: FieldValue) -> "CronBuilder":
        return self._set("day_of_month", value)

    def month(self, value: FieldValue) -> "CronBuilder":
        return self._set("month", value)

    def day_of_week(self, value: FieldValue) -> "CronBuilder":
        return self._set("day_of_week", value)

    def year(self, value: FieldValue) -> "CronBuilder":
        return self._set("year", value)

    def build(self) -> CronExpression:
        return CronExpression(**self._fields)

    def to_cron_string(self, include_year: bool = False) -> str:
        return self.build().to_cron_string(include_year)


def validate_cron_string(expression: str) -> Optional[str]:
    """Validate a cron string without keeping the result.

    Returns:
        None if the expression is valid, otherwise the error message
    """
    try:
        CronExpression.parse(expression)
    except CronParseError as e:
        return e.message
    return None
