"""Time sources for the scheduler.

All scheduling happens on naive wall-clock datetimes in the configured
time zone; the clock is the only place that zone is applied.
"""

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cronledger.exceptions import ConfigurationError


class Clock:
    """Source of the current wall-clock time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Reads the system clock and converts it to a configured time zone.

    Example:
        clock = SystemClock("Europe/Amsterdam")
        clock.now()  # naive datetime in Amsterdam local time
    """

    def __init__(self, timezone: str = "UTC") -> None:
        try:
            self._zone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown time zone: {timezone}",
                details={"error": str(e)},
            ) from e
        self.timezone = timezone

    def now(self) -> datetime:
        return datetime.now(self._zone).replace(tzinfo=None, microsecond=0)
