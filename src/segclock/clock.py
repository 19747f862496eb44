"""Wall-clock access and time formatting for the display."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import DEFAULT_TIMEZONE
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeDigits:
    """The four display digits ``HH MM`` for one reading of the clock."""

    hour_tens: int
    hour_units: int
    minute_tens: int
    minute_units: int

    def __iter__(self) -> Iterator[int]:
        return iter((self.hour_tens, self.hour_units, self.minute_tens, self.minute_units))

    def as_text(self) -> str:
        """Return the digits as ``HH:MM``."""
        return f"{self.hour_tens}{self.hour_units}:{self.minute_tens}{self.minute_units}"


def format_time(hour: int, minute: int) -> TimeDigits:
    """Split *hour* (0-23) and *minute* (0-59) into display digits."""
    return TimeDigits(hour // 10, hour % 10, minute // 10, minute % 10)


class SystemClock:
    """Reads the system clock in a fixed timezone.

    Args:
        timezone: IANA timezone name (e.g. ``Europe/Lisbon``).

    Raises:
        ValidationError: If the timezone is unknown.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE) -> None:
        try:
            self._tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError(f"Unknown timezone {timezone!r}") from exc
        self.timezone_name = timezone

    def now(self) -> tuple[int, int]:
        """Return the current ``(hour, minute)`` in the configured timezone."""
        local = datetime.now(self._tz)
        return local.hour, local.minute


def current_digits(clock: SystemClock) -> TimeDigits:
    """Read *clock* and format the result; never cached."""
    hour, minute = clock.now()
    return format_time(hour, minute)
