"""Time providers used by the product cache."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware time."""


@dataclass
class SystemClock(Clock):
    """Clock backed by the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)
