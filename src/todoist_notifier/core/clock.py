"""Clock - the single source of "now" for filtering and state expiry."""

from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Interface for reading the current time."""

    def now(self) -> datetime:
        """Current time, timezone-aware."""
        ...


class ZonedClock:
    """Wall clock pinned to one timezone."""

    def __init__(self, timezone: str | ZoneInfo):
        self.tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    def now(self) -> datetime:
        return datetime.now(self.tz)
