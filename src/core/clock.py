"""Clock bound to the configured time zone.

Everything that needs "now" or "today" asks a Clock, so tests can pin the
time by passing their own now_fn.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable
from zoneinfo import ZoneInfo


class Clock:
    """Produces aware datetimes in a fixed named time zone."""

    def __init__(
        self,
        timezone: str | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        if timezone is None:
            from src.config import settings
            timezone = settings.TIMEZONE

        self.tz = ZoneInfo(timezone)
        self._now_fn = now_fn

    def now(self) -> datetime:
        if self._now_fn is None:
            return datetime.now(self.tz)
        return self._now_fn().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def date_string(self, moment: datetime | None = None) -> str:
        """Local calendar day as YYYY-MM-DD."""
        moment = self.now() if moment is None else moment.astimezone(self.tz)
        return moment.date().isoformat()
