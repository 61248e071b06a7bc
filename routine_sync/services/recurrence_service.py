"""
Recurrence projection service.

Maps weekday templates onto the concrete dates of the rolling window.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from routine_sync.models.enums import Weekday
from routine_sync.utils.datetime_utils import add_days, fixed_zone, to_iso_date, today_start


class RecurrenceService:
    """Service for projecting weekdays onto the rolling window."""

    def __init__(
        self,
        window_days: int = 7,
        zone: Optional[timezone] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize recurrence service.

        Args:
            window_days: Length of the lookahead window in days
            zone: Fixed zone for "today" (None = configured zone)
            clock: Returns the current instant (None = system clock)
        """
        self.window_days = window_days
        self.zone = zone or fixed_zone()
        self.clock = clock

    def today(self) -> datetime:
        """Start of the current day in the fixed zone."""
        now = self.clock() if self.clock else None
        return today_start(self.zone, now)

    def _resolve_today(self, today: Optional[date | datetime]) -> datetime:
        if today is None:
            return self.today()
        if isinstance(today, datetime):
            return today_start(self.zone, today)
        return datetime(today.year, today.month, today.day, tzinfo=self.zone)

    def window(self, today: Optional[date | datetime] = None) -> list[tuple[Weekday, str]]:
        """Every (weekday, ISO date) in the window ``(today, today + window_days]``."""
        start = self._resolve_today(today)
        out: list[tuple[Weekday, str]] = []
        for offset in range(1, self.window_days + 1):
            day = add_days(start, offset)
            out.append((Weekday.from_date(day.date()), to_iso_date(day, self.zone)))
        return out

    def projected_dates(
        self, weekday: Weekday | str, today: Optional[date | datetime] = None
    ) -> list[str]:
        """
        Dates of the window falling on ``weekday``, ascending.

        With a 7-day window every weekday occurs exactly once.
        """
        target = Weekday(weekday)
        return [date_iso for day, date_iso in self.window(today) if day == target]

    @staticmethod
    def next_occurrence_after(weekday: Weekday | str, after: date) -> date:
        """Nearest date strictly after ``after`` falling on ``weekday``."""
        target = Weekday(weekday)
        candidate = after + timedelta(days=1)
        while Weekday.from_date(candidate) != target:
            candidate += timedelta(days=1)
        return candidate
