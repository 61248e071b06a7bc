"""
Fixed-offset calendar utilities.

Every "today" in the application is computed in one fixed civil offset
(no DST), so weekday resolution does not depend on where the process runs.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from routine_sync.core.exceptions import ValidationError
from routine_sync.models.enums import Weekday

# UTC timezone constant
UTC = timezone.utc


def fixed_zone(offset_minutes: Optional[int] = None) -> timezone:
    """
    Get the fixed civil offset used for calendar arithmetic.

    Args:
        offset_minutes: Offset from UTC in minutes (None = configured offset)

    Returns:
        timezone: Fixed-offset tzinfo
    """
    if offset_minutes is None:
        from routine_sync.core.config import get_settings

        offset_minutes = get_settings().TIMEZONE_OFFSET_MINUTES
    return timezone(timedelta(minutes=offset_minutes))


def now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def today_start(zone: Optional[timezone] = None, now: Optional[datetime] = None) -> datetime:
    """
    Get the start of the current day in a fixed zone.

    Args:
        zone: Fixed-offset zone (None = configured zone)
        now: Reference instant; naive values are taken as UTC (None = now)

    Returns:
        datetime: Midnight of the zone-local day containing ``now``

    Example:
        With a +09:00 zone, 2024-01-19 23:00 UTC is already 2024-01-20
        locally, so the result is 2024-01-20 00:00+09:00.
    """
    zone = zone or fixed_zone()
    if now is None:
        now = now_utc()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(zone)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def add_days(instant: datetime, n: int) -> datetime:
    """Add ``n`` calendar days; a fixed offset makes every day 24 hours long."""
    return instant + timedelta(days=n)


def to_iso_date(instant: datetime, zone: Optional[timezone] = None) -> str:
    """Format ``instant`` as ``YYYY-MM-DD`` using zone-local fields."""
    return _local_date(instant, zone).isoformat()


def weekday_of(instant: datetime, zone: Optional[timezone] = None) -> Weekday:
    """Zone-local day-of-week symbol of ``instant``."""
    return Weekday.from_date(_local_date(instant, zone))


def parse_iso_date(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the string is not a calendar date
    """
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid ISO date: {value!r}") from exc


def _local_date(instant: datetime, zone: Optional[timezone]) -> date:
    zone = zone or fixed_zone()
    if instant.tzinfo is None:
        return instant.date()
    return instant.astimezone(zone).date()
