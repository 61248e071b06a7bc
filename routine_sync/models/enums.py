"""
Enum definitions for the application.

These enums are used across models and services and provide type-safe
weekday and layout option values.
"""

from enum import Enum


class Weekday(str, Enum):
    """Day of week, in Sunday-first calendar order."""

    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @classmethod
    def from_date(cls, value) -> "Weekday":
        """Resolve the weekday of a ``date`` (Python counts Monday as 0)."""
        return WEEKDAYS[(value.weekday() + 1) % 7]


WEEKDAYS: tuple[Weekday, ...] = tuple(Weekday)


class TieBreak(str, Enum):
    """
    Ordering rule applied inside an interval cluster before column assignment.

    START_END = ascending start, then ascending end (minimal column count)
    SHORTEST_FIRST = ascending duration, then ascending start
    """

    START_END = "start_end"
    SHORTEST_FIRST = "shortest_first"


class LayoutMode(str, Enum):
    """Geometry produced by the layout engine."""

    RECT = "rect"
    RADIAL = "radial"


class DayHalf(str, Enum):
    """Half of a day shown on a 12-hour clock face."""

    AM = "am"
    PM = "pm"
