"""Pydantic models (schemas) for the application."""

from routine_sync.models.enums import WEEKDAYS, DayHalf, LayoutMode, TieBreak, Weekday
from routine_sync.models.document import DocumentSnapshot
from routine_sync.models.layout import RadialBand, RadialGeometry, RectGeometry, TimeInterval
from routine_sync.models.routine import (
    DateEntry,
    DateEntryCreate,
    DateSchedule,
    ReconcileResult,
    SeedWindowResult,
    TemplateEntry,
    TemplateEntryCreate,
    TemplateEntryUpdate,
    WeekdayTemplate,
)

__all__ = [
    "WEEKDAYS",
    "Weekday",
    "TieBreak",
    "LayoutMode",
    "DayHalf",
    "DocumentSnapshot",
    "TimeInterval",
    "RectGeometry",
    "RadialBand",
    "RadialGeometry",
    "TemplateEntry",
    "TemplateEntryCreate",
    "TemplateEntryUpdate",
    "WeekdayTemplate",
    "DateEntry",
    "DateEntryCreate",
    "DateSchedule",
    "ReconcileResult",
    "SeedWindowResult",
]
