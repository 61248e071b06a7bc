"""
Routine models.

Weekday templates, their entries, and the per-date schedules mirrored
from them.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from routine_sync.models.enums import Weekday

DAY_MINUTES = 1440


class EntryBase(BaseModel):
    """Fields shared by template entries and date entries."""

    start: int = Field(..., ge=0, lt=DAY_MINUTES, description="Start minute of day")
    end: int = Field(..., gt=0, le=DAY_MINUTES, description="End minute of day")
    category: str = Field("", max_length=200)
    action: str = Field("", max_length=500)
    purpose: str = Field("", max_length=1000)
    is_goal: bool = False
    fixed: bool = False


class TemplateEntryCreate(EntryBase):
    """Create a new template entry."""

    pass


class TemplateEntryUpdate(BaseModel):
    """Update template entry fields."""

    start: Optional[int] = Field(None, ge=0, lt=DAY_MINUTES)
    end: Optional[int] = Field(None, gt=0, le=DAY_MINUTES)
    category: Optional[str] = Field(None, max_length=200)
    action: Optional[str] = Field(None, max_length=500)
    purpose: Optional[str] = Field(None, max_length=1000)
    is_goal: Optional[bool] = None
    fixed: Optional[bool] = None


class TemplateEntry(EntryBase):
    """Template entry with its stable id."""

    id: str


class WeekdayTemplate(BaseModel):
    """Recurring plan for one weekday."""

    weekday: Weekday
    enabled: bool = False
    entries: list[TemplateEntry] = Field(default_factory=list)


class DateEntryCreate(EntryBase):
    """Create an ad-hoc entry on a concrete date."""

    pass


class DateEntry(EntryBase):
    """Entry on a concrete date, either mirrored from a template or ad-hoc."""

    id: str
    mirrored: bool = False


class DateSchedule(BaseModel):
    """Schedule of one concrete ISO date."""

    date: str
    enabled: bool = False
    entries: list[DateEntry] = Field(default_factory=list)


class ReconcileResult(BaseModel):
    """Outcome of reconciling one date against its weekday template."""

    uid: str
    weekday: Weekday
    date: str
    enabled: bool
    upserted: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    enabled_written: bool = False
    committed: bool = False

    @property
    def writes(self) -> int:
        """Number of document writes in the committed batch."""
        return len(self.upserted) + len(self.deleted) + int(self.enabled_written)


class SeedWindowResult(BaseModel):
    """Outcome of a seed pass over the rolling window."""

    uid: str
    results: list[ReconcileResult] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)
