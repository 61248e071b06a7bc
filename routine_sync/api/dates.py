"""
Date schedule API endpoints.

Ad-hoc entry editing and the render layout of a date's entries.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from routine_sync.api.deps import Routines
from routine_sync.core.config import get_settings
from routine_sync.models.enums import DayHalf, LayoutMode, TieBreak
from routine_sync.models.layout import RadialBand, RadialGeometry, RectGeometry, TimeInterval
from routine_sync.models.routine import DateEntry, DateEntryCreate, DateSchedule
from routine_sync.services import layout_service

router = APIRouter()


class LayoutResponse(BaseModel):
    """Slot geometry for every interval of a date."""

    date: str
    mode: LayoutMode
    tie_break: TieBreak
    intervals: list[TimeInterval] = Field(default_factory=list)
    rect: dict[str, RectGeometry] = Field(default_factory=dict)
    radial: dict[str, RadialGeometry] = Field(default_factory=dict)


@router.get("/{date_iso}", response_model=DateSchedule)
async def get_date_schedule(uid: str, date_iso: str, service: Routines) -> DateSchedule:
    """Get a date schedule with its entries."""
    return await service.get_date_schedule(uid, date_iso)


@router.post(
    "/{date_iso}/entries",
    response_model=DateEntry,
    status_code=status.HTTP_201_CREATED,
)
async def create_date_entry(
    uid: str,
    date_iso: str,
    payload: DateEntryCreate,
    service: Routines,
) -> DateEntry:
    """Add an ad-hoc entry to a date."""
    return await service.add_date_entry(uid, date_iso, payload)


@router.delete("/{date_iso}/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_date_entry(
    uid: str,
    date_iso: str,
    entry_id: str,
    service: Routines,
):
    """Delete a date entry."""
    deleted = await service.delete_date_entry(uid, date_iso, entry_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Date entry {entry_id} not found",
        )


@router.get("/{date_iso}/layout", response_model=LayoutResponse)
async def get_date_layout(
    uid: str,
    date_iso: str,
    service: Routines,
    mode: LayoutMode = Query(LayoutMode.RECT, description="rect or radial"),
    tie_break: Optional[TieBreak] = Query(None, description="Ordering inside clusters"),
    half: Optional[DayHalf] = Query(None, description="Restrict to the AM or PM half"),
    scale: float = Query(1.0, gt=0, description="Length units per minute (rect mode)"),
) -> LayoutResponse:
    """Lay out a date's entries without visual collision."""
    settings = get_settings()
    tie_break = tie_break or settings.LAYOUT_TIE_BREAK
    schedule = await service.get_date_schedule(uid, date_iso)
    intervals = [
        TimeInterval(id=entry.id, start=entry.start, end=entry.end, label=entry.purpose or None)
        for entry in schedule.entries
    ]

    response = LayoutResponse(date=date_iso, mode=mode, tie_break=tie_break)
    if mode == LayoutMode.RADIAL:
        if half is not None:
            range_start, range_end = layout_service.half_day_range(half)
            intervals = layout_service.fill_gaps(
                layout_service.half_day(intervals, half), range_start, range_end
            )
        bands = [
            RadialBand(inner_radius=inner, outer_radius=outer)
            for inner, outer in settings.RADIAL_BANDS
        ]
        response.radial = layout_service.layout_radial(
            intervals, bands, tie_break, settings.LAYOUT_BOUND_MINUTES
        )
    else:
        if half is not None:
            intervals = layout_service.half_day(intervals, half)
        response.rect = layout_service.layout_rectangular(
            intervals, tie_break, scale, settings.LAYOUT_BOUND_MINUTES
        )
    response.intervals = intervals
    return response
