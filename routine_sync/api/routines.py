"""
Weekday template API endpoints.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from routine_sync.api.deps import Routines
from routine_sync.core.exceptions import NotFoundError
from routine_sync.models.enums import Weekday
from routine_sync.models.routine import (
    TemplateEntry,
    TemplateEntryCreate,
    TemplateEntryUpdate,
    WeekdayTemplate,
)

router = APIRouter()


class TemplateEnabledUpdate(BaseModel):
    """Switch a weekday template on or off."""

    enabled: bool


@router.get("/{weekday}", response_model=WeekdayTemplate)
async def get_template(uid: str, weekday: Weekday, service: Routines) -> WeekdayTemplate:
    """Get a weekday template with its entries."""
    return await service.get_template(uid, weekday)


@router.patch("/{weekday}", response_model=WeekdayTemplate)
async def set_template_enabled(
    uid: str,
    weekday: Weekday,
    payload: TemplateEnabledUpdate,
    service: Routines,
) -> WeekdayTemplate:
    """Enable or disable a weekday template."""
    return await service.set_template_enabled(uid, weekday, payload.enabled)


@router.post(
    "/{weekday}/entries",
    response_model=TemplateEntry,
    status_code=status.HTTP_201_CREATED,
)
async def create_template_entry(
    uid: str,
    weekday: Weekday,
    payload: TemplateEntryCreate,
    service: Routines,
) -> TemplateEntry:
    """Add an entry to a weekday template."""
    return await service.add_template_entry(uid, weekday, payload)


@router.patch("/{weekday}/entries/{entry_id}", response_model=TemplateEntry)
async def update_template_entry(
    uid: str,
    weekday: Weekday,
    entry_id: str,
    update: TemplateEntryUpdate,
    service: Routines,
) -> TemplateEntry:
    """Update a template entry."""
    try:
        return await service.update_template_entry(uid, weekday, entry_id, update)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.delete("/{weekday}/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template_entry(
    uid: str,
    weekday: Weekday,
    entry_id: str,
    service: Routines,
):
    """Delete a template entry."""
    deleted = await service.delete_template_entry(uid, weekday, entry_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template entry {entry_id} not found",
        )
