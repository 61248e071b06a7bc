"""
Routine service.

Editing operations on weekday templates and on date schedules. Template
edits only write the template; watch sessions pick the change up and
mirror it onto the projected dates.
"""

from __future__ import annotations

from uuid import uuid4

from routine_sync.core.exceptions import NotFoundError
from routine_sync.core.logger import setup_logger
from routine_sync.interfaces.document_store import IDocumentStore
from routine_sync.models.document import DocumentSnapshot
from routine_sync.models.enums import Weekday
from routine_sync.models.routine import (
    DateEntry,
    DateEntryCreate,
    DateSchedule,
    TemplateEntry,
    TemplateEntryCreate,
    TemplateEntryUpdate,
    WeekdayTemplate,
)
from routine_sync.services.mirror_service import MIRRORED_FIELD, validate_interval
from routine_sync.utils import paths
from routine_sync.utils.datetime_utils import parse_iso_date

logger = setup_logger(__name__)


def _new_entry_id() -> str:
    return uuid4().hex


class RoutineService:
    """Service for editing templates and date schedules."""

    def __init__(self, store: IDocumentStore):
        self.store = store

    # ===========================================
    # Weekday templates
    # ===========================================

    async def get_template(self, uid: str, weekday: Weekday | str) -> WeekdayTemplate:
        """Get a weekday template with its entries ordered by start."""
        weekday = Weekday(weekday)
        doc = await self.store.get(paths.template_path(uid, weekday))
        entries = await self.store.list_collection(
            paths.template_entries_path(uid, weekday), order_by="start"
        )
        return WeekdayTemplate(
            weekday=weekday,
            enabled=bool(doc and doc.get("enabled") is True),
            entries=[self._to_template_entry(entry) for entry in entries],
        )

    async def set_template_enabled(
        self, uid: str, weekday: Weekday | str, enabled: bool
    ) -> WeekdayTemplate:
        """Switch a weekday template on or off."""
        weekday = Weekday(weekday)
        await self.store.set_merge(paths.template_path(uid, weekday), {"enabled": enabled})
        logger.info(f"{uid} {weekday.value} template enabled={enabled}")
        return await self.get_template(uid, weekday)

    async def add_template_entry(
        self, uid: str, weekday: Weekday | str, data: TemplateEntryCreate
    ) -> TemplateEntry:
        """Create a template entry with a fresh id."""
        weekday = Weekday(weekday)
        validate_interval(data.start, data.end)
        entry_id = _new_entry_id()
        await self.store.set_merge(
            paths.template_entry_path(uid, weekday, entry_id), data.model_dump()
        )
        return TemplateEntry(id=entry_id, **data.model_dump())

    async def update_template_entry(
        self,
        uid: str,
        weekday: Weekday | str,
        entry_id: str,
        update: TemplateEntryUpdate,
    ) -> TemplateEntry:
        """
        Update template entry fields.

        Raises:
            NotFoundError: If the entry does not exist
            InvalidIntervalError: If the merged interval is malformed
        """
        weekday = Weekday(weekday)
        path = paths.template_entry_path(uid, weekday, entry_id)
        current = await self.store.get(path)
        if current is None:
            raise NotFoundError(f"Template entry {entry_id} not found")

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        merged = {**current.data, **changes}
        validate_interval(merged.get("start"), merged.get("end"), entry_id)
        if changes:
            await self.store.set_merge(path, changes)
        return TemplateEntry(id=entry_id, **merged)

    async def delete_template_entry(
        self, uid: str, weekday: Weekday | str, entry_id: str
    ) -> bool:
        """Delete a template entry."""
        path = paths.template_entry_path(uid, Weekday(weekday), entry_id)
        if await self.store.get(path) is None:
            return False
        await self.store.delete(path)
        return True

    # ===========================================
    # Date schedules
    # ===========================================

    async def get_date_schedule(self, uid: str, date_iso: str) -> DateSchedule:
        """Get a date schedule with its entries ordered by start."""
        parse_iso_date(date_iso)
        doc = await self.store.get(paths.schedule_path(uid, date_iso))
        entries = await self.store.list_collection(
            paths.schedule_entries_path(uid, date_iso), order_by="start"
        )
        return DateSchedule(
            date=date_iso,
            enabled=bool(doc and doc.get("enabled") is True),
            entries=[self._to_date_entry(entry) for entry in entries],
        )

    async def add_date_entry(
        self, uid: str, date_iso: str, data: DateEntryCreate
    ) -> DateEntry:
        """Write an ad-hoc entry and switch the date schedule on, in one batch."""
        parse_iso_date(date_iso)
        validate_interval(data.start, data.end)
        entry_id = _new_entry_id()
        payload = {**data.model_dump(), MIRRORED_FIELD: False}

        batch = self.store.batch()
        batch.set(paths.schedule_path(uid, date_iso), {"enabled": True}, merge=True)
        batch.set(paths.schedule_entry_path(uid, date_iso, entry_id), payload, merge=True)
        await batch.commit()
        return DateEntry(id=entry_id, **payload)

    async def delete_date_entry(self, uid: str, date_iso: str, entry_id: str) -> bool:
        """Delete a date entry; the schedule is switched off once it is empty."""
        parse_iso_date(date_iso)
        entries = await self.store.list_collection(paths.schedule_entries_path(uid, date_iso))
        if not any(entry.id == entry_id for entry in entries):
            return False

        batch = self.store.batch()
        batch.delete(paths.schedule_entry_path(uid, date_iso, entry_id))
        if len(entries) == 1:
            batch.set(paths.schedule_path(uid, date_iso), {"enabled": False}, merge=True)
        await batch.commit()
        return True

    @staticmethod
    def _to_template_entry(doc: DocumentSnapshot) -> TemplateEntry:
        return TemplateEntry.model_validate({**doc.data, "id": doc.id})

    @staticmethod
    def _to_date_entry(doc: DocumentSnapshot) -> DateEntry:
        return DateEntry.model_validate({**doc.data, "id": doc.id})
