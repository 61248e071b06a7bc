"""
Mirror reconciliation service.

Synchronizes one weekday template into one concrete date schedule as a
single atomic batch. Mirrored date entries keep the id of their template
entry and carry ``mirrored=True``; entries authored directly on the date
are never selected for deletion.
"""

from __future__ import annotations

import asyncio
from typing import Any

from routine_sync.core.exceptions import InvalidIntervalError
from routine_sync.core.logger import setup_logger
from routine_sync.interfaces.document_store import IDocumentStore
from routine_sync.models.document import DocumentSnapshot
from routine_sync.models.enums import Weekday
from routine_sync.models.routine import DAY_MINUTES, ReconcileResult
from routine_sync.utils import paths
from routine_sync.utils.datetime_utils import parse_iso_date

logger = setup_logger(__name__)

MIRRORED_FIELD = "mirrored"
ENTRY_FIELDS: tuple[str, ...] = (
    "start",
    "end",
    "category",
    "action",
    "purpose",
    "is_goal",
    "fixed",
)


def validate_interval(start: Any, end: Any, entry_id: str = "") -> None:
    """
    Reject an entry interval that is not ``0 <= start < end <= 1440``.

    Raises:
        InvalidIntervalError: If the interval is malformed
    """
    label = f" for entry {entry_id}" if entry_id else ""
    if type(start) is not int or type(end) is not int:
        raise InvalidIntervalError(f"Interval bounds must be integers{label}: ({start!r}, {end!r})")
    if end <= start:
        raise InvalidIntervalError(f"Interval end must be after start{label}: ({start}, {end})")
    if start < 0 or end > DAY_MINUTES:
        raise InvalidIntervalError(f"Interval outside the day{label}: ({start}, {end})")


def mirror_payload(template_entry: DocumentSnapshot) -> dict[str, Any]:
    """Fields written to a date entry mirrored from ``template_entry``."""
    data = template_entry.data
    payload = {
        "start": data.get("start"),
        "end": data.get("end"),
        "category": data.get("category") or "",
        "action": data.get("action") or "",
        "purpose": data.get("purpose") or "",
        "is_goal": bool(data.get("is_goal", False)),
        "fixed": bool(data.get("fixed", False)),
    }
    payload[MIRRORED_FIELD] = True
    return payload


class MirrorReconciler:
    """Reconciles one date schedule against its weekday template."""

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def reconcile_date(
        self, uid: str, weekday: Weekday | str, date_iso: str
    ) -> ReconcileResult:
        """
        Make the mirrored entries of ``date_iso`` match the ``weekday`` template.

        Missing template or schedule documents are treated as empty and
        disabled. All writes go out in one batch, and nothing is committed
        when the date is already in sync.

        Raises:
            InvalidIntervalError: A template entry has end <= start
            StoreUnavailableError: A read or the commit failed
        """
        weekday = Weekday(weekday)
        parse_iso_date(date_iso)

        template_doc, schedule_doc = await asyncio.gather(
            self.store.get(paths.template_path(uid, weekday)),
            self.store.get(paths.schedule_path(uid, date_iso)),
        )
        enabled = bool(template_doc and template_doc.get("enabled") is True)

        result = ReconcileResult(uid=uid, weekday=weekday, date=date_iso, enabled=enabled)
        batch = self.store.batch()

        if schedule_doc is None or schedule_doc.get("enabled") is not enabled:
            batch.set(paths.schedule_path(uid, date_iso), {"enabled": enabled}, merge=True)
            result.enabled_written = True

        if not enabled:
            existing = await self.store.list_collection(paths.schedule_entries_path(uid, date_iso))
            for entry in existing:
                if entry.get(MIRRORED_FIELD) is True:
                    batch.delete(paths.schedule_entry_path(uid, date_iso, entry.id))
                    result.deleted.append(entry.id)
            await self._commit(batch, result)
            return result

        template_entries, existing = await asyncio.gather(
            self.store.list_collection(paths.template_entries_path(uid, weekday), order_by="start"),
            self.store.list_collection(paths.schedule_entries_path(uid, date_iso)),
        )
        for entry in template_entries:
            validate_interval(entry.get("start"), entry.get("end"), entry.id)

        existing_by_id = {entry.id: entry for entry in existing}
        template_ids = {entry.id for entry in template_entries}

        for entry in existing:
            if entry.get(MIRRORED_FIELD) is True and entry.id not in template_ids:
                batch.delete(paths.schedule_entry_path(uid, date_iso, entry.id))
                result.deleted.append(entry.id)

        for entry in template_entries:
            payload = mirror_payload(entry)
            current = existing_by_id.get(entry.id)
            if current is not None:
                if current.get(MIRRORED_FIELD) is not True:
                    logger.warning(
                        f"Ad-hoc entry {entry.id} on {date_iso} shares an id with the "
                        f"{weekday.value} template; overwriting it with the template entry"
                    )
                elif all(current.get(field) == payload[field] for field in ENTRY_FIELDS):
                    continue
            batch.set(paths.schedule_entry_path(uid, date_iso, entry.id), payload, merge=True)
            result.upserted.append(entry.id)

        await self._commit(batch, result)
        return result

    async def _commit(self, batch, result: ReconcileResult) -> None:
        if batch.size == 0:
            logger.debug(f"{result.uid} {result.date}: already in sync with {result.weekday.value}")
            return
        await batch.commit()
        result.committed = True
        logger.info(
            f"{result.uid} {result.date} <- {result.weekday.value}: "
            f"enabled={result.enabled}, upserted={len(result.upserted)}, "
            f"deleted={len(result.deleted)}"
        )
