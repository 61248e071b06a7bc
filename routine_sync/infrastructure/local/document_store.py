"""
SQLite implementation of the document store.

Documents are rows keyed by their full path. Writes always go through a
batch so that single writes and multi-document batches share one
all-or-nothing code path, and subscribers are notified only after a
successful commit.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from routine_sync.core.exceptions import StoreUnavailableError, ValidationError
from routine_sync.core.logger import setup_logger
from routine_sync.infrastructure.local.database import DocumentORM, get_session_factory
from routine_sync.interfaces.document_store import (
    ChangeCallback,
    ErrorCallback,
    IDocumentStore,
    IWriteBatch,
    Unsubscribe,
)
from routine_sync.models.document import DocumentSnapshot
from routine_sync.utils import paths

logger = setup_logger(__name__)

_DELETED = object()


@dataclass
class _Listener:
    path: str
    is_document: bool
    on_change: ChangeCallback
    on_error: Optional[ErrorCallback]

    def matches(self, touched: set[str]) -> bool:
        if self.is_document:
            return self.path in touched
        return any(paths.parent_collection(p) == self.path for p in touched)

    def fire(self) -> None:
        try:
            self.on_change(self.path)
        except Exception as exc:
            if self.on_error is None:
                logger.exception(f"Change listener for {self.path} failed")
            else:
                self.on_error(exc)


class SubscriptionHub:
    """In-process registry of change listeners."""

    def __init__(self) -> None:
        self._listeners: dict[int, _Listener] = {}
        self._ids = itertools.count(1)

    def add(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        normalized = "/".join(paths.split(path))
        if not normalized:
            raise ValidationError("Cannot subscribe to an empty path")
        listener_id = next(self._ids)
        self._listeners[listener_id] = _Listener(
            path=normalized,
            is_document=paths.is_document_path(normalized),
            on_change=on_change,
            on_error=on_error,
        )

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def notify(self, touched: Iterable[str]) -> None:
        touched = set(touched)
        if not touched:
            return
        for listener in list(self._listeners.values()):
            if listener.matches(touched):
                listener.fire()

    def __len__(self) -> int:
        return len(self._listeners)


class SqliteWriteBatch(IWriteBatch):
    """Write batch applied in a single SQLite transaction."""

    def __init__(self, store: "SqliteDocumentStore"):
        self._store = store
        self._ops: list[tuple[str, str, Optional[dict[str, Any]], bool]] = []
        self._committed = False

    def set(self, path: str, fields: dict[str, Any], merge: bool = True) -> "SqliteWriteBatch":
        self._ops.append(("set", _document_path(path), dict(fields), merge))
        return self

    def delete(self, path: str) -> "SqliteWriteBatch":
        self._ops.append(("delete", _document_path(path), None, False))
        return self

    @property
    def size(self) -> int:
        return len(self._ops)

    async def commit(self) -> None:
        if self._committed:
            raise ValidationError("Write batch already committed")
        self._committed = True
        if not self._ops:
            return
        await self._store._apply(self._ops)


class SqliteDocumentStore(IDocumentStore):
    """SQLite implementation of the document store."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()
        self._hub = SubscriptionHub()
        # Batches read, fold and write under this lock, one at a time
        self._write_lock = asyncio.Lock()

    def _orm_to_snapshot(self, orm: DocumentORM) -> DocumentSnapshot:
        """Convert ORM object to a document snapshot."""
        return DocumentSnapshot(id=orm.doc_id, path=orm.path, data=dict(orm.data or {}))

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        """Get a document by path."""
        path = _document_path(path)
        try:
            async with self._session_factory() as session:
                orm = await session.get(DocumentORM, path)
                return self._orm_to_snapshot(orm) if orm else None
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to read {path}: {e}") from e

    async def set_merge(self, path: str, fields: dict[str, Any]) -> None:
        """Field-level upsert of a single document."""
        await self.batch().set(path, fields, merge=True).commit()

    async def delete(self, path: str) -> None:
        """Delete a single document."""
        await self.batch().delete(path).commit()

    async def list_collection(
        self, path: str, order_by: Optional[str] = None
    ) -> list[DocumentSnapshot]:
        """List documents directly inside a collection."""
        collection = "/".join(paths.split(path))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DocumentORM).where(DocumentORM.collection == collection)
                )
                snapshots = [self._orm_to_snapshot(orm) for orm in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to list {collection}: {e}") from e

        if order_by is None:
            return sorted(snapshots, key=lambda doc: doc.id)
        return sorted(
            snapshots,
            key=lambda doc: (doc.get(order_by) is None, doc.get(order_by), doc.id),
        )

    def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Subscribe to changes of a document or a collection."""
        return self._hub.add(path, on_change, on_error)

    def batch(self) -> SqliteWriteBatch:
        """Start a new write batch."""
        return SqliteWriteBatch(self)

    @property
    def subscription_count(self) -> int:
        return len(self._hub)

    async def _apply(self, ops: list[tuple[str, str, Optional[dict[str, Any]], bool]]) -> None:
        """Apply batch operations in one transaction, then notify listeners."""
        touched = list(dict.fromkeys(path for _, path, _, _ in ops))
        async with self._write_lock:
            await self._write(ops, touched)

        logger.debug(f"Committed {len(ops)} writes across {len(touched)} documents")
        self._hub.notify(touched)

    async def _write(
        self, ops: list[tuple[str, str, Optional[dict[str, Any]], bool]], touched: list[str]
    ) -> None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DocumentORM).where(DocumentORM.path.in_(touched))
                )
                rows = {orm.path: orm for orm in result.scalars().all()}

                # Fold operations into a final state per path
                final: dict[str, Any] = {}
                for kind, path, fields, merge in ops:
                    if kind == "delete":
                        final[path] = _DELETED
                        continue
                    if path in final:
                        base = final[path]
                    else:
                        base = dict(rows[path].data or {}) if path in rows else _DELETED
                    if base is _DELETED or not merge:
                        base = {}
                    final[path] = {**base, **fields}

                for path, value in final.items():
                    orm = rows.get(path)
                    if value is _DELETED:
                        if orm is not None:
                            await session.delete(orm)
                    elif orm is not None:
                        orm.data = value
                    else:
                        session.add(
                            DocumentORM(
                                path=path,
                                collection=paths.parent_collection(path),
                                doc_id=paths.document_id(path),
                                data=value,
                            )
                        )
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to commit {len(ops)} writes: {e}") from e


def _document_path(path: str) -> str:
    if not paths.is_document_path(path):
        raise ValidationError(f"Not a document path: {path!r}")
    return "/".join(paths.split(path))
