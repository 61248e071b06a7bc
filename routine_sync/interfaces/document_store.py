"""
Document store interface.

Defines the contract the reconciliation engine consumes: point reads,
merge writes, ordered collection listing, change subscriptions and
all-or-nothing write batches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from routine_sync.models.document import DocumentSnapshot

ChangeCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class IWriteBatch(ABC):
    """Buffered writes applied atomically on commit."""

    @abstractmethod
    def set(self, path: str, fields: dict[str, Any], merge: bool = True) -> "IWriteBatch":
        """Queue a document write (field-level upsert when ``merge``)."""
        pass

    @abstractmethod
    def delete(self, path: str) -> "IWriteBatch":
        """Queue a document delete."""
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of queued operations."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Apply every queued operation, or none of them."""
        pass


class IDocumentStore(ABC):
    """Abstract interface for the persistent document store."""

    @abstractmethod
    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        """Get a document, or None if absent."""
        pass

    @abstractmethod
    async def set_merge(self, path: str, fields: dict[str, Any]) -> None:
        """Field-level upsert of a single document."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a single document (no-op if absent)."""
        pass

    @abstractmethod
    async def list_collection(
        self, path: str, order_by: Optional[str] = None
    ) -> list[DocumentSnapshot]:
        """List the documents directly inside a collection."""
        pass

    @abstractmethod
    def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """
        Subscribe to changes of a document or of a collection's documents.

        ``on_change`` receives the subscribed path after each commit that
        touches it. Returns a function that removes the subscription.
        """
        pass

    @abstractmethod
    def batch(self) -> IWriteBatch:
        """Start a new atomic write batch."""
        pass
