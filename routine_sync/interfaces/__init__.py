"""Abstract interfaces for infrastructure abstraction."""

from routine_sync.interfaces.document_store import IDocumentStore, IWriteBatch

__all__ = [
    "IDocumentStore",
    "IWriteBatch",
]
