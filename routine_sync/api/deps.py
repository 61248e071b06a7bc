"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the shared store
and the services built on top of it.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from routine_sync.core.config import get_settings
from routine_sync.interfaces.document_store import IDocumentStore
from routine_sync.services.mirror_service import MirrorReconciler
from routine_sync.services.recurrence_service import RecurrenceService
from routine_sync.services.routine_service import RoutineService
from routine_sync.services.watch_service import WatchCoordinator


# ===========================================
# Store Dependencies
# ===========================================


@lru_cache()
def get_document_store() -> IDocumentStore:
    """Get document store instance."""
    from routine_sync.infrastructure.local.document_store import SqliteDocumentStore

    return SqliteDocumentStore()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_recurrence_service() -> RecurrenceService:
    """Get recurrence service instance."""
    return RecurrenceService(window_days=get_settings().WINDOW_DAYS)


@lru_cache()
def get_watch_coordinator() -> WatchCoordinator:
    """Get watch coordinator instance."""
    store = get_document_store()
    return WatchCoordinator(
        store,
        reconciler=MirrorReconciler(store),
        recurrence=get_recurrence_service(),
        concurrency=get_settings().RECONCILE_CONCURRENCY,
    )


def get_routine_service(
    store: Annotated[IDocumentStore, Depends(get_document_store)],
) -> RoutineService:
    """Get routine service bound to the shared store."""
    return RoutineService(store)


Routines = Annotated[RoutineService, Depends(get_routine_service)]
Coordinator = Annotated[WatchCoordinator, Depends(get_watch_coordinator)]
