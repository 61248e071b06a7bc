"""API routers."""

from routine_sync.api import dates, routines, sync

__all__ = [
    "routines",
    "dates",
    "sync",
]
