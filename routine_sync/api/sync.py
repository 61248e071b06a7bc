"""
Mirroring API endpoints.

Manual triggers for the seed pass and single-date reconciliation.
"""

from fastapi import APIRouter

from routine_sync.api.deps import Coordinator
from routine_sync.core.exceptions import PartialWindowFailure
from routine_sync.models.enums import Weekday
from routine_sync.models.routine import ReconcileResult, SeedWindowResult

router = APIRouter()


@router.post("/seed", response_model=SeedWindowResult)
async def seed_window(uid: str, coordinator: Coordinator) -> SeedWindowResult:
    """Reconcile the whole rolling window; failed dates are listed, not fatal."""
    try:
        return await coordinator.seed_window(uid)
    except PartialWindowFailure as exc:
        return SeedWindowResult(uid=uid, results=exc.results, failures=exc.details)


@router.post("/{weekday}/{date_iso}", response_model=ReconcileResult)
async def reconcile_date(
    uid: str,
    weekday: Weekday,
    date_iso: str,
    coordinator: Coordinator,
) -> ReconcileResult:
    """Reconcile one date against a weekday template."""
    return await coordinator.reconcile_date(uid, weekday, date_iso)
