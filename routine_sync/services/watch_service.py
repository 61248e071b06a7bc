"""
Watch coordination service.

Keeps the rolling window in sync with weekday templates: a watch session
subscribes to every weekday's entries collection and enabled flag and
reconciles the projected dates on each change; a seed pass reconciles the
whole window eagerly.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Optional

from routine_sync.core.exceptions import PartialWindowFailure
from routine_sync.core.logger import setup_logger
from routine_sync.interfaces.document_store import IDocumentStore, Unsubscribe
from routine_sync.models.enums import WEEKDAYS, Weekday
from routine_sync.models.routine import ReconcileResult, SeedWindowResult
from routine_sync.services.mirror_service import MirrorReconciler
from routine_sync.services.recurrence_service import RecurrenceService
from routine_sync.utils import paths

logger = setup_logger(__name__)


class WatchSession:
    """
    Subscriptions and in-flight reconciliations of one watched user.

    Owns one handle per subscription (two per weekday). ``cancel()`` drops
    them all; reconciliations already running are allowed to finish, but
    nothing new is scheduled afterwards.
    """

    def __init__(self, uid: str, coordinator: "WatchCoordinator"):
        self.uid = uid
        self._coordinator = coordinator
        self._store = coordinator.store
        self._recurrence = coordinator.recurrence
        self._handles: list[Unsubscribe] = []
        self._running: dict[str, asyncio.Task] = {}
        self._dirty: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._cancelled = False
        self.failures: dict[str, Exception] = {}

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def subscription_count(self) -> int:
        return len(self._handles)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def start(self) -> "WatchSession":
        """Subscribe to the entries collection and enabled flag of every weekday."""
        if self._cancelled:
            raise RuntimeError(f"Watch session for {self.uid} was cancelled")
        if self._handles:
            return self
        try:
            for weekday in WEEKDAYS:
                for path in (
                    paths.template_entries_path(self.uid, weekday),
                    paths.template_path(self.uid, weekday),
                ):
                    self._handles.append(
                        self._store.subscribe(
                            path,
                            lambda _path, day=weekday: self._on_change(day),
                            lambda exc, day=weekday: self._on_error(day, exc),
                        )
                    )
        except Exception:
            self.cancel()
            raise
        logger.info(f"Watching {len(self._handles)} template paths for {self.uid}")
        return self

    def cancel(self) -> None:
        """Drop every subscription. Safe to call more than once."""
        self._cancelled = True
        handles, self._handles = self._handles, []
        for unsubscribe in handles:
            unsubscribe()
        self._dirty.clear()
        if handles:
            logger.info(f"Stopped watching templates for {self.uid}")

    async def drain(self) -> None:
        """Wait until no reconciliation is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_change(self, weekday: Weekday) -> None:
        if self._cancelled:
            return
        for date_iso in self._recurrence.projected_dates(weekday):
            self._schedule(weekday, date_iso)

    def _on_error(self, weekday: Weekday, exc: Exception) -> None:
        logger.error(f"Template subscription error for {self.uid} {weekday.value}: {exc}")

    def _schedule(self, weekday: Weekday, date_iso: str) -> None:
        if date_iso in self._running:
            # One follow-up pass picks up whatever changed meanwhile
            self._dirty.add(date_iso)
            return
        task = asyncio.get_running_loop().create_task(self._run(weekday, date_iso))
        self._running[date_iso] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, weekday: Weekday, date_iso: str) -> None:
        try:
            while True:
                self._dirty.discard(date_iso)
                try:
                    await self._coordinator.reconcile_date(self.uid, weekday, date_iso)
                    self.failures.pop(date_iso, None)
                except Exception as exc:
                    # Left stale until the next change or seed pass
                    self.failures[date_iso] = exc
                    logger.error(f"Reconciling {self.uid} {date_iso} failed: {exc}")
                if self._cancelled or date_iso not in self._dirty:
                    return
        finally:
            self._running.pop(date_iso, None)


class WatchCoordinator:
    """Starts watch sessions and runs seed passes over the rolling window."""

    def __init__(
        self,
        store: IDocumentStore,
        reconciler: Optional[MirrorReconciler] = None,
        recurrence: Optional[RecurrenceService] = None,
        concurrency: int = 4,
    ):
        self.store = store
        self.reconciler = reconciler or MirrorReconciler(store)
        self.recurrence = recurrence or RecurrenceService()
        self.concurrency = concurrency
        self._date_locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def watch(self, uid: str) -> WatchSession:
        """Subscribe to all 14 template paths of ``uid``."""
        return WatchSession(uid, self).start()

    async def reconcile_date(
        self, uid: str, weekday: Weekday | str, date_iso: str
    ) -> ReconcileResult:
        """
        Reconcile one date, one pass per (uid, date) at a time.

        Watch sessions and seed passes both go through here, so a seed pass
        waits for an in-flight session pass on the same date and vice versa.
        """
        key = (uid, date_iso)
        lock = self._date_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._date_locks[key] = lock
        async with lock:
            return await self.reconciler.reconcile_date(uid, weekday, date_iso)

    async def reconcile_weekday(self, uid: str, weekday: Weekday | str) -> list[ReconcileResult]:
        """Reconcile every projected date of one weekday."""
        weekday = Weekday(weekday)
        return [
            await self.reconcile_date(uid, weekday, date_iso)
            for date_iso in self.recurrence.projected_dates(weekday)
        ]

    async def seed_window(self, uid: str) -> SeedWindowResult:
        """
        Reconcile every date of the window against its weekday template.

        Dates are independent: a failure on one does not stop the others.

        Raises:
            PartialWindowFailure: After all dates ran, if any of them failed
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        window = self.recurrence.window()

        async def run(weekday: Weekday, date_iso: str) -> ReconcileResult:
            async with semaphore:
                return await self.reconcile_date(uid, weekday, date_iso)

        outcomes = await asyncio.gather(
            *(run(weekday, date_iso) for weekday, date_iso in window),
            return_exceptions=True,
        )

        results: list[ReconcileResult] = []
        failures: dict[str, Exception] = {}
        for (_, date_iso), outcome in zip(window, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures[date_iso] = outcome
                logger.error(f"Seeding {uid} {date_iso} failed: {outcome}")
            else:
                results.append(outcome)

        if failures:
            raise PartialWindowFailure(
                f"{len(failures)} of {len(window)} dates failed to seed for {uid}",
                results=results,
                failures=failures,
            )
        logger.info(
            f"Seeded {len(results)} dates for {uid} "
            f"({sum(1 for r in results if r.committed)} changed)"
        )
        return SeedWindowResult(uid=uid, results=results)
