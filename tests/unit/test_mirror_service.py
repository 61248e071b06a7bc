"""
Unit tests for MirrorReconciler.
"""

import asyncio
import logging
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from routine_sync.core.exceptions import (
    InvalidIntervalError,
    StoreUnavailableError,
    ValidationError,
)
from routine_sync.models.enums import Weekday
from routine_sync.services.mirror_service import MirrorReconciler, validate_interval
from routine_sync.utils import paths

UID = "u1"
DATE = "2024-01-26"


async def _template(store, weekday, enabled, entries):
    await store.set_merge(paths.template_path(UID, weekday), {"enabled": enabled})
    for entry_id, fields in entries.items():
        await store.set_merge(paths.template_entry_path(UID, weekday, entry_id), fields)


def _entry(start, end, category="work", **extra):
    return {"start": start, "end": end, "category": category, **extra}


async def _date_entries(store, date_iso=DATE):
    docs = await store.list_collection(paths.schedule_entries_path(UID, date_iso), order_by="start")
    return {doc.id: doc.data for doc in docs}


@pytest.fixture
def reconciler(store):
    return MirrorReconciler(store)


class TestValidateInterval:
    """Tests for validate_interval."""

    def test_valid(self):
        validate_interval(0, 1440)
        validate_interval(480, 600)

    @pytest.mark.parametrize(
        "start,end",
        [(600, 600), (600, 480), (-10, 30), (1400, 1441), (None, 60), (1.5, 60), (True, 60)],
    )
    def test_invalid(self, start, end):
        with pytest.raises(InvalidIntervalError):
            validate_interval(start, end)


class TestReconcileEnabled:
    """Tests for reconciling an enabled template."""

    @pytest.mark.asyncio
    async def test_friday_template_is_mirrored(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"w": _entry(480, 600)})

        result = await reconciler.reconcile_date(UID, "friday", DATE)

        schedule = await store.get(paths.schedule_path(UID, DATE))
        assert schedule.data == {"enabled": True}
        entries = await _date_entries(store)
        assert list(entries) == ["w"]
        assert entries["w"]["start"] == 480
        assert entries["w"]["end"] == 600
        assert entries["w"]["category"] == "work"
        assert entries["w"]["mirrored"] is True
        assert result.upserted == ["w"]
        assert result.enabled_written is True
        assert result.committed is True

    @pytest.mark.asyncio
    async def test_second_pass_writes_nothing(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"a": _entry(480, 600), "b": _entry(60, 90)})
        await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        notified = []
        store.subscribe(paths.schedule_entries_path(UID, DATE), notified.append)
        store.subscribe(paths.schedule_path(UID, DATE), notified.append)

        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert result.committed is False
        assert result.writes == 0
        assert notified == []

    @pytest.mark.asyncio
    async def test_template_diff_keeps_ad_hoc_entries(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"A": _entry(60, 120), "B": _entry(200, 260)})
        await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)
        await store.set_merge(
            paths.schedule_entry_path(UID, DATE, "D"), _entry(900, 960, "errand", mirrored=False)
        )

        await store.delete(paths.template_entry_path(UID, Weekday.FRIDAY, "B"))
        await store.set_merge(paths.template_entry_path(UID, Weekday.FRIDAY, "C"), _entry(300, 330))
        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert result.deleted == ["B"]
        assert result.upserted == ["C"]
        assert result.enabled_written is False
        assert sorted(await _date_entries(store)) == ["A", "C", "D"]

    @pytest.mark.asyncio
    async def test_changed_entry_is_rewritten(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"A": _entry(60, 120), "B": _entry(200, 260)})
        await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        await store.set_merge(
            paths.template_entry_path(UID, Weekday.FRIDAY, "A"), {"end": 150, "purpose": "focus"}
        )
        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert result.upserted == ["A"]
        entries = await _date_entries(store)
        assert entries["A"]["end"] == 150
        assert entries["A"]["purpose"] == "focus"

    @pytest.mark.asyncio
    async def test_colliding_ad_hoc_entry_is_overwritten(self, store, reconciler, caplog):
        await _template(store, Weekday.FRIDAY, True, {"X": _entry(60, 120)})
        await store.set_merge(
            paths.schedule_entry_path(UID, DATE, "X"), _entry(60, 120, mirrored=False)
        )

        with caplog.at_level(logging.WARNING, logger="routine_sync"):
            result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert result.upserted == ["X"]
        assert (await _date_entries(store))["X"]["mirrored"] is True
        assert "shares an id" in caplog.text


    @pytest.mark.asyncio
    async def test_concurrent_passes_on_a_fresh_date_converge(self, store, reconciler):
        entries = {f"e{n}": _entry(60 * n, 60 * n + 30) for n in range(5)}
        await _template(store, Weekday.FRIDAY, True, entries)

        results = await asyncio.gather(
            *(reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE) for _ in range(4))
        )

        assert all(r.enabled for r in results)
        assert sorted(await _date_entries(store)) == sorted(entries)
        assert (await store.get(paths.schedule_path(UID, DATE))).data == {"enabled": True}

        again = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)
        assert again.committed is False


class TestReconcileDisabled:
    """Tests for reconciling a disabled or missing template."""

    @pytest.mark.asyncio
    async def test_disable_clears_mirrored_entries_in_one_batch(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"A": _entry(60, 120), "B": _entry(200, 260)})
        await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)
        await store.set_merge(
            paths.schedule_entry_path(UID, DATE, "D"), _entry(900, 960, mirrored=False)
        )

        await store.set_merge(paths.template_path(UID, Weekday.FRIDAY), {"enabled": False})
        notified = []
        store.subscribe(paths.schedule_entries_path(UID, DATE), notified.append)
        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert sorted(result.deleted) == ["A", "B"]
        assert result.enabled is False
        assert len(notified) == 1
        assert (await store.get(paths.schedule_path(UID, DATE))).data == {"enabled": False}
        assert list(await _date_entries(store)) == ["D"]

    @pytest.mark.asyncio
    async def test_missing_template_is_disabled(self, store, reconciler):
        result = await reconciler.reconcile_date(UID, Weekday.MONDAY, "2024-01-22")

        assert result.enabled is False
        assert result.writes == 1
        schedule = await store.get(paths.schedule_path(UID, "2024-01-22"))
        assert schedule.data == {"enabled": False}
        assert await _date_entries(store, "2024-01-22") == {}

    @pytest.mark.asyncio
    async def test_non_boolean_enabled_counts_as_disabled(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, "yes", {"A": _entry(60, 120)})

        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert result.enabled is False
        assert await _date_entries(store) == {}


class TestReconcileFailures:
    """Tests for failure handling."""

    @pytest.mark.asyncio
    async def test_invalid_template_entry_mutates_nothing(self, store, reconciler):
        await _template(
            store, Weekday.FRIDAY, True, {"ok": _entry(60, 120), "bad": _entry(600, 600)}
        )

        with pytest.raises(InvalidIntervalError):
            await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert await store.get(paths.schedule_path(UID, DATE)) is None
        assert await _date_entries(store) == {}

    @pytest.mark.asyncio
    async def test_failed_commit_leaves_previous_state(self, store, reconciler):
        await _template(store, Weekday.FRIDAY, True, {"A": _entry(60, 120)})
        await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)
        await store.delete(paths.template_entry_path(UID, Weekday.FRIDAY, "A"))
        await store.set_merge(paths.template_entry_path(UID, Weekday.FRIDAY, "B"), _entry(200, 260))

        error = OperationalError("COMMIT", {}, Exception("database is locked"))
        with patch.object(AsyncSession, "commit", side_effect=error):
            with pytest.raises(StoreUnavailableError):
                await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)

        assert list(await _date_entries(store)) == ["A"]

        result = await reconciler.reconcile_date(UID, Weekday.FRIDAY, DATE)
        assert result.deleted == ["A"]
        assert list(await _date_entries(store)) == ["B"]

    @pytest.mark.asyncio
    async def test_invalid_date_raises(self, reconciler):
        with pytest.raises(ValidationError):
            await reconciler.reconcile_date(UID, Weekday.FRIDAY, "2024-02-30")
