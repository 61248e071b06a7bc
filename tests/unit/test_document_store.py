"""
Unit tests for the SQLite document store.
"""

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from routine_sync.core.exceptions import StoreUnavailableError, ValidationError


def _disk_error():
    return OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestReadsAndWrites:
    """Tests for point reads, merge writes and listing."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("users/u1/dateSchedule/2024-01-20") is None

    @pytest.mark.asyncio
    async def test_set_merge_creates_then_merges_fields(self, store):
        path = "users/u1/dateSchedule/2024-01-20"
        await store.set_merge(path, {"enabled": True, "note": "keep"})
        await store.set_merge(path, {"enabled": False})

        doc = await store.get(path)
        assert doc.id == "2024-01-20"
        assert doc.path == path
        assert doc.data == {"enabled": False, "note": "keep"}

    @pytest.mark.asyncio
    async def test_delete_is_noop_when_absent(self, store):
        await store.delete("users/u1/dateSchedule/2024-01-20")
        assert await store.get("users/u1/dateSchedule/2024-01-20") is None

    @pytest.mark.asyncio
    async def test_list_collection_only_direct_children(self, store):
        await store.set_merge("users/u1/routineTemplate/monday/entries/a", {"start": 60})
        await store.set_merge("users/u1/routineTemplate/monday/entries/b", {"start": 30})
        await store.set_merge("users/u1/routineTemplate/tuesday/entries/c", {"start": 0})

        docs = await store.list_collection("users/u1/routineTemplate/monday/entries")
        assert [d.id for d in docs] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_collection_order_by_field(self, store):
        collection = "users/u1/routineTemplate/monday/entries"
        await store.set_merge(f"{collection}/a", {"start": 600})
        await store.set_merge(f"{collection}/b", {"start": 60})
        await store.set_merge(f"{collection}/c", {})

        docs = await store.list_collection(collection, order_by="start")
        assert [d.id for d in docs] == ["b", "a", "c"]

    @pytest.mark.asyncio
    async def test_collection_path_rejected_for_document_write(self, store):
        with pytest.raises(ValidationError):
            await store.set_merge("users/u1/dateSchedule", {"enabled": True})


class TestWriteBatch:
    """Tests for atomic write batches."""

    @pytest.mark.asyncio
    async def test_batch_applies_all_operations(self, store):
        await store.set_merge("users/u1/dateSchedule/d/entries/old", {"start": 0})

        batch = store.batch()
        batch.set("users/u1/dateSchedule/d", {"enabled": True})
        batch.set("users/u1/dateSchedule/d/entries/new", {"start": 60, "end": 120})
        batch.delete("users/u1/dateSchedule/d/entries/old")
        assert batch.size == 3
        await batch.commit()

        entries = await store.list_collection("users/u1/dateSchedule/d/entries")
        assert [e.id for e in entries] == ["new"]
        assert (await store.get("users/u1/dateSchedule/d")).data == {"enabled": True}

    @pytest.mark.asyncio
    async def test_later_operations_on_same_path_win(self, store):
        path = "users/u1/dateSchedule/d/entries/x"
        batch = store.batch()
        batch.set(path, {"start": 0, "end": 10})
        batch.delete(path)
        batch.set(path, {"start": 5})
        await batch.commit()

        assert (await store.get(path)).data == {"start": 5}

    @pytest.mark.asyncio
    async def test_set_without_merge_replaces_document(self, store):
        path = "users/u1/dateSchedule/d"
        await store.set_merge(path, {"enabled": True, "note": "x"})
        await store.batch().set(path, {"enabled": False}, merge=False).commit()

        assert (await store.get(path)).data == {"enabled": False}

    @pytest.mark.asyncio
    async def test_commit_twice_raises(self, store):
        batch = store.batch()
        await batch.commit()
        with pytest.raises(ValidationError):
            await batch.commit()

    @pytest.mark.asyncio
    async def test_failed_commit_leaves_no_partial_state(self, store):
        await store.set_merge("users/u1/dateSchedule/d/entries/keep", {"start": 0})

        batch = store.batch()
        batch.set("users/u1/dateSchedule/d", {"enabled": True})
        batch.delete("users/u1/dateSchedule/d/entries/keep")
        with patch.object(AsyncSession, "commit", side_effect=_disk_error()):
            with pytest.raises(StoreUnavailableError):
                await batch.commit()

        assert await store.get("users/u1/dateSchedule/d") is None
        assert await store.get("users/u1/dateSchedule/d/entries/keep") is not None

    @pytest.mark.asyncio
    async def test_failed_read_raises_store_unavailable(self, store):
        with patch.object(AsyncSession, "get", side_effect=_disk_error()):
            with pytest.raises(StoreUnavailableError):
                await store.get("users/u1/dateSchedule/d")


    @pytest.mark.asyncio
    async def test_concurrent_merges_keep_every_field(self, store):
        path = "users/u1/dateSchedule/d"
        await store.set_merge(path, {"x": 0})

        await asyncio.gather(
            store.set_merge(path, {"a": 1}),
            store.set_merge(path, {"b": 2}),
            store.set_merge(path, {"c": 3}),
        )

        assert (await store.get(path)).data == {"x": 0, "a": 1, "b": 2, "c": 3}

    @pytest.mark.asyncio
    async def test_concurrent_batches_creating_one_document(self, store):
        path = "users/u1/dateSchedule/d/entries/new"

        await asyncio.gather(
            *(store.batch().set(path, {f"f{n}": n}).commit() for n in range(4))
        )

        assert (await store.get(path)).data == {"f0": 0, "f1": 1, "f2": 2, "f3": 3}


class TestSubscriptions:
    """Tests for change subscriptions."""

    @pytest.mark.asyncio
    async def test_collection_subscriber_sees_child_writes(self, store):
        seen = []
        store.subscribe("users/u1/routineTemplate/monday/entries", seen.append)

        await store.set_merge("users/u1/routineTemplate/monday/entries/a", {"start": 0})
        await store.set_merge("users/u1/routineTemplate/tuesday/entries/a", {"start": 0})

        assert seen == ["users/u1/routineTemplate/monday/entries"]

    @pytest.mark.asyncio
    async def test_document_subscriber_ignores_subcollections(self, store):
        seen = []
        store.subscribe("users/u1/routineTemplate/monday", seen.append)

        await store.set_merge("users/u1/routineTemplate/monday/entries/a", {"start": 0})
        assert seen == []

        await store.set_merge("users/u1/routineTemplate/monday", {"enabled": True})
        assert seen == ["users/u1/routineTemplate/monday"]

    @pytest.mark.asyncio
    async def test_one_notification_per_batch(self, store):
        seen = []
        store.subscribe("users/u1/dateSchedule/d/entries", seen.append)

        batch = store.batch()
        batch.set("users/u1/dateSchedule/d/entries/a", {"start": 0})
        batch.set("users/u1/dateSchedule/d/entries/b", {"start": 1})
        await batch.commit()

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_notifications(self, store):
        seen = []
        unsubscribe = store.subscribe("users/u1/routineTemplate/monday", seen.append)
        assert store.subscription_count == 1

        unsubscribe()
        unsubscribe()
        await store.set_merge("users/u1/routineTemplate/monday", {"enabled": True})

        assert seen == []
        assert store.subscription_count == 0

    @pytest.mark.asyncio
    async def test_failed_commit_does_not_notify(self, store):
        seen = []
        store.subscribe("users/u1/routineTemplate/monday", seen.append)

        with patch.object(AsyncSession, "commit", side_effect=_disk_error()):
            with pytest.raises(StoreUnavailableError):
                await store.set_merge("users/u1/routineTemplate/monday", {"enabled": True})

        assert seen == []

    @pytest.mark.asyncio
    async def test_listener_error_goes_to_error_callback(self, store):
        errors = []

        def explode(path):
            raise RuntimeError("boom")

        store.subscribe("users/u1/routineTemplate/monday", explode, errors.append)
        await store.set_merge("users/u1/routineTemplate/monday", {"enabled": True})

        assert len(errors) == 1
        assert str(errors[0]) == "boom"
