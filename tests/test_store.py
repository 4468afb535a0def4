"""
Tests for the RecordStore and JsonFileStore implementations.

These tests verify snapshot reads, serialized write transactions, rollback on
failure and JSON file persistence including backups and I/O timeouts.
"""

import asyncio
import json
import time

import pytest

from mindspace.errors import PersistenceError
from mindspace.seed import default_catalogue
from mindspace.store import Database, JsonFileStore, RecordStore


class TestRecordStore:
    """Test suite for in-memory RecordStore functionality."""

    def setup_method(self):
        """Set up a fresh RecordStore for each test."""
        self.store = RecordStore()

    async def test_initial_state(self):
        """Test that a new store starts with empty collections."""
        database = await self.store.read()
        assert database.mood_entries == []
        assert database.resources == []

    async def test_transaction_commits(self, make_mood):
        """Test that appends inside a transaction become visible to readers."""
        async with self.store.transaction() as draft:
            draft.mood_entries.append(make_mood("m1", 4))

        database = await self.store.read()
        assert [entry.id for entry in database.mood_entries] == ["m1"]

    async def test_snapshot_unchanged_by_later_writes(self, make_mood):
        """Test that a snapshot taken before a write does not see it."""
        before = await self.store.read()

        async with self.store.transaction() as draft:
            draft.mood_entries.append(make_mood("m1", 4))

        assert before.mood_entries == []
        assert len((await self.store.read()).mood_entries) == 1

    async def test_failed_transaction_is_discarded(self, make_mood):
        """Test that an exception inside the transaction rolls the draft back."""
        with pytest.raises(RuntimeError):
            async with self.store.transaction() as draft:
                draft.mood_entries.append(make_mood("m1", 4))
                raise RuntimeError("recompute failed")

        database = await self.store.read()
        assert database.mood_entries == []

    async def test_writes_do_not_interleave(self, make_mood):
        """Test that concurrent write sequences run one after another."""
        events: list[str] = []

        async def writer(name: str) -> None:
            async with self.store.transaction() as draft:
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                draft.mood_entries.append(make_mood(name, 3))
                events.append(f"{name}-end")

        await asyncio.gather(writer("a"), writer("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )
        database = await self.store.read()
        assert {entry.id for entry in database.mood_entries} == {"a", "b"}

    async def test_replace_swaps_record(self, make_resource):
        """Test that replace() swaps a record by id in the draft."""
        store = RecordStore(Database(resources=[make_resource("r1", views=0)]))

        async with store.transaction() as draft:
            resource = draft.find("resources", "r1")
            draft.replace("resources", resource.model_copy(update={"views": 1}))

        database = await store.read()
        assert database.find("resources", "r1").views == 1
        assert database.find("resources", "missing") is None


class TestJsonFileStore:
    """Test suite for the JSON-file-backed store."""

    async def test_missing_file_starts_from_seed(self, tmp_path):
        """Test that loading without a file writes the seed catalogue."""
        path = tmp_path / "database.json"
        store = JsonFileStore(path)

        await store.load(seed=default_catalogue())

        database = await store.read()
        assert len(database.resources) == 2
        assert len(database.counselors) == 2
        assert path.exists()

    async def test_round_trip_through_file(self, tmp_path, make_mood):
        """Test that committed writes are persisted and reloaded."""
        path = tmp_path / "database.json"
        store = JsonFileStore(path)
        await store.load()

        async with store.transaction() as draft:
            draft.mood_entries.append(make_mood("m1", 5, mood="excellent"))

        raw = json.loads(path.read_text())
        assert raw["moodEntries"][0]["userId"] == "student-1"

        reloaded = JsonFileStore(path)
        await reloaded.load()
        database = await reloaded.read()
        assert database.mood_entries[0].mood == "excellent"

    async def test_corrupt_file_raises(self, tmp_path):
        """Test that an unparseable database file is reported."""
        path = tmp_path / "database.json"
        path.write_text("{not json")

        with pytest.raises(PersistenceError):
            await JsonFileStore(path).load()

    async def test_write_timeout_raises_and_keeps_state(self, tmp_path, make_mood):
        """Test that a stalled write surfaces as PersistenceError."""
        store = JsonFileStore(tmp_path / "database.json", io_timeout=0.05)
        await store.load()

        def stalled_write(path, payload):
            time.sleep(0.3)

        store._write_atomic = stalled_write

        with pytest.raises(PersistenceError):
            async with store.transaction() as draft:
                draft.mood_entries.append(make_mood("m1", 2))

        database = await store.read()
        assert database.mood_entries == []

    async def test_backup_keeps_newest(self, tmp_path):
        """Test that backups beyond the retention count are pruned."""
        backup_dir = tmp_path / "backups"
        store = JsonFileStore(
            tmp_path / "database.json", backup_dir=backup_dir, backup_keep=2
        )
        await store.load()

        written = [await store.backup() for _ in range(3)]

        remaining = sorted(backup_dir.glob("database-backup-*.json"))
        assert len(remaining) == 2
        assert written[0] not in remaining
        assert written[-1] in remaining

    async def test_timed_out_write_cannot_overwrite_later_commit(
        self, tmp_path, make_mood
    ):
        """Test that a slow rejected write never lands over a later commit."""
        path = tmp_path / "database.json"
        store = JsonFileStore(path, io_timeout=0.05)
        await store.load()
        calls = []

        def slow_first_write(target, payload):
            calls.append(target)
            if len(calls) == 1:
                time.sleep(0.3)
            JsonFileStore._write_atomic(target, payload)

        store._write_atomic = slow_first_write

        with pytest.raises(PersistenceError):
            async with store.transaction() as draft:
                draft.mood_entries.append(make_mood("failed", 2))

        reloaded = JsonFileStore(path)
        await reloaded.load()
        assert (await reloaded.read()).mood_entries == []

        async with store.transaction() as draft:
            draft.mood_entries.append(make_mood("acked", 4))
        await asyncio.sleep(0.3)

        reloaded = JsonFileStore(path)
        await reloaded.load()
        database = await reloaded.read()
        assert [entry.id for entry in database.mood_entries] == ["acked"]
        assert list(tmp_path.glob("*.tmp")) == []

    async def test_undecodable_file_raises(self, tmp_path):
        """Test that a database file that is not UTF-8 is reported."""
        path = tmp_path / "database.json"
        path.write_bytes(b'{"moodEntries": ["\xff"]}')

        with pytest.raises(PersistenceError):
            await JsonFileStore(path).load()

    def test_backup_retention_must_keep_one(self, tmp_path):
        """Test that a store refuses to prune every backup it writes."""
        with pytest.raises(ValueError):
            JsonFileStore(tmp_path / "database.json", backup_keep=0)
