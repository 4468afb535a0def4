"""
Record storage for the Mindspace service.

This module provides the in-memory record store used by the API and the
engines, plus a JSON-file-backed store for production. Writes go through a
single-writer transaction so appending a record, recomputing the aggregates
that depend on it and persisting the result never interleave with another
write.
"""

import asyncio
import logging
import tempfile
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import PersistenceError
from .models import (
    Appointment,
    CamelModel,
    Counselor,
    EmergencyContact,
    Feedback,
    JournalEntry,
    MoodEntry,
    Resource,
)
from .utils import utcnow

logger = logging.getLogger(__name__)


class Database(CamelModel):
    """All record collections, as held in memory and written to disk."""

    mood_entries: list[MoodEntry] = Field(default_factory=list)
    journal_entries: list[JournalEntry] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    counselors: list[Counselor] = Field(default_factory=list)
    appointments: list[Appointment] = Field(default_factory=list)
    feedback: list[Feedback] = Field(default_factory=list)
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)

    def clone(self) -> "Database":
        """
        Copy the collections so the clone can be appended to and have
        records replaced without touching this instance. Records are frozen
        and therefore shared.
        """
        return self.model_copy(
            update={name: list(getattr(self, name)) for name in type(self).model_fields}
        )

    def find(self, collection: str, record_id: str) -> Any | None:
        for record in getattr(self, collection):
            if record.id == record_id:
                return record
        return None

    def replace(self, collection: str, record: BaseModel) -> None:
        """Swap the stored record having the same id for `record`."""
        records = getattr(self, collection)
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                return
        raise KeyError(f"{collection} has no record {record.id!r}")


class RecordStore:
    """
    In-memory record store with serialized writes.

    Readers get the last committed `Database`, which is never mutated after
    commit, so a read is always consistent with the latest completed write.
    Writers get a draft copy inside `transaction()`; the draft replaces the
    committed state only when the block finishes without raising and the
    draft has been persisted.
    """

    def __init__(self, database: Database | None = None) -> None:
        self._database = database or Database()
        self._lock = asyncio.Lock()

    async def read(self) -> Database:
        """
        Get a snapshot of the committed state.

        Returns:
            The current Database; callers must treat it as read-only
        """
        return self._database

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Database, None]:
        """
        Run a write sequence in the store's critical section.

        Yields:
            A draft Database to append to and update
        """
        async with self._lock:
            draft = self._database.clone()
            yield draft
            await self._persist(draft)
            self._database = draft

    async def flush(self) -> None:
        """Persist the committed state."""
        async with self._lock:
            await self._persist(self._database)

    async def _persist(self, database: Database) -> None:
        """Write a database to durable storage. Nothing to do in memory."""


class JsonFileStore(RecordStore):
    """
    Record store snapshotted to a single JSON file.

    Every committed write rewrites the file. Disk I/O runs in a worker thread
    with a bounded timeout so a stalled disk surfaces as a PersistenceError
    instead of hanging the request.
    """

    def __init__(
        self,
        path: Path,
        backup_dir: Path | None = None,
        backup_keep: int = 24,
        io_timeout: float = 5.0,
    ) -> None:
        if backup_keep < 1:
            raise ValueError("backup_keep must be at least 1")
        super().__init__()
        self.path = Path(path)
        self.backup_dir = (
            Path(backup_dir) if backup_dir else self.path.parent / "backups"
        )
        self.backup_keep = backup_keep
        self.io_timeout = io_timeout

    async def load(self, seed: Database | None = None) -> None:
        """
        Load the database file, or start from `seed` when there is none.

        Raises:
            PersistenceError: The file exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.info("No database at %s, creating a new one", self.path)
            async with self._lock:
                self._database = seed.clone() if seed else Database()
                await self._persist(self._database)
            return

        try:
            raw = await self._run_io(self.path.read_text, "utf-8")
            database = Database.model_validate_json(raw)
        except (PydanticValidationError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Corrupt database file {self.path}: {e}") from e

        async with self._lock:
            self._database = database
        logger.info(
            "Database loaded: %d resources, %d counselors, %d mood entries, "
            "%d journal entries, %d appointments",
            len(database.resources),
            len(database.counselors),
            len(database.mood_entries),
            len(database.journal_entries),
            len(database.appointments),
        )

    async def backup(self) -> Path:
        """
        Write a timestamped copy of the committed state and prune old copies.

        Returns:
            Path of the backup file written
        """
        stamp = utcnow().strftime("%Y-%m-%dT%H-%M-%S-%f")
        target = self.backup_dir / f"database-backup-{stamp}.json"
        payload = self._database.model_dump_json(by_alias=True, indent=2)
        await self._run_io(self._write_backup, target, payload)
        logger.info("Database backup created: %s", target)
        return target

    async def run_backups(self, interval: float) -> None:
        """Back up every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.backup()
            except PersistenceError:
                logger.exception("Scheduled backup failed")

    async def _persist(self, database: Database) -> None:
        payload = database.model_dump_json(by_alias=True, indent=2)
        try:
            await self._run_io(self._write_atomic, self.path, payload)
        except PersistenceError:
            if database is not self._database:
                await self._restore_committed()
            raise

    async def _restore_committed(self) -> None:
        """Rewrite the file from the committed state after a failed write."""
        payload = self._database.model_dump_json(by_alias=True, indent=2)
        try:
            await self._run_io(self._write_atomic, self.path, payload)
        except PersistenceError:
            logger.exception("Could not restore %s to the committed state", self.path)

    async def _run_io(self, func: Any, *args: Any) -> Any:
        """
        Run blocking I/O in a worker thread, bounded by `io_timeout`.

        A worker thread cannot be interrupted, so on timeout this still waits
        for it to finish. Callers holding the write lock keep it until the
        disk is quiet again.

        Raises:
            PersistenceError: The I/O timed out or failed
        """
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.wait_for(
                asyncio.shield(worker), timeout=self.io_timeout
            )
        except TimeoutError as e:
            await asyncio.gather(worker, return_exceptions=True)
            raise PersistenceError(
                f"Storage I/O timed out after {self.io_timeout}s"
            ) from e
        except OSError as e:
            raise PersistenceError(f"Storage I/O failed: {e}") from e

    @staticmethod
    def _write_atomic(path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            handle.write(payload)
        tmp_path = Path(handle.name)
        try:
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _write_backup(self, target: Path, payload: str) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(payload, encoding="utf-8")

        backups = sorted(
            self.backup_dir.glob("database-backup-*.json"), reverse=True
        )
        for stale in backups[self.backup_keep :]:
            stale.unlink()
