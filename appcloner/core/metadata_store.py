"""Metadata store — durable mapping from clone id to ``CloneRecord``.

The store is the single source of truth for which clones exist.  The
registry depends only on the ``MetadataStore`` interface; three conforming
backends are provided:

- ``InMemoryMetadataStore``: volatile dict, for tests.
- ``SqliteMetadataStore``: one table, WAL journal mode (default).
- ``JsonMetadataStore``: one JSON document, replaced atomically on write.

Every backend guards each operation with one global lock, so no reader
ever observes a partially written record.  A corrupted or absent backing
medium makes ``list()`` return an empty sequence instead of raising; the
caller is expected to reconcile from disk.
"""

from __future__ import annotations

import abc
import json
import logging
import os
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from appcloner.core.errors import CloneNotFoundError, MetadataStoreError
from appcloner.models.clones import CloneRecord

logger = logging.getLogger(__name__)


def _sort_key(record: CloneRecord) -> tuple[datetime, str]:
    return (record.created_at, record.clone_id)


class MetadataStore(abc.ABC):
    """Interface every metadata backend implements."""

    @abc.abstractmethod
    def put(self, record: CloneRecord) -> None:
        """Insert or replace the record keyed by ``record.clone_id``."""

    @abc.abstractmethod
    def get(self, clone_id: str) -> CloneRecord:
        """Return the record for *clone_id*; raise ``CloneNotFoundError``."""

    @abc.abstractmethod
    def list(self) -> list[CloneRecord]:
        """Return all records ordered by ``created_at`` then ``clone_id``."""

    @abc.abstractmethod
    def delete(self, clone_id: str) -> None:
        """Remove the record for *clone_id*; raise ``CloneNotFoundError``."""

    def contains(self, clone_id: str) -> bool:
        """Whether a record exists for *clone_id*."""
        try:
            self.get(clone_id)
        except CloneNotFoundError:
            return False
        return True


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryMetadataStore(MetadataStore):
    """Volatile store backed by a dict."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, CloneRecord] = {}

    def put(self, record: CloneRecord) -> None:
        with self._lock:
            self._records[record.clone_id] = record

    def get(self, clone_id: str) -> CloneRecord:
        with self._lock:
            record = self._records.get(clone_id)
        if record is None:
            raise CloneNotFoundError(clone_id)
        return record

    def list(self) -> list[CloneRecord]:
        with self._lock:
            return sorted(self._records.values(), key=_sort_key)

    def delete(self, clone_id: str) -> None:
        with self._lock:
            if self._records.pop(clone_id, None) is None:
                raise CloneNotFoundError(clone_id)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_CREATE_CLONES = """
CREATE TABLE IF NOT EXISTS clone_records (
    clone_id            TEXT PRIMARY KEY,
    source_identifier   TEXT NOT NULL,
    display_name        TEXT NOT NULL,
    created_at          TEXT NOT NULL,
    payload_size_bytes  INTEGER NOT NULL,
    storage_path        TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_SOURCE = """
CREATE INDEX IF NOT EXISTS idx_source ON clone_records(source_identifier);
"""

_COLUMNS = (
    "clone_id, source_identifier, display_name, created_at, "
    "payload_size_bytes, storage_path"
)


class SqliteMetadataStore(MetadataStore):
    """Durable store backed by an embedded SQLite table.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.RLock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        try:
            with self._lock:
                conn = self._connect()
                try:
                    with conn:
                        conn.execute(_CREATE_CLONES)
                        conn.execute(_CREATE_IDX_SOURCE)
                finally:
                    conn.close()
        except sqlite3.DatabaseError:
            # list() degrades to empty; writes will surface the fault.
            logger.warning(
                "Clone metadata database at %s is unreadable.",
                self._db_path,
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, record: CloneRecord) -> None:
        try:
            with self._lock:
                conn = self._connect()
                try:
                    with conn:
                        conn.execute(_CREATE_CLONES)
                        conn.execute(
                            f"INSERT OR REPLACE INTO clone_records ({_COLUMNS}) "
                            "VALUES (?, ?, ?, ?, ?, ?)",
                            (
                                record.clone_id,
                                record.source_identifier,
                                record.display_name,
                                record.created_at.isoformat(),
                                record.payload_size_bytes,
                                str(record.storage_path),
                            ),
                        )
                finally:
                    conn.close()
        except sqlite3.Error as exc:
            raise MetadataStoreError(
                f"Could not write clone record {record.clone_id}: {exc}",
                cause=exc,
            ) from exc
        logger.debug("Stored clone record %s in %s.", record.clone_id, self._db_path)

    def delete(self, clone_id: str) -> None:
        try:
            with self._lock:
                conn = self._connect()
                try:
                    with conn:
                        cursor = conn.execute(
                            "DELETE FROM clone_records WHERE clone_id = ?",
                            (clone_id,),
                        )
                        deleted = cursor.rowcount
                finally:
                    conn.close()
        except sqlite3.Error as exc:
            raise MetadataStoreError(
                f"Could not delete clone record {clone_id}: {exc}", cause=exc
            ) from exc
        if deleted == 0:
            raise CloneNotFoundError(clone_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, clone_id: str) -> CloneRecord:
        try:
            with self._lock:
                conn = self._connect()
                try:
                    row = conn.execute(
                        f"SELECT {_COLUMNS} FROM clone_records WHERE clone_id = ?",
                        (clone_id,),
                    ).fetchone()
                finally:
                    conn.close()
        except sqlite3.Error as exc:
            raise MetadataStoreError(
                f"Could not read clone record {clone_id}: {exc}", cause=exc
            ) from exc
        if row is None:
            raise CloneNotFoundError(clone_id)
        return self._row_to_record(row)

    def list(self) -> list[CloneRecord]:
        if not self._db_path.exists():
            return []
        try:
            with self._lock:
                conn = self._connect()
                try:
                    rows = conn.execute(
                        f"SELECT {_COLUMNS} FROM clone_records"
                    ).fetchall()
                finally:
                    conn.close()
            records = [self._row_to_record(row) for row in rows]
        except (sqlite3.Error, ValueError):
            logger.warning(
                "Clone metadata at %s is unreadable; listing nothing.",
                self._db_path,
                exc_info=True,
            )
            return []
        return sorted(records, key=_sort_key)

    @staticmethod
    def _row_to_record(row: tuple) -> CloneRecord:
        """Convert a SQLite row tuple to a CloneRecord."""
        (
            clone_id,
            source_identifier,
            display_name,
            created_at,
            payload_size_bytes,
            storage_path,
        ) = row
        return CloneRecord(
            clone_id=clone_id,
            source_identifier=source_identifier,
            display_name=display_name,
            created_at=created_at,
            payload_size_bytes=payload_size_bytes,
            storage_path=Path(storage_path),
        )


# ---------------------------------------------------------------------------
# JSON document
# ---------------------------------------------------------------------------


class JsonMetadataStore(MetadataStore):
    """Durable store backed by a single JSON document.

    The document is re-read on every operation and rewritten through a
    temporary file that is ``os.replace``d into place, so a crash mid-write
    leaves the previous document intact.

    Layout::

        {
          "<clone_id>": {<CloneRecord fields>},
          ...
        }
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, CloneRecord]:
        if not self._path.exists():
            return {}
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Expected a JSON object in {self._path}")
        records: dict[str, CloneRecord] = {}
        for clone_id, data in raw.items():
            if not isinstance(data, dict):
                raise ValueError(f"Entry {clone_id!r} in {self._path} is not an object")
            records[clone_id] = CloneRecord(**data)
        return records

    def _read_for_write(self) -> dict[str, CloneRecord]:
        try:
            return self._read()
        except (OSError, ValueError, TypeError) as exc:
            raise MetadataStoreError(
                f"Clone metadata at {self._path} is unreadable: {exc}", cause=exc
            ) from exc

    def _write(self, records: dict[str, CloneRecord]) -> None:
        data = {
            clone_id: json.loads(record.model_dump_json())
            for clone_id, record in records.items()
        }
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise MetadataStoreError(
                f"Could not write clone metadata to {self._path}: {exc}", cause=exc
            ) from exc
        logger.debug("Persisted %d clone record(s) to %s.", len(records), self._path)

    def put(self, record: CloneRecord) -> None:
        with self._lock:
            records = self._read_for_write()
            records[record.clone_id] = record
            self._write(records)

    def get(self, clone_id: str) -> CloneRecord:
        with self._lock:
            records = self._read_for_write()
        if clone_id not in records:
            raise CloneNotFoundError(clone_id)
        return records[clone_id]

    def list(self) -> list[CloneRecord]:
        with self._lock:
            try:
                records = self._read()
            except (OSError, ValueError, TypeError):
                logger.warning(
                    "Clone metadata at %s is unreadable; listing nothing.",
                    self._path,
                    exc_info=True,
                )
                return []
        return sorted(records.values(), key=_sort_key)

    def delete(self, clone_id: str) -> None:
        with self._lock:
            records = self._read_for_write()
            if records.pop(clone_id, None) is None:
                raise CloneNotFoundError(clone_id)
            self._write(records)
