"""Directory reconciler — rebuilds clone records by scanning the storage root.

Used when the metadata store is stale, absent, or being rebuilt.  Scanning
is read-only: directories without a complete payload are skipped, never
deleted.  Removing orphans is a separate, explicit registry operation.

Identity resolution per directory, in order:

1. The ``clone.json`` sidecar, when it parses and names this directory.
   A sidecar whose size disagrees with the payload skips the directory.
2. The directory name, split on its last ``_`` into ``identifier`` and
   creation milliseconds.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import ValidationError

from appcloner.models.clones import (
    PAYLOAD_FILENAME,
    SIDECAR_FILENAME,
    CloneRecord,
    millis_to_datetime,
    split_clone_id,
)

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], str | None]


class DirectoryReconciler:
    """Synthesizes ``CloneRecord`` values from clone directories on disk.

    Parameters
    ----------
    storage_root:
        The directory holding one subdirectory per clone.
    name_resolver:
        Optional lookup from source identifier to a human-readable name,
        used to synthesize display names when no sidecar is present.
    """

    def __init__(
        self,
        storage_root: Path,
        name_resolver: NameResolver | None = None,
    ) -> None:
        self._root = Path(storage_root)
        self._name_resolver = name_resolver

    @property
    def storage_root(self) -> Path:
        return self._root

    def _clone_dirs(self) -> list[Path]:
        if not self._root.is_dir():
            return []
        return sorted(
            p for p in self._root.iterdir()
            if p.is_dir() and not p.name.startswith(".")
        )

    def scan(self) -> list[CloneRecord]:
        """Return a record for every clone directory holding a payload."""
        records: list[CloneRecord] = []
        for clone_dir in self._clone_dirs():
            record = self.inspect(clone_dir)
            if record is not None:
                records.append(record)
        logger.debug("Reconciled %d clone(s) under %s.", len(records), self._root)
        return records

    def inspect(self, clone_dir: Path) -> CloneRecord | None:
        """Synthesize the record for one directory, or ``None`` if invalid."""
        payload = clone_dir / PAYLOAD_FILENAME
        try:
            if not payload.is_file():
                logger.debug("Skipping %s: no payload.", clone_dir)
                return None
            size = payload.stat().st_size
        except OSError:
            # Removed while scanning.
            logger.debug("Skipping %s: payload vanished.", clone_dir)
            return None

        record = self._from_sidecar(clone_dir)
        if record is not None:
            if record.payload_size_bytes != size:
                # Truncated or replaced payload, not a complete clone.
                logger.warning(
                    "Skipping %s: payload is %d bytes, sidecar records %d.",
                    clone_dir,
                    size,
                    record.payload_size_bytes,
                )
                return None
            return record

        parts = split_clone_id(clone_dir.name)
        if parts is None:
            logger.warning("Skipping %s: unrecognised clone directory name.", clone_dir)
            return None
        identifier, millis = parts
        return CloneRecord(
            clone_id=clone_dir.name,
            source_identifier=identifier,
            display_name=f"Clone of {self._resolve_name(identifier)}",
            created_at=millis_to_datetime(millis),
            payload_size_bytes=size,
            storage_path=clone_dir.resolve(),
        )

    def _from_sidecar(self, clone_dir: Path) -> CloneRecord | None:
        sidecar = clone_dir / SIDECAR_FILENAME
        if not sidecar.is_file():
            return None
        try:
            stored = CloneRecord(**json.loads(sidecar.read_text(encoding="utf-8")))
        except (OSError, ValueError, TypeError, ValidationError):
            logger.warning("Ignoring unreadable sidecar %s.", sidecar)
            return None
        if stored.clone_id != clone_dir.name:
            logger.warning(
                "Ignoring sidecar %s: it names clone %s.", sidecar, stored.clone_id
            )
            return None
        return stored.model_copy(update={"storage_path": clone_dir.resolve()})

    def _resolve_name(self, identifier: str) -> str:
        if self._name_resolver is None:
            return identifier
        try:
            name = self._name_resolver(identifier)
        except Exception:
            logger.debug("Name lookup failed for %s.", identifier, exc_info=True)
            return identifier
        return name or identifier

    def orphans(self, known_ids: Iterable[str]) -> list[Path]:
        """Directories under the root with no id in *known_ids*."""
        known = set(known_ids)
        return [p for p in self._clone_dirs() if p.name not in known]
