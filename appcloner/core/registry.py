"""Clone registry — the only component that creates or destroys clones.

The registry wires the ``ArtifactCopier``, a ``MetadataStore`` and the
``DirectoryReconciler`` together and enforces the ordering rules that keep
"record exists" equivalent to "directory with a complete payload exists":

- Creation: directory, then payload, then sidecar, then metadata record.
  Any failure before the commit purges the directory.
- Removal: directory first, then metadata record.  If the directory cannot
  be deleted the record is kept so the clone stays listed and removal can be
  retried.

Clone creation is serialized per source identifier; operations on distinct
sources and distinct clone ids run in parallel.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
from collections.abc import Iterable
from pathlib import Path

from appcloner.core.copier import ArtifactCopier, ProgressCallback
from appcloner.core.eligibility import EligibilityPredicate, allow_all
from appcloner.core.errors import (
    CloneCancelledError,
    ClonerError,
    CloneNotFoundError,
    CopyCancelledError,
    CopyFailedError,
    CopyIOError,
    IneligibleSourceError,
    MetadataStoreError,
    MetadataWriteFailedError,
    PartialRemovalError,
    StorageUnavailableError,
)
from appcloner.core.inventory import SourceInventory
from appcloner.core.metadata_store import MetadataStore
from appcloner.core.reconciler import DirectoryReconciler
from appcloner.models.artifacts import SourceArtifact
from appcloner.models.clones import (
    PAYLOAD_FILENAME,
    CloneRecord,
    make_clone_id,
    millis_to_datetime,
)

logger = logging.getLogger(__name__)


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class CloneRegistry:
    """Creates, lists, renames and removes clones.

    Parameters
    ----------
    storage_root:
        Directory holding one subdirectory per clone.  Created if missing.
    store:
        The metadata backend; the registry depends only on its interface.
    copier:
        Payload copier.  Defaults to an ``ArtifactCopier`` with its default
        buffer size.
    is_eligible:
        Eligibility predicate over a source identifier.  Defaults to
        accepting everything.
    host_identifier:
        The host application's own identifier; cloning it is always refused.
    inventory:
        Source of candidate artifacts for ``list_cloneable_sources``.
    """

    def __init__(
        self,
        storage_root: Path,
        store: MetadataStore,
        *,
        copier: ArtifactCopier | None = None,
        is_eligible: EligibilityPredicate | None = None,
        host_identifier: str = "",
        inventory: SourceInventory | None = None,
    ) -> None:
        self._root = Path(storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._store = store
        self._copier = copier or ArtifactCopier()
        self._is_eligible = is_eligible or allow_all
        self._host_identifier = host_identifier
        self._inventory = inventory

        self._locks_guard = threading.Lock()
        self._source_locks: dict[str, threading.Lock] = {}
        self._last_millis: dict[str, int] = {}

    @property
    def storage_root(self) -> Path:
        return self._root

    @property
    def store(self) -> MetadataStore:
        return self._store

    def _source_lock(self, identifier: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._source_locks.get(identifier)
            if lock is None:
                lock = self._source_locks[identifier] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def check_eligible(self, identifier: str) -> None:
        """Raise ``IneligibleSourceError`` unless *identifier* may be cloned."""
        if not identifier or identifier in (".", "..") or any(
            sep in identifier for sep in ("/", "\\", "\0")
        ):
            raise IneligibleSourceError(
                f"{identifier!r} is not a valid source identifier"
            )
        if self._host_identifier and identifier == self._host_identifier:
            raise IneligibleSourceError(
                f"{identifier} is this application; self-cloning is not allowed"
            )
        if not self._is_eligible(identifier):
            raise IneligibleSourceError(f"{identifier} cannot be cloned")

    def is_cloneable(self, source: SourceArtifact) -> bool:
        """Whether *source* should be offered for cloning."""
        if source.is_protected:
            return False
        try:
            self.check_eligible(source.identifier)
        except IneligibleSourceError:
            return False
        return True

    def list_cloneable_sources(self) -> list[SourceArtifact]:
        """Unprotected, eligible inventory sources sorted by display name."""
        if self._inventory is None:
            raise ClonerError("No source inventory is configured")
        sources = [s for s in self._inventory.list_sources() if self.is_cloneable(s)]
        return sorted(sources, key=lambda s: (s.display_name.casefold(), s.identifier))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _next_clone_id(self, identifier: str) -> tuple[str, int]:
        """Allocate a fresh id; caller holds the per-source lock."""
        millis = max(_now_millis(), self._last_millis.get(identifier, 0) + 1)
        clone_id = make_clone_id(identifier, millis)
        while (self._root / clone_id).exists() or self._store.contains(clone_id):
            millis += 1
            clone_id = make_clone_id(identifier, millis)
        self._last_millis[identifier] = millis
        return clone_id, millis

    def create_clone(
        self,
        source: SourceArtifact,
        display_name: str,
        *,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> CloneRecord:
        """Duplicate *source*'s payload under a new clone id and record it.

        Blocks for the duration of the copy.  Setting *cancel_event* aborts
        the copy at the next chunk boundary.

        Raises
        ------
        IneligibleSourceError
            Self-clone, denylisted or malformed identifier.  Nothing is
            created.
        StorageUnavailableError
            The clone directory could not be created.
        CopyFailedError / CloneCancelledError
            The copy failed or was cancelled; the directory was purged.
        MetadataWriteFailedError
            The record could not be committed; the directory was purged.
        """
        identifier = source.identifier
        self.check_eligible(identifier)

        with self._source_lock(identifier):
            try:
                clone_id, millis = self._next_clone_id(identifier)
            except MetadataStoreError as exc:
                raise MetadataWriteFailedError(
                    f"Metadata store unavailable while allocating a clone id: {exc}",
                    cause=exc,
                ) from exc
            clone_dir = self._root / clone_id

            try:
                clone_dir.mkdir(parents=False, exist_ok=False)
            except OSError as exc:
                raise StorageUnavailableError(
                    f"Cannot create clone directory {clone_dir}: {exc}", cause=exc
                ) from exc

            try:
                size = self._copier.copy(
                    source.payload_path,
                    clone_dir / PAYLOAD_FILENAME,
                    cancel_event=cancel_event,
                    progress=progress,
                )
            except CopyCancelledError as exc:
                self._rollback(clone_dir)
                raise CloneCancelledError(
                    f"Clone of {identifier} cancelled", cause=exc
                ) from exc
            except CopyIOError as exc:
                self._rollback(clone_dir)
                raise CopyFailedError(
                    f"Copying {source.payload_path} failed: {exc}",
                    cause=exc.cause or exc,
                ) from exc
            except BaseException:
                self._rollback(clone_dir)
                raise

            record = CloneRecord(
                clone_id=clone_id,
                source_identifier=identifier,
                display_name=display_name,
                created_at=millis_to_datetime(millis),
                payload_size_bytes=size,
                storage_path=clone_dir,
            )

            try:
                self._write_sidecar(record)
                self._store.put(record)
            except (OSError, MetadataStoreError) as exc:
                self._rollback(clone_dir)
                raise MetadataWriteFailedError(
                    f"Recording clone {clone_id} failed: {exc}", cause=exc
                ) from exc
            except BaseException:
                self._rollback(clone_dir)
                raise

        logger.info(
            "Created clone %s (%s) of %s: %d bytes.",
            clone_id,
            display_name,
            identifier,
            size,
        )
        return record

    @staticmethod
    def _write_sidecar(record: CloneRecord) -> None:
        sidecar = record.sidecar_path
        tmp = sidecar.with_name(f".{sidecar.name}.tmp")
        tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(sidecar)

    @staticmethod
    def _rollback(clone_dir: Path) -> None:
        try:
            shutil.rmtree(clone_dir)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning(
                "Rollback could not remove %s; it is left as an orphan.",
                clone_dir,
                exc_info=True,
            )
        else:
            logger.debug("Rolled back clone directory %s.", clone_dir)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_clones(self) -> list[CloneRecord]:
        """All committed clones.  Never rebuilds from disk on its own."""
        return self._store.list()

    def get_clone(self, clone_id: str) -> CloneRecord:
        """Return the record for *clone_id*; raise ``CloneNotFoundError``."""
        return self._store.get(clone_id)

    # ------------------------------------------------------------------
    # Mutate
    # ------------------------------------------------------------------

    def rename_clone(self, clone_id: str, display_name: str) -> CloneRecord:
        """Change a clone's display name and return the updated record."""
        with self._source_lock_for(clone_id):
            record = self._store.get(clone_id)
            updated = record.model_copy(update={"display_name": display_name})
            try:
                self._write_sidecar(updated)
            except OSError:
                logger.warning(
                    "Could not refresh sidecar for %s.", clone_id, exc_info=True
                )
            self._store.put(updated)
        logger.info("Renamed clone %s to %s.", clone_id, display_name)
        return updated

    def remove_clone(self, clone_id: str) -> None:
        """Delete a clone's directory, then its record.

        Raises
        ------
        CloneNotFoundError
            No record exists; the storage root is untouched.
        PartialRemovalError
            The directory could not be deleted; the record is kept.
        """
        with self._source_lock_for(clone_id):
            record = self._store.get(clone_id)
            clone_dir = record.storage_path
            if clone_dir.name != clone_id:
                raise PartialRemovalError(
                    f"Record {clone_id} points at {clone_dir}; refusing to delete it"
                )
            try:
                shutil.rmtree(clone_dir)
            except FileNotFoundError:
                logger.warning(
                    "Clone directory %s was already gone; dropping its record.",
                    clone_dir,
                )
            except OSError as exc:
                raise PartialRemovalError(
                    f"Could not delete {clone_dir}; clone {clone_id} is kept: {exc}",
                    cause=exc,
                ) from exc
            self._store.delete(clone_id)
        logger.info("Removed clone %s.", clone_id)

    def _source_lock_for(self, clone_id: str) -> threading.Lock:
        # Clones of one source share a lock, so removal never overlaps the
        # id allocation for that source.
        identifier, sep, _ = clone_id.rpartition("_")
        return self._source_lock(identifier if sep else clone_id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconciler(self) -> DirectoryReconciler:
        resolver = None
        if self._inventory is not None:
            resolver = self._display_name_for
        return DirectoryReconciler(self._root, name_resolver=resolver)

    def _display_name_for(self, identifier: str) -> str | None:
        for source in self._inventory.list_sources():
            if source.identifier == identifier:
                return source.display_name
        return None

    def reconcile(self) -> list[CloneRecord]:
        """Records synthesized from disk.  Read-only."""
        return self.reconciler().scan()

    def rebuild_index(self) -> list[CloneRecord]:
        """Adopt every valid on-disk clone that has no record.

        Each candidate is re-checked under its source lock, so a clone whose
        creation is still in flight is either committed by its creator or
        rolled back before it is considered.

        Returns the records that were added to the store.
        """
        known = {r.clone_id for r in self._store.list()}
        reconciler = self.reconciler()
        adopted: list[CloneRecord] = []
        for found in reconciler.scan():
            if found.clone_id in known:
                continue
            with self._source_lock_for(found.clone_id):
                if self._store.contains(found.clone_id):
                    continue
                record = reconciler.inspect(found.storage_path)
                if record is None:
                    continue
                self._store.put(record)
            adopted.append(record)
            logger.info("Adopted orphan clone directory %s.", record.clone_id)
        return adopted

    def find_orphans(self) -> list[Path]:
        """Clone directories with no metadata record."""
        known = (r.clone_id for r in self._store.list())
        return self.reconciler().orphans(known)

    def purge_orphans(self, orphans: Iterable[Path] | None = None) -> list[Path]:
        """Delete orphan directories and return the ones removed.

        Directories that gained a record since they were found are skipped.
        """
        candidates = list(self.find_orphans() if orphans is None else orphans)
        removed: list[Path] = []
        for path in candidates:
            path = Path(path)
            if path.resolve().parent != self._root:
                logger.warning("Not purging %s: outside %s.", path, self._root)
                continue
            with self._source_lock_for(path.name):
                if self._store.contains(path.name):
                    continue
                try:
                    shutil.rmtree(path)
                except FileNotFoundError:
                    continue
                except OSError:
                    logger.warning("Could not purge orphan %s.", path, exc_info=True)
                    continue
            removed.append(path)
            logger.info("Purged orphan clone directory %s.", path)
        return removed
