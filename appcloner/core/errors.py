"""Error taxonomy for the clone core.

Every error carries a ``kind`` and, where one exists, the underlying
``cause`` so callers can decide between retry and abort.  None of them is
fatal to the process; the registry rolls back what it can before raising.
"""

from __future__ import annotations

from enum import Enum


class CreationFailureKind(str, Enum):
    """Why a clone could not be created."""

    INELIGIBLE = "ineligible"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    COPY_FAILED = "copy_failed"
    METADATA_WRITE_FAILED = "metadata_write_failed"
    CANCELLED = "cancelled"


class ClonerError(RuntimeError):
    """Base class for every fault raised by the clone core."""

    kind: str = "error"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# ---------------------------------------------------------------------------
# Copier and store faults
# ---------------------------------------------------------------------------


class CopyIOError(ClonerError):
    """Raised when the artifact copier cannot complete a copy."""

    kind = "io_failure"


class CopyCancelledError(CopyIOError):
    """Raised when the caller cancels a copy between chunks."""

    kind = "cancelled"


class MetadataStoreError(ClonerError):
    """Raised when the metadata store cannot persist a change."""

    kind = "metadata_store"


# ---------------------------------------------------------------------------
# Registry faults
# ---------------------------------------------------------------------------


class CloneCreationError(ClonerError):
    """Raised when ``create_clone`` fails.  ``kind`` names the failure."""

    kind: CreationFailureKind


class IneligibleSourceError(CloneCreationError):
    """Policy rejection: reported to the user, never retried."""

    kind = CreationFailureKind.INELIGIBLE


class StorageUnavailableError(CloneCreationError):
    """The per-clone directory could not be provisioned."""

    kind = CreationFailureKind.STORAGE_UNAVAILABLE


class CopyFailedError(CloneCreationError):
    """The payload copy failed; the clone directory has been purged."""

    kind = CreationFailureKind.COPY_FAILED


class MetadataWriteFailedError(CloneCreationError):
    """The record could not be committed; the clone directory has been purged."""

    kind = CreationFailureKind.METADATA_WRITE_FAILED


class CloneCancelledError(CloneCreationError):
    """The copy was cancelled; the clone directory has been purged."""

    kind = CreationFailureKind.CANCELLED


class CloneNotFoundError(ClonerError, KeyError):
    """The requested clone id has no record in the metadata store."""

    kind = "not_found"

    def __init__(self, clone_id: str) -> None:
        super().__init__(f"Clone not found: {clone_id}")
        self.clone_id = clone_id

    def __str__(self) -> str:
        return self.args[0]


class PartialRemovalError(ClonerError):
    """The clone directory could not be deleted; the record was kept."""

    kind = "partial_removal"
