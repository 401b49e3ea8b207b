"""Clone record model — the persisted metadata describing one clone.

A record exists in the metadata store if and only if its ``storage_path``
directory exists and holds a complete payload.  Records are immutable;
renaming produces a new record via ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

PAYLOAD_FILENAME = "payload"
SIDECAR_FILENAME = "clone.json"
CLONE_ID_SEPARATOR = "_"


class CloneRecord(BaseModel):
    """Metadata for one clone; the payload bytes live under ``storage_path``."""

    model_config = ConfigDict(frozen=True)

    clone_id: str  # "<source_identifier>_<creation millis>"
    source_identifier: str  # not enforced live; the source may be uninstalled
    display_name: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    payload_size_bytes: int = Field(ge=0)
    storage_path: Path  # absolute, owned exclusively by this record

    @property
    def payload_path(self) -> Path:
        """Path to the single payload file inside the clone directory."""
        return self.storage_path / PAYLOAD_FILENAME

    @property
    def sidecar_path(self) -> Path:
        """Path to the identity sidecar written next to the payload."""
        return self.storage_path / SIDECAR_FILENAME


def make_clone_id(source_identifier: str, created_millis: int) -> str:
    """Build the directory-safe clone id ``<identifier>_<millis>``."""
    return f"{source_identifier}{CLONE_ID_SEPARATOR}{created_millis}"


def split_clone_id(clone_id: str) -> tuple[str, int] | None:
    """Decode ``<identifier>_<millis>`` into its parts, or ``None``.

    Splits on the *last* separator so identifiers that themselves contain
    ``_`` still decode correctly.
    """
    identifier, sep, millis = clone_id.rpartition(CLONE_ID_SEPARATOR)
    if not sep or not identifier or not millis.isdigit():
        return None
    return identifier, int(millis)


def millis_to_datetime(millis: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    seconds, remainder = divmod(millis, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(
        milliseconds=remainder
    )
