"""appcloner data models — all Pydantic v2, all frozen (immutable)."""

from appcloner.models.artifacts import SourceArtifact
from appcloner.models.clones import (
    CLONE_ID_SEPARATOR,
    PAYLOAD_FILENAME,
    SIDECAR_FILENAME,
    CloneRecord,
    make_clone_id,
    millis_to_datetime,
    split_clone_id,
)

__all__ = [
    # artifacts
    "SourceArtifact",
    # clones
    "CloneRecord",
    "CLONE_ID_SEPARATOR",
    "PAYLOAD_FILENAME",
    "SIDECAR_FILENAME",
    "make_clone_id",
    "split_clone_id",
    "millis_to_datetime",
]
