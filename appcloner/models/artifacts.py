"""Source artifact model — an inventory entry that may be cloned.

Produced by the host inventory collaborator.  The clone core only reads it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class SourceArtifact(BaseModel):
    """An installed application whose payload can be duplicated.

    The ``identifier`` is unique and stable across inventory reads, usually a
    reverse-domain name such as ``com.example.app``.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    display_name: str
    version_label: str = ""
    is_protected: bool = False  # system / protected artifacts are never offered
    payload_path: Path
