"""Host inventory adapters — what artifacts exist and where their payloads live.

Enumerating installed applications belongs to the host; the clone core only
consumes ``SourceArtifact`` values through the ``SourceInventory`` protocol.
Two adapters are provided: a fixed in-process list and a JSON manifest file
that a host-side exporter keeps up to date.

Manifest format::

    [
      {
        "identifier": "com.example.app",
        "display_name": "Example",
        "version_label": "1.2.0",
        "is_protected": false,
        "payload_path": "/data/app/com.example.app/base.apk"
      }
    ]
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from appcloner.core.errors import ClonerError
from appcloner.models.artifacts import SourceArtifact

logger = logging.getLogger(__name__)


class InventoryError(ClonerError):
    """Raised when the inventory cannot be read."""

    kind = "inventory"


@runtime_checkable
class SourceInventory(Protocol):
    """Anything that can enumerate candidate source artifacts."""

    def list_sources(self) -> list[SourceArtifact]:
        ...


class StaticInventory:
    """Inventory over a fixed collection of artifacts."""

    def __init__(self, sources: Iterable[SourceArtifact]) -> None:
        self._sources = list(sources)

    def list_sources(self) -> list[SourceArtifact]:
        return list(self._sources)


class ManifestInventory:
    """Inventory read from a JSON manifest on every call.

    Relative ``payload_path`` entries are resolved against the manifest's
    directory.
    """

    def __init__(self, manifest_path: Path) -> None:
        self._manifest_path = Path(manifest_path)

    @property
    def manifest_path(self) -> Path:
        return self._manifest_path

    def list_sources(self) -> list[SourceArtifact]:
        try:
            raw = json.loads(self._manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise InventoryError(
                f"Cannot read inventory manifest {self._manifest_path}: {exc}",
                cause=exc,
            ) from exc
        if not isinstance(raw, list):
            raise InventoryError(
                f"Inventory manifest {self._manifest_path} must hold a JSON list"
            )

        sources: list[SourceArtifact] = []
        base = self._manifest_path.parent
        for entry in raw:
            try:
                source = SourceArtifact(**entry)
            except (TypeError, ValidationError):
                logger.warning(
                    "Skipping malformed inventory entry in %s: %r",
                    self._manifest_path,
                    entry,
                )
                continue
            if not source.payload_path.is_absolute():
                source = source.model_copy(
                    update={"payload_path": base / source.payload_path}
                )
            sources.append(source)
        return sources
