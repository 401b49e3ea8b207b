"""Runtime configuration — env-driven via pydantic-settings.

Reads ``APPCLONER_*`` environment variables and an optional ``.env`` file.
``build_registry`` turns a settings object into a wired ``CloneRegistry``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from appcloner.core.copier import DEFAULT_BUFFER_SIZE, ArtifactCopier
from appcloner.core.eligibility import DEFAULT_DENYLIST, DenylistPolicy
from appcloner.core.inventory import ManifestInventory
from appcloner.core.metadata_store import (
    InMemoryMetadataStore,
    JsonMetadataStore,
    MetadataStore,
    SqliteMetadataStore,
)
from appcloner.core.registry import CloneRegistry


class ClonerSettings(BaseSettings):
    """Settings for the clone core and CLI.

    Examples
    --------
    Override via environment::

        export APPCLONER_STORAGE_ROOT=/data/cloned_apps
        export APPCLONER_METADATA_BACKEND=json
        export APPCLONER_METADATA_PATH=/data/clones.json
        export APPCLONER_DENYLIST='["com.android.vending"]'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APPCLONER_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Storage
    storage_root: Path = Path(".appcloner/cloned_apps")
    metadata_backend: Literal["sqlite", "json", "memory"] = "sqlite"
    metadata_path: Path = Path(".appcloner/clones.db")
    copy_buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)

    # Eligibility
    host_identifier: str = "com.appcloner.host"
    denylist: list[str] = Field(default_factory=lambda: list(DEFAULT_DENYLIST))

    # Inventory
    inventory_manifest: Path | None = None


def build_store(settings: ClonerSettings) -> MetadataStore:
    """Instantiate the configured metadata backend."""
    if settings.metadata_backend == "memory":
        return InMemoryMetadataStore()
    if settings.metadata_backend == "json":
        return JsonMetadataStore(settings.metadata_path)
    return SqliteMetadataStore(settings.metadata_path)


def build_registry(
    settings: ClonerSettings | None = None,
    *,
    inventory_manifest: Path | None = None,
) -> CloneRegistry:
    """Wire a ``CloneRegistry`` from settings."""
    settings = settings or ClonerSettings()
    manifest = inventory_manifest or settings.inventory_manifest
    return CloneRegistry(
        settings.storage_root,
        build_store(settings),
        copier=ArtifactCopier(settings.copy_buffer_size),
        is_eligible=DenylistPolicy(settings.denylist),
        host_identifier=settings.host_identifier,
        inventory=ManifestInventory(manifest) if manifest is not None else None,
    )
