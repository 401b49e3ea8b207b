"""Shared test fixtures for appcloner."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from appcloner.core.copier import ArtifactCopier
from appcloner.core.eligibility import DenylistPolicy
from appcloner.core.metadata_store import InMemoryMetadataStore, SqliteMetadataStore
from appcloner.core.registry import CloneRegistry
from appcloner.models.artifacts import SourceArtifact

HOST_ID = "com.appcloner.host"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def storage_root(tmp_dir: Path) -> Path:
    """Clone storage root inside the temp directory (not yet created)."""
    return tmp_dir / "cloned_apps"


@pytest.fixture
def memory_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def sqlite_store(tmp_dir: Path) -> SqliteMetadataStore:
    """Provide a fresh SqliteMetadataStore backed by a temp database."""
    return SqliteMetadataStore(tmp_dir / "clones.db")


@pytest.fixture
def make_payload(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a payload file of *size* bytes and return its path."""
    src_dir = tmp_dir / "src"
    src_dir.mkdir(exist_ok=True)

    def _factory(name: str = "app.bin", size: int = 4096) -> Path:
        path = src_dir / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return path

    return _factory


@pytest.fixture
def make_source(make_payload: Callable[..., Path]) -> Callable[..., SourceArtifact]:
    """Factory fixture: build a SourceArtifact with a real payload on disk."""

    def _factory(
        identifier: str = "com.example.app",
        display_name: str = "App",
        size: int = 4096,
        **overrides: Any,
    ) -> SourceArtifact:
        defaults: dict[str, Any] = {
            "identifier": identifier,
            "display_name": display_name,
            "version_label": "1.0.0",
            "payload_path": make_payload(f"{identifier}.bin", size),
        }
        defaults.update(overrides)
        return SourceArtifact(**defaults)

    return _factory


@pytest.fixture
def source(make_source: Callable[..., SourceArtifact]) -> SourceArtifact:
    """Convenience: the ``com.example.app`` source with a 4 KiB payload."""
    return make_source()


@pytest.fixture
def registry(storage_root: Path, memory_store: InMemoryMetadataStore) -> CloneRegistry:
    """Provide a CloneRegistry over an in-memory store and a small buffer."""
    return CloneRegistry(
        storage_root,
        memory_store,
        copier=ArtifactCopier(buffer_size=512),
        is_eligible=DenylistPolicy(),
        host_identifier=HOST_ID,
    )


@pytest.fixture
def dir_listing() -> Callable[[Path], set[str]]:
    """Names of the entries directly under a directory (empty if missing)."""

    def _listing(root: Path) -> set[str]:
        if not root.exists():
            return set()
        return {p.name for p in root.iterdir()}

    return _listing
