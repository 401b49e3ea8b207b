"""Tests for the eligibility policy and inventory adapters."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from appcloner.core.eligibility import DEFAULT_DENYLIST, DenylistPolicy, allow_all
from appcloner.core.inventory import (
    InventoryError,
    ManifestInventory,
    SourceInventory,
    StaticInventory,
)
from appcloner.models.artifacts import SourceArtifact


class TestDenylistPolicy:
    def test_default_denylist(self):
        policy = DenylistPolicy()
        for identifier in DEFAULT_DENYLIST:
            assert policy(identifier) is False
        assert policy("com.example.app") is True

    def test_only_consults_denylist(self):
        policy = DenylistPolicy([])
        assert policy("com.appcloner.host") is True
        assert policy.denylist == frozenset()

    def test_custom_denylist(self):
        policy = DenylistPolicy(["com.bank.app"])
        assert policy("com.bank.app") is False
        assert policy("com.android.vending") is True
        assert policy.denylist == frozenset({"com.bank.app"})

    def test_allow_all(self):
        assert allow_all("anything") is True


class TestStaticInventory:
    def test_lists_copies(self):
        source = SourceArtifact(
            identifier="a", display_name="A", payload_path=Path("/a")
        )
        inventory = StaticInventory([source])
        listed = inventory.list_sources()
        listed.clear()
        assert inventory.list_sources() == [source]

    def test_satisfies_protocol(self):
        assert isinstance(StaticInventory([]), SourceInventory)


class TestManifestInventory:
    def _write(self, tmp_path: Path, entries) -> Path:
        path = tmp_path / "inventory.json"
        path.write_text(json.dumps(entries), encoding="utf-8")
        return path

    def test_reads_entries(self, tmp_path: Path):
        path = self._write(tmp_path, [
            {
                "identifier": "com.example.app",
                "display_name": "Example",
                "version_label": "1.2.0",
                "payload_path": "/data/app/base.apk",
            }
        ])
        sources = ManifestInventory(path).list_sources()
        assert len(sources) == 1
        assert sources[0].identifier == "com.example.app"
        assert sources[0].payload_path == Path("/data/app/base.apk")

    def test_relative_payload_resolved_against_manifest(self, tmp_path: Path):
        path = self._write(tmp_path, [
            {"identifier": "a", "display_name": "A", "payload_path": "apps/a.bin"}
        ])
        (source,) = ManifestInventory(path).list_sources()
        assert source.payload_path == tmp_path / "apps" / "a.bin"

    def test_malformed_entries_skipped(self, tmp_path: Path):
        path = self._write(tmp_path, [
            {"identifier": "a"},
            "not an object",
            {"identifier": "b", "display_name": "B", "payload_path": "/b"},
        ])
        assert [s.identifier for s in ManifestInventory(path).list_sources()] == ["b"]

    def test_missing_manifest_raises(self, tmp_path: Path):
        with pytest.raises(InventoryError):
            ManifestInventory(tmp_path / "missing.json").list_sources()

    def test_non_list_manifest_raises(self, tmp_path: Path):
        path = self._write(tmp_path, {"identifier": "a"})
        with pytest.raises(InventoryError):
            ManifestInventory(path).list_sources()
