"""Unit tests for the CLI — command registration and end-to-end behaviour.

Every invocation points ``--storage`` and ``--metadata`` into a temp
directory so nothing touches the working directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from appcloner.cli.app import app
from appcloner.core.metadata_store import SqliteMetadataStore

runner = CliRunner()


@pytest.fixture
def paths(tmp_path: Path) -> dict[str, Path]:
    payload = tmp_path / "app.bin"
    payload.write_bytes(b"\x7fELF" + b"\0" * 2044)
    manifest = tmp_path / "inventory.json"
    manifest.write_text(
        json.dumps([
            {
                "identifier": "com.example.app",
                "display_name": "App",
                "version_label": "1.0",
                "payload_path": str(payload),
            },
            {
                "identifier": "com.android.vending",
                "display_name": "Play Store",
                "payload_path": str(payload),
            },
            {
                "identifier": "com.system.ui",
                "display_name": "System UI",
                "is_protected": True,
                "payload_path": str(payload),
            },
        ]),
        encoding="utf-8",
    )
    return {
        "storage": tmp_path / "cloned_apps",
        "metadata": tmp_path / "clones.db",
        "manifest": manifest,
    }


def _common(paths: dict[str, Path]) -> list[str]:
    return ["--storage", str(paths["storage"]), "--metadata", str(paths["metadata"])]


def _clone(paths: dict[str, Path], name: str = "Work"):
    return runner.invoke(
        app,
        ["clone", "com.example.app", name, "--manifest", str(paths["manifest"]), *_common(paths)],
    )


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    @pytest.mark.parametrize(
        "command",
        ["sources", "clone", "list", "rename", "remove", "reconcile", "purge-orphans"],
    )
    def test_command_registered(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestCliCommands:
    def test_sources_filters_protected_and_denylisted(self, paths):
        result = runner.invoke(
            app, ["sources", "--manifest", str(paths["manifest"]), *_common(paths)]
        )
        assert result.exit_code == 0
        assert "com.example.app" in result.output
        assert "com.android.vending" not in result.output
        assert "com.system.ui" not in result.output

    def test_sources_without_manifest_fails(self, paths, monkeypatch):
        monkeypatch.delenv("APPCLONER_INVENTORY_MANIFEST", raising=False)
        result = runner.invoke(app, ["sources", *_common(paths)])
        assert result.exit_code == 1

    def test_clone_then_list_then_remove(self, paths):
        result = _clone(paths)
        assert result.exit_code == 0, result.output

        (record,) = SqliteMetadataStore(paths["metadata"]).list()
        assert record.display_name == "Work"
        assert record.payload_path.stat().st_size == 2048

        result = runner.invoke(app, ["list", *_common(paths)])
        assert result.exit_code == 0
        assert "Work" in result.output

        result = runner.invoke(app, ["remove", record.clone_id, *_common(paths)])
        assert result.exit_code == 0
        assert not record.storage_path.exists()
        assert SqliteMetadataStore(paths["metadata"]).list() == []

    def test_clone_denylisted_fails(self, paths):
        result = runner.invoke(
            app,
            [
                "clone", "com.android.vending", "Store",
                "--manifest", str(paths["manifest"]), *_common(paths),
            ],
        )
        assert result.exit_code == 1
        assert list(paths["storage"].iterdir()) == []

    def test_remove_unknown_fails(self, paths):
        result = runner.invoke(app, ["remove", "com.example.app_1", *_common(paths)])
        assert result.exit_code == 1
        assert "not found" in result.output.lower()

    def test_rename(self, paths):
        _clone(paths)
        (record,) = SqliteMetadataStore(paths["metadata"]).list()
        result = runner.invoke(app, ["rename", record.clone_id, "Home", *_common(paths)])
        assert result.exit_code == 0
        assert SqliteMetadataStore(paths["metadata"]).get(record.clone_id).display_name == "Home"

    def test_list_empty(self, paths):
        result = runner.invoke(app, ["list", *_common(paths)])
        assert result.exit_code == 0
        assert "No clones" in result.output

    def test_reconcile_repair(self, paths):
        _clone(paths)
        paths["metadata"].unlink()

        result = runner.invoke(app, ["reconcile", *_common(paths)])
        assert result.exit_code == 0
        assert "Unrecorded:" in result.output
        assert not paths["metadata"].exists() or (
            SqliteMetadataStore(paths["metadata"]).list() == []
        )

        result = runner.invoke(app, ["reconcile", "--repair", *_common(paths)])
        assert result.exit_code == 0
        assert len(SqliteMetadataStore(paths["metadata"]).list()) == 1

    def test_purge_orphans_requires_yes(self, paths):
        paths["storage"].mkdir(parents=True)
        orphan = paths["storage"] / "com.example.app_1"
        orphan.mkdir()

        result = runner.invoke(app, ["purge-orphans", *_common(paths)])
        assert result.exit_code == 0
        assert orphan.exists()

        result = runner.invoke(app, ["purge-orphans", "--yes", *_common(paths)])
        assert result.exit_code == 0
        assert not orphan.exists()
