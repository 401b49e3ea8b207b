"""Options and helpers shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from appcloner.config import ClonerSettings, build_registry
from appcloner.core.registry import CloneRegistry
from appcloner.models.artifacts import SourceArtifact
from appcloner.models.clones import CloneRecord

console = Console()

StorageOption = typer.Option(
    None,
    "--storage",
    "-s",
    help="Clone storage root (default: APPCLONER_STORAGE_ROOT).",
)
MetadataOption = typer.Option(
    None,
    "--metadata",
    "-m",
    help="Metadata store file (default: APPCLONER_METADATA_PATH).",
)
ManifestOption = typer.Option(
    None,
    "--manifest",
    help="Inventory manifest JSON (default: APPCLONER_INVENTORY_MANIFEST).",
)


def open_registry(
    storage: Path | None,
    metadata: Path | None,
    manifest: Path | None = None,
) -> CloneRegistry:
    """Build a registry from settings, with command-line overrides applied."""
    overrides: dict[str, Path] = {}
    if storage is not None:
        overrides["storage_root"] = storage
    if metadata is not None:
        overrides["metadata_path"] = metadata
    settings = ClonerSettings(**overrides)
    return build_registry(settings, inventory_manifest=manifest)


def format_size(size: int) -> str:
    """Human-readable byte count."""
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def clones_table(records: list[CloneRecord], title: str = "Clones") -> Table:
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Clone ID", style="cyan")
    table.add_column("Name")
    table.add_column("Source", style="green")
    table.add_column("Created (UTC)")
    table.add_column("Size", justify="right")
    for r in records:
        table.add_row(
            r.clone_id,
            r.display_name,
            r.source_identifier,
            r.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            format_size(r.payload_size_bytes),
        )
    return table


def sources_table(sources: list[SourceArtifact]) -> Table:
    table = Table(title="Cloneable Applications", header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Identifier", style="cyan")
    table.add_column("Version", style="green")
    for s in sources:
        table.add_row(s.display_name, s.identifier, s.version_label)
    return table
