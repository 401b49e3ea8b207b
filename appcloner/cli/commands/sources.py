"""``appcloner sources`` — list applications that can be cloned."""

from __future__ import annotations

from pathlib import Path

import typer

from appcloner.cli.commands._common import (
    ManifestOption,
    MetadataOption,
    StorageOption,
    console,
    open_registry,
    sources_table,
)
from appcloner.core.errors import ClonerError


def sources_cmd(
    manifest: Path | None = ManifestOption,
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """List inventory sources that are neither protected nor denylisted."""
    registry = open_registry(storage, metadata, manifest)
    try:
        sources = registry.list_cloneable_sources()
    except ClonerError as exc:
        console.print(f"[bold red]Inventory unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not sources:
        console.print("[dim]No cloneable applications found.[/dim]")
        return
    console.print(sources_table(sources))
