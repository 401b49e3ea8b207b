"""``appcloner list`` / ``rename`` / ``remove`` — manage existing clones."""

from __future__ import annotations

from pathlib import Path

import typer

from appcloner.cli.commands._common import (
    MetadataOption,
    StorageOption,
    clones_table,
    console,
    open_registry,
)
from appcloner.core.errors import ClonerError, CloneNotFoundError, PartialRemovalError


def list_cmd(
    reconcile: bool = typer.Option(
        False,
        "--reconcile",
        "-r",
        help="When no clones are recorded, show what is found on disk instead.",
    ),
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """List recorded clones."""
    registry = open_registry(storage, metadata)
    records = registry.list_clones()
    title = "Clones"

    if not records and reconcile:
        records = registry.reconcile()
        title = "Clones found on disk (not recorded)"

    if not records:
        console.print("[dim]No clones.[/dim]")
        if not reconcile:
            console.print("[dim]Use --reconcile to scan the storage root.[/dim]")
        return
    console.print(clones_table(records, title=title))


def rename_cmd(
    clone_id: str = typer.Argument(..., help="The clone to rename."),
    name: str = typer.Argument(..., help="New display name."),
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """Rename a clone."""
    registry = open_registry(storage, metadata)
    try:
        record = registry.rename_clone(clone_id, name)
    except ClonerError as exc:
        console.print(f"[bold red]Rename failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"Renamed [cyan]{record.clone_id}[/cyan] to [bold]{record.display_name}[/bold].")


def remove_cmd(
    clone_id: str = typer.Argument(..., help="The clone to remove."),
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """Remove a clone and its payload."""
    registry = open_registry(storage, metadata)
    try:
        registry.remove_clone(clone_id)
    except CloneNotFoundError:
        console.print(f"[bold red]Clone not found:[/bold red] {clone_id}")
        raise typer.Exit(code=1)
    except PartialRemovalError as exc:
        console.print(f"[bold red]Removal incomplete:[/bold red] {exc}")
        console.print("[dim]The clone is still listed; retry the removal.[/dim]")
        raise typer.Exit(code=1)
    except ClonerError as exc:
        console.print(f"[bold red]Removal failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"Removed [cyan]{clone_id}[/cyan].")
