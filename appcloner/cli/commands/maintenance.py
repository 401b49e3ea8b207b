"""``appcloner reconcile`` / ``purge-orphans`` — storage root maintenance.

Neither command runs implicitly.  ``reconcile`` is read-only unless
``--repair`` is given; ``purge-orphans`` deletes only with ``--yes``.
"""

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
from appcloner.core.errors import ClonerError


def reconcile_cmd(
    repair: bool = typer.Option(
        False,
        "--repair",
        help="Record every valid on-disk clone that is missing from the store.",
    ),
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """Compare the storage root against the metadata store."""
    registry = open_registry(storage, metadata)
    found = registry.reconcile()
    known = {r.clone_id for r in registry.list_clones()}
    missing = [r for r in found if r.clone_id not in known]

    console.print(
        f"[bold]On disk:[/bold] {len(found)}  "
        f"[bold]Recorded:[/bold] {len(known)}  "
        f"[bold]Unrecorded:[/bold] {len(missing)}"
    )
    if not missing:
        return
    console.print(clones_table(missing, title="Unrecorded clones"))

    if repair:
        try:
            adopted = registry.rebuild_index()
        except ClonerError as exc:
            console.print(f"[bold red]Repair failed:[/bold red] {exc}")
            raise typer.Exit(code=1)
        console.print(f"[green]Recorded {len(adopted)} clone(s).[/green]")
    else:
        console.print("[dim]Run with --repair to record them.[/dim]")


def purge_orphans_cmd(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Actually delete; without it the orphans are only listed.",
    ),
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """Delete clone directories that have no metadata record."""
    registry = open_registry(storage, metadata)
    orphans = registry.find_orphans()
    if not orphans:
        console.print("[dim]No orphan directories.[/dim]")
        return

    for path in orphans:
        console.print(f"  [yellow]{path}[/yellow]")
    if not yes:
        console.print(f"[dim]{len(orphans)} orphan(s). Re-run with --yes to delete.[/dim]")
        return

    removed = registry.purge_orphans(orphans)
    console.print(f"[green]Deleted {len(removed)} of {len(orphans)} orphan(s).[/green]")
    if len(removed) != len(orphans):
        raise typer.Exit(code=1)
