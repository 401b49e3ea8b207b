"""``appcloner clone IDENTIFIER NAME`` — clone an inventory source.

Looks the identifier up in the inventory manifest, copies its payload into
a fresh clone directory and records the clone.  Ctrl+C during the copy
cancels it and removes the partial clone.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn

from appcloner.cli.commands._common import (
    ManifestOption,
    MetadataOption,
    StorageOption,
    console,
    format_size,
    open_registry,
)
from appcloner.core.errors import ClonerError


def clone_cmd(
    identifier: str = typer.Argument(..., help="Identifier of the source to clone."),
    name: str = typer.Argument(..., help="Display name for the new clone."),
    manifest: Path | None = ManifestOption,
    storage: Path | None = StorageOption,
    metadata: Path | None = MetadataOption,
) -> None:
    """Create a clone of an installed application."""
    registry = open_registry(storage, metadata, manifest)
    try:
        sources = registry.list_cloneable_sources()
    except ClonerError as exc:
        console.print(f"[bold red]Inventory unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)

    source = next((s for s in sources if s.identifier == identifier), None)
    if source is None:
        console.print(
            f"[bold red]Not cloneable:[/bold red] {identifier} "
            "is unknown, protected or denylisted."
        )
        raise typer.Exit(code=1)

    with Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(f"Cloning {source.display_name}", total=None)
        try:
            record = registry.create_clone(
                source,
                name,
                progress=lambda done, total: bar.update(task, completed=done, total=total),
            )
        except KeyboardInterrupt:
            console.print("[yellow]Clone cancelled.[/yellow]")
            raise typer.Exit(code=130)
        except ClonerError as exc:
            console.print(f"[bold red]Clone failed ({exc.kind}):[/bold red] {exc}")
            raise typer.Exit(code=1)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Clone created![/bold green]",
                "",
                f"[bold]Clone ID:[/bold]  {record.clone_id}",
                f"[bold]Name:[/bold]      {record.display_name}",
                f"[bold]Source:[/bold]    {record.source_identifier}",
                f"[bold]Size:[/bold]      {format_size(record.payload_size_bytes)}",
                f"[bold]Location:[/bold]  {record.storage_path}",
            ]),
            title="[bold]appcloner[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
