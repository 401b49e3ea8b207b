"""Main Typer application — imports and registers all CLI commands.

Entry point: ``appcloner`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from appcloner.cli.commands.clone import clone_cmd
from appcloner.cli.commands.clones import list_cmd, remove_cmd, rename_cmd
from appcloner.cli.commands.maintenance import purge_orphans_cmd, reconcile_cmd
from appcloner.cli.commands.sources import sources_cmd
from appcloner.config import ClonerSettings

app = typer.Typer(
    name="appcloner",
    help="appcloner: create, list and remove clones of installed applications.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="sources", help="List applications that can be cloned.")(sources_cmd)
app.command(name="clone", help="Clone an application.")(clone_cmd)
app.command(name="list", help="List existing clones.")(list_cmd)
app.command(name="rename", help="Rename a clone.")(rename_cmd)
app.command(name="remove", help="Remove a clone.")(remove_cmd)
app.command(name="reconcile", help="Compare the storage root with the metadata store.")(
    reconcile_cmd
)
app.command(name="purge-orphans", help="Delete unrecorded clone directories.")(
    purge_orphans_cmd
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: APPCLONER_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or ClonerSettings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
