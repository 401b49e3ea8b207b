"""appcloner CLI — Typer-based command-line interface.

Provides the ``appcloner`` command with subcommands for listing cloneable
sources, creating, listing, renaming and removing clones, and for
reconciling the metadata store with the storage root.

All output uses Rich for formatted terminal display.
"""
