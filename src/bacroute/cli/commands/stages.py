"""`show-stages` subcommand implementation."""

from __future__ import annotations

import click

from bacroute.cli.plan import show_stages as _show_stages


@click.command(name="show-stages")
def show_stages() -> None:
    """List every stage kind with its output phase."""
    _show_stages()
