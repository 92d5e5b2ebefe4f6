"""Command-line interface for bacroute."""

from bacroute.cli.main import cli, main

__all__ = ["cli", "main"]
