"""Shared Click options for bacroute CLI commands.

Routing choices default to None so that an explicit option can be told
apart from "not given"; only given options override the config file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import click

from bacroute.constants import ANNOTATION_TOOLS, ASSEMBLERS, ASSEMBLY_TYPES, POLISH_METHODS

F = TypeVar("F", bound=Callable[..., None])


def input_option(func: F) -> F:
    """Sample manifest option."""
    return click.option(
        "-i",
        "--input",
        "input_file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        required=False,
        help="Sample manifest (TSV: ID, R1, R2, LongFastQ, Fast5)",
    )(func)


def config_option(func: F) -> F:
    """Configuration file option."""
    return click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (YAML)",
    )(func)


def verbose_option(func: F) -> F:
    """Verbosity option."""
    return click.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )(func)


def log_file_option(func: F) -> F:
    """Log file option."""
    return click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Path for log file output",
    )(func)


def _choice(name: str, choices, help_text: str) -> Callable[[F], F]:
    return click.option(
        name,
        type=click.Choice(list(choices), case_sensitive=False),
        default=None,
        help=help_text,
    )


def _flag(name: str, help_text: str) -> Callable[[F], F]:
    # A flag can only switch a skip on; an unset flag keeps the config file value
    return click.option(name, is_flag=True, default=False, help=help_text)


def routing_options(func: F) -> F:
    """Apply the run-configuration overrides to a command."""
    decorators = [
        _choice("--assembler", ASSEMBLERS, "Assembler [default: unicycler]"),
        _choice("--assembly-type", ASSEMBLY_TYPES, "Assembly type [default: short]"),
        _choice("--annotation-tool", ANNOTATION_TOOLS, "Annotation tool [default: prokka]"),
        _choice("--polish-method", POLISH_METHODS, "Polishing method [default: medaka]"),
        click.option(
            "--kraken2db",
            # str so an empty value is not read as "."
            type=click.Path(path_type=str),
            default=None,
            help="Kraken2 database (required unless --skip-kraken2)",
        ),
        _flag("--skip-kraken2", "Skip read and assembly classification"),
        _flag("--skip-annotation", "Skip genome annotation"),
        _flag("--skip-polish", "Skip long-read polishing"),
        _flag("--skip-pycoqc", "Skip raw signal QC"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func
