"""`plan` subcommand implementation."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from bacroute.cli.common_options import (
    config_option,
    input_option,
    log_file_option,
    routing_options,
    verbose_option,
)
from bacroute.cli.exit_codes import EXIT_ERROR
from bacroute.cli.plan import PlanOptions, execute_plan
from bacroute.exceptions import BacrouteError
from bacroute.utils.logging import get_logger, level_from_verbosity, setup_logging


@click.command()
@input_option
@config_option
@routing_options
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the plan document here [default: stdout]",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["yaml", "json"], case_sensitive=False),
    default="yaml",
    show_default=True,
    help="Plan document format",
)
@verbose_option
@log_file_option
def plan(
    input_file: Optional[Path],
    config: Optional[Path],
    output: Optional[Path],
    fmt: str,
    verbose: int,
    log_file: Optional[Path],
    **routing,
) -> None:
    """Build the stage graph for a manifest and write the Dispatcher plan."""
    setup_logging(level=level_from_verbosity(verbose), log_file=log_file)
    logger = get_logger("cli")

    opts = PlanOptions(
        input_file=input_file,
        config_path=config,
        output=output,
        fmt=fmt.lower(),
        log_file=log_file,
        verbose=verbose,
        **routing,
    )
    try:
        execute_plan(opts, logger)
    except BacrouteError as exc:
        logger.error(f"Plan error: {exc}")
        sys.exit(EXIT_ERROR)
