"""Configuration and manifest validation command."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from bacroute.cli.common_options import config_option, input_option, routing_options
from bacroute.cli.exit_codes import EXIT_ERROR
from bacroute.cli.plan import PlanOptions, load_samples, resolve_config
from bacroute.exceptions import BacrouteError


@click.command()
@input_option
@config_option
@routing_options
def validate(input_file: Optional[Path], config: Optional[Path], **routing) -> None:
    """Validate the run configuration and sample manifest without planning."""
    opts = PlanOptions(input_file=input_file, config_path=config, verbose=1, **routing)
    try:
        cfg = resolve_config(opts)
        samples = load_samples(cfg)
    except BacrouteError as exc:
        click.echo(f"✗ {type(exc).__name__}: {exc}", err=True)
        sys.exit(EXIT_ERROR)

    click.echo("✓ Configuration and manifest are valid")
    click.echo(f"  Assembler: {cfg.assembler} ({cfg.assembly_type})")
    click.echo(f"  Samples  : {len(samples)}")
