"""Click application entrypoint for bacroute."""

from __future__ import annotations

import signal
import sys
from types import FrameType
from typing import Optional

import click

from bacroute.__version__ import __version__
from bacroute.cli.exit_codes import EXIT_SUCCESS, EXIT_ERROR, EXIT_SIGINT, EXIT_SIGTERM

from .commands.config import init_config
from .commands.plan import plan
from .commands.stages import show_stages
from .commands.validate import validate


class _Terminated(KeyboardInterrupt):
    """Raised from the SIGTERM handler."""


def _handle_signal(signum: int, frame: Optional[FrameType]) -> None:
    """Handle interrupt signals for graceful shutdown."""
    sig_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    click.echo(f"\n{sig_name} received, shutting down...", err=True)
    if signum == signal.SIGTERM:
        raise _Terminated(sig_name)
    raise KeyboardInterrupt(f"{sig_name} received")


def _print_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if value and not ctx.resilient_parsing:
        click.echo(f"bacroute {__version__}")
        ctx.exit()


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "-V",
    "--version",
    is_flag=True,
    is_eager=True,
    expose_value=False,
    callback=_print_version,
    help="Show the version and exit.",
)
def cli() -> None:
    """bacroute: sample routing for bacterial assembly and annotation.

    Plan a run as: bacroute plan -i samples.tsv -c bacroute.yaml -o plan.yaml
    """


cli.add_command(plan)
cli.add_command(validate)
cli.add_command(show_stages)
cli.add_command(init_config)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with signal handling."""
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        rv = cli.main(args=argv, prog_name="bacroute", standalone_mode=False)
    except click.exceptions.Abort as exc:
        # click wraps KeyboardInterrupt in Abort
        return EXIT_SIGTERM if isinstance(exc.__cause__, _Terminated) else EXIT_SIGINT
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except SystemExit as exc:
        # Preserve explicit exit codes from cli()
        if exc.code is None:
            return EXIT_SUCCESS
        return exc.code if isinstance(exc.code, int) else EXIT_ERROR
    return rv if isinstance(rv, int) else EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
