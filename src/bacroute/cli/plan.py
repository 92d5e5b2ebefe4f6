"""Shared plan execution helpers for the CLI."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml

from bacroute.__version__ import __version__
from bacroute.config import RunConfig, load_config, optional_path
from bacroute.core.graph import StageGraph, build
from bacroute.core.manifest import SampleRecord, read_manifest
from bacroute.core.stages import STAGE_CONTRACTS, StageKind
from bacroute.core.summary import RunSummary
from bacroute.exceptions import ConfigError
from bacroute.utils.display import ConsoleFormatter, print_formatted
from bacroute.utils.logging import LogTemplates, level_from_name, setup_logging


@dataclass
class PlanOptions:
    """Container for plan options given on the command line."""

    input_file: Optional[Path] = None
    config_path: Optional[Path] = None
    assembler: Optional[str] = None
    assembly_type: Optional[str] = None
    annotation_tool: Optional[str] = None
    polish_method: Optional[str] = None
    kraken2db: Optional[str] = None
    skip_kraken2: bool = False
    skip_annotation: bool = False
    skip_polish: bool = False
    skip_pycoqc: bool = False
    output: Optional[Path] = None
    fmt: str = "yaml"
    log_file: Optional[Path] = None
    # -v count; 0 means the config file decides the log level
    verbose: int = 0


def resolve_config(opts: PlanOptions) -> RunConfig:
    """Merge defaults -> config file -> CLI options into a validated config."""
    cfg = load_config(opts.config_path) if opts.config_path else RunConfig()

    # Reconfigure logging from the config file when the CLI gave no verbosity
    if opts.verbose == 0:
        log_file = opts.log_file or cfg.runtime.log_file
        setup_logging(level=level_from_name(cfg.runtime.log_level), log_file=log_file)

    for key in ("assembler", "assembly_type", "annotation_tool", "polish_method"):
        value = getattr(opts, key)
        if value is not None:
            setattr(cfg, key, value.lower())
    if opts.kraken2db is not None:
        cfg.kraken2db = optional_path(opts.kraken2db)
    for flag in ("skip_kraken2", "skip_annotation", "skip_polish", "skip_pycoqc"):
        if getattr(opts, flag):
            setattr(cfg, flag, True)
    if opts.input_file is not None:
        cfg.input = opts.input_file

    cfg.validate()
    if cfg.input is None:
        raise ConfigError("A sample manifest is required (--input or 'input' in the config file)")
    return cfg


def load_samples(cfg: RunConfig) -> List[SampleRecord]:
    return read_manifest(cfg.input, show_progress=cfg.runtime.enable_progress)


def plan_document(graph: StageGraph, cfg: RunConfig) -> Dict[str, Any]:
    """Dispatcher handoff document for ``graph``."""
    doc: Dict[str, Any] = {
        "bacroute_version": __version__,
        "config": cfg.to_dict(),
        "retry": {
            "exit_codes": list(cfg.resources.retry_exit_codes),
            "max_retries": cfg.resources.max_retries,
        },
        "resources": cfg.resources.labels,
    }
    doc.update(graph.to_dict(outdir=cfg.outdir))
    doc["order"] = graph.topological_order()
    return doc


def dump_document(doc: Dict[str, Any], fmt: str) -> str:
    if fmt == "json":
        return json.dumps(doc, indent=2) + "\n"
    return yaml.safe_dump(doc, default_flow_style=False, sort_keys=False)


def execute_plan(opts: PlanOptions, logger: logging.Logger) -> Tuple[StageGraph, RunSummary]:
    """Build the stage graph and write the plan document.

    Fatal configuration or manifest errors propagate to the caller;
    samples with missing optional data are reported and skipped.
    """
    cfg = resolve_config(opts)
    samples = load_samples(cfg)

    summary = RunSummary()
    graph = build(cfg, samples, summary=summary)
    logger.info(
        LogTemplates.GRAPH_BUILT.format(invocations=len(graph), samples=len(graph.sample_ids))
    )

    text = dump_document(plan_document(graph, cfg), opts.fmt)
    if opts.output is None:
        click.echo(text, nl=False)
    else:
        opts.output.parent.mkdir(parents=True, exist_ok=True)
        opts.output.write_text(text, encoding="utf-8")
        logger.info(LogTemplates.FILE_CREATED.format(path=opts.output))

    formatter = ConsoleFormatter()
    print_formatted(formatter.header())
    print_formatted(
        formatter.format_config(
            {
                "input": cfg.input,
                "assembler": cfg.assembler,
                "assembly_type": cfg.assembly_type,
                "polish_method": cfg.polish_method if cfg.polishes else None,
                "annotation_tool": None if cfg.skip_annotation else cfg.annotation_tool,
                "kraken2db": None if cfg.skip_kraken2 else cfg.kraken2db,
                "output": opts.output or "-",
            }
        )
    )
    print_formatted(formatter.separator())
    print_formatted(formatter.format_summary(summary.format_lines(list(StageKind.ALL))))
    print_formatted(formatter.separator("="))
    return graph, summary


def show_stages() -> None:
    """List stage kinds in canonical order."""
    click.echo("\nbacroute stage kinds:")
    click.echo("-" * 60)
    for i, kind in enumerate(StageKind.ALL, 1):
        contract = STAGE_CONTRACTS[kind]
        click.echo(f"  {i:2d}. {kind:<20} [{contract.phase:<10}] {contract.description}")
    click.echo("-" * 60)
    click.echo(f"Total: {len(StageKind.ALL)} stage kinds\n")
