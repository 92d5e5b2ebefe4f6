"""Configuration management for bacroute."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from bacroute.constants import (
    ASSEMBLERS,
    ASSEMBLY_TYPES,
    ANNOTATION_TOOLS,
    POLISH_METHODS,
    LONG_ONLY_ASSEMBLERS,
    SKIP_FLAGS,
    DEFAULT_RESOURCE_LABELS,
    RETRY_EXIT_CODES,
    MAX_RETRIES,
)
from bacroute.exceptions import (
    IncompatibleAssemblerError,
    MissingDatabaseError,
    UnknownOptionError,
)


@dataclass
class RuntimeConfig:
    """Runtime configuration."""

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    # Enable tqdm progress where available
    enable_progress: bool = False


@dataclass
class ToolConfig:
    """Extra arguments passed through to the wrapped tools."""

    unicycler_args: str = ""
    canu_args: str = ""
    flye_args: str = ""
    prokka_args: str = ""
    dfast_config: Optional[Path] = None
    medaka_model: str = "r941_min_high_g303"


@dataclass
class ResourceConfig:
    """Per-label resource requests and retry policy handed to the Dispatcher."""

    labels: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_RESOURCE_LABELS)
    )
    retry_exit_codes: list = field(default_factory=lambda: list(RETRY_EXIT_CODES))
    max_retries: int = MAX_RETRIES


@dataclass
class RunConfig:
    """Run-wide routing options."""

    # Inputs (can be set via CLI or config file)
    input: Optional[Path] = None
    outdir: Path = Path("results")

    assembler: str = "unicycler"
    assembly_type: str = "short"
    annotation_tool: str = "prokka"
    polish_method: str = "medaka"
    kraken2db: Optional[Path] = None

    # Step skip flags
    skip_kraken2: bool = False
    skip_annotation: bool = False
    skip_polish: bool = False
    skip_pycoqc: bool = False

    # Sub-configurations
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)
    resources: ResourceConfig = field(default_factory=ResourceConfig)

    @property
    def needs_kraken2(self) -> bool:
        return not self.skip_kraken2

    @property
    def polishes(self) -> bool:
        """True when a polish stage is reachable for long assemblies."""
        return self.assembly_type == "long" and not self.skip_polish

    def validate(self) -> "RunConfig":
        """Validate the configuration and return it unchanged.

        Pure: no filesystem access. The kraken2 database path is only
        checked for presence.
        """
        _check_choice("assembler", self.assembler, ASSEMBLERS)
        _check_choice("assembly_type", self.assembly_type, ASSEMBLY_TYPES)
        _check_choice("annotation_tool", self.annotation_tool, ANNOTATION_TOOLS)
        _check_choice("polish_method", self.polish_method, POLISH_METHODS)

        if self.assembler in LONG_ONLY_ASSEMBLERS and self.assembly_type != "long":
            raise IncompatibleAssemblerError(
                self.assembler,
                self.assembly_type,
                f"Assembler '{self.assembler}' only supports long-read assembly "
                f"(got assembly_type '{self.assembly_type}')",
            )
        if self.assembly_type == "hybrid" and self.assembler != "unicycler":
            raise IncompatibleAssemblerError(
                self.assembler,
                self.assembly_type,
                f"Hybrid assembly requires unicycler (got '{self.assembler}')",
            )

        if self.needs_kraken2 and (self.kraken2db is None or not str(self.kraken2db).strip()):
            raise MissingDatabaseError(
                "A kraken2 database path (kraken2db) is required unless skip_kraken2 is set"
            )

        if self.resources.max_retries < 0:
            raise UnknownOptionError("resources.max_retries must be >= 0")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""

        def path_to_str(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: path_to_str(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [path_to_str(item) for item in obj]
            return obj

        return path_to_str(asdict(self))


def _check_choice(name: str, value: str, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        raise UnknownOptionError(
            f"Invalid {name} '{value}'; expected one of: {', '.join(allowed)}"
        )


def validate(cfg: RunConfig) -> RunConfig:
    """Validate ``cfg``; returns it or raises a ConfigError subclass."""
    return cfg.validate()


_CHOICE_KEYS = ("assembler", "assembly_type", "annotation_tool", "polish_method")
_SECTION_KEYS = ("runtime", "tools", "resources")
_KNOWN_KEYS = {"input", "outdir", "kraken2db", *_CHOICE_KEYS, *SKIP_FLAGS, *_SECTION_KEYS}


_RESOURCE_KEYS = ("labels", "retry_exit_codes", "max_retries")


def optional_path(value: Any) -> Optional[Path]:
    """Path for a config or CLI value; None, empty and blank values mean unset."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return Path(text)


def _section(data: Dict[str, Any], name: str, allowed) -> Dict[str, Any]:
    """Return config section ``name`` as a mapping with only ``allowed`` keys."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise UnknownOptionError(f"Config section '{name}' must be a mapping")
    unsupported = sorted(str(key) for key in section if key not in allowed)
    if unsupported:
        raise UnknownOptionError(
            f"Unsupported option(s) in '{name}': " + ", ".join(unsupported)
        )
    return section


def config_from_dict(data: Dict[str, Any]) -> RunConfig:
    """Build a RunConfig from a plain mapping (as read from YAML)."""
    unsupported = sorted(key for key in data if key not in _KNOWN_KEYS)
    if unsupported:
        raise UnknownOptionError("Unsupported config option(s): " + ", ".join(unsupported))

    cfg = RunConfig()

    cfg.input = optional_path(data.get("input"))
    cfg.outdir = optional_path(data.get("outdir")) or cfg.outdir
    cfg.kraken2db = optional_path(data.get("kraken2db"))

    for key in _CHOICE_KEYS:
        if data.get(key) is not None:
            setattr(cfg, key, str(data[key]).lower())

    for flag in SKIP_FLAGS:
        if flag in data:
            setattr(cfg, flag, bool(data[flag]))

    # Runtime config
    for key, value in _section(data, "runtime", asdict(cfg.runtime)).items():
        if key == "log_file":
            value = optional_path(value)
        setattr(cfg.runtime, key, value)

    # Tool config
    for key, value in _section(data, "tools", asdict(cfg.tools)).items():
        if value is None:
            continue
        if key == "dfast_config":
            value = optional_path(value)
        setattr(cfg.tools, key, value)

    # Resource config; labels are merged so a file can override one label only
    resources = _section(data, "resources", _RESOURCE_KEYS)
    labels = resources.get("labels") or {}
    if not isinstance(labels, dict):
        raise UnknownOptionError("Config option 'resources.labels' must be a mapping")
    for label, request in labels.items():
        if request is not None and not isinstance(request, dict):
            raise UnknownOptionError(f"Resource label '{label}' must be a mapping")
        cfg.resources.labels.setdefault(label, {}).update(request or {})
    if resources.get("retry_exit_codes") is not None:
        cfg.resources.retry_exit_codes = [int(code) for code in resources["retry_exit_codes"]]
    if resources.get("max_retries") is not None:
        cfg.resources.max_retries = int(resources["max_retries"])

    return cfg


def load_config(path: Path) -> RunConfig:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise UnknownOptionError(f"Config file {path} must contain a mapping at the top level")
    return config_from_dict(data)


def save_config(cfg: RunConfig, path: Path) -> None:
    """Save configuration to YAML file."""
    data = cfg.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
