"""Custom exceptions for bacroute."""

from __future__ import annotations

from typing import Optional


class BacrouteError(Exception):
    """Base exception for all bacroute errors."""

    pass


class ConfigError(BacrouteError):
    """Raised when the run configuration is invalid. Fatal for the whole run."""

    pass


class IncompatibleAssemblerError(ConfigError):
    """Raised when an assembler is paired with an assembly type it cannot run."""

    def __init__(self, assembler: str, assembly_type: str, message: str = ""):
        self.assembler = assembler
        self.assembly_type = assembly_type
        super().__init__(
            message
            or f"Assembler '{assembler}' cannot be used with assembly_type '{assembly_type}'"
        )


class MissingDatabaseError(ConfigError):
    """Raised when kraken2 classification is enabled without a database path."""

    pass


class UnknownOptionError(ConfigError):
    """Raised for option values outside their allowed set or unsupported keys."""

    pass


class ManifestError(BacrouteError):
    """Raised when the sample manifest cannot be parsed. Fatal for the whole run."""

    def __init__(self, message: str = "", sample_id: Optional[str] = None):
        self.sample_id = sample_id
        if sample_id is not None:
            message = f"[{sample_id}] {message}"
        super().__init__(message)


class DuplicateSampleIdError(ManifestError):
    """Raised when a sample ID appears more than once in the manifest."""

    pass


class MissingFileError(ManifestError):
    """Raised when a declared (non-NA) input path does not exist."""

    def __init__(self, path, column: str, sample_id: Optional[str] = None):
        self.path = path
        self.column = column
        super().__init__(f"{column} file not found: {path}", sample_id=sample_id)


class MalformedManifestError(ManifestError):
    """Raised for structural manifest problems (columns, pairing, empty IDs)."""

    pass


class MissingDependencyError(BacrouteError):
    """Raised when a sample lacks data a stage needs.

    Scoped to one sample: the sample is excluded from the graph and reported
    as skipped, other samples are still routed.
    """

    def __init__(self, sample_id: str, stage_kind: str, cause: str):
        self.sample_id = sample_id
        self.stage_kind = stage_kind
        self.cause = cause
        super().__init__(f"[{sample_id}] {stage_kind}: {cause}")


class GraphError(BacrouteError):
    """Raised when a constructed stage graph violates its structural invariants."""

    pass
