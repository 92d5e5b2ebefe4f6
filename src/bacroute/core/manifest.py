"""Sample manifest parsing.

The manifest is a tab-separated table with a header row::

    ID  R1  R2  LongFastQ  Fast5  [GenomeSize]

A literal ``NA`` (or an empty cell) marks an absent input. Relative paths
are resolved against the manifest's directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd

from bacroute.constants import (
    DEFAULT_GENOME_SIZE,
    GENOME_SIZE_COLUMN,
    MANIFEST_COLUMNS,
    NA_VALUE,
)
from bacroute.exceptions import (
    DuplicateSampleIdError,
    MalformedManifestError,
    MissingFileError,
)
from bacroute.utils.logging import get_logger, LogTemplates
from bacroute.utils.progress import iter_progress

logger = get_logger("manifest")

# Manifest column -> SampleRecord attribute
_FILE_COLUMNS = {
    "R1": "short_read_1",
    "R2": "short_read_2",
    "LongFastQ": "long_reads",
    "Fast5": "raw_signal_dir",
}


@dataclass(frozen=True)
class SampleRecord:
    """Per-sample inputs; ``None`` marks an absent file."""

    sample_id: str
    short_read_1: Optional[Path] = None
    short_read_2: Optional[Path] = None
    long_reads: Optional[Path] = None
    raw_signal_dir: Optional[Path] = None
    genome_size: str = DEFAULT_GENOME_SIZE

    def __post_init__(self) -> None:
        if not self.sample_id:
            raise MalformedManifestError("Sample ID must not be empty")
        if (self.short_read_1 is None) != (self.short_read_2 is None):
            raise MalformedManifestError(
                "R1 and R2 must both be given or both be NA", sample_id=self.sample_id
            )

    @property
    def has_short_reads(self) -> bool:
        return self.short_read_1 is not None

    @property
    def has_long_reads(self) -> bool:
        return self.long_reads is not None

    @property
    def has_raw_signal(self) -> bool:
        return self.raw_signal_dir is not None


def _cell(row: Mapping[str, Any], column: str) -> Optional[str]:
    """Return a stripped cell value, or None for NA/empty/missing cells."""
    value = row.get(column)
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == NA_VALUE:
        return None
    return text


def _resolve(
    text: Optional[str],
    column: str,
    sample_id: str,
    base_dir: Optional[Path],
    check_files: bool,
) -> Optional[Path]:
    if text is None:
        return None
    path = Path(text).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    if check_files and not path.exists():
        raise MissingFileError(path, column, sample_id=sample_id)
    return path


def parse_manifest(
    rows: Iterable[Mapping[str, Any]],
    base_dir: Optional[Path] = None,
    check_files: bool = True,
    show_progress: bool = False,
) -> list[SampleRecord]:
    """Parse manifest rows into sample records, sorted by sample ID.

    Args:
        rows: Mappings keyed by manifest column name
        base_dir: Directory that relative paths are resolved against
        check_files: Verify that every non-NA path exists
        show_progress: Show a tqdm progress bar over the rows

    Raises:
        DuplicateSampleIdError: A sample ID occurs more than once
        MissingFileError: A declared path does not exist
        MalformedManifestError: Empty ID or unpaired short reads
    """
    rows = list(rows)
    records: dict[str, SampleRecord] = {}

    for line_no, row in enumerate(
        iter_progress(rows, total=len(rows), desc="manifest", enabled=show_progress), start=2
    ):
        sample_id = _cell(row, "ID")
        if sample_id is None:
            raise MalformedManifestError(f"Line {line_no}: missing sample ID")
        if sample_id in records:
            raise DuplicateSampleIdError(
                f"Line {line_no}: sample ID occurs more than once", sample_id=sample_id
            )

        files = {
            attr: _resolve(_cell(row, column), column, sample_id, base_dir, check_files)
            for column, attr in _FILE_COLUMNS.items()
        }
        genome_size = _cell(row, GENOME_SIZE_COLUMN) or DEFAULT_GENOME_SIZE
        records[sample_id] = SampleRecord(sample_id=sample_id, genome_size=genome_size, **files)
        logger.debug(f"Parsed sample {sample_id}: {records[sample_id]}")

    return [records[key] for key in sorted(records)]


def read_manifest(
    path: Union[str, Path],
    check_files: bool = True,
    show_progress: bool = False,
) -> list[SampleRecord]:
    """Read a tab-separated manifest file and parse its rows."""
    path = Path(path)
    if not path.exists():
        raise MalformedManifestError(LogTemplates.FILE_NOT_FOUND.format(path=path))

    try:
        df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise MalformedManifestError(f"Manifest is empty: {path}") from None

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in MANIFEST_COLUMNS if c not in df.columns]
    if missing:
        raise MalformedManifestError(
            f"Manifest {path} is missing required column(s): {', '.join(missing)}"
        )

    samples = parse_manifest(
        df.to_dict(orient="records"),
        base_dir=path.resolve().parent,
        check_files=check_files,
        show_progress=show_progress,
    )
    logger.info(LogTemplates.FILE_LOADED.format(count=len(samples), path=path))
    return samples
