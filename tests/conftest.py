"""Pytest configuration for bacroute tests."""

import logging
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bacroute.core.manifest import SampleRecord  # noqa: E402


@pytest.fixture(autouse=True)
def reset_logging_after_test():
    """Reset bacroute logger state after each test.

    setup_logging() sets propagate=False, which breaks caplog in later tests.
    """
    yield
    app_logger = logging.getLogger("bacroute")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


@pytest.fixture
def read_files(tmp_path):
    """Short, long and raw-signal inputs on disk."""
    files = {
        "R1": tmp_path / "S1_R1.fastq.gz",
        "R2": tmp_path / "S1_R2.fastq.gz",
        "LongFastQ": tmp_path / "S1_long.fastq.gz",
    }
    for path in files.values():
        path.write_text("@r\nACGT\n+\nIIII\n")
    fast5 = tmp_path / "fast5"
    fast5.mkdir()
    files["Fast5"] = fast5
    return files


@pytest.fixture
def make_sample():
    """Factory for sample records; pass short/long/signal=True to add inputs."""

    def _make(sample_id="S1", short=False, long=False, signal=False, genome_size="5m"):
        return SampleRecord(
            sample_id=sample_id,
            short_read_1=Path(f"{sample_id}_R1.fq") if short else None,
            short_read_2=Path(f"{sample_id}_R2.fq") if short else None,
            long_reads=Path(f"{sample_id}_long.fq") if long else None,
            raw_signal_dir=Path(f"{sample_id}_fast5") if signal else None,
            genome_size=genome_size,
        )

    return _make
