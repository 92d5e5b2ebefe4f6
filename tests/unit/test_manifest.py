"""Tests for the sample manifest parser."""

from pathlib import Path

import pytest

from bacroute.core.manifest import SampleRecord, parse_manifest, read_manifest
from bacroute.exceptions import (
    DuplicateSampleIdError,
    MalformedManifestError,
    ManifestError,
    MissingFileError,
)


def _row(sample_id, r1="NA", r2="NA", long="NA", fast5="NA", **extra):
    row = {"ID": sample_id, "R1": r1, "R2": r2, "LongFastQ": long, "Fast5": fast5}
    row.update(extra)
    return row


def _write_manifest(path, rows, header=("ID", "R1", "R2", "LongFastQ", "Fast5")):
    lines = ["\t".join(header)]
    lines.extend("\t".join(str(cell) for cell in row) for row in rows)
    path.write_text("\n".join(lines) + "\n")
    return path


class TestSampleRecord:
    def test_presence_flags(self):
        record = SampleRecord("S1", Path("a.fq"), Path("b.fq"))
        assert record.has_short_reads
        assert not record.has_long_reads
        assert not record.has_raw_signal
        assert record.genome_size == "5m"

    def test_pairing_is_atomic(self):
        with pytest.raises(MalformedManifestError) as exc_info:
            SampleRecord("S1", short_read_1=Path("a.fq"))
        assert exc_info.value.sample_id == "S1"

    def test_empty_id(self):
        with pytest.raises(MalformedManifestError):
            SampleRecord("")

    def test_is_hashable(self, make_sample):
        assert len({make_sample("A", short=True), make_sample("A", short=True)}) == 1


class TestParseManifest:
    def test_na_maps_to_absent(self, read_files):
        rows = [_row("S1", r1=read_files["R1"], r2=read_files["R2"])]
        (record,) = parse_manifest(rows)
        assert record.short_read_1 == read_files["R1"]
        assert record.short_read_2 == read_files["R2"]
        assert record.long_reads is None
        assert record.raw_signal_dir is None

    def test_empty_cell_is_absent(self, read_files):
        (record,) = parse_manifest([_row("S1", long=read_files["LongFastQ"], fast5="")])
        assert record.has_long_reads
        assert not record.has_raw_signal

    def test_raw_signal_directory(self, read_files):
        (record,) = parse_manifest(
            [_row("S1", long=read_files["LongFastQ"], fast5=read_files["Fast5"])]
        )
        assert record.raw_signal_dir == read_files["Fast5"]

    def test_missing_file(self, tmp_path):
        rows = [_row("S7", long=tmp_path / "nope.fastq")]
        with pytest.raises(MissingFileError) as exc_info:
            parse_manifest(rows)
        assert exc_info.value.sample_id == "S7"
        assert exc_info.value.column == "LongFastQ"
        assert "S7" in str(exc_info.value)
        assert isinstance(exc_info.value, ManifestError)

    def test_missing_file_ignored_without_checks(self):
        (record,) = parse_manifest([_row("S1", long="later.fq")], check_files=False)
        assert record.long_reads == Path("later.fq")

    def test_duplicate_ids(self):
        rows = [_row("S1"), _row("S2"), _row("S1")]
        with pytest.raises(DuplicateSampleIdError) as exc_info:
            parse_manifest(rows, check_files=False)
        assert exc_info.value.sample_id == "S1"

    def test_unpaired_short_reads(self, read_files):
        with pytest.raises(MalformedManifestError):
            parse_manifest([_row("S1", r1=read_files["R1"])])

    def test_missing_id(self):
        with pytest.raises(MalformedManifestError):
            parse_manifest([_row("NA")], check_files=False)

    def test_sorted_by_sample_id(self):
        rows = [_row("c"), _row("a"), _row("b")]
        records = parse_manifest(rows, check_files=False)
        assert [r.sample_id for r in records] == ["a", "b", "c"]

    def test_relative_paths_use_base_dir(self, read_files, tmp_path):
        (record,) = parse_manifest([_row("S1", long=read_files["LongFastQ"].name)], base_dir=tmp_path)
        assert record.long_reads == read_files["LongFastQ"]

    def test_genome_size(self):
        records = parse_manifest(
            [_row("A", GenomeSize="2.8m"), _row("B", GenomeSize="NA"), _row("C")],
            check_files=False,
        )
        assert [r.genome_size for r in records] == ["2.8m", "5m", "5m"]


class TestReadManifest:
    def test_reads_tsv(self, read_files, tmp_path):
        manifest = _write_manifest(
            tmp_path / "samples.tsv",
            [
                ("S2", "NA", "NA", read_files["LongFastQ"].name, "fast5"),
                ("S1", read_files["R1"].name, read_files["R2"].name, "NA", "NA"),
            ],
        )
        records = read_manifest(manifest)
        assert [r.sample_id for r in records] == ["S1", "S2"]
        assert records[0].short_read_1 == read_files["R1"].resolve()
        assert records[1].raw_signal_dir == read_files["Fast5"].resolve()
        assert records[1].short_read_1 is None

    def test_missing_column(self, tmp_path):
        manifest = _write_manifest(tmp_path / "bad.tsv", [("S1", "NA", "NA")], header=("ID", "R1", "R2"))
        with pytest.raises(MalformedManifestError) as exc_info:
            read_manifest(manifest)
        assert "LongFastQ" in str(exc_info.value)

    def test_header_only(self, tmp_path):
        manifest = _write_manifest(tmp_path / "empty.tsv", [])
        assert read_manifest(manifest) == []

    def test_empty_file(self, tmp_path):
        manifest = tmp_path / "blank.tsv"
        manifest.write_text("")
        with pytest.raises(MalformedManifestError):
            read_manifest(manifest)

    def test_nonexistent_manifest(self, tmp_path):
        with pytest.raises(MalformedManifestError):
            read_manifest(tmp_path / "missing.tsv")

    def test_missing_referenced_file(self, tmp_path):
        manifest = _write_manifest(
            tmp_path / "samples.tsv", [("S1", "a.fq", "b.fq", "NA", "NA")]
        )
        with pytest.raises(MissingFileError):
            read_manifest(manifest)
