"""Unit tests for CLI commands."""

import json

import pytest
import yaml
from click.testing import CliRunner

from bacroute.__version__ import __version__
from bacroute.cli import cli
from bacroute.cli.main import main
from bacroute.cli.plan import PlanOptions, resolve_config
from bacroute.exceptions import ConfigError, IncompatibleAssemblerError, MissingDatabaseError


@pytest.fixture
def manifest(read_files, tmp_path):
    """Two samples: S1 has long reads only, S2 adds raw signal."""
    path = tmp_path / "samples.tsv"
    fast5 = read_files["Fast5"].name
    long_reads = read_files["LongFastQ"].name
    path.write_text(
        "ID\tR1\tR2\tLongFastQ\tFast5\n"
        f"S1\tNA\tNA\t{long_reads}\tNA\n"
        f"S2\tNA\tNA\t{long_reads}\t{fast5}\n"
    )
    return path


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "plan" in result.output
        assert "validate" in result.output

    def test_cli_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"bacroute {__version__}"

    def test_main_returns_exit_code(self, capsys):
        assert main(["-V"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_main_usage_error(self, capsys):
        assert main(["plan", "--assembler", "spades"]) == 2

    def test_show_stages(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["show-stages"])
        assert result.exit_code == 0
        assert "assemble_unicycler" in result.output
        assert "Total: 19 stage kinds" in result.output


class TestCLIConfig:
    """Test config-related CLI functionality."""

    def test_init_config_stdout(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["init-config", "--stdout"])
        assert result.exit_code == 0
        assert "assembler:" in result.output
        assert "kraken2db:" in result.output

    def test_init_config_output_file(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["init-config", "--output-file", "custom.yaml"])
            assert result.exit_code == 0
            contents = open("custom.yaml", encoding="utf-8").read()
            assert yaml.safe_load(contents)["assembler"] == "unicycler"


class TestResolveConfig:
    def test_cli_overrides_file(self, tmp_path, manifest):
        config_path = tmp_path / "run.yaml"
        config_path.write_text("assembler: canu\nassembly_type: long\nskip_polish: true\nkraken2db: /db\n")
        opts = PlanOptions(
            input_file=manifest, config_path=config_path, assembler="Flye", verbose=1
        )
        cfg = resolve_config(opts)
        assert cfg.assembler == "flye"
        assert cfg.assembly_type == "long"
        assert cfg.skip_polish is True
        assert cfg.input == manifest

    def test_input_from_config_file(self, tmp_path, manifest):
        config_path = tmp_path / "run.yaml"
        config_path.write_text(f"input: {manifest}\nskip_kraken2: true\n")
        cfg = resolve_config(PlanOptions(config_path=config_path, verbose=1))
        assert cfg.input == manifest

    def test_missing_input(self):
        with pytest.raises(ConfigError, match="manifest"):
            resolve_config(PlanOptions(skip_kraken2=True, verbose=1))

    def test_invalid_combination(self, manifest):
        opts = PlanOptions(
            input_file=manifest, assembler="canu", assembly_type="short", skip_kraken2=True, verbose=1
        )
        with pytest.raises(IncompatibleAssemblerError):
            resolve_config(opts)


class TestCLIPlan:
    def test_plan_to_file(self, manifest, tmp_path):
        out = tmp_path / "plan" / "plan.yaml"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "plan",
                "-i", str(manifest),
                "--assembler", "flye",
                "--assembly-type", "long",
                "--skip-kraken2",
                "-o", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        doc = yaml.safe_load(out.read_text())
        assert doc["bacroute_version"] == __version__
        assert doc["config"]["assembler"] == "flye"
        assert doc["retry"] == {"exit_codes": [143, 137, 104, 134, 139], "max_retries": 1}
        assert doc["resources"]["process_high"]["cpus"] == 12
        ids = [inv["id"] for inv in doc["invocations"]]
        assert "pycoqc:S2" in ids
        assert "pycoqc:S1" not in ids
        assert doc["order"] == ids
        assert doc["skipped"] == {}

    def test_plan_json_to_stdout(self, manifest):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["plan", "-i", str(manifest), "--assembly-type", "long", "--skip-kraken2", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        # The plan document is written before the console summary
        assert result.output.lstrip().startswith("{")
        assert '"assemble_unicycler:S1"' in result.output

    def test_nanopolish_skip_keeps_exit_zero(self, manifest, tmp_path):
        out = tmp_path / "plan.json"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "plan",
                "-i", str(manifest),
                "--assembler", "flye",
                "--assembly-type", "long",
                "--polish-method", "nanopolish",
                "--skip-kraken2",
                "--format", "json",
                "-o", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        doc = json.loads(out.read_text())
        assert list(doc["skipped"]) == ["S1"]
        assert doc["skipped"]["S1"]["stage_kind"] == "polish_nanopolish"
        assert {inv["sample_id"] for inv in doc["invocations"]} == {"S2"}

    def test_incompatible_assembler_is_fatal(self, manifest, tmp_path):
        out = tmp_path / "plan.yaml"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["plan", "-i", str(manifest), "--assembler", "canu", "--skip-kraken2", "-o", str(out)],
        )
        assert result.exit_code == 1
        assert not out.exists()

    def test_missing_database_is_fatal(self, manifest):
        runner = CliRunner()
        result = runner.invoke(cli, ["plan", "-i", str(manifest)])
        assert result.exit_code == 1


class TestCLIValidate:
    def test_validate_success(self, manifest):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["validate", "-i", str(manifest), "--assembly-type", "long", "--skip-kraken2"]
        )
        assert result.exit_code == 0
        assert "✓" in result.output
        assert "Samples  : 2" in result.output

    def test_validate_bad_manifest(self, tmp_path):
        bad = tmp_path / "bad.tsv"
        bad.write_text("ID\tR1\nS1\tNA\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "-i", str(bad), "--skip-kraken2"])
        assert result.exit_code == 1


class TestCLIBlankDatabase:
    def test_empty_kraken2db_is_fatal(self, manifest, tmp_path):
        out = tmp_path / "plan.yaml"
        runner = CliRunner()
        result = runner.invoke(cli, ["plan", "-i", str(manifest), "--kraken2db", "", "-o", str(out)])
        assert result.exit_code == 1
        assert not out.exists()

    def test_empty_kraken2db_clears_config_value(self, manifest, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_text("kraken2db: /db/k2\n")
        opts = PlanOptions(input_file=manifest, config_path=config_path, kraken2db=" ", verbose=1)
        with pytest.raises(MissingDatabaseError):
            resolve_config(opts)

    def test_blank_kraken2db_in_config_file(self, manifest, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_text('kraken2db: ""\n')
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "-i", str(manifest), "-c", str(config_path)])
        assert result.exit_code == 1
        assert "MissingDatabaseError" in result.output


class TestCLIConfigErrors:
    def test_bad_section_is_reported(self, manifest, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_text("runtime: [x]\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "-i", str(manifest), "-c", str(config_path)])
        assert result.exit_code == 1
        assert "UnknownOptionError" in result.output

    def test_publish_dirs_use_outdir(self, manifest, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_text("outdir: out/run1\nskip_kraken2: true\n")
        out = tmp_path / "plan.yaml"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["plan", "-i", str(manifest), "-c", str(config_path), "--assembly-type", "long", "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        doc = yaml.safe_load(out.read_text())
        trim = next(inv for inv in doc["invocations"] if inv["id"] == "trim_long:S1")
        assert trim["publish_dir"] == "out/run1/S1/trimming"
