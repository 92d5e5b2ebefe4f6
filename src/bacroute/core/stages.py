"""Stage catalogue and the invocation type handed to the Dispatcher.

Contracts are intentionally lightweight and declarative:
- Logical input and output names per stage kind
- Output phase (the per-sample directory a Dispatcher publishes into)
- Resource label (looked up in ``ResourceConfig.labels``)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class StageKind:
    """Canonical stage kind tags."""

    TRIM_SHORT = "trim_short"
    TRIM_LONG = "trim_long"
    FASTQC = "fastqc"
    NANOPLOT = "nanoplot"
    PYCOQC = "pycoqc"
    KRAKEN2_SHORT = "kraken2_short"
    KRAKEN2_LONG = "kraken2_long"
    ASSEMBLE_UNICYCLER = "assemble_unicycler"
    ASSEMBLE_FLYE = "assemble_flye"
    ASSEMBLE_CANU = "assemble_canu"
    ASSEMBLE_MINIASM = "assemble_miniasm"
    CONSENSUS = "consensus"
    POLISH_NANOPOLISH = "polish_nanopolish"
    POLISH_MEDAKA = "polish_medaka"
    QUAST = "quast"
    ANNOTATE_PROKKA = "annotate_prokka"
    ANNOTATE_DFAST = "annotate_dfast"
    TAXONOMY_CLASSIFY = "taxonomy_classify"
    DEPTH_REPORT = "depth_report"

    ALL: Tuple[str, ...] = (
        TRIM_SHORT,
        TRIM_LONG,
        FASTQC,
        NANOPLOT,
        PYCOQC,
        KRAKEN2_SHORT,
        KRAKEN2_LONG,
        ASSEMBLE_UNICYCLER,
        ASSEMBLE_FLYE,
        ASSEMBLE_CANU,
        ASSEMBLE_MINIASM,
        CONSENSUS,
        POLISH_NANOPOLISH,
        POLISH_MEDAKA,
        QUAST,
        ANNOTATE_PROKKA,
        ANNOTATE_DFAST,
        TAXONOMY_CLASSIFY,
        DEPTH_REPORT,
    )


# Sentinel for an input slot with no data
ABSENT = "absent"


@dataclass(frozen=True)
class OutputRef:
    """Symbolic reference to a named output of another invocation."""

    producer: str
    output: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.producer, "output": self.output}


InputValue = Union[Path, OutputRef, str]


@dataclass(frozen=True)
class StageContract:
    """Input/output contract for a stage kind.

    ``outputs`` lists every output the stage may declare; an invocation
    declares the subset that applies to its mode.
    """

    stage_kind: str
    description: str
    phase: str
    label: str = "process_medium"
    inputs: Tuple[str, ...] = field(default_factory=tuple)
    outputs: Tuple[str, ...] = field(default_factory=tuple)


PHASES: Tuple[str, ...] = (
    "trimming",
    "qc",
    "taxonomy",
    "assembly",
    "polishing",
    "annotation",
    "report",
)


def _contract(kind: str, description: str, phase: str, label: str, inputs, outputs) -> StageContract:
    return StageContract(
        stage_kind=kind,
        description=description,
        phase=phase,
        label=label,
        inputs=tuple(inputs),
        outputs=tuple(outputs),
    )


_SHORT_PAIR = ("reads_1", "reads_2")
_TRIMMED_PAIR = ("trimmed_1", "trimmed_2")

STAGE_CONTRACTS: Dict[str, StageContract] = {
    c.stage_kind: c
    for c in (
        _contract(
            StageKind.TRIM_SHORT, "Adapter/quality trimming of paired short reads",
            "trimming", "process_medium", _SHORT_PAIR, _TRIMMED_PAIR + ("trim_log",),
        ),
        _contract(
            StageKind.TRIM_LONG, "Adapter trimming of long reads",
            "trimming", "process_medium", ("long_reads",), ("trimmed_long",),
        ),
        _contract(
            StageKind.FASTQC, "Short-read quality report",
            "qc", "process_medium", _TRIMMED_PAIR, ("fastqc_report",),
        ),
        _contract(
            StageKind.NANOPLOT, "Long-read quality report",
            "qc", "process_low", ("long_reads",), ("nanoplot_report",),
        ),
        _contract(
            StageKind.PYCOQC, "Run QC from raw signal data",
            "qc", "process_medium", ("raw_signal_dir",), ("pycoqc_report",),
        ),
        _contract(
            StageKind.KRAKEN2_SHORT, "Read classification of trimmed short reads",
            "taxonomy", "process_high", _TRIMMED_PAIR, ("kraken2_report",),
        ),
        _contract(
            StageKind.KRAKEN2_LONG, "Read classification of trimmed long reads",
            "taxonomy", "process_high", ("trimmed_long",), ("kraken2_report",),
        ),
        _contract(
            StageKind.ASSEMBLE_UNICYCLER, "Short, hybrid or long-read assembly with unicycler",
            "assembly", "process_high",
            ("short_reads_1", "short_reads_2", "long_reads"),
            ("assembly", "assembly_graph", "assembly_log", "short_depth", "long_depth"),
        ),
        _contract(
            StageKind.ASSEMBLE_FLYE, "Long-read assembly with flye",
            "assembly", "process_high", ("long_reads",),
            ("assembly", "assembly_graph", "long_depth"),
        ),
        _contract(
            StageKind.ASSEMBLE_CANU, "Long-read assembly with canu",
            "assembly", "process_long", ("long_reads",), ("assembly", "long_depth"),
        ),
        _contract(
            StageKind.ASSEMBLE_MINIASM, "Overlap and layout of long reads with miniasm",
            "assembly", "process_high", ("long_reads",), ("raw_assembly",),
        ),
        _contract(
            StageKind.CONSENSUS, "Consensus of the miniasm layout",
            "assembly", "process_high", ("raw_assembly", "long_reads"),
            ("assembly", "long_depth"),
        ),
        _contract(
            StageKind.POLISH_NANOPOLISH, "Signal-level polishing with nanopolish",
            "polishing", "process_high", ("assembly", "long_reads", "raw_signal_dir"),
            ("polished_assembly", "long_depth"),
        ),
        _contract(
            StageKind.POLISH_MEDAKA, "Polishing with medaka",
            "polishing", "process_high", ("assembly", "long_reads"),
            ("polished_assembly", "long_depth"),
        ),
        _contract(
            StageKind.QUAST, "Assembly quality assessment",
            "qc", "process_medium", ("assembly",), ("quast_report",),
        ),
        _contract(
            StageKind.ANNOTATE_PROKKA, "Genome annotation with prokka",
            "annotation", "process_low", ("assembly",), ("annotation", "annotation_report"),
        ),
        _contract(
            StageKind.ANNOTATE_DFAST, "Genome annotation with dfast",
            "annotation", "process_medium", ("assembly",), ("annotation", "annotation_report"),
        ),
        _contract(
            StageKind.TAXONOMY_CLASSIFY, "Per-contig taxonomy of the final assembly",
            "taxonomy", "process_high", ("assembly",), ("taxonomy_report",),
        ),
        _contract(
            StageKind.DEPTH_REPORT, "Read depth summary of the final assembly",
            "report", "process_low", ("short_depth", "long_depth"), ("depth_report",),
        ),
    )
}


def get_stage_contract(stage_kind: str) -> StageContract:
    """Return the contract for ``stage_kind`` or raise KeyError."""
    try:
        return STAGE_CONTRACTS[stage_kind]
    except KeyError:
        raise KeyError(f"Unknown stage kind: {stage_kind}") from None


def invocation_id(stage_kind: str, sample_id: str) -> str:
    return f"{stage_kind}:{sample_id}"


@dataclass(frozen=True)
class StageInvocation:
    """One node of the stage graph: a stage kind applied to one sample.

    ``resolved_inputs`` maps each logical input name to an original sample
    file (``Path``), another invocation's output (``OutputRef``) or
    ``ABSENT``. Downstream consumers only ever reference outputs
    symbolically; concrete output paths belong to the Dispatcher.

    Both mappings are copied into read-only views on construction.
    Hashing uses ``invocation_id``.
    """

    stage_kind: str
    sample_id: str
    resolved_inputs: Mapping[str, InputValue] = field(default_factory=dict)
    expected_outputs: frozenset = field(default_factory=frozenset)
    params: Mapping[str, Any] = field(default_factory=dict)
    label: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "resolved_inputs", MappingProxyType(dict(self.resolved_inputs)))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        object.__setattr__(self, "expected_outputs", frozenset(self.expected_outputs))

    def __hash__(self) -> int:
        return hash(self.invocation_id)

    @property
    def invocation_id(self) -> str:
        return invocation_id(self.stage_kind, self.sample_id)

    @property
    def contract(self) -> StageContract:
        return get_stage_contract(self.stage_kind)

    @property
    def publish_dir(self) -> str:
        return f"{self.sample_id}/{self.contract.phase}"

    def dependencies(self) -> list[str]:
        """Producer invocation ids, in input order, without repeats."""
        seen: list[str] = []
        for value in self.resolved_inputs.values():
            if isinstance(value, OutputRef) and value.producer not in seen:
                seen.append(value.producer)
        return seen

    def output_ref(self, name: str) -> OutputRef:
        """Reference one of this invocation's declared outputs."""
        if name not in self.expected_outputs:
            raise KeyError(f"{self.invocation_id} does not declare output '{name}'")
        return OutputRef(self.invocation_id, name)

    def to_dict(self, outdir: Union[str, Path, None] = None) -> Dict[str, Any]:
        """Serialise for the Dispatcher handoff document.

        With ``outdir`` the publish directory is rooted there.
        """
        publish_dir = self.publish_dir
        if outdir is not None:
            publish_dir = (Path(outdir) / publish_dir).as_posix()
        inputs: Dict[str, Any] = {}
        for name, value in self.resolved_inputs.items():
            if isinstance(value, OutputRef):
                inputs[name] = value.to_dict()
            elif isinstance(value, Path):
                inputs[name] = str(value)
            else:
                inputs[name] = value
        return {
            "id": self.invocation_id,
            "stage_kind": self.stage_kind,
            "sample_id": self.sample_id,
            "inputs": inputs,
            "outputs": sorted(self.expected_outputs),
            "params": {
                k: str(v) if isinstance(v, Path) else v for k, v in self.params.items()
            },
            "label": self.label or self.contract.label,
            "publish_dir": publish_dir,
        }
