"""Stage graph construction.

``build`` maps a validated run configuration and a set of samples to an
ordered, acyclic graph of stage invocations. Samples are routed
independently and always in sample_id order, so the same inputs give the
same graph on every call. Nothing here executes a stage.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from bacroute.config import RunConfig
from bacroute.core.manifest import SampleRecord
from bacroute.core.stages import (
    ABSENT,
    OutputRef,
    StageInvocation,
    StageKind,
    get_stage_contract,
)
from bacroute.core.summary import RunSummary
from bacroute.exceptions import DuplicateSampleIdError, GraphError, MissingDependencyError
from bacroute.utils.logging import get_logger, LogTemplates


logger = get_logger("graph")


class StageGraph:
    """Ordered stage invocations plus their producer -> consumer edges."""

    def __init__(self) -> None:
        self._invocations: List[StageInvocation] = []
        self._by_id: Dict[str, StageInvocation] = {}
        self._dag = nx.DiGraph()
        # sample_id -> error for samples excluded from the graph
        self.skipped: Dict[str, MissingDependencyError] = {}

    # ---- construction ----

    def add(self, invocation: StageInvocation) -> None:
        """Append an invocation whose producers are already in the graph."""
        inv_id = invocation.invocation_id
        if inv_id in self._by_id:
            raise GraphError(f"Duplicate invocation: {inv_id}")

        contract = get_stage_contract(invocation.stage_kind)
        unknown = set(invocation.expected_outputs) - set(contract.outputs)
        if unknown:
            raise GraphError(f"{inv_id} declares unknown output(s): {', '.join(sorted(unknown))}")

        edges: Dict[str, List[str]] = {}
        for name, value in invocation.resolved_inputs.items():
            if not isinstance(value, OutputRef):
                continue
            producer = self._by_id.get(value.producer)
            if producer is None:
                raise GraphError(f"{inv_id}.{name} references unknown producer {value.producer}")
            if value.output not in producer.expected_outputs:
                raise GraphError(
                    f"{inv_id}.{name} references undeclared output {value.producer}.{value.output}"
                )
            if producer.sample_id != invocation.sample_id:
                raise GraphError(f"{inv_id}.{name} crosses samples via {value.producer}")
            edges.setdefault(value.producer, []).append(value.output)

        self._invocations.append(invocation)
        self._by_id[inv_id] = invocation
        self._dag.add_node(inv_id, stage_kind=invocation.stage_kind, sample_id=invocation.sample_id)
        for producer_id, outputs in edges.items():
            self._dag.add_edge(producer_id, inv_id, outputs=outputs)

    # ---- queries ----

    @property
    def invocations(self) -> Tuple[StageInvocation, ...]:
        return tuple(self._invocations)

    def __len__(self) -> int:
        return len(self._invocations)

    def __iter__(self) -> Iterator[StageInvocation]:
        return iter(self._invocations)

    def __contains__(self, inv_id: object) -> bool:
        return inv_id in self._by_id

    def get(self, inv_id: str) -> StageInvocation:
        return self._by_id[inv_id]

    def find(self, stage_kind: str, sample_id: str) -> Optional[StageInvocation]:
        for invocation in self._invocations:
            if invocation.stage_kind == stage_kind and invocation.sample_id == sample_id:
                return invocation
        return None

    @property
    def sample_ids(self) -> List[str]:
        seen: List[str] = []
        for invocation in self._invocations:
            if invocation.sample_id not in seen:
                seen.append(invocation.sample_id)
        return seen

    def for_sample(self, sample_id: str) -> List[StageInvocation]:
        return [inv for inv in self._invocations if inv.sample_id == sample_id]

    def stage_kinds(self, sample_id: Optional[str] = None) -> List[str]:
        return [
            inv.stage_kind
            for inv in self._invocations
            if sample_id is None or inv.sample_id == sample_id
        ]

    def edges(self) -> List[Tuple[str, str, List[str]]]:
        """(producer_id, consumer_id, output names) for every dependency."""
        return [(u, v, list(data["outputs"])) for u, v, data in self._dag.edges(data=True)]

    def producer_of(self, ref: OutputRef) -> StageInvocation:
        return self._by_id[ref.producer]

    def upstream(self, inv_id: str) -> List[str]:
        """All transitive producers of ``inv_id``."""
        return sorted(nx.ancestors(self._dag, inv_id))

    def downstream(self, inv_id: str) -> List[str]:
        """All invocations abandoned if ``inv_id`` fails terminally."""
        return sorted(nx.descendants(self._dag, inv_id))

    def ready(self, completed: Iterable[str] = ()) -> List[str]:
        """Invocations whose producers are all in ``completed``."""
        done = set(completed)
        return [
            inv.invocation_id
            for inv in self._invocations
            if inv.invocation_id not in done and set(inv.dependencies()) <= done
        ]

    def topological_order(self) -> List[str]:
        """Deterministic topological order (ties broken by insertion order)."""
        position = {inv.invocation_id: i for i, inv in enumerate(self._invocations)}
        return list(nx.lexicographical_topological_sort(self._dag, key=position.__getitem__))

    def validate(self) -> None:
        """Check that the dependency relation is acyclic and fully resolved."""
        if not nx.is_directed_acyclic_graph(self._dag):
            cycle = nx.find_cycle(self._dag)
            raise GraphError(f"Stage graph contains a cycle: {cycle}")

        position = {inv.invocation_id: i for i, inv in enumerate(self._invocations)}
        for invocation in self._invocations:
            for name, value in invocation.resolved_inputs.items():
                if not isinstance(value, OutputRef):
                    continue
                if position.get(value.producer, len(position)) >= position[invocation.invocation_id]:
                    raise GraphError(
                        f"{invocation.invocation_id}.{name} is not produced by an earlier invocation"
                    )
                if value.output not in self._by_id[value.producer].expected_outputs:
                    raise GraphError(
                        f"{invocation.invocation_id}.{name} references undeclared output "
                        f"{value.producer}.{value.output}"
                    )

    def to_dict(self, outdir: Optional[Path] = None) -> Dict[str, Any]:
        return {
            "invocations": [inv.to_dict(outdir) for inv in self._invocations],
            "skipped": {
                sample_id: {"stage_kind": err.stage_kind, "cause": err.cause}
                for sample_id, err in sorted(self.skipped.items())
            },
        }


# ================== Assembly decision table ==================


@dataclass(frozen=True)
class AssemblyRoute:
    """One row of the assembler/assembly_type decision table."""

    stage_kind: str
    needs_short: bool
    needs_long: bool
    depth_output: str
    mode: Optional[str] = None
    uses_genome_size: bool = False
    # miniasm layouts need a consensus pass before they are an assembly
    consensus: bool = False


ASSEMBLY_ROUTES: Dict[Tuple[str, str], AssemblyRoute] = {
    ("unicycler", "short"): AssemblyRoute(
        StageKind.ASSEMBLE_UNICYCLER, needs_short=True, needs_long=False,
        depth_output="short_depth", mode="short",
    ),
    ("unicycler", "hybrid"): AssemblyRoute(
        StageKind.ASSEMBLE_UNICYCLER, needs_short=True, needs_long=True,
        depth_output="short_depth", mode="hybrid",
    ),
    ("unicycler", "long"): AssemblyRoute(
        StageKind.ASSEMBLE_UNICYCLER, needs_short=False, needs_long=True,
        depth_output="long_depth", mode="long",
    ),
    ("flye", "long"): AssemblyRoute(
        StageKind.ASSEMBLE_FLYE, needs_short=False, needs_long=True,
        depth_output="long_depth", uses_genome_size=True,
    ),
    ("canu", "long"): AssemblyRoute(
        StageKind.ASSEMBLE_CANU, needs_short=False, needs_long=True,
        depth_output="long_depth", uses_genome_size=True,
    ),
    ("miniasm", "long"): AssemblyRoute(
        StageKind.ASSEMBLE_MINIASM, needs_short=False, needs_long=True,
        depth_output="long_depth", consensus=True,
    ),
}

POLISH_STAGES: Dict[str, str] = {
    "medaka": StageKind.POLISH_MEDAKA,
    "nanopolish": StageKind.POLISH_NANOPOLISH,
}

ANNOTATION_STAGES: Dict[str, str] = {
    "prokka": StageKind.ANNOTATE_PROKKA,
    "dfast": StageKind.ANNOTATE_DFAST,
}


# ================== Builder ==================


class _SampleRoute:
    """Invocations for a single sample, collected before they join the graph."""

    def __init__(self, sample: SampleRecord) -> None:
        self.sample = sample
        self.invocations: List[StageInvocation] = []

    def emit(
        self,
        stage_kind: str,
        inputs: Dict[str, Any],
        outputs: Iterable[str],
        params: Optional[Dict[str, Any]] = None,
    ) -> StageInvocation:
        invocation = StageInvocation(
            stage_kind=stage_kind,
            sample_id=self.sample.sample_id,
            resolved_inputs=inputs,
            expected_outputs=frozenset(outputs),
            params=params or {},
            label=get_stage_contract(stage_kind).label,
        )
        self.invocations.append(invocation)
        return invocation

    def missing(self, stage_kind: str, cause: str) -> MissingDependencyError:
        return MissingDependencyError(self.sample.sample_id, stage_kind, cause)


def _ref_or_absent(invocation: Optional[StageInvocation], output: str):
    return invocation.output_ref(output) if invocation is not None else ABSENT


class StageGraphBuilder:
    """Routes samples through the stages a run configuration selects."""

    def __init__(self, config: RunConfig, summary: Optional[RunSummary] = None) -> None:
        self.config = config
        self.summary = summary

    def build(self, samples: Iterable[SampleRecord]) -> StageGraph:
        """Build the stage graph for ``samples``.

        Raises:
            ConfigError: The run configuration is invalid (nothing is routed)
            DuplicateSampleIdError: Two samples share an ID
        """
        cfg = self.config.validate()
        ordered = sorted(samples, key=lambda s: s.sample_id)
        seen: set[str] = set()
        for sample in ordered:
            if sample.sample_id in seen:
                raise DuplicateSampleIdError("sample ID occurs more than once", sample_id=sample.sample_id)
            seen.add(sample.sample_id)

        if self.summary is not None:
            self.summary.record_settings(
                assembler=cfg.assembler,
                assembly_type=cfg.assembly_type,
                annotation_tool=None if cfg.skip_annotation else cfg.annotation_tool,
                polish_method=cfg.polish_method if cfg.polishes else None,
                kraken2=not cfg.skip_kraken2,
            )

        graph = StageGraph()
        for sample in ordered:
            try:
                invocations = self.route(sample)
            except MissingDependencyError as exc:
                logger.warning(
                    LogTemplates.SAMPLE_SKIPPED.format(sample_id=sample.sample_id, reason=exc)
                )
                graph.skipped[sample.sample_id] = exc
                if self.summary is not None:
                    self.summary.record_skip(sample.sample_id, str(exc))
                continue

            for invocation in invocations:
                graph.add(invocation)
            logger.debug(
                LogTemplates.SAMPLE_ROUTED.format(sample_id=sample.sample_id, count=len(invocations))
            )
            if self.summary is not None:
                self.summary.record_sample(sample.sample_id, [i.stage_kind for i in invocations])

        graph.validate()
        return graph

    def route(self, sample: SampleRecord) -> List[StageInvocation]:
        """Ordered invocations for one sample.

        Raises:
            MissingDependencyError: The sample lacks data a selected stage needs
        """
        cfg = self.config
        route = _SampleRoute(sample)
        kraken2_params = {"kraken2db": cfg.kraken2db}

        # Read trimming and read-level QC
        trim_short = None
        if sample.has_short_reads:
            trim_short = route.emit(
                StageKind.TRIM_SHORT,
                {"reads_1": sample.short_read_1, "reads_2": sample.short_read_2},
                ("trimmed_1", "trimmed_2", "trim_log"),
            )
            route.emit(
                StageKind.FASTQC,
                {
                    "trimmed_1": trim_short.output_ref("trimmed_1"),
                    "trimmed_2": trim_short.output_ref("trimmed_2"),
                },
                ("fastqc_report",),
            )

        trim_long = None
        if cfg.assembly_type != "short" and sample.has_long_reads:
            trim_long = route.emit(
                StageKind.TRIM_LONG, {"long_reads": sample.long_reads}, ("trimmed_long",)
            )
            route.emit(StageKind.NANOPLOT, {"long_reads": sample.long_reads}, ("nanoplot_report",))
            if sample.has_raw_signal and not cfg.skip_pycoqc:
                route.emit(
                    StageKind.PYCOQC,
                    {"raw_signal_dir": sample.raw_signal_dir},
                    ("pycoqc_report",),
                )

        if not cfg.skip_kraken2:
            if trim_short is not None:
                route.emit(
                    StageKind.KRAKEN2_SHORT,
                    {
                        "trimmed_1": trim_short.output_ref("trimmed_1"),
                        "trimmed_2": trim_short.output_ref("trimmed_2"),
                    },
                    ("kraken2_report",),
                    dict(kraken2_params),
                )
            if trim_long is not None:
                route.emit(
                    StageKind.KRAKEN2_LONG,
                    {"trimmed_long": trim_long.output_ref("trimmed_long")},
                    ("kraken2_report",),
                    dict(kraken2_params),
                )

        # Assembly: exactly one route per sample
        choice = ASSEMBLY_ROUTES[(cfg.assembler, cfg.assembly_type)]
        if choice.needs_short and trim_short is None:
            raise route.missing(choice.stage_kind, "requires paired short reads (R1/R2)")
        if choice.needs_long and trim_long is None:
            raise route.missing(choice.stage_kind, "requires long reads (LongFastQ)")

        # output name -> most downstream producer of read depth
        depth: Dict[str, OutputRef] = {}
        assembly = self._assemble(route, choice, trim_short, trim_long)
        depth[choice.depth_output] = assembly.output_ref(choice.depth_output)
        final = assembly.output_ref("assembly")

        if cfg.polishes:
            polish_kind = POLISH_STAGES[cfg.polish_method]
            inputs: Dict[str, Any] = {
                "assembly": final,
                "long_reads": trim_long.output_ref("trimmed_long"),
            }
            params: Dict[str, Any] = {}
            if polish_kind == StageKind.POLISH_NANOPOLISH:
                if not sample.has_raw_signal:
                    raise route.missing(polish_kind, "requires raw signal data (Fast5)")
                inputs["raw_signal_dir"] = sample.raw_signal_dir
            else:
                params["model"] = cfg.tools.medaka_model
            polish = route.emit(polish_kind, inputs, ("polished_assembly", "long_depth"), params)
            depth["long_depth"] = polish.output_ref("long_depth")
            final = polish.output_ref("polished_assembly")

        # Everything below consumes the final assembly
        route.emit(StageKind.QUAST, {"assembly": final}, ("quast_report",))

        if not cfg.skip_annotation:
            annotation_kind = ANNOTATION_STAGES[cfg.annotation_tool]
            if annotation_kind == StageKind.ANNOTATE_PROKKA:
                params = {"args": cfg.tools.prokka_args}
            else:
                params = {"config": cfg.tools.dfast_config}
            route.emit(annotation_kind, {"assembly": final}, ("annotation", "annotation_report"), params)

        if not cfg.skip_kraken2:
            route.emit(
                StageKind.TAXONOMY_CLASSIFY,
                {"assembly": final},
                ("taxonomy_report",),
                dict(kraken2_params),
            )

        # Short-only runs carry no long-read evidence worth a depth report
        if cfg.assembly_type != "short":
            route.emit(
                StageKind.DEPTH_REPORT,
                {
                    "short_depth": depth.get("short_depth", ABSENT),
                    "long_depth": depth.get("long_depth", ABSENT),
                },
                ("depth_report",),
            )

        return route.invocations

    def _assemble(
        self,
        route: _SampleRoute,
        choice: AssemblyRoute,
        trim_short: Optional[StageInvocation],
        trim_long: Optional[StageInvocation],
    ) -> StageInvocation:
        """Emit the assembly stage(s) and return the one producing ``assembly``."""
        cfg = self.config
        sample = route.sample
        long_ref = _ref_or_absent(trim_long, "trimmed_long")

        if choice.stage_kind == StageKind.ASSEMBLE_UNICYCLER:
            short_source = trim_short if choice.needs_short else None
            inputs = {
                "short_reads_1": _ref_or_absent(short_source, "trimmed_1"),
                "short_reads_2": _ref_or_absent(short_source, "trimmed_2"),
                "long_reads": long_ref if choice.needs_long else ABSENT,
            }
            return route.emit(
                choice.stage_kind,
                inputs,
                ("assembly", "assembly_graph", "assembly_log", choice.depth_output),
                {"mode": choice.mode, "args": cfg.tools.unicycler_args},
            )

        if choice.consensus:
            layout = route.emit(choice.stage_kind, {"long_reads": long_ref}, ("raw_assembly",))
            return route.emit(
                StageKind.CONSENSUS,
                {"raw_assembly": layout.output_ref("raw_assembly"), "long_reads": long_ref},
                ("assembly", "long_depth"),
            )

        params: Dict[str, Any] = {}
        if choice.uses_genome_size:
            params["genome_size"] = sample.genome_size
        if choice.stage_kind == StageKind.ASSEMBLE_FLYE:
            params["args"] = cfg.tools.flye_args
            outputs: Tuple[str, ...] = ("assembly", "assembly_graph", "long_depth")
        else:
            params["args"] = cfg.tools.canu_args
            outputs = ("assembly", "long_depth")
        return route.emit(choice.stage_kind, {"long_reads": long_ref}, outputs, params)


def build(
    config: RunConfig,
    samples: Iterable[SampleRecord],
    summary: Optional[RunSummary] = None,
) -> StageGraph:
    """Build the stage graph for ``samples`` under ``config``."""
    return StageGraphBuilder(config, summary=summary).build(samples)


def route_sample(config: RunConfig, sample: SampleRecord) -> List[StageInvocation]:
    """Route a single sample; raises MissingDependencyError instead of skipping."""
    return StageGraphBuilder(config.validate()).route(sample)
