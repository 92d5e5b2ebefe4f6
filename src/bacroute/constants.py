"""Unified constants for bacroute.

Allowed option values, manifest conventions and the default resource
profile shared by the config model, the manifest parser and the builder.
"""

# ================== Run options ==================

ASSEMBLERS: tuple[str, ...] = ("unicycler", "canu", "flye", "miniasm")
ASSEMBLY_TYPES: tuple[str, ...] = ("short", "long", "hybrid")
ANNOTATION_TOOLS: tuple[str, ...] = ("prokka", "dfast")
POLISH_METHODS: tuple[str, ...] = ("medaka", "nanopolish")

# Assemblers that only accept long reads
LONG_ONLY_ASSEMBLERS: frozenset[str] = frozenset({"canu", "flye", "miniasm"})

SKIP_FLAGS: tuple[str, ...] = (
    "skip_kraken2",
    "skip_annotation",
    "skip_polish",
    "skip_pycoqc",
)


# ================== Manifest ==================

# Literal cell value marking an absent input
NA_VALUE: str = "NA"

MANIFEST_COLUMNS: tuple[str, ...] = ("ID", "R1", "R2", "LongFastQ", "Fast5")
GENOME_SIZE_COLUMN: str = "GenomeSize"
DEFAULT_GENOME_SIZE: str = "5m"


# ================== Dispatcher hints ==================

# Exit codes signalling resource exhaustion; anything else is terminal
RETRY_EXIT_CODES: tuple[int, ...] = (143, 137, 104, 134, 139)
MAX_RETRIES: int = 1

DEFAULT_RESOURCE_LABELS: dict[str, dict[str, object]] = {
    "process_low": {"cpus": 2, "memory": "14.GB", "time": "6.h"},
    "process_medium": {"cpus": 6, "memory": "42.GB", "time": "8.h"},
    "process_high": {"cpus": 12, "memory": "84.GB", "time": "10.h"},
    "process_long": {"cpus": 2, "memory": "14.GB", "time": "20.h"},
}
