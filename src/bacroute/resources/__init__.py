"""Resource files and configuration templates."""


def get_default_config() -> str:
    """Return default configuration YAML content."""
    return """# bacroute configuration file

# Inputs (can be overridden by CLI arguments)
input: ~
outdir: "results"

# Assembly routing
assembler: "unicycler"      # unicycler | canu | flye | miniasm
assembly_type: "short"      # short | long | hybrid
annotation_tool: "prokka"   # prokka | dfast
polish_method: "medaka"     # medaka | nanopolish

# Required unless skip_kraken2 is true
kraken2db: ~

# Stage toggles
skip_kraken2: false
skip_annotation: false
skip_polish: false
skip_pycoqc: false

# Runtime settings
runtime:
  log_level: "WARNING"
  log_file: ~
  enable_progress: false

# Extra tool arguments
tools:
  unicycler_args: ""
  canu_args: ""
  flye_args: ""
  prokka_args: ""
  dfast_config: ~
  medaka_model: "r941_min_high_g303"

# Dispatcher hints
resources:
  labels:
    process_low: {cpus: 2, memory: "14.GB", time: "6.h"}
    process_medium: {cpus: 6, memory: "42.GB", time: "8.h"}
    process_high: {cpus: 12, memory: "84.GB", time: "10.h"}
    process_long: {cpus: 2, memory: "14.GB", time: "20.h"}
  retry_exit_codes: [143, 137, 104, 134, 139]
  max_retries: 1
"""
