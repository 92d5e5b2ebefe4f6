"""bacroute: sample routing for bacterial assembly and annotation workflows."""

from bacroute.__version__ import __version__
from bacroute.config import RunConfig, load_config, validate
from bacroute.core import SampleRecord, StageGraph, StageInvocation, build, read_manifest

__all__ = [
    "__version__",
    "RunConfig",
    "load_config",
    "validate",
    "SampleRecord",
    "StageGraph",
    "StageInvocation",
    "build",
    "read_manifest",
]
