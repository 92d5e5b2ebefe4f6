"""Core routing functionality (bacroute)."""

from bacroute.core.graph import StageGraph, StageGraphBuilder, build, route_sample
from bacroute.core.manifest import SampleRecord, parse_manifest, read_manifest
from bacroute.core.stages import ABSENT, OutputRef, StageInvocation, StageKind
from bacroute.core.summary import RunSummary

__all__ = [
    "StageGraph",
    "StageGraphBuilder",
    "build",
    "route_sample",
    "SampleRecord",
    "parse_manifest",
    "read_manifest",
    "ABSENT",
    "OutputRef",
    "StageInvocation",
    "StageKind",
    "RunSummary",
]
