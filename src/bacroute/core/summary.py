"""Run summary accumulator.

Human-readable reporting only; routing never reads from it. The caller
owns the instance and passes it to the builder explicitly.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RunSummary:
    """Collects what a build planned and what it skipped."""

    settings: Dict[str, Any] = field(default_factory=dict)
    planned_samples: List[str] = field(default_factory=list)
    skipped_samples: Dict[str, str] = field(default_factory=dict)
    stage_counts: Counter = field(default_factory=Counter)

    def record_settings(self, **settings: Any) -> None:
        self.settings.update(settings)

    def record_sample(self, sample_id: str, stage_kinds: List[str]) -> None:
        self.planned_samples.append(sample_id)
        self.stage_counts.update(stage_kinds)

    def record_skip(self, sample_id: str, cause: str) -> None:
        self.skipped_samples[sample_id] = cause

    @property
    def total_invocations(self) -> int:
        return sum(self.stage_counts.values())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "settings": dict(self.settings),
            "planned_samples": list(self.planned_samples),
            "skipped_samples": dict(self.skipped_samples),
            "stage_counts": dict(sorted(self.stage_counts.items())),
            "total_invocations": self.total_invocations,
        }

    def format_lines(self, stage_order: Optional[List[str]] = None) -> List[str]:
        """Render the summary as console lines."""
        lines = [
            f"Samples planned : {len(self.planned_samples)}",
            f"Samples skipped : {len(self.skipped_samples)}",
            f"Invocations     : {self.total_invocations}",
        ]
        kinds = stage_order or sorted(self.stage_counts)
        for kind in kinds:
            if self.stage_counts.get(kind):
                lines.append(f"  {kind:<20} x{self.stage_counts[kind]}")
        for sample_id, cause in sorted(self.skipped_samples.items()):
            lines.append(f"  skipped {sample_id}: {cause}")
        return lines
