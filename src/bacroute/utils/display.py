"""Console display utilities for bacroute."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable

from bacroute.__version__ import __version__


class ConsoleFormatter:
    """Console output formatter for plan summaries."""

    def __init__(self, width: int = 60):
        self.width = width

    def header(self) -> str:
        lines = ["=" * self.width]
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        title = f"bacroute plan  ·  {timestamp}  ·  v{__version__}"
        if len(title) < self.width:
            title = " " * ((self.width - len(title)) // 2) + title
        lines.append(title)
        lines.append("-" * self.width)
        return "\n".join(lines)

    def separator(self, char: str = "-") -> str:
        return char * self.width

    def format_line(self, label: str, value: str, label_width: int = 14) -> str:
        return f"· {label:<{label_width}} : {value}"

    def _format_path(self, path: Path) -> str:
        """Show paths relative to the working directory when possible."""
        try:
            return str(Path(path).resolve().relative_to(Path.cwd().resolve()))
        except ValueError:
            return str(path)

    def format_config(self, config: Dict[str, Any]) -> str:
        lines = []
        labels = (
            ("input", "Manifest"),
            ("assembler", "Assembler"),
            ("assembly_type", "Assembly type"),
            ("polish_method", "Polishing"),
            ("annotation_tool", "Annotation"),
            ("kraken2db", "Kraken2 db"),
            ("output", "Plan file"),
        )
        for key, label in labels:
            if key not in config:
                continue
            value = config[key]
            if isinstance(value, Path):
                value = self._format_path(value)
            lines.append(self.format_line(label, "off" if value is None else str(value)))
        return "\n".join(lines)

    def format_summary(self, lines: Iterable[str]) -> str:
        return "\n".join(f"· {line}" if not line.startswith(" ") else line for line in lines)


def print_formatted(message: str, file=None) -> None:
    """Print formatted message to the console (stderr unless ``file`` is given)."""
    print(message, file=file or sys.stderr, flush=True)
