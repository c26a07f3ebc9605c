"""Service layer for repolens.

Services return typed dataclasses and never import from repolens.ui,
repolens.cli, or typer. The CLI layer handles presentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class ExportResult:
    """Result of writing an analysis report to disk."""

    format: str
    output_path: Path
    size_bytes: int
