"""Analysis report export.

Supports two formats:
  - JSON: the camelCase ``{partial, result}`` payload, pretty-printed
  - YAML: the same payload as block-style YAML
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml

from repolens.analyzers.models import AnalysisOutcome
from repolens.core import ExportResult
from repolens.errors import ExportError

logger = logging.getLogger("repolens.core.export")

SUPPORTED_FORMATS = ("json", "yaml")

_SUFFIX_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def format_for_path(path: Path, default: str = "json") -> str:
    """Infer the export format from a file suffix."""
    return _SUFFIX_FORMATS.get(path.suffix.lower(), default)


def render_outcome(outcome: AnalysisOutcome, format: str = "json") -> str:
    """Serialize an outcome to text.

    Raises:
        ExportError: If ``format`` is not supported.
    """
    data = outcome.to_dict()
    if format == "json":
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    if format == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    raise ExportError(
        f"Unknown export format '{format}'. Use: {', '.join(SUPPORTED_FORMATS)}",
        format=format,
    )


class ExportService:
    """Writes analysis outcomes to files."""

    def export(
        self,
        outcome: AnalysisOutcome,
        output_path: Path,
        format: str | None = None,
    ) -> ExportResult:
        """Write ``outcome`` to ``output_path``.

        Args:
            outcome: The analysis outcome to serialize.
            output_path: Destination file; parent directories are created.
            format: 'json' or 'yaml'. Inferred from the suffix when omitted.

        Raises:
            ExportError: On an unknown format or a write failure.
        """
        output_path = Path(output_path)
        format = format or format_for_path(output_path)
        text = render_outcome(outcome, format)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ExportError(
                f"Could not write report to {output_path}: {e}",
                output_path=str(output_path),
                format=format,
            ) from e

        size = output_path.stat().st_size
        logger.info("Exported analysis as %s to %s (%d bytes)", format.upper(), output_path, size)
        return ExportResult(format=format, output_path=output_path, size_bytes=size)
