"""Custom exception hierarchy for repolens.

All repolens-specific exceptions derive from RepolensError. Each exception
carries an optional ``context`` dict with structured metadata (root,
extractor name, path, etc.) that the CLI error handler can render.

Exception hierarchy::

    RepolensError
    ├── AnalysisTimeoutError
    ├── ExtractorError
    ├── InvalidProjectPathError
    ├── ConfigError
    └── ExportError

The analysis core never lets these escape ``repolens.analyze()``; they are
raised by the CLI layer or used internally to unwind a cancelled scan.
"""
from __future__ import annotations

from typing import Optional


class RepolensError(Exception):
    """Base class for all repolens exceptions.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1

    def __init__(self, message: str, context: Optional[dict] = None):
        self.context = context or {}
        super().__init__(message)


class AnalysisTimeoutError(RepolensError):
    """Raised by a cooperative deadline check once the budget is spent."""

    def __init__(self, budget_ms: int, stage: str = ""):
        msg = f"Analysis exceeded its {budget_ms} ms budget"
        if stage:
            msg += f" during {stage}"
        super().__init__(msg, context={"budget_ms": budget_ms, "stage": stage})


class ExtractorError(RepolensError):
    """Raised when a backend extractor fails on a root."""

    def __init__(self, message: str, root: str = "", extractor: str = ""):
        super().__init__(message, context={"root": root, "extractor": extractor})


class InvalidProjectPathError(RepolensError):
    """Raised when the path handed to the CLI is not a readable directory."""

    exit_code = 2

    def __init__(self, path: str):
        super().__init__(f"Not a directory: {path}", context={"path": path})


class ConfigError(RepolensError):
    """Raised when configuration is invalid or missing."""
    pass


class ExportError(RepolensError):
    """Raised when a report cannot be written."""

    def __init__(self, message: str, output_path: str = "", format: str = ""):
        super().__init__(message, context={"output": output_path, "format": format})
