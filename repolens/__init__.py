"""repolens: heuristic analysis of local source trees.

``analyze(path, budget_ms)`` classifies a project, extracts backend routes,
frontend structure and ML pipeline hints, and returns an AnalysisOutcome
that is partial when the wall-clock budget runs out.
"""

__version__ = "0.3.0"

from repolens.core.analysis_service import analyze  # noqa: E402

__all__ = ["__version__", "analyze"]
