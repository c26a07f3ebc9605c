"""Analysis pipeline and timeout guard.

``analyze()`` runs the full pipeline (tree scan, project-type detection,
per-root analysis, README summary, explanation) on a worker thread and
waits for it against the wall-clock budget. Whichever settles first wins:
a finished pipeline yields a full result, an expired budget cancels the
pipeline's deadline and substitutes a shallow partial scan. Nothing raised
inside the pipeline reaches the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from repolens.analyzers.ecosystem import detect_language
from repolens.analyzers.explanation import build_explanation
from repolens.analyzers.models import (
    PARTIAL_ERROR,
    PARTIAL_TIMEOUT,
    UNKNOWN,
    AnalysisOutcome,
    AnalysisResult,
    ProjectClassification,
)
from repolens.analyzers.orchestrator import orchestrate
from repolens.analyzers.project_type import detect_project_type
from repolens.analyzers.readme import readme_summary
from repolens.analyzers.textscan import unique
from repolens.analyzers.tree_scanner import resolve_root, scan
from repolens.core.config_service import DEFAULTS, get_config_service
from repolens.core.deadline import Deadline
from repolens.errors import AnalysisTimeoutError, ConfigError

logger = logging.getLogger("repolens.core.analysis")

Pipeline = Callable[[Path, Deadline], AnalysisResult]


@dataclass
class AnalysisSettings:
    """Effective knobs for one analysis run."""

    timeout_ms: int
    max_depth: int
    partial_max_depth: int
    max_file_bytes: int

    @classmethod
    def defaults(cls) -> AnalysisSettings:
        analysis = DEFAULTS["analysis"]
        return cls(
            timeout_ms=analysis["timeout_ms"],
            max_depth=analysis["max_depth"],
            partial_max_depth=analysis["partial_max_depth"],
            max_file_bytes=analysis["max_file_bytes"],
        )

    @classmethod
    def from_config(cls) -> AnalysisSettings:
        """Read settings from the config service, falling back to defaults."""
        config = get_config_service()
        try:
            return cls(
                timeout_ms=config.timeout_ms(),
                max_depth=config.max_depth(),
                partial_max_depth=config.partial_max_depth(),
                max_file_bytes=config.max_file_bytes(),
            )
        except ConfigError as e:
            logger.warning("Ignoring invalid configuration: %s", e)
            return cls.defaults()


def project_language(project_path: Path, classification: ProjectClassification) -> str:
    """Language of the project, combining sub-roots for monorepos."""
    roots = unique(
        classification.backend_roots + classification.frontend_roots + classification.ml_roots
    )
    if classification.is_monorepo and roots:
        languages = unique(detect_language(resolve_root(project_path, r)) for r in roots)
        languages = [lang for lang in languages if lang != UNKNOWN]
        if languages:
            return ", ".join(languages)
    return detect_language(project_path)


def root_name(project_path: Path) -> str:
    return project_path.name or str(project_path)


def run_pipeline(
    project_path: Path,
    deadline: Deadline,
    settings: Optional[AnalysisSettings] = None,
) -> AnalysisResult:
    """Run the full analysis synchronously, checking ``deadline`` as it goes."""
    settings = settings or AnalysisSettings.defaults()

    folder_tree = scan(
        project_path, settings.max_depth,
        max_file_bytes=settings.max_file_bytes, deadline=deadline,
    )
    classification = detect_project_type(project_path)
    deadline.check("project type detection")

    modules = orchestrate(
        project_path, classification,
        max_depth=settings.max_depth, max_file_bytes=settings.max_file_bytes, deadline=deadline,
    )
    deadline.check("module analysis")

    result = AnalysisResult(
        root_name=root_name(project_path),
        classification=classification,
        language=project_language(project_path, classification),
        backend_modules=modules.backend_modules,
        frontend_modules=modules.frontend_modules,
        ml_modules=modules.ml_modules,
        errors=modules.errors,
        folder_tree=folder_tree,
        readme_summary=readme_summary(project_path),
    )
    result.explanation = build_explanation(result)
    result.elapsed_ms = deadline.elapsed_ms()
    return result


def partial_result(project_path: Path, settings: Optional[AnalysisSettings] = None) -> AnalysisResult:
    """Shallow scan plus skeletal classification, used once the budget is spent."""
    settings = settings or AnalysisSettings.defaults()
    folder_tree = scan(
        project_path, settings.partial_max_depth, max_file_bytes=settings.max_file_bytes
    )
    try:
        classification = detect_project_type(project_path)
    except Exception as e:
        logger.warning("Project type detection failed during partial scan: %s", e)
        classification = ProjectClassification()

    result = AnalysisResult(
        root_name=root_name(project_path),
        classification=classification,
        folder_tree=folder_tree,
        partial=True,
    )
    result.explanation = build_explanation(result)
    return result


def run_with_timeout(
    work: Callable[[Deadline], AnalysisResult],
    budget_ms: Optional[int],
    fallback: Callable[[], AnalysisResult],
) -> AnalysisOutcome:
    """Race ``work`` against ``budget_ms`` and return whichever settles first.

    ``work`` runs on a daemon thread with a Deadline it can check. On expiry
    the deadline is cancelled, any late result is discarded, and
    ``fallback()`` provides the partial result. A failing ``work`` is also
    answered with the fallback.
    """
    deadline = Deadline(budget_ms)
    settled = threading.Event()
    outcome: dict = {}

    def runner() -> None:
        try:
            outcome["result"] = work(deadline)
        except AnalysisTimeoutError as e:
            outcome["timeout"] = e
        except Exception as e:
            outcome["error"] = e
        finally:
            settled.set()

    # Daemon thread: an abandoned scan is never joined
    thread = threading.Thread(target=runner, name="repolens-analysis", daemon=True)
    thread.start()

    finished = settled.wait(deadline.remaining())
    if finished and "result" in outcome:
        return AnalysisOutcome(result=outcome["result"], partial=False)

    deadline.cancel()
    if not finished or "timeout" in outcome:
        reason = PARTIAL_TIMEOUT
        logger.warning("Analysis exceeded its %s ms budget; returning a partial result", budget_ms)
    else:
        reason = PARTIAL_ERROR
        error = outcome["error"]
        logger.warning(
            "Analysis pipeline failed (%s); returning a partial result", error,
            exc_info=(type(error), error, error.__traceback__),
        )

    result = fallback()
    result.partial = True
    result.partial_reason = reason
    result.elapsed_ms = deadline.elapsed_ms()
    return AnalysisOutcome(result=result, partial=True)


def analyze(
    path: Path | str,
    budget_ms: Optional[int] = None,
    *,
    max_depth: Optional[int] = None,
    max_file_bytes: Optional[int] = None,
    partial_max_depth: Optional[int] = None,
    pipeline: Optional[Pipeline] = None,
) -> AnalysisOutcome:
    """Analyze a local source tree within a wall-clock budget.

    Args:
        path: Directory holding the already-fetched source tree.
        budget_ms: Wall-clock budget; the configured timeout when omitted.
        max_depth: Tree scan depth for the full pipeline.
        max_file_bytes: Files above this size are ignored.
        partial_max_depth: Tree scan depth for the partial fallback.
        pipeline: Replaces the full pipeline; receives the path and deadline.

    Returns:
        AnalysisOutcome with ``partial`` True when the budget expired or
        the pipeline failed.
    """
    settings = AnalysisSettings.from_config()
    if budget_ms is not None:
        settings.timeout_ms = budget_ms
    if max_depth is not None:
        settings.max_depth = max_depth
    if max_file_bytes is not None:
        settings.max_file_bytes = max_file_bytes
    if partial_max_depth is not None:
        settings.partial_max_depth = partial_max_depth

    project_path = Path(path).expanduser().resolve()
    logger.debug("Analyzing %s with a %d ms budget", project_path, settings.timeout_ms)

    if pipeline is None:
        def work(deadline: Deadline) -> AnalysisResult:
            return run_pipeline(project_path, deadline, settings)
    else:
        def work(deadline: Deadline) -> AnalysisResult:
            return pipeline(project_path, deadline)

    return run_with_timeout(
        work,
        settings.timeout_ms,
        lambda: partial_result(project_path, settings),
    )
