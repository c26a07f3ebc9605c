"""Per-root analysis fan-out.

Runs the backend, frontend and ML analyzers over the roots a
ProjectClassification names. A failing root is recorded as a ModuleError
and its siblings still run; only a spent deadline stops the loop.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from repolens.core.deadline import Deadline, ensure_deadline
from repolens.errors import AnalysisTimeoutError, ExtractorError

from .architecture import detect_architecture
from .backends import get_extractor
from .ecosystem import detect_framework, find_entry_point
from .frontend_analyzer import analyze_frontend
from .ml_analyzer import analyze_ml
from .models import BackendModule, FrontendModule, MLModule, ModuleError, ProjectClassification
from .tree_scanner import DEFAULT_MAX_DEPTH, MAX_FILE_BYTES, resolve_root, scan_root

logger = logging.getLogger(__name__)


@dataclass
class OrchestratedModules:
    backend_modules: list[BackendModule] = field(default_factory=list)
    frontend_modules: list[FrontendModule] = field(default_factory=list)
    ml_modules: list[MLModule] = field(default_factory=list)
    errors: list[ModuleError] = field(default_factory=list)


def analyze_backend(
    project_path: Path,
    root: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_file_bytes: int = MAX_FILE_BYTES,
    deadline: Deadline | None = None,
) -> BackendModule:
    """Analyze one backend root with the extractor its ecosystem selects.

    Raises:
        ExtractorError: If the extractor fails on this root.
        AnalysisTimeoutError: If the deadline is spent mid-analysis.
    """
    deadline = ensure_deadline(deadline)
    root_path = resolve_root(project_path, root)
    folder_tree = scan_root(
        project_path, root, max_depth, max_file_bytes=max_file_bytes, deadline=deadline
    )
    extractor = get_extractor(root_path, deadline)

    try:
        routes = extractor.extract_routes()
        controllers = extractor.extract_controllers()
        models = extractor.extract_models()
        services = extractor.extract_services()
        application_config = extractor.application_config()
    except AnalysisTimeoutError:
        raise
    except Exception as e:
        raise ExtractorError(str(e), root=root, extractor=extractor.name) from e

    return BackendModule(
        root=root,
        framework=detect_framework(root_path, prefer="backend"),
        architecture=detect_architecture(folder_tree),
        entry_point=find_entry_point(root_path),
        extractor=extractor.name,
        routes=routes,
        controllers=controllers,
        models=models,
        services=services,
        application_config=application_config,
        folder_tree=folder_tree,
    )


def orchestrate(
    project_path: Path | str,
    classification: ProjectClassification,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_file_bytes: int = MAX_FILE_BYTES,
    deadline: Deadline | None = None,
) -> OrchestratedModules:
    """Analyze every root in ``classification``, isolating failures per root."""
    deadline = ensure_deadline(deadline)
    project_path = Path(project_path)
    out = OrchestratedModules()

    for root in classification.backend_roots:
        try:
            out.backend_modules.append(analyze_backend(
                project_path, root,
                max_depth=max_depth, max_file_bytes=max_file_bytes, deadline=deadline,
            ))
        except AnalysisTimeoutError:
            raise
        except Exception as e:
            _record(out, root, "backend", e)

    for root in classification.frontend_roots:
        try:
            out.frontend_modules.append(
                analyze_frontend(resolve_root(project_path, root), root, deadline)
            )
        except AnalysisTimeoutError:
            raise
        except Exception as e:
            _record(out, root, "frontend", e)

    for root in classification.ml_roots:
        try:
            module = analyze_ml(resolve_root(project_path, root), root, deadline)
        except AnalysisTimeoutError:
            raise
        except Exception as e:
            _record(out, root, "ml", e)
            continue
        if module.has_evidence:
            out.ml_modules.append(module)

    return out


def _record(out: OrchestratedModules, root: str, kind: str, error: Exception) -> None:
    logger.warning("%s analysis failed for root %r: %s", kind.capitalize(), root, error)
    out.errors.append(ModuleError(root=root, kind=kind, error=str(error)))
