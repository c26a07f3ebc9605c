"""Project-type and monorepo detection.

Decides whether a tree is Backend Only, Frontend Only, Fullstack, ML
Project, Monorepo or Unknown, and lists the sub-roots each analyzer should
run on. Only marker files, manifests and directory names are consulted.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .ecosystem import has_server_dependency, has_ui_dependency
from .manifests import has_python_manifest
from .models import ProjectClassification, ProjectType
from .tree_scanner import is_ignored_dir

logger = logging.getLogger(__name__)

FRONTEND_ROOT_CANDIDATES = ["client", "frontend", "web", "apps/web", "packages/web"]
BACKEND_ROOT_CANDIDATES = ["server", "api", "backend", "apps/api", "packages/api"]
ML_ROOT_CANDIDATES = ["ml", "ml_service", "training", "notebooks"]

BACKEND_MARKERS = ("routes", "controllers", "models", "app.js", "server.js", "index.js")
FRONTEND_MARKERS = ("src", "components", "pages", "app")

NOTEBOOK_PROBE_SUBDIRS = 5


@dataclass
class RootIndicators:
    backend: bool = False
    frontend: bool = False
    ml: bool = False


def _list_dir(path: Path) -> list[os.DirEntry]:
    try:
        with os.scandir(path) as entries:
            return sorted(entries, key=lambda e: e.name)
    except OSError as e:
        logger.debug("Could not list %s: %s", path, e)
        return []


def has_backend_indicator(root: Path) -> bool:
    """A server-framework dependency, or a Node manifest plus server-shaped layout."""
    if has_server_dependency(root):
        return True
    if not (root / "package.json").is_file():
        return False
    return any((root / marker).exists() for marker in BACKEND_MARKERS)


def has_frontend_indicator(root: Path) -> bool:
    """A UI-framework dependency, or a Node manifest plus UI-shaped layout."""
    if has_ui_dependency(root):
        return True
    if not (root / "package.json").is_file():
        return False
    return any((root / marker).is_dir() for marker in FRONTEND_MARKERS)


def has_notebooks(root: Path) -> bool:
    """Notebooks at ``root`` or in its first few subdirectories."""
    entries = _list_dir(root)
    if any(e.name.endswith(".ipynb") for e in entries):
        return True
    subdirs = [
        e for e in entries
        if e.is_dir(follow_symlinks=False) and not is_ignored_dir(e.name)
    ]
    for sub in subdirs[:NOTEBOOK_PROBE_SUBDIRS]:
        if any(e.name.endswith(".ipynb") for e in _list_dir(Path(sub.path))):
            return True
    return False


def has_ml_indicator(root: Path) -> bool:
    if has_python_manifest(root) or has_notebooks(root):
        return True
    return any(
        e.is_file() and e.name.lower().endswith(".py") and "train" in e.name.lower()
        for e in _list_dir(root)
    )


def root_indicators(root: Path) -> RootIndicators:
    return RootIndicators(
        backend=has_backend_indicator(root),
        frontend=has_frontend_indicator(root),
        ml=has_ml_indicator(root),
    )


def existing_dirs(root: Path, candidates: list[str]) -> list[str]:
    return [name for name in candidates if (root / name).is_dir()]


def detect_project_type(project_path: Path | str) -> ProjectClassification:
    """Classify a project tree and enumerate its sub-roots.

    Canonical frontend/backend directory names decide monorepo status; ML
    roots are only ever added alongside, never counted towards it.
    """
    root = Path(project_path)
    if not root.is_dir():
        return ProjectClassification()

    frontend_roots = existing_dirs(root, FRONTEND_ROOT_CANDIDATES)
    backend_roots = existing_dirs(root, BACKEND_ROOT_CANDIDATES)
    is_monorepo = (
        len(frontend_roots) + len(backend_roots) >= 2
        or (bool(frontend_roots) and bool(backend_roots))
    )
    here = root_indicators(root)

    ml_subroots = [
        name for name in existing_dirs(root, ML_ROOT_CANDIDATES)
        if has_ml_indicator(root / name)
    ]
    ml_roots = ["."] if here.ml else ml_subroots

    if not is_monorepo:
        if here.backend and here.frontend:
            classification = ProjectClassification(ProjectType.FULLSTACK, ["."], ["."], ml_roots)
        elif here.backend:
            classification = ProjectClassification(ProjectType.BACKEND_ONLY, [], ["."], ml_subroots)
        elif here.frontend:
            classification = ProjectClassification(ProjectType.FRONTEND_ONLY, ["."], [], ml_subroots)
        elif ml_roots:
            classification = ProjectClassification(ProjectType.ML_PROJECT, [], [], ml_roots)
        else:
            classification = ProjectClassification(ProjectType.UNKNOWN)
    else:
        classification = ProjectClassification(
            project_type=ProjectType.MONOREPO,
            frontend_roots=frontend_roots or (["."] if here.frontend else []),
            backend_roots=backend_roots or (["."] if here.backend else []),
            ml_roots=ml_roots,
            is_monorepo=True,
        )

    logger.debug(
        "Classified %s as %s (frontend=%s backend=%s ml=%s)",
        root, classification.project_type.value,
        classification.frontend_roots, classification.backend_roots, classification.ml_roots,
    )
    return classification

