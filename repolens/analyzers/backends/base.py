"""Backend extractor protocol and shared helpers.

Each server ecosystem gets one BackendExtractor subclass that recovers the
same three entity kinds (routes, controllers, models) from a root, so the
orchestrator and the explanation layer never care which ecosystem produced
them.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from repolens.core.deadline import Deadline, ensure_deadline

from ..models import ControllerModule, ModelDefinition, Route
from ..tree_scanner import get_all_files, read_text_safely

logger = logging.getLogger(__name__)

FIELDS_NOT_PARSED = "Schema detected (fields not parsed)"


class BackendExtractor(ABC):
    """Recovers routes, controllers and models from one backend root."""

    name: str = ""
    source_extensions: set[str] = set()

    def __init__(self, root: Path, deadline: Deadline | None = None):
        self.root = Path(root)
        self.deadline = ensure_deadline(deadline)
        self._files: list[str] | None = None

    @classmethod
    @abstractmethod
    def matches(cls, root: Path) -> bool:
        """Return True if this extractor should handle ``root``."""

    @abstractmethod
    def extract_routes(self) -> list[Route]: ...

    @abstractmethod
    def extract_controllers(self) -> list[ControllerModule]: ...

    @abstractmethod
    def extract_models(self) -> list[ModelDefinition]: ...

    def extract_services(self) -> list[ControllerModule]:
        return []

    def application_config(self) -> str | None:
        return None

    # ── shared helpers ──

    def source_files(self) -> list[str]:
        """Sorted relative paths of every source file this extractor reads."""
        if self._files is None:
            self._files = get_all_files(
                self.root, extensions=self.source_extensions, deadline=self.deadline
            )
        return self._files

    def files_under(self, dir_name: str) -> list[str]:
        """Source files with a directory segment named ``dir_name``."""
        wanted = dir_name.lower()
        return [
            rel for rel in self.source_files()
            if wanted in (part.lower() for part in rel.split("/")[:-1])
        ]

    def read(self, rel: str, max_bytes: int | None = None) -> str | None:
        self.deadline.check(f"{self.name} extraction")
        if max_bytes is None:
            return read_text_safely(self.root / rel)
        return read_text_safely(self.root / rel, max_bytes=max_bytes)


def dedupe_routes(routes: list[Route]) -> list[Route]:
    """Keep the first route per (method, path) in sorted source-file order.

    The result is sorted by source file, then path, then method, so running
    it over its own output changes nothing.
    """
    ordered = sorted(routes, key=lambda r: r.source_file)  # stable within a file
    seen: set[tuple[str, str]] = set()
    kept: list[Route] = []
    for route in ordered:
        if route.key in seen:
            continue
        seen.add(route.key)
        kept.append(route)
    return sorted(kept, key=lambda r: (r.source_file, r.path, r.method))


def stem(rel: str) -> str:
    """File name without its final extension."""
    return Path(rel).stem
