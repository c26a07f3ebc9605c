"""Depth- and size-bounded directory scanning.

``scan`` builds the hierarchical TreeNode view used by the architecture
classifier and the folder-tree rendering; ``get_all_files`` gives the flat
relative-path list the text-scanning extractors iterate over. Both skip the
same noise directories, skip files above the byte ceiling, and return empty
results for unreadable directories.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from repolens.core.deadline import Deadline, ensure_deadline

from .models import TreeNode

logger = logging.getLogger(__name__)

# Directories never descended into
IGNORE_DIRS: set[str] = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "bower_components",
    "jspm_packages",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
    ".nox",
    ".venv",
    "venv",
    "env",
    ".env",
    ".eggs",
    "dist",
    "build",
    "out",
    "target",
    ".gradle",
    ".next",
    ".nuxt",
    ".svelte-kit",
    ".output",
    ".turbo",
    ".parcel-cache",
    "coverage",
    "htmlcov",
    ".idea",
    ".vscode",
    "vendor",
    "Pods",
    ".terraform",
    ".ipynb_checkpoints",
}

MAX_FILE_BYTES = 2 * 1024 * 1024
DEFAULT_MAX_DEPTH = 6

# Cap for rendered tree lines
TREE_MAX_LINES = 400


def is_ignored_dir(name: str) -> bool:
    return name in IGNORE_DIRS or name.endswith(".egg-info")


def _sorted_entries(directory: Path) -> list[os.DirEntry]:
    """List a directory with dirs first, then files, each sorted by name."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        logger.debug("Could not read directory %s: %s", directory, e)
        return []

    def sort_key(entry: os.DirEntry) -> tuple[int, str]:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            is_dir = False
        return (0 if is_dir else 1, entry.name)

    return sorted(entries, key=sort_key)


def _file_size(entry: os.DirEntry) -> int | None:
    try:
        return entry.stat(follow_symlinks=False).st_size
    except OSError:
        return None


def scan(
    root_dir: Path | str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    max_file_bytes: int = MAX_FILE_BYTES,
    deadline: Deadline | None = None,
) -> list[TreeNode]:
    """Scan a directory into a list of top-level TreeNodes.

    Args:
        root_dir: Directory to scan.
        max_depth: Deepest level listed; top-level entries are depth 1.
        max_file_bytes: Files larger than this are left out of the tree.
        deadline: Checked once per directory visited.

    Returns:
        Ordered TreeNodes (directories first, names sorted within kind),
        or an empty list if the directory can't be read.
    """
    deadline = ensure_deadline(deadline)
    root = Path(root_dir)
    return _scan_dir(root, "", 1, max_depth, max_file_bytes, deadline)


def _scan_dir(
    directory: Path,
    prefix: str,
    depth: int,
    max_depth: int,
    max_file_bytes: int,
    deadline: Deadline,
) -> list[TreeNode]:
    if depth > max_depth:
        return []
    deadline.check("tree scan")

    nodes: list[TreeNode] = []
    for entry in _sorted_entries(directory):
        rel = f"{prefix}/{entry.name}" if prefix else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file(follow_symlinks=False)
        except OSError:
            continue

        if is_dir:
            if is_ignored_dir(entry.name):
                continue
            children = _scan_dir(
                Path(entry.path), rel, depth + 1, max_depth, max_file_bytes, deadline
            )
            nodes.append(TreeNode(name=entry.name, kind="dir", relative_path=rel, children=children))
        elif is_file:
            size = _file_size(entry)
            if size is None or size > max_file_bytes:
                continue
            nodes.append(TreeNode(name=entry.name, kind="file", relative_path=rel))
    return nodes


def scan_root(
    project_path: Path | str,
    root: str = ".",
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    max_file_bytes: int = MAX_FILE_BYTES,
    deadline: Deadline | None = None,
) -> list[TreeNode]:
    """Scan a sub-root (``"."`` for the project itself)."""
    return scan(
        resolve_root(project_path, root),
        max_depth,
        max_file_bytes=max_file_bytes,
        deadline=deadline,
    )


def resolve_root(project_path: Path | str, root: str) -> Path:
    project_path = Path(project_path)
    return project_path if root in ("", ".") else project_path / root


def get_all_files(
    root_dir: Path | str,
    *,
    extensions: set[str] | None = None,
    max_files: int | None = None,
    max_file_bytes: int = MAX_FILE_BYTES,
    deadline: Deadline | None = None,
) -> list[str]:
    """Return every file under ``root_dir`` as a sorted relative POSIX path.

    Noise directories and oversized files are skipped. ``extensions`` limits
    the result to the given suffixes (lower-case, with the dot).
    """
    deadline = ensure_deadline(deadline)
    root = Path(root_dir)
    if not root.is_dir():
        return []

    files: list[str] = []
    for current, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        deadline.check("file listing")
        dirnames[:] = sorted(d for d in dirnames if not is_ignored_dir(d))
        for name in sorted(filenames):
            if extensions is not None and Path(name).suffix.lower() not in extensions:
                continue
            full = Path(current) / name
            try:
                if full.stat().st_size > max_file_bytes:
                    continue
            except OSError:
                continue
            files.append(full.relative_to(root).as_posix())
    files.sort()
    if max_files is not None:
        files = files[:max_files]
    return files


def _log_walk_error(error: OSError) -> None:
    logger.debug("Could not read directory %s: %s", error.filename, error)


def read_text_safely(path: Path, max_bytes: int = MAX_FILE_BYTES) -> str | None:
    """Read a text file, returning None when missing, unreadable or too big."""
    try:
        if path.stat().st_size > max_bytes:
            return None
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Could not read %s: %s", path, e)
        return None


def flatten(nodes: list[TreeNode]) -> list[TreeNode]:
    """Depth-first list of every node in the tree."""
    flat: list[TreeNode] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        flat.append(node)
        stack.extend(reversed(node.children))
    return flat


def flatten_paths(nodes: list[TreeNode]) -> list[str]:
    return [node.relative_path for node in flatten(nodes)]


def tree_depth(nodes: list[TreeNode]) -> int:
    """Deepest level present in the tree (0 for an empty tree)."""
    return max((node.relative_path.count("/") + 1 for node in flatten(nodes)), default=0)


def render_tree_text(nodes: list[TreeNode], root_name: str = ".") -> str:
    """Render a tree as indented text with box-drawing connectors.

    The first line is always the root name, so the text is never empty.
    """
    lines = [f"{root_name.rstrip('/')}/"]
    _render(nodes, "", lines)
    if len(lines) > TREE_MAX_LINES:
        lines = lines[:TREE_MAX_LINES]
        lines.append("... (truncated)")
    return "\n".join(lines)


def _render(nodes: list[TreeNode], indent: str, lines: list[str]) -> None:
    for i, node in enumerate(nodes):
        if len(lines) > TREE_MAX_LINES:
            return
        last = i == len(nodes) - 1
        connector = "└── " if last else "├── "
        suffix = "/" if node.is_dir else ""
        lines.append(f"{indent}{connector}{node.name}{suffix}")
        if node.children:
            _render(node.children, indent + ("    " if last else "│   "), lines)
