"""README summary extraction."""
from __future__ import annotations

from pathlib import Path

from .tree_scanner import read_text_safely

README_NAMES = ["README.md", "README.MD", "readme.md", "README.txt", "README"]
README_MAX_CHARS = 1500
TRUNCATION_MARKER = "\n\n... (truncated)"


def readme_summary(project_path: Path | str, max_chars: int = README_MAX_CHARS) -> str | None:
    """First ``max_chars`` characters of the project's README, or None."""
    root = Path(project_path)
    for name in README_NAMES:
        path = root / name
        if not path.is_file():
            continue
        raw = read_text_safely(path)
        if not raw:
            return None
        text = raw.replace("\r\n", "\n").strip()
        if len(text) <= max_chars:
            return text
        return text[:max_chars] + TRUNCATION_MARKER
    return None
