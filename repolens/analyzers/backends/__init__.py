"""Backend extractor registry and dispatch.

Extractors are tried in registration order; the first whose ``matches``
accepts the root handles it. The call-site extractor is the fallback for
roots no ecosystem-specific extractor claims.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from repolens.core.deadline import Deadline

from .base import BackendExtractor
from .express import ExpressExtractor
from .python_web import PythonWebExtractor
from .spring import SpringExtractor

logger = logging.getLogger("repolens.backends")

EXTRACTORS: dict[str, type[BackendExtractor]] = {
    SpringExtractor.name: SpringExtractor,
    PythonWebExtractor.name: PythonWebExtractor,
    ExpressExtractor.name: ExpressExtractor,
}

DEFAULT_EXTRACTOR = ExpressExtractor.name


def get_extractor(
    root: Path,
    deadline: Optional[Deadline] = None,
    name: Optional[str] = None,
) -> BackendExtractor:
    """Pick and instantiate the extractor for a backend root.

    Args:
        root: Absolute path of the backend root.
        deadline: Shared analysis deadline.
        name: Force a specific extractor instead of auto-detection.

    Raises:
        KeyError: If ``name`` is not a registered extractor.
    """
    if name:
        return EXTRACTORS[name](root, deadline)

    for extractor_name, extractor_cls in EXTRACTORS.items():
        if extractor_cls.matches(root):
            logger.debug("Using %s extractor for %s", extractor_name, root)
            return extractor_cls(root, deadline)

    logger.debug("No extractor matched %s, falling back to %s", root, DEFAULT_EXTRACTOR)
    return EXTRACTORS[DEFAULT_EXTRACTOR](root, deadline)


def get_extractor_names() -> list[str]:
    """Registered extractor names in detection order."""
    return list(EXTRACTORS)


__all__ = [
    "BackendExtractor",
    "EXTRACTORS",
    "ExpressExtractor",
    "PythonWebExtractor",
    "SpringExtractor",
    "get_extractor",
    "get_extractor_names",
]
