"""Architecture classification from folder naming conventions."""
from __future__ import annotations

import re
from dataclasses import dataclass

from .models import TreeNode
from .tree_scanner import flatten

ML_PIPELINE = "ML pipeline"
MICROSERVICES = "Microservices"
MVC = "MVC"
LAYERED = "Layered / Service-based"
COMPONENT_BASED = "Component-based"
ROUTE_CONTROLLER_MODEL = "Route-Controller-Model"
BASIC_STRUCTURED = "Basic structured"
BASIC_FLAT = "Basic / Flat"

# Distinct service/api-named directories needed before a tree reads as microservices
MICROSERVICE_MIN_DIRS = 3

_ML_SCRIPT_SUFFIXES = (".py", ".ipynb")

# Whole-token keywords; prefixes also match longer tokens such as "training"
_TRAINING_PREFIXES = ("train", "preprocess")
_DATA_TOKENS = {"data", "dataset", "datasets"}
_SERVICE_TOKENS = {"service", "services", "api", "apis"}

_NAME_SEPARATOR_RE = re.compile(r"[\s_.\-]+")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def name_tokens(name: str) -> list[str]:
    """Lowercased words of a file or directory name.

    ``train_model.py`` -> ``["train", "model", "py"]``;
    ``userService`` -> ``["user", "service"]``.
    """
    tokens: list[str] = []
    for chunk in _NAME_SEPARATOR_RE.split(name):
        tokens.extend(part.lower() for part in _CAMEL_BOUNDARY_RE.split(chunk) if part)
    return tokens


def _is_training_name(name: str) -> bool:
    return any(token.startswith(_TRAINING_PREFIXES) for token in name_tokens(name))


@dataclass
class PathSignals:
    """Which conventional names appear anywhere in a tree."""

    controllers: bool = False
    models: bool = False
    views: bool = False
    routes: bool = False
    services: bool = False
    repositories: bool = False
    components: bool = False
    pages: bool = False
    data_dirs: bool = False
    training: bool = False
    service_dir_count: int = 0


def collect_signals(tree: list[TreeNode]) -> PathSignals:
    nodes = flatten(tree)
    paths = [node.relative_path.lower() for node in nodes]
    dirs = [node for node in nodes if node.is_dir]

    def has(segment: str) -> bool:
        return any(segment in p for p in paths)

    service_dirs = {
        node.relative_path.lower()
        for node in dirs
        if _SERVICE_TOKENS.intersection(name_tokens(node.name))
    }
    training_dir = any(_is_training_name(node.name) for node in dirs)
    training_script = any(
        not node.is_dir
        and node.name.lower().endswith(_ML_SCRIPT_SUFFIXES)
        and _is_training_name(node.name)
        for node in nodes
    )

    return PathSignals(
        controllers=has("controllers"),
        models=has("models"),
        views=has("views"),
        routes=has("routes"),
        services=has("services"),
        repositories=has("repositories"),
        components=has("components"),
        pages=has("pages"),
        data_dirs=any(_DATA_TOKENS.intersection(name_tokens(node.name)) for node in dirs),
        training=training_dir or training_script,
        service_dir_count=len(service_dirs),
    )


def detect_architecture(tree: list[TreeNode]) -> str:
    """Map a tree's conventional folder names to an architectural style.

    Checked in order, first match wins: ML pipeline, Microservices, MVC,
    Layered / Service-based, Component-based (components with pages or
    routes), Route-Controller-Model, Basic structured, Component-based
    (components alone), Basic / Flat.
    """
    s = collect_signals(tree)

    if s.data_dirs and s.training:
        return ML_PIPELINE
    if s.service_dir_count >= MICROSERVICE_MIN_DIRS and (s.routes or s.controllers):
        return MICROSERVICES
    if s.controllers and s.models and (s.views or s.routes):
        return MVC
    if s.controllers and s.services and (s.models or s.repositories):
        return LAYERED
    if s.components and (s.pages or s.routes):
        return COMPONENT_BASED
    if s.routes and (s.controllers or s.models):
        return ROUTE_CONTROLLER_MODEL
    if s.controllers or s.models or s.routes:
        return BASIC_STRUCTURED
    if s.components:
        return COMPONENT_BASED
    return BASIC_FLAT
