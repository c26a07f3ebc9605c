"""Dependency manifest and build descriptor readers.

Every reader tolerates a missing or malformed file and returns an empty
result; parse failures are logged, never raised.
"""
from __future__ import annotations

import json
import logging
import re
import tomllib
from pathlib import Path

import yaml

from .tree_scanner import read_text_safely

logger = logging.getLogger(__name__)

PYTHON_MANIFESTS = ("requirements.txt", "pyproject.toml", "setup.py", "Pipfile", "environment.yml")
BUILD_DESCRIPTORS = ("pom.xml", "build.gradle", "build.gradle.kts")

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._\-]*)")


def read_package_json(root: Path) -> dict | None:
    """Load package.json at ``root``; None when absent or invalid."""
    path = root / "package.json"
    if not path.is_file():
        return None
    text = read_text_safely(path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def package_dependencies(root: Path, include_dev: bool = True) -> dict[str, str]:
    """Merged ``dependencies`` (and ``devDependencies``) of package.json."""
    pkg = read_package_json(root)
    if not pkg:
        return {}
    deps: dict[str, str] = {}
    sections = ("dependencies", "devDependencies") if include_dev else ("dependencies",)
    for section in sections:
        block = pkg.get(section)
        if isinstance(block, dict):
            for name, version in block.items():
                deps[name] = str(version)
    return deps


def normalize_package_name(name: str) -> str:
    """Normalize a Python distribution name for comparison.

    Lower-cases and folds ``-`` and ``.`` to ``_``.
    """
    return name.strip().lower().replace("-", "_").replace(".", "_")


def requirement_name(spec: str) -> str | None:
    """Extract the bare distribution name from a requirement string.

    Strips environment markers, extras and version specifiers.
    """
    spec = spec.split(";")[0].split("#")[0].strip()
    if not spec or spec.startswith("-"):
        return None
    match = _REQUIREMENT_NAME.match(spec)
    return match.group(1) if match else None


def parse_requirements_txt(path: Path) -> list[str]:
    """Parse dependency names from a requirements file."""
    text = read_text_safely(path)
    if text is None:
        return []
    names: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        name = requirement_name(line)
        if name:
            names.append(name)
    return names


def parse_pyproject_toml(path: Path) -> list[str]:
    """Parse dependency names from PEP 621 and Poetry tables."""
    text = read_text_safely(path)
    if text is None:
        return []
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return []

    names: list[str] = []
    project = data.get("project", {})
    specs = list(project.get("dependencies", []) or [])
    for extra in (project.get("optional-dependencies", {}) or {}).values():
        specs.extend(extra or [])
    for spec in specs:
        if isinstance(spec, str):
            name = requirement_name(spec)
            if name:
                names.append(name)

    poetry = data.get("tool", {}).get("poetry", {})
    tables = [poetry.get("dependencies", {}), poetry.get("dev-dependencies", {})]
    for group in (poetry.get("group", {}) or {}).values():
        if isinstance(group, dict):
            tables.append(group.get("dependencies", {}))
    for table in tables:
        if isinstance(table, dict):
            names.extend(name for name in table if name.lower() != "python")
    return names


def parse_pipfile(path: Path) -> list[str]:
    """Parse package names from a Pipfile."""
    text = read_text_safely(path)
    if text is None:
        return []
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return []
    names: list[str] = []
    for section in ("packages", "dev-packages"):
        block = data.get(section, {})
        if isinstance(block, dict):
            names.extend(block)
    return names


def parse_environment_yml(path: Path) -> list[str]:
    """Parse package names from a conda environment file."""
    text = read_text_safely(path)
    if text is None:
        return []
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return []
    if not isinstance(data, dict):
        return []

    names: list[str] = []
    for dep in data.get("dependencies", []) or []:
        if isinstance(dep, str):
            # conda specs use "name=version" or "channel::name"
            name = requirement_name(dep.split("::")[-1].replace("=", "==", 1))
            if name and name.lower() not in ("python", "pip"):
                names.append(name)
        elif isinstance(dep, dict):
            for spec in dep.get("pip", []) or []:
                name = requirement_name(str(spec))
                if name:
                    names.append(name)
    return names


def python_dependencies(root: Path) -> list[str]:
    """Normalized, de-duplicated Python dependency names declared at ``root``."""
    names: list[str] = []
    names.extend(parse_requirements_txt(root / "requirements.txt"))
    names.extend(parse_pyproject_toml(root / "pyproject.toml"))
    names.extend(parse_pipfile(root / "Pipfile"))
    names.extend(parse_environment_yml(root / "environment.yml"))

    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        normalized = normalize_package_name(name)
        if normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


def has_python_manifest(root: Path) -> bool:
    return any((root / name).is_file() for name in PYTHON_MANIFESTS)


def read_build_descriptors(root: Path) -> str:
    """Concatenated text of any Maven/Gradle build descriptors at ``root``."""
    parts: list[str] = []
    for name in BUILD_DESCRIPTORS:
        path = root / name
        if path.is_file():
            text = read_text_safely(path, max_bytes=500_000)
            if text:
                parts.append(text)
    return "\n".join(parts)


def is_spring_boot(root: Path) -> bool:
    """True when a build descriptor declares Spring Boot."""
    return "spring-boot" in read_build_descriptors(root)
