"""Ecosystem, framework and entry-point detection.

All three work from marker files at a root: dependency manifests, build
descriptors and conventional entry filenames. Nothing here reads source
text beyond a bounded probe for the Spring Boot application class.
"""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from .manifests import (
    has_python_manifest,
    is_spring_boot,
    package_dependencies,
    python_dependencies,
    read_build_descriptors,
    read_package_json,
)
from .models import NOT_DETECTED, UNKNOWN
from .tree_scanner import get_all_files, read_text_safely

logger = logging.getLogger(__name__)

# Dependency name -> framework label, most specific first
NODE_FRAMEWORK_SIGNATURES: list[tuple[str, str]] = [
    ("next", "Next.js"),
    ("nuxt", "Nuxt.js"),
    ("nuxt3", "Nuxt.js"),
    ("@sveltejs/kit", "SvelteKit"),
    ("@nestjs/core", "NestJS"),
    ("express", "Express.js"),
    ("fastify", "Fastify"),
    ("koa", "Koa"),
    ("@hapi/hapi", "Hapi"),
    ("@angular/core", "Angular"),
    ("react", "React"),
    ("react-dom", "React"),
    ("vue", "Vue.js"),
    ("svelte", "Svelte"),
    ("vite", "Vite"),
]

SERVER_FRAMEWORK_DEPS: set[str] = {"@nestjs/core", "express", "fastify", "koa", "@hapi/hapi"}

UI_FRAMEWORK_DEPS: set[str] = {
    "next", "nuxt", "nuxt3", "@sveltejs/kit", "@angular/core",
    "react", "react-dom", "vue", "svelte",
}

PYTHON_FRAMEWORK_SIGNATURES: list[tuple[str, str]] = [
    ("django", "Django"),
    ("fastapi", "FastAPI"),
    ("flask", "Flask"),
]

PYTHON_SERVER_DEPS: set[str] = {name for name, _ in PYTHON_FRAMEWORK_SIGNATURES}

SPRING_BOOT = "Spring Boot"

# Marker file -> language label, checked in order
LANGUAGE_MARKERS: list[tuple[str, str]] = [
    ("go.mod", "Go"),
    ("Cargo.toml", "Rust"),
    ("Gemfile", "Ruby"),
    ("composer.json", "PHP"),
]

# Fallback when no marker exists: dominant source extension
LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".java": "Java",
    ".kt": "Kotlin",
    ".go": "Go",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".cs": "C#",
    ".swift": "Swift",
    ".scala": "Scala",
    ".c": "C",
    ".cpp": "C++",
    ".dart": "Dart",
    ".ex": "Elixir",
}

BACKEND_ENTRY_CANDIDATES = [
    "app.js", "index.js", "server.js", "src/index.js", "src/app.js", "src/server.js", "main.js",
    "app.ts", "index.ts", "server.ts", "src/index.ts", "src/app.ts", "src/server.ts", "src/main.ts",
    "main.py", "app.py", "manage.py", "wsgi.py", "asgi.py", "run.py", "src/main.py", "app/main.py",
    "src/main.jsx", "src/main.tsx", "src/main.js", "src/index.jsx", "src/index.tsx",
    "src/App.jsx", "src/App.tsx", "index.html",
]


def detect_language(root: Path) -> str:
    """Name the dominant language/runtime at ``root``."""
    if (root / "package.json").is_file():
        deps = package_dependencies(root)
        if (root / "tsconfig.json").is_file() or "typescript" in deps:
            return "TypeScript / Node.js"
        return "JavaScript / Node.js"
    if has_python_manifest(root):
        return "Python"
    if any((root / name).is_file() for name in ("pom.xml", "build.gradle", "build.gradle.kts")):
        if (root / "build.gradle.kts").is_file() or (root / "src" / "main" / "kotlin").is_dir():
            return "Kotlin / JVM"
        return "Java / JVM"
    for marker, label in LANGUAGE_MARKERS:
        if (root / marker).is_file():
            return label
    return _language_from_extensions(root)


def _language_from_extensions(root: Path) -> str:
    files = get_all_files(root, extensions=set(LANGUAGE_BY_EXTENSION), max_files=2000)
    counts = Counter(LANGUAGE_BY_EXTENSION[Path(f).suffix.lower()] for f in files)
    if not counts:
        return UNKNOWN
    return counts.most_common(1)[0][0]


def _ordered_signatures(prefer: str | None) -> list[tuple[str, str]]:
    if prefer == "backend":
        preferred = SERVER_FRAMEWORK_DEPS
    elif prefer == "frontend":
        preferred = UI_FRAMEWORK_DEPS
    else:
        return NODE_FRAMEWORK_SIGNATURES
    first = [sig for sig in NODE_FRAMEWORK_SIGNATURES if sig[0] in preferred]
    rest = [sig for sig in NODE_FRAMEWORK_SIGNATURES if sig[0] not in preferred]
    return first + rest


def detect_framework(root: Path, prefer: str | None = None) -> str:
    """Name the web/application framework declared at ``root``.

    Args:
        root: Directory holding the manifest.
        prefer: ``"backend"`` or ``"frontend"`` moves that family's signatures
            to the front, so a fullstack root reports the relevant one.

    Returns:
        The first matching framework label, ``"<ecosystem> (no major
        framework detected)"`` when a manifest exists but nothing matches,
        or ``"Unknown"`` when there is no manifest at all.
    """
    has_manifest = False

    if read_package_json(root) is not None:
        has_manifest = True
        deps = package_dependencies(root)
        for dep_name, label in _ordered_signatures(prefer):
            if dep_name in deps:
                return label

    if read_build_descriptors(root):
        has_manifest = True
        if is_spring_boot(root):
            return SPRING_BOOT

    if has_python_manifest(root):
        has_manifest = True
        py_deps = set(python_dependencies(root))
        for dep_name, label in PYTHON_FRAMEWORK_SIGNATURES:
            if dep_name in py_deps:
                return label

    if has_manifest:
        return f"{detect_language(root)} (no major framework detected)"
    return UNKNOWN


def has_server_dependency(root: Path) -> bool:
    """True when any manifest at ``root`` declares a server framework."""
    deps = package_dependencies(root)
    if any(name in deps for name in SERVER_FRAMEWORK_DEPS):
        return True
    if is_spring_boot(root):
        return True
    if has_python_manifest(root):
        return bool(PYTHON_SERVER_DEPS & set(python_dependencies(root)))
    return False


def has_ui_dependency(root: Path) -> bool:
    deps = package_dependencies(root)
    return any(name in deps for name in UI_FRAMEWORK_DEPS)


def first_existing(root: Path, candidates: list[str]) -> str | None:
    for candidate in candidates:
        if (root / candidate).is_file():
            return candidate
    return None


def find_entry_point(root: Path) -> str:
    """Locate the most likely process entry file of a backend root.

    The package.json ``main`` field wins when it points at a real file, then
    a Spring Boot application class, then the ranked candidate list.
    """
    pkg = read_package_json(root)
    if pkg and isinstance(pkg.get("main"), str):
        main = pkg["main"]
        if main.startswith("./"):
            main = main[2:]
        if main and (root / main).is_file():
            return main

    if is_spring_boot(root):
        spring_entry = _find_spring_application(root)
        if spring_entry:
            return spring_entry

    return first_existing(root, BACKEND_ENTRY_CANDIDATES) or NOT_DETECTED


def _find_spring_application(root: Path) -> str | None:
    for source_dir in ("src/main/java", "src/main/kotlin"):
        base = root / source_dir
        if not base.is_dir():
            continue
        for rel in get_all_files(base, extensions={".java", ".kt"}, max_files=500):
            if not Path(rel).stem.endswith("Application"):
                continue
            text = read_text_safely(base / rel, max_bytes=80_000)
            if text and "@SpringBootApplication" in text:
                return f"{source_dir}/{rel}"
    return None
