"""Annotation extractor for Spring Boot (Java and Kotlin)."""
from __future__ import annotations

import logging
import re
from pathlib import Path

from ..manifests import is_spring_boot
from ..models import ControllerModule, ModelDefinition, Route
from ..textscan import blank_comments, unique
from ..tree_scanner import get_all_files
from .base import BackendExtractor, dedupe_routes, stem

logger = logging.getLogger(__name__)

SOURCE_ROOTS = ("src/main/java", "src/main/kotlin", "src")

MAX_SOURCE_FILES = 250
MAX_ROUTE_FILES = 200
MAX_SOURCE_BYTES = 80_000
MAX_CONTROLLER_METHODS = 15
MAX_CONFIG_LINES = 30

APPLICATION_CONFIG_CANDIDATES = (
    "src/main/resources/application.properties",
    "src/main/resources/application.yml",
    "src/main/resources/application.yaml",
    "application.properties",
    "application.yml",
)

# A class declaration at the start of a line, after modifiers or annotations
CLASS_RE = re.compile(
    r"^[ \t]*(?:(?:@[\w.]+(?:\([^)]*\))?|public|protected|private|internal|static"
    r"|final|abstract|open|data|sealed)\s+)*class\s+(\w+)",
    re.MULTILINE,
)
MAPPING_RE = re.compile(
    r"@(?P<verb>Get|Post|Put|Delete|Patch|Request)Mapping\b\s*(?:\((?P<args>[^)]*)\))?"
)
NAMED_PATH_RE = re.compile(r"\b(?:value|path)\s*=\s*\{?\s*\"([^\"]*)\"")
FIRST_STRING_RE = re.compile(r"\"([^\"]*)\"")
REQUEST_METHOD_RE = re.compile(r"RequestMethod\.(\w+)")
ANNOTATION_RE = re.compile(r"@[\w.]+(?:\s*\([^)]*\))?")
CALL_NAME_RE = re.compile(r"(\w+)\s*\(")
PUBLIC_METHOD_RE = re.compile(
    r"(?:\bpublic\s+(?:static\s+)?(?:final\s+)?[\w.]+(?:<[^;{]*?>)?(?:\[\])?\s+|\bfun\s+)(\w+)\s*\("
)
JAVA_FIELD_RE = re.compile(
    r"\b(?:private|protected)\s+(?:final\s+)?[\w.]+(?:<[^;{]*?>)?(?:\[\])?\s+(\w+)\s*[;=]"
)
KOTLIN_FIELD_RE = re.compile(r"\b(?:val|var)\s+(\w+)\s*:")

_KEYWORDS = {"if", "for", "while", "switch", "catch", "return", "new", "synchronized"}


def mapping_path(args: str | None) -> str:
    if not args:
        return ""
    named = NAMED_PATH_RE.search(args)
    if named:
        return named.group(1)
    first = FIRST_STRING_RE.search(args)
    return first.group(1) if first else ""


def join_paths(base: str, sub: str) -> str:
    base = base.rstrip("/")
    if not sub:
        return base or "/"
    if not sub.startswith("/"):
        sub = "/" + sub
    return (base + sub) or "/"


def method_name_after(text: str, index: int) -> str | None:
    """Name of the method declared right after an annotation ending at ``index``."""
    window = ANNOTATION_RE.sub(" ", text[index:index + 600])
    window = re.split(r"[{;=]", window, maxsplit=1)[0]
    for name in CALL_NAME_RE.findall(window):
        if name not in _KEYWORDS:
            return name
    return None


def extract_routes_from_text(text: str, source_file: str) -> list[Route]:
    """Routes declared by mapping annotations in one controller source file.

    A ``@RequestMapping`` placed before the class declaration supplies the
    base path. Method-level mappings supply the verb and the sub-path.
    Annotations and class names inside comments are ignored.
    """
    text = blank_comments(text)
    class_match = CLASS_RE.search(text)
    class_index = class_match.start(1) if class_match else -1
    class_name = class_match.group(1) if class_match else stem(source_file)

    base_path = ""
    routes: list[Route] = []
    for m in MAPPING_RE.finditer(text):
        verb = m.group("verb")
        path = mapping_path(m.group("args"))
        if m.start() < class_index:
            if verb == "Request":
                base_path = path
            continue

        if verb == "Request":
            declared = REQUEST_METHOD_RE.search(m.group("args") or "")
            method = declared.group(1).upper() if declared else "ALL"
        else:
            method = verb.upper()
        routes.append(Route(
            method=method,
            path=join_paths(base_path, path),
            handler=method_name_after(text, m.end()) or class_name,
            source_file=source_file,
        ))
    return routes


def class_name_of(text: str, rel: str) -> str:
    match = CLASS_RE.search(blank_comments(text))
    return match.group(1) if match else stem(rel)


def has_annotation(text: str, *names: str) -> bool:
    return any(re.search(rf"@{name}\b", text) for name in names)


class SpringExtractor(BackendExtractor):
    """Routes, controllers, services and entities from Spring annotations."""

    name = "spring"
    source_extensions = {".java", ".kt"}

    @classmethod
    def matches(cls, root: Path) -> bool:
        return is_spring_boot(root)

    def source_root(self) -> str:
        for candidate in SOURCE_ROOTS:
            if (self.root / candidate).is_dir():
                return candidate
        return ""

    def source_files(self) -> list[str]:
        if self._files is None:
            prefix = self.source_root()
            files = get_all_files(
                self.root / prefix,
                extensions=self.source_extensions,
                max_files=MAX_SOURCE_FILES,
                max_file_bytes=MAX_SOURCE_BYTES,
                deadline=self.deadline,
            )
            self._files = [f"{prefix}/{rel}" if prefix else rel for rel in files]
        return self._files

    def _sources(self):
        for rel in self.source_files()[:MAX_ROUTE_FILES]:
            text = self.read(rel, max_bytes=MAX_SOURCE_BYTES)
            if text:
                yield rel, text

    def extract_routes(self) -> list[Route]:
        routes: list[Route] = []
        for rel, text in self._sources():
            if has_annotation(text, "RestController", "Controller") or MAPPING_RE.search(text):
                routes.extend(extract_routes_from_text(text, rel))
        return dedupe_routes(routes)

    def extract_controllers(self) -> list[ControllerModule]:
        controllers: list[ControllerModule] = []
        for rel, text in self._sources():
            if not has_annotation(text, "RestController", "Controller"):
                continue
            name = class_name_of(text, rel)
            methods = [m for m in unique(PUBLIC_METHOD_RE.findall(text)) if m != name]
            controllers.append(ControllerModule(
                name=name, file=rel, methods=methods[:MAX_CONTROLLER_METHODS]
            ))
        return controllers

    def extract_services(self) -> list[ControllerModule]:
        services: list[ControllerModule] = []
        for rel, text in self._sources():
            if not has_annotation(text, "Service", "Component"):
                continue
            name = class_name_of(text, rel)
            methods = [m for m in unique(PUBLIC_METHOD_RE.findall(text)) if m != name]
            services.append(ControllerModule(
                name=name, file=rel, methods=methods[:MAX_CONTROLLER_METHODS]
            ))
        return services

    def extract_models(self) -> list[ModelDefinition]:
        entities: list[ModelDefinition] = []
        for rel, text in self._sources():
            if not has_annotation(text, "Entity"):
                continue
            fields = unique(JAVA_FIELD_RE.findall(text) + KOTLIN_FIELD_RE.findall(text))
            entities.append(ModelDefinition(
                name=class_name_of(text, rel),
                file=rel,
                schema_summary=", ".join(fields) if fields else "Entity",
            ))
        return entities

    def application_config(self) -> str | None:
        """First non-comment lines of the Spring application config."""
        for candidate in APPLICATION_CONFIG_CANDIDATES:
            if not (self.root / candidate).is_file():
                continue
            text = self.read(candidate, max_bytes=20_000)
            if not text:
                continue
            lines = [
                line for line in text.splitlines()
                if line.strip() and not line.strip().startswith(("#", "!"))
            ]
            return "\n".join(lines[:MAX_CONFIG_LINES])
        return None
