"""Decorator extractor for Python web frameworks (Flask, FastAPI, Django)."""
from __future__ import annotations

import logging
import re
from pathlib import Path

from ..ecosystem import PYTHON_SERVER_DEPS
from ..manifests import has_python_manifest, python_dependencies
from ..models import ControllerModule, ModelDefinition, Route
from ..textscan import unique
from .base import FIELDS_NOT_PARSED, BackendExtractor, dedupe_routes, stem

logger = logging.getLogger(__name__)

CONTROLLER_DIRS = ("views", "routers", "controllers", "endpoints")

VERB_DECORATOR_RE = re.compile(
    r"^[ \t]*@\w+(?:\.\w+)*\.(get|post|put|patch|delete|api_route)\s*\(\s*[rbuf]?(['\"])(.*?)\2",
    re.MULTILINE,
)
ROUTE_DECORATOR_RE = re.compile(
    r"^[ \t]*@\w+(?:\.\w+)*\.route\s*\(\s*[rbuf]?(['\"])(.*?)\1(?P<rest>[^\n]*)",
    re.MULTILINE,
)
METHODS_ARG_RE = re.compile(r"methods\s*=\s*[\[(]([^\])]*)[\])]")
DEF_RE = re.compile(r"^[ \t]*(?:async\s+)?def\s+(\w+)\s*\(", re.MULTILINE)
DJANGO_PATH_RE = re.compile(
    r"\b(?:re_)?path\s*\(\s*r?(['\"])(.*?)\1\s*,\s*([\w.]+)"
)
DJANGO_INCLUDE_RE = re.compile(r"include\s*\(\s*(['\"])([\w.]+)\1")
TOP_LEVEL_DEF_RE = re.compile(r"^(?:async\s+)?def\s+([A-Za-z]\w*)\s*\(", re.MULTILINE)
VIEW_CLASS_RE = re.compile(r"^class\s+(\w+)\s*\([^)]*(?:View|ViewSet|APIView|Resource)[^)]*\)", re.MULTILINE)

CLASS_RE = re.compile(r"^class\s+(\w+)\s*\(([^)]*)\)\s*:", re.MULTILINE)
COLUMN_RE = re.compile(r"^[ \t]+(\w+)\s*(?::\s*[^=\n]+)?=\s*(?:\w+\.)?(?:Column|mapped_column|relationship)\s*\(", re.MULTILINE)
DJANGO_FIELD_RE = re.compile(r"^[ \t]+(\w+)\s*=\s*models\.\w+(?:Field|Key)\s*\(", re.MULTILINE)
ANNOTATED_FIELD_RE = re.compile(r"^[ \t]+([a-z_]\w*)\s*:\s*[^=\n]+", re.MULTILINE)

_MODEL_BASES = ("Base", "Model", "BaseModel", "SQLModel", "DeclarativeBase", "models.Model", "db.Model")


def _handler_after(text: str, index: int) -> str:
    match = DEF_RE.search(text, index)
    return match.group(1) if match else "<anonymous>"


def extract_routes_from_text(text: str, source_file: str) -> list[Route]:
    """Decorator routes and Django URL patterns from one module."""
    found: list[tuple[int, Route]] = []

    for m in VERB_DECORATOR_RE.finditer(text):
        verb = m.group(1).upper()
        method = "ALL" if verb == "API_ROUTE" else verb
        found.append((m.start(), Route(method, m.group(3), _handler_after(text, m.end()), source_file)))

    for m in ROUTE_DECORATOR_RE.finditer(text):
        handler = _handler_after(text, m.end())
        declared = METHODS_ARG_RE.search(m.group("rest"))
        methods = re.findall(r"\w+", declared.group(1)) if declared else ["GET"]
        for method in methods:
            found.append((m.start(), Route(method.upper(), m.group(2), handler, source_file)))

    for m in DJANGO_PATH_RE.finditer(text):
        path = m.group(2)
        if not path.startswith("/") and not path.startswith("^"):
            path = "/" + path
        handler = m.group(3).removesuffix(".as_view").split(".")[-1]
        if handler == "include":
            included = DJANGO_INCLUDE_RE.match(text, m.start(3))
            handler = included.group(2) if included else handler
        found.append((m.start(), Route("ALL", path, handler, source_file)))

    found.sort(key=lambda item: item[0])
    return [route for _, route in found]


def _class_body(text: str, start: int) -> str:
    """Indented lines following a class statement."""
    lines: list[str] = []
    for line in text[start:].splitlines()[1:]:
        if line.strip() and not line[0].isspace():
            break
        lines.append(line)
    return "\n".join(lines)


def model_definitions(text: str, source_file: str) -> list[ModelDefinition]:
    """ORM and schema classes declared in one module."""
    models: list[ModelDefinition] = []
    for m in CLASS_RE.finditer(text):
        name, bases = m.group(1), m.group(2)
        body = _class_body(text, m.start())
        fields = COLUMN_RE.findall(body) + DJANGO_FIELD_RE.findall(body)
        is_model = bool(fields) or any(
            base.strip().split("[")[0] in _MODEL_BASES for base in bases.split(",")
        )
        if not is_model:
            continue
        if not fields:
            fields = [f for f in ANNOTATED_FIELD_RE.findall(body) if f != "model_config"]
        fields = [f for f in unique(fields) if not f.startswith("__")]
        models.append(ModelDefinition(
            name=name,
            file=source_file,
            schema_summary=", ".join(fields) if fields else FIELDS_NOT_PARSED,
        ))
    return models


class PythonWebExtractor(BackendExtractor):
    """Flask/FastAPI decorators, Django URL patterns and ORM classes."""

    name = "python-web"
    source_extensions = {".py"}

    @classmethod
    def matches(cls, root: Path) -> bool:
        if not has_python_manifest(root):
            return False
        return bool(PYTHON_SERVER_DEPS & set(python_dependencies(root)))

    def extract_routes(self) -> list[Route]:
        routes: list[Route] = []
        for rel in self.source_files():
            text = self.read(rel)
            if text and ("route" in text or "path(" in text or "@" in text):
                routes.extend(extract_routes_from_text(text, rel))
        return dedupe_routes(routes)

    def _controller_files(self) -> list[str]:
        files: set[str] = set()
        for dir_name in CONTROLLER_DIRS:
            files.update(self.files_under(dir_name))
        # Django keeps views in app-level views.py modules
        files.update(rel for rel in self.source_files() if Path(rel).name == "views.py")
        return sorted(rel for rel in files if Path(rel).name != "__init__.py")

    def extract_controllers(self) -> list[ControllerModule]:
        controllers: list[ControllerModule] = []
        for rel in self._controller_files():
            text = self.read(rel)
            if text is None:
                continue
            methods = unique(
                [n for n in TOP_LEVEL_DEF_RE.findall(text) if not n.startswith("_")]
                + VIEW_CLASS_RE.findall(text)
            )
            if methods:
                controllers.append(ControllerModule(name=stem(rel), file=rel, methods=methods))
        return controllers

    def extract_models(self) -> list[ModelDefinition]:
        models: list[ModelDefinition] = []
        for rel in self.source_files():
            parts = rel.split("/")
            if not ("models" in parts[:-1] or parts[-1] in ("models.py", "schemas.py")
                    or "schemas" in parts[:-1]):
                continue
            text = self.read(rel)
            if text:
                models.extend(model_definitions(text, rel))
        return models
