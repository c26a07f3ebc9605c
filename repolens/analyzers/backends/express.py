"""Call-site extractor for Node.js servers (Express, Koa, Fastify, NestJS).

Routes come from ``router.get('/path', handler)`` style call sites,
controllers from the exports of files under a ``controllers`` directory,
and models from schema literals under a ``models`` directory.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path

from ..manifests import read_package_json
from ..models import ControllerModule, ModelDefinition, Route
from ..textscan import balanced_block, block_after, split_top_level, unique
from .base import FIELDS_NOT_PARSED, BackendExtractor, dedupe_routes, stem

logger = logging.getLogger(__name__)

# Only the opening of a call is matched; its arguments are read as a balanced block
ROUTE_CALL_RE = re.compile(
    r"(?P<receiver>[\w$]+)\s*\.\s*(?P<method>get|post|put|patch|delete|all)\s*\("
)
CHAINED_ROUTE_RE = re.compile(r"\.\s*route\s*\(\s*(?P<q>[`'\"])(?P<path>[^`'\"]*)(?P=q)\s*\)")
CHAIN_CALL_RE = re.compile(r"\s*\.\s*(get|post|put|patch|delete|all)\s*\(")
# Route paths start with "/" or are a "*" catch-all
ROUTE_PATH_RE = re.compile(r"([`'\"])(?P<path>[/*][^`'\"]*)\1")
MOUNT_REQUIRE_RE = re.compile(
    r"(?:router|app)\s*\.\s*use\s*\(\s*[`'\"]([^`'\"]*)[`'\"]\s*,\s*"
    r"require\s*\(\s*[`'\"]([^`'\"]+)[`'\"]\s*\)"
)
MOUNT_NAME_RE = re.compile(
    r"(?:router|app)\s*\.\s*use\s*\(\s*[`'\"]([^`'\"]*)[`'\"]\s*,\s*([\w$]+)\s*\)"
)
REQUIRE_HANDLER_RE = re.compile(r"require\s*\(\s*[`'\"]([^`'\"]+)[`'\"]\s*\)(?:\s*\.\s*(\w+))?")

# HTTP *client* objects whose .get()/.post() calls are not route definitions
CLIENT_RECEIVERS: set[str] = {
    "axios", "http", "https", "api", "apiClient", "client", "request", "superagent",
    "fetch", "ky", "got", "needle", "instance", "$", "jQuery", "cy", "supertest",
}

INLINE_HANDLER = "<inline handler>"
INLINE_START_RE = re.compile(r"\(|function\b|async\s*(?:\(|function\b)")

MODULE_EXPORTS_RE = re.compile(r"module\.exports\s*=\s*")
NAMED_EXPORT_RE = re.compile(r"(?:module\.)?exports\.(\w+)\s*=")
ES_EXPORT_DECL_RE = re.compile(
    r"export\s+(?:async\s+)?(?:function\s*\*?\s*(\w+)|(?:const|let|var)\s+(\w+)\s*=)"
)
ES_EXPORT_LIST_RE = re.compile(r"export\s*\{([^}]*)\}")
EXPORT_DEFAULT_RE = re.compile(r"export\s+default\s+(?:class\s+)?(\w+)")
CLASS_METHOD_RE = re.compile(r"^[ \t]+(?:static\s+)?(?:async\s+)?(\w+)\s*\([^)]*\)\s*\{", re.MULTILINE)
_NOT_METHODS = {"if", "for", "while", "switch", "catch", "constructor", "function", "return", "with"}

MODEL_KEYWORD_RE = re.compile(r"mongoose|Schema|model|sequelize|define|Entity|Column", re.IGNORECASE)
SCHEMA_START_RE = re.compile(r"(?:new\s+(?:mongoose\.)?Schema|\bSchema)\s*\(")
DEFINE_RE = re.compile(r"\.define\s*\(\s*[`'\"](\w+)[`'\"]\s*,")
INIT_RE = re.compile(r"\b(\w+)\s*\.\s*init\s*\(")
TYPED_FIELD_RE = re.compile(r"(\w+)\s*:\s*\{\s*type\s*:")
TYPEORM_FIELD_RE = re.compile(
    r"@(?:Column|PrimaryGeneratedColumn|PrimaryColumn|CreateDateColumn|UpdateDateColumn"
    r"|ManyToOne|OneToMany|OneToOne|ManyToMany)\s*\([^)]*\)\s*(\w+)\s*[!?]?\s*:"
)
MODEL_NAME_RE = re.compile(r"\bmodel\s*(?:<[^>]*>)?\s*\(\s*[`'\"](\w+)[`'\"]")
PRISMA_MODEL_RE = re.compile(r"^model\s+(\w+)\s*\{", re.MULTILINE)


def normalize_handler(raw: str) -> str:
    """Reduce a handler expression to a short name.

    ``userController.list`` -> ``list``; ``require('./x').show`` -> ``show``;
    ``auth, ctrl.create`` -> ``create``; inline functions -> ``<inline handler>``.
    """
    raw = raw.strip()
    args = [a.strip() for a in split_top_level(raw)] or [raw]
    for arg in args:
        if INLINE_START_RE.match(arg) or "=>" in arg:
            return INLINE_HANDLER

    last = args[-1]
    if last.startswith("require"):
        match = REQUIRE_HANDLER_RE.match(last)
        if match:
            return match.group(2) or match.group(1).rstrip("/").rsplit("/", 1)[-1]
    if "(" in last:
        # wrapped handlers such as asyncHandler(ctrl.list)
        last = last.rsplit("(", 1)[-1].rstrip(") \t\n").strip()
    if "." in last:
        last = last.split(".")[-1].strip()
    return last or raw


def extract_routes_from_text(text: str, source_file: str) -> list[Route]:
    """Recover call-site routes from one file, in source order.

    A call counts as a route only when its first argument is a path string
    and at least one handler follows it. The handler is the last argument,
    so middleware such as ``auth()`` or ``validate(schema)`` is skipped.
    """
    found: list[tuple[int, Route]] = []

    for m in ROUTE_CALL_RE.finditer(text):
        if m.group("receiver") in CLIENT_RECEIVERS:
            continue
        block = balanced_block(text, m.end() - 1)
        if block is None:
            continue
        args = split_top_level(block)
        if len(args) < 2:
            continue
        path = ROUTE_PATH_RE.fullmatch(args[0])
        if not path:
            continue
        found.append((m.start(), Route(
            method=m.group("method").upper(),
            path=path.group("path").strip(),
            handler=normalize_handler(args[-1]),
            source_file=source_file,
        )))

    for m in CHAINED_ROUTE_RE.finditer(text):
        pos = m.end()
        while True:
            call = CHAIN_CALL_RE.match(text, pos)
            if not call:
                break
            open_index = call.end() - 1
            block = balanced_block(text, open_index)
            if block is None:
                break
            args = split_top_level(block)
            found.append((m.start(), Route(
                method=call.group(1).upper(),
                path=m.group("path").strip(),
                handler=normalize_handler(args[-1]) if args else INLINE_HANDLER,
                source_file=source_file,
            )))
            pos = open_index + len(block) + 2

    for m in MOUNT_REQUIRE_RE.finditer(text):
        module = m.group(2).rstrip("/").rsplit("/", 1)[-1]
        found.append((m.start(), Route("ALL", m.group(1).strip(), module, source_file)))
    for m in MOUNT_NAME_RE.finditer(text):
        found.append((m.start(), Route("ALL", m.group(1).strip(), m.group(2), source_file)))

    found.sort(key=lambda item: item[0])
    return [route for _, route in found]


def _object_keys(block: str) -> list[str]:
    """Top-level keys of an object literal body, in order."""
    names: list[str] = []
    for item in split_top_level(block):
        if item.startswith("..."):
            continue
        method = re.match(r"(?:async\s+)?\*?\s*(\w+)\s*\(", item)
        prop = re.match(r"[`'\"]?(\w+)[`'\"]?\s*:", item)
        shorthand = re.fullmatch(r"(\w+)", item)
        if prop:
            names.append(prop.group(1))
        elif method:
            names.append(method.group(1))
        elif shorthand:
            names.append(shorthand.group(1))
    return names


def exported_methods(text: str) -> list[str]:
    """Names a module exports, as an ordered unique list.

    Covers ``module.exports = {...}`` object literals (property, method
    shorthand and arrow-function members), ``exports.x =`` assignments,
    ES ``export`` declarations and lists, class methods of an exported
    class, and a ``module.exports = Name`` default alias.
    """
    methods: list[str] = []

    for m in MODULE_EXPORTS_RE.finditer(text):
        after = m.end()
        if after < len(text) and text[after] == "{":
            block = balanced_block(text, after)
            if block:
                methods.extend(_object_keys(block))
        else:
            alias = re.match(r"(?:new\s+)?(\w+)", text[after:])
            if alias and alias.group(1) not in ("require", "function", "class", "async"):
                methods.append(alias.group(1))

    methods.extend(m.group(1) for m in NAMED_EXPORT_RE.finditer(text))

    for m in ES_EXPORT_DECL_RE.finditer(text):
        methods.append(m.group(1) or m.group(2))
    for m in ES_EXPORT_LIST_RE.finditer(text):
        for item in m.group(1).split(","):
            parts = item.split(" as ")
            name = parts[-1].strip()
            if re.fullmatch(r"\w+", name):
                methods.append(name)

    default = EXPORT_DEFAULT_RE.search(text)
    if default:
        methods.append(default.group(1))

    if re.search(r"\bclass\s+\w+", text):
        methods.extend(
            name for name in CLASS_METHOD_RE.findall(text) if name not in _NOT_METHODS
        )

    return unique(methods)


def schema_fields(text: str) -> list[str]:
    """Field names from schema literals and ``field: { type: ... }`` shorthand."""
    fields: list[str] = []

    starts = [m.end() for m in SCHEMA_START_RE.finditer(text)]
    starts += [m.end() for m in DEFINE_RE.finditer(text)]
    starts += [m.end() for m in INIT_RE.finditer(text)]
    for start in starts:
        block = block_after(text, start)
        if block:
            fields.extend(_object_keys(block))

    fields.extend(TYPED_FIELD_RE.findall(text))
    fields.extend(TYPEORM_FIELD_RE.findall(text))
    return unique(fields)


def prisma_models(text: str, source_file: str) -> list[ModelDefinition]:
    """Models declared in a Prisma schema file."""
    models: list[ModelDefinition] = []
    for m in PRISMA_MODEL_RE.finditer(text):
        block = balanced_block(text, m.end() - 1) or ""
        fields = [
            line.split()[0]
            for line in block.splitlines()
            if line.strip() and not line.strip().startswith(("//", "@@"))
        ]
        models.append(ModelDefinition(
            name=m.group(1),
            file=source_file,
            schema_summary=", ".join(fields) if fields else FIELDS_NOT_PARSED,
        ))
    return models


class ExpressExtractor(BackendExtractor):
    """Call-site extractor for JavaScript/TypeScript servers."""

    name = "express"
    source_extensions = {".js", ".mjs", ".cjs", ".ts"}

    @classmethod
    def matches(cls, root: Path) -> bool:
        return read_package_json(root) is not None

    def extract_routes(self) -> list[Route]:
        routes: list[Route] = []
        for rel in self.source_files():
            text = self.read(rel)
            if text:
                routes.extend(extract_routes_from_text(text, rel))
        return dedupe_routes(routes)

    def extract_controllers(self) -> list[ControllerModule]:
        controllers: list[ControllerModule] = []
        for rel in self.files_under("controllers"):
            text = self.read(rel)
            if text is None:
                continue
            name = stem(rel)
            methods = exported_methods(text)
            if methods or "controller" in name.lower():
                controllers.append(ControllerModule(name=name, file=rel, methods=methods))
        return controllers

    def extract_models(self) -> list[ModelDefinition]:
        models: list[ModelDefinition] = []
        for rel in self.files_under("models"):
            text = self.read(rel)
            if not text or not MODEL_KEYWORD_RE.search(text):
                continue
            declared = MODEL_NAME_RE.search(text) or DEFINE_RE.search(text)
            fields = schema_fields(text)
            models.append(ModelDefinition(
                name=declared.group(1) if declared else stem(rel),
                file=rel,
                schema_summary=", ".join(fields) if fields else FIELDS_NOT_PARSED,
            ))

        prisma = self.root / "prisma" / "schema.prisma"
        if prisma.is_file():
            text = self.read("prisma/schema.prisma")
            if text:
                models.extend(prisma_models(text, "prisma/schema.prisma"))
        return models
