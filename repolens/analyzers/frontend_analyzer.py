"""Frontend root analysis: framework, entry, components, pages, routes,
state management and render mode.

Routes come from one of two conventions. Meta-frameworks (Next.js, Nuxt,
SvelteKit) derive routes from file paths under their pages directory. The
others declare routing tables in source, which are pattern-matched as
object literals (``{ path: ..., component: ..., children: [...] }``) or as
``<Route path=... element=...>`` JSX.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

from repolens.core.deadline import Deadline, ensure_deadline

from .ecosystem import NODE_FRAMEWORK_SIGNATURES, UI_FRAMEWORK_DEPS, first_existing
from .manifests import package_dependencies, read_package_json
from .models import NONE_DETECTED, NOT_DETECTED, UNKNOWN, FrontendModule, FrontendRoute, RenderMode
from .textscan import balanced_block, split_top_level, unique
from .tree_scanner import get_all_files, read_text_safely

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte", ".mjs"}
PAGE_EXTENSIONS = (".jsx", ".tsx", ".vue", ".js", ".ts", ".svelte")

COMPONENT_DIRS = [
    "components", "src/components", "src/Components", "components/ui",
    "src/components/ui", "src/lib/components", "src/app/components",
]
PAGE_DIRS = ["pages", "src/pages", "app", "src/app", "views", "src/views"]
PAGE_INDEX_FILES = ("index.jsx", "index.tsx", "index.vue", "page.jsx", "page.tsx", "+page.svelte")

ENTRY_CANDIDATES = [
    "src/main.jsx", "src/main.tsx", "src/main.js", "src/main.ts",
    "src/index.jsx", "src/index.tsx", "src/index.js",
    "src/App.jsx", "src/App.tsx", "src/App.vue",
    "index.jsx", "index.tsx", "main.jsx", "main.tsx",
    "pages/_app.js", "pages/_app.tsx", "app/layout.tsx", "app/layout.js",
    "src/routes/+layout.svelte", "app.vue",
]

MAX_COMPONENTS = 500
MAX_PAGES = 300
MAX_ROUTES = 80
ROUTE_SCAN_FILES = 100
# Conventional homes of a routing table, read before the capped scan of other files
ROUTER_DIRS = ("src/router", "router", "src/routes", "routes")
ROUTER_FILE_NAMES = {
    "app.routes.ts", "app-routing.module.ts", "router.js", "router.ts", "routes.js", "routes.ts",
    "App.jsx", "App.tsx", "App.js", "main.jsx", "main.tsx", "main.js", "main.ts",
}
STATE_SCAN_FILES = 80
STATE_SCAN_DEPTH = 4
SOURCE_PROBE_BYTES = 64_000

NEXT_FILE_ROUTES = "Next.js file-based"
NUXT_FILE_ROUTES = "Nuxt file-based"
SVELTEKIT_FILE_ROUTES = "SvelteKit file-based"
REACT_ROUTER = "React Router"
VUE_ROUTER = "Vue Router"
ANGULAR_ROUTER = "Angular Router"

STATE_LIBRARIES: list[tuple[str, str]] = [
    ("redux", "Redux"),
    ("@reduxjs/toolkit", "Redux Toolkit"),
    ("react-redux", "React-Redux"),
    ("mobx", "MobX"),
    ("mobx-react", "MobX"),
    ("zustand", "Zustand"),
    ("recoil", "Recoil"),
    ("jotai", "Jotai"),
    ("pinia", "Pinia"),
    ("vuex", "Vuex"),
    ("@ngrx/store", "NgRx"),
    ("xstate", "XState"),
]

STATE_MARKERS: list[tuple[str, str]] = [
    ("createContext", "Context API"),
    ("createStore", "Redux"),
    ("configureStore", "Redux"),
    ("defineStore", "Pinia"),
]

SSR_DATA_FUNCTIONS = ("getServerSideProps", "getStaticProps", "getInitialProps")

ROUTER_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    (ANGULAR_ROUTER, ("@angular/router", "RouterModule", "provideRouter")),
    (VUE_ROUTER, ("vue-router", "createRouter", "new VueRouter")),
    (REACT_ROUTER, ("react-router", "createBrowserRouter", "BrowserRouter", "<Route", "useRoutes")),
]

ROUTE_TABLE_START_RE = re.compile(
    r"(?:\broutes\b\s*(?::\s*\w+(?:<[^>]*>)?(?:\[\])?\s*)?[:=]|create(?:Browser|Hash|Memory)Router\s*\(|useRoutes\s*\("
    r"|forRoot\s*\(|forChild\s*\(|provideRouter\s*\()\s*\["
)
JSX_ROUTE_RE = re.compile(r"<Route\b([^>]*?)/?>", re.DOTALL)
JSX_PATH_ATTR_RE = re.compile(r"\bpath\s*=\s*[{]?\s*[`'\"]([^`'\"]*)[`'\"]")
JSX_ELEMENT_ATTR_RE = re.compile(r"\b(?:element|component|Component)\s*=\s*\{\s*<?\s*([\w.]+)")
STRING_RE = re.compile(r"[`'\"]([^`'\"]*)[`'\"]")
IMPORT_RE = re.compile(r"import\s*\(\s*[`'\"]([^`'\"]+)[`'\"]")
NUXT_SSR_OFF_RE = re.compile(r"\bssr\s*:\s*false\b")


def detect_frontend_framework(root: Path) -> str:
    """First UI framework signature declared in package.json, else Unknown."""
    deps = package_dependencies(root)
    for dep_name, label in NODE_FRAMEWORK_SIGNATURES:
        if (dep_name in UI_FRAMEWORK_DEPS or dep_name == "vite") and dep_name in deps:
            return label
    return UNKNOWN


def find_frontend_entry(root: Path) -> str:
    found = first_existing(root, ENTRY_CANDIDATES)
    if found:
        return found
    pkg = read_package_json(root)
    if pkg and isinstance(pkg.get("main"), str) and (root / pkg["main"]).is_file():
        return pkg["main"]
    return NOT_DETECTED


def _under(rel: str, directory: str) -> bool:
    return rel.startswith(directory + "/")


def collect_components(files: list[str]) -> list[str]:
    components = [
        rel for rel in files
        if any(_under(rel, d) for d in COMPONENT_DIRS) and rel.endswith(PAGE_EXTENSIONS)
    ]
    return unique(components)[:MAX_COMPONENTS]


def collect_pages(files: list[str]) -> list[str]:
    """First-level page files, plus index/page files of first-level folders."""
    pages: list[str] = []
    for directory in PAGE_DIRS:
        for rel in files:
            if not _under(rel, directory):
                continue
            rest = rel[len(directory) + 1:].split("/")
            if len(rest) == 1 and rest[0].endswith(PAGE_EXTENSIONS):
                pages.append(rel)
            elif len(rest) == 2 and rest[1] in PAGE_INDEX_FILES:
                pages.append(rel)
    return unique(pages)[:MAX_PAGES]


def route_segment(segment: str) -> str | None:
    """Map one file-system segment to a URL segment; None drops it."""
    if segment.startswith("(") and segment.endswith(")"):
        return None
    catch_all = re.fullmatch(r"\[\[?\.\.\.(\w+)\]?\]", segment)
    if catch_all:
        return "*" + catch_all.group(1)
    dynamic = re.fullmatch(r"\[(\w+)\]", segment)
    if dynamic:
        return ":" + dynamic.group(1)
    if segment.startswith("_") and len(segment) > 1:
        return ":" + segment[1:]
    return segment


def segments_to_path(segments: list[str]) -> str:
    parts = [p for p in (route_segment(s) for s in segments) if p]
    return "/" + "/".join(parts)


def next_file_routes(files: list[str]) -> list[FrontendRoute]:
    routes: list[FrontendRoute] = []
    for pages_dir in ("pages", "src/pages"):
        for rel in files:
            if not _under(rel, pages_dir) or Path(rel).suffix not in (".js", ".jsx", ".ts", ".tsx"):
                continue
            parts = rel[len(pages_dir) + 1:].split("/")
            name = PurePosixPath(parts[-1]).stem
            if parts[0] == "api" or name in ("_app", "_document", "_error"):
                continue
            segments = parts[:-1] if name == "index" else parts[:-1] + [name]
            routes.append(FrontendRoute(NEXT_FILE_ROUTES, segments_to_path(segments), name, rel))
    for app_dir in ("app", "src/app"):
        for rel in files:
            if not _under(rel, app_dir) or PurePosixPath(rel).stem != "page":
                continue
            parts = rel[len(app_dir) + 1:].split("/")[:-1]
            if parts and parts[0] == "api":
                continue
            routes.append(FrontendRoute(NEXT_FILE_ROUTES, segments_to_path(parts), "page", rel))
    return routes


def nuxt_file_routes(files: list[str]) -> list[FrontendRoute]:
    routes: list[FrontendRoute] = []
    for rel in files:
        if not _under(rel, "pages") or not rel.endswith(".vue"):
            continue
        parts = rel[len("pages/"):].split("/")
        name = PurePosixPath(parts[-1]).stem
        segments = parts[:-1] if name == "index" else parts[:-1] + [name]
        routes.append(FrontendRoute(NUXT_FILE_ROUTES, segments_to_path(segments), name, rel))
    return routes


def sveltekit_file_routes(files: list[str]) -> list[FrontendRoute]:
    routes: list[FrontendRoute] = []
    for rel in files:
        if not _under(rel, "src/routes") or PurePosixPath(rel).name != "+page.svelte":
            continue
        parts = rel[len("src/routes/"):].split("/")[:-1]
        routes.append(FrontendRoute(SVELTEKIT_FILE_ROUTES, segments_to_path(parts), "+page", rel))
    return routes


def join_route_path(parent: str, child: str) -> str:
    if not parent or child.startswith("/"):
        return child
    if not child:
        return parent
    return parent.rstrip("/") + "/" + child


def _component_name(value: str) -> str:
    value = value.strip()
    lazy = IMPORT_RE.search(value)
    if lazy:
        return PurePosixPath(lazy.group(1)).stem
    jsx = re.match(r"<\s*([\w.]+)", value)
    if jsx:
        return jsx.group(1)
    quoted = STRING_RE.fullmatch(value)
    if quoted:
        return quoted.group(1)
    ident = re.match(r"[\w.]+", value)
    return ident.group(0) if ident else ""


def parse_route_table(array_body: str, route_type: str, source_file: str,
                      parent: str = "") -> list[FrontendRoute]:
    """Routes from the body of a routing-table array literal.

    Nested ``children`` arrays are walked with their relative paths joined
    onto the parent path.
    """
    routes: list[FrontendRoute] = []
    for item in split_top_level(array_body):
        if not item.startswith("{"):
            continue
        body = balanced_block(item, 0)
        if body is None:
            continue
        path: str | None = None
        component = ""
        children: str | None = None
        for entry in split_top_level(body):
            key, sep, value = entry.partition(":")
            if not sep:
                continue
            key = key.strip().strip("'\"")
            value = value.strip()
            if key == "path":
                quoted = STRING_RE.match(value)
                path = quoted.group(1) if quoted else None
            elif key in ("component", "element", "Component", "loadComponent", "loadChildren", "redirectTo") and not component:
                component = _component_name(value)
            elif key == "children" and value.startswith("["):
                children = balanced_block(value, 0)

        full = join_route_path(parent, path) if path is not None else parent
        if path is not None:
            routes.append(FrontendRoute(route_type, full or "/", component, source_file))
        if children:
            routes.extend(parse_route_table(children, route_type, source_file, full))
    return routes


def jsx_routes(text: str, source_file: str) -> list[FrontendRoute]:
    routes: list[FrontendRoute] = []
    for m in JSX_ROUTE_RE.finditer(text):
        attrs = m.group(1)
        path = JSX_PATH_ATTR_RE.search(attrs)
        if not path:
            continue
        element = JSX_ELEMENT_ATTR_RE.search(attrs)
        routes.append(FrontendRoute(
            REACT_ROUTER, path.group(1), element.group(1) if element else "", source_file
        ))
    return routes


def router_type(text: str) -> str | None:
    for label, markers in ROUTER_MARKERS:
        if any(marker in text for marker in markers):
            return label
    return None


def route_scan_order(files: list[str]) -> list[str]:
    """Files to search for a routing table, most likely homes first.

    Known router file names come first, then files under the conventional
    router directories, then the rest (``src`` only, when it has files).
    """
    def rank(rel: str) -> int:
        if rel.rsplit("/", 1)[-1] in ROUTER_FILE_NAMES:
            return 0
        for index, directory in enumerate(ROUTER_DIRS, start=1):
            if _under(rel, directory):
                return index
        return len(ROUTER_DIRS) + 1

    others = len(ROUTER_DIRS) + 1
    preferred = sorted((f for f in files if rank(f) < others), key=rank)
    rest = [f for f in files if rank(f) == others]
    return preferred + ([f for f in rest if _under(f, "src")] or rest)


def table_routes(root: Path, files: list[str], deadline: Deadline) -> list[FrontendRoute]:
    """Routing-table routes from the first source files that declare a router."""
    routes: list[FrontendRoute] = []
    for rel in route_scan_order(files)[:ROUTE_SCAN_FILES]:
        deadline.check("frontend route scan")
        text = read_text_safely(root / rel, max_bytes=SOURCE_PROBE_BYTES)
        if not text:
            continue
        kind = router_type(text)
        if kind is None:
            continue
        for m in ROUTE_TABLE_START_RE.finditer(text):
            body = balanced_block(text, m.end() - 1)
            if body:
                routes.extend(parse_route_table(body, kind, rel))
        if kind == REACT_ROUTER:
            routes.extend(jsx_routes(text, rel))
    return routes


def extract_routes(root: Path, framework: str, files: list[str], deadline: Deadline) -> list[FrontendRoute]:
    routes: list[FrontendRoute] = []
    if framework == "Next.js":
        routes.extend(next_file_routes(files))
    elif framework == "Nuxt.js":
        routes.extend(nuxt_file_routes(files))
    elif framework == "SvelteKit":
        routes.extend(sveltekit_file_routes(files))
    routes.extend(table_routes(root, files, deadline))

    seen: set[tuple[str, str]] = set()
    unique_routes: list[FrontendRoute] = []
    for route in routes:
        key = (route.type, route.path)
        if key not in seen:
            seen.add(key)
            unique_routes.append(route)
    return unique_routes[:MAX_ROUTES]


def detect_state_management(root: Path, files: list[str], deadline: Deadline) -> list[str]:
    deps = package_dependencies(root)
    found = [label for dep_name, label in STATE_LIBRARIES if dep_name in deps]

    shallow = [
        f for f in files
        if (f.count("/") - (1 if _under(f, "src") else 0)) <= STATE_SCAN_DEPTH
    ]
    for rel in shallow[:STATE_SCAN_FILES]:
        deadline.check("state management scan")
        text = read_text_safely(root / rel, max_bytes=SOURCE_PROBE_BYTES)
        if not text:
            continue
        found.extend(label for marker, label in STATE_MARKERS if marker in text)

    found = unique(found)
    return found or [NONE_DETECTED]


def detect_render_mode(root: Path, framework: str, files: list[str]) -> RenderMode:
    """Classify how pages are rendered.

    SSR when a meta-framework fetches data on the server, CSR when a
    meta-framework shows no server data functions, SPA for plain UI libraries.
    """
    if framework == "Next.js":
        page_files = [f for f in files if f.split("/")[0] in ("pages", "app", "src")]
        for rel in page_files:
            text = read_text_safely(root / rel, max_bytes=SOURCE_PROBE_BYTES)
            if text and any(fn in text for fn in SSR_DATA_FUNCTIONS):
                return RenderMode.SSR
        return RenderMode.CSR
    if framework == "Nuxt.js":
        for config in ("nuxt.config.ts", "nuxt.config.js"):
            text = read_text_safely(root / config)
            if text and NUXT_SSR_OFF_RE.search(text):
                return RenderMode.SPA
        return RenderMode.SSR
    if framework == "SvelteKit":
        if any(PurePosixPath(f).name.startswith(("+page.server.", "+layout.server.")) for f in files):
            return RenderMode.SSR
        return RenderMode.CSR
    return RenderMode.SPA


def execution_flow(module: FrontendModule) -> str:
    steps = [
        f"Entry: {module.entry_point} mounts the root component.",
        f"Render mode: {module.render_mode.value}.",
    ]
    if module.routes:
        steps.append(f"Routes ({len(module.routes)}): navigation maps URLs to pages/components.")
    if module.components:
        steps.append(f"Components ({len(module.components)}): reusable UI pieces.")
    if module.state_management and module.state_management[0] != NONE_DETECTED:
        steps.append(f"State: {', '.join(module.state_management)}.")
    steps.append("User interactions update state and re-render the UI.")
    return "".join(f"{i}. {step}\n" for i, step in enumerate(steps, start=1))


def analyze_frontend(root_path: Path, root: str = ".", deadline: Deadline | None = None) -> FrontendModule:
    """Analyze one frontend root.

    Args:
        root_path: Absolute directory of the root.
        root: The root's path relative to the project, as reported.
        deadline: Shared analysis deadline.
    """
    deadline = ensure_deadline(deadline)
    if not root_path.is_dir():
        return FrontendModule(root=root)

    files = get_all_files(root_path, extensions=SOURCE_EXTENSIONS, deadline=deadline)
    framework = detect_frontend_framework(root_path)

    module = FrontendModule(
        root=root,
        framework=framework,
        entry_point=find_frontend_entry(root_path),
        components=collect_components(files),
        pages=collect_pages(files),
        routes=extract_routes(root_path, framework, files, deadline),
        state_management=detect_state_management(root_path, files, deadline),
        render_mode=detect_render_mode(root_path, framework, files),
    )
    module.execution_flow = execution_flow(module)
    logger.debug(
        "Frontend %s: %s, %d routes, %d components",
        root, framework, len(module.routes), len(module.components),
    )
    return module
