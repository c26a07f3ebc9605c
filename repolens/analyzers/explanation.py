"""Narrative synthesis over a finished analysis.

Picks one flow template from the project type and the modules present,
then appends a detail block per root. Nothing here inspects the file
system; the same AnalysisResult always yields the same Explanation.
"""
from __future__ import annotations

from .models import (
    AnalysisResult,
    BackendModule,
    Explanation,
    FrontendModule,
    MLModule,
    ProjectType,
)
from .tree_scanner import render_tree_text

BACKEND_FLOW = "backend"
FRONTEND_FLOW = "frontend"
ML_FLOW = "ml"
INTEGRATION_FLOW = "integration"
GENERIC_FLOW = "generic"

DETAIL_LIST_LIMIT = 20


def select_template(result: AnalysisResult) -> str:
    """Choose the narrative template for ``result``."""
    project_type = result.classification.project_type
    has_frontend = bool(result.frontend_modules)
    has_backend = bool(result.backend_modules)

    if project_type in (ProjectType.FULLSTACK, ProjectType.MONOREPO) and has_frontend and has_backend:
        return INTEGRATION_FLOW
    if project_type == ProjectType.BACKEND_ONLY or (has_backend and not has_frontend):
        return BACKEND_FLOW
    if project_type == ProjectType.FRONTEND_ONLY or has_frontend:
        return FRONTEND_FLOW
    if project_type == ProjectType.ML_PROJECT or result.ml_modules:
        return ML_FLOW
    return GENERIC_FLOW


def _numbered(steps: list[str]) -> str:
    return "\n".join(f"{i}. {step}" for i, step in enumerate(steps, start=1)) + "\n"


def backend_flow(module: BackendModule) -> list[str]:
    return [
        f"App starts from entry point ({module.entry_point}).",
        f"Routes receive client requests ({len(module.routes)} detected).",
        f"Controllers process logic ({len(module.controllers)} detected).",
        f"Models interact with the database ({len(module.models)} detected).",
        "Response is sent back to the client.",
    ]


def frontend_flow(module: FrontendModule) -> list[str]:
    steps = [
        f"The browser loads {module.entry_point}, which mounts the root component.",
        f"Pages render in {module.render_mode.value} mode.",
        f"The router maps URLs to pages ({len(module.routes)} routes detected).",
        f"Pages compose reusable components ({len(module.components)} detected).",
    ]
    if module.state_management and module.state_management[0] != "None detected":
        steps.append(f"Shared state lives in {', '.join(module.state_management)}.")
    steps.append("User interactions update state and re-render the UI.")
    return steps


def integration_flow(result: AnalysisResult) -> list[str]:
    frontend = result.frontend_modules[0]
    backend = result.backend_modules[0]
    steps = [
        f"The {frontend.framework} client in '{frontend.root}' starts at {frontend.entry_point} and renders the UI.",
        "User actions in the client send HTTP requests to the backend API.",
        f"The {backend.framework} server in '{backend.root}' receives them on its routes "
        f"({sum(len(m.routes) for m in result.backend_modules)} detected).",
        "Controllers run the business logic and models read or write the data store.",
        "JSON responses return to the client, which updates its state and re-renders.",
    ]
    if result.ml_modules:
        roots = ", ".join(f"'{m.root}'" for m in result.ml_modules)
        steps.append(f"ML code in {roots} supplies trained models or predictions to the server.")
    return steps


def generic_flow() -> list[str]:
    return [
        "No framework or architecture markers were recognised.",
        "Read the folder tree below to see how the project is laid out.",
    ]


def execution_flow(result: AnalysisResult, template: str) -> str:
    if template == INTEGRATION_FLOW:
        return _numbered(integration_flow(result))
    if template == BACKEND_FLOW:
        blocks = [
            _headed(module.root, _numbered(backend_flow(module)), len(result.backend_modules))
            for module in result.backend_modules
        ]
        return "\n".join(blocks) if blocks else _numbered(generic_flow())
    if template == FRONTEND_FLOW:
        blocks = [
            _headed(module.root, _numbered(frontend_flow(module)), len(result.frontend_modules))
            for module in result.frontend_modules
        ]
        return "\n".join(blocks) if blocks else _numbered(generic_flow())
    if template == ML_FLOW:
        blocks = [
            _headed(module.root, module.pipeline_explanation, len(result.ml_modules))
            for module in result.ml_modules
        ]
        return "\n".join(blocks) if blocks else _numbered(generic_flow())
    return _numbered(generic_flow())


def _headed(root: str, text: str, count: int) -> str:
    return f"[{root}]\n{text}" if count > 1 else text


def _limited(lines: list[str]) -> list[str]:
    if len(lines) <= DETAIL_LIST_LIMIT:
        return lines
    return lines[:DETAIL_LIST_LIMIT] + [f"... and {len(lines) - DETAIL_LIST_LIMIT} more"]


def backend_details(module: BackendModule) -> str:
    lines = [
        f"Backend '{module.root}': {module.framework}, {module.architecture}, "
        f"entry {module.entry_point}"
    ]
    lines.append("  Routes:")
    routes = [f"    {r.method} {r.path} -> {r.handler} ({r.source_file})" for r in module.routes]
    lines.extend(_limited(routes) or ["    none detected"])
    lines.append("  Controllers:")
    controllers = [
        f"    {c.name} ({c.file}): {', '.join(c.methods) or 'no exported methods'}"
        for c in module.controllers
    ]
    lines.extend(_limited(controllers) or ["    none detected"])
    lines.append("  Models:")
    models = [f"    {m.name} ({m.file}): {m.schema_summary}" for m in module.models]
    lines.extend(_limited(models) or ["    none detected"])
    if module.services:
        lines.append("  Services:")
        lines.extend(_limited([f"    {s.name} ({s.file})" for s in module.services]))
    if module.root != "." and module.folder_tree:
        lines.append("  Folder tree:")
        tree = render_tree_text(module.folder_tree, module.root)
        lines.extend(f"    {line}" for line in tree.splitlines())
    return "\n".join(lines)


def frontend_details(module: FrontendModule) -> str:
    lines = [
        f"Frontend '{module.root}': {module.framework}, {module.render_mode.value}, "
        f"entry {module.entry_point}",
        f"  State management: {', '.join(module.state_management)}",
        f"  Components: {len(module.components)}, pages: {len(module.pages)}",
        "  Routes:",
    ]
    routes = [
        f"    {r.path} -> {r.component or r.file or '?'} ({r.type})" for r in module.routes
    ]
    lines.extend(_limited(routes) or ["    none detected"])
    return "\n".join(lines)


def ml_details(module: MLModule) -> str:
    libs = ", ".join(module.libs) if module.libs else "none detected"
    return (
        f"ML '{module.root}': libraries {libs}; "
        f"{len(module.training_scripts)} training scripts, {len(module.notebooks)} notebooks"
    )


def summary(result: AnalysisResult) -> str:
    classification = result.classification
    frameworks = [m.framework for m in result.backend_modules]
    frameworks += [m.framework for m in result.frontend_modules]
    frameworks += [lib for m in result.ml_modules for lib in m.libs]
    architectures = sorted({m.architecture for m in result.backend_modules})

    header = [
        f"Project '{result.root_name}' is classified as {classification.project_type.value}"
        + (" (monorepo)." if classification.is_monorepo else "."),
        f"Language: {result.language}.",
        f"Frameworks: {', '.join(dict.fromkeys(frameworks)) or 'none detected'}.",
    ]
    if architectures:
        header.append(f"Architecture: {', '.join(architectures)}.")

    blocks = ["\n".join(header)]
    blocks.extend(backend_details(m) for m in result.backend_modules)
    blocks.extend(frontend_details(m) for m in result.frontend_modules)
    blocks.extend(ml_details(m) for m in result.ml_modules)
    if result.errors:
        blocks.append("\n".join(
            f"Could not analyze {e.kind} root '{e.root}': {e.error}" for e in result.errors
        ))
    return "\n\n".join(blocks) + "\n"


def build_explanation(result: AnalysisResult) -> Explanation:
    template = select_template(result)
    return Explanation(
        summary=summary(result),
        execution_flow=execution_flow(result, template),
        folder_tree_text=render_tree_text(result.folder_tree, result.root_name),
    )
