"""Data models for repository analysis results.

Every entity is created fresh per analysis and serialized with ``to_dict()``,
which emits the camelCase keys consumed by templates and JSON payloads.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

NOT_DETECTED = "Not detected"
NONE_DETECTED = "None detected"
UNKNOWN = "Unknown"

# Why an AnalysisResult is partial
PARTIAL_TIMEOUT = "timeout"
PARTIAL_ERROR = "error"


class ProjectType(str, Enum):
    """Top-level classification of an analyzed tree."""

    BACKEND_ONLY = "Backend Only"
    FRONTEND_ONLY = "Frontend Only"
    FULLSTACK = "Fullstack"
    ML_PROJECT = "ML Project"
    MONOREPO = "Monorepo"
    UNKNOWN = "Unknown"


class RenderMode(str, Enum):
    """How a frontend root renders its pages."""

    SPA = "SPA"
    SSR = "SSR"
    CSR = "CSR"


@dataclass
class TreeNode:
    """A file or directory in a scanned tree."""

    name: str
    kind: str  # "file" or "dir"
    relative_path: str
    children: list[TreeNode] = field(default_factory=list)

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"

    def to_dict(self) -> dict:
        data = {"name": self.name, "kind": self.kind, "relativePath": self.relative_path}
        if self.is_dir:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class ProjectClassification:
    """Project type plus the roots each analyzer set should run on."""

    project_type: ProjectType = ProjectType.UNKNOWN
    frontend_roots: list[str] = field(default_factory=list)
    backend_roots: list[str] = field(default_factory=list)
    ml_roots: list[str] = field(default_factory=list)
    is_monorepo: bool = False

    def to_dict(self) -> dict:
        return {
            "projectType": self.project_type.value,
            "frontendRoots": list(self.frontend_roots),
            "backendRoots": list(self.backend_roots),
            "mlRoots": list(self.ml_roots),
            "isMonorepo": self.is_monorepo,
        }


@dataclass
class Route:
    """An HTTP route bound to a handler."""

    method: str
    path: str
    handler: str
    source_file: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.path)

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "path": self.path,
            "handler": self.handler,
            "sourceFile": self.source_file,
        }


@dataclass
class ControllerModule:
    """A controller-like module and the operations it exports."""

    name: str
    file: str
    methods: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "file": self.file, "methods": list(self.methods)}


@dataclass
class ModelDefinition:
    """A data model or schema with a summary of its fields."""

    name: str
    file: str
    schema_summary: str

    def to_dict(self) -> dict:
        return {"name": self.name, "file": self.file, "schemaSummary": self.schema_summary}


@dataclass
class BackendModule:
    """Analysis of one backend root."""

    root: str
    framework: str = UNKNOWN
    architecture: str = "Basic / Flat"
    entry_point: str = NOT_DETECTED
    extractor: str = ""
    routes: list[Route] = field(default_factory=list)
    controllers: list[ControllerModule] = field(default_factory=list)
    models: list[ModelDefinition] = field(default_factory=list)
    services: list[ControllerModule] = field(default_factory=list)
    application_config: str | None = None
    folder_tree: list[TreeNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "framework": self.framework,
            "architecture": self.architecture,
            "entryPoint": self.entry_point,
            "extractor": self.extractor,
            "routes": [r.to_dict() for r in self.routes],
            "controllers": [c.to_dict() for c in self.controllers],
            "models": [m.to_dict() for m in self.models],
            "services": [s.to_dict() for s in self.services],
            "applicationConfig": self.application_config,
            "folderTree": [n.to_dict() for n in self.folder_tree],
        }


@dataclass
class FrontendRoute:
    """A UI route discovered by file-based or table-based routing."""

    type: str
    path: str
    component: str = ""
    file: str = ""

    def to_dict(self) -> dict:
        return {"type": self.type, "path": self.path, "component": self.component, "file": self.file}


@dataclass
class FrontendModule:
    """Analysis of one frontend root."""

    root: str
    framework: str = UNKNOWN
    entry_point: str = NOT_DETECTED
    components: list[str] = field(default_factory=list)
    pages: list[str] = field(default_factory=list)
    routes: list[FrontendRoute] = field(default_factory=list)
    state_management: list[str] = field(default_factory=lambda: [NONE_DETECTED])
    render_mode: RenderMode = RenderMode.SPA
    execution_flow: str = ""

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "framework": self.framework,
            "entryPoint": self.entry_point,
            "components": list(self.components),
            "pages": list(self.pages),
            "routes": [r.to_dict() for r in self.routes],
            "stateManagement": list(self.state_management),
            "renderMode": self.render_mode.value,
            "executionFlow": self.execution_flow,
        }


@dataclass
class MLModule:
    """Analysis of one machine-learning root."""

    root: str
    has_python: bool = False
    has_notebooks: bool = False
    libs: list[str] = field(default_factory=list)
    training_scripts: list[str] = field(default_factory=list)
    inference_scripts: list[str] = field(default_factory=list)
    preprocessing_scripts: list[str] = field(default_factory=list)
    evaluation_scripts: list[str] = field(default_factory=list)
    dataset_folders: list[str] = field(default_factory=list)
    notebooks: list[str] = field(default_factory=list)
    pipeline_explanation: str = ""

    @property
    def has_evidence(self) -> bool:
        return self.has_python or self.has_notebooks or bool(self.libs)

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "hasPython": self.has_python,
            "hasNotebooks": self.has_notebooks,
            "libs": list(self.libs),
            "trainingScripts": list(self.training_scripts),
            "inferenceScripts": list(self.inference_scripts),
            "preprocessingScripts": list(self.preprocessing_scripts),
            "evaluationScripts": list(self.evaluation_scripts),
            "datasetFolders": list(self.dataset_folders),
            "notebooks": list(self.notebooks),
            "pipelineExplanation": self.pipeline_explanation,
        }


@dataclass
class ModuleError:
    """A sub-analyzer failure recorded instead of a module."""

    root: str
    kind: str  # "backend", "frontend" or "ml"
    error: str

    def to_dict(self) -> dict:
        return {"root": self.root, "kind": self.kind, "error": self.error}


@dataclass
class Explanation:
    """Human-readable narrative synthesized from the aggregate."""

    summary: str = ""
    execution_flow: str = ""
    folder_tree_text: str = ""

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "executionFlow": self.execution_flow,
            "folderTreeText": self.folder_tree_text,
        }


@dataclass
class AnalysisResult:
    """Aggregate root of a single analysis run."""

    root_name: str
    classification: ProjectClassification = field(default_factory=ProjectClassification)
    language: str = UNKNOWN
    backend_modules: list[BackendModule] = field(default_factory=list)
    frontend_modules: list[FrontendModule] = field(default_factory=list)
    ml_modules: list[MLModule] = field(default_factory=list)
    errors: list[ModuleError] = field(default_factory=list)
    folder_tree: list[TreeNode] = field(default_factory=list)
    readme_summary: str | None = None
    explanation: Explanation = field(default_factory=Explanation)
    partial: bool = False
    elapsed_ms: int = 0
    partial_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "rootName": self.root_name,
            **self.classification.to_dict(),
            "language": self.language,
            "backendModules": [m.to_dict() for m in self.backend_modules],
            "frontendModules": [m.to_dict() for m in self.frontend_modules],
            "mlModules": [m.to_dict() for m in self.ml_modules],
            "errors": [e.to_dict() for e in self.errors],
            "folderTree": [n.to_dict() for n in self.folder_tree],
            "readmeSummary": self.readme_summary,
            "explanation": self.explanation.to_dict(),
            "partial": self.partial,
            "elapsedMs": self.elapsed_ms,
            "partialReason": self.partial_reason,
        }


@dataclass
class AnalysisOutcome:
    """What ``analyze()`` hands back: the result and whether it is partial."""

    result: AnalysisResult
    partial: bool = False

    def to_dict(self) -> dict:
        return {"partial": self.partial, "result": self.result.to_dict()}
