"""Tests for per-root analysis fan-out."""

import pytest

from repolens.analyzers import orchestrator
from repolens.analyzers.backends.express import ExpressExtractor
from repolens.analyzers.models import ProjectClassification, ProjectType
from repolens.analyzers.orchestrator import analyze_backend, orchestrate
from repolens.errors import AnalysisTimeoutError, ExtractorError


def monorepo_classification(ml_roots=None):
    return ProjectClassification(
        project_type=ProjectType.MONOREPO,
        frontend_roots=["client"],
        backend_roots=["server"],
        ml_roots=ml_roots or [],
        is_monorepo=True,
    )


class TestAnalyzeBackend:
    def test_express_root(self, express_project):
        module = analyze_backend(express_project, ".")
        assert module.root == "."
        assert module.framework == "Express.js"
        assert module.architecture == "Route-Controller-Model"
        assert module.entry_point == "app.js"
        assert module.extractor == "express"
        assert ("GET", "/users") in [(r.method, r.path) for r in module.routes]

    def test_extractor_failure_is_wrapped(self, express_project, monkeypatch):
        def explode(self):
            raise ValueError("bad schema")

        monkeypatch.setattr(ExpressExtractor, "extract_models", explode)
        with pytest.raises(ExtractorError) as exc_info:
            analyze_backend(express_project, ".")
        assert exc_info.value.context == {"root": ".", "extractor": "express"}
        assert str(exc_info.value) == "bad schema"


class TestOrchestrate:
    def test_all_roots_analyzed(self, fullstack_monorepo):
        out = orchestrate(fullstack_monorepo, monorepo_classification())
        assert [m.root for m in out.backend_modules] == ["server"]
        assert [m.root for m in out.frontend_modules] == ["client"]
        assert out.ml_modules == []
        assert out.errors == []
        assert out.frontend_modules[0].framework == "React"

    def test_failing_root_does_not_stop_siblings(self, fullstack_monorepo, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("parser crashed")

        monkeypatch.setattr(orchestrator, "analyze_frontend", broken)
        out = orchestrate(fullstack_monorepo, monorepo_classification())
        assert out.frontend_modules == []
        assert [m.root for m in out.backend_modules] == ["server"]
        assert [e.to_dict() for e in out.errors] == [
            {"root": "client", "kind": "frontend", "error": "parser crashed"},
        ]

    def test_timeout_propagates(self, fullstack_monorepo, monkeypatch):
        def spent(*args, **kwargs):
            raise AnalysisTimeoutError(100, "ml analysis")

        monkeypatch.setattr(orchestrator, "analyze_ml", spent)
        with pytest.raises(AnalysisTimeoutError):
            orchestrate(fullstack_monorepo, monorepo_classification(ml_roots=["."]))

    def test_ml_root_without_evidence_is_dropped(self, fullstack_monorepo):
        out = orchestrate(fullstack_monorepo, monorepo_classification(ml_roots=["client"]))
        assert out.ml_modules == []
