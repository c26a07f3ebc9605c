"""Tests for project-type and monorepo detection."""

import json

from repolens.analyzers.models import ProjectType
from repolens.analyzers.project_type import (
    detect_project_type,
    has_backend_indicator,
    has_frontend_indicator,
    has_ml_indicator,
    has_notebooks,
)


class TestIndicators:
    def test_backend_needs_manifest_for_layout_markers(self, make_tree):
        assert has_backend_indicator(make_tree({"package.json": {}, "routes": None}))
        assert not has_backend_indicator(make_tree({"routes": None, "app.js": ""}))

    def test_backend_from_python_framework(self, make_tree):
        assert has_backend_indicator(make_tree({"requirements.txt": "fastapi\n"}))

    def test_frontend_needs_manifest_for_layout_markers(self, make_tree):
        assert has_frontend_indicator(make_tree({"package.json": {}, "src": None}))
        assert not has_frontend_indicator(make_tree({"src": None, "components": None}))
        assert has_frontend_indicator(make_tree({"package.json": {"dependencies": {"vue": "3"}}}))

    def test_notebooks_probe_subdirectories(self, make_tree):
        assert has_notebooks(make_tree({"analysis/eda.ipynb": "{}"}))
        assert not has_notebooks(make_tree({"a/b/deep.ipynb": "{}"}))

    def test_ml_from_training_script(self, make_tree):
        assert has_ml_indicator(make_tree({"Train_Net.py": ""}))
        assert not has_ml_indicator(make_tree({"main.py": ""}))


class TestDetectProjectType:
    def test_frontend_then_fullstack(self, make_tree):
        root = make_tree({
            "package.json": {"dependencies": {"react": "18"}},
            "src/App.jsx": "",
        })
        before = detect_project_type(root)
        assert before.project_type == ProjectType.FRONTEND_ONLY
        assert before.frontend_roots == ["."]
        assert before.backend_roots == []

        (root / "package.json").write_text(
            json.dumps({"dependencies": {"react": "18", "express": "4"}}), encoding="utf-8"
        )
        after = detect_project_type(root)
        assert after.project_type == ProjectType.FULLSTACK
        assert after.frontend_roots == ["."]
        assert after.backend_roots == ["."]

    def test_client_server_monorepo(self, fullstack_monorepo):
        result = detect_project_type(fullstack_monorepo)
        assert result.project_type == ProjectType.MONOREPO
        assert result.is_monorepo
        assert result.frontend_roots == ["client"]
        assert result.backend_roots == ["server"]
        assert result.ml_roots == []

    def test_two_backend_roots_are_a_monorepo(self, make_tree):
        result = detect_project_type(make_tree({"api": None, "backend": None}))
        assert result.project_type == ProjectType.MONOREPO
        assert result.backend_roots == ["api", "backend"]
        assert result.frontend_roots == []

    def test_backend_only(self, express_project):
        result = detect_project_type(express_project)
        assert result.project_type == ProjectType.BACKEND_ONLY
        assert result.backend_roots == ["."]
        assert result.frontend_roots == []
        assert not result.is_monorepo

    def test_backend_only_keeps_ml_subroots(self, make_tree):
        root = make_tree({
            "requirements.txt": "flask\n",
            "app.py": "",
            "ml/train.py": "",
        })
        result = detect_project_type(root)
        assert result.project_type == ProjectType.BACKEND_ONLY
        assert result.ml_roots == ["ml"]

    def test_ml_project(self, make_tree):
        root = make_tree({"requirements.txt": "torch\n", "train_model.py": "", "data": None})
        result = detect_project_type(root)
        assert result.project_type == ProjectType.ML_PROJECT
        assert result.ml_roots == ["."]

    def test_ml_subroot_only(self, make_tree):
        result = detect_project_type(make_tree({"ml/train.py": "", "README.md": "x"}))
        assert result.project_type == ProjectType.ML_PROJECT
        assert result.ml_roots == ["ml"]

    def test_unknown(self, make_tree):
        result = detect_project_type(make_tree({"README.md": "hello"}))
        assert result.project_type == ProjectType.UNKNOWN
        assert result.to_dict() == {
            "projectType": "Unknown",
            "frontendRoots": [],
            "backendRoots": [],
            "mlRoots": [],
            "isMonorepo": False,
        }

    def test_missing_path(self, tmp_path):
        assert detect_project_type(tmp_path / "missing").project_type == ProjectType.UNKNOWN
