"""Tests for report export."""

import json
from pathlib import Path

import pytest
import yaml

from repolens.analyzers.models import AnalysisOutcome, AnalysisResult, ProjectClassification, ProjectType, Route
from repolens.analyzers.models import BackendModule
from repolens.core.export_service import ExportService, format_for_path, render_outcome
from repolens.errors import ExportError


@pytest.fixture
def outcome():
    result = AnalysisResult(
        root_name="demo",
        classification=ProjectClassification(ProjectType.BACKEND_ONLY, [], ["."], []),
        language="Python",
        backend_modules=[BackendModule(
            root=".", framework="FastAPI",
            routes=[Route("GET", "/items/{id}", "read_item", "app/main.py")],
        )],
    )
    return AnalysisOutcome(result=result, partial=False)


@pytest.mark.parametrize("name, expected", [
    ("report.json", "json"),
    ("report.YAML", "yaml"),
    ("report.yml", "yaml"),
    ("report.txt", "json"),
])
def test_format_for_path(name, expected):
    assert format_for_path(Path(name)) == expected


class TestRenderOutcome:
    def test_json_uses_camel_case(self, outcome):
        data = json.loads(render_outcome(outcome, "json"))
        assert data["partial"] is False
        route = data["result"]["backendModules"][0]["routes"][0]
        assert route == {
            "method": "GET", "path": "/items/{id}", "handler": "read_item", "sourceFile": "app/main.py",
        }

    def test_yaml_matches_json(self, outcome):
        assert yaml.safe_load(render_outcome(outcome, "yaml")) == json.loads(render_outcome(outcome, "json"))

    def test_unknown_format(self, outcome):
        with pytest.raises(ExportError) as exc_info:
            render_outcome(outcome, "xml")
        assert exc_info.value.context["format"] == "xml"


class TestExportService:
    def test_writes_json_and_creates_parents(self, outcome, tmp_path):
        path = tmp_path / "out" / "nested" / "report.json"
        result = ExportService().export(outcome, path)
        assert result.format == "json"
        assert result.output_path == path
        assert result.size_bytes == path.stat().st_size
        assert json.loads(path.read_text())["result"]["rootName"] == "demo"

    def test_explicit_format_overrides_suffix(self, outcome, tmp_path):
        path = tmp_path / "report.json"
        result = ExportService().export(outcome, path, format="yaml")
        assert result.format == "yaml"
        assert yaml.safe_load(path.read_text())["result"]["language"] == "Python"

    def test_unwritable_target(self, outcome, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ExportError):
            ExportService().export(outcome, blocker / "report.json")
