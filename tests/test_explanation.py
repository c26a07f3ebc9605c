"""Tests for narrative synthesis."""

from repolens.analyzers.explanation import (
    BACKEND_FLOW,
    FRONTEND_FLOW,
    GENERIC_FLOW,
    INTEGRATION_FLOW,
    ML_FLOW,
    build_explanation,
    select_template,
    summary,
)
from repolens.analyzers.models import (
    AnalysisResult,
    BackendModule,
    ControllerModule,
    FrontendModule,
    MLModule,
    ModuleError,
    ProjectClassification,
    ProjectType,
    Route,
    TreeNode,
)


def backend(root=".", **kwargs):
    defaults = dict(
        framework="Express.js",
        architecture="Route-Controller-Model",
        entry_point="app.js",
        routes=[Route("GET", "/users", "list", "routes/users.js")],
        controllers=[ControllerModule("userController", "controllers/userController.js", ["list"])],
    )
    defaults.update(kwargs)
    return BackendModule(root=root, **defaults)


def result_for(project_type, backends=(), frontends=(), mls=(), **kwargs):
    return AnalysisResult(
        root_name="demo",
        classification=ProjectClassification(
            project_type=project_type, is_monorepo=project_type == ProjectType.MONOREPO
        ),
        backend_modules=list(backends),
        frontend_modules=list(frontends),
        ml_modules=list(mls),
        **kwargs,
    )


class TestSelectTemplate:
    def test_integration_needs_both_sides(self):
        both = result_for(ProjectType.MONOREPO, [backend("server")], [FrontendModule("client")])
        assert select_template(both) == INTEGRATION_FLOW
        only_back = result_for(ProjectType.MONOREPO, [backend("server")])
        assert select_template(only_back) == BACKEND_FLOW

    def test_single_sided_types(self):
        assert select_template(result_for(ProjectType.BACKEND_ONLY, [backend()])) == BACKEND_FLOW
        assert select_template(result_for(ProjectType.FRONTEND_ONLY, [], [FrontendModule(".")])) == FRONTEND_FLOW
        assert select_template(result_for(ProjectType.ML_PROJECT, mls=[MLModule(".")])) == ML_FLOW
        assert select_template(result_for(ProjectType.UNKNOWN)) == GENERIC_FLOW


class TestExecutionFlow:
    def test_backend_steps(self):
        flow = build_explanation(result_for(ProjectType.BACKEND_ONLY, [backend()])).execution_flow
        assert flow.splitlines() == [
            "1. App starts from entry point (app.js).",
            "2. Routes receive client requests (1 detected).",
            "3. Controllers process logic (1 detected).",
            "4. Models interact with the database (0 detected).",
            "5. Response is sent back to the client.",
        ]

    def test_multiple_roots_are_headed(self):
        result = result_for(ProjectType.MONOREPO, [backend("api"), backend("backend")])
        flow = build_explanation(result).execution_flow
        assert flow.startswith("[api]\n1. App starts")
        assert "\n[backend]\n1. App starts" in flow

    def test_integration_mentions_both_roots(self):
        result = result_for(
            ProjectType.FULLSTACK,
            [backend("server")],
            [FrontendModule("client", framework="React", entry_point="src/main.jsx")],
            [MLModule("ml", has_python=True)],
        )
        lines = build_explanation(result).execution_flow.splitlines()
        assert lines[0] == "1. The React client in 'client' starts at src/main.jsx and renders the UI."
        assert "The Express.js server in 'server'" in lines[2]
        assert lines[-1] == "6. ML code in 'ml' supplies trained models or predictions to the server."

    def test_ml_uses_pipeline_text(self):
        module = MLModule(".", has_python=True, pipeline_explanation="ML pipeline (typical flow):\n")
        flow = build_explanation(result_for(ProjectType.ML_PROJECT, mls=[module])).execution_flow
        assert flow == "ML pipeline (typical flow):\n"

    def test_generic(self):
        flow = build_explanation(result_for(ProjectType.UNKNOWN)).execution_flow
        assert flow.startswith("1. No framework or architecture markers were recognised.")


class TestSummary:
    def test_header_and_details(self):
        result = result_for(
            ProjectType.BACKEND_ONLY, [backend()], language="JavaScript / Node.js"
        )
        text = summary(result)
        assert text.startswith(
            "Project 'demo' is classified as Backend Only.\n"
            "Language: JavaScript / Node.js.\n"
            "Frameworks: Express.js.\n"
            "Architecture: Route-Controller-Model."
        )
        assert "    GET /users -> list (routes/users.js)" in text
        assert "  Models:\n    none detected" in text

    def test_monorepo_errors_and_dedup(self):
        result = result_for(
            ProjectType.MONOREPO,
            [backend("api"), backend("server")],
            errors=[ModuleError("client", "frontend", "boom")],
        )
        text = summary(result)
        assert "classified as Monorepo (monorepo)." in text
        assert "Frameworks: Express.js." in text
        assert "Could not analyze frontend root 'client': boom" in text

    def test_long_lists_are_capped(self):
        routes = [Route("GET", f"/r{i}", "h", "x.js") for i in range(25)]
        text = summary(result_for(ProjectType.BACKEND_ONLY, [backend(routes=routes)]))
        assert "    GET /r19 -> h (x.js)" in text
        assert "/r20 " not in text
        assert "... and 5 more" in text


def test_folder_tree_text_uses_root_name():
    tree = [TreeNode("app.js", "file", "app.js")]
    explanation = build_explanation(result_for(ProjectType.UNKNOWN, folder_tree=tree))
    assert explanation.folder_tree_text == "demo/\n└── app.js"


def test_explanation_is_deterministic():
    result = result_for(ProjectType.BACKEND_ONLY, [backend()])
    assert build_explanation(result) == build_explanation(result)
