"""Shared fixtures for repolens tests."""
import json
import textwrap

import pytest

from repolens import ui
from repolens.core.config_service import reset_config_service


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point HOME and cwd at a temporary directory for every test.

    This keeps tests away from real ~/.config/repolens and .repolens.toml
    files and from REPOLENS_* variables set in the shell.
    """
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for var in (
        "REPOLENS_TIMEOUT_MS", "REPOLENS_MAX_DEPTH", "REPOLENS_PARTIAL_MAX_DEPTH",
        "REPOLENS_MAX_FILE_BYTES", "REPOLENS_PLAIN", "REPOLENS_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config_service()
    yield home
    reset_config_service()
    ui.set_json_mode(False)
    ui.set_plain_mode(False)


@pytest.fixture
def make_tree(tmp_path):
    """Materialize ``{relative_path: content}`` under a fresh project dir.

    Content may be a str (dedented), a dict (written as JSON), or None for
    an empty directory.
    """
    counter = {"n": 0}

    def _make(files: dict, name: str | None = None):
        counter["n"] += 1
        root = tmp_path / (name or f"project{counter['n']}")
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            if content is None:
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, dict):
                path.write_text(json.dumps(content))
            else:
                path.write_text(textwrap.dedent(content))
        return root

    return _make


@pytest.fixture
def express_project(make_tree):
    """Express API with a route, a controller and a mongoose model."""
    return make_tree({
        "package.json": {"name": "api", "main": "app.js", "dependencies": {"express": "^4.18.0"}},
        "app.js": """\
            const express = require('express');
            const app = express();
            app.use('/api', require('./routes/users'));
            app.listen(3000);
        """,
        "routes/users.js": """\
            const router = require('express').Router();
            const userController = require('../controllers/userController');
            router.get('/users', userController.list);
            module.exports = router;
        """,
        "controllers/userController.js": """\
            exports.list = (req, res) => {
              res.json([]);
            };
        """,
    }, name="express-api")


@pytest.fixture
def fullstack_monorepo(make_tree):
    """client/ React app and server/ Express app side by side."""
    return make_tree({
        "README.md": "# Shop\r\n\r\nA demo shop.\r\n",
        "client/package.json": {"name": "client", "dependencies": {"react": "^18.2.0", "react-router-dom": "^6.0.0"}},
        "client/src/main.jsx": """\
            import { createBrowserRouter } from 'react-router-dom';
            import Home from './pages/Home';
            const router = createBrowserRouter([
              { path: "/", element: <Home />, children: [
                { path: "cart", element: <Cart /> },
              ] },
            ]);
        """,
        "client/src/components/Button.jsx": "export default function Button() { return null; }\n",
        "client/src/pages/Home.jsx": "export default function Home() { return null; }\n",
        "server/package.json": {"name": "server", "dependencies": {"express": "^4.18.0"}},
        "server/index.js": """\
            const express = require('express');
            const app = express();
            app.get('/health', (req, res) => res.send('ok'));
            app.post('/orders', orders.create);
        """,
    }, name="shop")
