"""Tests for the layered configuration service."""

from pathlib import Path

import pytest

from repolens.core.config_service import (
    DEFAULTS,
    ConfigService,
    _deep_merge,
    _get_nested,
    _read_toml,
    _set_nested,
    _write_toml,
    coerce_value,
    get_config_service,
    reset_config_service,
)
from repolens.errors import ConfigError

# ─── Helper utilities ───


class TestDeepMerge:
    def test_simple_merge(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"analysis": {"timeout_ms": 1, "max_depth": 6}}
        result = _deep_merge(base, {"analysis": {"timeout_ms": 2}})
        assert result == {"analysis": {"timeout_ms": 2, "max_depth": 6}}

    def test_override_replaces_non_dict(self):
        assert _deep_merge({"a": {"nested": 1}}, {"a": "flat"}) == {"a": "flat"}

    def test_does_not_mutate_base(self):
        base = {"a": 1}
        _deep_merge(base, {"b": 2})
        assert "b" not in base


class TestGetSetNested:
    def test_get_nested(self):
        data = {"a": {"b": {"c": 3}}}
        assert _get_nested(data, "a.b.c") == 3
        assert _get_nested(data, "a.x", "fallback") == "fallback"
        assert _get_nested(data, "a.b.c.d", "fallback") == "fallback"

    def test_set_creates_intermediate(self):
        data = {}
        _set_nested(data, "a.b.c", 1)
        assert data == {"a": {"b": {"c": 1}}}

    def test_set_replaces_scalar_parent(self):
        data = {"a": 5}
        _set_nested(data, "a.b", 1)
        assert data == {"a": {"b": 1}}


class TestTomlIO:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "sub" / "config.toml"
        _write_toml({"analysis": {"timeout_ms": 500}}, path)
        assert _read_toml(path) == {"analysis": {"timeout_ms": 500}}

    def test_missing_and_malformed(self, tmp_path):
        assert _read_toml(tmp_path / "missing.toml") == {}
        bad = tmp_path / "bad.toml"
        bad.write_text("not = [valid")
        assert _read_toml(bad) == {}


class TestCoerceValue:
    def test_integers(self):
        assert coerce_value("analysis.timeout_ms", "1_500") == 1500
        assert coerce_value("analysis.max_depth", 4) == 4

    @pytest.mark.parametrize("raw, expected", [
        ("true", True), ("YES", True), ("1", True), ("off", False), ("0", False),
    ])
    def test_booleans(self, raw, expected):
        assert coerce_value("ui.plain_output", raw) is expected

    @pytest.mark.parametrize("key, raw", [
        ("analysis.timeout_ms", "soon"),
        ("analysis.max_depth", "-1"),
        ("ui.plain_output", "maybe"),
        ("analysis.nope", "1"),
        ("analysis", "1"),
    ])
    def test_rejects(self, key, raw):
        with pytest.raises(ConfigError):
            coerce_value(key, raw)

    def test_unknown_key_lists_known_keys(self):
        with pytest.raises(ConfigError) as exc_info:
            coerce_value("analysis.nope", "1")
        assert "analysis.timeout_ms" in str(exc_info.value)
        assert exc_info.value.context == {"key": "analysis.nope"}


# ─── Layered resolution ───


class TestConfigService:
    def test_defaults(self):
        service = ConfigService()
        assert service.timeout_ms() == DEFAULTS["analysis"]["timeout_ms"]
        assert service.max_depth() == 6
        assert service.partial_max_depth() == 2
        assert service.plain_output() is False

    def test_global_then_project_then_env(self, isolated_config, monkeypatch):
        _write_toml(
            {"analysis": {"timeout_ms": 1000, "max_depth": 3}},
            isolated_config / ".config" / "repolens" / "config.toml",
        )
        assert ConfigService().timeout_ms() == 1000

        _write_toml({"analysis": {"timeout_ms": 2000}}, Path.cwd() / ".repolens.toml")
        service = ConfigService()
        assert service.timeout_ms() == 2000
        assert service.max_depth() == 3

        monkeypatch.setenv("REPOLENS_TIMEOUT_MS", "3000")
        assert ConfigService().timeout_ms() == 3000

    def test_env_bool(self, monkeypatch):
        monkeypatch.setenv("REPOLENS_PLAIN", "1")
        assert ConfigService().plain_output() is True

    def test_bad_env_raises(self, monkeypatch):
        monkeypatch.setenv("REPOLENS_MAX_DEPTH", "deep")
        with pytest.raises(ConfigError):
            ConfigService().max_depth()

    def test_non_integer_file_value_raises(self, isolated_config):
        _write_toml(
            {"analysis": {"max_file_bytes": "big"}},
            isolated_config / ".config" / "repolens" / "config.toml",
        )
        with pytest.raises(ConfigError):
            ConfigService().max_file_bytes()

    def test_resolve_is_cached(self, isolated_config):
        service = ConfigService()
        assert service.timeout_ms() == 60_000
        _write_toml(
            {"analysis": {"timeout_ms": 5}},
            isolated_config / ".config" / "repolens" / "config.toml",
        )
        assert service.timeout_ms() == 60_000
        assert service.resolve(force=True).get("analysis.timeout_ms") == 5

    def test_set_global_writes_and_invalidates(self, isolated_config):
        service = ConfigService()
        assert service.max_depth() == 6
        service.set_global("analysis.max_depth", "9")
        assert service.max_depth() == 9
        assert _read_toml(isolated_config / ".config" / "repolens" / "config.toml") == {
            "analysis": {"max_depth": 9}
        }

    def test_set_global_rejects_unknown_key(self):
        with pytest.raises(ConfigError):
            ConfigService().set_global("ui.colour", "red")

    def test_show_reports_sources(self, isolated_config):
        service = ConfigService()
        assert service.show()["sources"] == {"global_config": None, "project_config": None}
        service.set_global("ui.plain_output", "true")
        shown = service.show()
        assert shown["resolved"]["ui"]["plain_output"] is True
        assert shown["sources"]["global_config"].endswith("config.toml")

    def test_show_tracks_origins(self, monkeypatch):
        service = ConfigService()
        service.set_global("analysis.max_depth", "4")
        monkeypatch.setenv("REPOLENS_TIMEOUT_MS", "10")
        origins = service.show()["origins"]
        assert origins["analysis.timeout_ms"] == "env"
        assert origins["analysis.max_depth"] == "global"
        assert origins["ui.plain_output"] == "default"

    def test_config_paths(self):
        paths = ConfigService().config_paths()
        assert paths["global_config"].endswith("(not found)")
        assert ".repolens.toml" in paths["project_config"]


class TestSingleton:
    def test_same_instance_until_reset(self):
        first = get_config_service()
        assert get_config_service() is first
        reset_config_service()
        assert get_config_service() is not first
