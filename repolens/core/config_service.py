"""Layered configuration for repolens.

Layers, lowest to highest precedence:

    default  built-in values below
    global   ~/.config/repolens/config.toml
    project  .repolens.toml in the current directory
    env      REPOLENS_* variables

CLI flags (--timeout-ms, --max-depth) sit above all of these but are passed
straight to ``analyze()`` rather than stored here.
"""
from __future__ import annotations

import copy
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from repolens.errors import ConfigError

logger = logging.getLogger("repolens.config")

DEFAULTS: dict[str, Any] = {
    "analysis": {
        "timeout_ms": 60_000,
        "max_depth": 6,
        "partial_max_depth": 2,
        "max_file_bytes": 2 * 1024 * 1024,
    },
    "ui": {
        "plain_output": False,
    },
}

ENV_VAR_MAP = {
    "REPOLENS_TIMEOUT_MS": "analysis.timeout_ms",
    "REPOLENS_MAX_DEPTH": "analysis.max_depth",
    "REPOLENS_PARTIAL_MAX_DEPTH": "analysis.partial_max_depth",
    "REPOLENS_MAX_FILE_BYTES": "analysis.max_file_bytes",
    "REPOLENS_PLAIN": "ui.plain_output",
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _global_config_path() -> Path:
    return Path.home() / ".config" / "repolens" / "config.toml"


def _project_config_path() -> Path:
    return Path.cwd() / ".repolens.toml"


def _read_toml(path: Path) -> dict:
    """Load ``path``; a missing or malformed file reads as empty."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}


def _write_toml(data: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data), encoding="utf-8")


def _deep_merge(base: dict, override: dict) -> dict:
    """Return ``base`` updated recursively with ``override``; inputs are untouched."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _get_nested(data: dict, dotted_key: str, default: Any = None) -> Any:
    node: Any = data
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or node.get(part) is None:
            return default
        node = node[part]
    return node


def _set_nested(data: dict, dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    node = data
    for part in parents:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[leaf] = value


def _leaf_keys(data: dict, prefix: str = "") -> list[str]:
    keys: list[str] = []
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            keys.extend(_leaf_keys(value, dotted + "."))
        else:
            keys.append(dotted)
    return keys


def coerce_value(dotted_key: str, raw: Any) -> Any:
    """Convert a string from the environment or CLI to the default's type.

    Raises:
        ConfigError: If the key is unknown or the value doesn't parse.
    """
    default = _get_nested(DEFAULTS, dotted_key)
    if default is None or isinstance(default, dict):
        known = ", ".join(sorted(ENV_VAR_MAP.values()))
        raise ConfigError(
            f"Unknown config key '{dotted_key}'. Known keys: {known}",
            context={"key": dotted_key},
        )
    if not isinstance(raw, str):
        return raw

    text = raw.strip()
    if isinstance(default, bool):
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        raise ConfigError(
            f"Expected a boolean for '{dotted_key}', got '{raw}'",
            context={"key": dotted_key, "value": raw},
        )
    if isinstance(default, int):
        try:
            number = int(text.replace("_", ""))
        except ValueError:
            raise ConfigError(
                f"Expected an integer for '{dotted_key}', got '{raw}'",
                context={"key": dotted_key, "value": raw},
            ) from None
        if number < 0:
            raise ConfigError(
                f"'{dotted_key}' must not be negative",
                context={"key": dotted_key, "value": raw},
            )
        return number
    return raw


@dataclass
class ConfigLayer:
    """One source of settings and the file it was read from, if any."""

    name: str
    data: dict
    path: Optional[Path] = None


@dataclass
class ResolvedConfig:
    """Merged settings plus the layer each leaf value came from."""

    data: dict = field(default_factory=dict)
    origins: dict[str, str] = field(default_factory=dict)
    global_config_path: Optional[Path] = None
    project_config_path: Optional[Path] = None

    def get(self, dotted_key: str, default: Any = None) -> Any:
        return _get_nested(self.data, dotted_key, default)


def _env_layer() -> ConfigLayer:
    data: dict = {}
    for env_var, dotted_key in ENV_VAR_MAP.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            _set_nested(data, dotted_key, coerce_value(dotted_key, raw))
    return ConfigLayer("env", data)


class ConfigService:
    """Resolves settings across the default, global, project and env layers.

    The merged view is cached until ``set_global`` or ``resolve(force=True)``.
    """

    def __init__(self):
        self._resolved: Optional[ResolvedConfig] = None

    def layers(self) -> list[ConfigLayer]:
        """All layers, lowest precedence first.

        Raises:
            ConfigError: If an environment variable doesn't parse.
        """
        global_path = _global_config_path()
        project_path = _project_config_path()
        return [
            ConfigLayer("default", copy.deepcopy(DEFAULTS)),
            ConfigLayer("global", _read_toml(global_path), global_path),
            ConfigLayer("project", _read_toml(project_path), project_path),
            _env_layer(),
        ]

    def resolve(self, force: bool = False) -> ResolvedConfig:
        if self._resolved is not None and not force:
            return self._resolved

        resolved = ResolvedConfig()
        for layer in self.layers():
            if not layer.data:
                continue
            resolved.data = _deep_merge(resolved.data, layer.data)
            for key in _leaf_keys(layer.data):
                resolved.origins[key] = layer.name
            if layer.name == "global":
                resolved.global_config_path = layer.path
            elif layer.name == "project":
                resolved.project_config_path = layer.path
            if layer.path is not None:
                logger.debug("Loaded %s config from %s", layer.name, layer.path)

        self._resolved = resolved
        return resolved

    def get(self, dotted_key: str, default: Any = None) -> Any:
        return self.resolve().get(dotted_key, default)

    def _get_int(self, dotted_key: str) -> int:
        value = self.get(dotted_key, _get_nested(DEFAULTS, dotted_key))
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(
                f"Expected an integer for '{dotted_key}', got {value!r}",
                context={"key": dotted_key},
            )
        return value

    def timeout_ms(self) -> int:
        return self._get_int("analysis.timeout_ms")

    def max_depth(self) -> int:
        return self._get_int("analysis.max_depth")

    def partial_max_depth(self) -> int:
        return self._get_int("analysis.partial_max_depth")

    def max_file_bytes(self) -> int:
        return self._get_int("analysis.max_file_bytes")

    def plain_output(self) -> bool:
        return bool(self.get("ui.plain_output", False))

    def set_global(self, dotted_key: str, value: Any) -> None:
        """Persist ``dotted_key`` in the global config file.

        Raises:
            ConfigError: If the key is unknown or the value doesn't parse.
        """
        value = coerce_value(dotted_key, value)
        path = _global_config_path()
        data = _read_toml(path)
        _set_nested(data, dotted_key, value)
        _write_toml(data, path)
        self._resolved = None
        logger.info("Set %s = %s in %s", dotted_key, value, path)

    def show(self) -> dict:
        """Merged settings, per-key origins, and the files that were read."""
        resolved = self.resolve(force=True)
        paths = {
            "global_config": resolved.global_config_path,
            "project_config": resolved.project_config_path,
        }
        return {
            "resolved": resolved.data,
            "origins": dict(resolved.origins),
            "sources": {name: str(p) if p else None for name, p in paths.items()},
        }

    def config_paths(self) -> dict[str, str]:
        """Config file locations and whether each exists."""
        located = {
            "global_config": _global_config_path(),
            "project_config": _project_config_path(),
        }
        return {
            name: f"{p} ({'exists' if p.is_file() else 'not found'})"
            for name, p in located.items()
        }


_config_service: Optional[ConfigService] = None


def get_config_service() -> ConfigService:
    """Process-wide ConfigService, created on first use."""
    global _config_service
    if _config_service is None:
        _config_service = ConfigService()
    return _config_service


def reset_config_service() -> None:
    """Drop the cached service so the next call re-reads every layer."""
    global _config_service
    _config_service = None
