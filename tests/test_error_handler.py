"""Tests for the unified CLI error handler."""
import pytest
import typer

from repolens import ui
from repolens.error_handler import _debug_mode, handle_errors
from repolens.errors import ConfigError, InvalidProjectPathError, RepolensError


class TestHandleErrorsDecorator:
    def test_passes_through_on_success(self):
        @handle_errors
        def good_func():
            return "ok"

        assert good_func() == "ok"

    def test_catches_repolens_error(self):
        @handle_errors
        def bad_func():
            raise RepolensError("generic issue")

        with pytest.raises(typer.Exit) as exc_info:
            bad_func()
        assert exc_info.value.exit_code == 1

    def test_uses_error_exit_code(self):
        @handle_errors
        def bad_path():
            raise InvalidProjectPathError("/missing")

        with pytest.raises(typer.Exit) as exc_info:
            bad_path()
        assert exc_info.value.exit_code == 2

    def test_catches_unexpected_error(self):
        @handle_errors
        def crash_func():
            raise RuntimeError("oops")

        with pytest.raises(typer.Exit) as exc_info:
            crash_func()
        assert exc_info.value.exit_code == 1

    def test_catches_keyboard_interrupt(self):
        @handle_errors
        def interrupted():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            interrupted()
        assert exc_info.value.exit_code == 130

    def test_exit_passes_through(self):
        @handle_errors
        def exits():
            raise typer.Exit(3)

        with pytest.raises(typer.Exit) as exc_info:
            exits()
        assert exc_info.value.exit_code == 3


class TestRendering:
    def test_plain_output_has_message_and_hint(self, capsys):
        ui.set_plain_mode(True)

        @handle_errors
        def bad_config():
            raise ConfigError("Unknown config key 'x'", context={"key": "x"})

        with pytest.raises(typer.Exit):
            bad_config()
        out = capsys.readouterr().out
        assert "Error: Unknown config key 'x'" in out
        assert "repolens config path" in out
        assert "Context:" not in out

    def test_debug_mode_shows_context(self, capsys, monkeypatch):
        monkeypatch.setenv("REPOLENS_DEBUG", "1")
        ui.set_plain_mode(True)

        @handle_errors
        def bad_config():
            raise ConfigError("broken", context={"key": "analysis.x"})

        with pytest.raises(typer.Exit):
            bad_config()
        out = capsys.readouterr().out
        assert "Context:" in out
        assert "key: analysis.x" in out


class TestDebugMode:
    def test_debug_off_by_default(self):
        assert _debug_mode() is False

    @pytest.mark.parametrize("value, expected", [
        ("1", True), ("true", True), ("YES", True), ("0", False), ("", False),
    ])
    def test_debug_values(self, monkeypatch, value, expected):
        monkeypatch.setenv("REPOLENS_DEBUG", value)
        assert _debug_mode() is expected
