"""Turns exceptions raised by CLI commands into messages and exit codes."""

from __future__ import annotations

import functools
import logging
import os
import traceback
from typing import Optional

import typer
from rich.markup import escape

from repolens import ui
from repolens.errors import (
    ConfigError,
    ExportError,
    InvalidProjectPathError,
    RepolensError,
)

logger = logging.getLogger("repolens.error_handler")

# Exit code for Ctrl-C, as a shell reports SIGINT
INTERRUPTED_EXIT_CODE = 130

HINTS: dict[type[RepolensError], str] = {
    InvalidProjectPathError: "Pass the path of a local directory holding the source tree.",
    ConfigError: "Run 'repolens config path' to find the config files in use.",
    ExportError: "Check that the output directory is writable and the format is json or yaml.",
}


def _debug_mode() -> bool:
    """True when REPOLENS_DEBUG asks for context and tracebacks."""
    return os.environ.get("REPOLENS_DEBUG", "").lower() in ("1", "true", "yes")


def _hint_for(error: RepolensError) -> Optional[str]:
    for error_type, hint in HINTS.items():
        if isinstance(error, error_type):
            return hint
    return None


def _render_repolens_error(e: RepolensError) -> None:
    console = ui.console
    console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")

    details = {key: value for key, value in e.context.items() if value}
    if details and _debug_mode():
        console.print("[dim]Context:[/dim]")
        for key, value in details.items():
            console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")

    hint = _hint_for(e)
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def _print_traceback() -> None:
    ui.console.print(f"\n[dim]{escape(traceback.format_exc())}[/dim]")


def handle_errors(func):
    """Wrap a Typer command so failures exit cleanly.

    RepolensError exits with its ``exit_code``, Ctrl-C with 130, anything
    unexpected with 1. Typer's own Exit and Abort pass through. Apply it
    under ``@app.command()``.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RepolensError as e:
            logger.debug("Command %s failed: %s", func.__name__, e)
            _render_repolens_error(e)
            if _debug_mode():
                _print_traceback()
            raise typer.Exit(e.exit_code)
        except KeyboardInterrupt:
            ui.console.print("\n[dim]Interrupted.[/dim]")
            raise typer.Exit(INTERRUPTED_EXIT_CODE)
        except (typer.Exit, typer.Abort, SystemExit):
            raise
        except Exception as e:
            logger.debug("Unexpected failure in %s", func.__name__, exc_info=True)
            ui.console.print(f"\n[bold red]Unexpected error:[/bold red] {escape(str(e))}")
            if _debug_mode():
                _print_traceback()
            else:
                ui.console.print("[dim]Set REPOLENS_DEBUG=1 for full traceback.[/dim]")
            raise typer.Exit(1)

    return wrapper
