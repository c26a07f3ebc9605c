"""
repolens: heuristic source-tree analysis from the command line.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from repolens import __version__, ui
from repolens.commands import config_cmd
from repolens.error_handler import handle_errors
from repolens.errors import InvalidProjectPathError

app = typer.Typer(
    name="repolens",
    help="Classify a source tree and explain how it is put together.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_cmd.app, name="config", help="Manage configuration", rich_help_panel="Advanced")


def setup_logging(verbose: bool) -> None:
    """Route repolens.* logs to stderr, DEBUG when verbose, WARNING otherwise."""
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger("repolens")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.propagate = False


def _version_callback(value: bool) -> None:
    if value:
        print(f"repolens {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit.",
    ),
):
    """Classify a source tree and explain how it is put together."""


@app.command(rich_help_panel="Analysis")
@handle_errors
def analyze(
    path: Path = typer.Argument(..., help="Directory holding the source tree"),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", "-t", min=1,
        help="Wall-clock budget in milliseconds (default from config)",
    ),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", "-d", min=0, help="Folder tree depth for the full scan",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    plain: bool = typer.Option(False, "--plain", help="Plain text output without colors or panels"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Also write the report to this file",
    ),
    format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Report format for --output: json or yaml (default from suffix)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging on stderr"),
):
    """[bold cyan]Analyze[/bold cyan] a local source tree."""
    from repolens.core.analysis_service import analyze as run_analysis
    from repolens.core.config_service import get_config_service
    from repolens.core.export_service import ExportService

    setup_logging(verbose)
    ui.set_json_mode(json_output)
    ui.set_plain_mode(plain or get_config_service().plain_output())

    project_path = path.expanduser()
    if not project_path.is_dir():
        raise InvalidProjectPathError(str(path))

    outcome = run_analysis(project_path, timeout_ms, max_depth=max_depth)

    if output is not None:
        result = ExportService().export(outcome, output, format=format)
        if not ui.is_json():
            ui.console.print(f"[green]Wrote {result.format.upper()} report:[/green] {result.output_path}")

    ui.show_outcome(outcome)


@app.command(rich_help_panel="Analysis")
@handle_errors
def extractors():
    """List the backend extractors in detection order."""
    from repolens.analyzers.backends import DEFAULT_EXTRACTOR, get_extractor_names

    for name in get_extractor_names():
        suffix = " (fallback)" if name == DEFAULT_EXTRACTOR else ""
        ui.console.print(f"{name}{suffix}", highlight=False)


if __name__ == "__main__":
    app()
