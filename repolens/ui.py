"""Shared UI theme, console, and display helpers for repolens."""

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from repolens.analyzers.models import (
    PARTIAL_ERROR,
    AnalysisOutcome,
    AnalysisResult,
    BackendModule,
    FrontendModule,
    MLModule,
)

# ── Output Mode State ──
_plain_mode: bool = False
_json_mode: bool = False


def set_plain_mode(enabled: bool = True) -> None:
    """Enable or disable plain text output (no colors, no panels, ASCII only)."""
    global _plain_mode, console
    _plain_mode = enabled
    if enabled:
        console = Console(no_color=True, highlight=False)
    else:
        console = Console(theme=REPOLENS_THEME)


def set_json_mode(enabled: bool = True) -> None:
    """Enable or disable JSON output mode."""
    global _json_mode
    _json_mode = enabled


def is_plain() -> bool:
    return _plain_mode


def is_json() -> bool:
    return _json_mode


def print_json_output(data: dict | list) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


# ── Theme ──
REPOLENS_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "brand": "bold cyan",
    "muted": "dim",
})

console = Console(theme=REPOLENS_THEME)

ICONS = {
    "warning": "[yellow]⚠[/yellow]",
    "error": "[red]✘[/red]",
}

PLAIN_ICONS = {
    "warning": "[!]",
    "error": "[!!]",
}


def partial_warning(result: AnalysisResult) -> None:
    """Tell the user only a shallow scan was returned, and why."""
    if result.partial_reason == PARTIAL_ERROR:
        cause = f"Analysis stopped on an internal error after {result.elapsed_ms} ms."
    else:
        cause = f"Analysis did not finish within its budget ({result.elapsed_ms} ms elapsed)."
    message = f"{cause} Showing a shallow folder scan only."
    if _plain_mode:
        print(f"{PLAIN_ICONS['warning']} PARTIAL: {message}")
        print()
        return
    console.print(Panel(message, title=f"{ICONS['warning']} Partial result", border_style="yellow"))


def classification_panel(result: AnalysisResult) -> None:
    classification = result.classification
    lines = [
        f"Project:   {result.root_name}",
        f"Type:      {classification.project_type.value}"
        + (" (monorepo)" if classification.is_monorepo else ""),
        f"Language:  {result.language}",
        f"Backend:   {', '.join(classification.backend_roots) or '-'}",
        f"Frontend:  {', '.join(classification.frontend_roots) or '-'}",
        f"ML:        {', '.join(classification.ml_roots) or '-'}",
    ]
    if _plain_mode:
        print("\n".join(lines))
        print()
        return
    console.print(Panel(Text("\n".join(lines)), title="[brand]repolens[/brand]", border_style="cyan"))


def _table(title: str, columns: list[str], rows: list[list[str]]) -> None:
    if _plain_mode:
        print(f"{title}:")
        if not rows:
            print("  none detected")
        for row in rows:
            print("  " + "  ".join(row))
        print()
        return
    table = Table(title=title, show_header=True)
    for column in columns:
        table.add_column(column, style="cyan" if column == columns[0] else None)
    for row in rows:
        table.add_row(*(escape(cell) for cell in row))
    if not rows:
        table.add_row(*(["[dim]none detected[/dim]"] + [""] * (len(columns) - 1)))
    console.print(table)


def backend_section(module: BackendModule) -> None:
    heading = f"Backend [{module.root}] {module.framework} / {module.architecture} / entry {module.entry_point}"
    if _plain_mode:
        print(heading)
    else:
        console.print(f"\n[bold]{escape(heading)}[/bold]")
    _table(
        "Routes",
        ["Method", "Path", "Handler", "File"],
        [[r.method, r.path, r.handler, r.source_file] for r in module.routes],
    )
    _table(
        "Controllers",
        ["Name", "File", "Methods"],
        [[c.name, c.file, ", ".join(c.methods)] for c in module.controllers],
    )
    _table(
        "Models",
        ["Name", "File", "Fields"],
        [[m.name, m.file, m.schema_summary] for m in module.models],
    )
    if module.services:
        _table("Services", ["Name", "File", "Methods"],
               [[s.name, s.file, ", ".join(s.methods)] for s in module.services])


def frontend_section(module: FrontendModule) -> None:
    heading = (
        f"Frontend [{module.root}] {module.framework} / {module.render_mode.value} "
        f"/ entry {module.entry_point}"
    )
    if _plain_mode:
        print(heading)
        print(f"State: {', '.join(module.state_management)}")
    else:
        console.print(f"\n[bold]{escape(heading)}[/bold]")
        console.print(f"[muted]State:[/muted] {escape(', '.join(module.state_management))}")
    _table(
        "UI Routes",
        ["Path", "Component", "Type"],
        [[r.path, r.component or r.file, r.type] for r in module.routes],
    )


def ml_section(module: MLModule) -> None:
    text = module.pipeline_explanation.rstrip()
    if _plain_mode:
        print(f"ML [{module.root}]")
        print(text)
        print()
        return
    console.print(Panel(Text(text), title=Text(f"ML [{module.root}]"), border_style="magenta"))


def explanation_section(result: AnalysisResult) -> None:
    explanation = result.explanation
    if result.readme_summary:
        _block("README", result.readme_summary)
    if explanation.execution_flow:
        _block("Execution flow", explanation.execution_flow.rstrip())
    _block("Folder tree", explanation.folder_tree_text.rstrip())


def _block(title: str, text: str) -> None:
    if _plain_mode:
        print(f"--- {title} ---")
        print(text)
        print()
        return
    # Tree text and READMEs may contain literal brackets
    console.print(Panel(Text(text), title=title, border_style="blue"))


def show_outcome(outcome: AnalysisOutcome) -> None:
    """Render an analysis outcome in the active output mode."""
    if _json_mode:
        print_json_output(outcome.to_dict())
        return

    result = outcome.result
    if outcome.partial:
        partial_warning(result)
    classification_panel(result)
    for module in result.backend_modules:
        backend_section(module)
    for module in result.frontend_modules:
        frontend_section(module)
    for module in result.ml_modules:
        ml_section(module)
    for error in result.errors:
        line = f"Could not analyze {error.kind} root '{error.root}': {error.error}"
        if _plain_mode:
            print(f"{PLAIN_ICONS['error']} {line}")
        else:
            console.print(f"{ICONS['error']} {escape(line)}", highlight=False)
    explanation_section(result)
