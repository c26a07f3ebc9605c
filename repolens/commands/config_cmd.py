"""``repolens config`` subcommands."""
from __future__ import annotations

import typer

from repolens import ui
from repolens.error_handler import handle_errors

app = typer.Typer(
    name="config",
    help="Inspect and change repolens settings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command()
@handle_errors
def show():
    """Print every setting, its value, and the layer it came from."""
    from rich.markup import escape
    from rich.table import Table
    from repolens.core.config_service import get_config_service

    info = get_config_service().show()
    sources = info["sources"]
    origins = info["origins"]
    resolved = info["resolved"]

    if ui.is_plain():
        for name, location in sources.items():
            print(f"{name}: {location or 'not found'}")
        for key in sorted(origins):
            print(f"{key} = {_display_value(resolved, key)} ({origins[key]})")
        return

    table = Table(title="Settings", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")
    for key in sorted(origins):
        table.add_row(key, escape(_display_value(resolved, key)), origins[key])
    ui.console.print(table)
    for name, location in sources.items():
        shown = escape(location) if location else "[dim]not found[/dim]"
        ui.console.print(f"[muted]{name}:[/muted] {shown}")


def _display_value(resolved: dict, dotted_key: str) -> str:
    node = resolved
    for part in dotted_key.split("."):
        node = node[part]
    return str(node).lower() if isinstance(node, bool) else str(node)


@app.command("set")
@handle_errors
def set_value(
    key: str = typer.Argument(..., help="Dotted key, e.g. analysis.timeout_ms"),
    value: str = typer.Argument(..., help="New value"),
):
    """Write a setting to the global config file."""
    from repolens.core.config_service import coerce_value, get_config_service

    parsed = coerce_value(key, value)
    get_config_service().set_global(key, parsed)
    ui.console.print(f"[green]Set[/green] {key} = {parsed}", highlight=False)


@app.command()
@handle_errors
def path():
    """Show where the global and project config files live."""
    from rich.markup import escape
    from repolens.core.config_service import get_config_service

    for name, location in get_config_service().config_paths().items():
        ui.console.print(f"[cyan]{name}[/cyan]  {escape(location)}", highlight=False)
