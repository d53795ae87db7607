"""Tool catalogue commands."""

from __future__ import annotations

import json

import typer
from rich import box
from rich.syntax import Syntax
from rich.table import Table

from toolgate.capabilities.profiles import is_lazy_enabled, should_register_tool
from toolgate.capabilities.registry import discover_tools
from toolgate.core.console import console


def list_tools(
    ctx: typer.Context,
    all_tools: bool = typer.Option(
        False, "--all", "-a", help="Include tools disabled by the current filters."
    ),
) -> None:
    """List declared tools and how the server would expose them."""
    server_config = ctx.obj.config.server
    lazy = is_lazy_enabled(server_config)

    table = Table(title="toolgate tools", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Exposure", no_wrap=True)
    table.add_column("Summary", style="white")

    for name, descriptor in sorted(discover_tools().items()):
        enabled = should_register_tool(descriptor.group, descriptor.short_name, server_config)
        if not enabled and not all_tools:
            continue
        if not enabled:
            exposure = "[dim]disabled[/dim]"
        elif lazy and not descriptor.is_core:
            exposure = "[yellow]deferred[/yellow]"
        else:
            exposure = "[green]registered[/green]"
        table.add_row(name, exposure, descriptor.description.splitlines()[0])

    console.print(table)
    if lazy:
        console.print("[dim]Deferred tools load through discover-tools.[/dim]")


def show_schema(
    name: str = typer.Argument(..., help="Tool name, e.g. git-status."),
    output: bool = typer.Option(False, "--output", "-o", help="Show the output schema."),
) -> None:
    """Print a tool's input (or output) JSON schema."""
    tools = discover_tools()
    descriptor = tools.get(name)
    if descriptor is None:
        console.print(f"[red]Unknown tool:[/red] {name}")
        raise typer.Exit(code=1)

    schema = descriptor.output_schema() if output else descriptor.input_schema()
    console.print(Syntax(json.dumps(schema, indent=2), "json"))
