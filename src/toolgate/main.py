from __future__ import annotations

import asyncio
import contextvars
import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from uuid import uuid4

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.registry import discover_commands
from .core.runtime import (
    RuntimeContext,
    build_runtime,
    reset_runtime_context,
    set_runtime_context,
)

app = typer.Typer(help="toolgate: guarded command-line tools for AI agents, served over MCP.")
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger
    runtime_ctx: RuntimeContext
    runtime_token: contextvars.Token[RuntimeContext | None] | None = None


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a toolgate config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    # load_config never raises; errors come back in meta.error
    loaded_config, meta = load_config(config_path=config)
    app_logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    runtime = build_runtime(loaded_config, trace_id=f"cli-{uuid4().hex[:8]}")
    token = set_runtime_context(runtime)
    ctx.call_on_close(lambda: reset_runtime_context(token))

    ctx.obj = AppState(
        config=loaded_config,
        config_meta=meta,
        logger=app_logger,
        runtime_ctx=runtime,
        runtime_token=token,
    )

    if meta.error:
        console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {escape(str(meta.path))}:\n{escape(meta.error)}\n\n"
                f"[yellow]Using default settings.[/yellow]",
                border_style="red",
            )
        )
    else:
        app_logger.debug(
            "Loaded configuration from %s (env overrides: %s, trace: %s)",
            meta.path,
            sorted(meta.env_overrides),
            runtime.trace_id,
        )


@app.command("serve")
def serve(ctx: typer.Context) -> None:
    """Run the MCP server over stdio."""
    from .mcp.server import serve as serve_stdio

    state: AppState = ctx.obj
    asyncio.run(serve_stdio(state.config))


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the active configuration and where it came from."""
    state: AppState = ctx.obj
    config = state.config
    meta = state.config_meta

    table = Table(title="Config", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for section, values in config.model_dump().items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(f"{section}.{key}", escape(str(value)))
        else:
            table.add_row(section, escape(str(values)))

    console.print(table)

    meta_lines = [
        f"Path: {meta.path}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]

    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))

    console.print(Panel(escape("\n".join(meta_lines)), title="Config source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the toolgate version."""
    console.print(__version__)


def _register_commands() -> None:
    commands_path = Path(__file__).resolve().parent / "commands"
    typer_modules, function_commands = discover_commands(commands_path)

    registered = {info.name for info in app.registered_groups} | {
        info.name for info in app.registered_commands
    }
    for name, module in typer_modules:
        if name not in registered:
            app.add_typer(module.app, name=name)

    for spec in function_commands:
        if spec.name not in registered:
            app.command(spec.name)(spec.handler)


def _register_commands_with_timing() -> None:
    start = perf_counter()
    _register_commands()
    elapsed = perf_counter() - start
    logger.debug("Command registry initialized in %.3f seconds", elapsed)


_register_commands_with_timing()


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
