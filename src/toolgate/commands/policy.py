"""Dry-run the security guards.

Lets an operator check how the active policy treats a command, an
argument or a path without starting the MCP server.
"""

from __future__ import annotations

import typer
from rich.markup import escape

from toolgate.core.console import console
from toolgate.core.result import Err, Ok, Result, SecurityError
from toolgate.core.security import (
    assert_allowed_by_policy,
    check_allowed_root,
    check_command,
    check_flag_injection,
    check_no_path_qualified_command,
)

app = typer.Typer(help="Check commands, arguments and paths against the security policy.")


def _report(result: Result[object, SecurityError], allowed_message: str) -> None:
    match result:
        case Ok(_):
            console.print(f"[green]allowed[/green] {escape(allowed_message)}")
        case Err(error):
            console.print(f"[red]rejected[/red] {escape(str(error))}")
            raise typer.Exit(code=1)


@app.command("check-command")
def check_command_cmd(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Executable name as an agent would send it."),
    group: str = typer.Option("build", "--group", "-g", help="Tool group for per-group policy."),
) -> None:
    """Check an executable against the build allowlist and operator policy."""
    policy = ctx.obj.runtime_ctx.policy
    result = check_command(command, policy)
    if isinstance(result, Ok) and policy.strict_path:
        result = check_no_path_qualified_command(command)
    if isinstance(result, Ok):
        try:
            assert_allowed_by_policy(command, group, policy)
        except SecurityError as exc:
            result = Err(exc)
    _report(result, command)


@app.command("check-arg")
def check_arg_cmd(
    value: str = typer.Argument(..., help="Argument value to test."),
    param: str = typer.Option("value", "--param", "-p", help="Parameter name for messages."),
) -> None:
    """Check whether a value would be rejected as a flag."""
    _report(check_flag_injection(value, param), repr(value))


@app.command("check-path")
def check_path_cmd(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Working directory or target path."),
    tool: str = typer.Option("build", "--tool", "-t", help="Tool group for per-group roots."),
) -> None:
    """Check whether a path is inside the authorized roots."""
    policy = ctx.obj.runtime_ctx.policy
    result = check_allowed_root(path, tool, policy)
    _report(result, str(result.value) if isinstance(result, Ok) else path)
