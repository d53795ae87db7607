"""MCP surface: shared helpers for tool handlers.

Every handler follows the same path: guards (fail-closed, before any
process starts), then the runner, then a parser, then ``render``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from toolgate.core.console import get_logger
from toolgate.core.limits import PathStr
from toolgate.core.runtime import get_runtime
from toolgate.core.security import assert_allowed_by_policy, assert_allowed_root
from toolgate.core.sys.execution import RunResult

logger = get_logger("toolgate.mcp")


class ToolInput(BaseModel):
    """Base for tool input models; unknown arguments are rejected."""

    model_config = ConfigDict(extra="forbid")


class WorkspaceInput(ToolInput):
    path: PathStr | None = Field(
        default=None, description="Working directory (default: the server's working directory)."
    )
    compact: bool = Field(
        default=True,
        description="Allow a compact response when it is smaller. Set false to force the full result.",
    )


def confined_cwd(path: str | None, group: str) -> Path:
    """Resolve the working directory and confine it to the authorized roots."""
    return assert_allowed_root(path or os.getcwd(), group, get_runtime().policy)


async def run_tool_command(
    group: str,
    executable: str,
    args: Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    timeout_ms: int | None = None,
    stdin: str | None = None,
) -> RunResult:
    """Apply the operator command policy, then run through the active runner."""
    ctx = get_runtime()
    assert_allowed_by_policy(executable, group, ctx.policy)
    logger.debug("[%s] %s %s (cwd=%s)", ctx.trace_id, executable, " ".join(args), cwd)
    return await ctx.runner.run(
        executable, list(args), cwd=cwd, env=env, timeout_ms=timeout_ms, stdin=stdin
    )


__all__ = [
    "ToolInput",
    "WorkspaceInput",
    "confined_cwd",
    "logger",
    "run_tool_command",
]
