"""Generic build tool: runs an allowlisted build command.

The command name is agent-supplied free text, so it goes through both the
allowlist and (in strict mode) the path-qualified command guard.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from toolgate.capabilities.registry import tool
from toolgate.core.limits import INPUT_LIMITS, BoundedList, LongStr, ShortStr
from toolgate.core.output import ToolOutput, render
from toolgate.core.runtime import get_runtime
from toolgate.core.security import (
    assert_allowed_command,
    assert_no_flag_injection,
    assert_no_path_qualified_command,
)
from toolgate.core.sys.execution import MAX_TIMEOUT_MS, RunResult
from toolgate.mcp import WorkspaceInput, confined_cwd, run_tool_command

DEFAULT_BUILD_TIMEOUT_MS = 300_000
MIN_BUILD_TIMEOUT_MS = 1_000


class BuildInput(WorkspaceInput):
    command: ShortStr = Field(description="Build command to run (e.g. 'npm', 'cargo', 'make').")
    args: BoundedList[LongStr] = Field(
        default_factory=list, description="Arguments for the build command (e.g. ['run', 'build'])."
    )
    timeout: int | None = Field(
        default=None,
        ge=MIN_BUILD_TIMEOUT_MS,
        le=MAX_TIMEOUT_MS,
        description=f"Timeout in milliseconds (default {DEFAULT_BUILD_TIMEOUT_MS}).",
    )
    env: dict[ShortStr, LongStr] | None = Field(
        default=None,
        max_length=INPUT_LIMITS.array_max,
        description="Environment variables merged over the server's environment.",
    )


class BuildResult(BaseModel):
    success: bool
    exit_code: int
    duration: float = Field(description="Wall-clock seconds.")
    timed_out: bool = False
    timeout_ms: int | None = None
    error_count: int
    warning_count: int
    errors: list[str] | None = None
    warnings: list[str] | None = None


def parse_build_output(result: RunResult, duration: float, timeout_ms: int) -> BuildResult:
    """Collect lines mentioning errors and warnings."""
    errors: list[str] = []
    warnings: list[str] = []
    for line in f"{result.stdout}\n{result.stderr}".splitlines():
        if not line.strip():
            continue
        lower = line.lower()
        if "error" in lower and "0 error" not in lower:
            errors.append(line.strip())
        elif "warn" in lower and "0 warn" not in lower:
            warnings.append(line.strip())

    return BuildResult(
        success=result.ok,
        exit_code=result.exit_code,
        duration=duration,
        timed_out=result.timed_out,
        timeout_ms=timeout_ms if result.timed_out else None,
        error_count=len(errors),
        warning_count=len(warnings),
        errors=errors,
        warnings=warnings,
    )


def _headline(data: BuildResult) -> str:
    if data.timed_out:
        return f"Build TIMED OUT after {data.timeout_ms}ms (exit code {data.exit_code})."
    if data.success:
        parts = [f"Build succeeded in {data.duration}s"]
        if data.warning_count:
            parts.append(f"{data.warning_count} warnings")
        return ", ".join(parts)
    return f"Build failed with exit code {data.exit_code} ({data.duration}s)"


def format_build(data: BuildResult) -> str:
    lines = [_headline(data)]
    lines.extend(f"  {err}" for err in data.errors or [])
    if not data.success:
        return "\n".join(lines)
    lines.extend(f"  {warn}" for warn in data.warnings or [])
    return "\n".join(lines)


def compact_build(data: BuildResult) -> BuildResult:
    return data.model_copy(update={"errors": None, "warnings": None})


def format_build_compact(data: BuildResult) -> str:
    headline = _headline(data)
    if data.error_count and not data.timed_out:
        headline += f", {data.error_count} errors"
    return headline


@tool(
    group="build",
    name="build",
    title="Run Build",
    input_model=BuildInput,
    output_model=BuildResult,
)
async def build(params: BuildInput) -> ToolOutput:
    """Run a build command and return success, errors and warnings.

    Allowed commands: ant, bazel, bun, bunx, cargo, cmake, dotnet, esbuild, go,
    gradle, gradlew, make, msbuild, mvn, npm, npx, nx, pnpm, rollup, tsc, turbo,
    vite, webpack, yarn.
    """
    policy = get_runtime().policy
    assert_allowed_command(params.command, policy)
    if policy.strict_path:
        assert_no_path_qualified_command(params.command)
    for key, value in (params.env or {}).items():
        assert_no_flag_injection(key, "env key")
        assert_no_flag_injection(value, "env value")
    cwd = confined_cwd(params.path, "build")

    timeout_ms = min(params.timeout or DEFAULT_BUILD_TIMEOUT_MS, MAX_TIMEOUT_MS)
    result = await run_tool_command(
        "build", params.command, params.args, cwd=cwd, env=params.env, timeout_ms=timeout_ms
    )

    duration = round(result.duration_ms / 1000, 1)
    data = parse_build_output(result, duration, timeout_ms)
    return render(
        data,
        f"{result.stdout}\n{result.stderr}",
        format_build,
        compact_build,
        format_build_compact,
        force_full=not params.compact,
    )


__all__ = [
    "BuildInput",
    "BuildResult",
    "build",
    "compact_build",
    "format_build",
    "format_build_compact",
    "parse_build_output",
]
