"""npm script runner."""

from __future__ import annotations

from pydantic import BaseModel, Field

from toolgate.capabilities.registry import tool
from toolgate.core.limits import BoundedList, LongStr, ShortStr
from toolgate.core.output import ToolOutput, render
from toolgate.core.security import assert_no_flag_injection
from toolgate.core.sys.execution import MAX_TIMEOUT_MS
from toolgate.mcp import WorkspaceInput, confined_cwd, run_tool_command

DEFAULT_NPM_TIMEOUT_MS = 300_000


class NpmRunInput(WorkspaceInput):
    script: ShortStr = Field(description="Name of the package.json script to run.")
    args: BoundedList[LongStr] = Field(
        default_factory=list,
        description="Arguments forwarded to the script after '--'.",
    )
    timeout: int | None = Field(
        default=None,
        ge=1_000,
        le=MAX_TIMEOUT_MS,
        description=f"Timeout in milliseconds (default {DEFAULT_NPM_TIMEOUT_MS}).",
    )


class NpmRunResult(BaseModel):
    script: str
    exit_code: int
    success: bool
    duration: float
    timed_out: bool = False
    timeout_ms: int | None = None
    stdout: str | None = None
    stderr: str | None = None


def _headline(data: NpmRunResult) -> str:
    if data.timed_out:
        return (
            f'npm run "{data.script}": TIMED OUT after {data.timeout_ms}ms '
            f"(exit code {data.exit_code})."
        )
    status = "succeeded" if data.success else "failed"
    return f'npm run "{data.script}": {status} (exit code {data.exit_code}, {data.duration}s)'


def format_npm_run(data: NpmRunResult) -> str:
    lines = [_headline(data)]
    if data.stdout:
        lines.append(data.stdout.rstrip())
    if data.stderr:
        lines.append(data.stderr.rstrip())
    return "\n".join(lines)


def compact_npm_run(data: NpmRunResult) -> NpmRunResult:
    return data.model_copy(update={"stdout": None, "stderr": None})


def format_npm_run_compact(data: NpmRunResult) -> str:
    return _headline(data)


@tool(
    group="npm",
    name="run",
    title="npm run",
    input_model=NpmRunInput,
    output_model=NpmRunResult,
)
async def npm_run(params: NpmRunInput) -> ToolOutput:
    """Run a package.json script with npm and return its exit status and output."""
    assert_no_flag_injection(params.script, "script")
    cwd = confined_cwd(params.path, "npm")

    timeout_ms = params.timeout or DEFAULT_NPM_TIMEOUT_MS
    args = ["run", params.script]
    if params.args:
        args.extend(["--", *params.args])
    result = await run_tool_command("npm", "npm", args, cwd=cwd, timeout_ms=timeout_ms)

    data = NpmRunResult(
        script=params.script,
        exit_code=result.exit_code,
        success=result.ok,
        duration=round(result.duration_ms / 1000, 1),
        timed_out=result.timed_out,
        timeout_ms=timeout_ms if result.timed_out else None,
        stdout=result.stdout.strip(),
        stderr=result.stderr.strip(),
    )
    return render(
        data,
        f"{result.stdout}\n{result.stderr}",
        format_npm_run,
        compact_npm_run,
        format_npm_run_compact,
        force_full=not params.compact,
    )


__all__ = [
    "NpmRunInput",
    "NpmRunResult",
    "compact_npm_run",
    "format_npm_run",
    "format_npm_run_compact",
    "npm_run",
]
