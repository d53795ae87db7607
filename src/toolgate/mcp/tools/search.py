"""Code search backed by ripgrep."""

from __future__ import annotations

from pydantic import BaseModel, Field

from toolgate.capabilities.registry import tool
from toolgate.core.errors import raise_for_failure
from toolgate.core.limits import LongStr, ShortStr
from toolgate.core.output import ToolOutput, render
from toolgate.core.security import assert_no_flag_injection
from toolgate.core.sys.execution import RunResult
from toolgate.mcp import WorkspaceInput, confined_cwd, run_tool_command

# rg exits 1 when nothing matched; that is not a failure.
_NO_MATCHES_EXIT_CODE = 1


class SearchInput(WorkspaceInput):
    pattern: LongStr = Field(
        min_length=1,
        description="Regular expression. May start with '-'; it is passed with -e.",
    )
    glob: ShortStr | None = Field(default=None, description="Only search files matching this glob.")
    case_sensitive: bool = Field(default=True, description="Match case exactly.")
    max_results: int = Field(default=200, ge=1, le=10_000, description="Stop after this many matches.")


class SearchMatch(BaseModel):
    file: str
    line: int
    text: str


class SearchResult(BaseModel):
    total_matches: int
    file_count: int
    truncated: bool = False
    matches: list[SearchMatch] | None = None


def parse_matches(stdout: str, max_results: int) -> SearchResult:
    """Parse ``rg --null --line-number --no-heading`` output."""
    matches: list[SearchMatch] = []
    files: set[str] = set()
    total = 0
    for line in stdout.splitlines():
        file_path, sep, rest = line.partition("\0")
        if not sep:
            continue
        line_no, sep, text = rest.partition(":")
        if not sep or not line_no.isdigit():
            continue
        total += 1
        files.add(file_path)
        if len(matches) < max_results:
            matches.append(SearchMatch(file=file_path, line=int(line_no), text=text))

    return SearchResult(
        total_matches=total,
        file_count=len(files),
        truncated=total > len(matches),
        matches=matches,
    )


def _headline(data: SearchResult) -> str:
    suffix = " (truncated)" if data.truncated else ""
    return f"{data.total_matches} match(es) in {data.file_count} file(s){suffix}"


def format_search(data: SearchResult) -> str:
    lines = [_headline(data)]
    lines.extend(f"{m.file}:{m.line}: {m.text}" for m in data.matches or [])
    return "\n".join(lines)


def compact_search(data: SearchResult) -> SearchResult:
    return data.model_copy(update={"matches": None})


def format_search_compact(data: SearchResult) -> str:
    return _headline(data)


def _check_exit(result: RunResult) -> RunResult:
    if result.exit_code == _NO_MATCHES_EXIT_CODE and not result.timed_out:
        return result
    return raise_for_failure(result, "rg")


@tool(
    group="search",
    name="search",
    title="Search Code",
    input_model=SearchInput,
    output_model=SearchResult,
)
async def search(params: SearchInput) -> ToolOutput:
    """Search files with ripgrep and return matching lines."""
    cwd = confined_cwd(params.path, "search")
    args = ["--null", "--line-number", "--no-heading", "--color", "never"]
    if not params.case_sensitive:
        args.append("--ignore-case")
    if params.glob is not None:
        args.extend(["--glob", assert_no_flag_injection(params.glob, "glob")])
    # Pattern is exempt from the flag guard: -e marks it as a pattern.
    args.extend(["-e", params.pattern, "--", "."])

    result = _check_exit(await run_tool_command("search", "rg", args, cwd=cwd))
    data = parse_matches(result.stdout, params.max_results)
    return render(
        data,
        result.stdout,
        format_search,
        compact_search,
        format_search_compact,
        force_full=not params.compact,
    )


__all__ = [
    "SearchInput",
    "SearchMatch",
    "SearchResult",
    "parse_matches",
    "search",
]
