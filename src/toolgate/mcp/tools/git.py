"""Git tools: status, add, commit and tag.

The executable is always ``git``; agent-supplied refs and paths are
flag-checked, and commit/tag messages travel over stdin (``--file -``)
so they never appear in argv.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

from toolgate.capabilities.registry import tool
from toolgate.core.errors import raise_for_failure
from toolgate.core.limits import BoundedList, MessageStr, PathStr, ShortStr
from toolgate.core.output import ToolOutput, render
from toolgate.core.security import assert_no_flag_injection, assert_no_flag_injection_all
from toolgate.mcp import WorkspaceInput, confined_cwd, run_tool_command

_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})
_BRANCH_RE = re.compile(
    r"^## (?:No commits yet on |Initial commit on )?(?P<branch>[^.\s]+(?:\.[^.\s]+)*?)"
    r"(?:\.\.\.(?P<upstream>\S+))?(?: \[(?P<tracking>[^\]]+)\])?$"
)
_COMMIT_HEADER_RE = re.compile(r"^\[(?P<branch>\S+)(?: \(root-commit\))? (?P<hash>[0-9a-f]{4,40})\]")
_SHORTSTAT_RE = re.compile(
    r"(?P<files>\d+) files? changed"
    r"(?:, (?P<insertions>\d+) insertions?\(\+\))?"
    r"(?:, (?P<deletions>\d+) deletions?\(-\))?"
)


# ---------------------------------------------------------------------------
# git status
# ---------------------------------------------------------------------------


class GitFileChange(BaseModel):
    path: str
    status: str


class GitStatusResult(BaseModel):
    branch: str
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    clean: bool
    staged_count: int
    modified_count: int
    untracked_count: int
    conflict_count: int
    staged: list[GitFileChange] | None = None
    modified: list[GitFileChange] | None = None
    untracked: list[str] | None = None
    conflicts: list[str] | None = None


def _parse_branch_line(line: str) -> tuple[str, str | None, int, int]:
    if line.startswith("## HEAD (no branch)"):
        return "HEAD (detached)", None, 0, 0
    match = _BRANCH_RE.match(line)
    if match is None:
        return line.removeprefix("## ").strip(), None, 0, 0
    ahead = behind = 0
    for part in (match.group("tracking") or "").split(","):
        words = part.split()
        if len(words) == 2 and words[0] == "ahead":
            ahead = int(words[1])
        elif len(words) == 2 and words[0] == "behind":
            behind = int(words[1])
    return match.group("branch"), match.group("upstream"), ahead, behind


def parse_status(stdout: str) -> GitStatusResult:
    """Parse ``git status --porcelain=v1 --branch`` output."""
    branch, upstream, ahead, behind = "unknown", None, 0, 0
    staged: list[GitFileChange] = []
    modified: list[GitFileChange] = []
    untracked: list[str] = []
    conflicts: list[str] = []

    for line in stdout.splitlines():
        if line.startswith("## "):
            branch, upstream, ahead, behind = _parse_branch_line(line)
            continue
        if len(line) < 4:
            continue
        code, path = line[:2], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if code == "??":
            untracked.append(path)
        elif code in _CONFLICT_CODES:
            conflicts.append(path)
        else:
            if code[0] not in " ?":
                staged.append(GitFileChange(path=path, status=code[0]))
            if code[1] != " ":
                modified.append(GitFileChange(path=path, status=code[1]))

    return GitStatusResult(
        branch=branch,
        upstream=upstream,
        ahead=ahead,
        behind=behind,
        clean=not (staged or modified or untracked or conflicts),
        staged_count=len(staged),
        modified_count=len(modified),
        untracked_count=len(untracked),
        conflict_count=len(conflicts),
        staged=staged,
        modified=modified,
        untracked=untracked,
        conflicts=conflicts,
    )


def _status_headline(data: GitStatusResult) -> str:
    head = f"On branch {data.branch}"
    if data.upstream:
        head += f" tracking {data.upstream}"
        if data.ahead or data.behind:
            head += f" [ahead {data.ahead}, behind {data.behind}]"
    if data.clean:
        return f"{head}: working tree clean"
    return (
        f"{head}: {data.staged_count} staged, {data.modified_count} modified, "
        f"{data.untracked_count} untracked, {data.conflict_count} conflicts"
    )


def format_status(data: GitStatusResult) -> str:
    lines = [_status_headline(data)]
    lines.extend(f"  staged {c.status} {c.path}" for c in data.staged or [])
    lines.extend(f"  modified {c.status} {c.path}" for c in data.modified or [])
    lines.extend(f"  untracked {p}" for p in data.untracked or [])
    lines.extend(f"  conflict {p}" for p in data.conflicts or [])
    return "\n".join(lines)


def compact_status(data: GitStatusResult) -> GitStatusResult:
    return data.model_copy(
        update={"staged": None, "modified": None, "untracked": None, "conflicts": None}
    )


def format_status_compact(data: GitStatusResult) -> str:
    return _status_headline(data)


@tool(
    group="git",
    name="status",
    title="Git Status",
    input_model=WorkspaceInput,
    output_model=GitStatusResult,
)
async def git_status(params: WorkspaceInput) -> ToolOutput:
    """Show the branch, tracking state and changed files of a repository."""
    cwd = confined_cwd(params.path, "git")
    result = raise_for_failure(
        await run_tool_command("git", "git", ["status", "--porcelain=v1", "--branch"], cwd=cwd),
        "git status",
    )
    return render(
        parse_status(result.stdout),
        result.stdout,
        format_status,
        compact_status,
        format_status_compact,
        force_full=not params.compact,
    )


# ---------------------------------------------------------------------------
# git add
# ---------------------------------------------------------------------------


class GitAddInput(WorkspaceInput):
    files: BoundedList[PathStr] = Field(
        min_length=1, description="Files to stage, relative to the repository."
    )


class GitAddResult(BaseModel):
    staged_count: int
    staged: list[str] | None = None


def format_add(data: GitAddResult) -> str:
    lines = [f"Staged {data.staged_count} file(s)"]
    lines.extend(f"  {path}" for path in data.staged or [])
    return "\n".join(lines)


def compact_add(data: GitAddResult) -> GitAddResult:
    return data.model_copy(update={"staged": None})


def format_add_compact(data: GitAddResult) -> str:
    return f"Staged {data.staged_count} file(s)"


@tool(
    group="git",
    name="add",
    title="Git Add",
    input_model=GitAddInput,
    output_model=GitAddResult,
)
async def git_add(params: GitAddInput) -> ToolOutput:
    """Stage files and report everything currently staged."""
    files = assert_no_flag_injection_all(params.files, "files")
    cwd = confined_cwd(params.path, "git")

    raise_for_failure(
        await run_tool_command("git", "git", ["add", "--", *files], cwd=cwd), "git add"
    )
    listing = raise_for_failure(
        await run_tool_command("git", "git", ["diff", "--cached", "--name-only"], cwd=cwd),
        "git diff --cached",
    )

    staged = [line for line in listing.stdout.splitlines() if line.strip()]
    return render(
        GitAddResult(staged_count=len(staged), staged=staged),
        listing.stdout,
        format_add,
        compact_add,
        format_add_compact,
        force_full=not params.compact,
    )


# ---------------------------------------------------------------------------
# git commit
# ---------------------------------------------------------------------------


class GitCommitInput(WorkspaceInput):
    message: MessageStr = Field(description="Commit message; sent over stdin, never argv.")
    amend: bool = Field(default=False, description="Amend the previous commit.")


class GitCommitResult(BaseModel):
    hash: str
    branch: str
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    subject: str


def parse_commit(stdout: str, message: str) -> GitCommitResult:
    branch, commit_hash = "unknown", ""
    files_changed = insertions = deletions = 0
    for line in stdout.splitlines():
        header = _COMMIT_HEADER_RE.match(line.strip())
        if header:
            branch, commit_hash = header.group("branch"), header.group("hash")
            continue
        stat = _SHORTSTAT_RE.search(line)
        if stat:
            files_changed = int(stat.group("files"))
            insertions = int(stat.group("insertions") or 0)
            deletions = int(stat.group("deletions") or 0)
    return GitCommitResult(
        hash=commit_hash,
        branch=branch,
        files_changed=files_changed,
        insertions=insertions,
        deletions=deletions,
        subject=message.strip().splitlines()[0] if message.strip() else "",
    )


def format_commit(data: GitCommitResult) -> str:
    return (
        f"[{data.branch} {data.hash}] {data.subject}\n"
        f"  {data.files_changed} file(s) changed, +{data.insertions} -{data.deletions}"
    )


def compact_commit(data: GitCommitResult) -> GitCommitResult:
    return data


def format_commit_compact(data: GitCommitResult) -> str:
    return format_commit(data)


@tool(
    group="git",
    name="commit",
    title="Git Commit",
    input_model=GitCommitInput,
    output_model=GitCommitResult,
)
async def git_commit(params: GitCommitInput) -> ToolOutput:
    """Commit staged changes. The message is passed on stdin, so any text is safe."""
    cwd = confined_cwd(params.path, "git")
    args = ["commit", "--file", "-"]
    if params.amend:
        args.append("--amend")

    result = raise_for_failure(
        await run_tool_command("git", "git", args, cwd=cwd, stdin=params.message), "git commit"
    )
    return render(
        parse_commit(result.stdout, params.message),
        result.stdout,
        format_commit,
        compact_commit,
        format_commit_compact,
        force_full=not params.compact,
    )


# ---------------------------------------------------------------------------
# git tag
# ---------------------------------------------------------------------------


class GitTagInput(WorkspaceInput):
    name: ShortStr | None = Field(default=None, description="Tag to create. Omit to list tags.")
    message: MessageStr | None = Field(
        default=None, description="Annotation message (creates an annotated tag via stdin)."
    )
    commit: ShortStr | None = Field(default=None, description="Commit to tag (default HEAD).")


class GitTagResult(BaseModel):
    action: Literal["list", "create"]
    tag_count: int = 0
    tags: list[str] | None = None
    tag: str | None = None
    annotated: bool = False
    commit: str | None = None


def format_tag(data: GitTagResult) -> str:
    if data.action == "create":
        kind = "annotated tag" if data.annotated else "tag"
        target = f" at {data.commit}" if data.commit else ""
        return f"Created {kind} {data.tag}{target}"
    lines = [f"{data.tag_count} tag(s)"]
    lines.extend(f"  {tag}" for tag in data.tags or [])
    return "\n".join(lines)


def compact_tag(data: GitTagResult) -> GitTagResult:
    return data.model_copy(update={"tags": None})


def format_tag_compact(data: GitTagResult) -> str:
    if data.action == "create":
        return format_tag(data)
    return f"{data.tag_count} tag(s)"


@tool(
    group="git",
    name="tag",
    title="Git Tag",
    input_model=GitTagInput,
    output_model=GitTagResult,
    core=False,
)
async def git_tag(params: GitTagInput) -> ToolOutput:
    """List tags, or create a lightweight or annotated tag."""
    cwd = confined_cwd(params.path, "git")

    if params.name is None:
        result = raise_for_failure(
            await run_tool_command(
                "git", "git", ["tag", "--list", "--sort=-creatordate"], cwd=cwd
            ),
            "git tag",
        )
        tags = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        data = GitTagResult(action="list", tag_count=len(tags), tags=tags)
        raw = result.stdout
    else:
        name = assert_no_flag_injection(params.name, "name")
        args = ["tag"]
        if params.message is not None:
            args.extend(["--annotate", "--file", "-"])
        args.append(name)
        if params.commit is not None:
            args.append(assert_no_flag_injection(params.commit, "commit"))
        result = raise_for_failure(
            await run_tool_command("git", "git", args, cwd=cwd, stdin=params.message),
            "git tag",
        )
        data = GitTagResult(
            action="create",
            tag_count=1,
            tag=name,
            annotated=params.message is not None,
            commit=params.commit,
        )
        raw = result.stdout + result.stderr

    return render(
        data,
        raw,
        format_tag,
        compact_tag,
        format_tag_compact,
        force_full=not params.compact,
    )


__all__ = [
    "GitAddInput",
    "GitAddResult",
    "GitCommitInput",
    "GitCommitResult",
    "GitStatusResult",
    "GitTagInput",
    "GitTagResult",
    "git_add",
    "git_commit",
    "git_status",
    "git_tag",
    "parse_commit",
    "parse_status",
]
