"""Classification of failed process runs.

Tools without a meaningful structured failure shape turn a failed
RunResult into a ``CommandFailedError`` carrying a category an agent can
match on, plus a recovery suggestion. Patterns are checked from most to
least specific; exit code 124 is always a timeout.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

from toolgate.core.result import ToolExecutionError
from toolgate.core.sys.execution import TIMEOUT_EXIT_CODE, RunResult


class ErrorCategory(str, Enum):
    COMMAND_NOT_FOUND = "command-not-found"
    PERMISSION_DENIED = "permission-denied"
    TIMEOUT = "timeout"
    INVALID_INPUT = "invalid-input"
    NOT_FOUND = "not-found"
    NETWORK_ERROR = "network-error"
    AUTHENTICATION_ERROR = "authentication-error"
    CONFLICT = "conflict"
    CONFIGURATION_ERROR = "configuration-error"
    ALREADY_EXISTS = "already-exists"
    COMMAND_FAILED = "command-failed"


class ToolErrorInfo(BaseModel):
    """Structured description of a failed command."""

    category: ErrorCategory
    message: str
    command: str | None = None
    exit_code: int | None = None
    suggestion: str | None = None


class CommandFailedError(ToolExecutionError):
    """A process failure a tool chose to surface as an error."""

    def __init__(self, info: ToolErrorInfo) -> None:
        super().__init__(format_tool_error(info))
        self.info = info


_PATTERNS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.TIMEOUT, ("timed out", "timeout")),
    (
        ErrorCategory.COMMAND_NOT_FOUND,
        (
            "command not found",
            "not recognized",
            "enoent",
            "no such file or directory",
        ),
    ),
    (
        ErrorCategory.AUTHENTICATION_ERROR,
        (
            "authentication",
            "authenticated",
            "credential",
            "unauthorized",
            "permission denied (publickey",
            "login required",
        ),
    ),
    (
        ErrorCategory.PERMISSION_DENIED,
        ("permission denied", "eacces", "eperm", "access denied", "operation not permitted"),
    ),
    (
        ErrorCategory.NETWORK_ERROR,
        (
            "connection refused",
            "econnrefused",
            "etimedout",
            "econnreset",
            "enetunreach",
            "could not resolve host",
            "network is unreachable",
        ),
    ),
    (ErrorCategory.ALREADY_EXISTS, ("already exists", "already exist")),
    (
        ErrorCategory.CONFIGURATION_ERROR,
        (
            "missing config",
            "configuration error",
            "config file not found",
            "invalid configuration",
            "no configuration",
            "could not read config",
        ),
    ),
    (ErrorCategory.CONFLICT, ("conflict", "lock file", "locked")),
    (
        ErrorCategory.NOT_FOUND,
        (
            "not found",
            "does not exist",
            "no such",
            "unknown revision",
            "pathspec",
            "not a git repository",
        ),
    ),
]

_HTTP_AUTH_RE = re.compile(r" 40[13][ :]")
_HTTP_NOT_FOUND_RE = re.compile(r" 404[ :]")

_SUGGESTIONS: dict[ErrorCategory, str] = {
    ErrorCategory.COMMAND_NOT_FOUND: 'Ensure "{command}" is installed and available in your PATH.',
    ErrorCategory.PERMISSION_DENIED: "Check file and directory permissions.",
    ErrorCategory.TIMEOUT: "The command took too long. Retry with a longer timeout or a smaller scope.",
    ErrorCategory.INVALID_INPUT: "Check the input parameters and try again.",
    ErrorCategory.NOT_FOUND: "Verify the resource (file, branch, ref) exists.",
    ErrorCategory.NETWORK_ERROR: "Check your network connection and try again.",
    ErrorCategory.AUTHENTICATION_ERROR: "Verify your credentials or tokens are valid and not expired.",
    ErrorCategory.CONFLICT: "Resolve the conflict or release the lock and retry.",
    ErrorCategory.CONFIGURATION_ERROR: "Check that all required config files exist and are valid.",
    ErrorCategory.ALREADY_EXISTS: "The resource already exists. Use a different name or remove it first.",
    ErrorCategory.COMMAND_FAILED: 'Inspect the error message from "{command}" for more details.',
}


def classify_text(text: str, exit_code: int) -> ErrorCategory:
    if exit_code == TIMEOUT_EXIT_CODE:
        return ErrorCategory.TIMEOUT

    lower = text.lower()
    for category, needles in _PATTERNS:
        if any(needle in lower for needle in needles):
            return category
        if category is ErrorCategory.AUTHENTICATION_ERROR and _HTTP_AUTH_RE.search(lower):
            return category
    if _HTTP_NOT_FOUND_RE.search(lower):
        return ErrorCategory.NOT_FOUND
    return ErrorCategory.COMMAND_FAILED


def classify_error(result: RunResult, command: str) -> ToolErrorInfo:
    """Classify a failed run; ``command`` is a label such as ``"git tag"``."""
    text = result.stderr or result.stdout
    category = classify_text(text, result.exit_code)
    return ToolErrorInfo(
        category=category,
        message=text.strip() or f"{command} failed with exit code {result.exit_code}",
        command=command,
        exit_code=result.exit_code,
        suggestion=_SUGGESTIONS[category].format(command=command),
    )


def format_tool_error(info: ToolErrorInfo) -> str:
    lines = [f"Error [{info.category.value}]: {info.message}"]
    if info.command:
        lines.append(f"Command: {info.command}")
    if info.exit_code is not None:
        lines.append(f"Exit code: {info.exit_code}")
    if info.suggestion:
        lines.append(f"Suggestion: {info.suggestion}")
    return "\n".join(lines)


def raise_for_failure(result: RunResult, command: str) -> RunResult:
    """Return ``result`` unchanged if it succeeded, else raise CommandFailedError."""
    if result.ok:
        return result
    raise CommandFailedError(classify_error(result, command))


__all__ = [
    "CommandFailedError",
    "ErrorCategory",
    "ToolErrorInfo",
    "classify_error",
    "classify_text",
    "format_tool_error",
    "raise_for_failure",
]
