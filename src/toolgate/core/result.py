"""
Unified Result types and error hierarchy for toolgate.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy
3. Helper functions for Result operations

Guards return a Result so callers can inspect a rejection without
try/except; the ``assert_*`` wrappers unwrap it and raise.

Usage:
    from toolgate.core.result import Ok, Err, Result, SecurityError

    def check(value: str) -> Result[str, SecurityError]:
        if value.startswith("-"):
            return Err(SecurityError("Looks like a flag"))
        return Ok(value)

    match check(arg):
        case Ok(value):
            argv.append(value)
        case Err(error):
            raise error
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)
F = TypeVar("F", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (ignores default for Ok)."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value."""
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain operations that may fail."""
        return fn(self.value)


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default value."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op for Err - returns self unchanged."""
        return self

    def and_then(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        """Short-circuit for Err - returns self unchanged."""
        return self


# Type alias for Result
Result = Ok[T] | Err[E]


def collect_results(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Return Ok with every value, or the first Err encountered."""
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class ToolgateError(Exception):
    """Base exception for all toolgate errors.

    All custom exceptions should inherit from this class to enable
    consistent error handling across the codebase.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class SecurityError(ToolgateError):
    """Raised when a guard rejects agent-supplied input.

    Always raised before any process is spawned.
    """


class CommandNotAllowedError(SecurityError):
    """Raised when an executable is not in the allowlist or is path-qualified."""

    def __init__(self, message: str, *, command: str) -> None:
        super().__init__(message)
        self.command = command


class FlagInjectionError(SecurityError):
    """Raised when a positional argument would be parsed as a flag."""

    def __init__(self, message: str, *, parameter: str, value: str) -> None:
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class PathOutsideRootError(SecurityError):
    """Raised when a path resolves outside every authorized root."""

    def __init__(self, message: str, *, path: str, tool_name: str) -> None:
        super().__init__(message)
        self.path = path
        self.tool_name = tool_name


class ConfigurationError(ToolgateError):
    """Raised for configuration issues.

    Examples:
    - Config file parse errors
    - Invalid policy values
    """


class ToolValidationError(ToolgateError):
    """Raised when tool arguments fail schema or length validation."""


class ToolExecutionError(ToolgateError):
    """Raised when a tool maps a failed process run into an error.

    Carries the classified category and suggestion when available.
    """


class ToolNotFoundError(ToolgateError):
    """Raised when a call targets a tool that is unknown or still deferred."""


__all__ = [
    "CommandNotAllowedError",
    "ConfigurationError",
    "Err",
    "FlagInjectionError",
    "Ok",
    "PathOutsideRootError",
    "Result",
    "SecurityError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolValidationError",
    "ToolgateError",
    "collect_results",
]
