"""Flag injection guard for positional CLI arguments.

Many CLIs parse any positional that starts with ``-`` as an option, even
when the agent meant it as a branch name or a file path. Leading spaces
and tabs are ignored when checking, so `` --force`` is still rejected.
Values with dashes elsewhere (``my-branch``, ``feature/auth``) are fine.

Parameters that legitimately start with a dash (search patterns passed
after ``-e``, message bodies sent over stdin) are exempt and must not be
routed through this guard.
"""

from __future__ import annotations

from collections.abc import Iterable

from toolgate.core.result import Err, FlagInjectionError, Ok, Result


def check_flag_injection(value: str, parameter: str) -> Result[str, FlagInjectionError]:
    """Return Ok(value) unless the first non-blank character is ``-``."""
    if value.lstrip(" \t").startswith("-"):
        return Err(
            FlagInjectionError(
                f'Invalid {parameter}: "{value}". Values must not start with "-".',
                parameter=parameter,
                value=value,
            )
        )
    return Ok(value)


def assert_no_flag_injection(value: str, parameter: str) -> str:
    """Raise FlagInjectionError when ``value`` would be parsed as a flag."""
    return check_flag_injection(value, parameter).unwrap()


def assert_no_flag_injection_all(values: Iterable[str], parameter: str) -> list[str]:
    """Check every element of an array parameter."""
    return [assert_no_flag_injection(value, parameter) for value in values]


__all__ = [
    "assert_no_flag_injection",
    "assert_no_flag_injection_all",
    "check_flag_injection",
]
