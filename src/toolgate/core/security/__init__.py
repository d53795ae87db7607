"""
Security guards applied before any process is spawned.

This package consolidates the fail-closed validation layer:
- Command allowlisting and path-qualified command rejection
- Flag injection checks for positional arguments
- Working-directory confinement to authorized roots
- The immutable SecurityPolicy the guards consult

Usage:
    from toolgate.core.security import assert_allowed_command, assert_no_flag_injection
"""

from __future__ import annotations

from toolgate.core.security.arguments import (
    assert_no_flag_injection,
    assert_no_flag_injection_all,
    check_flag_injection,
)
from toolgate.core.security.command import (
    EXECUTABLE_EXTENSIONS,
    assert_allowed_by_policy,
    assert_allowed_command,
    assert_no_path_qualified_command,
    check_command,
    check_no_path_qualified_command,
    command_basename,
)
from toolgate.core.security.path import (
    MAX_SYMLINK_DEPTH,
    assert_allowed_root,
    check_allowed_root,
)
from toolgate.core.security.policy import ALLOWED_BUILD_COMMANDS, DEFAULT_POLICY, SecurityPolicy

__all__ = [
    "ALLOWED_BUILD_COMMANDS",
    "DEFAULT_POLICY",
    "EXECUTABLE_EXTENSIONS",
    "MAX_SYMLINK_DEPTH",
    "SecurityPolicy",
    "assert_allowed_by_policy",
    "assert_allowed_command",
    "assert_allowed_root",
    "assert_no_flag_injection",
    "assert_no_flag_injection_all",
    "assert_no_path_qualified_command",
    "check_allowed_root",
    "check_command",
    "check_flag_injection",
    "check_no_path_qualified_command",
    "command_basename",
]
