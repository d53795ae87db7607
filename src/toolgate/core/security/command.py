"""
Executable allowlisting for spawned commands.

Two guards operate on the executable name:

- ``check_command`` normalizes a requested command (final path segment,
  known executable extension stripped) and compares it with the build
  allowlist, so ``/usr/bin/npm`` and ``npm.cmd`` both resolve to ``npm``.
- ``check_no_path_qualified_command`` rejects any name containing a path
  separator. It is applied where the command itself is free text, since a
  crafted path can carry an allowed basename while pointing at another
  binary on disk.

Tools that always run one hardcoded executable (git, rg) only consult the
operator policy via ``assert_allowed_by_policy``.
"""

from __future__ import annotations

import re

from toolgate.core.console import get_logger
from toolgate.core.result import CommandNotAllowedError, Err, Ok, Result
from toolgate.core.security.policy import DEFAULT_POLICY, SecurityPolicy

logger = get_logger(__name__)

EXECUTABLE_EXTENSIONS = (".cmd", ".exe", ".bat", ".sh")

_SEPARATOR_RE = re.compile(r"[\\/]")


def command_basename(requested: str) -> str:
    """Reduce a requested executable to its comparable base name.

    Examples:
        >>> command_basename("/usr/bin/npm")
        'npm'
        >>> command_basename("C:\\\\Tools\\\\Yarn.CMD")
        'yarn'
    """
    segment = _SEPARATOR_RE.split(requested)[-1]
    lowered = segment.lower()
    for extension in EXECUTABLE_EXTENSIONS:
        if lowered.endswith(extension):
            lowered = lowered[: -len(extension)]
            break
    return lowered


def is_path_qualified(requested: str) -> bool:
    return bool(_SEPARATOR_RE.search(requested))


def check_command(
    requested: str, policy: SecurityPolicy = DEFAULT_POLICY
) -> Result[str, CommandNotAllowedError]:
    """Validate an executable against the build allowlist.

    Returns:
        Ok(base_name) if allowed, Err(CommandNotAllowedError) otherwise.
    """
    allowed = policy.build_commands
    base = command_basename(requested) if requested.strip() else ""

    if not base or base not in allowed:
        return Err(
            CommandNotAllowedError(
                f'Command "{requested}" is not in the allowed build commands. '
                f"Allowed: {', '.join(sorted(allowed))}",
                command=requested,
            )
        )

    if is_path_qualified(requested):
        logger.warning(
            'Command uses a full path "%s"; resolved base name "%s" is allowed', requested, base
        )
    return Ok(base)


def assert_allowed_command(requested: str, policy: SecurityPolicy = DEFAULT_POLICY) -> str:
    """Raise CommandNotAllowedError unless ``requested`` is allowlisted."""
    match check_command(requested, policy):
        case Ok(base):
            return base
        case Err(error):
            logger.warning("Rejected command: %s", error.command)
            raise error


def check_no_path_qualified_command(requested: str) -> Result[str, CommandNotAllowedError]:
    if is_path_qualified(requested):
        return Err(
            CommandNotAllowedError(
                f'Path-qualified command "{requested}" is not allowed. '
                f'Use a bare command name (e.g. "npm") that resolves via PATH.',
                command=requested,
            )
        )
    return Ok(requested)


def assert_no_path_qualified_command(requested: str) -> None:
    """Raise CommandNotAllowedError if ``requested`` contains a path separator."""
    check_no_path_qualified_command(requested).unwrap()


def assert_allowed_by_policy(
    command: str, group: str, policy: SecurityPolicy = DEFAULT_POLICY
) -> None:
    """Apply the operator's command allowlist, if one is configured for ``group``."""
    allowed = policy.commands_for(group)
    if allowed is None:
        return

    if command_basename(command) in allowed or command in allowed:
        return

    logger.warning("Command %s rejected by operator policy for %s", command, group)
    raise CommandNotAllowedError(
        f'Command "{command}" is not allowed by the operator command policy. '
        f"Allowed: {', '.join(sorted(allowed))}",
        command=command,
    )


__all__ = [
    "EXECUTABLE_EXTENSIONS",
    "assert_allowed_by_policy",
    "assert_allowed_command",
    "assert_no_path_qualified_command",
    "check_command",
    "check_no_path_qualified_command",
    "command_basename",
    "is_path_qualified",
]
