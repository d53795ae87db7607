"""
Path confinement for working directories and target paths.

Paths are resolved (following symlinks with a depth limit) before the
containment check, so a symlink inside an authorized root that points
elsewhere is rejected.

Usage:
    from toolgate.core.security import check_allowed_root

    match check_allowed_root(cwd, "build", policy):
        case Ok(resolved):
            ...
        case Err(err):
            raise err
"""

from __future__ import annotations

from pathlib import Path

from toolgate.core.console import get_logger
from toolgate.core.result import Err, Ok, PathOutsideRootError, Result, SecurityError
from toolgate.core.security.policy import SecurityPolicy

logger = get_logger(__name__)

MAX_SYMLINK_DEPTH = 10
"""Maximum symlink chain depth before rejecting as potentially malicious."""


def _resolve_with_limit(
    path: Path, max_depth: int = MAX_SYMLINK_DEPTH
) -> Result[Path, SecurityError]:
    """Resolve path with symlink depth limit.

    Args:
        path: The path to resolve
        max_depth: Maximum symlink hops allowed (default: MAX_SYMLINK_DEPTH)

    Returns:
        Ok(resolved_path) if successful, Err(SecurityError) if depth exceeded
    """
    current = path.expanduser()
    visited: set[Path] = set()

    for _ in range(max_depth):
        if current in visited:
            return Err(
                SecurityError(
                    f"Circular symlink detected: {path}",
                    context={"path": str(path), "current": str(current)},
                )
            )
        visited.add(current)

        if not current.is_symlink():
            return Ok(current.resolve())

        try:
            target = current.readlink()
        except OSError as exc:
            return Err(
                SecurityError(
                    f"Failed to read symlink: {path}: {exc}",
                    context={"path": str(path), "current": str(current)},
                )
            )

        current = target if target.is_absolute() else current.parent / target

    return Err(
        SecurityError(
            f"Symlink chain too deep (>{max_depth}): {path}",
            context={"path": str(path), "max_depth": max_depth},
        )
    )


def _is_within(candidate: Path, root: Path) -> bool:
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


def check_allowed_root(
    path: str | Path, tool_name: str, policy: SecurityPolicy
) -> Result[Path, SecurityError]:
    """Check that ``path`` lies inside one of the roots authorized for ``tool_name``.

    With no roots configured every path is accepted (resolved).

    Returns:
        Ok(resolved_path) if allowed, Err(PathOutsideRootError) otherwise
    """
    roots = policy.roots_for(tool_name)

    try:
        resolve_result = _resolve_with_limit(Path(path))
    except (RuntimeError, OSError, ValueError) as exc:
        return Err(
            PathOutsideRootError(
                f'Path "{path}" cannot be resolved: {exc}', path=str(path), tool_name=tool_name
            )
        )
    if isinstance(resolve_result, Err):
        return resolve_result
    candidate = resolve_result.value

    if roots is None:
        return Ok(candidate)

    for root in roots:
        try:
            resolved_root = root.expanduser().resolve()
        except (RuntimeError, OSError):
            logger.debug("Skipping unresolvable root %s", root)
            continue
        if candidate == resolved_root or _is_within(candidate, resolved_root):
            return Ok(candidate)

    return Err(
        PathOutsideRootError(
            f'Path "{path}" is outside allowed roots for {tool_name}. '
            f"Allowed roots: {', '.join(str(r) for r in roots)}",
            path=str(path),
            tool_name=tool_name,
        )
    )


def assert_allowed_root(path: str | Path, tool_name: str, policy: SecurityPolicy) -> Path:
    """Raise unless ``path`` is confined to an authorized root; return it resolved."""
    match check_allowed_root(path, tool_name, policy):
        case Ok(resolved):
            return resolved
        case Err(error):
            logger.warning("Rejected path for %s: %s", tool_name, path)
            raise error


__all__ = [
    "MAX_SYMLINK_DEPTH",
    "assert_allowed_root",
    "check_allowed_root",
]
