"""Immutable security policy shared by every guard.

Built once at startup from :class:`toolgate.core.config.PolicyConfig` and
passed to the guards, so tests can supply fixture policies directly.

Global settings win over per-group ones; ``None`` means "no restriction".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolgate.core.config import PolicyConfig

ALLOWED_BUILD_COMMANDS = frozenset(
    {
        # JavaScript package managers and runners
        "npm",
        "npx",
        "pnpm",
        "yarn",
        "bun",
        "bunx",
        # Native and JVM build systems
        "make",
        "cmake",
        "gradle",
        "gradlew",
        "mvn",
        "ant",
        "cargo",
        "go",
        "dotnet",
        "msbuild",
        # Bundlers and compilers
        "tsc",
        "esbuild",
        "vite",
        "webpack",
        "rollup",
        # Monorepo orchestrators
        "turbo",
        "nx",
        "bazel",
    }
)
"""Executables the generic build tool may spawn."""


def _frozen_names(values: Iterable[str] | None) -> frozenset[str] | None:
    if values is None:
        return None
    names = frozenset(v.strip() for v in values if v.strip())
    return names or None


def _root_paths(values: Iterable[str | Path] | None) -> tuple[Path, ...] | None:
    if values is None:
        return None
    roots = tuple(Path(v).expanduser() for v in values if str(v).strip())
    return roots or None


@dataclass(frozen=True, slots=True)
class SecurityPolicy:
    """Read-only policy table consulted by the command and path guards."""

    build_commands: frozenset[str] = ALLOWED_BUILD_COMMANDS
    allowed_commands: frozenset[str] | None = None
    allowed_roots: tuple[Path, ...] | None = None
    strict_path: bool = True
    sanitize_all_paths: bool = False
    group_commands: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    group_roots: Mapping[str, tuple[Path, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def commands_for(self, group: str | None = None) -> frozenset[str] | None:
        """Operator command allowlist that applies to ``group``."""
        if self.allowed_commands is not None:
            return self.allowed_commands
        if group is None:
            return None
        return self.group_commands.get(group.lower())

    def roots_for(self, group: str | None = None) -> tuple[Path, ...] | None:
        """Authorized roots that apply to ``group``."""
        if self.allowed_roots is not None:
            return self.allowed_roots
        if group is None:
            return None
        return self.group_roots.get(group.lower())

    @classmethod
    def create(
        cls,
        *,
        allowed_commands: Iterable[str] | None = None,
        allowed_roots: Iterable[str | Path] | None = None,
        strict_path: bool = True,
        sanitize_all_paths: bool = False,
        build_commands: Iterable[str] | None = None,
        group_commands: Mapping[str, Iterable[str]] | None = None,
        group_roots: Mapping[str, Iterable[str | Path]] | None = None,
    ) -> SecurityPolicy:
        """Build a policy from plain iterables, normalizing empty lists to None."""
        commands_by_group: dict[str, frozenset[str]] = {}
        for group, names in (group_commands or {}).items():
            frozen = _frozen_names(names)
            if frozen is not None:
                commands_by_group[group.lower()] = frozen

        roots_by_group: dict[str, tuple[Path, ...]] = {}
        for group, paths in (group_roots or {}).items():
            roots = _root_paths(paths)
            if roots is not None:
                roots_by_group[group.lower()] = roots

        return cls(
            build_commands=(
                frozenset(build_commands) if build_commands is not None else ALLOWED_BUILD_COMMANDS
            ),
            allowed_commands=_frozen_names(allowed_commands),
            allowed_roots=_root_paths(allowed_roots),
            strict_path=strict_path,
            sanitize_all_paths=sanitize_all_paths,
            group_commands=MappingProxyType(commands_by_group),
            group_roots=MappingProxyType(roots_by_group),
        )

    @classmethod
    def from_config(cls, config: PolicyConfig) -> SecurityPolicy:
        return cls.create(
            allowed_commands=config.allowed_commands,
            allowed_roots=config.allowed_roots,
            strict_path=config.strict_path,
            sanitize_all_paths=config.sanitize_all_paths,
            group_commands={
                name: group.allowed_commands
                for name, group in config.servers.items()
                if group.allowed_commands is not None
            },
            group_roots={
                name: group.allowed_roots
                for name, group in config.servers.items()
                if group.allowed_roots is not None
            },
        )


DEFAULT_POLICY = SecurityPolicy()


__all__ = ["ALLOWED_BUILD_COMMANDS", "DEFAULT_POLICY", "SecurityPolicy"]
