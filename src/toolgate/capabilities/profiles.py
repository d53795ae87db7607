"""Tool filtering and preset profiles.

Decides which declared tools the server exposes. Precedence, highest first:

1. ``server.tools``: explicit ``group:name`` list. An empty list disables
   every tool.
2. ``server.profile``: a preset from PROFILES (``full`` means no filter).
3. ``server.group_tools``: per-group name lists; groups not listed keep
   all their tools.
4. Nothing configured: every tool is enabled.
"""

from __future__ import annotations

from toolgate.core.config import ServerConfig
from toolgate.core.console import get_logger

logger = get_logger(__name__)

FULL_PROFILE = "full"

PROFILES: dict[str, frozenset[str] | None] = {
    "minimal": frozenset({"git:status", "git:add", "git:commit", "build:build"}),
    "web": frozenset(
        {"git:status", "git:add", "git:commit", "build:build", "npm:run", "search:search"}
    ),
    "python": frozenset({"git:status", "git:add", "git:commit", "search:search"}),
    "devops": frozenset({"git:status", "git:tag", "build:build", "search:search"}),
    FULL_PROFILE: None,
}


def resolve_profile(name: str | None) -> frozenset[str] | None:
    """Return the tool keys for a profile, or None when it does not filter.

    Lookup is case-insensitive; unknown names log a warning and disable filtering.
    """
    if name is None or not name.strip():
        return None
    key = name.strip().lower()
    if key not in PROFILES:
        logger.warning(
            "Unknown tool profile %r; available: %s. Enabling all tools.",
            name,
            ", ".join(sorted(PROFILES)),
        )
        return None
    return PROFILES[key]


def should_register_tool(group: str, name: str, server: ServerConfig) -> bool:
    """Whether ``group:name`` passes the configured filters."""
    key = f"{group}:{name}"

    if server.tools is not None:
        return key in {item.strip() for item in server.tools}

    profile_tools = resolve_profile(server.profile)
    if profile_tools is not None:
        return key in profile_tools

    group_tools = server.group_tools.get(group)
    if group_tools is not None:
        return name in {item.strip() for item in group_tools}

    return True


def is_lazy_enabled(server: ServerConfig) -> bool:
    """Lazy mode needs ``lazy`` set, no explicit tool list, and a non-full profile."""
    if not server.lazy:
        return False
    if server.tools is not None:
        return False
    if server.profile is not None and server.profile.strip().lower() == FULL_PROFILE:
        return False
    return True


__all__ = [
    "FULL_PROFILE",
    "PROFILES",
    "is_lazy_enabled",
    "resolve_profile",
    "should_register_tool",
]
