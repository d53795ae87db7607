"""MCP tools package with auto-discovery.

This package contains the tool handlers:
    - build: Allowlisted build commands
    - npm: package.json script runner
    - git: status, add, commit, tag
    - search: ripgrep search

Discovery lives in toolgate.capabilities.registry.
"""

from __future__ import annotations

from toolgate.capabilities.registry import discover_tool_module_names, discover_tools

__all__ = ["discover_tool_module_names", "discover_tools"]
