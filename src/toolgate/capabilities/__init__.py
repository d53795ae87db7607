"""Capabilities package - tool registry, discovery and filtering.

This package provides a single source of truth for tool declaration,
lazy registration and the filters that decide which tools are exposed.
"""

from __future__ import annotations

from toolgate.capabilities.registry import (
    TOOL_METADATA_ATTR,
    LazyToolManager,
    ToolDescriptor,
    ToolRegistry,
    ToolState,
    discover_tools,
    tool,
)

__all__ = [
    "TOOL_METADATA_ATTR",
    "LazyToolManager",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolState",
    "discover_tools",
    "tool",
]
