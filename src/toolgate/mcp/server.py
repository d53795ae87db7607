"""MCP server built on the low-level ``mcp`` Server.

Creates and configures the server with:
    - Tool discovery and filtering (tools, profile, per-group lists)
    - Lazy registration behind ``discover-tools``
    - Runtime context establishment
    - stdio transport
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.stdio import stdio_server

from toolgate import __version__
from toolgate.capabilities.profiles import is_lazy_enabled, should_register_tool
from toolgate.capabilities.registry import (
    LazyToolManager,
    ListChangedCallback,
    ToolDescriptor,
    ToolRegistry,
    discover_tools,
)
from toolgate.core.config import AppConfig, load_config
from toolgate.core.console import setup_logging
from toolgate.core.output import ToolOutput
from toolgate.core.result import ToolgateError
from toolgate.core.runtime import runtime_context
from toolgate.mcp import logger
from toolgate.mcp.discover import make_discover_tool

INSTRUCTIONS = (
    "Tools wrap command-line programs and return structured results. Arguments that "
    "start with '-' are rejected; pass compact=false to force the full result."
)


def build_registry(
    config: AppConfig,
    tools: Mapping[str, ToolDescriptor] | None = None,
    on_list_changed: ListChangedCallback | None = None,
) -> tuple[ToolRegistry, LazyToolManager | None]:
    """Register the declared tools that pass the configured filters.

    In lazy mode non-core tools start deferred and ``discover-tools`` is added.
    """
    server_config = config.server
    descriptors = discover_tools() if tools is None else tools
    registry = ToolRegistry()
    manager = LazyToolManager(registry, on_list_changed) if is_lazy_enabled(server_config) else None

    skipped = 0
    for descriptor in descriptors.values():
        if not should_register_tool(descriptor.group, descriptor.short_name, server_config):
            skipped += 1
            continue
        if manager is not None and not descriptor.is_core:
            manager.register_lazy(descriptor)
        else:
            registry.add(descriptor)

    if manager is not None:
        registry.add(make_discover_tool(manager, server_config.name))

    logger.info(
        "Registered %d tools (%d deferred, %d filtered out)",
        len(registry.registered()),
        len(registry.deferred()),
        skipped,
    )
    return registry, manager


def to_mcp_tool(descriptor: ToolDescriptor) -> types.Tool:
    return types.Tool(
        name=descriptor.name,
        title=descriptor.title,
        description=descriptor.description,
        inputSchema=descriptor.input_schema(),
        outputSchema=descriptor.output_schema(),
    )


async def dispatch(
    registry: ToolRegistry, name: str, arguments: Mapping[str, Any] | None
) -> ToolOutput:
    """Run one tool call; errors propagate so the protocol layer flags them."""
    try:
        return await registry.call(name, arguments)
    except ToolgateError as exc:
        logger.warning("Tool %s failed: %s", name, exc)
        raise
    except Exception:
        logger.exception("Unhandled error in tool %s", name)
        raise


def create_server(config: AppConfig, tools: Mapping[str, ToolDescriptor] | None = None) -> Server:
    server: Server = Server(config.server.name, version=__version__, instructions=INSTRUCTIONS)

    async def notify_list_changed() -> None:
        await server.request_context.session.send_tool_list_changed()

    registry, _manager = build_registry(config, tools, on_list_changed=notify_list_changed)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [to_mcp_tool(descriptor) for descriptor in registry.registered()]

    @server.call_tool()
    async def call_tool(
        name: str, arguments: dict[str, Any]
    ) -> tuple[list[types.TextContent], dict[str, Any]] | list[types.TextContent]:
        output = await dispatch(registry, name, arguments)
        content = [types.TextContent(type="text", text=output.text)]
        if output.structured is None:
            return content
        return content, output.structured

    return server


async def serve(config: AppConfig) -> None:
    """Serve MCP over stdio until the client disconnects."""
    with runtime_context(config, trace_id=f"mcp-{uuid4().hex[:8]}") as ctx:
        server = create_server(config)
        logger.info("Serving %s over stdio (trace %s)", config.server.name, ctx.trace_id)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(
                    notification_options=NotificationOptions(tools_changed=True)
                ),
            )


def main() -> None:
    config, meta = load_config()
    setup_logging(config.log_level)
    if meta.error:
        logger.error("Configuration error, using defaults: %s", meta.error)
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
