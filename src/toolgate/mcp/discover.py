"""The ``discover-tools`` meta-tool used in lazy mode."""

from __future__ import annotations

from pydantic import BaseModel, Field

from toolgate.capabilities.registry import LazyToolManager, ToolDescriptor
from toolgate.core.limits import BoundedList, ShortStr
from toolgate.core.output import ToolOutput, dual_output
from toolgate.mcp import ToolInput

DISCOVER_TOOL_NAME = "discover-tools"


class DiscoverInput(ToolInput):
    load: BoundedList[ShortStr] | None = Field(
        default=None, description="Names of additional tools to load. Unknown names are ignored."
    )


class AvailableTool(BaseModel):
    name: str
    description: str


class DiscoverResult(BaseModel):
    loaded: list[str]
    available: list[AvailableTool]
    total_available: int


def format_discover(data: DiscoverResult) -> str:
    lines: list[str] = []
    if data.loaded:
        lines.append(f"Loaded {len(data.loaded)} tool(s): {', '.join(data.loaded)}")
    lines.append(f"{data.total_available} additional tool(s) available")
    lines.extend(f"  {item.name}: {item.description}" for item in data.available)
    return "\n".join(lines)


def make_discover_tool(manager: LazyToolManager, server_name: str) -> ToolDescriptor:
    """Build the descriptor for the discovery meta-tool bound to ``manager``."""

    async def discover_tools(params: DiscoverInput) -> ToolOutput:
        loaded = await manager.load_many(list(params.load or []))
        available = [
            AvailableTool(name=info.name, description=info.description.splitlines()[0])
            for info in manager.list_lazy()
        ]
        data = DiscoverResult(loaded=loaded, available=available, total_available=len(available))
        return dual_output(data, format_discover)

    return ToolDescriptor(
        name=DISCOVER_TOOL_NAME,
        group="discover",
        short_name="tools",
        title="Discover Tools",
        description=(
            f"List additional {server_name} tools that are not loaded yet, and load them "
            "by name with `load`. Loaded tools are added to the tool list."
        ),
        input_model=DiscoverInput,
        output_model=DiscoverResult,
        handler=discover_tools,
        is_core=True,
    )


__all__ = [
    "DISCOVER_TOOL_NAME",
    "AvailableTool",
    "DiscoverInput",
    "DiscoverResult",
    "format_discover",
    "make_discover_tool",
]
