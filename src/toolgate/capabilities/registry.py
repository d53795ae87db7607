"""Tool registry, lazy registration and discovery.

This module is the single source of truth for:
- Tool declaration via the ``@tool`` decorator
- Tool descriptors (name, schemas, handler) discovered from toolgate.mcp.tools
- The two-state registry (deferred -> registered) behind the MCP server

Usage:
    from toolgate.capabilities.registry import ToolRegistry, discover_tools

    registry = ToolRegistry()
    for descriptor in discover_tools().values():
        registry.add(descriptor)
    output = await registry.call("git-status", {"path": "."})
"""

from __future__ import annotations

import inspect
import pkgutil
import warnings
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from importlib import import_module
from typing import Any, TypeGuard

from pydantic import BaseModel, ValidationError

from toolgate.core.console import get_logger
from toolgate.core.output import ToolOutput
from toolgate.core.result import ToolNotFoundError, ToolValidationError

logger = get_logger(__name__)

ToolHandler = Callable[[Any], Awaitable[ToolOutput]]
ListChangedCallback = Callable[[], Awaitable[None]]

# Single source of truth for the tool metadata attribute name
TOOL_METADATA_ATTR = "__toolgate_tool__"

# Package to scan for tool modules
_TOOL_PACKAGE_NAME = "toolgate.mcp.tools"


# ---------------------------------------------------------------------------
# Declaration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Metadata attached to a handler by ``@tool``."""

    group: str
    name: str
    title: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel] | None
    core: bool


def qualified_name(group: str, name: str) -> str:
    """Tool name as advertised: ``git-status``, or just ``build`` when they match."""
    return group if name == group else f"{group}-{name}"


def tool(
    *,
    group: str,
    name: str,
    title: str,
    input_model: type[BaseModel],
    output_model: type[BaseModel] | None = None,
    core: bool = True,
    description: str | None = None,
) -> Callable[[ToolHandler], ToolHandler]:
    """Mark an async handler as a tool.

    The handler receives a validated ``input_model`` instance and returns a
    ToolOutput. Non-core tools are deferred when lazy mode is enabled.
    """

    def decorator(fn: ToolHandler) -> ToolHandler:
        spec = ToolSpec(
            group=group,
            name=name,
            title=title,
            description=description or inspect.getdoc(fn) or title,
            input_model=input_model,
            output_model=output_model,
            core=core,
        )
        setattr(fn, TOOL_METADATA_ATTR, spec)
        return fn

    return decorator


def is_tool(obj: Any) -> TypeGuard[ToolHandler]:
    """Check if an object is decorated with @tool."""
    if not callable(obj):
        return False
    return isinstance(getattr(obj, TOOL_METADATA_ATTR, None), ToolSpec)


def get_tool_spec(obj: object) -> ToolSpec | None:
    spec = getattr(obj, TOOL_METADATA_ATTR, None)
    return spec if isinstance(spec, ToolSpec) else None


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Read-only description of one tool, created at startup."""

    name: str
    group: str
    short_name: str
    title: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel] | None
    handler: ToolHandler
    is_core: bool = True

    @classmethod
    def from_function(cls, fn: ToolHandler) -> ToolDescriptor:
        spec = get_tool_spec(fn)
        if spec is None:
            raise TypeError(f"{fn!r} is not decorated with @tool")
        return cls(
            name=qualified_name(spec.group, spec.name),
            group=spec.group,
            short_name=spec.name,
            title=spec.title,
            description=spec.description,
            input_model=spec.input_model,
            output_model=spec.output_model,
            handler=fn,
            is_core=spec.core,
        )

    @property
    def filter_key(self) -> str:
        return f"{self.group}:{self.short_name}"

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    def output_schema(self) -> dict[str, Any] | None:
        if self.output_model is None:
            return None
        return self.output_model.model_json_schema()

    async def invoke(self, arguments: Mapping[str, Any] | None) -> ToolOutput:
        """Validate ``arguments`` against the input model and run the handler."""
        try:
            params = self.input_model.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            raise ToolValidationError(
                f"Invalid arguments for {self.name}: {exc}", context={"tool": self.name}
            ) from exc
        return await self.handler(params)


# ---------------------------------------------------------------------------
# Registry state machine
# ---------------------------------------------------------------------------


class ToolState(str, Enum):
    DEFERRED = "deferred"
    REGISTERED = "registered"


class ToolRegistry:
    """Descriptors keyed by name, each either deferred or registered.

    The only transition is deferred -> registered; there is no unregister.
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, ToolDescriptor] = {}
        self._states: dict[str, ToolState] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def add(self, descriptor: ToolDescriptor, *, deferred: bool = False) -> None:
        if descriptor.name in self._descriptors:
            raise ValueError(f"Tool {descriptor.name!r} is already declared")
        self._descriptors[descriptor.name] = descriptor
        self._states[descriptor.name] = ToolState.DEFERRED if deferred else ToolState.REGISTERED

    def state(self, name: str) -> ToolState | None:
        return self._states.get(name)

    def promote(self, name: str) -> bool:
        """Move a deferred tool to registered. Returns False if it was not deferred."""
        if self._states.get(name) is not ToolState.DEFERRED:
            return False
        self._states[name] = ToolState.REGISTERED
        return True

    def registered(self) -> list[ToolDescriptor]:
        return [d for n, d in self._descriptors.items() if self._states[n] is ToolState.REGISTERED]

    def deferred(self) -> list[ToolDescriptor]:
        return [d for n, d in self._descriptors.items() if self._states[n] is ToolState.DEFERRED]

    def get(self, name: str) -> ToolDescriptor:
        """Return a registered descriptor."""
        state = self._states.get(name)
        if state is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        if state is ToolState.DEFERRED:
            raise ToolNotFoundError(
                f"Tool {name} is not loaded yet. Call discover-tools with load=[{name!r}] first."
            )
        return self._descriptors[name]

    async def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolOutput:
        return await self.get(name).invoke(arguments)


@dataclass(frozen=True, slots=True)
class LazyToolInfo:
    name: str
    description: str


class LazyToolManager:
    """Defers non-core tools and promotes them on demand.

    ``on_list_changed`` is awaited once per batch that actually promoted a
    tool, so MCP clients re-fetch the tool list.
    """

    def __init__(
        self, registry: ToolRegistry, on_list_changed: ListChangedCallback | None = None
    ) -> None:
        self.registry = registry
        self.on_list_changed = on_list_changed

    def register_lazy(self, descriptor: ToolDescriptor) -> None:
        self.registry.add(descriptor, deferred=True)

    async def load_tool(self, name: str) -> bool:
        loaded = await self.load_many([name])
        return bool(loaded)

    async def load_many(self, names: list[str]) -> list[str]:
        """Promote each named deferred tool; unknown or loaded names are skipped."""
        loaded = [name for name in dict.fromkeys(names) if self.registry.promote(name)]
        if loaded:
            logger.info("Loaded deferred tools: %s", ", ".join(loaded))
            await self._notify()
        return loaded

    async def load_all(self) -> int:
        names = [d.name for d in self.registry.deferred()]
        return len(await self.load_many(names))

    def list_lazy(self) -> list[LazyToolInfo]:
        return [LazyToolInfo(d.name, d.description) for d in self.registry.deferred()]

    def has_deferred_tools(self) -> bool:
        return bool(self.registry.deferred())

    async def _notify(self) -> None:
        if self.on_list_changed is not None:
            await self.on_list_changed()


# ---------------------------------------------------------------------------
# Module Discovery
# ---------------------------------------------------------------------------


def discover_tool_module_names(package_name: str = _TOOL_PACKAGE_NAME) -> list[str]:
    """Dynamically discover tool module names using pkgutil.

    Returns:
        List of fully qualified module names (e.g., 'toolgate.mcp.tools.git').
    """
    try:
        package = import_module(package_name)
    except ImportError as exc:
        warnings.warn(
            f"Failed to import {package_name}: {exc}. Tool discovery disabled.",
            RuntimeWarning,
            stacklevel=2,
        )
        return []

    package_path = getattr(package, "__path__", None)
    if package_path is None:
        warnings.warn(
            f"Package {package_name} has no __path__. Falling back to empty tool list.",
            RuntimeWarning,
            stacklevel=2,
        )
        return []

    modules: list[str] = []
    for module_info in pkgutil.iter_modules(list(package_path), prefix=f"{package_name}."):
        module_name = module_info.name.rsplit(".", 1)[-1]
        if module_name.startswith("_"):
            continue
        modules.append(module_info.name)

    return sorted(modules)


def discover_tools(package_name: str = _TOOL_PACKAGE_NAME) -> dict[str, ToolDescriptor]:
    """Discover all @tool handlers in the tool package.

    Returns:
        Dictionary mapping qualified tool name -> descriptor, in module order.
    """
    tools: dict[str, ToolDescriptor] = {}

    for module_name in discover_tool_module_names(package_name):
        try:
            module = import_module(module_name)
        except ImportError as exc:
            warnings.warn(
                f"Failed to import tool module {module_name}: {exc}",
                RuntimeWarning,
                stacklevel=2,
            )
            continue

        for attr_name in dir(module):
            if attr_name.startswith("_"):
                continue
            obj = getattr(module, attr_name, None)
            if not is_tool(obj) or getattr(obj, "__module__", None) != module.__name__:
                continue
            descriptor = ToolDescriptor.from_function(obj)
            if descriptor.name in tools:
                warnings.warn(
                    f"Duplicate tool name '{descriptor.name}' in {module_name}; "
                    "previous registration will be overwritten.",
                    RuntimeWarning,
                    stacklevel=2,
                )
            tools[descriptor.name] = descriptor

    return tools


__all__ = [
    "TOOL_METADATA_ATTR",
    "LazyToolInfo",
    "LazyToolManager",
    "ToolDescriptor",
    "ToolHandler",
    "ToolRegistry",
    "ToolSpec",
    "ToolState",
    "discover_tool_module_names",
    "discover_tools",
    "get_tool_spec",
    "is_tool",
    "qualified_name",
    "tool",
]
