"""
Runtime context for toolgate.

Holds the process-wide, read-only state built at startup (configuration,
security policy, process runner) in a context variable instead of module
globals, so tests can swap in fixture policies and fake runners.

Usage:
    from toolgate.core.runtime import runtime_context, get_runtime

    # At entry point (main.py, mcp/server.py)
    with runtime_context(config) as ctx:
        do_work()

    # In a tool handler
    ctx = get_runtime()
    result = await ctx.runner.run("git", ["status"], cwd=cwd)
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from toolgate.core.security.policy import SecurityPolicy
from toolgate.core.sys.execution import ProcessRunner, RunnerProtocol

if TYPE_CHECKING:
    from toolgate.core.config import AppConfig


@dataclass
class RuntimeContext:
    """Per-process runtime state shared by every tool call.

    Attributes:
        config: The loaded AppConfig for this session
        policy: Immutable policy consulted by the guards
        runner: Process runner used by tool handlers
        trace_id: Unique identifier for this execution trace
    """

    config: AppConfig
    policy: SecurityPolicy
    runner: RunnerProtocol
    trace_id: str = field(default_factory=lambda: uuid4().hex[:12])


_runtime_ctx: contextvars.ContextVar[RuntimeContext | None] = contextvars.ContextVar(
    "toolgate_runtime",
    default=None,
)


class NoRuntimeContextError(RuntimeError):
    """Raised when get_runtime() is called outside a runtime_context block."""

    def __init__(self) -> None:
        super().__init__(
            "No runtime context available. "
            "Wrap entrypoints in 'with runtime_context(config):' or start through the CLI."
        )


def get_runtime() -> RuntimeContext:
    """Get the current runtime context.

    Raises:
        NoRuntimeContextError: If called outside a runtime_context block
    """
    ctx = _runtime_ctx.get()
    if ctx is None:
        raise NoRuntimeContextError()
    return ctx


def get_runtime_or_none() -> RuntimeContext | None:
    return _runtime_ctx.get()


def build_runtime(
    config: AppConfig,
    *,
    policy: SecurityPolicy | None = None,
    runner: RunnerProtocol | None = None,
    trace_id: str | None = None,
) -> RuntimeContext:
    """Create a RuntimeContext, deriving policy and runner from ``config``."""
    return RuntimeContext(
        config=config,
        policy=policy or SecurityPolicy.from_config(config.policy),
        runner=runner or ProcessRunner.from_config(config),
        trace_id=trace_id or uuid4().hex[:12],
    )


def set_runtime_context(ctx: RuntimeContext) -> contextvars.Token[RuntimeContext | None]:
    """Set the current runtime context (used for CLI bootstrap and tests)."""
    return _runtime_ctx.set(ctx)


def reset_runtime_context(token: contextvars.Token[RuntimeContext | None]) -> None:
    _runtime_ctx.reset(token)


@contextmanager
def runtime_context(
    config: AppConfig,
    *,
    policy: SecurityPolicy | None = None,
    runner: RunnerProtocol | None = None,
    trace_id: str | None = None,
) -> Iterator[RuntimeContext]:
    """Context manager for establishing runtime state.

    Args:
        config: The loaded AppConfig
        policy: Override the policy derived from config (tests)
        runner: Override the process runner (tests)
        trace_id: Optional trace ID for correlation (auto-generated if not provided)

    Yields:
        The RuntimeContext for this execution
    """
    ctx = build_runtime(config, policy=policy, runner=runner, trace_id=trace_id)
    token = _runtime_ctx.set(ctx)
    try:
        yield ctx
    finally:
        _runtime_ctx.reset(token)


__all__ = [
    "NoRuntimeContextError",
    "RuntimeContext",
    "build_runtime",
    "get_runtime",
    "get_runtime_or_none",
    "reset_runtime_context",
    "runtime_context",
    "set_runtime_context",
]
