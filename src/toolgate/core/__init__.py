"""Core shared infrastructure for toolgate.

This package contains the safety and efficiency layer every tool call
passes through:
    - limits: Input length ceilings used by tool schemas
    - security: Command allowlist, flag injection and path confinement guards
    - sys.execution: Bounded, shell-free process runner
    - output: Full/compact rendering of tool results
    - errors: Classification of failed process runs
    - config, console, runtime, result: Ambient infrastructure
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
