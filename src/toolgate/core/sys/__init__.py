"""System utilities package.

Organized submodules:
- execution: Bounded, shell-free command execution
"""

from toolgate.core.sys.execution import (
    TIMEOUT_EXIT_CODE,
    Command,
    ProcessRunner,
    RunnerProtocol,
    RunResult,
)

__all__ = [
    "TIMEOUT_EXIT_CODE",
    "Command",
    "ProcessRunner",
    "RunResult",
    "RunnerProtocol",
]
