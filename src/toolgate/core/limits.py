"""Input length ceilings shared by every tool input schema.

The constants are enforced by pydantic when a tool's input model is
validated, so oversized values are rejected before any guard runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, TypeVar

from pydantic import Field

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class InputLimits:
    """Named maximum lengths for tool inputs."""

    short_string_max: int = 255
    string_max: int = 65_536
    path_max: int = 4_096
    message_max: int = 72_000
    array_max: int = 1_000


INPUT_LIMITS = InputLimits()

# Branch names, remotes, script names, executable names.
ShortStr = Annotated[str, Field(max_length=INPUT_LIMITS.short_string_max)]
# Free text such as search patterns.
LongStr = Annotated[str, Field(max_length=INPUT_LIMITS.string_max)]
PathStr = Annotated[str, Field(max_length=INPUT_LIMITS.path_max)]
# Commit messages and other bodies passed via stdin.
MessageStr = Annotated[str, Field(min_length=1, max_length=INPUT_LIMITS.message_max)]
BoundedList = Annotated[list[T], Field(max_length=INPUT_LIMITS.array_max)]


__all__ = [
    "INPUT_LIMITS",
    "BoundedList",
    "InputLimits",
    "LongStr",
    "MessageStr",
    "PathStr",
    "ShortStr",
]
