"""Full versus compact rendering of tool results.

Every tool returns both a human-readable text block and a structured
payload. When restructuring the CLI output into JSON costs more context
than the raw text did, the compact projection is sent instead; the caller
can always force the full payload with ``compact=False``.

Size is estimated in tokens as ``ceil(chars / 4)`` over compact JSON. The
compact projection is chosen when the full payload's estimate is greater
than or equal to the raw text's estimate.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import BaseModel

from toolgate.core.console import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
C = TypeVar("C")

CompactReason = Literal["explicit", "size-heuristic", "default"]

CHARS_PER_TOKEN = 4


@dataclass(frozen=True, slots=True)
class CompactDecision:
    """Which projection was sent for one call, and why."""

    use_compact: bool
    reason: CompactReason


@dataclass(frozen=True, slots=True)
class ToolOutput:
    """Agent-facing payload: text content plus structured content."""

    text: str
    structured: dict[str, Any] | None = None
    is_error: bool = False
    decision: CompactDecision | None = None

    def content(self) -> list[dict[str, str]]:
        return [{"type": "text", "text": self.text}]

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"content": self.content()}
        if self.structured is not None:
            payload["structuredContent"] = self.structured
        if self.is_error:
            payload["isError"] = True
        return payload


def to_jsonable(data: Any) -> Any:
    """Convert pydantic models to plain JSON data, dropping unset optionals."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    return data


def serialize(data: Any) -> str:
    return json.dumps(to_jsonable(data), separators=(",", ":"), ensure_ascii=False)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def decide_compaction(data: Any, raw_output: str, *, force_full: bool = False) -> CompactDecision:
    """Decide between the full and the compact projection."""
    if force_full:
        return CompactDecision(use_compact=False, reason="explicit")
    if estimate_tokens(serialize(data)) >= estimate_tokens(raw_output):
        return CompactDecision(use_compact=True, reason="size-heuristic")
    return CompactDecision(use_compact=False, reason="default")


def dual_output(
    data: T, formatter: Callable[[T], str], decision: CompactDecision | None = None
) -> ToolOutput:
    """Render ``data`` as text via ``formatter`` alongside its structured form."""
    structured = to_jsonable(data)
    if not isinstance(structured, dict):
        structured = {"result": structured}
    return ToolOutput(text=formatter(data), structured=structured, decision=decision)


def render(
    data: T,
    raw_output: str,
    formatter: Callable[[T], str],
    compact_mapper: Callable[[T], C],
    compact_formatter: Callable[[C], str],
    force_full: bool = False,
) -> ToolOutput:
    """Return the full or compact rendering of a parsed tool result.

    Args:
        data: Full structured result parsed from the CLI output.
        raw_output: The raw text the CLI produced.
        formatter: Text renderer for the full result.
        compact_mapper: Projection keeping outcome-level fields only.
        compact_formatter: Text renderer for the projection.
        force_full: The caller's ``compact=False``; always wins.

    Returns:
        ToolOutput whose text is derived from the structured payload it carries.
    """
    decision = decide_compaction(data, raw_output, force_full=force_full)
    if decision.use_compact:
        try:
            compact = compact_mapper(data)
            return dual_output(compact, compact_formatter, decision)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Compact projection failed (%s); returning full result", exc)
            decision = CompactDecision(use_compact=False, reason="default")
    return dual_output(data, formatter, decision)


__all__ = [
    "CHARS_PER_TOKEN",
    "CompactDecision",
    "CompactReason",
    "ToolOutput",
    "decide_compaction",
    "dual_output",
    "estimate_tokens",
    "render",
    "serialize",
    "to_jsonable",
]
