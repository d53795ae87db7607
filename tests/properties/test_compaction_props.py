"""Property-based tests for output compaction using Hypothesis.

These tests verify core invariants of the compactor:
- Token estimates are ceil(chars / 4) and monotonic in length
- compact=False always yields the full result
- Otherwise the compact projection is chosen exactly when the full
  payload is at least as large as the raw text
- The text block always describes the structured payload it is sent with
"""

from __future__ import annotations

import math

from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import BaseModel

from toolgate.core.output import decide_compaction, estimate_tokens, render, serialize

# === Strategies ===

_SURROGATE_CATEGORIES: tuple[str, ...] = ("Cs",)
text_strategy = st.text(
    alphabet=st.characters(blacklist_categories=_SURROGATE_CATEGORIES),  # type: ignore[arg-type]
    min_size=0,
    max_size=2_000,
)
line_strategy = st.text(alphabet="abcdefghij .:/", min_size=0, max_size=40)


class Listing(BaseModel):
    count: int
    items: list[str] | None = None


def _project(data: Listing) -> Listing:
    return data.model_copy(update={"items": None})


def _format(data: Listing) -> str:
    return f"{data.count} item(s)" + "".join(f"\n  {item}" for item in data.items or [])


def _format_compact(data: Listing) -> str:
    return f"{data.count} item(s)"


# === Property Tests ===


@given(text=text_strategy)
def test_estimate_is_ceil_quarter_length(text: str) -> None:
    assert estimate_tokens(text) == math.ceil(len(text) / 4)


@given(a=text_strategy, b=text_strategy)
def test_estimate_is_monotonic(a: str, b: str) -> None:
    assert estimate_tokens(a) <= estimate_tokens(a + b)


@given(items=st.lists(line_strategy, max_size=30), raw=text_strategy)
@settings(max_examples=200)
def test_explicit_full_always_wins(items: list[str], raw: str) -> None:
    data = Listing(count=len(items), items=items)

    decision = decide_compaction(data, raw, force_full=True)
    output = render(data, raw, _format, _project, _format_compact, force_full=True)

    assert decision.use_compact is False
    assert decision.reason == "explicit"
    assert output.structured == {"count": len(items), "items": items}


@given(items=st.lists(line_strategy, max_size=30), raw=text_strategy)
@settings(max_examples=200)
def test_heuristic_matches_token_comparison(items: list[str], raw: str) -> None:
    data = Listing(count=len(items), items=items)
    expected = estimate_tokens(serialize(data)) >= estimate_tokens(raw)

    decision = decide_compaction(data, raw)

    assert decision.use_compact is expected
    assert decision.reason == ("size-heuristic" if expected else "default")


@given(items=st.lists(line_strategy, max_size=30), raw=text_strategy)
@settings(max_examples=200)
def test_text_matches_structured_payload(items: list[str], raw: str) -> None:
    data = Listing(count=len(items), items=items)

    output = render(data, raw, _format, _project, _format_compact)

    assert output.structured is not None
    sent = Listing.model_validate(output.structured)
    if output.decision is not None and output.decision.use_compact:
        assert sent.items is None
        assert output.text == _format_compact(sent)
    else:
        assert output.text == _format(sent)
