"""Tests for full/compact rendering of tool results."""

from __future__ import annotations

from pydantic import BaseModel

from toolgate.core.output import (
    CompactDecision,
    ToolOutput,
    decide_compaction,
    dual_output,
    estimate_tokens,
    render,
    serialize,
)


class Report(BaseModel):
    total: int
    items: list[str] | None = None


def _format(data: Report) -> str:
    return f"{data.total} items: " + ", ".join(data.items or [])


def _compact(data: Report) -> Report:
    return data.model_copy(update={"items": None})


def _format_compact(data: Report) -> str:
    return f"{data.total} items"


class TestEstimateTokens:
    def test_rounds_up(self) -> None:
        assert estimate_tokens("") == 0
        assert estimate_tokens("abc") == 1
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_serialize_is_compact_and_drops_none(self) -> None:
        assert serialize(Report(total=2)) == '{"total":2}'
        assert serialize({"a": [1, 2]}) == '{"a":[1,2]}'


class TestDecideCompaction:
    def test_explicit_full_wins(self) -> None:
        decision = decide_compaction(Report(total=1, items=["x"] * 50), "x", force_full=True)
        assert decision == CompactDecision(use_compact=False, reason="explicit")

    def test_larger_structured_payload_is_compacted(self) -> None:
        data = Report(total=3, items=["alpha", "beta", "gamma"])
        decision = decide_compaction(data, "alpha beta gamma")
        assert decision == CompactDecision(use_compact=True, reason="size-heuristic")

    def test_equal_estimates_choose_compact(self) -> None:
        data = {"k": "v"}  # {"k":"v"} is 9 chars -> 3 tokens
        decision = decide_compaction(data, "x" * 12)  # 3 tokens
        assert decision.use_compact is True

    def test_smaller_structured_payload_sent_full(self) -> None:
        data = Report(total=1, items=["x"])
        decision = decide_compaction(data, "noise " * 200)
        assert decision == CompactDecision(use_compact=False, reason="default")


class TestRender:
    def test_compact_projection_when_bigger_than_raw(self) -> None:
        data = Report(total=3, items=["alpha", "beta", "gamma"])
        output = render(data, "alpha beta gamma", _format, _compact, _format_compact)

        assert output.text == "3 items"
        assert output.structured == {"total": 3}
        assert output.decision is not None
        assert output.decision.reason == "size-heuristic"

    def test_force_full_overrides_heuristic(self) -> None:
        data = Report(total=3, items=["alpha", "beta", "gamma"])
        output = render(
            data, "alpha beta gamma", _format, _compact, _format_compact, force_full=True
        )

        assert output.text == "3 items: alpha, beta, gamma"
        assert output.structured == {"total": 3, "items": ["alpha", "beta", "gamma"]}
        assert output.decision == CompactDecision(use_compact=False, reason="explicit")

    def test_full_when_raw_is_larger(self) -> None:
        data = Report(total=1, items=["a"])
        output = render(data, "verbose output line\n" * 100, _format, _compact, _format_compact)

        assert output.structured == {"total": 1, "items": ["a"]}
        assert output.decision == CompactDecision(use_compact=False, reason="default")

    def test_failed_projection_falls_back_to_full(self) -> None:
        def broken(_data: Report) -> Report:
            raise KeyError("items")

        data = Report(total=3, items=["alpha", "beta", "gamma"])
        output = render(data, "", _format, broken, _format_compact)

        assert output.text == "3 items: alpha, beta, gamma"
        assert output.structured == {"total": 3, "items": ["alpha", "beta", "gamma"]}
        assert output.decision == CompactDecision(use_compact=False, reason="default")

    def test_text_matches_structured_payload(self) -> None:
        data = Report(total=2, items=["x", "y"])
        output = render(data, "", _format, _compact, _format_compact)
        assert str(output.structured["total"]) in output.text


class TestDualOutput:
    def test_non_mapping_is_wrapped(self) -> None:
        output = dual_output([1, 2], lambda data: f"{len(data)} values")
        assert output.structured == {"result": [1, 2]}
        assert output.text == "2 values"

    def test_payload_shape(self) -> None:
        output = ToolOutput(text="hello", structured={"a": 1})
        assert output.as_payload() == {
            "content": [{"type": "text", "text": "hello"}],
            "structuredContent": {"a": 1},
        }

    def test_error_payload(self) -> None:
        payload = ToolOutput(text="boom", is_error=True).as_payload()
        assert payload["isError"] is True
        assert "structuredContent" not in payload
