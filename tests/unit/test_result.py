"""Tests for Result types and the error hierarchy."""

from __future__ import annotations

import pytest

from toolgate.core.result import (
    CommandNotAllowedError,
    Err,
    FlagInjectionError,
    Ok,
    PathOutsideRootError,
    Result,
    SecurityError,
    ToolgateError,
    collect_results,
)


def _check(value: str) -> Result[str, SecurityError]:
    if value.startswith("-"):
        return Err(SecurityError(f"Looks like a flag: {value}"))
    return Ok(value)


class TestOk:
    def test_accessors(self) -> None:
        result = Ok(3)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 3
        assert result.unwrap_or(0) == 3

    def test_map_and_then(self) -> None:
        assert Ok(2).map(lambda v: v * 5) == Ok(10)
        assert Ok("x").and_then(_check) == Ok("x")
        assert isinstance(Ok("-x").and_then(_check), Err)


class TestErr:
    def test_unwrap_raises_contained_error(self) -> None:
        error = SecurityError("nope")
        with pytest.raises(SecurityError) as exc_info:
            Err(error).unwrap()
        assert exc_info.value is error

    def test_short_circuits(self) -> None:
        err: Err[SecurityError] = Err(SecurityError("nope"))
        assert err.is_err() and not err.is_ok()
        assert err.unwrap_or("default") == "default"
        assert err.map(lambda v: v) is err
        assert err.and_then(_check) is err

    def test_pattern_matching(self) -> None:
        match _check("--force"):
            case Ok(value):
                pytest.fail(f"unexpected Ok({value})")
            case Err(error):
                assert "--force" in str(error)


class TestCollectResults:
    def test_all_ok(self) -> None:
        assert collect_results([_check("a"), _check("b")]) == Ok(["a", "b"])

    def test_first_error_wins(self) -> None:
        result = collect_results([_check("a"), _check("-b"), _check("-c")])
        assert isinstance(result, Err)
        assert "-b" in str(result.error)

    def test_empty(self) -> None:
        assert collect_results([]) == Ok([])


class TestErrors:
    def test_context_in_str(self) -> None:
        error = ToolgateError("Tool failed", context={"tool": "build", "exit_code": 2})
        assert str(error) == "Tool failed [tool=build, exit_code=2]"
        assert error.message == "Tool failed"

    def test_plain_str(self) -> None:
        assert str(ToolgateError("Tool failed")) == "Tool failed"

    def test_security_errors_carry_fields(self) -> None:
        command = CommandNotAllowedError("not allowed", command="rm")
        flag = FlagInjectionError("flag", parameter="script", value="--evil")
        path = PathOutsideRootError("outside", path="/etc", tool_name="build")

        assert command.command == "rm"
        assert (flag.parameter, flag.value) == ("script", "--evil")
        assert (path.path, path.tool_name) == ("/etc", "build")
        for error in (command, flag, path):
            assert isinstance(error, SecurityError)
            assert isinstance(error, ToolgateError)
