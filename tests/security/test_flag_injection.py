"""Tests for flag injection rejection on positional arguments."""

from __future__ import annotations

import pytest

from toolgate.core.result import Err, FlagInjectionError, Ok
from toolgate.core.security import (
    assert_no_flag_injection,
    assert_no_flag_injection_all,
    check_flag_injection,
)


@pytest.mark.parametrize(
    "value",
    [
        "-x",
        "--force",
        "--upload-pack=touch /tmp/pwned",
        "-",
        "--",
        " --force",
        "\t-f",
        "  \t --delete",
    ],
)
def test_flags_rejected(value: str) -> None:
    result = check_flag_injection(value, "branch")

    assert isinstance(result, Err)
    assert result.error.parameter == "branch"
    assert result.error.value == value
    assert result.error.message == f'Invalid branch: "{value}". Values must not start with "-".'


@pytest.mark.parametrize(
    "value",
    ["main", "my-branch", "feature/auth", "v1.0-rc1", "a--b", "", "src/-weird", "HEAD~1"],
)
def test_ordinary_values_pass(value: str) -> None:
    assert check_flag_injection(value, "branch") == Ok(value)


def test_assert_returns_value() -> None:
    assert assert_no_flag_injection("build", "script") == "build"


def test_assert_raises() -> None:
    with pytest.raises(FlagInjectionError, match='Invalid script: "--evil"'):
        assert_no_flag_injection("--evil", "script")


def test_all_checks_every_element() -> None:
    assert assert_no_flag_injection_all(["a.txt", "b.txt"], "files") == ["a.txt", "b.txt"]

    with pytest.raises(FlagInjectionError) as exc_info:
        assert_no_flag_injection_all(["a.txt", "--all", "-p"], "files")

    assert exc_info.value.value == "--all"
    assert exc_info.value.parameter == "files"
