"""Tests for executable allowlisting and the operator command policy."""

from __future__ import annotations

import pytest

from toolgate.core.result import CommandNotAllowedError, Err, Ok
from toolgate.core.security import (
    ALLOWED_BUILD_COMMANDS,
    SecurityPolicy,
    assert_allowed_by_policy,
    assert_allowed_command,
    assert_no_path_qualified_command,
    check_command,
    check_no_path_qualified_command,
    command_basename,
)


@pytest.mark.parametrize(
    ("requested", "expected"),
    [
        ("npm", "npm"),
        ("/usr/bin/npm", "npm"),
        ("./node_modules/.bin/tsc", "tsc"),
        ("npm.cmd", "npm"),
        ("Yarn.CMD", "yarn"),
        ("gradlew.bat", "gradlew"),
        ("C:\\Tools\\cargo.exe", "cargo"),
        ("build.sh", "build"),
        ("npm.cmd.exe", "npm.cmd"),
    ],
)
def test_command_basename(requested: str, expected: str) -> None:
    assert command_basename(requested) == expected


class TestCheckCommand:
    @pytest.mark.parametrize("command", sorted(ALLOWED_BUILD_COMMANDS))
    def test_every_allowlisted_command_passes(self, command: str) -> None:
        assert check_command(command) == Ok(command)

    def test_full_path_resolves_to_base_name(self) -> None:
        assert check_command("/usr/bin/npm") == Ok("npm")

    @pytest.mark.parametrize(
        "command",
        ["rm", "/bin/rm", "curl", "node", "sh", "bash", "python", "", "   ", "npm;rm", "npm rm"],
    )
    def test_rejected(self, command: str) -> None:
        result = check_command(command)
        assert isinstance(result, Err)
        assert result.error.command == command
        assert "is not in the allowed build commands" in result.error.message

    def test_message_lists_allowed(self) -> None:
        result = check_command("rm")
        assert isinstance(result, Err)
        assert "cargo, cmake" in result.error.message

    def test_custom_build_list(self) -> None:
        policy = SecurityPolicy.create(build_commands=["just"])
        assert check_command("just", policy) == Ok("just")
        assert isinstance(check_command("npm", policy), Err)

    def test_assert_raises(self) -> None:
        with pytest.raises(CommandNotAllowedError, match='Command "rm"'):
            assert_allowed_command("rm")
        assert assert_allowed_command("/opt/homebrew/bin/pnpm") == "pnpm"


class TestPathQualified:
    @pytest.mark.parametrize(
        "command", ["/usr/bin/npm", "./npm", "bin/npm", "..\\npm", "C:\\npm.exe"]
    )
    def test_rejects_separators(self, command: str) -> None:
        result = check_no_path_qualified_command(command)
        assert isinstance(result, Err)
        assert "Path-qualified" in result.error.message

    def test_bare_name_passes(self) -> None:
        assert check_no_path_qualified_command("npm") == Ok("npm")
        assert_no_path_qualified_command("npm.cmd")

    def test_assert_raises(self) -> None:
        with pytest.raises(CommandNotAllowedError):
            assert_no_path_qualified_command("/tmp/evil/npm")


class TestOperatorPolicy:
    def test_no_policy_allows_everything(self) -> None:
        assert_allowed_by_policy("git", "git", SecurityPolicy())

    def test_global_allowlist(self) -> None:
        policy = SecurityPolicy.create(allowed_commands=["git", "rg"])
        assert_allowed_by_policy("git", "git", policy)
        assert_allowed_by_policy("/usr/bin/rg", "search", policy)
        with pytest.raises(CommandNotAllowedError, match="operator command policy"):
            assert_allowed_by_policy("npm", "npm", policy)

    def test_group_allowlist(self) -> None:
        policy = SecurityPolicy.create(group_commands={"build": ["cargo"]})
        assert_allowed_by_policy("npm", "npm", policy)
        assert_allowed_by_policy("cargo", "build", policy)
        with pytest.raises(CommandNotAllowedError):
            assert_allowed_by_policy("npm", "build", policy)

    def test_global_wins_over_group(self) -> None:
        policy = SecurityPolicy.create(
            allowed_commands=["git"], group_commands={"build": ["npm"]}
        )
        with pytest.raises(CommandNotAllowedError):
            assert_allowed_by_policy("npm", "build", policy)

    def test_empty_list_means_unrestricted(self) -> None:
        policy = SecurityPolicy.create(allowed_commands=[], group_commands={"build": [" "]})
        assert policy.allowed_commands is None
        assert policy.commands_for("build") is None
        assert_allowed_by_policy("npm", "build", policy)
