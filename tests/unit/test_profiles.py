"""Tests for tool filtering, profiles and lazy-mode eligibility."""

from __future__ import annotations

import logging

import pytest

from toolgate.capabilities.profiles import (
    PROFILES,
    is_lazy_enabled,
    resolve_profile,
    should_register_tool,
)
from toolgate.core.config import ServerConfig


class TestResolveProfile:
    def test_known_profile(self) -> None:
        assert resolve_profile("minimal") == PROFILES["minimal"]

    def test_case_insensitive(self) -> None:
        assert resolve_profile("  Web ") == PROFILES["web"]

    def test_full_and_unset_do_not_filter(self) -> None:
        assert resolve_profile("full") is None
        assert resolve_profile(None) is None
        assert resolve_profile("") is None

    def test_unknown_profile_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert resolve_profile("enterprise") is None
        assert "Unknown tool profile" in caplog.text


class TestShouldRegisterTool:
    def test_everything_enabled_by_default(self) -> None:
        server = ServerConfig()
        assert should_register_tool("git", "tag", server)
        assert should_register_tool("npm", "run", server)

    def test_explicit_tools_list(self) -> None:
        server = ServerConfig(tools=["git:status", " build:build "], profile="minimal")
        assert should_register_tool("git", "status", server)
        assert should_register_tool("build", "build", server)
        # explicit list overrides the profile
        assert not should_register_tool("git", "commit", server)

    def test_empty_tools_list_disables_everything(self) -> None:
        server = ServerConfig(tools=[])
        assert not should_register_tool("git", "status", server)

    @pytest.mark.parametrize(
        ("profile", "group", "name", "expected"),
        [
            ("minimal", "git", "status", True),
            ("minimal", "npm", "run", False),
            ("web", "npm", "run", True),
            ("web", "git", "tag", False),
            ("python", "search", "search", True),
            ("python", "build", "build", False),
            ("devops", "git", "tag", True),
            ("devops", "git", "add", False),
            ("full", "git", "tag", True),
        ],
    )
    def test_profiles(self, profile: str, group: str, name: str, expected: bool) -> None:
        server = ServerConfig(profile=profile)
        assert should_register_tool(group, name, server) is expected

    def test_profile_overrides_group_tools(self) -> None:
        server = ServerConfig(profile="minimal", group_tools={"npm": ["run"]})
        assert not should_register_tool("npm", "run", server)

    def test_group_tools(self) -> None:
        server = ServerConfig(group_tools={"git": ["status", "add"]})
        assert should_register_tool("git", "status", server)
        assert not should_register_tool("git", "tag", server)
        # groups without an entry keep all tools
        assert should_register_tool("npm", "run", server)

    def test_group_tools_accept_comma_separated(self) -> None:
        server = ServerConfig(group_tools={"git": "status, commit"})
        assert should_register_tool("git", "commit", server)
        assert not should_register_tool("git", "add", server)


class TestLazyEnabled:
    @pytest.mark.parametrize(
        ("kwargs", "expected"),
        [
            ({}, False),
            ({"lazy": True}, True),
            ({"lazy": True, "profile": "web"}, True),
            ({"lazy": True, "profile": "FULL"}, False),
            ({"lazy": True, "tools": ["git:status"]}, False),
            ({"lazy": False, "profile": "web"}, False),
        ],
    )
    def test_lazy_rules(self, kwargs: dict[str, object], expected: bool) -> None:
        assert is_lazy_enabled(ServerConfig(**kwargs)) is expected
