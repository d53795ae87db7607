"""Tests for configuration loading, env overrides and safe-mode fallback."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from toolgate.core.config import AppConfig, load_config
from toolgate.core.security import SecurityPolicy


class TestDefaults:
    def test_defaults_without_file(self, isolate_config: Path) -> None:
        config, meta = load_config()

        assert meta.path == isolate_config
        assert meta.file_loaded is False
        assert meta.error is None
        assert config.policy.allowed_roots is None
        assert config.policy.strict_path is True
        assert config.runner.default_timeout_ms == 60_000
        assert config.runner.max_timeout_ms == 600_000
        assert config.server.lazy is False
        assert config.log_level == "INFO"


class TestFileLoading:
    def test_toml_file(self, isolate_config: Path, tmp_path: Path) -> None:
        isolate_config.write_text(
            "\n".join(
                [
                    'log_level = "DEBUG"',
                    "[policy]",
                    f'allowed_roots = ["{tmp_path.as_posix()}"]',
                    'allowed_commands = ["npm", "git"]',
                    "[policy.servers.search]",
                    'allowed_commands = ["rg"]',
                    "[server]",
                    'profile = "web"',
                    "lazy = true",
                ]
            ),
            encoding="utf-8",
        )

        config, meta = load_config()

        assert meta.file_loaded is True
        assert meta.error is None
        assert config.log_level == "DEBUG"
        assert config.policy.allowed_roots == [tmp_path.as_posix()]
        assert config.policy.allowed_commands == ["npm", "git"]
        assert config.policy.servers["search"].allowed_commands == ["rg"]
        assert config.server.profile == "web"
        assert config.server.lazy is True

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "toolgate.json"
        path.write_text(json.dumps({"runner": {"max_output_bytes": 2048}}), encoding="utf-8")

        config, meta = load_config(config_path=path)

        assert meta.file_loaded is True
        assert config.runner.max_output_bytes == 2048

    def test_syntax_error_enters_safe_mode(self, isolate_config: Path) -> None:
        isolate_config.write_text("[policy\nallowed_roots = ", encoding="utf-8")

        config, meta = load_config()

        assert meta.error is not None
        assert "Syntax error" in meta.error
        assert config.policy.strict_path is True

    def test_invalid_value_enters_safe_mode(self, isolate_config: Path) -> None:
        isolate_config.write_text("[runner]\nmax_timeout_ms = -5\n", encoding="utf-8")

        config, meta = load_config()

        assert meta.error is not None
        assert config.runner.max_timeout_ms == 600_000


class TestEnvOverrides:
    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLGATE_POLICY__ALLOWED_COMMANDS", "npm, cargo")
        monkeypatch.setenv("TOOLGATE_SERVER__LAZY", "true")

        config, meta = load_config()

        assert config.policy.allowed_commands == ["npm", "cargo"]
        assert config.server.lazy is True
        assert {"policy.allowed_commands", "server.lazy"} <= meta.env_overrides

    def test_env_wins_over_file(self, isolate_config: Path) -> None:
        isolate_config.write_text('log_level = "DEBUG"\n', encoding="utf-8")

        config, meta = load_config(env={"TOOLGATE_LOG_LEVEL": "WARNING"})

        assert config.log_level == "WARNING"
        assert "log_level" in meta.env_overrides

    def test_tools_accept_comma_separated(self) -> None:
        config, _meta = load_config(env={"TOOLGATE_SERVER__TOOLS": "git:status,build:build"})
        assert config.server.tools == ["git:status", "build:build"]


class TestValidators:
    def test_default_timeout_clamped_to_max(self) -> None:
        config = AppConfig(runner={"default_timeout_ms": 900_000, "max_timeout_ms": 120_000})
        assert config.runner.default_timeout_ms == 120_000

    def test_json_array_strings_accepted(self) -> None:
        config = AppConfig(policy={"allowed_roots": '["/srv/a", "/srv/b"]'})
        assert config.policy.allowed_roots == ["/srv/a", "/srv/b"]


class TestPolicyFromConfig:
    def test_empty_lists_mean_unrestricted(self) -> None:
        config = AppConfig(policy={"allowed_commands": [], "allowed_roots": []})
        policy = SecurityPolicy.from_config(config.policy)

        assert policy.allowed_commands is None
        assert policy.allowed_roots is None

    def test_group_overrides(self, tmp_path: Path) -> None:
        config = AppConfig(
            policy={
                "servers": {
                    "Git": {"allowed_roots": [str(tmp_path)]},
                    "search": {"allowed_commands": ["rg"]},
                }
            }
        )
        policy = SecurityPolicy.from_config(config.policy)

        assert policy.roots_for("git") == (tmp_path,)
        assert policy.commands_for("search") == frozenset({"rg"})
        assert policy.commands_for("git") is None

    def test_global_setting_wins_over_group(self, tmp_path: Path) -> None:
        config = AppConfig(
            policy={
                "allowed_commands": ["npm"],
                "servers": {"search": {"allowed_commands": ["rg"]}},
            }
        )
        policy = SecurityPolicy.from_config(config.policy)

        assert policy.commands_for("search") == frozenset({"npm"})
