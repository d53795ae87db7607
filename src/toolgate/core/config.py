"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (TOOLGATE_* prefix, ``__`` for nesting)
    - Default values

List settings also accept comma-separated strings, so
``TOOLGATE_POLICY__ALLOWED_ROOTS=/srv/app,/tmp/builds`` works.

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any
from unittest.mock import patch

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from toolgate.core.result import ConfigurationError

CONFIG_ENV_VAR = "TOOLGATE_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".toolgate.toml"


class ConfigError(ConfigurationError):
    """Raised when configuration cannot be loaded or validated."""


def _split_list(value: Any) -> Any:
    """Accept ``"a, b"`` or a JSON array string for list-valued settings."""
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if stripped.startswith("["):
        return json.loads(stripped)
    return [item.strip() for item in stripped.split(",") if item.strip()]


# NoDecode hands the raw env string to _split_list instead of json.loads.
EnvList = Annotated[list[str] | None, NoDecode]


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class GroupPolicyConfig(BaseModel):
    """Per-group overrides, used only when the global setting is unset."""

    allowed_commands: EnvList = None
    allowed_roots: EnvList = None

    @field_validator("allowed_commands", "allowed_roots", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_list(v)


class PolicyConfig(BaseModel):
    """Security policy inputs."""

    allowed_commands: EnvList = Field(
        default=None,
        description="Operator allowlist of executables for every group (unset = no narrowing).",
    )
    allowed_roots: EnvList = Field(
        default=None,
        description="Directories that cwd/path parameters must live under (unset = unconfined).",
    )
    strict_path: bool = Field(
        default=True,
        description="Reject path-qualified commands in the generic build tool.",
    )
    sanitize_all_paths: bool = Field(
        default=False, description="Redact every absolute path in error output."
    )
    servers: dict[str, GroupPolicyConfig] = Field(
        default_factory=dict, description="Per-group overrides keyed by group name."
    )

    @field_validator("allowed_commands", "allowed_roots", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_list(v)


class RunnerConfig(BaseModel):
    """Process runner bounds."""

    default_timeout_ms: int = Field(default=60_000, gt=0)
    max_timeout_ms: int = Field(default=600_000, gt=0)
    max_output_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    kill_grace_seconds: float = Field(default=2.0, ge=0)


class ServerConfig(BaseModel):
    """MCP server surface: which tools are advertised and when."""

    name: str = Field(default="toolgate", description="Server name announced to clients.")
    lazy: bool = Field(default=False, description="Defer non-core tools behind discover-tools.")
    profile: str | None = Field(default=None, description="Preset tool set (see `toolgate tools`).")
    tools: EnvList = Field(
        default=None,
        description="Explicit group:name allow-list; overrides profile and group_tools.",
    )
    group_tools: dict[str, list[str]] = Field(
        default_factory=dict, description="Per-group tool name allow-lists."
    )

    @field_validator("tools", mode="before")
    @classmethod
    def split_tools(cls, v: Any) -> Any:
        return _split_list(v)

    @field_validator("group_tools", mode="before")
    @classmethod
    def split_group_tools(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {key: _split_list(value) for key, value in v.items()}
        return v


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLGATE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = Field(default="INFO", description="Log level for toolgate output.")

    @field_validator("runner", mode="after")
    @classmethod
    def clamp_default_timeout(cls, v: RunnerConfig) -> RunnerConfig:
        if v.default_timeout_ms > v.max_timeout_ms:
            v.default_timeout_ms = v.max_timeout_ms
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    For nested models, detects vars like TOOLGATE_POLICY__ALLOWED_ROOTS.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    upper_keys = {key.upper() for key in env_vars}
    overrides: set[str] = set()

    nested_models: dict[str, type[BaseModel]] = {
        "policy": PolicyConfig,
        "runner": RunnerConfig,
        "server": ServerConfig,
    }

    for group_name, model_cls in nested_models.items():
        for field in model_cls.model_fields:
            env_key = f"{prefix}{group_name}{delimiter}{field}".upper()
            if env_key in upper_keys or any(k.startswith(env_key + delimiter) for k in upper_keys):
                overrides.add(f"{group_name}.{field}")

    if f"{prefix}LOG_LEVEL".upper() in upper_keys:
        overrides.add("log_level")

    return overrides


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except (ConfigError, OSError) as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except (ValidationError, ValueError) as exc:
        error = str(exc)
        config = AppConfig.model_construct()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result


__all__ = [
    "CONFIG_ENV_VAR",
    "AppConfig",
    "ConfigError",
    "ConfigLoadResult",
    "GroupPolicyConfig",
    "PolicyConfig",
    "RunnerConfig",
    "ServerConfig",
    "load_config",
]
