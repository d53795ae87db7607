from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from toolgate.core.config import AppConfig  # noqa: E402
from toolgate.core.runtime import RuntimeContext, runtime_context  # noqa: E402
from toolgate.core.security import SecurityPolicy  # noqa: E402

from tests.mocks.fake_runner import FakeRunner  # noqa: E402


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def ensure_commands_registered() -> None:
    """Ensure CLI commands are registered before tests run.

    Tests using CliRunner invoke ``app`` directly and bypass cli().
    """
    from toolgate.main import _register_commands

    _register_commands()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    for key in list(os.environ):
        if key.upper().startswith("TOOLGATE_"):
            monkeypatch.delenv(key, raising=False)
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("TOOLGATE_CONFIG", str(cfg_path))
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200)
    import toolgate.commands.catalog as catalog_cmd
    import toolgate.commands.policy as policy_cmd
    import toolgate.core.console as core_console
    import toolgate.main as tg_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(tg_main, "console", test_console)
    monkeypatch.setattr(catalog_cmd, "console", test_console)
    monkeypatch.setattr(policy_cmd, "console", test_console)
    return test_console


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An authorized root for tool calls."""
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws.resolve()


@pytest.fixture
def outside_dir(tmp_path: Path) -> Path:
    """A directory that is not under any authorized root."""
    outside = tmp_path / "outside"
    outside.mkdir()
    return outside.resolve()


@pytest.fixture
def policy(workspace: Path) -> SecurityPolicy:
    return SecurityPolicy.create(allowed_roots=[workspace])


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def runtime(policy: SecurityPolicy, fake_runner: FakeRunner) -> Iterator[RuntimeContext]:
    """Runtime context with a confined policy and a scripted runner."""
    with runtime_context(AppConfig(), policy=policy, runner=fake_runner, trace_id="test") as ctx:
        yield ctx
