"""Scripted process runner for tool tests.

Satisfies RunnerProtocol without spawning anything, records every call so
tests can assert on the exact argv a tool built, and replays queued
results in order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from toolgate.core.sys.execution import RunResult


@dataclass
class RunCall:
    executable: str
    args: list[str]
    cwd: Path | str | None
    env: Mapping[str, str] | None
    timeout_ms: int | None
    stdin: str | None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]


class FakeRunner:
    """Deterministic RunnerProtocol implementation.

    Usage:
        runner = FakeRunner()
        runner.queue(RunResult(exit_code=0, stdout="## main\\n", stderr=""))
        with runtime_context(AppConfig(), runner=runner):
            await git_status(WorkspaceInput(path=str(tmp_path)))
        assert runner.calls[0].args[0] == "status"
    """

    def __init__(self, *results: RunResult, default: RunResult | None = None) -> None:
        self._results: deque[RunResult] = deque(results)
        self.default = default or RunResult(exit_code=0, stdout="", stderr="")
        self.calls: list[RunCall] = []

    def queue(self, *results: RunResult) -> FakeRunner:
        self._results.extend(results)
        return self

    @property
    def last_call(self) -> RunCall:
        assert self.calls, "runner was never called"
        return self.calls[-1]

    async def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout_ms: int | None = None,
        stdin: str | None = None,
    ) -> RunResult:
        self.calls.append(
            RunCall(
                executable=executable,
                args=list(args),
                cwd=cwd,
                env=env,
                timeout_ms=timeout_ms,
                stdin=stdin,
            )
        )
        if self._results:
            return self._results.popleft()
        return self.default


__all__ = ["FakeRunner", "RunCall"]
