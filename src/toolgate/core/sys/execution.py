"""Bounded, shell-free command execution.

Provides:
- Command and RunResult value types
- RunnerProtocol for injecting fake runners in tests
- ProcessRunner, which spawns via ``asyncio.create_subprocess_exec`` only,
  enforces a wall-clock timeout and caps the total captured output

Process-level failures never raise. A missing executable, a permission
error or a timeout all come back as a RunResult with a non-zero exit code
and a message in ``stderr``, so each tool decides how to surface them.
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic
from typing import TYPE_CHECKING, Protocol

from toolgate.core.console import get_logger
from toolgate.core.sanitize import sanitize_error_output, strip_ansi

if TYPE_CHECKING:
    from toolgate.core.config import AppConfig

logger = get_logger(__name__)

TIMEOUT_EXIT_CODE = 124
PERMISSION_DENIED_EXIT_CODE = 126
NOT_FOUND_EXIT_CODE = 127

DEFAULT_TIMEOUT_MS = 60_000
MAX_TIMEOUT_MS = 600_000
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
DEFAULT_KILL_GRACE_SECONDS = 2.0

_READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True, slots=True)
class Command:
    """A validated request to spawn one external process."""

    executable: str
    args: tuple[str, ...] = ()
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    timeout_ms: int | None = None
    stdin: str | None = None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a single process run."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    truncated: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class RunnerProtocol(Protocol):
    """Anything that can run a command and return a RunResult."""

    async def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout_ms: int | None = None,
        stdin: str | None = None,
    ) -> RunResult: ...


@dataclass(slots=True)
class _OutputBudget:
    """Bytes both streams may still keep; ``exceeded`` is set once one drops data."""

    remaining: int
    exceeded: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass(slots=True)
class _BoundedBuffer:
    """Keeps what the shared budget allows and records whether anything was dropped."""

    budget: _OutputBudget
    data: bytearray = field(default_factory=bytearray)
    truncated: bool = False

    def feed(self, chunk: bytes) -> None:
        kept = chunk[: max(self.budget.remaining, 0)]
        self.data.extend(kept)
        self.budget.remaining -= len(kept)
        if len(kept) < len(chunk):
            self.truncated = True
            self.budget.exceeded.set()

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


async def _pump(stream: asyncio.StreamReader | None, buffer: _BoundedBuffer) -> None:
    # Keep draining past the cap so the child never blocks on a full pipe.
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK_BYTES):
        buffer.feed(chunk)


async def _feed_stdin(writer: asyncio.StreamWriter | None, payload: bytes) -> None:
    if writer is None:
        return
    try:
        writer.write(payload)
        await writer.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("Child closed stdin before reading %d bytes", len(payload))
    finally:
        writer.close()


def _append_notice(stderr: str, notice: str) -> str:
    return f"{stderr.rstrip()}\n{notice}" if stderr.strip() else notice


def _signal_process(proc: asyncio.subprocess.Process, sig: int) -> None:
    try:
        if os.name == "posix":
            os.killpg(proc.pid, sig)
        elif sig == signal.SIGTERM:
            proc.terminate()
        else:
            proc.kill()
    except ProcessLookupError:
        logger.debug("Process %s already exited", proc.pid)


class ProcessRunner:
    """Spawn external commands with a timeout and bounded output capture."""

    def __init__(
        self,
        *,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_timeout_ms: int = MAX_TIMEOUT_MS,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
        sanitize_all_paths: bool = False,
    ) -> None:
        self.default_timeout_ms = default_timeout_ms
        self.max_timeout_ms = max_timeout_ms
        self.max_output_bytes = max_output_bytes
        self.kill_grace_seconds = kill_grace_seconds
        self.sanitize_all_paths = sanitize_all_paths

    @classmethod
    def from_config(cls, config: AppConfig) -> ProcessRunner:
        return cls(
            default_timeout_ms=config.runner.default_timeout_ms,
            max_timeout_ms=config.runner.max_timeout_ms,
            max_output_bytes=config.runner.max_output_bytes,
            kill_grace_seconds=config.runner.kill_grace_seconds,
            sanitize_all_paths=config.policy.sanitize_all_paths,
        )

    def resolve_timeout(self, timeout_ms: int | None) -> int:
        """Apply the default and clamp to the configured maximum."""
        requested = self.default_timeout_ms if timeout_ms is None else timeout_ms
        return max(1, min(requested, self.max_timeout_ms))

    async def run_command(self, command: Command) -> RunResult:
        return await self.run(
            command.executable,
            command.args,
            cwd=command.cwd,
            env=command.env,
            timeout_ms=command.timeout_ms,
            stdin=command.stdin,
        )

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
        """Run ``executable`` with a literal argument vector.

        Args:
            executable: Program name or path; never interpreted by a shell.
            args: Argument vector passed through unchanged.
            cwd: Working directory, already confined by the caller.
            env: Variables overlaid on the current environment.
            timeout_ms: Wall-clock limit; defaults and clamps per configuration.
            stdin: Text written to the child's stdin before it is closed.

        Returns:
            RunResult; exit code 124 with ``timed_out`` set on timeout.
        """
        timeout = self.resolve_timeout(timeout_ms)
        merged_env = {**os.environ, **env} if env else None
        started = monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except FileNotFoundError as exc:
            if cwd is not None and exc.filename == str(cwd):
                return self._spawn_failure(
                    executable, NOT_FOUND_EXIT_CODE, f'Working directory not found: "{cwd}".'
                )
            return self._spawn_failure(
                executable,
                NOT_FOUND_EXIT_CODE,
                f'Command not found: "{executable}". '
                "Ensure it is installed and available in your PATH.",
            )
        except PermissionError as exc:
            return self._spawn_failure(
                executable,
                PERMISSION_DENIED_EXIT_CODE,
                f'Permission denied executing "{executable}": {exc.strerror or exc}',
            )
        except OSError as exc:
            return self._spawn_failure(
                executable,
                PERMISSION_DENIED_EXIT_CODE,
                f'Failed to start "{executable}": {exc.strerror or exc}',
            )

        budget = _OutputBudget(self.max_output_bytes)
        stdout_buffer = _BoundedBuffer(budget)
        stderr_buffer = _BoundedBuffer(budget)
        io_tasks = [
            asyncio.create_task(_pump(proc.stdout, stdout_buffer)),
            asyncio.create_task(_pump(proc.stderr, stderr_buffer)),
        ]
        if stdin is not None:
            io_tasks.append(asyncio.create_task(_feed_stdin(proc.stdin, stdin.encode("utf-8"))))

        timed_out = False
        stopped_at_cap = False
        exited = asyncio.create_task(proc.wait())
        overflowed = asyncio.create_task(budget.exceeded.wait())
        try:
            done, _pending = await asyncio.wait(
                {exited, overflowed},
                timeout=timeout / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not done:
                timed_out = True
                logger.warning("Command %s timed out after %dms; terminating", executable, timeout)
                await self._terminate(proc)
            elif exited not in done:
                stopped_at_cap = True
                logger.warning(
                    "Output of %s exceeded %d bytes; terminating",
                    executable,
                    self.max_output_bytes,
                )
                await self._terminate(proc)
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise
        finally:
            for waiter in (exited, overflowed):
                waiter.cancel()
            await asyncio.gather(exited, overflowed, return_exceptions=True)
            await self._finish_io(io_tasks)

        duration_ms = int((monotonic() - started) * 1000)
        stdout = strip_ansi(stdout_buffer.text())
        stderr = sanitize_error_output(
            strip_ansi(stderr_buffer.text()), all_paths=self.sanitize_all_paths
        )
        truncated = stdout_buffer.truncated or stderr_buffer.truncated

        if timed_out:
            notice = f'Command "{executable}" timed out after {timeout}ms and was killed.'
            return RunResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=stdout,
                stderr=_append_notice(stderr, notice),
                timed_out=True,
                truncated=truncated,
                duration_ms=duration_ms,
            )
        if stopped_at_cap:
            stderr = _append_notice(
                stderr,
                f'Output of "{executable}" exceeded {self.max_output_bytes} bytes; '
                "the process was stopped.",
            )

        exit_code = proc.returncode if proc.returncode is not None else 1
        if exit_code < 0:
            # Killed by a signal; report it the way shells do.
            exit_code = 128 - exit_code

        return RunResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            truncated=truncated,
            duration_ms=duration_ms,
        )

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        _signal_process(proc, signal.SIGTERM)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.kill_grace_seconds)
            return
        except asyncio.TimeoutError:
            logger.debug("Process %s ignored SIGTERM; killing", proc.pid)
        _signal_process(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()

    async def _finish_io(self, tasks: list[asyncio.Task[None]]) -> None:
        # Grandchildren can hold the pipes open after the child exits.
        _done, pending = await asyncio.wait(tasks, timeout=max(self.kill_grace_seconds, 1.0))
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Abandoned %d stream readers still open after exit", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn_failure(self, executable: str, exit_code: int, message: str) -> RunResult:
        logger.warning("Failed to spawn %s: %s", executable, message)
        return RunResult(exit_code=exit_code, stdout="", stderr=message)


__all__ = [
    "DEFAULT_MAX_OUTPUT_BYTES",
    "DEFAULT_TIMEOUT_MS",
    "MAX_TIMEOUT_MS",
    "NOT_FOUND_EXIT_CODE",
    "PERMISSION_DENIED_EXIT_CODE",
    "TIMEOUT_EXIT_CODE",
    "Command",
    "ProcessRunner",
    "RunResult",
    "RunnerProtocol",
]
