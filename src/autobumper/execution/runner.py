"""
Process runner with redacted output.

Runs one external command with an argument list (no shell) and drains its
stdout and stderr concurrently, one task per stream, each through its own
:class:`HideSecretsWriter`. Output is forwarded while the process runs; nothing
is buffered until exit.

SECURITY NOTE: command lines are only ever logged or put into error messages
after redaction, since they may embed credentials (e.g. a push URL).
"""

from __future__ import annotations

import asyncio
import contextlib
import io
import logging
import os
import shlex
import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from autobumper.errors import ExecutionError
from autobumper.secrets.agent import SecretAgent
from autobumper.secrets.writer import HideSecretsWriter, Sink

logger = logging.getLogger(__name__)

# Read size for each pipe; output is forwarded as soon as a read returns.
DEFAULT_CHUNK_SIZE = 4096

# How long drains may keep reading after the child was killed.
DRAIN_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one completed invocation."""

    command: tuple[str, ...]
    exit_code: int | None
    display: str = ""
    error: str | None = None
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.error is None

    def check(self) -> ProcessResult:
        """Return self on success.

        Raises:
            ExecutionError: For a non-zero exit or a timeout.
        """
        if self.ok:
            return self
        raise ExecutionError(
            f"command `{self.display}` failed: {self.error or 'unknown error'}",
            self.command,
            self,
        )


def _display(argv: Sequence[str], writer: HideSecretsWriter) -> str:
    text = shlex.join(argv).encode("utf-8")
    return writer.censor.current().censor(text).decode("utf-8", errors="replace")


async def _drain(stream: asyncio.StreamReader, writer: HideSecretsWriter, chunk_size: int) -> None:
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        writer.write(chunk)
    writer.flush()


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()


async def _settle(
    proc: asyncio.subprocess.Process,
    wait_task: asyncio.Task[int],
    drains: list[asyncio.Task[None]],
) -> None:
    """Kill the child if needed and let the drains flush what was produced."""
    _kill(proc)
    await wait_task
    _, pending = await asyncio.wait(drains, timeout=DRAIN_GRACE_SECONDS)
    for task in pending:
        # A grandchild can keep the pipe open after the child died.
        logger.warning("Output stream still open after process exit; abandoning it")
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def call(
    stdout: HideSecretsWriter,
    stderr: HideSecretsWriter,
    command: str,
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ProcessResult:
    """Run *command* to completion, piping its output through the writers.

    Args:
        stdout: Redacting writer for standard output.
        stderr: Redacting writer for standard error.
        command: Executable name or path.
        *args: Arguments, passed verbatim.
        cwd: Working directory for the child.
        env: Extra environment variables merged over ``os.environ``.
        timeout: Seconds before the child is killed.
        chunk_size: Pipe read size.

    Returns:
        ProcessResult; inspect ``ok`` or call ``check()``.

    Raises:
        ExecutionError: If the process cannot be started.
        SinkError: If either writer's sink rejects output; the child is killed.
    """
    argv = (command, *args)
    display = _display(argv, stdout)
    merged_env = None
    if env is not None:
        merged_env = {**os.environ, **env}

    logger.debug("Running `%s`", display)
    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
        )
    except OSError as exc:
        raise ExecutionError(f"failed to start `{display}`: {exc}", argv) from exc

    assert proc.stdout is not None and proc.stderr is not None
    drains = [
        asyncio.create_task(_drain(proc.stdout, stdout, chunk_size)),
        asyncio.create_task(_drain(proc.stderr, stderr, chunk_size)),
    ]
    wait_task = asyncio.create_task(proc.wait())

    timed_out = False
    try:
        _, pending = await asyncio.wait(
            [*drains, wait_task],
            timeout=timeout,
            return_when=asyncio.FIRST_EXCEPTION,
        )
        failed = any(t.done() and not t.cancelled() and t.exception() for t in drains)
        if pending and not failed:
            timed_out = True
            logger.warning("`%s` timed out after %ss; killing it", display, timeout)
    except asyncio.CancelledError:
        await _settle(proc, wait_task, drains)
        raise
    await _settle(proc, wait_task, drains)

    for task in drains:
        exc = None if task.cancelled() else task.exception()
        if exc is not None:
            raise exc

    duration_ms = int((time.monotonic() - start) * 1000)
    exit_code = proc.returncode
    error = None
    if timed_out:
        error = f"timed out after {timeout}s"
    elif exit_code != 0:
        error = f"exit status {exit_code}"

    result = ProcessResult(
        command=argv,
        exit_code=exit_code,
        display=display,
        error=error,
        timed_out=timed_out,
        duration_ms=duration_ms,
    )
    logger.debug("`%s` finished in %dms: %s", display, duration_ms, error or "ok")
    return result


def _stdout_sink() -> Sink:
    return sys.stdout.buffer


def _stderr_sink() -> Sink:
    return sys.stderr.buffer


class ProcessRunner:
    """Runs commands with fresh redacting writers for every invocation."""

    def __init__(
        self,
        agent: SecretAgent,
        stdout: Sink | None = None,
        stderr: Sink | None = None,
        timeout: float | None = None,
        cwd: str | Path | None = None,
    ) -> None:
        self._agent = agent
        self._stdout = stdout
        self._stderr = stderr
        self._timeout = timeout
        self._cwd = cwd

    @property
    def agent(self) -> SecretAgent:
        return self._agent

    def writers(
        self, stdout: Sink | None = None, stderr: Sink | None = None
    ) -> tuple[HideSecretsWriter, HideSecretsWriter]:
        """Build an independent writer pair for one invocation."""
        out_sink = stdout if stdout is not None else self._stdout
        err_sink = stderr if stderr is not None else self._stderr
        if out_sink is None:
            out_sink = _stdout_sink()
        if err_sink is None:
            err_sink = _stderr_sink()
        return (
            HideSecretsWriter(out_sink, self._agent, name="stdout"),
            HideSecretsWriter(err_sink, self._agent, name="stderr"),
        )

    async def run(
        self,
        command: str,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        stdout: Sink | None = None,
        stderr: Sink | None = None,
    ) -> ProcessResult:
        """Run a command; non-zero exit is reported in the result, not raised."""
        out_writer, err_writer = self.writers(stdout, stderr)
        return await call(
            out_writer,
            err_writer,
            command,
            *args,
            cwd=cwd if cwd is not None else self._cwd,
            env=env,
            timeout=timeout if timeout is not None else self._timeout,
        )

    async def run_checked(
        self,
        command: str,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run a command and raise :class:`ExecutionError` unless it succeeded."""
        result = await self.run(command, *args, cwd=cwd, env=env, timeout=timeout)
        return result.check()

    async def capture(
        self,
        command: str,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run a command and return its redacted stdout.

        Raises:
            ExecutionError: Unless the command succeeded.
        """
        buffer = io.BytesIO()
        result = await self.run(
            command, *args, cwd=cwd, env=env, timeout=timeout, stdout=buffer
        )
        result.check()
        return buffer.getvalue().decode("utf-8", errors="replace")
