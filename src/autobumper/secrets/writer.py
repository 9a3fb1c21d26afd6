"""
Streaming secret redaction.

:class:`HideSecretsWriter` sits between a subprocess pipe and a sink. Each
write censors every known secret, holding back only the few trailing bytes
that could still be the beginning of a secret completed by the next chunk.
Feeding a stream in any chunking produces the same output as feeding it whole.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Protocol, runtime_checkable

from autobumper.errors import SinkError
from autobumper.secrets.agent import PLACEHOLDER, SecretSet

logger = logging.getLogger(__name__)


@runtime_checkable
class Sink(Protocol):
    """Anything that accepts bytes: binary files, ``BytesIO``, ``sys.stdout.buffer``."""

    def write(self, data: bytes, /) -> int | None: ...


class Censor(Protocol):
    """Source of secret snapshots (normally a :class:`SecretAgent`)."""

    def current(self) -> SecretSet: ...


def _partial_start(buffer: bytes, start: int, stop: int, secrets: SecretSet) -> int | None:
    """First position in ``[start, stop]`` where a secret could still begin.

    A position qualifies when the rest of the buffer is a proper prefix of a
    secret longer than that rest.
    """
    end = len(buffer)
    for pos in range(start, min(stop + 1, end)):
        remaining = end - pos
        for value in secrets.ordered:
            if len(value) <= remaining:
                break
            if value.startswith(buffer[pos:]):
                return pos
    return None


def redact_chunk(buffer: bytes, secrets: SecretSet) -> tuple[bytes, bytes]:
    """Censor *buffer*, splitting off the undecidable tail.

    Returns:
        ``(forward, tail)``: redacted bytes safe to emit now, and raw bytes to
        prepend to the next chunk.
    """
    pattern = secrets.pattern
    if pattern is None:
        return buffer, b""

    hold_from = max(0, len(buffer) - secrets.longest + 1)
    parts: list[bytes] = []
    pos = 0
    while pos < len(buffer):
        match = pattern.search(buffer, pos)
        stop = match.start() if match else len(buffer)
        held = _partial_start(buffer, max(pos, hold_from), stop, secrets)
        if held is not None:
            parts.append(buffer[pos:held])
            return b"".join(parts), buffer[held:]
        if match is None:
            parts.append(buffer[pos:])
            break
        parts.append(buffer[pos : match.start()])
        parts.append(PLACEHOLDER)
        pos = match.end()
    return b"".join(parts), b""


class HideSecretsWriter:
    """Redacting writer for one output stream of one subprocess.

    Not thread-safe: the pending tail belongs to whichever task drains the
    stream.
    """

    def __init__(self, delegate: Sink, censor: Censor, name: str = "output") -> None:
        self._delegate = delegate
        self._censor = censor
        self._name = name
        self._tail = b""
        self._failure: BaseException | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def censor(self) -> Censor:
        return self._censor

    @property
    def delegate(self) -> Sink:
        return self._delegate

    @property
    def pending(self) -> bytes:
        """Bytes currently held back."""
        return self._tail

    def write(self, chunk: bytes) -> int:
        """Redact *chunk* and forward what can be decided.

        Returns:
            ``len(chunk)``; the whole chunk is always accepted.

        Raises:
            SinkError: If the delegate rejects the write, or rejected an
                earlier one.
        """
        self._check_usable()
        if not chunk:
            return 0

        forward, self._tail = redact_chunk(self._tail + bytes(chunk), self._censor.current())
        if forward:
            self._emit(forward)
        return len(chunk)

    def flush(self) -> None:
        """Forward the pending tail; no secret can be completed any more."""
        self._check_usable()
        if self._tail:
            tail, self._tail = self._tail, b""
            self._emit(self._censor.current().censor(tail))
        flush = getattr(self._delegate, "flush", None)
        if callable(flush):
            try:
                flush()
            except Exception as exc:
                self._failure = exc
                raise SinkError(f"{self._name}: sink flush failed: {exc}", self._name) from exc

    def close(self) -> None:
        self.flush()

    def _check_usable(self) -> None:
        if self._failure is not None:
            raise SinkError(
                f"{self._name}: sink failed earlier: {self._failure}", self._name
            ) from self._failure

    def _emit(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            try:
                written = self._delegate.write(bytes(view))
            except Exception as exc:
                self._failure = exc
                raise SinkError(f"{self._name}: sink write failed: {exc}", self._name) from exc
            if written is None or written >= len(view):
                return
            if written <= 0:
                self._failure = OSError("sink accepted no bytes")
                raise SinkError(f"{self._name}: sink accepted no bytes", self._name)
            view = view[written:]

    def __enter__(self) -> HideSecretsWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()


class LogSink:
    """Sink that turns redacted bytes into one log record per line."""

    def __init__(
        self,
        log: logging.Logger | None = None,
        level: int = logging.INFO,
        prefix: str = "",
    ) -> None:
        self._log = log or logger
        self._level = level
        self._prefix = prefix
        self._buffer = b""

    def write(self, data: bytes) -> int:
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        for line in lines:
            self._log_line(line)
        return len(data)

    def flush(self) -> None:
        if self._buffer:
            line, self._buffer = self._buffer, b""
            self._log_line(line)

    def _log_line(self, line: bytes) -> None:
        text = line.decode("utf-8", errors="replace").rstrip("\r")
        self._log.log(self._level, "%s%s", self._prefix, text)
