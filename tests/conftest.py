"""Pytest configuration and shared fixtures for autobumper tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from autobumper.secrets.agent import SecretAgent


class FakeWriter:
    """Sink that records everything it receives."""

    def __init__(self) -> None:
        self.results = b""
        self.writes: list[bytes] = []
        self.flushed = 0

    def write(self, content: bytes) -> int:
        self.writes.append(content)
        self.results += content
        return len(content)

    def flush(self) -> None:
        self.flushed += 1


class FailingWriter:
    """Sink that rejects every write."""

    def __init__(self) -> None:
        self.attempts = 0

    def write(self, content: bytes) -> int:
        self.attempts += 1
        raise OSError("disk full")


class TrickleWriter(FakeWriter):
    """Sink that accepts at most *limit* bytes per call."""

    def __init__(self, limit: int = 3) -> None:
        super().__init__()
        self._limit = limit

    def write(self, content: bytes) -> int:
        return super().write(content[: self._limit])


def write_to_file(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


@pytest.fixture
def secret_files(tmp_path: Path) -> list[Path]:
    """Two secret files holding "abc" and "xyz"."""
    return [
        write_to_file(tmp_path / "secret1", "abc"),
        write_to_file(tmp_path / "secret2", "xyz\n"),
    ]


@pytest.fixture
def agent(secret_files: list[Path]) -> SecretAgent:
    """Secret agent started with the two secret files."""
    sa = SecretAgent()
    sa.start(secret_files)
    yield sa
    sa.stop()


@pytest.fixture
def fake_out() -> FakeWriter:
    return FakeWriter()


@pytest.fixture
def fake_err() -> FakeWriter:
    return FakeWriter()


@pytest.fixture(autouse=True)
def _reset_autobumper_logger():
    """Drop handlers installed by setup_logging so tests stay independent."""
    yield
    log = logging.getLogger("autobumper")
    for handler in list(log.handlers):
        log.removeHandler(handler)
    log.setLevel(logging.NOTSET)
    log.propagate = True
