"""Error taxonomy for autobumper.

Core components never recover from these; they raise them to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autobumper.bumper.bumper import BumpOutcome
    from autobumper.execution.runner import ProcessResult


class AutobumperError(Exception):
    """Base class for all autobumper errors."""


class ConfigurationError(AutobumperError):
    """Invalid option combination, detected before any I/O."""

    def __init__(self, problems: Sequence[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems: list[str] = list(problems)
        super().__init__("invalid options: " + "; ".join(self.problems))


class ExecutionError(AutobumperError):
    """A subprocess failed to start, exited non-zero or timed out."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        result: ProcessResult | None = None,
        outcome: BumpOutcome | None = None,
    ) -> None:
        self.command: tuple[str, ...] = tuple(command)
        self.result = result
        self.outcome = outcome
        super().__init__(message)


class SinkError(AutobumperError):
    """The destination of redacted output rejected a write."""

    def __init__(self, message: str, stream: str | None = None) -> None:
        self.stream = stream
        super().__init__(message)
