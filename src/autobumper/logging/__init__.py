"""
Secret-safe logging for autobumper.

Implements a redaction pipeline to prevent credential leakage: every record
emitted under the ``autobumper`` logger is formatted, censored against the
secret agent, and only then handed to the rich console handler.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from autobumper.secrets.agent import SecretAgent

ROOT_LOGGER = "autobumper"


class CensoredRichHandler(RichHandler):
    """Rich console handler installed by :func:`setup_logging`."""


class CensoringFilter(logging.Filter):
    """Replace secret values in the fully formatted message of each record."""

    def __init__(self, agent: SecretAgent) -> None:
        super().__init__()
        self._agent = agent

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        censored = self._agent.censor(message.encode("utf-8")).decode("utf-8", errors="replace")
        if censored != message:
            record.msg = censored
            record.args = None
        return True


def setup_logging(
    agent: SecretAgent,
    verbose: bool = False,
    console: Console | None = None,
) -> logging.Handler:
    """Attach a censoring rich handler to the ``autobumper`` logger.

    Calling it again replaces the previously installed handler. Records stop
    at this logger so no outer handler sees them before censoring.
    """
    log = logging.getLogger(ROOT_LOGGER)
    for handler in list(log.handlers):
        if isinstance(handler, CensoredRichHandler):
            log.removeHandler(handler)

    handler = CensoredRichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.addFilter(CensoringFilter(agent))
    log.addHandler(handler)
    log.propagate = False
    log.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler
