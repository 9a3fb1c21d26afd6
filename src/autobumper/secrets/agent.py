"""
Secret agent for autobumper.

Holds the set of sensitive values (GitHub tokens and friends) that must never
appear in subprocess output or logs. Readers get an immutable snapshot; reloads
build a new snapshot and swap the reference, so a scan in progress never sees
a half-updated set.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from pathlib import Path
from threading import RLock

from autobumper.errors import ConfigurationError

logger = logging.getLogger(__name__)

PLACEHOLDER = b"CENSORED"


class SecretSet:
    """Immutable snapshot of secret values."""

    __slots__ = ("_values", "_ordered", "_pattern")

    def __init__(self, values: Iterable[bytes] = ()) -> None:
        # Empty values would match everywhere.
        self._values: frozenset[bytes] = frozenset(v for v in values if v)
        self._ordered: tuple[bytes, ...] = tuple(
            sorted(self._values, key=lambda v: (-len(v), v))
        )
        self._pattern: re.Pattern[bytes] | None = None
        if self._ordered:
            # Alternation tries branches in order, so longest-first gives longest match.
            self._pattern = re.compile(b"|".join(re.escape(v) for v in self._ordered))

    @property
    def values(self) -> frozenset[bytes]:
        return self._values

    @property
    def ordered(self) -> tuple[bytes, ...]:
        """Secret values, longest first."""
        return self._ordered

    @property
    def longest(self) -> int:
        """Length of the longest secret, 0 when empty."""
        return len(self._ordered[0]) if self._ordered else 0

    @property
    def pattern(self) -> re.Pattern[bytes] | None:
        return self._pattern

    def censor(self, content: bytes) -> bytes:
        """Replace every secret in a complete buffer with the placeholder."""
        if self._pattern is None or not content:
            return content
        return self._pattern.sub(PLACEHOLDER, content)

    def __contains__(self, value: object) -> bool:
        return value in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        # Never print the values themselves.
        return f"SecretSet(count={len(self._values)}, longest={self.longest})"


EMPTY_SECRET_SET = SecretSet()


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def load_secret_file(path: str | Path) -> bytes:
    """Read a secret file, stripping surrounding whitespace.

    Raises:
        ConfigurationError: If the file cannot be read.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"failed to load secret file {path}: {exc}") from exc
    return raw.strip()


class SecretAgent:
    """Reloadable store of secret values.

    Sources are either file paths (re-read on every reload) or literal values
    registered with :meth:`add_values`. :meth:`current` is safe to call from
    any thread while another thread reloads.
    """

    def __init__(self) -> None:
        self._paths: list[Path] = []
        self._literals: set[bytes] = set()
        self._file_values: dict[Path, bytes] = {}
        self._snapshot: SecretSet = EMPTY_SECRET_SET
        self._lock: RLock = RLock()
        self._stop_event = threading.Event()
        self._watcher: threading.Thread | None = None

    def start(self, sources: Iterable[str | Path]) -> None:
        """Load secrets from *sources*, replacing any previous file sources.

        Raises:
            ConfigurationError: If any file cannot be read.
        """
        paths = [Path(s) for s in sources]
        values = {path: load_secret_file(path) for path in paths}
        with self._lock:
            self._paths = paths
            self._file_values = values
            self._publish()
        logger.debug("Secret agent started with %d file source(s)", len(paths))

    def add_values(self, values: Iterable[str | bytes]) -> None:
        """Register literal secret values that do not come from files."""
        with self._lock:
            self._literals.update(v for v in (_to_bytes(value) for value in values) if v)
            self._publish()

    def reload(self) -> None:
        """Re-read every file source and swap in a new snapshot.

        Raises:
            ConfigurationError: If a file cannot be read; the previous
                snapshot stays in place.
        """
        with self._lock:
            paths = list(self._paths)
        values = {path: load_secret_file(path) for path in paths}
        with self._lock:
            self._file_values = values
            self._publish()

    def _publish(self) -> None:
        # Caller holds self._lock. Rebinding the attribute is the atomic swap.
        self._snapshot = SecretSet([*self._file_values.values(), *self._literals])

    def current(self) -> SecretSet:
        """Return the most recently loaded snapshot."""
        return self._snapshot

    def get_secret(self, path: str | Path) -> bytes:
        """Return the current value loaded from *path*.

        Raises:
            KeyError: If *path* is not a registered source.
        """
        with self._lock:
            return self._file_values[Path(path)]

    def censor(self, content: bytes) -> bytes:
        """Redact a complete buffer against the current snapshot."""
        return self._snapshot.censor(content)

    def watch(self, interval: float = 1.0) -> None:
        """Reload file sources every *interval* seconds on a daemon thread."""
        if self._watcher is not None and self._watcher.is_alive():
            return
        self._stop_event.clear()
        self._watcher = threading.Thread(
            target=self._watch_loop,
            args=(interval,),
            name="secret-agent-reload",
            daemon=True,
        )
        self._watcher.start()

    def _watch_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.reload()
            except ConfigurationError as exc:
                logger.warning("Secret reload failed, keeping previous values: %s", exc)

    def stop(self) -> None:
        """Stop the background reload thread, if running."""
        self._stop_event.set()
        watcher = self._watcher
        if watcher is not None:
            watcher.join()
            self._watcher = None
