"""Working-tree helpers: root discovery and config path membership."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from autobumper.errors import ConfigurationError
from autobumper.execution.runner import ProcessRunner

logger = logging.getLogger(__name__)

WORKSPACE_ENV = "BUILD_WORKSPACE_DIRECTORY"
CONFIG_SUFFIXES = (".yaml", ".yml")


def is_under_path(name: str, paths: Iterable[str]) -> bool:
    """Return True if *name* starts with any of *paths*.

    Prefixes are compared literally, so ``config/prow/`` does not match
    ``config/prow-staging/...``.
    """
    return any(name.startswith(prefix) for prefix in paths)


async def cd_to_root_dir(runner: ProcessRunner) -> Path:
    """Change into the repository root and return it.

    Uses ``$BUILD_WORKSPACE_DIRECTORY`` when set, otherwise asks git.

    Raises:
        ConfigurationError: If the workspace directory is not usable.
        ExecutionError: If git cannot report the top level.
    """
    workspace = os.environ.get(WORKSPACE_ENV)
    if workspace:
        root = Path(workspace)
    else:
        output = await runner.capture("git", "rev-parse", "--show-toplevel")
        root = Path(output.strip())

    try:
        os.chdir(root)
    except OSError as exc:
        raise ConfigurationError(f"failed to change to root dir {root}: {exc}") from exc
    logger.debug("Working in %s", root)
    return root


def iter_config_files(root: Path, included_paths: Iterable[str]) -> Iterator[str]:
    """Yield YAML files below *root* whose relative path is under *included_paths*."""
    prefixes = list(included_paths)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != ".git")
        for filename in sorted(filenames):
            if not filename.endswith(CONFIG_SUFFIXES):
                continue
            relative = Path(dirpath, filename).relative_to(root).as_posix()
            if is_under_path(relative, prefixes):
                yield relative
