"""Tests for working-tree helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from autobumper.bumper.paths import (
    WORKSPACE_ENV,
    cd_to_root_dir,
    is_under_path,
    iter_config_files,
)
from autobumper.errors import ConfigurationError
from autobumper.execution.runner import ProcessRunner
from tests.conftest import FakeWriter


class TestIsUnderPath:
    """Tests for is_under_path."""

    @pytest.mark.parametrize(
        "paths,name,expected",
        [
            (["config/prow/"], "config/prow/config.yaml", True),
            (["config/prow-staging/"], "config/prow-staging/jobs/config.yaml", True),
            (
                ["config/prow/", "config/prow-staging/"],
                "config/prow-staging/jobs/whatever-repo/whatever-file",
                True,
            ),
            (["config/prow/"], "config/prow-staging/config.yaml", False),
        ],
        ids=[
            "file is under the direct path",
            "file is under the indirect path",
            "file is under one path but not others",
            "same prefix but different directory",
        ],
    )
    def test_membership(self, paths, name, expected):
        assert is_under_path(name, paths) is expected


class TestCdToRootDir:
    """Tests for cd_to_root_dir."""

    @pytest.mark.asyncio
    async def test_invalid_workspace_directory(self, agent, monkeypatch, tmp_path):
        """A workspace variable pointing nowhere is an error."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(WORKSPACE_ENV, str(tmp_path / "whatever-dir"))
        runner = ProcessRunner(agent, stdout=FakeWriter(), stderr=FakeWriter())

        with pytest.raises(ConfigurationError):
            await cd_to_root_dir(runner)

    @pytest.mark.asyncio
    async def test_valid_workspace_directory(self, agent, monkeypatch, tmp_path):
        """The workspace variable wins when set."""
        monkeypatch.chdir(tmp_path)
        workspace = tmp_path / "workspace"
        workspace.mkdir()
        monkeypatch.setenv(WORKSPACE_ENV, str(workspace))
        runner = ProcessRunner(agent, stdout=FakeWriter(), stderr=FakeWriter())

        root = await cd_to_root_dir(runner)

        assert root == workspace
        assert Path(os.getcwd()).resolve() == workspace.resolve()

    @pytest.mark.asyncio
    async def test_git_toplevel(self, agent, monkeypatch, tmp_path):
        """Without the variable, git reports the root."""
        monkeypatch.delenv(WORKSPACE_ENV, raising=False)
        runner = ProcessRunner(agent, stdout=FakeWriter(), stderr=FakeWriter())
        monkeypatch.chdir(tmp_path)
        await runner.run_checked("git", "init", "-q")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        root = await cd_to_root_dir(runner)

        assert root.resolve() == tmp_path.resolve()
        assert Path(os.getcwd()).resolve() == tmp_path.resolve()


class TestIterConfigFiles:
    """Tests for iter_config_files."""

    def test_only_yaml_under_included_paths(self, tmp_path):
        for relative in [
            "config/prow/cluster/deck.yaml",
            "config/prow/cluster/README.md",
            "config/prow-staging/deck.yaml",
            "config/jobs/job.yml",
            ".git/config/prow/x.yaml",
        ]:
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("image: gcr.io/k8s-prow/deck:v1\n")

        files = list(iter_config_files(tmp_path, ["config/prow/", "config/jobs/"]))

        assert files == ["config/jobs/job.yml", "config/prow/cluster/deck.yaml"]
