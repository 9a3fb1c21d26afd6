"""Tests for CLI commands."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from autobumper.bumper.bumper import BumpOutcome
from autobumper.cli.main import app
from autobumper.errors import ExecutionError

runner = CliRunner()

VALID_FLAGS = [
    "--skip-pull-request",
    "--include-config-paths",
    "config/prow/",
]


class TestCLIHelp:
    """Tests for CLI help commands."""

    def test_help(self):
        """Test --help displays correctly."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Bump container image versions" in result.stdout

    def test_bump_help(self):
        """Test bump --help lists the options."""
        result = runner.invoke(app, ["bump", "--help"])
        assert result.exit_code == 0
        assert "--target-version" in result.stdout


class TestCLIVersion:
    """Tests for version command."""

    def test_version(self):
        """Test version command output."""
        from autobumper import __version__

        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Autobumper" in result.stdout
        assert __version__ in result.stdout


class TestCLIValidate:
    """Tests for validate command."""

    def test_valid_file(self, tmp_path):
        config = tmp_path / "bump.yaml"
        config.write_text("skip_pull_request: true\nincluded_config_paths: [config/prow/]\n")
        result = runner.invoke(app, ["validate", str(config)])
        assert result.exit_code == 0
        assert "Options OK" in result.stdout

    def test_invalid_file(self, tmp_path):
        """Every problem is listed."""
        config = tmp_path / "bump.yaml"
        config.write_text("bump_prow_images: false\nbump_test_images: false\n")
        result = runner.invoke(app, ["validate", str(config)])
        assert result.exit_code == 1
        assert "Invalid options" in result.stdout
        assert "include-config-paths" in result.stdout


class TestCLIBump:
    """Tests for bump command."""

    def test_invalid_flags_fail_before_running(self):
        """Validation errors exit 1 without constructing a Bumper."""
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            result = runner.invoke(app, ["bump", "--skip-pull-request"])
        assert result.exit_code == 1
        assert "Invalid options" in result.stdout
        mock_bumper_class.assert_not_called()

    def test_bump_success(self):
        """A successful run reports the outcome."""
        outcome = BumpOutcome(target_version="latest", files=["a.yaml"], changed=True)
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            mock_bumper = MagicMock()
            mock_bumper.run = AsyncMock(return_value=outcome)
            mock_bumper_class.return_value = mock_bumper

            result = runner.invoke(app, ["bump", *VALID_FLAGS])

        assert result.exit_code == 0
        assert "Updated 1 file(s)" in result.stdout
        options = mock_bumper_class.call_args.args[0]
        assert options.included_config_paths == ["config/prow/"]
        assert options.skip_pull_request is True

    def test_bump_execution_error(self):
        """Execution failures exit 1 with the error message."""
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            mock_bumper = MagicMock()
            mock_bumper.run = AsyncMock(side_effect=ExecutionError("command `git push` failed"))
            mock_bumper_class.return_value = mock_bumper

            result = runner.invoke(app, ["bump", *VALID_FLAGS])

        assert result.exit_code == 1
        assert "git push" in result.stdout

    def test_flags_override_config_file(self, tmp_path):
        """CLI flags win over the YAML file."""
        config = tmp_path / "bump.yaml"
        config.write_text(
            "skip_pull_request: true\n"
            "bump_test_images: false\n"
            "target_version: v1\n"
            "included_config_paths: [config/prow/]\n"
        )
        outcome = BumpOutcome(target_version="v2")
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            mock_bumper = MagicMock()
            mock_bumper.run = AsyncMock(return_value=outcome)
            mock_bumper_class.return_value = mock_bumper

            result = runner.invoke(
                app, ["bump", "--config", str(config), "--target-version", "v2"]
            )

        assert result.exit_code == 0
        assert "No changes" in result.stdout
        options = mock_bumper_class.call_args.args[0]
        assert options.target_version == "v2"
        assert options.bump_test_images is False

    def test_error_text_is_not_markup(self):
        """Brackets in a failing command are printed literally."""
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            mock_bumper = MagicMock()
            mock_bumper.run = AsyncMock(
                side_effect=ExecutionError("command `printf [/] [bold]x` failed")
            )
            mock_bumper_class.return_value = mock_bumper

            result = runner.invoke(app, ["bump", *VALID_FLAGS])

        assert result.exit_code == 1
        assert "printf [/] [bold]x" in result.stdout

    def test_log_output_flag(self):
        outcome = BumpOutcome(target_version="latest")
        with patch("autobumper.bumper.Bumper") as mock_bumper_class:
            mock_bumper = MagicMock()
            mock_bumper.run = AsyncMock(return_value=outcome)
            mock_bumper_class.return_value = mock_bumper

            result = runner.invoke(app, ["bump", *VALID_FLAGS, "--log-output"])

        assert result.exit_code == 0
        assert mock_bumper_class.call_args.args[0].log_output is True
