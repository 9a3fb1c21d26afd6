"""
CLI entry point for autobumper.

Commands:
    autobumper bump       - Bump image references and open a pull request
    autobumper validate   - Check options without running anything
    autobumper version    - Show version information
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from autobumper.config.options import Options, build_options, load_options, validate_options
from autobumper.errors import AutobumperError, ConfigurationError

app = typer.Typer(
    name="autobumper",
    help="Bump container image versions in a config tree and open a pull request",
    no_args_is_help=True,
)
console = Console()


def _collect_options(config: Path | None, overrides: dict[str, Any]) -> Options:
    """Merge the YAML config file (if any) with flags that were actually given."""
    given = {key: value for key, value in overrides.items() if value is not None}
    if config is not None:
        return load_options(config, given)
    return build_options(given)


def _print_configuration_error(exc: ConfigurationError) -> None:
    console.print(
        Panel(
            escape("\n".join(exc.problems)),
            title="[red]Invalid options[/red]",
            border_style="red",
        )
    )


@app.command()
def bump(
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML options file"),
    github_login: str | None = typer.Option(None, "--github-login", help="Fork owner login"),
    github_token: str | None = typer.Option(
        None, "--github-token", help="Path to the GitHub token file"
    ),
    github_org: str | None = typer.Option(None, "--github-org", help="Target repo org"),
    github_repo: str | None = typer.Option(None, "--github-repo", help="Target repo name"),
    git_name: str | None = typer.Option(None, "--git-name", help="Commit author name"),
    git_email: str | None = typer.Option(None, "--git-email", help="Commit author email"),
    remote_branch: str | None = typer.Option(None, "--remote-branch", help="Fork branch"),
    bump_prow_images: bool | None = typer.Option(
        None, "--bump-prow-images/--no-bump-prow-images", help="Bump prow images"
    ),
    bump_test_images: bool | None = typer.Option(
        None, "--bump-test-images/--no-bump-test-images", help="Bump test images"
    ),
    target_version: str | None = typer.Option(
        None,
        "--target-version",
        help="'latest', 'upstream', 'upstream-staging' or a literal tag",
    ),
    include_config_paths: list[str] | None = typer.Option(
        None, "--include-config-paths", help="Config path prefix that may change (repeatable)"
    ),
    skip_pull_request: bool | None = typer.Option(
        None, "--skip-pull-request/--create-pull-request", help="Do not commit or open a PR"
    ),
    log_output: bool | None = typer.Option(
        None, "--log-output/--terminal-output", help="Send subprocess output to the log"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Bump image references and open a pull request."""
    from autobumper.bumper import Bumper
    from autobumper.logging import setup_logging
    from autobumper.secrets import SecretAgent

    try:
        options = _collect_options(
            config,
            {
                "github_login": github_login,
                "github_token": github_token,
                "github_org": github_org,
                "github_repo": github_repo,
                "git_name": git_name,
                "git_email": git_email,
                "remote_branch": remote_branch,
                "bump_prow_images": bump_prow_images,
                "bump_test_images": bump_test_images,
                "target_version": target_version,
                "included_config_paths": include_config_paths or None,
                "skip_pull_request": skip_pull_request,
                "log_output": log_output,
            },
        )
        validate_options(options)
    except ConfigurationError as e:
        _print_configuration_error(e)
        sys.exit(1)

    agent = SecretAgent()
    setup_logging(agent, verbose=verbose)
    console.print(f"[bold blue]Autobumper[/bold blue] Bumping to {options.target_version}...")

    try:
        outcome = asyncio.run(Bumper(options, agent=agent).run())
    except ConfigurationError as e:
        _print_configuration_error(e)
        sys.exit(1)
    except AutobumperError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if outcome.pull_request_opened:
        console.print(f"[green]Pull request opened[/green] for {outcome.target_version}")
    elif outcome.changed:
        console.print(f"[green]Updated {len(outcome.files)} file(s)[/green] (no pull request)")
    else:
        console.print("[yellow]No changes.[/yellow]")


@app.command()
def validate(
    config: Path = typer.Argument(..., help="YAML options file"),
) -> None:
    """Check an options file without running anything."""
    try:
        options = load_options(config)
        validate_options(options)
    except ConfigurationError as e:
        _print_configuration_error(e)
        sys.exit(1)
    console.print(f"[green]Options OK[/green] ({len(options.included_config_paths)} path(s))")


@app.command()
def version() -> None:
    """Show version information."""
    from autobumper import __version__

    console.print(f"Autobumper v{__version__}")


if __name__ == "__main__":
    app()
