"""
Options for an autobumper run.

Options come from an optional YAML file and are overridden by CLI flags.
All cross-field rules are checked by :func:`validate_options`, which reports
every violation at once before anything is executed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from autobumper.errors import ConfigurationError

# Target version sentinels
LATEST_VERSION = "latest"
UPSTREAM_VERSION = "upstream"
UPSTREAM_STAGING_VERSION = "upstream-staging"

DEFAULT_UPSTREAM_URL_BASE = "https://raw.githubusercontent.com/kubernetes/test-infra/master"
DEFAULT_ONCALL_ADDRESS = "https://storage.googleapis.com/kubernetes-jenkins/oncall.json"
DEFAULT_IMAGE_BUMPER_COMMAND: list[str] = ["bazel", "run", "//experiment/image-bumper", "--"]


class Options(BaseModel):
    """Configuration for one bump run."""

    model_config = ConfigDict(extra="forbid")

    github_login: str = Field(default="", description="GitHub login that owns the fork")
    github_token: str = Field(default="", description="Path to the GitHub token file")
    github_org: str = Field(default="", description="GitHub org of the target repo")
    github_repo: str = Field(default="", description="GitHub repo name")
    git_name: str = Field(default="", description="Name used for the commit author")
    git_email: str = Field(default="", description="Email used for the commit author")
    remote_branch: str = Field(default="", description="Fork branch to push to")
    base_branch: str = Field(default="master", description="Branch the PR targets")
    bump_prow_images: bool = Field(default=True, description="Bump gcr.io/k8s-prow images")
    bump_test_images: bool = Field(
        default=True, description="Bump gcr.io/k8s-testimages images"
    )
    target_version: str = Field(
        default=LATEST_VERSION,
        description=(
            "'latest', 'upstream', 'upstream-staging' or a literal tag. "
            "The upstream sentinels only apply to prow images."
        ),
    )
    included_config_paths: list[str] = Field(
        default_factory=list,
        description="Path prefixes, relative to the repo root, that may be modified",
    )
    skip_pull_request: bool = Field(
        default=False, description="Stop after updating files; do not commit or open a PR"
    )
    oncall_address: str = Field(
        default=DEFAULT_ONCALL_ADDRESS, description="URL of the on-call JSON document"
    )
    upstream_url_base: str = Field(
        default=DEFAULT_UPSTREAM_URL_BASE,
        description="Raw content base URL used to resolve upstream versions",
    )
    image_bumper_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IMAGE_BUMPER_COMMAND),
        min_length=1,
        description="Command that rewrites image references in the given files",
    )
    log_output: bool = Field(
        default=False,
        description="Send subprocess output to the log instead of the terminal",
    )
    timeout: float = Field(
        default=600.0, gt=0, description="Timeout per subprocess call in seconds"
    )


def validate_options(options: Options) -> None:
    """Check cross-field rules.

    Raises:
        ConfigurationError: Listing every violated rule.
    """
    problems: list[str] = []

    if not options.skip_pull_request:
        if not options.github_token:
            problems.append("--github-token is mandatory when --skip-pull-request is false")
        if not options.remote_branch:
            problems.append("--remote-branch cannot be empty when --skip-pull-request is false")
        if not options.github_org:
            problems.append("--github-org cannot be empty when --skip-pull-request is false")
        if not options.github_repo:
            problems.append("--github-repo cannot be empty when --skip-pull-request is false")

    if not options.bump_prow_images and not options.bump_test_images:
        problems.append(
            "at least one of --bump-prow-images and --bump-test-images must be specified"
        )

    if (
        options.bump_prow_images
        and options.bump_test_images
        and options.target_version != LATEST_VERSION
    ):
        problems.append(
            "--target-version must be latest if you want to bump both prow and test images"
        )

    if options.bump_test_images and options.target_version in (
        UPSTREAM_VERSION,
        UPSTREAM_STAGING_VERSION,
    ):
        problems.append(
            f"{UPSTREAM_VERSION!r} and {UPSTREAM_STAGING_VERSION!r} versions "
            "can only be specified to bump prow images"
        )

    if not options.included_config_paths:
        problems.append("--include-config-paths is mandatory")

    if problems:
        raise ConfigurationError(problems)


def load_options(path: str | Path, overrides: dict[str, Any] | None = None) -> Options:
    """Build options from a YAML file, with *overrides* taking precedence.

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid fields.
    """
    try:
        data = yaml.safe_load(Path(path).read_text()) or {}
    except (yaml.YAMLError, OSError) as exc:
        raise ConfigurationError(f"failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    data = {key.replace("-", "_"): value for key, value in data.items()}
    data.update(overrides or {})
    return build_options(data)


def build_options(data: dict[str, Any]) -> Options:
    """Create :class:`Options`, turning pydantic errors into ConfigurationError."""
    try:
        return Options(**data)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        raise ConfigurationError(problems) from exc
