"""Bump workflow and its collaborators."""

from autobumper.bumper.bumper import BumpOutcome, Bumper, image_regex, make_commit_summary
from autobumper.bumper.http import get_assignment, parse_upstream_image_version
from autobumper.bumper.paths import cd_to_root_dir, is_under_path, iter_config_files

__all__ = [
    "BumpOutcome",
    "Bumper",
    "cd_to_root_dir",
    "get_assignment",
    "image_regex",
    "is_under_path",
    "iter_config_files",
    "make_commit_summary",
    "parse_upstream_image_version",
]
