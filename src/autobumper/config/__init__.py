"""Configuration module for autobumper."""

from autobumper.config.options import (
    LATEST_VERSION,
    UPSTREAM_STAGING_VERSION,
    UPSTREAM_VERSION,
    Options,
    build_options,
    load_options,
    validate_options,
)

__all__ = [
    "LATEST_VERSION",
    "UPSTREAM_STAGING_VERSION",
    "UPSTREAM_VERSION",
    "Options",
    "build_options",
    "load_options",
    "validate_options",
]
