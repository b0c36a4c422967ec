"""Environment lookups for sitter-bundle."""

from __future__ import annotations

import os
from pathlib import Path

CACHE_PATH_ENV = "SITTER_BUNDLE_CACHE_PATH"
"""Overrides the cache root where build artifacts are stored."""

FEATURE_ENV_PREFIX = "SITTER_BUNDLE_FEATURE_"
"""Prefix of the variables that enable a component, e.g. ``SITTER_BUNDLE_FEATURE_RUST=1``."""


def get_cache_path() -> Path:
    """Get the cache root, ``~/.cache/sitter_bundle`` unless overridden by the environment."""
    base = os.environ.get(CACHE_PATH_ENV)
    return Path(base) if base else Path.home() / ".cache" / "sitter_bundle"


def get_build_path() -> Path:
    """Get the default directory for compiled objects and static archives."""
    return get_cache_path() / "build"
