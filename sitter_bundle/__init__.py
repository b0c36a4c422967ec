from sitter_bundle.build import (
    BuildError,
    BuildReport,
    BundleBuilder,
    Capability,
    GrammarDescriptor,
    Toolchain,
    resolve_components,
)
from sitter_bundle.config import BundleConfig, CppRuntime
from sitter_bundle.logging import configure_logging, get_logger
from sitter_bundle.registry import LANGUAGES, mount_languages, run_self_tests

__all__ = [
    # Build API
    "BundleBuilder",
    "BundleConfig",
    "BuildReport",
    "BuildError",
    "CppRuntime",
    "Toolchain",
    # Grammar types
    "Capability",
    "GrammarDescriptor",
    "resolve_components",
    # Registry
    "LANGUAGES",
    "mount_languages",
    "run_self_tests",
    "configure_logging",
    "get_logger",
]
