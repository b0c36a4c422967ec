"""Typed configuration for a bundle build."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitter_bundle.env import FEATURE_ENV_PREFIX, get_build_path

HIGHLIGHT_FEATURE = "ts-highlight"
"""Feature name that toggles highlighting support when configuration comes from the environment."""


def normalize_component_name(name: str) -> str:
    """Normalize a component name to its lowercase, hyphen-separated form."""
    return name.strip().replace("_", "-").lower()


class CppRuntime(BaseModel):
    """A C++ standard runtime that can be linked statically into the bundle."""

    name: str
    """Library name passed to the linker (e.g. 'stdc++')."""
    archive: str
    """Static archive file name the toolchain is asked about (e.g. 'libstdc++.a')."""


DEFAULT_CPP_RUNTIMES: List[CppRuntime] = [
    CppRuntime(name="stdc++", archive="libstdc++.a"),
    CppRuntime(name="c++", archive="libc++.a"),
]
"""GNU runtime first, then LLVM. The first one the toolchain locates wins."""


def static_cpp_supported(platform: Optional[str] = None) -> bool:
    """Whether the C++ runtime can be statically linked on ``platform`` (default: this one)."""
    platform = sys.platform if platform is None else platform
    return platform != "darwin"


class BundleConfig(BaseModel):
    """Configuration of one bundle build.

    The set of enabled components and the highlighting flag are explicit inputs rather than
    ambient process state. Use :meth:`from_env` to derive them from environment variables.
    """

    model_config = ConfigDict(use_attribute_docstrings=True)

    grammars_dir: Path = Path("grammars")
    """Directory holding one sub-directory per grammar family."""
    out_dir: Path = Path("bindings")
    """Directory receiving the generated binding modules and the bundle library."""
    build_dir: Path = Field(default_factory=get_build_path)
    """Directory for object files, static archives and change-tracking stamps."""
    project_root: Path = Field(default_factory=Path.cwd)
    """Checkout root that git is queried from when a grammar has no version file."""
    components: Dict[str, bool] = Field(default_factory=dict)
    """Mapping from component name to whether it is enabled."""
    highlight: bool = False
    """Whether generated modules get a ``highlight()`` constructor."""
    strict: bool = False
    """Fail when an enabled component has no vendored sources instead of skipping it."""
    static_cpp_runtime: Optional[bool] = None
    """Force static C++ runtime linkage on or off. None uses the platform default."""
    cpp_runtimes: List[CppRuntime] = Field(default_factory=lambda: list(DEFAULT_CPP_RUNTIMES))
    """Runtime archives searched by the linkage finalizer, in preference order."""

    @field_validator("components")
    @classmethod
    def _normalize_components(cls, value: Dict[str, bool]) -> Dict[str, bool]:
        normalized: Dict[str, bool] = {}
        for name, enabled in value.items():
            key = normalize_component_name(name)
            normalized[key] = normalized.get(key, False) or bool(enabled)
        return normalized

    def enabled_components(self) -> List[str]:
        """Return the enabled component names in a stable (sorted) order."""
        return sorted(name for name, enabled in self.components.items() if enabled)

    def links_cpp_statically(self, platform: Optional[str] = None) -> bool:
        """Whether C++ scanners should rely on a statically linked runtime on ``platform``."""
        if self.static_cpp_runtime is not None:
            return self.static_cpp_runtime
        return static_cpp_supported(platform)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: object
    ) -> "BundleConfig":
        """Build a configuration from ``SITTER_BUNDLE_FEATURE_*`` variables.

        Every such variable enables the component named by its suffix, with underscores turned
        into hyphens and lowercased (``SITTER_BUNDLE_FEATURE_TYPESCRIPT_TSX`` enables
        ``typescript-tsx``). ``SITTER_BUNDLE_FEATURE_TS_HIGHLIGHT`` turns on highlighting.

        Parameters
        ----------
        environ : Optional[Mapping[str, str]]
            The environment to read. Defaults to ``os.environ``.
        overrides : object
            Extra fields passed to the model (e.g. ``grammars_dir``).

        Returns
        -------
        BundleConfig
            The resulting configuration.
        """
        environ = os.environ if environ is None else environ
        components: Dict[str, bool] = {}
        highlight = False
        for key in environ:
            if not key.startswith(FEATURE_ENV_PREFIX):
                continue
            name = normalize_component_name(key[len(FEATURE_ENV_PREFIX) :])
            if not name:
                continue
            if name == HIGHLIGHT_FEATURE:
                highlight = True
                continue
            components[name] = True
        fields: Dict[str, object] = {"components": components, "highlight": highlight}
        fields.update(overrides)
        return cls(**fields)

    @classmethod
    def from_file(cls, path: Path) -> "BundleConfig":
        """Load a configuration from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())
