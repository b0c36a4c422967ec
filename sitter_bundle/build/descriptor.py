"""Grammar descriptors and the resolver that turns component names into them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from sitter_bundle.config import normalize_component_name

from .version import resolve_version

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Auxiliary artifacts a grammar may ship next to its native sources."""

    GRAMMAR = "grammar"
    """``grammar.js``, the grammar definition."""
    NODE_TYPES = "node-types"
    """``src/node-types.json``, the node-type schema."""
    HIGHLIGHTS = "highlights"
    """``queries/highlights.scm``."""
    INJECTIONS = "injections"
    """``queries/injections.scm``."""
    LOCALS = "locals"
    """``queries/locals.scm``."""
    TAGS = "tags"
    """``queries/tags.scm``."""

    @property
    def relative_path(self) -> Path:
        """Location of the artifact relative to the grammar family directory."""
        return _ARTIFACT_PATHS[self]

    @property
    def constant(self) -> str:
        """Name of the generated constant that embeds the artifact."""
        return _ARTIFACT_CONSTANTS[self]


_ARTIFACT_PATHS: Dict[Capability, Path] = {
    Capability.GRAMMAR: Path("grammar.js"),
    Capability.NODE_TYPES: Path("src", "node-types.json"),
    Capability.HIGHLIGHTS: Path("queries", "highlights.scm"),
    Capability.INJECTIONS: Path("queries", "injections.scm"),
    Capability.LOCALS: Path("queries", "locals.scm"),
    Capability.TAGS: Path("queries", "tags.scm"),
}

_ARTIFACT_CONSTANTS: Dict[Capability, str] = {
    Capability.GRAMMAR: "GRAMMAR",
    Capability.NODE_TYPES: "NODE_TYPES",
    Capability.HIGHLIGHTS: "HIGHLIGHT_QUERY",
    Capability.INJECTIONS: "INJECTION_QUERY",
    Capability.LOCALS: "LOCALS_QUERY",
    Capability.TAGS: "TAGS_QUERY",
}


@dataclass(frozen=True)
class GrammarDescriptor:
    """One compilable grammar unit.

    Descriptors are immutable apart from two memoized values, ``version`` and
    ``capabilities``, each computed at most once per instance.
    """

    family: str
    """Top-level directory name under the grammars directory."""
    variant: str
    """Language name within the family. Equals ``family`` for unqualified components."""
    root_path: Path
    """The family directory."""
    source_dir: Path
    """The resolved ``src`` directory holding ``parser.c`` and optional scanners."""
    project_root: Path = field(default=Path("."), compare=False)
    """Directory git is run from when no version file exists."""

    @property
    def symbol(self) -> str:
        """The C entry point exported by the compiled parser."""
        return "tree_sitter_" + self.variant.replace("-", "_")

    @property
    def module_name(self) -> str:
        """Name of the generated binding module (without ``.py``)."""
        return "lang_" + self.variant.replace("-", "_")

    @cached_property
    def version(self) -> str:
        """The grammar's version file contents, or the git tree id of its family directory."""
        return resolve_version(self.root_path, self.project_root)

    @cached_property
    def capabilities(self) -> FrozenSet[Capability]:
        """The auxiliary artifacts present on disk."""
        return frozenset(cap for cap in Capability if (self.root_path / cap.relative_path).is_file())

    def artifact_path(self, capability: Capability) -> Optional[Path]:
        """Path of an auxiliary artifact, or None when the grammar does not ship it."""
        if capability not in self.capabilities:
            return None
        return self.root_path / capability.relative_path


def split_component_name(name: str) -> Tuple[str, Optional[str]]:
    """Split ``family-variant`` on its first hyphen. Unqualified names have no variant."""
    family, sep, variant = name.partition("-")
    if sep and family and variant:
        return family, variant
    return name, None


def resolve_component(
    name: str, grammars_dir: Path, project_root: Optional[Path] = None
) -> Optional[GrammarDescriptor]:
    """Resolve one component name into a descriptor.

    Parameters
    ----------
    name : str
        Component name. ``family-variant`` resolves to ``<family>/<variant>/src``; a bare name
        resolves to ``<name>/src`` and falls back to ``<name>/<name>/src``.
    grammars_dir : Path
        Directory holding one sub-directory per grammar family.
    project_root : Optional[Path]
        Directory git is run from. Defaults to the current directory.

    Returns
    -------
    Optional[GrammarDescriptor]
        The descriptor, or None when the resolved source directory does not exist.
    """
    name = normalize_component_name(name)
    family, variant = split_component_name(name)
    root = grammars_dir / family
    if variant is not None:
        source_dir = root / variant / "src"
    else:
        variant = name
        source_dir = root / "src"
        if not source_dir.is_dir():
            source_dir = root / name / "src"

    if not source_dir.is_dir():
        logger.debug("No sources for component '%s' at %s, skipping", name, source_dir)
        return None

    return GrammarDescriptor(
        family=family,
        variant=variant,
        root_path=root,
        source_dir=source_dir,
        project_root=project_root if project_root is not None else Path("."),
    )


def resolve_components(
    names: Iterable[str], grammars_dir: Path, project_root: Optional[Path] = None
) -> List[GrammarDescriptor]:
    """Resolve enabled component names into descriptors, sorted by normalized name.

    Names without vendored sources are dropped silently.
    """
    descriptors = []
    for name in sorted({normalize_component_name(n) for n in names}):
        descriptor = resolve_component(name, grammars_dir, project_root)
        if descriptor is not None:
            descriptors.append(descriptor)
    return descriptors


def missing_components(
    names: Iterable[str], descriptors: Iterable[GrammarDescriptor]
) -> List[str]:
    """Names among ``names`` that did not resolve to any descriptor."""
    found = set()
    for d in descriptors:
        found.add(d.family if d.variant == d.family else f"{d.family}-{d.variant}")
    return sorted({normalize_component_name(n) for n in names} - found)
