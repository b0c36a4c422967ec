"""Link directives collected during a build and the static C++ runtime finalizer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from sitter_bundle.config import CppRuntime

from .toolchain import Toolchain

logger = logging.getLogger(__name__)


@dataclass
class LinkPlan:
    """Directives for the final bundle link.

    The compiler driver appends archives as it builds them, the linkage finalizer appends the
    static runtime, and the orchestrator hands the plan to :meth:`link`.
    """

    archives: List[Path] = field(default_factory=list)
    """Static archives to link, in build order."""
    library_dirs: List[Path] = field(default_factory=list)
    """Extra library search paths."""
    static_libraries: List[str] = field(default_factory=list)
    """Libraries linked statically by name (the C++ runtime)."""
    dynamic_libraries: List[str] = field(default_factory=list)
    """Libraries linked dynamically by name."""
    has_cpp: bool = False
    """Whether any archive holds C++ code."""

    def add_archive(self, archive: Path) -> None:
        self.archives.append(archive)

    def add_library_dir(self, path: Path) -> None:
        if path not in self.library_dirs:
            self.library_dirs.append(path)

    def add_static_library(self, name: str) -> None:
        if name not in self.static_libraries:
            self.static_libraries.append(name)

    def add_dynamic_library(self, name: str) -> None:
        if name not in self.dynamic_libraries:
            self.dynamic_libraries.append(name)

    def link(self, toolchain: Toolchain, output: Path) -> Path:
        """Link every archive into the shared library at ``output``.

        When C++ code is present but no static runtime was registered, the C++ driver performs
        the link so that the platform's default runtime linkage applies.
        """
        cpp_driver = self.has_cpp and not self.static_libraries
        return toolchain.link_shared(
            output,
            self.archives,
            library_dirs=self.library_dirs,
            static_libraries=self.static_libraries,
            dynamic_libraries=self.dynamic_libraries,
            cpp_driver=cpp_driver,
        )


def finalize_linkage(
    toolchain: Toolchain, plan: LinkPlan, runtimes: Sequence[CppRuntime]
) -> Optional[CppRuntime]:
    """Register a static C++ runtime archive with the link plan.

    Candidates are tried in order. The first one the toolchain resolves to an absolute path
    has its directory added to the search path and is linked statically by name; the rest are
    ignored.

    Parameters
    ----------
    toolchain : Toolchain
        The active toolchain, queried with ``--print-file-name``.
    plan : LinkPlan
        The plan to update.
    runtimes : Sequence[CppRuntime]
        Candidate runtimes in preference order.

    Returns
    -------
    Optional[CppRuntime]
        The runtime that was registered, or None if the toolchain located none of them. That
        case is not an error: the link falls back to the platform's default runtime linkage.

    Raises
    ------
    ToolchainError
        If the compiler itself fails to run.
    """
    for runtime in runtimes:
        located = Path(toolchain.print_file_name(runtime.archive))
        if not located.is_absolute():
            logger.debug("Toolchain did not locate %s", runtime.archive)
            continue
        plan.add_library_dir(located.parent)
        plan.add_static_library(runtime.name)
        logger.info("Linking C++ runtime '%s' statically from %s", runtime.name, located)
        return runtime

    logger.warning(
        "No static C++ runtime found among %s; using the toolchain's default linkage",
        ", ".join(r.archive for r in runtimes),
    )
    return None
