"""Compile grammar sources into static archives."""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from sitter_bundle.config import static_cpp_supported

from .descriptor import GrammarDescriptor
from .errors import BuildError
from .linkage import LinkPlan
from .toolchain import Toolchain

logger = logging.getLogger(__name__)


class UnitKind(str, Enum):
    """The translation units a grammar can provide."""

    PARSER = "parser"
    """``parser.c``, required."""
    SCANNER_C = "scanner_c"
    """``scanner.c``, an optional external scanner written in C."""
    SCANNER_CC = "scanner_cc"
    """``scanner.cc``, an optional external scanner written in C++."""

    @property
    def source_name(self) -> str:
        return _SOURCE_NAMES[self]

    @property
    def cpp(self) -> bool:
        return self is UnitKind.SCANNER_CC


_SOURCE_NAMES = {
    UnitKind.PARSER: "parser.c",
    UnitKind.SCANNER_C: "scanner.c",
    UnitKind.SCANNER_CC: "scanner.cc",
}


@dataclass
class CompiledUnit:
    """A static archive built from one grammar source file."""

    kind: UnitKind
    source: Path
    archive: Path
    rebuilt: bool
    """False when the archive was reused because its source did not change."""

    @property
    def cpp(self) -> bool:
        return self.kind.cpp


@dataclass
class CompileResult:
    """Everything compiled for one descriptor."""

    descriptor: GrammarDescriptor
    units: List[CompiledUnit] = field(default_factory=list)
    needs_cpp_runtime: bool = False
    """Whether a C++ unit relies on the C++ runtime being linked statically into the bundle."""

    @property
    def change_triggers(self) -> List[Path]:
        """Sources whose modification requires this grammar to be rebuilt."""
        return [unit.source for unit in self.units]


def _digest(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


class NativeCompiler:
    """Compile each grammar's parser and scanners into per-unit static archives.

    Archives live under ``build_dir / <variant>`` as ``lib<variant>-<unit>.a``. A stamp file
    next to each archive records the digest of the source it was built from and the compile
    command line, so a unit is only recompiled when its source or its command changes.
    """

    _STAMP_SUFFIX = ".stamp.json"

    def __init__(
        self,
        toolchain: Toolchain,
        build_dir: Path,
        *,
        static_cpp_runtime: Optional[bool] = None,
    ) -> None:
        """Initialize the compiler.

        Parameters
        ----------
        toolchain : Toolchain
            The toolchain to invoke.
        build_dir : Path
            Root directory for objects, archives and stamps.
        static_cpp_runtime : Optional[bool]
            Whether C++ scanners rely on a statically linked runtime. None means every platform
            except macOS, where static linkage of the C++ runtime does not work.
        """
        self._toolchain = toolchain
        self._build_dir = build_dir
        if static_cpp_runtime is None:
            static_cpp_runtime = static_cpp_supported(toolchain.platform)
        self._static_cpp_runtime = static_cpp_runtime

    def _archive_path(self, descriptor: GrammarDescriptor, kind: UnitKind) -> Path:
        return self._build_dir / descriptor.variant / f"lib{descriptor.variant}-{kind.value}.a"

    def _stamp_path(self, archive: Path) -> Path:
        return archive.with_name(archive.name + self._STAMP_SUFFIX)

    def _is_up_to_date(self, archive: Path, record: Dict[str, object]) -> bool:
        """Whether ``archive`` was built by the same command from a source with the same digest."""
        stamp = self._stamp_path(archive)
        if not archive.is_file() or not stamp.is_file():
            return False
        try:
            recorded = json.loads(stamp.read_text())
        except (OSError, ValueError):
            return False
        return recorded == record

    def _compile_unit(self, descriptor: GrammarDescriptor, kind: UnitKind) -> CompiledUnit:
        source = descriptor.source_dir / kind.source_name
        archive = self._archive_path(descriptor, kind)
        obj = archive.with_name(f"{descriptor.variant}-{kind.value}.o")
        include_dirs = [descriptor.source_dir]
        record: Dict[str, object] = {
            "source": str(source),
            "sha256": _digest(source),
            "argv": self._toolchain.compile_argv(
                source, obj, cpp=kind.cpp, include_dirs=include_dirs
            ),
        }

        if self._is_up_to_date(archive, record):
            logger.debug("%s is up to date", archive)
            return CompiledUnit(kind=kind, source=source, archive=archive, rebuilt=False)

        stamp = self._stamp_path(archive)
        if stamp.exists():
            stamp.unlink()

        logger.info("Compiling %s", source)
        self._toolchain.compile_object(source, obj, cpp=kind.cpp, include_dirs=include_dirs)
        self._toolchain.create_static_library([obj], archive)
        # Written last so an interrupted build never looks up to date.
        stamp.write_text(json.dumps(record))
        return CompiledUnit(kind=kind, source=source, archive=archive, rebuilt=True)

    def compile(self, descriptor: GrammarDescriptor, plan: LinkPlan) -> CompileResult:
        """Compile a grammar and register its archives with ``plan``.

        ``parser.c`` is required; ``scanner.c`` and ``scanner.cc`` are compiled when present.

        Parameters
        ----------
        descriptor : GrammarDescriptor
            The grammar to compile.
        plan : LinkPlan
            Link directives for the final bundle link.

        Returns
        -------
        CompileResult
            The compiled units and whether the grammar needs the C++ runtime linked statically.

        Raises
        ------
        BuildError
            If ``parser.c`` is missing.
        ToolchainError
            If the compiler or archiver fails.
        """
        parser_source = descriptor.source_dir / UnitKind.PARSER.source_name
        if not parser_source.is_file():
            raise BuildError(f"Missing required parser source: {parser_source}")

        result = CompileResult(descriptor=descriptor)
        for kind in UnitKind:
            if not (descriptor.source_dir / kind.source_name).is_file():
                continue
            unit = self._compile_unit(descriptor, kind)
            result.units.append(unit)
            plan.add_archive(unit.archive)

            if unit.cpp:
                plan.has_cpp = True
                if self._static_cpp_runtime:
                    result.needs_cpp_runtime = True
                else:
                    plan.add_dynamic_library(dynamic_cpp_runtime(self._toolchain.platform))

        return result


def dynamic_cpp_runtime(platform: Optional[str] = None) -> str:
    """Name of the C++ runtime a platform links dynamically by default."""
    platform = sys.platform if platform is None else platform
    return "c++" if platform == "darwin" else "stdc++"
