"""Drive a complete bundle build."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from sitter_bundle.config import BundleConfig, CppRuntime
from sitter_bundle.native import bundle_library_path

from .codegen import BindingGenerator
from .compiler import CompileResult, NativeCompiler
from .descriptor import GrammarDescriptor, missing_components, resolve_components
from .errors import ComponentNotFoundError
from .linkage import LinkPlan, finalize_linkage
from .toolchain import Toolchain

logger = logging.getLogger(__name__)


class GrammarReport(BaseModel):
    """What was built for one grammar."""

    family: str
    """Grammar family directory name."""
    variant: str
    """Language name within the family."""
    version: str
    """Resolved version identifier."""
    capabilities: List[str]
    """Auxiliary artifacts embedded in the binding module, sorted."""
    module: Path
    """Path of the generated binding module."""
    change_triggers: List[Path]
    """Native sources whose modification requires a rebuild."""
    rebuilt: bool
    """Whether any unit was recompiled in this run."""


class BuildReport(BaseModel):
    """Outcome of a bundle build."""

    grammars: List[GrammarReport] = Field(default_factory=list)
    """One entry per grammar, in build order."""
    needs_cpp_runtime: bool = False
    """Whether any grammar needed the C++ runtime linked statically."""
    cpp_runtime: Optional[CppRuntime] = None
    """The static C++ runtime that was linked, if any."""
    library: Optional[Path] = None
    """The bundle library, or None when no grammar was built."""


class BundleBuilder:
    """Resolve, compile, generate and link every enabled grammar.

    Grammars are processed one at a time in sorted order. Compilation of each grammar reports
    whether it needs the C++ runtime; the flags are OR-reduced after the loop and, when set,
    the linkage finalizer runs exactly once before the bundle library is linked.

    Examples
    --------
    >>> config = BundleConfig(components={"rust": True}, out_dir=Path("bindings"))
    >>> report = BundleBuilder(config).run()
    >>> report.library
    PosixPath('bindings/_sitter_bundle.so')
    """

    def __init__(self, config: BundleConfig, toolchain: Optional[Toolchain] = None) -> None:
        self.config = config
        self.toolchain = toolchain if toolchain is not None else Toolchain()
        self.compiler = NativeCompiler(
            self.toolchain,
            config.build_dir,
            static_cpp_runtime=config.links_cpp_statically(self.toolchain.platform),
        )
        self.generator = BindingGenerator(highlight=config.highlight)

    def resolve(self) -> List[GrammarDescriptor]:
        """Resolve the enabled components into descriptors.

        Raises
        ------
        ComponentNotFoundError
            In strict mode, if an enabled component has no vendored sources.
        """
        names = self.config.enabled_components()
        descriptors = resolve_components(
            names, self.config.grammars_dir, project_root=self.config.project_root
        )
        missing = missing_components(names, descriptors)
        if missing:
            if self.config.strict:
                raise ComponentNotFoundError(missing)
            logger.info("Skipping components without sources: %s", ", ".join(missing))
        return descriptors

    def _report(self, result: CompileResult, module: Path) -> GrammarReport:
        descriptor = result.descriptor
        return GrammarReport(
            family=descriptor.family,
            variant=descriptor.variant,
            version=descriptor.version,
            capabilities=sorted(c.value for c in descriptor.capabilities),
            module=module,
            change_triggers=result.change_triggers,
            rebuilt=any(unit.rebuilt for unit in result.units),
        )

    def run(self) -> BuildReport:
        """Build the bundle.

        Returns
        -------
        BuildReport
            What was built.

        Raises
        ------
        BuildError
            On any fatal condition: a missing ``parser.c``, an unresolvable version, or a
            toolchain failure. Nothing is retried.
        """
        report = BuildReport()
        plan = LinkPlan()

        for descriptor in self.resolve():
            logger.info("Building grammar '%s' (%s)", descriptor.variant, descriptor.family)
            result = self.compiler.compile(descriptor, plan)
            report.needs_cpp_runtime = report.needs_cpp_runtime or result.needs_cpp_runtime
            module = self.generator.write(descriptor, self.config.out_dir)
            report.grammars.append(self._report(result, module))

        if report.needs_cpp_runtime:
            report.cpp_runtime = finalize_linkage(self.toolchain, plan, self.config.cpp_runtimes)

        if plan.archives:
            library = bundle_library_path(self.config.out_dir)
            logger.info("Linking %d archives into %s", len(plan.archives), library)
            report.library = plan.link(self.toolchain, library)
        else:
            logger.warning("No grammar was built; nothing to link")
        return report
