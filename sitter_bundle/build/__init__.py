"""Build subsystem: turn vendored grammar sources into a bundle of Python bindings.

The typical workflow is:
1. Describe the build: config = BundleConfig(components={"rust": True})
2. Build it: report = BundleBuilder(config).run()
3. Import the generated modules with sitter_bundle.registry.mount_languages
"""

from .codegen import BindingGenerator
from .compiler import CompiledUnit, CompileResult, NativeCompiler, UnitKind
from .descriptor import Capability, GrammarDescriptor, resolve_component, resolve_components
from .errors import BuildError, ComponentNotFoundError, ToolchainError, VersionError
from .linkage import LinkPlan, finalize_linkage
from .orchestrator import BuildReport, BundleBuilder, GrammarReport
from .toolchain import Toolchain
from .version import resolve_version

__all__ = [
    "BindingGenerator",
    "BuildError",
    "BuildReport",
    "BundleBuilder",
    "Capability",
    "CompileResult",
    "CompiledUnit",
    "ComponentNotFoundError",
    "GrammarDescriptor",
    "GrammarReport",
    "LinkPlan",
    "NativeCompiler",
    "Toolchain",
    "ToolchainError",
    "UnitKind",
    "VersionError",
    "finalize_linkage",
    "resolve_component",
    "resolve_components",
    "resolve_version",
]
