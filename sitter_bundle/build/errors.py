"""Exceptions raised while assembling a grammar bundle."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence


class BuildError(RuntimeError):
    """Raised when the bundle cannot be built. Every fatal build condition derives from it."""


class ToolchainError(BuildError):
    """Raised when a compiler, archiver or linker invocation fails.

    The message is the tool's own diagnostic output, unmodified, so the operator reads exactly
    what the native toolchain reported.
    """

    def __init__(self, message: str, argv: Sequence[str], returncode: Optional[int] = None):
        super().__init__(message)
        self.argv: List[str] = list(argv)
        """The command line that failed."""
        self.returncode = returncode
        """The exit status, or None when the tool could not be started."""


class VersionError(BuildError):
    """Raised when no version identifier can be resolved for a grammar."""


class ComponentNotFoundError(BuildError):
    """Raised in strict mode when requested components have no vendored sources."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        super().__init__(f"No grammar sources found for: {', '.join(self.names)}")
