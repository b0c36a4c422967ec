"""Thin wrapper around the system C/C++ toolchain."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import sysconfig
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .errors import ToolchainError

logger = logging.getLogger(__name__)

COMMON_FLAGS: List[str] = ["-fPIC", "-O2", "-w"]
"""Flags passed to every compile. ``-w`` silences warnings from vendored grammar sources."""


def _command(env_var: str, config_var: str, fallback: str) -> List[str]:
    value = os.environ.get(env_var) or sysconfig.get_config_var(config_var) or fallback
    return shlex.split(value)


class Toolchain:
    """The C compiler, C++ compiler and archiver used to build grammars.

    Each command may contain arguments (e.g. ``"ccache gcc"``). Unset commands are taken from the
    ``CC``/``CXX``/``AR`` environment variables, then from the interpreter's build configuration,
    then default to ``cc``, ``c++`` and ``ar``.
    """

    def __init__(
        self,
        cc: Optional[Sequence[str]] = None,
        cxx: Optional[Sequence[str]] = None,
        ar: Optional[Sequence[str]] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.cc: List[str] = list(cc) if cc else _command("CC", "CC", "cc")
        self.cxx: List[str] = list(cxx) if cxx else _command("CXX", "CXX", "c++")
        self.ar: List[str] = list(ar) if ar else _command("AR", "AR", "ar")
        self.platform = sys.platform if platform is None else platform

    def run(self, argv: Sequence[str]) -> str:
        """Run a tool and return its standard output.

        Raises
        ------
        ToolchainError
            If the tool cannot be started or exits non-zero. The message is the tool's stderr
            (or stdout when stderr is empty) exactly as printed.
        """
        logger.debug("Running %s", shlex.join(argv))
        try:
            proc = subprocess.run(list(argv), capture_output=True, text=True)
        except OSError as e:
            raise ToolchainError(str(e), argv) from e
        if proc.returncode != 0:
            raise ToolchainError(proc.stderr or proc.stdout, argv, proc.returncode)
        return proc.stdout

    def compile_argv(
        self,
        source: Path,
        output: Path,
        *,
        cpp: bool = False,
        include_dirs: Iterable[Path] = (),
        flags: Iterable[str] = (),
    ) -> List[str]:
        """The command line that compiles ``source`` into the object file ``output``."""
        argv = list(self.cxx if cpp else self.cc)
        argv += COMMON_FLAGS
        argv += list(flags)
        argv += [f"-I{d}" for d in include_dirs]
        argv += ["-c", str(source), "-o", str(output)]
        return argv

    def compile_object(
        self,
        source: Path,
        output: Path,
        *,
        cpp: bool = False,
        include_dirs: Iterable[Path] = (),
        flags: Iterable[str] = (),
    ) -> Path:
        """Compile one translation unit into an object file."""
        output.parent.mkdir(parents=True, exist_ok=True)
        self.run(
            self.compile_argv(source, output, cpp=cpp, include_dirs=include_dirs, flags=flags)
        )
        return output

    def create_static_library(self, objects: Sequence[Path], output: Path) -> Path:
        """Archive object files into ``output``, replacing any previous archive."""
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.exists():
            output.unlink()
        self.run([*self.ar, "rcs", str(output), *map(str, objects)])
        return output

    def print_file_name(self, file_name: str) -> str:
        """Ask the C++ compiler where it would find ``file_name``.

        GCC and Clang answer with an absolute path when they locate the file and with the bare
        name otherwise.
        """
        return self.run([*self.cxx, "--print-file-name", file_name]).strip()

    def link_shared(
        self,
        output: Path,
        archives: Sequence[Path],
        *,
        library_dirs: Sequence[Path] = (),
        static_libraries: Sequence[str] = (),
        dynamic_libraries: Sequence[str] = (),
        cpp_driver: bool = False,
    ) -> Path:
        """Link static archives into one shared library, keeping every archived symbol."""
        output.parent.mkdir(parents=True, exist_ok=True)
        argv = list(self.cxx if cpp_driver else self.cc)
        argv += ["-shared", "-o", str(output)]
        if self.platform == "darwin":
            argv += ["-undefined", "dynamic_lookup"]
            for archive in archives:
                argv.append(f"-Wl,-force_load,{archive}")
        else:
            argv.append("-Wl,--whole-archive")
            argv += [str(a) for a in archives]
            argv.append("-Wl,--no-whole-archive")
        argv += [f"-L{d}" for d in library_dirs]
        if static_libraries:
            argv.append("-Wl,-Bstatic")
            argv += [f"-l{name}" for name in static_libraries]
            argv.append("-Wl,-Bdynamic")
        argv += [f"-l{name}" for name in dynamic_libraries]
        self.run(argv)
        return output
