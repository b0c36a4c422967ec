"""Resolve the version identifier of a grammar."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List

from .errors import VersionError

logger = logging.getLogger(__name__)

VERSION_FILE_NAME = "treesitter-language-version"


def _git_rev_parse_argv(root_path: Path, project_root: Path) -> List[str]:
    try:
        relative = Path(os.path.relpath(root_path.resolve(), project_root.resolve()))
    except ValueError:
        # Different drives on Windows; let git resolve the absolute path.
        relative = root_path.resolve()
    return ["git", "rev-parse", f"HEAD:./{relative.as_posix()}"]


def resolve_version(root_path: Path, project_root: Path) -> str:
    """Resolve the version of the grammar family at ``root_path``.

    The ``treesitter-language-version`` file wins when present. Otherwise the id git records for
    the family directory in ``HEAD`` is used. The value is opaque and never parsed.

    Parameters
    ----------
    root_path : Path
        The grammar family directory.
    project_root : Path
        The directory git is run from.

    Returns
    -------
    str
        The trimmed version identifier.

    Raises
    ------
    VersionError
        If git cannot be run, exits with an error, or prints nothing.
    """
    version_file = root_path / VERSION_FILE_NAME
    if version_file.is_file():
        return version_file.read_text().strip()

    argv = _git_rev_parse_argv(root_path, project_root)
    logger.debug("Resolving version of %s with %s", root_path, " ".join(argv))
    try:
        proc = subprocess.run(argv, cwd=project_root, capture_output=True, text=True)
    except OSError as e:
        raise VersionError(str(e)) from e

    if proc.returncode != 0:
        raise VersionError(proc.stderr)
    version = proc.stdout.strip()
    if not version:
        raise VersionError(f"`{' '.join(argv)}` printed no version for {root_path}")
    return version
