"""Load tree-sitter languages from the compiled bundle library."""

from __future__ import annotations

import ctypes
import sysconfig
from functools import lru_cache
from pathlib import Path
from typing import Union

from tree_sitter import Language

BUNDLE_LIBRARY_STEM = "_sitter_bundle"

_CAPSULE_NAME = b"tree_sitter.Language"

_PyCapsule_New = ctypes.pythonapi.PyCapsule_New
_PyCapsule_New.restype = ctypes.py_object
_PyCapsule_New.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)


class LanguageLoadError(RuntimeError):
    """Raised when the bundle library or a grammar entry point cannot be loaded."""


def bundle_library_name() -> str:
    """File name of the bundle library on this platform."""
    suffix = sysconfig.get_config_var("SHLIB_SUFFIX") or ".so"
    return BUNDLE_LIBRARY_STEM + suffix


def bundle_library_path(directory: Union[str, Path]) -> Path:
    """Path of the bundle library inside ``directory``."""
    return Path(directory) / bundle_library_name()


@lru_cache(maxsize=None)
def _open_library(path: str) -> ctypes.CDLL:
    try:
        return ctypes.CDLL(path)
    except OSError as e:
        raise LanguageLoadError(f"Cannot load grammar bundle '{path}': {e}") from e


def load_language(library: Union[str, Path], symbol: str) -> Language:
    """Call a grammar's ``tree_sitter_<name>`` entry point and wrap the result.

    Parameters
    ----------
    library : Union[str, Path]
        The bundle library holding the compiled grammar.
    symbol : str
        The exported entry point, e.g. ``"tree_sitter_rust"``.

    Returns
    -------
    Language
        The tree-sitter language.

    Raises
    ------
    LanguageLoadError
        If the library cannot be opened or does not export ``symbol``.
    """
    lib = _open_library(str(library))
    try:
        entry = getattr(lib, symbol)
    except AttributeError as e:
        raise LanguageLoadError(f"Symbol '{symbol}' not found in '{library}'") from e
    entry.restype = ctypes.c_void_p
    entry.argtypes = ()
    ptr = entry()
    if not ptr:
        raise LanguageLoadError(f"'{symbol}' returned a null language")
    return Language(_PyCapsule_New(ptr, _CAPSULE_NAME, None))
