"""Static table of the languages a bundle can provide, and loading of their modules."""

from __future__ import annotations

import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterable, List, NamedTuple, Optional

from sitter_bundle.config import normalize_component_name

logger = logging.getLogger(__name__)

NAMESPACE = "sitter_bundle.languages"
"""Package under which generated modules are registered in ``sys.modules``."""


class LanguageEntry(NamedTuple):
    """One supported language."""

    name: str
    """Attribute name the language is exposed under."""
    feature: str
    """Component name that enables it."""
    module_file: str
    """File name of its generated binding module."""


def _entry(name: str, feature: Optional[str] = None) -> LanguageEntry:
    return LanguageEntry(name, feature or name, f"lang_{name}.py")


LANGUAGES: List[LanguageEntry] = [
    _entry("bash"),
    _entry("c"),
    _entry("cpp"),
    _entry("css"),
    _entry("d"),
    _entry("go"),
    _entry("haskell"),
    _entry("html"),
    _entry("java"),
    _entry("javascript"),
    _entry("json"),
    _entry("lua"),
    _entry("markdown"),
    _entry("python"),
    _entry("rust"),
    _entry("toml"),
    _entry("tsx", "typescript-tsx"),
    _entry("typescript", "typescript-typescript"),
    _entry("vim"),
    _entry("yaml"),
    _entry("elixir"),
    _entry("erlang"),
    _entry("perl"),
    _entry("php"),
    _entry("ruby"),
    _entry("vbscript"),
]


def get_entry(name: str) -> Optional[LanguageEntry]:
    """Look up a language by name."""
    for entry in LANGUAGES:
        if entry.name == name:
            return entry
    return None


def _ensure_namespace() -> None:
    if NAMESPACE not in sys.modules:
        namespace = ModuleType(NAMESPACE)
        namespace.__path__ = []  # type: ignore[attr-defined]
        sys.modules[NAMESPACE] = namespace


def load_language_module(entry: LanguageEntry, out_dir: Path) -> ModuleType:
    """Import the generated module of ``entry`` from ``out_dir``.

    Raises
    ------
    FileNotFoundError
        If the module has not been generated.
    """
    path = Path(out_dir) / entry.module_file
    if not path.is_file():
        raise FileNotFoundError(f"No generated module for '{entry.name}' at {path}")

    _ensure_namespace()
    qualified = f"{NAMESPACE}.{entry.name}"
    spec = importlib.util.spec_from_file_location(qualified, path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[qualified] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[qualified]
        raise
    setattr(sys.modules[NAMESPACE], entry.name, module)
    return module


def mount_languages(out_dir: Path, enabled: Iterable[str]) -> Dict[str, ModuleType]:
    """Import the generated modules of every enabled language.

    Parameters
    ----------
    out_dir : Path
        Directory holding the generated modules.
    enabled : Iterable[str]
        Enabled component names.

    Returns
    -------
    Dict[str, ModuleType]
        Language name to module, in table order. Enabled languages whose module was not
        generated (their sources were not vendored) are left out.
    """
    features = {normalize_component_name(name) for name in enabled}
    mounted: Dict[str, ModuleType] = {}
    for entry in LANGUAGES:
        if entry.feature not in features:
            continue
        if not (Path(out_dir) / entry.module_file).is_file():
            logger.debug("Language '%s' is enabled but was not generated", entry.name)
            continue
        mounted[entry.name] = load_language_module(entry, out_dir)
    return mounted


def run_self_tests(module: ModuleType) -> List[str]:
    """Run every ``test_*`` function of a generated module and return their names.

    A failing test propagates its exception.
    """
    names = sorted(
        name for name, value in vars(module).items() if name.startswith("test_") and callable(value)
    )
    for name in names:
        logger.debug("Running %s.%s", module.__name__, name)
        getattr(module, name)()
    return names
