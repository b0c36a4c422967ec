import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from sitter_bundle.build.errors import ToolchainError
from sitter_bundle.build.toolchain import Toolchain

PARSER_C = """\
typedef struct TSLanguage TSLanguage;
static const int language_data = 0;
const TSLanguage *tree_sitter_{symbol}(void) {{ return (const TSLanguage *)&language_data; }}
"""


def _toolchain_available() -> bool:
    """Check if a C compiler and an archiver are on PATH.

    Returns
    -------
    bool
        True if ``cc`` and ``ar`` can be found, False otherwise.
    """
    return shutil.which("cc") is not None and shutil.which("ar") is not None


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Skip tests that invoke the real toolchain when it is not installed."""
    if _toolchain_available():
        return

    skip_toolchain = pytest.mark.skip(reason="No C toolchain on PATH, skip test")
    for item in items:
        if any(item.iter_markers(name="requires_toolchain")):
            item.add_marker(skip_toolchain)


@pytest.fixture
def tmp_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point SITTER_BUNDLE_CACHE_PATH at an isolated temporary directory."""
    cache = tmp_path / "cache"
    monkeypatch.setenv("SITTER_BUNDLE_CACHE_PATH", str(cache))
    return cache


class GrammarTree:
    """Builds a fake ``grammars/`` directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add(
        self,
        family: str,
        variant: Optional[str] = None,
        *,
        nested: bool = False,
        parser: bool = True,
        scanner_c: bool = False,
        scanner_cc: bool = False,
        version: Optional[str] = "0.1.0",
        artifacts: Optional[Dict[str, str]] = None,
    ) -> Path:
        """Create a grammar and return its ``src`` directory.

        ``artifacts`` maps paths relative to the family directory (e.g. ``queries/highlights.scm``)
        to their contents.
        """
        family_dir = self.root / family
        if variant is not None:
            src = family_dir / variant / "src"
        elif nested:
            src = family_dir / family / "src"
        else:
            src = family_dir / "src"
        src.mkdir(parents=True, exist_ok=True)

        symbol = (variant or family).replace("-", "_")
        if parser:
            (src / "parser.c").write_text(PARSER_C.format(symbol=symbol))
        if scanner_c:
            (src / "scanner.c").write_text("int scanner_c_marker(void) { return 1; }\n")
        if scanner_cc:
            (src / "scanner.cc").write_text(
                '#include <string>\nextern "C" int scanner_cc_marker() '
                '{ return (int)std::string("x").size(); }\n'
            )
        if version is not None:
            (family_dir / "treesitter-language-version").write_text(f"{version}\n")
        for rel, content in (artifacts or {}).items():
            path = family_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content.encode("utf-8"))
        return src


@pytest.fixture
def grammars(tmp_path: Path) -> GrammarTree:
    return GrammarTree(tmp_path / "grammars")


class FakeToolchain(Toolchain):
    """A toolchain that records invocations and writes placeholder outputs."""

    def __init__(
        self,
        platform: str = "linux",
        file_names: Optional[Dict[str, str]] = None,
        fail_on: Optional[str] = None,
    ) -> None:
        super().__init__(cc=["cc"], cxx=["c++"], ar=["ar"], platform=platform)
        self.file_names = file_names or {}
        self.fail_on = fail_on
        self.calls: List[Tuple[str, ...]] = []

    def run(self, argv: Sequence[str]) -> str:
        self.calls.append(tuple(argv))
        if self.fail_on is not None and any(self.fail_on in arg for arg in argv):
            raise ToolchainError(f"{self.fail_on}: error: expected ';'\n", argv, 1)
        if "--print-file-name" in argv:
            name = argv[-1]
            return self.file_names.get(name, name) + "\n"
        if "-o" in argv:
            Path(argv[argv.index("-o") + 1]).write_bytes(b"")
        elif argv[0] == "ar":
            Path(argv[2]).write_bytes(b"!<arch>\n")
        return ""

    def calls_of(self, tool: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] == tool]

    @property
    def compiled_sources(self) -> List[str]:
        return [call[call.index("-c") + 1] for call in self.calls if "-c" in call]


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def toolchain_factory():
    """Return the FakeToolchain class for tests that need a specific platform or failure."""
    return FakeToolchain
