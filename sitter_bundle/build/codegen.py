"""Generate the Python binding module of each grammar."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List

from .descriptor import Capability, GrammarDescriptor
from .errors import BuildError

logger = logging.getLogger(__name__)

_HEADER = '''\
# Generated by sitter-bundle. Do not edit.
"""Tree-sitter bindings for the {variant} grammar."""

from pathlib import Path

from tree_sitter import Language, Parser

from sitter_bundle.native import bundle_library_path, load_language
'''

_HIGHLIGHT_IMPORT = "from sitter_bundle.highlight import HighlightConfiguration\n"

_LANGUAGE = '''
_LIBRARY = bundle_library_path(Path(__file__).parent)


def language() -> Language:
    """Get the tree-sitter Language for this grammar."""
    return load_language(_LIBRARY, {symbol!r})


def version() -> str:
    """Get the commit hash or version of this grammar.

    Current version: `{version_doc}`.
    """
    return {version!r}
'''

_HIGHLIGHT = '''

def highlight() -> HighlightConfiguration:
    """Get the HighlightConfiguration for this grammar."""
    return HighlightConfiguration(
        language(),
        {highlights},
        {injections},
        {locals},
    )
'''

_TESTS = '''

def test_print_version():
    print(version())


def test_can_load_grammar():
    parser = Parser()
    try:
        parser.language = language()
    except ValueError as e:
        raise AssertionError({message!r}) from e
'''

_HIGHLIGHT_TEST = '''

def test_can_create_highlight():
    highlight()
'''


def _docstring_text(text: str) -> str:
    """Escape ``text`` for a triple-double-quoted docstring."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


class BindingGenerator:
    """Render and write ``lang_<variant>.py`` binding modules.

    The rendered text depends only on the descriptor, its version, which artifacts are present
    and the highlighting flag, so regenerating from unchanged inputs is byte-identical.
    """

    def __init__(self, highlight: bool = False) -> None:
        self.highlight = highlight

    def _query_argument(self, descriptor: GrammarDescriptor, capability: Capability) -> str:
        # HighlightConfiguration takes all three queries; absent ones become "".
        return capability.constant if capability in descriptor.capabilities else '""'

    def _constants(self, descriptor: GrammarDescriptor) -> List[str]:
        parts = []
        for capability in Capability:
            path = descriptor.artifact_path(capability)
            if path is None:
                continue
            try:
                text = path.read_bytes().decode("utf-8")
            except UnicodeDecodeError as e:
                raise BuildError(f"{path} is not valid UTF-8: {e}") from e
            parts.append(
                f"\n{capability.constant} = {text!r}\n"
                f'"""Contents of `{capability.relative_path.as_posix()}`."""\n'
            )
        return parts

    def generate(self, descriptor: GrammarDescriptor) -> str:
        """Render the binding module for ``descriptor``.

        Raises
        ------
        VersionError
            If the grammar's version cannot be resolved.
        BuildError
            If an embedded artifact is not valid UTF-8.
        """
        parts = [_HEADER.format(variant=_docstring_text(descriptor.variant))]
        if self.highlight:
            parts.append(_HIGHLIGHT_IMPORT)
        parts.append(
            _LANGUAGE.format(
                symbol=descriptor.symbol,
                version=descriptor.version,
                version_doc=_docstring_text(descriptor.version),
            )
        )
        parts.extend(self._constants(descriptor))
        if self.highlight:
            parts.append(
                _HIGHLIGHT.format(
                    highlights=self._query_argument(descriptor, Capability.HIGHLIGHTS),
                    injections=self._query_argument(descriptor, Capability.INJECTIONS),
                    locals=self._query_argument(descriptor, Capability.LOCALS),
                )
            )
        parts.append(_TESTS.format(message=f"Error loading {descriptor.variant} language"))
        if self.highlight:
            parts.append(_HIGHLIGHT_TEST)
        return "".join(parts)

    def write(self, descriptor: GrammarDescriptor, out_dir: Path) -> Path:
        """Write the binding module into ``out_dir`` and return its path.

        An unchanged module is left untouched. Otherwise the new text goes to a temporary file
        that replaces the module in one step, so an aborted build never leaves a truncated file.
        """
        text = self.generate(descriptor)
        out_dir.mkdir(parents=True, exist_ok=True)
        dest = out_dir / f"{descriptor.module_name}.py"
        data = text.encode("utf-8")

        if dest.is_file() and dest.read_bytes() == data:
            logger.debug("%s is up to date", dest)
            return dest

        fd, tmp = tempfile.mkstemp(dir=out_dir, prefix=f".{descriptor.module_name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, dest)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.info("Wrote %s", dest)
        return dest
