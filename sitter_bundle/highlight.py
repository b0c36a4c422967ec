"""Syntax highlighting on top of a grammar's highlight queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from tree_sitter import Language, Parser, Query, QueryCursor

HIGHLIGHT_NAMES: List[str] = [
    "attribute",
    "constant",
    "function.builtin",
    "function",
    "keyword",
    "operator",
    "property",
    "punctuation",
    "punctuation.bracket",
    "punctuation.delimiter",
    "string",
    "string.special",
    "tag",
    "type",
    "type.builtin",
    "comment",
    "variable",
    "variable.builtin",
    "variable.parameter",
]
"""Highlight names recognized by default."""

FILETYPES: Dict[str, str] = {
    "md": "markdown",
    "markdown": "markdown",
    "rs": "rust",
    "toml": "toml",
    "js": "javascript",
    "ts": "javascript",
    "html": "html",
    "vue": "html",
    "tera": "html",
    "css": "css",
    "c": "c",
    "cc": "c",
    "cpp": "cpp",
    "sh": "bash",
    "bash": "bash",
    "zsh": "bash",
    "lua": "lua",
    "py": "python",
    "yml": "yaml",
    "go": "go",
    "haskell": "haskell",
    "d": "d",
    "java": "java",
    "vim": "vim",
}
"""File extension to language name."""


def filetype_for(filename: str) -> Optional[str]:
    """Guess the language of ``filename`` from its extension."""
    extension = filename.rsplit(".", 1)[-1]
    return FILETYPES.get(extension)


def _compile(language: Language, source: str) -> Optional[Query]:
    return Query(language, source) if source.strip() else None


def best_highlight_match(capture_name: str, recognized_names: Sequence[str]) -> Optional[int]:
    """Index of the recognized name that best matches ``capture_name``.

    A recognized name matches when each of its dot-separated parts appears in the capture
    name. Among matches, the one with the most parts wins; earlier names win ties.
    """
    capture_parts = capture_name.split(".")
    best_index: Optional[int] = None
    best_len = 0
    for index, recognized in enumerate(recognized_names):
        parts = recognized.split(".")
        if all(part in capture_parts for part in parts) and len(parts) > best_len:
            best_index = index
            best_len = len(parts)
    return best_index


class HighlightConfiguration:
    """A language together with its compiled highlight, injection and locals queries.

    Empty query text is allowed and means the grammar ships no such query. Invalid query text
    raises :class:`tree_sitter.QueryError` from the constructor.
    """

    def __init__(
        self,
        language: Language,
        highlights_query: str,
        injection_query: str,
        locals_query: str,
    ) -> None:
        self.language = language
        self.highlights_query = _compile(language, highlights_query)
        self.injection_query = _compile(language, injection_query)
        self.locals_query = _compile(language, locals_query)

        query = self.highlights_query
        self.capture_names: List[str] = (
            [query.capture_name(i) for i in range(query.capture_count)] if query else []
        )
        self._highlight_indices: Dict[str, Optional[int]] = {}

    def configure(self, recognized_names: Sequence[str]) -> None:
        """Map every highlight capture to one of ``recognized_names``."""
        self._highlight_indices = {
            name: best_highlight_match(name, recognized_names) for name in self.capture_names
        }

    def highlight_index(self, capture_name: str) -> Optional[int]:
        """The recognized-name index for a capture, or None if it is not highlighted."""
        return self._highlight_indices.get(capture_name)


@dataclass(frozen=True)
class Source:
    """A run of source bytes, highlighted by the enclosing ``HighlightStart`` events."""

    start: int
    end: int


@dataclass(frozen=True)
class HighlightStart:
    """Opens a highlight; ``highlight`` indexes the configured recognized names."""

    highlight: int


@dataclass(frozen=True)
class HighlightEnd:
    """Closes the innermost open highlight."""


HighlightEvent = Union[Source, HighlightStart, HighlightEnd]


class Highlighter:
    """Turn source text into a flat stream of highlight events."""

    def _spans(self, config: HighlightConfiguration, source: bytes) -> List[Tuple[int, int, int]]:
        query = config.highlights_query
        if query is None:
            return []
        tree = Parser(config.language).parse(source)
        found = []
        for pattern_index, captures in QueryCursor(query).matches(tree.root_node):
            for name, nodes in captures.items():
                index = config.highlight_index(name)
                if index is None:
                    continue
                for node in nodes:
                    if node.start_byte < node.end_byte:
                        found.append((node.start_byte, -node.end_byte, pattern_index, index))
        # Outer spans first; for identical ranges the earliest pattern wins.
        found.sort()
        spans = []
        seen = set()
        for start, neg_end, _, index in found:
            if (start, -neg_end) in seen:
                continue
            seen.add((start, -neg_end))
            spans.append((start, -neg_end, index))
        return spans

    def highlight(self, config: HighlightConfiguration, source: bytes) -> Iterator[HighlightEvent]:
        """Yield highlight events covering all of ``source``.

        Highlights nest properly: a span that would cross the end of an enclosing span is
        dropped.
        """
        pos = 0
        open_ends: List[int] = []
        for start, end, index in self._spans(config, source):
            while open_ends and open_ends[-1] <= start:
                close = open_ends.pop()
                if pos < close:
                    yield Source(pos, close)
                    pos = close
                yield HighlightEnd()
            if open_ends and end > open_ends[-1]:
                continue
            if pos < start:
                yield Source(pos, start)
                pos = start
            yield HighlightStart(index)
            open_ends.append(end)

        while open_ends:
            close = open_ends.pop()
            if pos < close:
                yield Source(pos, close)
                pos = close
            yield HighlightEnd()
        if pos < len(source):
            yield Source(pos, len(source))
