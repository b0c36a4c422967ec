"""Highlight a file with the generated bindings and print the annotated text.

Build the bundle with highlighting first, then run e.g.::

    sitter-bundle build --highlight --component rust --out-dir bindings
    python examples/highlighter.py bindings src/main.rs > main.html
"""

import argparse
import html
from pathlib import Path

from sitter_bundle.highlight import (
    HIGHLIGHT_NAMES,
    HighlightEnd,
    Highlighter,
    HighlightStart,
    Source,
    filetype_for,
)
from sitter_bundle.logging import configure_logging, get_logger
from sitter_bundle.registry import LANGUAGES, mount_languages

logger = get_logger("examples.highlighter")


def annotate(filename: str, text: str, out_dir: Path) -> str:
    filetype = filetype_for(filename)
    modules = mount_languages(out_dir, [entry.feature for entry in LANGUAGES])
    module = modules.get(filetype) if filetype else None
    if module is None or not hasattr(module, "highlight"):
        logger.warning("Unsupported file '%s', printing it unhighlighted", filename)
        return html.escape(text)

    logger.info("Highlighting %r as %s", filename, filetype)
    config = module.highlight()
    config.configure(HIGHLIGHT_NAMES)

    source = text.encode("utf-8")
    out = []
    for event in Highlighter().highlight(config, source):
        if isinstance(event, Source):
            out.append(html.escape(source[event.start : event.end].decode("utf-8")))
        elif isinstance(event, HighlightStart):
            css_class = HIGHLIGHT_NAMES[event.highlight].replace(".", " ")
            out.append(f'<span class="{css_class}">')
        elif isinstance(event, HighlightEnd):
            out.append("</span>")
    return "".join(out)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("out_dir", type=Path, help="Directory holding the generated bindings.")
    parser.add_argument("text_file", type=Path)
    args = parser.parse_args()
    configure_logging()
    text = args.text_file.read_text()
    print(f"<pre>\n{annotate(args.text_file.name, text, args.out_dir)}\n</pre>")


if __name__ == "__main__":
    main()
