"""Markdown to HTML conversion and reference-link checking.

Conversion uses Python-Markdown with raw HTML disabled, so ``<`` and
``&`` written in prose come out escaped. Fenced code blocks are stashed by
the ``fenced_code`` extension before any other processing and are never
reinterpreted as Markdown.

Python-Markdown leaves an unresolved ``[text][label]`` in the output as
literal text. ``check_references`` runs first and turns that into an
error instead.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

import markdown
from markdown.extensions import Extension

from folio.errors import UnresolvedLinkReferenceError

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]

_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
_HEADING_RE = re.compile(r"^ {0,3}#{1,6}(?:\s|$)")
_CODE_SPAN_RE = re.compile(r"(`+)(.+?)(?<!`)\1(?!`)", re.DOTALL)
_ESCAPED_RE = re.compile(r"\\.")
_DEFINITION_RE = re.compile(
    r"^ {0,3}\[([^\[\]]+)\]:[ \t]*\n?[ \t]*(\S+)"
    r"(?:[ \t]*\n?[ \t]*(?:\"[^\"\n]*\"|'[^'\n]*'|\([^)\n]*\)))?[ \t]*$",
    re.MULTILINE,
)
_REFERENCE_RE = re.compile(r"!?\[((?:[^\[\]]|\[[^\[\]]*\])*)\]\s?\[([^\[\]]*)\]")


class EscapeHtmlExtension(Extension):
    """Treat raw HTML in Markdown source as text."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")


def to_html(text: str) -> str:
    """Convert a Markdown body to an HTML fragment."""
    md = markdown.Markdown(
        extensions=[*MARKDOWN_EXTENSIONS, EscapeHtmlExtension()],
        output_format="html",
    )
    return md.convert(text)


def normalize_label(label: str) -> str:
    return " ".join(label.split()).lower()


def _blank_out(match: re.Match[str]) -> str:
    """Replace a match with spaces, keeping its newlines and length."""
    return re.sub(r"[^\n]", " ", match.group(0))


def _mask(block: list[tuple[int, str]]) -> tuple[list[int], str]:
    numbers = [number for number, _ in block]
    joined = "\n".join(line for _, line in block)
    joined = _ESCAPED_RE.sub(_blank_out, joined)
    return numbers, _CODE_SPAN_RE.sub(_blank_out, joined)


def _prose_blocks(text: str) -> Iterator[tuple[list[int], str]]:
    """Yield ``(line_numbers, block)`` for each paragraph outside code.

    Lines of a block are joined with newlines, so a link that wraps onto
    the next line is seen whole. Inline code spans and backslash escapes
    are blanked out in place. A fence that is never closed does not open
    a code block, matching ``fenced_code``.
    """
    lines = text.splitlines()
    block: list[tuple[int, str]] = []
    fence: str | None = None
    previous_blank = True
    in_indented = False

    for number, line in enumerate(lines, start=1):
        if fence is not None:
            if line.rstrip() == fence:
                fence = None
            continue

        match = _FENCE_RE.match(line)
        if match and any(later.rstrip() == match.group(1) for later in lines[number:]):
            fence = match.group(1)
            previous_blank = in_indented = False
        elif not line.strip():
            previous_blank = True
        elif line.startswith(("    ", "\t")) and (previous_blank or in_indented):
            in_indented = True
            previous_blank = False
        else:
            previous_blank = in_indented = False
            heading = _HEADING_RE.match(line)
            if heading and block:
                yield _mask(block)
                block = []
            block.append((number, line))
            if heading:
                yield _mask(block)
                block = []
            continue

        if block:
            yield _mask(block)
            block = []

    if block:
        yield _mask(block)


def find_link_definitions(text: str) -> dict[str, str]:
    """Map normalized labels to their URLs for every ``[label]: url`` definition."""
    definitions: dict[str, str] = {}
    for _, block in _prose_blocks(text):
        for match in _DEFINITION_RE.finditer(block):
            definitions.setdefault(normalize_label(match.group(1)), match.group(2))
    return definitions


def _labels(match: re.Match[str]) -> Iterator[str]:
    link_text, label = match.group(1), match.group(2)
    yield label if label.strip() else link_text
    # [![alt][img]][link] nests one reference inside another
    for inner in _REFERENCE_RE.finditer(link_text):
        yield from _labels(inner)


def find_link_references(text: str) -> list[tuple[str, int]]:
    """List ``(label, line_number)`` for full and collapsed reference usages.

    The line number is where the usage starts.
    """
    found: list[tuple[str, int]] = []
    for numbers, block in _prose_blocks(text):
        prose = _DEFINITION_RE.sub(_blank_out, block)
        for match in _REFERENCE_RE.finditer(prose):
            line = numbers[prose.count("\n", 0, match.start())]
            found.extend((label, line) for label in _labels(match))
    return found


def check_references(text: str, path: Path | None = None) -> None:
    """Raise if any reference-style link lacks a ``[label]: url`` definition."""
    defined = find_link_definitions(text)
    missing = [
        (label, number)
        for label, number in find_link_references(text)
        if normalize_label(label) not in defined
    ]
    if missing:
        raise UnresolvedLinkReferenceError(missing, path)
