"""MDX segmentation for search indexing.

Turns the raw text of one MDX document into a ``ProcessedDocument``:
a checksum of the (normalised) text, the literal ``meta`` export, and the
body split into heading-delimited sections with JSX, ESM and expressions
removed.

Section content is cut from the source lines rather than re-rendered, so
joining the sections back together gives the stripped body unchanged apart
from blank lines at the boundaries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

import esprima
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from docsync.ingestion.metadata import extract_meta_export, parse_esm
from docsync.models import ProcessedDocument, Section
from docsync.utils.files import compute_checksum
from docsync.utils.text import Slugger, normalize_mdx_quirks

LOGGER = logging.getLogger(__name__)

_ESM_RE = re.compile(r"^(import|export)\b")
_CODE_SPAN_RE = re.compile(r"(?<!`)(`+)(?!`).*?(?<!`)\1(?!`)", re.DOTALL)
# Component tags and fragments; lowercase tags are left to markdown-it.
_JSX_TAG_RE = re.compile(r"</?(?:[A-Z][\w.]*|>)")

_PARSER = MarkdownIt("commonmark").enable(["table", "strikethrough"])

Span = Tuple[int, int]


class SegmentationError(ValueError):
    """Raised when an MDX document cannot be parsed."""


@dataclass(slots=True)
class _Block:
    """A top-level node of the parsed document and its source line span."""

    node: SyntaxTreeNode
    start: int
    end: int

    @property
    def is_heading(self) -> bool:
        return self.node.type == "heading"


@dataclass(slots=True)
class _ParsedMdx:
    lines: List[str | None]
    blocks: List[_Block] = field(default_factory=list)
    esm: List[Any] = field(default_factory=list)
    removed: set[int] = field(default_factory=set)


def _source(lines: Sequence[str | None], start: int, end: int) -> str:
    return "\n".join(line for line in lines[start:end] if line is not None)


def _flatten_text(node: SyntaxTreeNode) -> str:
    """Concatenate the visible text of an inline subtree."""
    if node.type in ("text", "code_inline", "image"):
        return node.content
    if node.type in ("softbreak", "hardbreak"):
        return " "
    if node.type == "html_inline":
        return ""
    return "".join(_flatten_text(child) for child in node.children)


def _string_end(text: str, start: int) -> int:
    """Index after the string literal opening at ``start``.

    A quote that is not closed on its line is treated as a plain character.
    """
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n" and quote != "`":
            break
        index += 1
    return start + 1


def _expression_end(text: str, start: int) -> int | None:
    """Index after the ``}`` balancing the ``{`` at ``start``, or None."""
    depth = 0
    index = start
    while index < len(text):
        char = text[index]
        if char in "'\"`":
            index = _string_end(text, index)
            continue
        if text.startswith("/*", index):
            close = text.find("*/", index + 2)
            if close < 0:
                return None
            index = close + 2
            continue
        if text.startswith("//", index):
            newline = text.find("\n", index)
            index = len(text) if newline < 0 else newline
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    return None


def _jsx_tag_end(text: str, start: int) -> int | None:
    """Index after the JSX tag opening at ``start``, attribute braces included."""
    index = start + 1
    while index < len(text):
        char = text[index]
        if char in "'\"":
            index = _string_end(text, index)
            continue
        if char == "{":
            end = _expression_end(text, index)
            if end is None:
                return None
            index = end
            continue
        if char == ">":
            return index + 1
        if char == "<":
            return None
        index += 1
    return None


def _covering(spans: Sequence[Span], index: int) -> Span | None:
    for span in spans:
        if span[0] <= index < span[1]:
            return span
    return None


def _find_outside(text: str, needle: str, position: int, spans: Sequence[Span]) -> int:
    index = text.find(needle, position)
    while index >= 0 and _covering(spans, index):
        index = text.find(needle, index + 1)
    return index


def _mdx_cuts(text: str, tags: Sequence[str]) -> List[Span]:
    """Spans of JSX tags and ``{...}`` expressions in an inline source.

    ``tags`` are the html_inline tokens markdown-it found, in order. Code
    spans are never cut.
    """
    code = [match.span() for match in _CODE_SPAN_RE.finditer(text)]
    cuts: List[Span] = []
    position = 0
    for tag in tags:
        index = _find_outside(text, tag, position, code)
        if index < 0:
            continue
        cuts.append((index, index + len(tag)))
        position = index + len(tag)

    index = 0
    while index < len(text):
        skip = _covering(code, index) or _covering(cuts, index)
        if skip:
            index = skip[1]
            continue
        char = text[index]
        if char == "{" and (index == 0 or text[index - 1] != "\\"):
            end = _expression_end(text, index)
            if end is None:
                raise SegmentationError(f"Unterminated expression: {text[index:index + 40]!r}")
            cuts.append((index, end))
            index = end
            continue
        if char == "<" and _JSX_TAG_RE.match(text, index):
            end = _jsx_tag_end(text, index)
            if end is not None:
                cuts.append((index, end))
                index = end
                continue
        index += 1
    return sorted(cuts)


def _apply_cuts(text: str, cuts: Sequence[Span]) -> str:
    pieces: List[str] = []
    position = 0
    for start, end in cuts:
        if start < position:
            start = position
        if end <= start:
            continue
        pieces.append(text[position:start])
        if start == 0 or text[start - 1] == "\n":
            while end < len(text) and text[end] in " \t":
                end += 1
        position = end
    pieces.append(text[position:])
    return "".join(pieces)


def _strip_inline_mdx(parsed: _ParsedMdx, root: SyntaxTreeNode) -> None:
    """Remove inline JSX tags and expressions from the source lines of prose."""
    for node in root.walk():
        if node.type != "inline" or node.map is None:
            continue
        start, end = node.map
        if start in parsed.removed:
            continue
        text = _source(parsed.lines, start, end)
        tags = [child.content for child in node.walk() if child.type == "html_inline"]
        cuts = _mdx_cuts(text, tags)
        if not cuts:
            continue
        parsed.lines[start] = _apply_cuts(text, cuts).strip("\n")
        for line in range(start + 1, end):
            parsed.lines[line] = None


def _classify(node: SyntaxTreeNode, raw: str) -> str:
    """Tell prose apart from the MDX-only block kinds."""
    if node.type == "html_block":
        return "jsx"
    if node.type == "paragraph" and _ESM_RE.match(raw):
        return "esm"
    return "prose"


def _spanning_expression(root: SyntaxTreeNode, lines: Sequence[str]) -> Span | None:
    """Line span of a ``{...}`` block that markdown-it split into several nodes.

    Raises ``SegmentationError`` when the braces never balance.
    """
    for node in root.children:
        if node.type != "paragraph" or node.map is None:
            continue
        start, end = node.map
        if not lines[start].lstrip().startswith("{"):
            continue
        rest = "\n".join(lines[start:])
        close = _expression_end(rest, rest.index("{"))
        if close is None:
            raise SegmentationError(f"Unterminated expression on line {start + 1}")
        close_line = start + rest.count("\n", 0, close)
        if close_line < end:
            continue
        line_end = rest.find("\n", close)
        if rest[close:line_end if line_end >= 0 else len(rest)].strip():
            raise SegmentationError(f"Unexpected text after expression on line {close_line + 1}")
        return start, close_line + 1
    return None


def _parse(text: str) -> _ParsedMdx:
    lines = text.split("\n")
    removed: set[int] = set()
    while True:
        root = SyntaxTreeNode(_PARSER.parse("\n".join(lines)))
        span = _spanning_expression(root, lines)
        if span is None:
            break
        for number in range(*span):
            lines[number] = ""
        removed.update(range(*span))

    parsed = _ParsedMdx(lines=list(lines), removed=removed)
    for node in root.walk():
        if node.type == "html_block" and node.map is not None:
            parsed.removed.update(range(*node.map))

    for node in root.children:
        if node.map is None:
            continue
        start, end = node.map
        kind = _classify(node, _source(parsed.lines, start, end))
        if kind == "prose":
            parsed.blocks.append(_Block(node, start, end))
            continue
        if kind == "esm":
            try:
                parsed.esm.append(parse_esm(_source(parsed.lines, start, end)))
            except esprima.Error as exc:
                raise SegmentationError(f"Invalid ESM on line {start + 1}: {exc}") from exc
        parsed.removed.update(range(start, end))

    _strip_inline_mdx(parsed, root)

    blocks: List[_Block] = []
    for block in parsed.blocks:
        if _section_source(parsed, block.start, block.end).strip():
            blocks.append(block)
        else:
            parsed.removed.update(range(block.start, block.end))
    parsed.blocks = blocks
    return parsed


def _split_by_heading(blocks: Sequence[_Block]) -> List[List[_Block]]:
    groups: List[List[_Block]] = []
    for block in blocks:
        if not groups or block.is_heading:
            groups.append([block])
        else:
            groups[-1].append(block)
    return groups


def _section_source(parsed: _ParsedMdx, start: int, end: int) -> str:
    """Source text of lines ``start:end`` without the removed MDX nodes.

    Blank lines that only separated a removed node are dropped with it.
    """
    kept: List[str] = []
    after_removed = False
    for number in range(start, end):
        line = parsed.lines[number]
        if line is None:
            continue
        if number in parsed.removed:
            after_removed = True
            continue
        blank = not line.strip()
        if after_removed and blank and kept and not kept[-1].strip():
            continue
        if not blank:
            after_removed = False
        kept.append(line)
    return "\n".join(kept).strip("\n")


def _heading_text(parsed: _ParsedMdx, block: _Block) -> str | None:
    """Flattened text of a heading block after MDX stripping."""
    tree = SyntaxTreeNode(_PARSER.parse(_section_source(parsed, block.start, block.end)))
    for child in tree.children:
        if child.type == "heading":
            return _flatten_text(child).strip() or None
    return None


def segment(raw_text: str) -> ProcessedDocument:
    """Process MDX content for search indexing.

    Extracts the ``meta`` export, strips all JSX, ESM and expressions, and
    splits what is left into sections at every heading. Raises
    ``SegmentationError`` when the document cannot be parsed.
    """
    text = normalize_mdx_quirks(raw_text)
    checksum = compute_checksum(text)
    parsed = _parse(text)
    metadata = extract_meta_export(parsed.esm)

    groups = _split_by_heading(parsed.blocks)
    slugger = Slugger()
    sections: List[Section] = []
    for index, group in enumerate(groups):
        start = group[0].start
        end = groups[index + 1][0].start if index + 1 < len(groups) else len(parsed.lines)
        first = group[0]
        heading = _heading_text(parsed, first) if first.is_heading else None
        sections.append(
            Section(
                content=_section_source(parsed, start, end),
                heading=heading,
                slug=slugger.slug(heading) if heading else None,
            )
        )

    LOGGER.debug("Segmented document into %d sections", len(sections))
    return ProcessedDocument(checksum=checksum, metadata=metadata, sections=sections)
