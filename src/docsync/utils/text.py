"""Text helpers shared by the segmenter and the embedding step."""

from __future__ import annotations

import re
from typing import Dict

_TITLE_TAG_RE = re.compile(r"(title:\s*)<([^>]+)>")
_SLUG_STRIP_RE = re.compile(r"[^\w\- ]")


def normalize_mdx_quirks(text: str) -> str:
    """Unwrap ``title: <Name>`` so the angle brackets are not parsed as JSX."""
    if not text:
        return text
    return _TITLE_TAG_RE.sub(r"\1\2", text)


def slugify(value: str) -> str:
    """GitHub-style anchor slug: lowercase, punctuation dropped, spaces to dashes."""
    return _SLUG_STRIP_RE.sub("", value.lower()).replace(" ", "-")


class Slugger:
    """Generates slugs that are unique within one document.

    Repeated headings get a numeric suffix (``usage``, ``usage-1``, ...).
    Create a new instance per document.
    """

    def __init__(self) -> None:
        self._occurrences: Dict[str, int] = {}

    def slug(self, value: str) -> str:
        result = slugify(value)
        original = result
        while result in self._occurrences:
            self._occurrences[original] += 1
            result = f"{original}-{self._occurrences[original]}"
        self._occurrences[result] = 0
        return result


def embedding_input(content: str) -> str:
    """Flatten newlines to spaces before sending text to the embedder."""
    return content.replace("\n", " ")
