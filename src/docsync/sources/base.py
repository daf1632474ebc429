"""Document sources: something that can be loaded into a ProcessedDocument."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from docsync.ingestion.segmenter import segment
from docsync.models import ContentEntry, ProcessedDocument

if TYPE_CHECKING:
    from docsync.sources.discovery import ContentHost


class DocumentSource(Protocol):
    type: str
    source: str
    path: str
    parent_path: str | None

    async def load(self) -> ProcessedDocument: ...


def to_page_path(content_path: str | None, root: str) -> str | None:
    """Map a content path to the stored page path.

    ``docs/01-app/intro.mdx`` under root ``docs`` becomes ``/01-app/intro``.
    Returns None for the root itself.
    """
    if content_path is None:
        return None
    root = root.strip("/")
    path = content_path.strip("/")
    if root and (path == root or path.startswith(root + "/")):
        path = path[len(root):]
    stem, suffix = posixpath.splitext(path)
    if suffix in (".md", ".mdx"):
        path = stem
    path = "/" + path.strip("/")
    return None if path == "/" else path


@dataclass(slots=True)
class GithubSource:
    """A document stored in a GitHub repository."""

    entry: ContentEntry
    host: "ContentHost"
    root: str
    type: str = "github"

    @property
    def source(self) -> str:
        return self.entry.source

    @property
    def path(self) -> str:
        return to_page_path(self.entry.path, self.root) or "/"

    @property
    def parent_path(self) -> str | None:
        return to_page_path(self.entry.parent_path, self.root)

    async def load(self) -> ProcessedDocument:
        raw = await self.host.fetch_raw(self.entry.path)
        return segment(raw)
