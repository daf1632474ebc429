"""Discovery of eligible documents in a remote content tree."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from docsync.models import ContentEntry
from docsync.sources.github import RemoteItem
from docsync.utils.files import is_document_name

LOGGER = logging.getLogger(__name__)


class ContentHost(Protocol):
    async def list_directory(self, path: str) -> Sequence[RemoteItem]: ...

    async def fetch_raw(self, path: str) -> str: ...


@dataclass(frozen=True, slots=True)
class DiscoveryPolicy:
    """Which listing entries are walked, skipped, or turned into documents."""

    ignored_directories: tuple[str, ...] = ()
    ignored_files: tuple[str, ...] = ()
    extensions: tuple[str, ...] = (".md", ".mdx")

    def classify(self, item: RemoteItem) -> str:
        if item.kind == "directory":
            if item.name in self.ignored_directories:
                return "ignored-directory"
            return "directory"
        if item.kind == "file":
            if item.name in self.ignored_files:
                return "ignored-file"
            if is_document_name(item.name, self.extensions):
                return "document"
        return "other"


async def _walk(
    host: ContentHost, directory: str, policy: DiscoveryPolicy, source: str
) -> List[ContentEntry]:
    items = await host.list_directory(directory)

    entries: List[ContentEntry] = []
    subdirectories: List[str] = []
    for item in items:
        path = posixpath.join(directory, item.name)
        kind = policy.classify(item)
        if kind == "directory":
            subdirectories.append(path)
        elif kind == "document":
            entries.append(ContentEntry(path=path, parent_path=directory, source=source))
        elif kind.startswith("ignored"):
            LOGGER.debug("Skipping %s (%s)", path, kind)

    tasks = [
        asyncio.create_task(_walk(host, path, policy, source)) for path in subdirectories
    ]
    try:
        branches = await asyncio.gather(*tasks)
    except BaseException:
        # Sibling listings are cancelled and awaited before the failure
        # propagates.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    for branch in branches:
        entries.extend(branch)
    return entries


async def discover(
    host: ContentHost,
    root: str,
    policy: DiscoveryPolicy | None = None,
    *,
    source: str = "guide",
) -> List[ContentEntry]:
    """Recursively list ``root`` and return its documents sorted by path.

    Sibling directories are listed concurrently. Any listing failure
    propagates, so a partial manifest is never returned.
    """
    entries = await _walk(host, root.strip("/"), policy or DiscoveryPolicy(), source)
    return sorted(entries, key=lambda entry: entry.path)
