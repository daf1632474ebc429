"""Documentation sync pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from docsync.index.reconciler import Reconciler
from docsync.sources.base import GithubSource
from docsync.sources.discovery import ContentHost, DiscoveryPolicy, discover

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncStats:
    discovered: int = 0
    inserted: int = 0
    updated: int = 0
    relinked: int = 0
    skipped: int = 0
    failed: int = 0
    pruned: int = 0
    processed_paths: list[str] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)

    def increment(self, status: str, path: str) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "relinked":
            self.relinked += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
            self.failed_paths.append(path)
        self.processed_paths.append(path)


class SyncPipeline:
    """Discovers documents and reconciles them one at a time."""

    def __init__(
        self,
        host: ContentHost,
        reconciler: Reconciler,
        *,
        policy: DiscoveryPolicy | None = None,
        source_label: str = "guide",
        prune: bool = False,
    ) -> None:
        self.host = host
        self.reconciler = reconciler
        self.policy = policy or DiscoveryPolicy()
        self.source_label = source_label
        self.prune = prune

    @property
    def store(self):
        return self.reconciler.store

    async def run(self, root: str) -> SyncStats:
        """Sync every document under ``root``.

        Discovery failures propagate; a failure on a single document is
        logged and counted, and the remaining documents are still processed.
        """
        entries = await discover(self.host, root, self.policy, source=self.source_label)
        sources: List[GithubSource] = [GithubSource(entry, self.host, root) for entry in entries]
        stats = SyncStats(discovered=len(sources))
        LOGGER.info("Discovered %d pages", len(sources))

        if self.reconciler.refresh:
            LOGGER.info("Refresh flag set, deleting existing data...")
            self.store.clear()
        else:
            LOGGER.info("Checking which pages are new or have changed")

        for source in sources:
            try:
                processed = await source.load()
                status = self.reconciler.reconcile(source, processed)
                LOGGER.debug("[%s] %s", source.path, status)
                stats.increment(status, source.path)
            except Exception as e:
                LOGGER.error("Failed to sync %s: %s", source.path, e)
                stats.increment("failed", source.path)

        if self.prune:
            stats.pruned = self.store.remove_missing_pages({source.path for source in sources})
            LOGGER.info("Removed %d pages no longer in the content tree", stats.pruned)

        LOGGER.info("Embedding generation complete")
        return stats
