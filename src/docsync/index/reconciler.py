"""Reconciliation of processed documents against the page store."""

from __future__ import annotations

import logging

from docsync.embedding.encoder import EmbeddingModel
from docsync.index.storage import SQLitePageStore
from docsync.models import PageRecord, ProcessedDocument, SectionRecord
from docsync.sources.base import DocumentSource
from docsync.utils.text import embedding_input

LOGGER = logging.getLogger(__name__)


class Reconciler:
    """Decides whether a page is skipped, relinked, inserted or re-embedded.

    A page's checksum is only written once every one of its sections has
    been embedded and stored; a null checksum marks a page that has to be
    processed again.
    """

    def __init__(
        self,
        embedder: EmbeddingModel,
        store: SQLitePageStore,
        *,
        refresh: bool = False,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.refresh = refresh

    def _resolve_parent(self, parent_path: str | None) -> PageRecord | None:
        if not parent_path:
            return None
        return self.store.find_page_by_path(parent_path)

    def reconcile(self, source: DocumentSource, processed: ProcessedDocument) -> str:
        """Bring the stored page for ``source`` in line with ``processed``.

        Returns one of ``skipped``, ``relinked``, ``inserted`` or ``updated``.
        """
        path = source.path
        existing = self.store.find_page_by_path(path)

        if not self.refresh and existing and existing.checksum == processed.checksum:
            parent = self._resolve_parent(source.parent_path)
            parent_id = parent.id if parent else None
            if parent_id == existing.parent_page_id:
                return "skipped"
            LOGGER.info("[%s] Parent page has changed. Updating to '%s'...", path, source.parent_path)
            self.store.update_parent_page(existing.id, parent_id)
            return "relinked"

        if existing:
            if self.refresh:
                LOGGER.info("[%s] Refresh flag set, removing old page sections", path)
            else:
                LOGGER.info("[%s] Docs have changed, removing old page sections", path)
            self.store.delete_sections(existing.id)

        parent = self._resolve_parent(source.parent_path)
        page_id = self.store.upsert_page(
            path,
            type=source.type,
            source=source.source,
            metadata=processed.metadata,
            parent_page_id=parent.id if parent else None,
        )

        LOGGER.info("[%s] Adding %d page sections (with embeddings)", path, len(processed.sections))
        for section in processed.sections:
            text = embedding_input(section.content)
            try:
                result = self.embedder.embed_section(text)
            except Exception:
                LOGGER.error(
                    "Failed to generate embeddings for '%s' page section starting with '%s...'",
                    path,
                    text[:40],
                )
                raise
            section.embedding = result.vector
            self.store.insert_section(
                page_id,
                SectionRecord(
                    slug=section.slug,
                    heading=section.heading,
                    content=section.content,
                    token_count=result.token_count,
                    embedding=result.vector,
                ),
            )

        self.store.update_page_checksum(page_id, processed.checksum)
        return "updated" if existing else "inserted"
