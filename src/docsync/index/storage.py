"""SQLite store for pages and their embedded sections."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Collection, Iterator, List

import numpy as np

from docsync.models import Meta, PageRecord, SectionRecord


class SQLitePageStore:
    """Persistence layer for pages and section embeddings.

    Every write commits on its own, so a page interrupted part way through
    keeps whatever sections were stored before the failure.
    """

    def __init__(self, db_path: Path, *, dimension: int | None = None) -> None:
        self.db_path = Path(db_path)
        self.dimension = dimension
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pages (
                    id INTEGER PRIMARY KEY,
                    path TEXT NOT NULL UNIQUE,
                    checksum TEXT,
                    type TEXT,
                    source TEXT,
                    meta TEXT,
                    parent_page_id INTEGER REFERENCES pages(id) ON DELETE SET NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS pages_updated
                AFTER UPDATE ON pages
                BEGIN
                    UPDATE pages SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS page_sections (
                    id INTEGER PRIMARY KEY,
                    page_id INTEGER NOT NULL,
                    slug TEXT,
                    heading TEXT,
                    content TEXT NOT NULL,
                    token_count INTEGER,
                    embedding BLOB NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_page_sections_page_id
                    ON page_sections(page_id)
                """
            )

    @staticmethod
    def _to_page(row: sqlite3.Row) -> PageRecord:
        return PageRecord(
            id=row["id"],
            path=row["path"],
            checksum=row["checksum"],
            type=row["type"],
            source=row["source"],
            metadata=json.loads(row["meta"]) if row["meta"] else None,
            parent_page_id=row["parent_page_id"],
            parent_path=row["parent_path"],
        )

    def find_page_by_path(self, path: str) -> PageRecord | None:
        row = self._conn.execute(
            """
            SELECT p.*, parent.path AS parent_path
            FROM pages p
            LEFT JOIN pages parent ON parent.id = p.parent_page_id
            WHERE p.path = ?
            """,
            (path,),
        ).fetchone()
        return self._to_page(row) if row else None

    def upsert_page(
        self,
        path: str,
        *,
        type: str | None,
        source: str | None,
        metadata: Meta | None,
        parent_page_id: int | None,
    ) -> int:
        """Insert or update the page at ``path`` with its checksum cleared.

        Returns the page id.
        """
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO pages(path, checksum, type, source, meta, parent_page_id)
                VALUES (?, NULL, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    checksum = NULL,
                    type = excluded.type,
                    source = excluded.source,
                    meta = excluded.meta,
                    parent_page_id = excluded.parent_page_id
                """,
                (
                    path,
                    type,
                    source,
                    json.dumps(metadata, ensure_ascii=True) if metadata is not None else None,
                    parent_page_id,
                ),
            )
            row = conn.execute("SELECT id FROM pages WHERE path = ?", (path,)).fetchone()
        return int(row["id"])

    def update_page_checksum(self, page_id: int, checksum: str | None) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE pages SET checksum = ? WHERE id = ?", (checksum, page_id))

    def update_parent_page(self, page_id: int, parent_page_id: int | None) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE pages SET parent_page_id = ? WHERE id = ?", (parent_page_id, page_id)
            )

    def delete_sections(self, page_id: int) -> int:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM page_sections WHERE page_id = ?", (page_id,))
        return cursor.rowcount

    def insert_section(self, page_id: int, section: SectionRecord) -> int:
        """Persist one embedded section for a page."""
        vector = np.asarray(section.embedding, dtype="float32").reshape(-1)
        if self.dimension is not None and vector.shape[0] != self.dimension:
            raise ValueError(
                f"Embedding dimension {vector.shape[0]} does not match store dimension "
                f"{self.dimension}"
            )
        with self.transaction() as conn:
            section_id = conn.execute(
                """
                INSERT INTO page_sections(page_id, slug, heading, content, token_count, embedding)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    page_id,
                    section.slug,
                    section.heading,
                    section.content,
                    section.token_count,
                    sqlite3.Binary(vector.tobytes()),
                ),
            ).lastrowid
        return int(section_id)

    def get_sections(self, page_id: int) -> List[SectionRecord]:
        rows = self._conn.execute(
            """
            SELECT slug, heading, content, token_count, embedding
            FROM page_sections WHERE page_id = ? ORDER BY id
            """,
            (page_id,),
        ).fetchall()
        return [
            SectionRecord(
                slug=row["slug"],
                heading=row["heading"],
                content=row["content"],
                token_count=row["token_count"],
                embedding=np.frombuffer(row["embedding"], dtype="float32"),
            )
            for row in rows
        ]

    def list_pages(self) -> List[dict]:
        rows = self._conn.execute(
            """
            SELECT p.path AS path, p.checksum AS checksum, parent.path AS parent_path,
                   COUNT(s.id) AS sections
            FROM pages p
            LEFT JOIN pages parent ON parent.id = p.parent_page_id
            LEFT JOIN page_sections s ON s.page_id = p.id
            GROUP BY p.id
            ORDER BY p.path
            """
        ).fetchall()
        return [dict(row) for row in rows]

    def remove_missing_pages(self, keep_paths: Collection[str]) -> int:
        """Remove pages whose path is not in ``keep_paths``."""
        keep = set(keep_paths)
        with self.transaction() as conn:
            rows = conn.execute("SELECT id, path FROM pages").fetchall()
            missing = [row for row in rows if row["path"] not in keep]
            for row in missing:
                conn.execute("DELETE FROM pages WHERE id = ?", (row["id"],))
        return len(missing)

    def clear(self) -> None:
        """Delete every section and page."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM page_sections")
            conn.execute("DELETE FROM pages")
