"""Core docsync data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

Meta = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class ContentEntry:
    """A discovered document that has not been fetched yet."""

    path: str
    parent_path: str | None
    source: str


@dataclass(slots=True)
class Section:
    """Heading-delimited slice of a document body."""

    content: str
    heading: str | None = None
    slug: str | None = None
    embedding: np.ndarray | None = None


@dataclass(slots=True)
class ProcessedDocument:
    """Result of segmenting one raw document."""

    checksum: str
    metadata: Meta | None
    sections: List[Section] = field(default_factory=list)


@dataclass(slots=True)
class PageRecord:
    """Persisted page row, optionally joined with its parent's path."""

    id: int
    path: str
    checksum: str | None
    type: str | None
    source: str | None
    metadata: Meta | None
    parent_page_id: int | None = None
    parent_path: str | None = None


@dataclass(slots=True)
class SectionRecord:
    slug: str | None
    heading: str | None
    content: str
    token_count: int
    embedding: np.ndarray
