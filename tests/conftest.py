"""Shared fakes for docsync tests."""

from __future__ import annotations

from typing import Dict, List

import numpy as np
import pytest

from docsync.embedding.encoder import SectionEmbedding
from docsync.index.storage import SQLitePageStore
from docsync.sources.github import RemoteItem

DIMENSION = 4


class FakeHost:
    """In-memory content host keyed by directory and file path."""

    def __init__(self, tree: Dict[str, List[RemoteItem]], files: Dict[str, str]) -> None:
        self.tree = tree
        self.files = files
        self.listed: List[str] = []
        self.fetched: List[str] = []

    async def list_directory(self, path: str) -> List[RemoteItem]:
        self.listed.append(path)
        if path not in self.tree:
            raise FileNotFoundError(path)
        return list(self.tree[path])

    async def fetch_raw(self, path: str) -> str:
        self.fetched.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]


class FakeEmbedder:
    """Deterministic embedder that records every call."""

    dimension = DIMENSION

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed_section(self, text: str) -> SectionEmbedding:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError("embedding service unavailable")
        vector = np.full(DIMENSION, float(len(text)), dtype="float32")
        return SectionEmbedding(vector=vector, token_count=len(text.split()))


def file_item(name: str) -> RemoteItem:
    return RemoteItem(name=name, kind="file")


def dir_item(name: str) -> RemoteItem:
    return RemoteItem(name=name, kind="directory")


@pytest.fixture
def store(tmp_path):
    """Temporary page store."""
    page_store = SQLitePageStore(tmp_path / "test.db", dimension=DIMENSION)
    yield page_store
    page_store.close()


@pytest.fixture
def embedder():
    return FakeEmbedder()
