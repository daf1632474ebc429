"""Tests for file utility functions."""

from __future__ import annotations

import base64
import hashlib

from docsync.utils.files import compute_checksum, is_document_name


class TestIsDocumentName:
    """Test is_document_name function."""

    def test_markdown_and_mdx(self) -> None:
        assert is_document_name("intro.md", (".md", ".mdx"))
        assert is_document_name("intro.mdx", (".md", ".mdx"))

    def test_other_extensions(self) -> None:
        assert not is_document_name("logo.png", (".md", ".mdx"))
        assert not is_document_name("notes.mdx.bak", (".md", ".mdx"))

    def test_no_extension(self) -> None:
        assert not is_document_name("README", (".md", ".mdx"))


class TestComputeChecksum:
    """Test compute_checksum function."""

    def test_matches_base64_sha256(self) -> None:
        expected = base64.b64encode(hashlib.sha256(b"# Hello").digest()).decode("ascii")

        assert compute_checksum("# Hello") == expected

    def test_stable(self) -> None:
        assert compute_checksum("same text") == compute_checksum("same text")

    def test_single_character_change(self) -> None:
        assert compute_checksum("Hello world") != compute_checksum("Hello world!")
        assert compute_checksum("Hello world") != compute_checksum("hello world")

    def test_unicode(self) -> None:
        assert compute_checksum("café") != compute_checksum("cafe")
