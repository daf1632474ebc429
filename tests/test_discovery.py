"""Tests for content discovery."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeHost, dir_item, file_item
from docsync.models import ContentEntry
from docsync.sources.discovery import DiscoveryPolicy, discover
from docsync.sources.github import RemoteItem

POLICY = DiscoveryPolicy(
    ignored_directories=("03-pages",),
    ignored_files=("_app.mdx",),
    extensions=(".md", ".mdx"),
)


@pytest.fixture
def host() -> FakeHost:
    tree = {
        "docs": [
            file_item("index.mdx"),
            dir_item("02-guide"),
            dir_item("01-app"),
            dir_item("03-pages"),
            file_item("_app.mdx"),
            file_item("logo.png"),
        ],
        "docs/01-app": [file_item("b.md"), file_item("a.mdx"), dir_item("nested")],
        "docs/01-app/nested": [file_item("deep.mdx")],
        "docs/02-guide": [file_item("intro.mdx")],
        "docs/03-pages": [file_item("hidden.mdx")],
    }
    return FakeHost(tree, {})


class TestDiscoveryPolicy:
    """Test classification of listing entries."""

    def test_classify(self) -> None:
        assert POLICY.classify(dir_item("03-pages")) == "ignored-directory"
        assert POLICY.classify(dir_item("01-app")) == "directory"
        assert POLICY.classify(file_item("_app.mdx")) == "ignored-file"
        assert POLICY.classify(file_item("intro.mdx")) == "document"
        assert POLICY.classify(file_item("logo.png")) == "other"
        assert POLICY.classify(RemoteItem(name="link", kind="other")) == "other"

    def test_ignored_file_name_as_directory(self) -> None:
        """Deny-lists only apply to their own kind."""
        assert POLICY.classify(dir_item("_app.mdx")) == "directory"


class TestDiscover:
    """Test discover function."""

    def test_manifest_sorted_by_path(self, host: FakeHost) -> None:
        entries = asyncio.run(discover(host, "docs", POLICY))

        assert [e.path for e in entries] == [
            "docs/01-app/a.mdx",
            "docs/01-app/b.md",
            "docs/01-app/nested/deep.mdx",
            "docs/02-guide/intro.mdx",
            "docs/index.mdx",
        ]

    def test_ignored_directory_not_walked(self, host: FakeHost) -> None:
        entries = asyncio.run(discover(host, "docs", POLICY))

        assert all("03-pages" not in e.path for e in entries)
        assert "docs/03-pages" not in host.listed

    def test_ignored_files_and_other_extensions_skipped(self, host: FakeHost) -> None:
        paths = [e.path for e in asyncio.run(discover(host, "docs", POLICY))]

        assert "docs/_app.mdx" not in paths
        assert "docs/logo.png" not in paths

    def test_entries_carry_parent_directory_and_source(self, host: FakeHost) -> None:
        entries = asyncio.run(discover(host, "docs", POLICY, source="guide"))

        assert ContentEntry("docs/01-app/nested/deep.mdx", "docs/01-app/nested", "guide") in entries
        assert ContentEntry("docs/index.mdx", "docs", "guide") in entries

    def test_repeated_runs_identical(self, host: FakeHost) -> None:
        first = asyncio.run(discover(host, "docs", POLICY))
        second = asyncio.run(discover(host, "docs", POLICY))

        assert first == second

    def test_root_slashes_stripped(self, host: FakeHost) -> None:
        entries = asyncio.run(discover(host, "/docs/", POLICY))

        assert entries[0].path == "docs/01-app/a.mdx"

    def test_unreachable_directory_aborts(self, host: FakeHost) -> None:
        """A failing listing anywhere fails the whole discovery."""
        del host.tree["docs/01-app/nested"]

        with pytest.raises(FileNotFoundError):
            asyncio.run(discover(host, "docs", POLICY))

    def test_unreachable_root(self) -> None:
        with pytest.raises(FileNotFoundError):
            asyncio.run(discover(FakeHost({}, {}), "docs", POLICY))

    def test_default_policy(self, host: FakeHost) -> None:
        paths = [e.path for e in asyncio.run(discover(host, "docs"))]

        assert "docs/03-pages/hidden.mdx" in paths
        assert "docs/_app.mdx" in paths

    def test_failure_cancels_sibling_listings(self) -> None:
        """Listings still running when a sibling fails are cancelled, not orphaned."""

        class StallingHost(FakeHost):
            def __init__(self, *args) -> None:
                super().__init__(*args)
                self.cancelled: list[str] = []

            async def list_directory(self, path: str):
                if path == "docs/slow":
                    try:
                        await asyncio.sleep(30)
                    except asyncio.CancelledError:
                        self.cancelled.append(path)
                        raise
                return await super().list_directory(path)

        host = StallingHost({"docs": [dir_item("slow"), dir_item("missing")]}, {})

        with pytest.raises(FileNotFoundError):
            asyncio.run(discover(host, "docs", POLICY))

        assert host.cancelled == ["docs/slow"]
