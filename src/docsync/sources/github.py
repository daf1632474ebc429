"""Read-only client for the GitHub repository contents API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal

import aiohttp

LOGGER = logging.getLogger(__name__)

_KINDS = {"file": "file", "dir": "directory"}


@dataclass(frozen=True, slots=True)
class RemoteItem:
    """One entry of a remote directory listing."""

    name: str
    kind: Literal["file", "directory", "other"]


class GithubContentClient:
    """Lists directories and fetches raw files under a contents API URL.

    Use as an async context manager so the underlying session is closed::

        async with GithubContentClient(url, token) as host:
            items = await host.list_directory("docs")
    """

    def __init__(self, api_url: str, token: str | None = None, *, timeout: float = 30.0) -> None:
        self.api_url = api_url.rstrip("/") + "/"
        self.token = token
        self.timeout = timeout
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "GithubContentClient":
        headers = {"User-Agent": "docsync"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self.session = aiohttp.ClientSession(
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    def _url(self, path: str) -> str:
        return self.api_url + path.lstrip("/")

    def _session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("GithubContentClient used outside of 'async with'")
        return self.session

    async def list_directory(self, path: str) -> List[RemoteItem]:
        """Return the entries of a remote directory."""
        LOGGER.debug("Listing %s", path)
        async with self._session().get(
            self._url(path), headers={"Accept": "application/vnd.github.v3+json"}
        ) as response:
            response.raise_for_status()
            payload = await response.json()

        if not isinstance(payload, list):
            raise NotADirectoryError(f"Remote path is not a directory: {path}")
        return [
            RemoteItem(name=item["name"], kind=_KINDS.get(item.get("type"), "other"))
            for item in payload
        ]

    async def fetch_raw(self, path: str) -> str:
        """Return the raw text of a remote file."""
        LOGGER.debug("Fetching %s", path)
        async with self._session().get(
            self._url(path), headers={"Accept": "application/vnd.github.raw+json"}
        ) as response:
            response.raise_for_status()
            return await response.text(encoding="utf-8")
