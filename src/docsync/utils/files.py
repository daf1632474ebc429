"""Utility helpers for working with document files."""

from __future__ import annotations

import base64
import hashlib
import posixpath
from typing import Iterable


def is_document_name(name: str, extensions: Iterable[str]) -> bool:
    """Return True when ``name`` carries one of the document extensions."""
    suffix = posixpath.splitext(name)[1]
    return bool(suffix) and suffix in tuple(extensions)


def compute_checksum(text: str) -> str:
    """Compute the base64 SHA256 digest of a document's text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")
