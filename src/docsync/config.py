"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from docsync.embedding.encoder import DEFAULT_MODEL

DEFAULT_API_URL = "https://api.github.com/repos/vercel/next.js/contents/"


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    model_name: str = DEFAULT_MODEL
    api_url: str = DEFAULT_API_URL
    content_root: str = "docs"
    source_label: str = "guide"
    ignored_directories: tuple[str, ...] = ("03-pages",)
    ignored_files: tuple[str, ...] = ("_app.mdx", "_document.mdx", "_error.mdx")
    extensions: tuple[str, ...] = (".md", ".mdx")

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = Path("data/docsync.db")

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = Path("data/docsync.db")
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
