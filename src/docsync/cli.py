"""Command line interface for docsync."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import aiohttp
import typer
from rich.console import Console
from rich.table import Table

from docsync.config import AppConfig
from docsync.embedding.encoder import EmbeddingConfig, EmbeddingModel
from docsync.index.pipeline import SyncPipeline, SyncStats
from docsync.index.reconciler import Reconciler
from docsync.index.storage import SQLitePageStore
from docsync.sources.discovery import DiscoveryPolicy
from docsync.sources.github import GithubContentClient


console = Console()
app = typer.Typer(help="docsync - keep documentation embeddings in sync with a content tree")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


async def _run_sync(
    config: AppConfig,
    token: Optional[str],
    reconciler: Reconciler,
    *,
    prune: bool,
) -> SyncStats:
    policy = DiscoveryPolicy(
        ignored_directories=config.ignored_directories,
        ignored_files=config.ignored_files,
        extensions=config.extensions,
    )
    async with GithubContentClient(config.api_url, token) as host:
        pipeline = SyncPipeline(
            host,
            reconciler,
            policy=policy,
            source_label=config.source_label,
            prune=prune,
        )
        return await pipeline.run(config.content_root)


@app.command()
def sync(
    root: str = typer.Argument(AppConfig().content_root, help="Content root to walk."),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(AppConfig().model_name, help="Sentence-transformer model name"),
    api_url: str = typer.Option(
        AppConfig().api_url, "--api-url", envvar="GITHUB_URL", help="Contents API base URL"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="GITHUB_TOKEN", help="GitHub token for the contents API"
    ),
    source: str = typer.Option(AppConfig().source_label, help="Source label stored on pages"),
    ignore_dir: Optional[List[str]] = typer.Option(
        None, "--ignore-dir", help="Directory name to skip (repeatable)"
    ),
    ignore_file: Optional[List[str]] = typer.Option(
        None, "--ignore-file", help="File name to skip (repeatable)"
    ),
    refresh: bool = typer.Option(False, "--refresh", help="Regenerate every page"),
    prune: bool = typer.Option(False, "--prune", help="Remove pages no longer discovered"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Sync pages and section embeddings with the remote content tree."""
    _setup_logging(verbose)
    defaults = AppConfig()
    config = AppConfig(
        db_path=db if db is not None else defaults.db_path,
        model_name=model,
        api_url=api_url,
        content_root=root,
        source_label=source,
        ignored_directories=tuple(ignore_dir) if ignore_dir else defaults.ignored_directories,
        ignored_files=tuple(ignore_file) if ignore_file else defaults.ignored_files,
    )

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
    store = SQLitePageStore(resolved_db, dimension=embedder.dimension)
    reconciler = Reconciler(embedder, store, refresh=refresh)

    console.print(f"Syncing [bold]{config.content_root}[/bold] into [bold]{resolved_db}[/bold]...")
    try:
        stats = asyncio.run(_run_sync(config, token, reconciler, prune=prune))
    except (aiohttp.ClientError, asyncio.TimeoutError, NotADirectoryError) as exc:
        console.print(f"[red]Discovery failed: {exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()

    console.print(
        f"Discovered: {stats.discovered}, inserted: {stats.inserted}, "
        f"updated: {stats.updated}, relinked: {stats.relinked}, "
        f"skipped: {stats.skipped}, failed: {stats.failed}"
    )
    if prune:
        console.print(f"Pruned: {stats.pruned}")
    for path in stats.failed_paths:
        console.print(f"[yellow]Failed: {path}[/yellow]")


@app.command()
def pages(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List stored pages and whether they are fully embedded."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    store = SQLitePageStore(resolved_db)
    rows = store.list_pages()
    store.close()
    if not rows:
        console.print("[yellow]No pages stored.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Page")
    table.add_column("Parent")
    table.add_column("Sections")
    table.add_column("State")

    for row in rows:
        state = "[green]complete[/green]" if row["checksum"] else "[red]needs retry[/red]"
        table.add_row(row["path"], row["parent_path"] or "", str(row["sections"]), state)

    console.print(table)
