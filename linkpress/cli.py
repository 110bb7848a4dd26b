"""
Command-line interface for linkpress.

Uses Typer to provide `sync` and `list` commands. Supports loading .env
files for API key configuration.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .runner import run_sync
from .store import SQLiteArticleStore

app = typer.Typer(add_completion=False, help="Collect links shared in Slack into a reading list.")
console = Console()


def _load(config: Path | None) -> AppConfig:
    load_dotenv()
    if config is not None:
        return load_config(config)
    default_path = DEFAULT_CONFIG_PATH.expanduser()
    return load_config(default_path if default_path.exists() else None)


@app.command()
def sync(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    silent: bool = typer.Option(False, "--silent", help="Hide per-link rejection reasons."),
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Links classified concurrently."),
    limit: int | None = typer.Option(None, "--limit", min=1, help="Messages fetched per channel."),
    provider: str | None = typer.Option(None, "--provider", help="Classifier provider: gemini, openai or rules."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
):
    """Fetch recent Slack messages, classify shared links and store new articles."""
    cfg = _load(config)

    if silent:
        cfg.sync.silent = True
    if batch_size is not None:
        cfg.sync.batch_size = batch_size
    if limit is not None:
        cfg.sync.history_limit = limit
    if provider:
        cfg.provider.name = provider
    if log_level:
        cfg.logging.level = log_level

    result = run_sync(cfg, console=console, show_progress=progress)
    # Every channel failed, most likely expired Slack credentials
    if result.channels and len(result.failed_channels) == len(result.channels):
        raise typer.Exit(code=1)


@app.command("list")
def list_articles(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
    unprocessed: bool = typer.Option(False, "--unprocessed", help="Only articles not yet enriched."),
):
    """Show the most recently shared articles."""
    cfg = _load(config)
    stubs = asyncio.run(_fetch_articles(cfg, limit, unprocessed))

    if not stubs:
        console.print("[yellow]No articles saved yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Shared", no_wrap=True)
    table.add_column("URL", overflow="fold")
    table.add_column("Channel", no_wrap=True)
    table.add_column("Processed", no_wrap=True)
    for stub in stubs:
        table.add_row(
            stub.created_at.strftime("%Y-%m-%d %H:%M"),
            stub.url,
            stub.source_channel_id or "-",
            "yes" if stub.processed_at else "no",
        )
    console.print(table)


async def _fetch_articles(cfg: AppConfig, limit: int, unprocessed: bool):
    store = SQLiteArticleStore(cfg.store.resolved_path())
    try:
        return await store.list_articles(limit=limit, unprocessed_only=unprocessed)
    finally:
        await store.close()


if __name__ == "__main__":
    app()
