"""
Sync orchestration for linkpress.

This module walks every configured Slack workspace and its channels:
1. Build a history client per workspace
2. Run the ingestion coordinator for each channel, one at a time
3. Fold channel reports into the run-level SyncResult
4. Print per-channel summary lines and rejection reasons

Classification concurrency is bounded per batch inside each channel;
channels themselves are never processed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from .config import AppConfig, SlackConfig, SlackSourceConfig
from .core.types import ChannelReport, SyncResult
from .llm.providers.base import Classifier
from .llm.providers.factory import create_classifier
from .llm.tracing import flush, run_span, set_span_output, setup_langfuse, tracing_enabled
from .slack.client import HistorySource, SlackClient
from .store import ArticleStore, SQLiteArticleStore
from .sync.coordinator import IngestionCoordinator, channel_failure
from .sync.dispatcher import ClassificationDispatcher
from .utils.logging import close_logger, log_event, open_llm_log, setup_logging


HistoryFactory = Callable[[SlackSourceConfig, SlackConfig], HistorySource]


def run_sync(
    cfg: AppConfig,
    console: Console | None = None,
    show_progress: bool = True,
) -> SyncResult:
    """Run a full sync with the real store, classifier and Slack client.

    Args:
        cfg: Application configuration
        console: Rich console for the report (creates default if None)
        show_progress: Whether to display a progress bar over channels

    Returns:
        Aggregate counters for the run
    """
    console = console or Console()
    if not cfg.sources.slack:
        _render_no_sources(console)
        return SyncResult()

    logger = setup_logging(cfg.logging)
    llm_logger = open_llm_log(cfg.logging)
    setup_langfuse(cfg.tracing)
    try:
        result = asyncio.run(
            _run_sync_async(cfg, console, show_progress, logger, llm_logger)
        )
    finally:
        flush()
        close_logger(llm_logger)

    _render_totals(result, console)
    return result


async def _run_sync_async(
    cfg: AppConfig,
    console: Console,
    show_progress: bool,
    logger: logging.Logger,
    llm_logger: logging.Logger | None,
) -> SyncResult:
    store = SQLiteArticleStore(cfg.store.resolved_path())
    classifier = create_classifier(cfg.provider, cfg.logging, llm_logger=llm_logger, logger=logger)
    try:
        return await sync_sources(
            cfg,
            store,
            classifier,
            logger=logger,
            console=console,
            show_progress=show_progress,
        )
    finally:
        await classifier.aclose()
        await store.close()


async def sync_sources(
    cfg: AppConfig,
    store: ArticleStore,
    classifier: Classifier,
    history_factory: HistoryFactory | None = None,
    logger: logging.Logger | None = None,
    console: Console | None = None,
    show_progress: bool = False,
    stop_event: asyncio.Event | None = None,
) -> SyncResult:
    """Sync every configured channel and return the aggregate result.

    With no configured sources this returns an all-zero result without
    touching the store, the classifier or the network. A failing channel is
    reported and skipped. When stop_event is set, iteration ends at the next
    channel boundary.

    Args:
        cfg: Application configuration (sources, sync and Slack settings)
        store: Article store shared by all channels
        classifier: Classifier used for every new link
        history_factory: Builds a HistorySource per workspace (Slack client by default)
        logger: Logger for events
        console: Rich console for per-channel lines (no output if None)
        show_progress: Whether to display a progress bar over channels
        stop_event: Optional event requesting a stop between channels
    """
    result = SyncResult()
    sources = cfg.sources.slack
    if not sources:
        return result

    history_factory = history_factory or SlackClient.from_source
    dispatcher = ClassificationDispatcher(
        classifier,
        batch_size=cfg.sync.batch_size,
        timeout_seconds=cfg.sync.classify_timeout_seconds,
        logger=logger,
    )
    total_channels = sum(len(source.channels) for source in sources)

    log_event(
        logger,
        "Sync start",
        event="sync_start",
        workspaces=len(sources),
        channels=total_channels,
        classifier=classifier.name,
        tracing=tracing_enabled(),
    )

    progress = _build_progress(console) if show_progress and console is not None else None
    with run_span(len(sources), total_channels) as span:
        if progress is not None:
            progress.start()
        try:
            channel_task = (
                progress.add_task("Syncing channels", total=total_channels)
                if progress is not None
                else None
            )
            for source in sources:
                if _stop_requested(stop_event):
                    break
                if console is not None:
                    console.print(f"\n[bold]Syncing: {source.workspace or source.id}[/bold]")

                try:
                    history = history_factory(source, cfg.slack)
                except Exception as exc:  # noqa: BLE001
                    # Unusable credentials fail every channel of this workspace only
                    for report in failed_source_reports(source, exc, logger):
                        result.add(report)
                        if console is not None:
                            _render_channel(report, console, silent=cfg.sync.silent)
                        if progress is not None and channel_task is not None:
                            progress.advance(channel_task, 1)
                    continue

                coordinator = IngestionCoordinator(history, store, dispatcher, cfg.sync, logger)
                try:
                    for channel in source.channels:
                        if _stop_requested(stop_event):
                            break
                        report = await coordinator.sync_channel(channel, source.workspace)
                        result.add(report)
                        if console is not None:
                            _render_channel(report, console, silent=cfg.sync.silent)
                        if progress is not None and channel_task is not None:
                            progress.advance(channel_task, 1)
                finally:
                    await history.aclose()
        finally:
            if progress is not None:
                progress.stop()

        set_span_output(
            span,
            {
                "seen": result.total_links_seen,
                "new": result.new_articles,
                "known": result.already_known,
                "filtered": result.filtered_out,
            },
        )

    log_event(
        logger,
        "Sync complete",
        event="sync_complete",
        seen=result.total_links_seen,
        new=result.new_articles,
        known=result.already_known,
        filtered=result.filtered_out,
        failed_channels=len(result.failed_channels),
    )
    return result


def failed_source_reports(
    source: SlackSourceConfig,
    exc: Exception,
    logger: logging.Logger | None = None,
) -> list[ChannelReport]:
    """Zero-count failure reports for every channel of a workspace whose client could not be built."""
    return [
        channel_failure(channel, source.workspace, exc, stage="connect", logger=logger)
        for channel in source.channels
    ]


def _stop_requested(stop_event: asyncio.Event | None) -> bool:
    return stop_event is not None and stop_event.is_set()


def _build_progress(console: Console) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )


def _render_channel(report: ChannelReport, console: Console, silent: bool) -> None:
    """Print one channel's summary line and, unless silent, its rejections."""
    if not report.ok:
        console.print(f"[red]✗[/red] {report.channel_name}: Failed to {report.failed_stage or 'sync'}")
        console.print(f"[dim]  Error: {report.error}[/dim]", soft_wrap=True)
        return
    console.print(
        f"[green]✓[/green] {report.channel_name}: {report.seen} links found, "
        f"{report.new} new, {report.known} already saved, {report.filtered} filtered"
    )
    if silent:
        return
    for rejection in report.rejections:
        console.print(f"[dim]  ⊘ {rejection.url}: {rejection.reasoning}[/dim]", soft_wrap=True)


def _render_totals(result: SyncResult, console: Console) -> None:
    console.print(
        "\n[bold]Sync summary[/bold]: "
        f"total={result.total_links_seen}, new={result.new_articles}, "
        f"known={result.already_known}, filtered={result.filtered_out}, "
        f"failed_channels={len(result.failed_channels)}"
    )


def _render_no_sources(console: Console) -> None:
    console.print("[yellow]No Slack sources configured.[/yellow]")
    console.print("[dim]Add a workspace under sources.slack in the config file.[/dim]")
