"""
Per-channel ingestion.

Runs one channel through fetch -> extract -> filter -> classify/persist ->
report. Steps run strictly in that order. A failure anywhere outside
classification turns the whole channel into a zero-count failure report;
classification failures only reject the affected links.
"""

from __future__ import annotations

import logging

from ..config import SlackChannelConfig, SyncConfig
from ..core.links import extract_links
from ..core.types import (
    ArticleStub,
    ChannelReport,
    ClassificationFailed,
    Rejection,
    resolve_verdict,
)
from ..llm.tracing import channel_span, record_span_error, set_span_output
from ..slack.client import HistorySource
from ..store import ArticleStore
from ..utils.logging import log_event
from .dispatcher import ClassificationDispatcher
from .existence import partition_links


class IngestionCoordinator:
    """Syncs channels of one workspace into the article store."""

    def __init__(
        self,
        history: HistorySource,
        store: ArticleStore,
        dispatcher: ClassificationDispatcher,
        sync_cfg: SyncConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        self.history = history
        self.store = store
        self.dispatcher = dispatcher
        self.sync_cfg = sync_cfg
        self.logger = logger

    async def sync_channel(self, channel: SlackChannelConfig, workspace: str) -> ChannelReport:
        """Run the full ingestion cycle for one channel.

        Never raises for ordinary failures; they are returned as a report
        with error set and all counters at zero.
        """
        with channel_span(workspace, channel.id) as span:
            try:
                messages = await self.history.fetch_history(
                    channel.id, limit=self.sync_cfg.history_limit
                )
            except Exception as exc:  # noqa: BLE001
                record_span_error(span, exc)
                return channel_failure(channel, workspace, exc, stage="fetch", logger=self.logger)

            try:
                report = await self._ingest(channel, workspace, messages)
            except Exception as exc:  # noqa: BLE001
                record_span_error(span, exc)
                return channel_failure(channel, workspace, exc, stage="ingest", logger=self.logger)

            set_span_output(
                span,
                {"seen": report.seen, "new": report.new, "known": report.known, "filtered": report.filtered},
            )

        log_event(
            self.logger,
            f"{channel.label}: {report.seen} links, {report.new} new, "
            f"{report.known} known, {report.filtered} filtered",
            event="channel_synced",
            workspace=workspace,
            channel_id=channel.id,
            seen=report.seen,
            new=report.new,
            known=report.known,
            filtered=report.filtered,
        )
        return report

    async def _ingest(self, channel: SlackChannelConfig, workspace: str, messages) -> ChannelReport:
        report = ChannelReport(
            workspace=workspace,
            channel_id=channel.id,
            channel_name=channel.label,
        )

        links = extract_links(messages)
        report.seen = len(links)

        known, new = await partition_links(self.store, links)
        report.known = len(known)

        async for batch in self.dispatcher.iter_batches(new):
            for link, outcome in batch:
                verdict = resolve_verdict(outcome)
                if not verdict.should_collect:
                    report.filtered += 1
                    report.rejections.append(
                        Rejection(
                            url=link.url,
                            reasoning=verdict.reasoning,
                            failed=isinstance(outcome, ClassificationFailed),
                        )
                    )
                    log_event(
                        self.logger,
                        f"Skipped {link.url}: {verdict.reasoning}",
                        level=logging.DEBUG,
                        event="link_rejected",
                        url=link.url,
                        reasoning=verdict.reasoning,
                    )
                    continue

                inserted = await self.store.insert_if_absent(ArticleStub.from_link(link, channel.id))
                if inserted:
                    report.new += 1
                else:
                    report.known += 1

        return report


def channel_failure(
    channel: SlackChannelConfig,
    workspace: str,
    exc: Exception,
    stage: str,
    logger: logging.Logger | None = None,
) -> ChannelReport:
    """Log a channel-level failure and return its zero-count report.

    stage is "connect", "fetch" or "ingest".
    """
    error = f"{type(exc).__name__}: {exc}"
    log_event(
        logger,
        f"{channel.label}: failed to {stage} ({error})",
        level=logging.ERROR,
        event=f"channel_{stage}_failed",
        workspace=workspace,
        channel_id=channel.id,
        error=error,
    )
    return ChannelReport(
        workspace=workspace,
        channel_id=channel.id,
        channel_name=channel.label,
        error=error,
        failed_stage=stage,
    )
