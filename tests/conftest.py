"""Shared fakes for the collaborator interfaces."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest

from linkpress.config import AppConfig, SlackChannelConfig, SlackSourceConfig
from linkpress.core.types import ArticleStub, ChatMessage, ClassificationVerdict
from linkpress.llm.providers.base import Classifier
from linkpress.slack.client import HistorySource
from linkpress.store import ArticleStore


BASE_TIME = datetime(2026, 2, 3, 12, 0, tzinfo=timezone.utc)


def make_messages(*texts: str) -> list[ChatMessage]:
    """Messages one minute apart, in the order given."""
    return [
        ChatMessage(text=text, timestamp=BASE_TIME + timedelta(minutes=idx))
        for idx, text in enumerate(texts)
    ]


class FakeHistory(HistorySource):
    def __init__(self, channels: dict[str, list[ChatMessage]] | None = None, failing: Iterable[str] = ()):
        self.channels = channels or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, int]] = []
        self.closed = False

    async def fetch_history(self, channel_id: str, limit: int = 200) -> list[ChatMessage]:
        self.calls.append((channel_id, limit))
        if channel_id in self.failing:
            raise ConnectionError(f"cannot reach {channel_id}")
        return list(self.channels.get(channel_id, []))[:limit]

    async def aclose(self) -> None:
        self.closed = True


class MemoryStore(ArticleStore):
    def __init__(self, urls: Iterable[str] = ()):
        self.rows: dict[str, ArticleStub] = {}
        self.lookups: list[set[str]] = []
        self.inserts = 0
        for url in urls:
            self.rows[url] = ArticleStub(id=url, url=url, title=url)

    async def find_existing(self, urls: Iterable[str]) -> set[str]:
        requested = set(urls)
        self.lookups.append(requested)
        await asyncio.sleep(0)
        return requested & self.rows.keys()

    async def insert_if_absent(self, stub: ArticleStub) -> bool:
        self.inserts += 1
        await asyncio.sleep(0)
        if stub.url in self.rows:
            return False
        self.rows[stub.url] = stub
        return True

    async def list_articles(self, limit: int = 100, unprocessed_only: bool = False) -> list[ArticleStub]:
        rows = sorted(self.rows.values(), key=lambda stub: stub.created_at, reverse=True)
        if unprocessed_only:
            rows = [stub for stub in rows if stub.processed_at is None]
        return rows[:limit]


class FakeClassifier(Classifier):
    """Accepts everything except configured URLs; tracks concurrency."""

    name = "fake"

    def __init__(
        self,
        reject: Iterable[str] = (),
        fail: Iterable[str] = (),
        hang: Iterable[str] = (),
        delay: float = 0.01,
    ):
        self.reject = set(reject)
        self.fail = set(fail)
        self.hang = set(hang)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[str] = []

    async def classify(self, message_text, url, title="", description=""):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if url in self.hang:
                await asyncio.sleep(3600)
            await asyncio.sleep(self.delay)
            if url in self.fail:
                raise RuntimeError("model unavailable")
            if url in self.reject:
                return ClassificationVerdict(should_collect=False, reasoning="not an article")
            return ClassificationVerdict(should_collect=True, reasoning="looks like an article")
        finally:
            self.in_flight -= 1


def make_config(channels_by_workspace: dict[str, list[str]] | None = None) -> AppConfig:
    cfg = AppConfig()
    cfg.sync.classify_timeout_seconds = None
    for workspace, channel_ids in (channels_by_workspace or {}).items():
        cfg.sources.slack.append(
            SlackSourceConfig(
                id=workspace,
                workspace=workspace,
                token="xoxc-test",
                cookie="xoxd-test",
                channels=[SlackChannelConfig(id=cid, name=f"#{cid.lower()}") for cid in channel_ids],
            )
        )
    return cfg


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()
