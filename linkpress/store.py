"""
Article persistence.

ArticleStore is the storage contract used by the sync pipeline. The URL
is the natural key: inserting a URL that is already stored is a no-op,
which is what makes repeated syncs safe. SQLiteArticleStore implements it
on a local SQLite file; blocking calls run in a worker thread so the
event loop keeps servicing other I/O.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from datetime import datetime
import json
from pathlib import Path
import sqlite3
import threading
from typing import Iterable

from .core.types import ArticleStub, SourceType


# SQLite's default bound-parameter limit is 999
_LOOKUP_CHUNK = 500

_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles (
    id TEXT PRIMARY KEY,
    url TEXT UNIQUE NOT NULL,
    title TEXT,
    description TEXT,
    content TEXT,
    summary TEXT,
    tags TEXT,
    difficulty TEXT,
    reading_time_minutes INTEGER,
    image TEXT,
    source_label TEXT,
    source_type TEXT NOT NULL,
    source_id TEXT,
    created_at TEXT NOT NULL,
    processed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_articles_url ON articles(url);
CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_type, source_id);
CREATE INDEX IF NOT EXISTS idx_articles_created ON articles(created_at);
"""


class ArticleStore(ABC):
    """Persistence contract for article stubs."""

    @abstractmethod
    async def find_existing(self, urls: Iterable[str]) -> set[str]:
        """Return the subset of urls already stored (exact string match)."""
        raise NotImplementedError

    async def exists(self, url: str) -> bool:
        return url in await self.find_existing([url])

    @abstractmethod
    async def insert_if_absent(self, stub: ArticleStub) -> bool:
        """Insert a stub unless its URL is stored already.

        Returns:
            True if a row was inserted, False if the URL already existed
        """
        raise NotImplementedError

    @abstractmethod
    async def list_articles(self, limit: int = 100, unprocessed_only: bool = False) -> list[ArticleStub]:
        """Return stored stubs, newest first."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class SQLiteArticleStore(ArticleStore):
    """ArticleStore backed by a SQLite database file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    async def find_existing(self, urls: Iterable[str]) -> set[str]:
        return await asyncio.to_thread(self._find_existing_sync, list(dict.fromkeys(urls)))

    async def insert_if_absent(self, stub: ArticleStub) -> bool:
        return await asyncio.to_thread(self._insert_sync, stub)

    async def list_articles(self, limit: int = 100, unprocessed_only: bool = False) -> list[ArticleStub]:
        return await asyncio.to_thread(self._list_sync, limit, unprocessed_only)

    async def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _find_existing_sync(self, urls: list[str]) -> set[str]:
        found: set[str] = set()
        with self._lock:
            for start in range(0, len(urls), _LOOKUP_CHUNK):
                chunk = urls[start : start + _LOOKUP_CHUNK]
                placeholders = ",".join("?" for _ in chunk)
                rows = self._conn.execute(
                    f"SELECT url FROM articles WHERE url IN ({placeholders})", chunk
                ).fetchall()
                found.update(row["url"] for row in rows)
        return found

    def _insert_sync(self, stub: ArticleStub) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT OR IGNORE INTO articles (
                    id, url, title, tags, source_type, source_id, created_at, processed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stub.id,
                    stub.url,
                    stub.title,
                    json.dumps(stub.tags),
                    stub.source_type.value,
                    stub.source_channel_id,
                    stub.created_at.isoformat(),
                    stub.processed_at.isoformat() if stub.processed_at else None,
                ),
            )
            self._conn.commit()
            return cursor.rowcount > 0

    def _list_sync(self, limit: int, unprocessed_only: bool) -> list[ArticleStub]:
        query = "SELECT * FROM articles"
        if unprocessed_only:
            query += " WHERE processed_at IS NULL"
        query += " ORDER BY created_at DESC LIMIT ?"
        with self._lock:
            rows = self._conn.execute(query, (limit,)).fetchall()
        return [_row_to_stub(row) for row in rows]


def _row_to_stub(row: sqlite3.Row) -> ArticleStub:
    processed_at = row["processed_at"]
    return ArticleStub(
        id=row["id"],
        url=row["url"],
        title=row["title"] or row["url"],
        tags=json.loads(row["tags"] or "[]"),
        source_type=SourceType(row["source_type"]),
        source_channel_id=row["source_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        processed_at=datetime.fromisoformat(processed_at) if processed_at else None,
    )
