"""Partition extracted links into already-stored and new."""

from __future__ import annotations

from ..core.types import ExtractedLink
from ..store import ArticleStore


async def partition_links(
    store: ArticleStore,
    links: list[ExtractedLink],
) -> tuple[list[ExtractedLink], list[ExtractedLink]]:
    """Split links by whether their URL is already in the store.

    All URLs are checked with a single find_existing call. Matching is by
    exact URL string. Input order is preserved in both lists.

    Returns:
        (known, new)
    """
    if not links:
        return [], []
    existing = await store.find_existing(link.url for link in links)
    known = [link for link in links if link.url in existing]
    new = [link for link in links if link.url not in existing]
    return known, new
