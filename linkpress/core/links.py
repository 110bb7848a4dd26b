"""
Link extraction from Slack message text.

This module pulls candidate URLs out of chat messages. It understands:
- Slack link markup: <https://example.com|label> and <https://example.com>
- Bare URLs in plain prose, with trailing prose punctuation stripped

Platform-internal domains are dropped, and a conservative path check
excludes obvious non-content files. Whether a link is worth collecting is
decided later by classification.
"""

from __future__ import annotations

import html
import re
from typing import Iterable
from urllib.parse import urlparse

from .types import ChatMessage, ExtractedLink


# Regex patterns for Slack message text
SLACK_LINK_RE = re.compile(r"<(https?://[^|>\s]+)(?:\|[^>]*)?>")  # Matches "<url|label>" and "<url>"
BARE_URL_RE = re.compile(r"https?://[^\s<>|]+")  # Matches "https://..." in prose
TRAILING_PUNCT_RE = re.compile(r"[.,;:!?)]+$")

# Chat platform and emoji/gif CDNs; never article content
IGNORED_DOMAINS = (
    "slack.com",
    "slack-edge.com",
    "slack-imgs.com",
    "slack-files.com",
    "giphy.com",
    "tenor.com",
)

NON_ARTICLE_PATTERNS = (
    re.compile(r"\.(png|jpg|jpeg|gif|webp|svg|ico|pdf|zip|tar|gz)$", re.IGNORECASE),
    re.compile(r"^/?(favicon|robots\.txt|sitemap)", re.IGNORECASE),
)


def extract_urls(text: str) -> list[str]:
    """Extract candidate URLs from one message, in order of appearance.

    Slack markup is matched first and blanked out of the text before the
    bare-URL scan, so a URL written as <url|label> is not counted again as
    a bare URL. Duplicates within the message are collapsed.

    Args:
        text: Raw Slack message text

    Returns:
        Distinct URLs that are not on the platform denylist
    """
    if not text:
        return []

    found: dict[str, int] = {}

    for match in SLACK_LINK_RE.finditer(text):
        found.setdefault(_clean_url(match.group(1)), match.start())

    remainder = SLACK_LINK_RE.sub(lambda m: " " * len(m.group(0)), text)
    for match in BARE_URL_RE.finditer(remainder):
        url = TRAILING_PUNCT_RE.sub("", match.group(0))
        found.setdefault(_clean_url(url), match.start())

    ordered = sorted(found, key=found.__getitem__)
    return [url for url in ordered if not is_ignored_domain(url)]


def is_ignored_domain(url: str) -> bool:
    """Return True for platform-internal URLs and URLs without a host."""
    host = _hostname(url)
    if not host:
        return True
    return any(host == domain or host.endswith(f".{domain}") for domain in IGNORED_DOMAINS)


def is_article_url(url: str) -> bool:
    """Cheap check that the URL path could be content.

    Image and archive files and well-known non-content paths are excluded;
    every other path passes.
    """
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return not any(pattern.search(path) for pattern in NON_ARTICLE_PATTERNS)


def extract_links(messages: Iterable[ChatMessage]) -> list[ExtractedLink]:
    """Extract deduplicated candidate links from a batch of messages.

    Messages are scanned in the order given. Each distinct URL appears once;
    the first message that mentioned it supplies the context text and the
    timestamp.

    Args:
        messages: Chat messages, typically one channel's history window

    Returns:
        ExtractedLink objects in first-seen order
    """
    links: dict[str, ExtractedLink] = {}
    for message in messages:
        if not message.text:
            continue
        for url in extract_urls(message.text):
            if url in links or not is_article_url(url):
                continue
            links[url] = ExtractedLink(
                url=url,
                message_text=message.text,
                timestamp=message.timestamp,
            )
    return list(links.values())


def _clean_url(url: str) -> str:
    # Slack escapes &, < and > in message text
    return html.unescape(url.strip())


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
