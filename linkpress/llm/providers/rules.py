"""
Rule-based fallback classifier.

Used when no LLM provider is configured. Verdicts depend only on the URL
shape: internal workspace tools, media-only hosts and auth/transactional
pages are rejected; every other link is collected.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from ...core.types import ClassificationVerdict, ContentType, TechnicalDepth
from .base import Classifier


# Workspace apps whose links point at private team artifacts
INTERNAL_TOOL_DOMAINS = (
    "atlassian.net",
    "jira.com",
    "docs.google.com",
    "drive.google.com",
    "meet.google.com",
    "calendar.google.com",
    "zoom.us",
    "figma.com",
    "linear.app",
    "asana.com",
    "trello.com",
    "miro.com",
    "notion.so",
    "teams.microsoft.com",
    "sharepoint.com",
)

MEDIA_DOMAINS = (
    "imgur.com",
    "instagram.com",
    "spotify.com",
    "soundcloud.com",
    "flickr.com",
    "unsplash.com",
    "pinterest.com",
)

AUTH_PATH_RE = re.compile(
    r"/(login|log-in|signin|sign-in|signup|sign-up|register|oauth2?|sso|auth|"
    r"password[-_]?reset|reset[-_]?password|forgot[-_]?password|unsubscribe|"
    r"invite|invitation|checkout|cart|billing|payment|verify|confirm)(/|$)",
    re.IGNORECASE,
)
AUTH_QUERY_KEYS = {"token", "code", "access_token", "id_token", "otp", "invite", "session"}

# Hosts with a known content type when a link is collected
CONTENT_HINTS = (
    ("github.com", ContentType.TOOL),
    ("gitlab.com", ContentType.TOOL),
    ("youtube.com", ContentType.VIDEO),
    ("youtu.be", ContentType.VIDEO),
    ("medium.com", ContentType.ARTICLE),
    ("dev.to", ContentType.ARTICLE),
    ("substack.com", ContentType.ARTICLE),
    ("hashnode.dev", ContentType.ARTICLE),
    ("news.ycombinator.com", ContentType.DISCUSSION),
    ("reddit.com", ContentType.DISCUSSION),
    ("news.hada.io", ContentType.NEWS),
)


class RuleBasedClassifier(Classifier):
    """Static URL-shape classifier with a permissive default."""

    name = "rules"

    async def classify(
        self,
        message_text: str,
        url: str,
        title: str = "",
        description: str = "",
    ) -> ClassificationVerdict:
        return classify_url(url)


def classify_url(url: str) -> ClassificationVerdict:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]

    if _matches(host, INTERNAL_TOOL_DOMAINS):
        return ClassificationVerdict(
            should_collect=False,
            reasoning=f"internal workspace tool ({host})",
            content_type=ContentType.INTERNAL,
        )
    if _matches(host, MEDIA_DOMAINS):
        return ClassificationVerdict(
            should_collect=False,
            reasoning=f"media-only host ({host})",
            content_type=ContentType.MEDIA,
        )
    if AUTH_PATH_RE.search(parsed.path or "") or _has_auth_query(parsed.query):
        return ClassificationVerdict(
            should_collect=False,
            reasoning="authentication or transactional page",
            content_type=ContentType.OTHER,
        )

    content_type = ContentType.ARTICLE
    for domain, hint in CONTENT_HINTS:
        if _matches(host, (domain,)):
            content_type = hint
            break
    return ClassificationVerdict(
        should_collect=True,
        reasoning="no exclusion rule matched",
        content_type=content_type,
        technical_depth=TechnicalDepth.NONE,
    )


def _matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def _has_auth_query(query: str) -> bool:
    if not query:
        return False
    keys = {key.lower() for key in parse_qs(query, keep_blank_values=True)}
    return bool(keys & AUTH_QUERY_KEYS)
