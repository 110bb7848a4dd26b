"""
Core domain models and link extraction.

This package contains data types and pure functions that are
independent of any I/O collaborator.
"""

from .links import extract_links, extract_urls, is_article_url, is_ignored_domain
from .types import (
    ArticleStub,
    ChannelReport,
    ChatMessage,
    ClassificationFailed,
    ClassificationOutcome,
    ClassificationVerdict,
    Classified,
    ContentType,
    ExtractedLink,
    Rejection,
    SourceType,
    SyncResult,
    TechnicalDepth,
    resolve_verdict,
)

__all__ = [
    "ArticleStub",
    "ChannelReport",
    "ChatMessage",
    "ClassificationFailed",
    "ClassificationOutcome",
    "ClassificationVerdict",
    "Classified",
    "ContentType",
    "ExtractedLink",
    "Rejection",
    "SourceType",
    "SyncResult",
    "TechnicalDepth",
    "extract_links",
    "extract_urls",
    "is_article_url",
    "is_ignored_domain",
    "resolve_verdict",
]
