"""
Core data types for linkpress.

This module defines the data structures that flow through the sync pipeline:
- ChatMessage: One message returned by a history source
- ExtractedLink: A candidate URL with the message it was shared in
- ArticleStub: The persisted record for an accepted link
- ClassificationVerdict: A classifier's accept/reject judgment
- Classified / ClassificationFailed: Tagged outcome of one classification call
- ChannelReport / SyncResult: Per-channel and run-level counters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import uuid


class SourceType(str, Enum):
    """Where an article record came from."""

    SLACK = "slack"
    MANUAL = "manual"
    IMPORT = "import"


class ContentType(str, Enum):
    ARTICLE = "article"
    TUTORIAL = "tutorial"
    DOCUMENTATION = "documentation"
    NEWS = "news"
    TOOL = "tool"
    VIDEO = "video"
    DISCUSSION = "discussion"
    INTERNAL = "internal"
    MEDIA = "media"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "ContentType":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class TechnicalDepth(str, Enum):
    NONE = "none"
    SHALLOW = "shallow"
    MODERATE = "moderate"
    DEEP = "deep"

    @classmethod
    def parse(cls, value: object) -> "TechnicalDepth":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NONE


@dataclass
class ChatMessage:
    """A single message from a chat history source.

    Attributes:
        text: Raw message text, including Slack link markup
        timestamp: When the message was posted (UTC)
        ts: Slack message id ("1700000000.000100"), if known
        user: Author id, if known
    """

    text: str
    timestamp: datetime
    ts: str | None = None
    user: str | None = None

    @classmethod
    def from_slack(cls, payload: dict) -> "ChatMessage":
        ts = str(payload.get("ts") or "0")
        return cls(
            text=payload.get("text") or "",
            timestamp=slack_ts_to_datetime(ts),
            ts=ts,
            user=payload.get("user"),
        )


@dataclass
class ExtractedLink:
    """A candidate URL found in chat history.

    The surrounding message text is kept as classification context and is
    discarded once the link has been classified.
    """

    url: str
    message_text: str
    timestamp: datetime


@dataclass
class ArticleStub:
    """An article record prior to enrichment.

    Attributes:
        id: Opaque unique id
        url: The article URL, unique across the store
        title: Display title; the URL until enrichment fills it in
        tags: Ordered tags; empty until enrichment
        source_type: Origin of the record
        source_channel_id: Slack channel the link was shared in
        created_at: When the link was originally shared
        processed_at: Set by the enrichment stage; always None here
    """

    id: str
    url: str
    title: str
    tags: list[str] = field(default_factory=list)
    source_type: SourceType = SourceType.SLACK
    source_channel_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None

    @classmethod
    def from_link(cls, link: ExtractedLink, channel_id: str) -> "ArticleStub":
        return cls(
            id=uuid.uuid4().hex,
            url=link.url,
            title=link.url,
            tags=[],
            source_type=SourceType.SLACK,
            source_channel_id=channel_id,
            created_at=link.timestamp,
        )


@dataclass
class ClassificationVerdict:
    """Accept/reject judgment for one candidate link.

    Only should_collect and reasoning drive the pipeline; the taxonomy
    fields are passed through from the classifier.
    """

    should_collect: bool
    reasoning: str
    content_type: ContentType = ContentType.OTHER
    technical_depth: TechnicalDepth = TechnicalDepth.NONE


CLASSIFICATION_FAILED_REASON = "classification failed"


@dataclass
class Classified:
    """The classifier returned a verdict."""

    verdict: ClassificationVerdict


@dataclass
class ClassificationFailed:
    """The classifier raised or timed out for this link.

    Attributes:
        reason: Fixed reasoning reported for the rejection
        error: Exception summary, for logs only
    """

    reason: str = CLASSIFICATION_FAILED_REASON
    error: str | None = None


ClassificationOutcome = Classified | ClassificationFailed


def resolve_verdict(outcome: ClassificationOutcome) -> ClassificationVerdict:
    """Collapse a classification outcome into a verdict; failures reject."""
    if isinstance(outcome, Classified):
        return outcome.verdict
    return ClassificationVerdict(should_collect=False, reasoning=outcome.reason)


@dataclass
class Rejection:
    """A link that was not collected, with the reason shown to the user."""

    url: str
    reasoning: str
    failed: bool = False


@dataclass
class ChannelReport:
    """Tallies for one channel sync.

    A channel that failed outright carries an error, the stage that failed
    ("connect", "fetch" or "ingest") and zero counters.
    """

    workspace: str
    channel_id: str
    channel_name: str
    seen: int = 0
    new: int = 0
    known: int = 0
    filtered: int = 0
    rejections: list[Rejection] = field(default_factory=list)
    error: str | None = None
    failed_stage: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncResult:
    """Aggregate counters for one sync run. Never persisted."""

    total_links_seen: int = 0
    new_articles: int = 0
    already_known: int = 0
    filtered_out: int = 0
    channels: list[ChannelReport] = field(default_factory=list)

    def add(self, report: ChannelReport) -> None:
        self.channels.append(report)
        if not report.ok:
            return
        self.total_links_seen += report.seen
        self.new_articles += report.new
        self.already_known += report.known
        self.filtered_out += report.filtered

    @property
    def failed_channels(self) -> list[ChannelReport]:
        return [report for report in self.channels if not report.ok]

    def counters(self) -> tuple[int, int, int, int]:
        return (
            self.total_links_seen,
            self.new_articles,
            self.already_known,
            self.filtered_out,
        )


def slack_ts_to_datetime(ts: str) -> datetime:
    """Convert a Slack message ts ("1700000000.000100") to a UTC datetime."""
    try:
        seconds = float(ts)
    except (TypeError, ValueError):
        seconds = 0.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
