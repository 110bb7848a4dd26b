"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- SlackConfig: Slack Web API client settings
- SyncConfig: History window and classification batching
- ProviderConfig: LLM classifier provider settings
- StoreConfig: Article database location
- LoggingConfig: Console, sync log and LLM log output
- TracingConfig: Optional Langfuse tracing
- SourcesConfig: Configured Slack workspaces and their channels
- AppConfig: Root configuration container

The loaded AppConfig is passed explicitly to the sync runner; nothing in
the package reads configuration from module state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG_DIR = Path("~/.linkpress")
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_PROVIDER_MODEL = "gemini-3-flash-preview"
DEFAULT_PROVIDER_BASE_URL = "https://generativelanguage.googleapis.com"


@dataclass
class SlackChannelConfig:
    """A single Slack conversation to sync.

    Attributes:
        id: Slack conversation id (e.g. "C0123456789")
        name: Display name used in reports
        is_private: Whether the channel is private
        is_self_dm: Whether this is the user's own DM ("saved links" channel)
    """

    id: str
    name: str = ""
    is_private: bool = False
    is_self_dm: bool = False

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass
class SlackSourceConfig:
    """A Slack workspace with session credentials and selected channels.

    Attributes:
        id: Local identifier for the source
        workspace: Workspace name shown in reports
        token: Slack client token (xoxc-...)
        cookie: Value of the Slack "d" session cookie
        channels: Channels to sync, in order
        added_at: ISO 8601 timestamp of when the source was added
    """

    id: str = ""
    workspace: str = ""
    token: str = ""
    cookie: str = ""
    channels: list[SlackChannelConfig] = field(default_factory=list)
    added_at: str | None = None


@dataclass
class SourcesConfig:
    """Configured link sources. Only Slack is supported."""

    slack: list[SlackSourceConfig] = field(default_factory=list)


@dataclass
class SlackConfig:
    """Configuration for the Slack Web API client.

    Attributes:
        base_url: Slack Web API base URL
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for transport errors and rate limits
        page_size: Maximum messages requested per history page (Slack caps at 200)
        trust_env: Whether to respect system proxy settings
    """

    base_url: str = "https://slack.com/api"
    timeout_seconds: float = 20.0
    retries: int = 2
    page_size: int = 200
    trust_env: bool = True


@dataclass
class SyncConfig:
    """Configuration for the ingestion pipeline.

    Attributes:
        history_limit: Number of most recent messages fetched per channel
        batch_size: Number of links classified concurrently per batch
        classify_timeout_seconds: Per-link classification timeout, None disables it
        silent: Suppress per-link rejection reasons in the console report
    """

    history_limit: int = 200
    batch_size: int = 5
    classify_timeout_seconds: float | None = 60.0
    silent: bool = False


@dataclass
class ProviderConfig:
    """Configuration for pluggable LLM classifier providers.

    Attributes:
        name: Provider name ("gemini", "openai", "openai_compatible", "anthropic" or "rules")
        model: Model identifier; left at the default, each provider substitutes its own
        api_key_env: Environment variable holding the API key (optional)
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: HTTP timeout for a single classification request
        max_chars: Maximum characters of message context sent to the model
    """

    name: str = "gemini"
    model: str = DEFAULT_PROVIDER_MODEL
    api_key_env: str | None = None
    base_url: str = DEFAULT_PROVIDER_BASE_URL
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 30.0
    max_chars: int = 2000


@dataclass
class StoreConfig:
    """Configuration for the article store.

    Attributes:
        path: SQLite database file; "~" is expanded
    """

    path: str = str(DEFAULT_CONFIG_DIR / "linkpress.db")

    def resolved_path(self) -> Path:
        return Path(self.path).expanduser()


@dataclass
class LoggingConfig:
    """Where sync events and raw classifier responses are written.

    Attributes:
        level: Threshold for console and sync log ("DEBUG" shows every rejected link)
        console: Print events through rich on stderr
        file: Also append events to sync.jsonl under log_dir
        log_dir: Directory for JSONL logs; "~" is expanded
        llm_log: Append each classifier response to llm.jsonl
        llm_log_prompts: Include the rendered prompt in llm.jsonl entries
        redaction: "urls" masks links, "content" drops text, "none" keeps everything
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = False
    log_dir: str = str(DEFAULT_CONFIG_DIR / "logs")
    llm_log: bool = False
    llm_log_prompts: bool = False
    redaction: str = "urls"

    def resolved_log_dir(self) -> Path:
        return Path(self.log_dir).expanduser()


@dataclass
class TracingConfig:
    """Langfuse tracing of runs, channels and classification calls.

    Keys fall back to LANGFUSE_PUBLIC_KEY / LANGFUSE_SECRET_KEY / LANGFUSE_HOST.
    Span payloads use the same redaction modes as LoggingConfig.
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    redaction: str = "urls"
    max_payload_chars: int = 8000


@dataclass
class AppConfig:
    """Root configuration, passed explicitly to the runner and CLI."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)


_SECTIONS = {
    "provider": ProviderConfig,
    "slack": SlackConfig,
    "sync": SyncConfig,
    "store": StoreConfig,
    "logging": LoggingConfig,
    "tracing": TracingConfig,
}


def load_config(path: str | Path | None) -> AppConfig:
    """Read a YAML config; sections and keys it omits keep their defaults.

    A missing path returns a fresh default config. Unknown top-level
    sections are ignored; unknown keys inside a section raise TypeError.
    """
    if not path:
        return AppConfig()

    with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    sections = {
        key: section(**(raw.get(key) or {}))
        for key, section in _SECTIONS.items()
    }
    return AppConfig(sources=_sources_fromdict(raw.get("sources") or {}), **sections)


def save_config(cfg: AppConfig, path: str | Path) -> None:
    """Write configuration back to YAML, creating the parent directory."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(cfg), f, sort_keys=False, allow_unicode=True)


def _sources_fromdict(data: dict[str, Any]) -> SourcesConfig:
    slack_sources = []
    for item in data.get("slack") or []:
        channels = [SlackChannelConfig(**channel) for channel in item.get("channels") or []]
        values = {key: value for key, value in item.items() if key != "channels"}
        slack_sources.append(SlackSourceConfig(channels=channels, **values))
    return SourcesConfig(slack=slack_sources)


_PROVIDER_KEY_ENV = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "openai_compatible": "OPENAI_API_KEY",
    "openai-compatible": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Resolve the API key: inline value, then api_key_env, then the provider's usual variable."""
    if cfg.api_key:
        return cfg.api_key
    env_name = cfg.api_key_env or _PROVIDER_KEY_ENV.get(cfg.name.lower())
    return os.getenv(env_name) if env_name else None
