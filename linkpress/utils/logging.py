"""
Logging for sync runs.

Pipeline stages report through log_event(logger, message, event=..., **fields).
The console gets rich-formatted messages; the optional sync log file and the
optional LLM interaction log get one JSON object per line, with the event
fields at the top level.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig


LOGGER_NAME = "linkpress"
SYNC_LOG_FILE = "sync.jsonl"
LLM_LOG_FILE = "llm.jsonl"

REDACTED_URL = "[REDACTED_URL]"
_URL_RE = re.compile(r"https?://\S+")

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the "linkpress" logger for one run, replacing earlier handlers."""
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)

    if cfg.file:
        logger.addHandler(_jsonl_handler((log_dir or cfg.resolved_log_dir()) / SYNC_LOG_FILE))

    return logger


def open_llm_log(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger | None:
    """Return the logger for raw classifier responses, or None when disabled."""
    if not cfg.llm_log:
        return None
    logger = logging.getLogger(f"{LOGGER_NAME}.llm")
    logger.setLevel(logging.INFO)
    logger.handlers = [_jsonl_handler((log_dir or cfg.resolved_log_dir()) / LLM_LOG_FILE)]
    logger.propagate = False
    return logger


def close_logger(logger: logging.Logger | None) -> None:
    if logger is None:
        return
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def scrub(text: str, mode: str) -> str:
    """Apply a redaction mode: "none", "urls" (mask links) or "content" (drop text)."""
    if mode == "content":
        return ""
    if mode == "urls":
        return _URL_RE.sub(REDACTED_URL, text)
    return text


def clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...(truncated)"


class EventFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, message and event fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _jsonl_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(EventFormatter())
    return handler
