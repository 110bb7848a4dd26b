"""Logging helpers shared by the sync stages and classifiers."""

from .logging import EventFormatter, clip, close_logger, log_event, open_llm_log, scrub, setup_logging

__all__ = [
    "setup_logging",
    "open_llm_log",
    "close_logger",
    "log_event",
    "scrub",
    "clip",
    "EventFormatter",
]
