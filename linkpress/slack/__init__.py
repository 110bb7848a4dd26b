"""Slack history access."""

from .client import HistorySource, SlackAPIError, SlackClient

__all__ = ["HistorySource", "SlackAPIError", "SlackClient"]
