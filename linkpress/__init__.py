"""
linkpress - collect links shared in Slack into a reading list.

This package scans recent Slack channel history for shared URLs, skips
links that are already stored, asks a language model (or a rule-based
fallback) whether each new link is worth reading, and stores accepted
links as article stubs for later enrichment.

Main entry point is the CLI via `linkpress sync` command.

Example:
    $ linkpress sync --config ~/.linkpress/config.yaml
"""

__all__ = ["__version__", "extract_links", "run_sync", "sync_sources", "SyncResult"]
__version__ = "0.1.0"

from .core.links import extract_links
from .core.types import SyncResult
from .runner import run_sync, sync_sources
