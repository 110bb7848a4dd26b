"""Ingestion pipeline stages: existence filter, classification dispatch, per-channel coordination."""

from .coordinator import IngestionCoordinator, channel_failure
from .dispatcher import DEFAULT_BATCH_SIZE, ClassificationDispatcher
from .existence import partition_links

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ClassificationDispatcher",
    "IngestionCoordinator",
    "channel_failure",
    "partition_links",
]
