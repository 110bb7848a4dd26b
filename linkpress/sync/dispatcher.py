"""
Batched classification of new links.

Links are classified in fixed-size batches. All calls of a batch run
concurrently and the dispatcher waits for every one of them to settle
before starting the next batch, so at most batch_size calls are ever in
flight. A call that raises or times out yields ClassificationFailed for
that link only.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from ..core.types import (
    ClassificationFailed,
    ClassificationOutcome,
    Classified,
    ExtractedLink,
)
from ..llm.providers.base import Classifier
from ..utils.logging import log_event


DEFAULT_BATCH_SIZE = 5

ClassifiedBatch = list[tuple[ExtractedLink, ClassificationOutcome]]


class ClassificationDispatcher:
    """Runs a classifier over links with bounded concurrency."""

    def __init__(
        self,
        classifier: Classifier,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_seconds: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.classifier = classifier
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds
        self.logger = logger

    async def iter_batches(self, links: list[ExtractedLink]) -> AsyncIterator[ClassifiedBatch]:
        """Yield (link, outcome) pairs one settled batch at a time.

        Pairs keep the input order regardless of which call finished first.
        """
        for start in range(0, len(links), self.batch_size):
            batch = links[start : start + self.batch_size]
            outcomes = await asyncio.gather(*(self._classify_one(link) for link in batch))
            yield list(zip(batch, outcomes))

    async def dispatch(self, links: list[ExtractedLink]) -> ClassifiedBatch:
        results: ClassifiedBatch = []
        async for batch in self.iter_batches(links):
            results.extend(batch)
        return results

    async def _classify_one(self, link: ExtractedLink) -> ClassificationOutcome:
        call = self.classifier.classify(link.message_text, link.url, "", "")
        try:
            if self.timeout_seconds is not None:
                verdict = await asyncio.wait_for(call, timeout=self.timeout_seconds)
            else:
                verdict = await call
        except asyncio.TimeoutError:
            log_event(
                self.logger,
                "Classification timed out",
                level=logging.WARNING,
                event="classification_failed",
                url=link.url,
                error="timeout",
            )
            return ClassificationFailed(error="timeout")
        except Exception as exc:  # noqa: BLE001
            error = f"{type(exc).__name__}: {exc}"
            log_event(
                self.logger,
                "Classification failed",
                level=logging.WARNING,
                event="classification_failed",
                url=link.url,
                error=error,
            )
            return ClassificationFailed(error=error)
        return Classified(verdict)
