"""Abstract interface for link classifiers and shared response parsing."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.types import ClassificationVerdict, ContentType, TechnicalDepth
from ...utils.logging import clip, log_event, scrub
from ..prompts import build_classification_prompt
from ..tracing import classify_span, record_span_error, set_span_output


_LLM_LOG_MAX_CHARS = 20000


class ClassificationError(Exception):
    """A classifier could not produce a verdict for one link."""


class Classifier(ABC):
    """Decides whether a shared link is worth collecting.

    Implementations must be safe to call concurrently from one event loop.
    """

    name: str = "classifier"

    @abstractmethod
    async def classify(
        self,
        message_text: str,
        url: str,
        title: str = "",
        description: str = "",
    ) -> ClassificationVerdict:
        """Return a verdict for one link.

        Args:
            message_text: The chat message the link was shared in
            url: The candidate URL
            title: Page title, may be empty
            description: Page description, may be empty

        Raises:
            ClassificationError: If the provider call or its response fails
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the classifier."""
        return None


class LLMClassifier(Classifier):
    """Base class for classifiers backed by a hosted text-generation API.

    Subclasses implement _request(prompt) and return the raw model text.
    One httpx.AsyncClient is shared by all concurrent calls.
    """

    provider_label = "llm"

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
    ):
        if not api_key:
            raise ValueError(f"Missing API key for provider {cfg.name}")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"{self.provider_label}:{self.cfg.model}"

    async def classify(
        self,
        message_text: str,
        url: str,
        title: str = "",
        description: str = "",
    ) -> ClassificationVerdict:
        prompt = build_classification_prompt(message_text, url, title, description, self.cfg)
        content = ""
        with classify_span(self.provider_label, self.cfg.model, url, prompt) as span:
            try:
                content = await self._request(prompt)
                set_span_output(span, content)
                verdict = verdict_from_payload(parse_json_response(content))
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response(url, "provider_error", str(exc), prompt)
                raise ClassificationError(f"{type(exc).__name__}: {exc}") from exc
            except json.JSONDecodeError as exc:
                record_span_error(span, exc)
                self._log_llm_response(url, "parse_error", content, prompt)
                raise ClassificationError("Unparseable classifier response") from exc
            except ClassificationError as exc:
                record_span_error(span, exc)
                self._log_llm_response(url, "parse_error", content, prompt)
                raise

        self._log_llm_response(url, "ok", content, prompt)
        return verdict

    @abstractmethod
    async def _request(self, prompt: str) -> str:
        raise NotImplementedError

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds,
                trust_env=self.cfg.trust_env,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _log_llm_response(self, url: str, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.redaction
        payload = {
            "event": "llm_response",
            "status": status,
            "model": self.cfg.model,
            "provider": self.provider_label,
            "url": scrub(url, redaction),
            "response": clip(scrub(content, redaction), _LLM_LOG_MAX_CHARS),
        }
        if self.log_cfg.llm_log_prompts:
            payload["prompt"] = clip(scrub(prompt, redaction), _LLM_LOG_MAX_CHARS)
        log_event(self.llm_logger, f"{self.name} {status}", **payload)


def verdict_from_payload(obj: dict[str, Any]) -> ClassificationVerdict:
    """Build a verdict from a provider's JSON object.

    should_collect must be present; everything else is optional.
    """
    if not isinstance(obj, dict) or "should_collect" not in obj:
        raise ClassificationError("Response is missing should_collect")
    should_collect = obj["should_collect"]
    if isinstance(should_collect, str):
        should_collect = should_collect.strip().lower() in {"true", "yes", "1"}
    return ClassificationVerdict(
        should_collect=bool(should_collect),
        reasoning=str(obj.get("reasoning") or "").strip(),
        content_type=ContentType.parse(obj.get("content_type")),
        technical_depth=TechnicalDepth.parse(obj.get("technical_depth")),
    )


def parse_json_response(content: str) -> dict[str, Any]:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
