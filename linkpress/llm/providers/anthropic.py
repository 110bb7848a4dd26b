"""Anthropic Messages API classifier."""

from __future__ import annotations

from typing import Any

from .base import LLMClassifier


ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClassifier(LLMClassifier):
    """Classifier backed by the /v1/messages endpoint."""

    provider_label = "anthropic"

    async def _request(self, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "max_tokens": 256,
            "temperature": 0.1,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        url = f"{self.cfg.base_url.rstrip('/')}/v1/messages"
        resp = await self._get_client().post(url, headers=headers, json=payload)
        resp.raise_for_status()
        return _extract_text(resp.json())


def _extract_text(data: dict[str, Any]) -> str:
    blocks = data.get("content") if isinstance(data, dict) else None
    if not isinstance(blocks, list):
        return ""
    return "".join(
        str(block.get("text", ""))
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    )
