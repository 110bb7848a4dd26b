"""OpenAI-compatible chat completions classifier."""

from __future__ import annotations

from typing import Any

from .base import LLMClassifier


class OpenAICompatibleClassifier(LLMClassifier):
    """Classifier for any endpoint speaking the /chat/completions protocol."""

    provider_label = "openai_compatible"

    async def _request(self, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.1,
            "max_tokens": 256,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        resp = await self._get_client().post(url, headers=headers, json=payload)
        resp.raise_for_status()
        return _extract_text(resp.json())


def _extract_text(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    if isinstance(content, list):
        return "".join(
            str(part.get("text", "")) for part in content if isinstance(part, dict)
        )
    return str(content or "")
