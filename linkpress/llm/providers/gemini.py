"""Google Gemini classifier."""

from __future__ import annotations

from typing import Any

from .base import LLMClassifier


_CLASSIFICATION_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "should_collect": {"type": "BOOLEAN"},
        "reasoning": {"type": "STRING"},
        "content_type": {"type": "STRING"},
        "technical_depth": {"type": "STRING"},
    },
    "required": ["should_collect", "reasoning", "content_type", "technical_depth"],
}


class GeminiClassifier(LLMClassifier):
    """Gemini-backed link classifier using the generateContent endpoint."""

    provider_label = "gemini"

    async def _request(self, prompt: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.1,
                "maxOutputTokens": 256,
                "responseMimeType": "application/json",
                "responseSchema": _CLASSIFICATION_RESPONSE_SCHEMA,
            },
        }
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{self.cfg.model}:generateContent"
        resp = await self._get_client().post(url, params={"key": self.api_key}, json=payload)
        resp.raise_for_status()
        return _extract_text(resp.json())


def _extract_text(data: dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""

    if not isinstance(parts, list):
        return ""

    non_thought_chunks: list[str] = []
    all_chunks: list[str] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        text = part.get("text")
        if text is None:
            continue
        chunk = str(text)
        if not chunk:
            continue
        all_chunks.append(chunk)
        if not bool(part.get("thought")):
            non_thought_chunks.append(chunk)

    if non_thought_chunks:
        return "".join(non_thought_chunks)
    return "".join(all_chunks)
