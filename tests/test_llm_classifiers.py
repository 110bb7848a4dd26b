"""Tests for LLM-backed classifiers and their response parsing."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from linkpress.config import LoggingConfig, ProviderConfig
from linkpress.core.types import ContentType, TechnicalDepth
from linkpress.llm.prompts import build_classification_prompt
from linkpress.llm.providers.anthropic import AnthropicClassifier
from linkpress.llm.providers.base import ClassificationError, parse_json_response, verdict_from_payload
from linkpress.llm.providers.gemini import GeminiClassifier, _extract_text
from linkpress.llm.providers.openai_compatible import OpenAICompatibleClassifier


def _gemini_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _classify(classifier, handler, **kwargs):
    classifier._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async def runner():
        try:
            return await classifier.classify(**kwargs)
        finally:
            await classifier.aclose()

    return asyncio.run(runner())


def _gemini(**overrides) -> GeminiClassifier:
    cfg = ProviderConfig(name="gemini", model="gemini-test", **overrides)
    return GeminiClassifier(cfg, "test-key", LoggingConfig())


def test_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '{"should_collect": true'},
                        {"text": ', "reasoning": "tutorial"}'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '{"should_collect": true, "reasoning": "tutorial"}'


def test_extract_text_falls_back_to_all_text_when_only_thought():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "first"},
                        {"thought": True, "text": " second"},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == "first second"


def test_gemini_classify_returns_verdict():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        payload = {
            "should_collect": True,
            "reasoning": "In-depth tutorial",
            "content_type": "tutorial",
            "technical_depth": "deep",
        }
        return httpx.Response(200, json=_gemini_response(json.dumps(payload)))

    verdict = _classify(
        _gemini(),
        handler,
        message_text="great read on async IO",
        url="https://blog.example.com/async-io",
    )

    assert verdict.should_collect is True
    assert verdict.reasoning == "In-depth tutorial"
    assert verdict.content_type is ContentType.TUTORIAL
    assert verdict.technical_depth is TechnicalDepth.DEEP
    request = seen[0]
    assert request.url.path == "/v1beta/models/gemini-test:generateContent"
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    prompt = body["contents"][0]["parts"][0]["text"]
    assert "https://blog.example.com/async-io" in prompt
    assert "great read on async IO" in prompt


def test_gemini_classify_accepts_fenced_json():
    def handler(request: httpx.Request) -> httpx.Response:
        text = 'Here you go:\n```json\n{"should_collect": false, "reasoning": "login page"}\n```'
        return httpx.Response(200, json=_gemini_response(text))

    verdict = _classify(_gemini(), handler, message_text="", url="https://a.com/login")

    assert verdict.should_collect is False
    assert verdict.reasoning == "login page"
    assert verdict.content_type is ContentType.OTHER


def test_http_error_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(ClassificationError, match="HTTPStatusError"):
        _classify(_gemini(), handler, message_text="", url="https://a.com/x")


def test_unparseable_response_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_response("I think this is an article."))

    with pytest.raises(ClassificationError):
        _classify(_gemini(), handler, message_text="", url="https://a.com/x")


def test_missing_should_collect_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_response('{"reasoning": "unsure"}'))

    with pytest.raises(ClassificationError, match="should_collect"):
        _classify(_gemini(), handler, message_text="", url="https://a.com/x")


def test_openai_compatible_classify():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        content = json.dumps({"should_collect": "yes", "reasoning": "news", "content_type": "news"})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    cfg = ProviderConfig(name="openai", model="gpt-test", base_url="https://llm.example/v1/")
    classifier = OpenAICompatibleClassifier(cfg, "sk-test", LoggingConfig())

    verdict = _classify(classifier, handler, message_text="today", url="https://news.example/a")

    assert verdict.should_collect is True
    assert verdict.content_type is ContentType.NEWS
    request = seen[0]
    assert str(request.url) == "https://llm.example/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert json.loads(request.content)["model"] == "gpt-test"


def test_llm_log_records_redacted_response(tmp_path):
    from linkpress.utils.logging import close_logger, open_llm_log

    log_cfg = LoggingConfig(llm_log=True)
    llm_logger = open_llm_log(log_cfg, log_dir=tmp_path)
    classifier = GeminiClassifier(ProviderConfig(model="gemini-test"), "k", log_cfg, llm_logger)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=_gemini_response('{"should_collect": true, "reasoning": "see https://a.com/x"}'),
        )

    try:
        _classify(classifier, handler, message_text="", url="https://a.com/x")
    finally:
        close_logger(llm_logger)

    record = json.loads((tmp_path / "llm.jsonl").read_text(encoding="utf-8").splitlines()[0])
    assert record["event"] == "llm_response"
    assert record["status"] == "ok"
    assert record["url"] == "[REDACTED_URL]"
    assert "https://a.com/x" not in record["response"]
    assert "[REDACTED_URL]" in record["response"]
    assert "prompt" not in record


def test_missing_api_key_rejected():
    with pytest.raises(ValueError, match="Missing API key"):
        GeminiClassifier(ProviderConfig(), None, LoggingConfig())


def test_verdict_from_payload_unknown_taxonomy_values():
    verdict = verdict_from_payload(
        {"should_collect": False, "reasoning": " promo ", "content_type": "podcast", "technical_depth": 3}
    )
    assert verdict.reasoning == "promo"
    assert verdict.content_type is ContentType.OTHER
    assert verdict.technical_depth is TechnicalDepth.NONE


def test_parse_json_response_finds_embedded_object():
    assert parse_json_response('prefix {"should_collect": true} suffix') == {"should_collect": True}


def test_prompt_truncates_message_context():
    prompt = build_classification_prompt(
        "x" * 50,
        "https://a.com/x",
        "",
        "",
        ProviderConfig(max_chars=10),
    )
    assert "x" * 10 in prompt
    assert "x" * 11 not in prompt
    assert "(unknown)" in prompt


def test_anthropic_classify():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        content = json.dumps({"should_collect": True, "reasoning": "design write-up", "content_type": "article"})
        return httpx.Response(
            200,
            json={"content": [{"type": "thinking", "thinking": "hmm"}, {"type": "text", "text": content}]},
        )

    cfg = ProviderConfig(name="anthropic", model="claude-test", base_url="https://api.anthropic.com")
    classifier = AnthropicClassifier(cfg, "sk-ant-test", LoggingConfig())

    verdict = _classify(classifier, handler, message_text="worth a read", url="https://eng.example/post")

    assert verdict.should_collect is True
    assert verdict.content_type is ContentType.ARTICLE
    request = seen[0]
    assert str(request.url) == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "sk-ant-test"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["model"] == "claude-test"
    assert "https://eng.example/post" in body["messages"][0]["content"]


def test_anthropic_error_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(529, json={"type": "error", "error": {"type": "overloaded_error"}})

    classifier = AnthropicClassifier(ProviderConfig(name="anthropic", model="claude-test"), "k", LoggingConfig())

    with pytest.raises(ClassificationError):
        _classify(classifier, handler, message_text="", url="https://a.com/x")
