"""Classifier factory and registry for hot-swappable LLM backends."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging

from ...config import DEFAULT_PROVIDER_BASE_URL, DEFAULT_PROVIDER_MODEL, LoggingConfig, ProviderConfig, get_api_key
from ...utils.logging import log_event
from .anthropic import AnthropicClassifier
from .base import Classifier, LLMClassifier
from .gemini import GeminiClassifier
from .openai_compatible import OpenAICompatibleClassifier
from .rules import RuleBasedClassifier


@dataclass(frozen=True)
class ProviderSpec:
    """A registered backend with the endpoint and model it uses by default."""

    builder: type[LLMClassifier]
    base_url: str
    model: str


_GEMINI = ProviderSpec(GeminiClassifier, DEFAULT_PROVIDER_BASE_URL, DEFAULT_PROVIDER_MODEL)
_OPENAI = ProviderSpec(OpenAICompatibleClassifier, "https://api.openai.com/v1", "gpt-4.1-mini")
_ANTHROPIC = ProviderSpec(AnthropicClassifier, "https://api.anthropic.com", "claude-haiku-4-5-20251001")

_PROVIDER_REGISTRY: dict[str, ProviderSpec] = {
    "gemini": _GEMINI,
    "openai": _OPENAI,
    "openai_compatible": _OPENAI,
    "openai-compatible": _OPENAI,
    "anthropic": _ANTHROPIC,
}

RULES_PROVIDER = "rules"


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted([*_PROVIDER_REGISTRY.keys(), RULES_PROVIDER])


def create_classifier(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
    logger: logging.Logger | None = None,
) -> Classifier:
    """Build a classifier from runtime config.

    Without an API key the rule-based classifier is returned instead of
    an LLM-backed one. A base_url or model still at the Gemini defaults
    is replaced with the selected provider's own default.

    Raises:
        ValueError: If the provider name is not registered
    """
    name = provider_cfg.name.lower().strip()
    if name == RULES_PROVIDER:
        return RuleBasedClassifier()
    provider_spec = _PROVIDER_REGISTRY.get(name)
    if provider_spec is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    api_key = get_api_key(provider_cfg)
    if not api_key:
        log_event(
            logger,
            f"No API key for provider {provider_cfg.name}; using rule-based classifier",
            level=logging.WARNING,
            event="classifier_fallback",
            provider=provider_cfg.name,
        )
        return RuleBasedClassifier()
    return provider_spec.builder(_with_provider_defaults(provider_cfg, provider_spec), api_key, log_cfg, llm_logger)


def _with_provider_defaults(provider_cfg: ProviderConfig, provider_spec: ProviderSpec) -> ProviderConfig:
    overrides = {}
    if provider_cfg.base_url == DEFAULT_PROVIDER_BASE_URL:
        overrides["base_url"] = provider_spec.base_url
    if provider_cfg.model == DEFAULT_PROVIDER_MODEL:
        overrides["model"] = provider_spec.model
    return replace(provider_cfg, **overrides) if overrides else provider_cfg
