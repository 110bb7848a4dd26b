"""LLM classification and observability."""

from .providers.anthropic import AnthropicClassifier
from .providers.base import ClassificationError, Classifier
from .providers.factory import available_providers, create_classifier
from .providers.gemini import GeminiClassifier
from .providers.openai_compatible import OpenAICompatibleClassifier
from .providers.rules import RuleBasedClassifier
from .tracing import channel_span, classify_span, flush, run_span, setup_langfuse, tracing_enabled

__all__ = [
    "AnthropicClassifier",
    "ClassificationError",
    "Classifier",
    "GeminiClassifier",
    "OpenAICompatibleClassifier",
    "RuleBasedClassifier",
    "create_classifier",
    "available_providers",
    "setup_langfuse",
    "tracing_enabled",
    "flush",
    "run_span",
    "channel_span",
    "classify_span",
]
