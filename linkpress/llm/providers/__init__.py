"""Link classifier backends."""

from .anthropic import AnthropicClassifier
from .base import ClassificationError, Classifier, LLMClassifier
from .factory import available_providers, create_classifier
from .gemini import GeminiClassifier
from .openai_compatible import OpenAICompatibleClassifier
from .rules import RuleBasedClassifier

__all__ = [
    "AnthropicClassifier",
    "ClassificationError",
    "Classifier",
    "LLMClassifier",
    "GeminiClassifier",
    "OpenAICompatibleClassifier",
    "RuleBasedClassifier",
    "available_providers",
    "create_classifier",
]
