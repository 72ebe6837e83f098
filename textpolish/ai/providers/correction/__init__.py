"""Correction provider implementations.

Importing this package registers every provider with the registry.
"""

from textpolish.ai.providers.correction.anthropic import AnthropicCorrectionProvider
from textpolish.ai.providers.correction.gemini import GeminiCorrectionProvider
from textpolish.ai.providers.correction.openai import OpenAICorrectionProvider
from textpolish.ai.providers.correction.openrouter import OpenRouterCorrectionProvider

__all__ = [
    "AnthropicCorrectionProvider",
    "GeminiCorrectionProvider",
    "OpenAICorrectionProvider",
    "OpenRouterCorrectionProvider",
]
