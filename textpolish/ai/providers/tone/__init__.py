"""Tone analyzer implementations.

Importing this package registers every analyzer with the registry.
"""

from textpolish.ai.providers.tone.anthropic import AnthropicToneAnalyzer
from textpolish.ai.providers.tone.gemini import GeminiToneAnalyzer
from textpolish.ai.providers.tone.openai import OpenAIToneAnalyzer
from textpolish.ai.providers.tone.openrouter import OpenRouterToneAnalyzer

__all__ = [
    "AnthropicToneAnalyzer",
    "GeminiToneAnalyzer",
    "OpenAIToneAnalyzer",
    "OpenRouterToneAnalyzer",
]
