"""HTTP backends for the supported LLM APIs."""

from textpolish.ai.providers.llm.anthropic import AnthropicBackend
from textpolish.ai.providers.llm.gemini import GeminiBackend
from textpolish.ai.providers.llm.openai import OpenAIBackend
from textpolish.ai.providers.llm.openrouter import OpenRouterBackend

__all__ = [
    "AnthropicBackend",
    "GeminiBackend",
    "OpenAIBackend",
    "OpenRouterBackend",
]
