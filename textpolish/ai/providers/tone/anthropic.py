from textpolish.ai.providers.llm.anthropic import AnthropicBackend
from textpolish.ai.providers.registry import register_tone_analyzer
from textpolish.ai.providers.tone.base import LLMToneAnalyzer


@register_tone_analyzer
class AnthropicToneAnalyzer(LLMToneAnalyzer):
    backend_class = AnthropicBackend

    @property
    def name(self) -> str:
        return "anthropic"
