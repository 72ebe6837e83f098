from textpolish.ai.providers.llm.openrouter import OpenRouterBackend
from textpolish.ai.providers.registry import register_tone_analyzer
from textpolish.ai.providers.tone.base import LLMToneAnalyzer


@register_tone_analyzer
class OpenRouterToneAnalyzer(LLMToneAnalyzer):
    backend_class = OpenRouterBackend

    @property
    def name(self) -> str:
        return "openrouter"
