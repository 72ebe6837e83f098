from textpolish.ai.providers.llm.gemini import GeminiBackend
from textpolish.ai.providers.registry import register_tone_analyzer
from textpolish.ai.providers.tone.base import LLMToneAnalyzer


@register_tone_analyzer
class GeminiToneAnalyzer(LLMToneAnalyzer):
    backend_class = GeminiBackend

    @property
    def name(self) -> str:
        return "gemini"
