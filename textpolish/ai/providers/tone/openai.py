from textpolish.ai.providers.llm.openai import OpenAIBackend
from textpolish.ai.providers.registry import register_tone_analyzer
from textpolish.ai.providers.tone.base import LLMToneAnalyzer


@register_tone_analyzer
class OpenAIToneAnalyzer(LLMToneAnalyzer):
    backend_class = OpenAIBackend

    @property
    def name(self) -> str:
        return "openai"
