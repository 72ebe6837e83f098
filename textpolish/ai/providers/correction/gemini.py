from textpolish.ai.providers.llm.gemini import GeminiBackend
from textpolish.ai.providers.pipeline import LLMCorrectionProvider
from textpolish.ai.providers.registry import register_correction_provider


@register_correction_provider
class GeminiCorrectionProvider(LLMCorrectionProvider):
    """Corrections through Gemini ``generateContent``."""

    backend_class = GeminiBackend

    @property
    def name(self) -> str:
        return "gemini"
