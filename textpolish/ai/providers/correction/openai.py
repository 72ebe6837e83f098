from textpolish.ai.providers.llm.openai import OpenAIBackend
from textpolish.ai.providers.pipeline import LLMCorrectionProvider
from textpolish.ai.providers.registry import register_correction_provider


@register_correction_provider
class OpenAICorrectionProvider(LLMCorrectionProvider):
    backend_class = OpenAIBackend

    @property
    def name(self) -> str:
        return "openai"

    @property
    def endpoint(self) -> str:
        return self._backend.endpoint
