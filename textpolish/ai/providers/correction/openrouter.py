from textpolish.ai.providers.llm.openrouter import OpenRouterBackend
from textpolish.ai.providers.pipeline import LLMCorrectionProvider
from textpolish.ai.providers.registry import register_correction_provider


@register_correction_provider
class OpenRouterCorrectionProvider(LLMCorrectionProvider):
    """Corrections through OpenRouter chat completions.

    Accepts the backend's ``http_referer`` and ``x_title`` keyword arguments.
    """

    backend_class = OpenRouterBackend

    @property
    def name(self) -> str:
        return "openrouter"
