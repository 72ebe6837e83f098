from textpolish.ai.providers.llm.anthropic import AnthropicBackend
from textpolish.ai.providers.pipeline import LLMCorrectionProvider
from textpolish.ai.providers.registry import register_correction_provider


@register_correction_provider
class AnthropicCorrectionProvider(LLMCorrectionProvider):
    """Corrections through the Anthropic Messages API."""

    backend_class = AnthropicBackend

    @property
    def name(self) -> str:
        return "anthropic"
