"""Correction providers, tone analyzers and their shared plumbing."""

from textpolish.ai.providers.base import CorrectionProvider, CorrectionRequest, ToneAnalyzer
from textpolish.ai.providers.correction import (
    AnthropicCorrectionProvider,
    GeminiCorrectionProvider,
    OpenAICorrectionProvider,
    OpenRouterCorrectionProvider,
)
from textpolish.ai.providers.factory import (
    FailingCorrectionProvider,
    FailingToneAnalyzer,
    FallbackToneAnalyzer,
    create_correction_provider,
    create_tone_analyzer,
    get_correction_provider,
)
from textpolish.ai.providers.tone import (
    AnthropicToneAnalyzer,
    GeminiToneAnalyzer,
    OpenAIToneAnalyzer,
    OpenRouterToneAnalyzer,
)

__all__ = [
    "CorrectionProvider",
    "CorrectionRequest",
    "ToneAnalyzer",
    "AnthropicCorrectionProvider",
    "GeminiCorrectionProvider",
    "OpenAICorrectionProvider",
    "OpenRouterCorrectionProvider",
    "AnthropicToneAnalyzer",
    "GeminiToneAnalyzer",
    "OpenAIToneAnalyzer",
    "OpenRouterToneAnalyzer",
    "FailingCorrectionProvider",
    "FailingToneAnalyzer",
    "FallbackToneAnalyzer",
    "create_correction_provider",
    "create_tone_analyzer",
    "get_correction_provider",
]
