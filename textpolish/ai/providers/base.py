"""Abstract base classes for correction providers and tone analyzers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from textpolish.config import CorrectionLanguage

if TYPE_CHECKING:
    from textpolish.ai.text.tone import ToneAnalysisResult


@dataclass(frozen=True)
class CorrectionRequest:
    """One correction job as seen by the prompt loop."""

    raw_text: str
    attempt_budget: int
    language_hint: CorrectionLanguage = CorrectionLanguage.AUTO
    extra_instruction: str | None = None


class CorrectionProvider(ABC):
    """Abstract base class for correction backends (Gemini, OpenRouter, OpenAI, Anthropic)."""

    last_retry_count: int = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used for registry lookup and diagnostics."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        pass

    @abstractmethod
    async def correct(self, text: str) -> str:
        """Return a minimally corrected copy of ``text``.

        Raises:
            MissingCredentialError, InvalidEndpointError, RequestFailedError,
            EmptyResponseError, OverRewriteError, BlockedError
        """
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None


class ToneAnalyzer(ABC):
    """Abstract base class for tone analysis backends."""

    last_retry_count: int = 0

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        pass

    @abstractmethod
    async def analyze(self, text: str) -> "ToneAnalysisResult":
        """Classify the tone, sentiment and formality of ``text``.

        Raises:
            TextTooShortError, MissingCredentialError, RequestFailedError,
            EmptyResponseError, InvalidToneResponseError
        """
        pass

    async def aclose(self) -> None:
        return None
