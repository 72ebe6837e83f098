"""Factory functions for creating correction providers and tone analyzers.

Providers self-register at import time, so this factory only needs the
provider name. A provider that cannot be constructed (for example because
its base URL is invalid) is replaced by a FailingCorrectionProvider that
raises the construction error on every ``correct`` call (FailingToneAnalyzer
for ``analyze``), so the failure reaches the user through the normal error path.
"""

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any

import httpx

import textpolish.ai.providers.correction  # noqa: F401  (registers providers)
import textpolish.ai.providers.tone  # noqa: F401  (registers analyzers)
from textpolish.ai.providers.base import CorrectionProvider, ToneAnalyzer
from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.ai.providers.registry import get_provider_class, get_tone_analyzer_class
from textpolish.ai.retry import RetryPolicy
from textpolish.ai.text.tone import ToneAnalysisResult
from textpolish.config import Settings, get_settings
from textpolish.exceptions import (
    AppError,
    ConfigurationError,
    InvalidEndpointError,
    InvalidModelError,
    MissingCredentialError,
    TextTooShortError,
)

logger = logging.getLogger("providers")


class FailingCorrectionProvider(CorrectionProvider):
    """Stand-in for a provider whose construction failed."""

    def __init__(self, name: str, error: AppError, model: str = "") -> None:
        self._name = name
        self._error = error
        self._model = model
        self.last_retry_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    @property
    def error(self) -> AppError:
        return self._error

    async def correct(self, text: str) -> str:
        raise self._error


def retry_policy_from_settings(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_network_attempts=settings.max_network_attempts,
        max_backoff_seconds=settings.max_backoff_seconds,
        max_rate_limit_backoff_seconds=settings.max_rate_limit_backoff_seconds,
    )


def create_correction_provider(
    name: str | None = None,
    settings: Settings | None = None,
    credentials: CredentialResolver | None = None,
    client: httpx.AsyncClient | None = None,
    **kwargs: Any,
) -> CorrectionProvider:
    """Build a correction provider from settings.

    Args:
        name: Provider name (e.g., 'gemini', 'openrouter'). If None, uses settings.provider.
        settings: Settings snapshot. If None, uses get_settings().
        credentials: Resolver for API keys.
        client: Shared HTTP client (tests pass one backed by httpx.MockTransport).

    Raises:
        ProviderNotFoundError: If the provider is not registered.
    """
    settings = settings or get_settings()
    name = (name or settings.provider or "").lower().strip()

    provider_class = get_provider_class(name)
    config = settings.provider_config(name)

    try:
        instance = provider_class(
            config,
            credentials=credentials,
            retry_policy=retry_policy_from_settings(settings),
            client=client,
            **kwargs,
        )
    except AppError as exc:
        logger.warning(
            "Correction provider could not be initialized",
            extra={
                "service": "providers",
                "provider": name,
                "model": config.model,
                "error_code": exc.code,
                "error_message": exc.message,
            },
        )
        return FailingCorrectionProvider(name, exc, model=config.model)
    except (TypeError, ValueError) as exc:
        logger.error(
            "Correction provider initialization failed",
            extra={"service": "providers", "provider": name, "error": str(exc)},
            exc_info=True,
        )
        return FailingCorrectionProvider(
            name,
            ConfigurationError(f"Could not initialize {name} provider"),
            model=config.model,
        )

    logger.info(
        "Correction provider initialized",
        extra={"service": "providers", "provider": name, "model": instance.model},
    )
    return instance


@lru_cache
def get_correction_provider(name: str | None = None) -> CorrectionProvider:
    """Get a cached provider built from the cached settings."""
    return create_correction_provider(name)


# =============================================================================
# Tone Analyzers
# =============================================================================

# Configuration problems would fail the same way on the fallback provider.
_NO_FALLBACK_ERRORS = (
    MissingCredentialError,
    InvalidEndpointError,
    InvalidModelError,
    ConfigurationError,
    TextTooShortError,
)


class FailingToneAnalyzer(ToneAnalyzer):
    """Stand-in for an analyzer whose construction failed."""

    def __init__(self, name: str, error: AppError, model: str = "") -> None:
        self._name = name
        self._error = error
        self._model = model
        self.last_retry_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    async def analyze(self, text: str) -> ToneAnalysisResult:
        raise self._error


class FallbackToneAnalyzer(ToneAnalyzer):
    """Tries the primary analyzer, then a lazily built fallback on provider-side failures."""

    def __init__(self, primary: ToneAnalyzer, build_fallback: Callable[[], ToneAnalyzer]) -> None:
        self._primary = primary
        self._build_fallback = build_fallback
        self._fallback: ToneAnalyzer | None = None
        self._last_used: ToneAnalyzer = primary

    @property
    def name(self) -> str:
        return self._last_used.name

    @property
    def model(self) -> str:
        return self._last_used.model

    @property
    def primary(self) -> ToneAnalyzer:
        return self._primary

    @property
    def used_fallback(self) -> bool:
        return self._last_used is not self._primary

    @property
    def last_retry_count(self) -> int:
        retries = self._primary.last_retry_count
        if self.used_fallback:
            retries += self._last_used.last_retry_count
        return retries

    async def analyze(self, text: str) -> ToneAnalysisResult:
        self._last_used = self._primary
        try:
            return await self._primary.analyze(text)
        except _NO_FALLBACK_ERRORS:
            raise
        except AppError as exc:
            if self._fallback is None:
                self._fallback = self._build_fallback()
            logger.info(
                "Tone analysis falling back",
                extra={
                    "service": "providers",
                    "provider": self._fallback.name,
                    "reason": exc.code,
                    "metadata": {"failed_provider": self._primary.name},
                },
            )
            self._last_used = self._fallback
            return await self._fallback.analyze(text)

    async def aclose(self) -> None:
        await self._primary.aclose()
        if self._fallback is not None:
            await self._fallback.aclose()


def _build_tone_analyzer(
    name: str,
    settings: Settings,
    credentials: CredentialResolver | None,
    client: httpx.AsyncClient | None,
    **kwargs: Any,
) -> ToneAnalyzer:
    analyzer_class = get_tone_analyzer_class(name)
    config = settings.provider_config(name)
    try:
        return analyzer_class(
            config,
            credentials=credentials,
            retry_policy=retry_policy_from_settings(settings),
            client=client,
            **kwargs,
        )
    except AppError as exc:
        logger.warning(
            "Tone analyzer could not be initialized",
            extra={
                "service": "providers",
                "provider": name,
                "model": config.model,
                "error_code": exc.code,
                "error_message": exc.message,
            },
        )
        return FailingToneAnalyzer(name, exc, model=config.model)


def create_tone_analyzer(
    name: str | None = None,
    settings: Settings | None = None,
    credentials: CredentialResolver | None = None,
    client: httpx.AsyncClient | None = None,
    **kwargs: Any,
) -> ToneAnalyzer:
    """Build a tone analyzer, wrapped in a FallbackToneAnalyzer when a fallback provider is set.

    Raises:
        ProviderNotFoundError: If the analyzer is not registered.
    """
    settings = settings or get_settings()
    name = (name or settings.provider or "").lower().strip()

    primary = _build_tone_analyzer(name, settings, credentials, client, **kwargs)
    fallback_name = settings.fallback_provider
    if not fallback_name or fallback_name == name:
        return primary

    def _build_fallback() -> ToneAnalyzer:
        return _build_tone_analyzer(fallback_name, settings, credentials, client)

    return FallbackToneAnalyzer(primary, _build_fallback)
