"""Recovery and fallback strategies plugged into the orchestrator."""

import logging
from collections.abc import Callable

from textpolish.ai.providers.base import CorrectionProvider
from textpolish.ai.providers.detection import ModelDetector
from textpolish.config import Settings
from textpolish.exceptions import AppError, CorrectionError, RequestFailedError, display_name
from textpolish.ports import FallbackSelector, RecoveryAction, Recoverer

logger = logging.getLogger("recovery")

ProviderBuilder = Callable[[str, Settings], CorrectionProvider]


class ModelRecoverer(Recoverer):
    """Swaps in an auto-detected model after 'model not found' or 'payment required'.

    Gemini 404 looks for another Gemini model. OpenRouter 404 looks for any
    working model and OpenRouter 402 insists on a free one. The detected model
    is written into a settings copy used to build the replacement provider.
    """

    def __init__(
        self,
        settings: Settings,
        detector: ModelDetector,
        build_provider: ProviderBuilder,
        on_model_detected: Callable[[str, str], None] | None = None,
    ) -> None:
        self._settings = settings
        self._detector = detector
        self._build_provider = build_provider
        self._on_model_detected = on_model_detected

    @property
    def settings(self) -> Settings:
        return self._settings

    async def aclose(self) -> None:
        await self._detector.aclose()

    async def recover(self, error: AppError, provider: CorrectionProvider) -> RecoveryAction | None:
        if not isinstance(error, RequestFailedError):
            return None

        name = error.provider
        try:
            if name == "gemini" and error.status == 404:
                model = await self._detector.detect_gemini_model(exclude=provider.model)
                message = f"Gemini model auto-detected: {model}"
            elif name == "openrouter" and error.status in (402, 404):
                prefer_free = error.status == 402
                model = await self._detector.detect_openrouter_model(
                    prefer_free=prefer_free, exclude=provider.model
                )
                if prefer_free:
                    message = f"OpenRouter switched to a working free model: {model}"
                else:
                    message = f"OpenRouter model auto-detected: {model}"
            else:
                return None
        except AppError as exc:
            logger.warning(
                "Model recovery failed",
                extra={
                    "service": "recovery",
                    "provider": name,
                    "model": provider.model,
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            return None

        self._settings = self._settings.with_model(name, model)
        if self._on_model_detected is not None:
            self._on_model_detected(name, model)

        logger.info(
            "Model recovered",
            extra={"service": "recovery", "provider": name, "model": model},
        )
        return RecoveryAction(message=message, provider=self._build_provider(name, self._settings))


class SettingsFallbackSelector(FallbackSelector):
    """Returns the configured fallback provider for provider-side failures."""

    def __init__(self, settings: Settings, build_provider: ProviderBuilder) -> None:
        self._settings = settings
        self._build_provider = build_provider

    def select(self, error: AppError, provider: CorrectionProvider) -> CorrectionProvider | None:
        name = self._settings.fallback_provider
        if not name or name == provider.name:
            return None
        if not isinstance(error, CorrectionError):
            return None

        logger.info(
            "Falling back to secondary provider",
            extra={
                "service": "recovery",
                "provider": name,
                "reason": error.code,
                "metadata": {"failed_provider": display_name(provider.name)},
            },
        )
        return self._build_provider(name, self._settings)
