"""Tone analysis over an LLMBackend."""

import logging
import time
from typing import Any

import httpx

from textpolish.ai.providers.base import ToneAnalyzer
from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.ai.providers.http import LLMBackend
from textpolish.ai.retry import RetryPolicy
from textpolish.ai.text.tone import (
    MIN_TONE_TEXT_LENGTH,
    TONE_MAX_OUTPUT_TOKENS,
    ToneAnalysisResult,
    build_tone_prompt,
    parse_tone_response,
)
from textpolish.config import ProviderConfig
from textpolish.exceptions import InvalidModelError, TextTooShortError

logger = logging.getLogger("providers.tone")


class LLMToneAnalyzer(ToneAnalyzer):
    """Single-prompt tone analyzer. Subclasses set ``backend_class`` and ``name``."""

    backend_class: type[LLMBackend]

    def __init__(
        self,
        config: ProviderConfig,
        credentials: CredentialResolver | None = None,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Any = None,
        **backend_kwargs: Any,
    ) -> None:
        self._config = config
        self._credentials = credentials or CredentialResolver()
        self._backend = self.backend_class(
            config, retry_policy=retry_policy, client=client, sleep=sleep, **backend_kwargs
        )

    @property
    def model(self) -> str:
        return self._backend.model

    @property
    def last_retry_count(self) -> int:
        return self._backend.retry_count

    async def aclose(self) -> None:
        await self._backend.aclose()

    async def analyze(self, text: str) -> ToneAnalysisResult:
        self._backend.retry_count = 0
        trimmed = text.strip()
        if len(trimmed) < MIN_TONE_TEXT_LENGTH:
            raise TextTooShortError()
        if not self.model:
            raise InvalidModelError(self.name)

        api_key = self._credentials.resolve(self.name, self._config.api_key)
        start_time = time.time()
        output = await self._backend.generate(
            build_tone_prompt(trimmed), api_key, max_output_tokens=TONE_MAX_OUTPUT_TOKENS
        )
        result = parse_tone_response(self.name, output)

        logger.info(
            "Tone analysis complete",
            extra={
                "service": "providers",
                "provider": self.name,
                "model": self.model,
                "retry_count": self.last_retry_count,
                "duration_ms": int((time.time() - start_time) * 1000),
                "metadata": {"tone": str(result.tone), "sentiment": str(result.sentiment)},
            },
        )
        return result
