"""Protect, prompt, validate, restore: the attempt loop every provider shares."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from textpolish.ai.providers.base import CorrectionProvider, CorrectionRequest
from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.ai.providers.http import LLMBackend
from textpolish.ai.retry import RetryPolicy
from textpolish.ai.text.acceptance import AcceptancePolicy, similarity
from textpolish.ai.text.cleanup import clean_output
from textpolish.ai.text.prompts import build_prompt
from textpolish.ai.text.protection import TextProtector
from textpolish.config import ProviderConfig
from textpolish.exceptions import EmptyResponseError, InvalidModelError, OverRewriteError

logger = logging.getLogger("providers")


async def correct_with_attempts(
    provider: str,
    request: CorrectionRequest,
    min_similarity: float,
    generate: Callable[[str], Awaitable[str]],
    protector: TextProtector | None = None,
) -> str:
    """Run up to ``request.attempt_budget`` prompts until one yields an acceptable candidate.

    Raises:
        EmptyResponseError: The cleaned output was empty.
        OverRewriteError: No attempt produced an acceptable candidate.
    """
    protector = protector or TextProtector()
    text = request.raw_text
    protected = protector.protect(text)
    budget = max(1, request.attempt_budget)

    for attempt in range(1, budget + 1):
        prompt = build_prompt(
            protected.text,
            attempt=attempt,
            language=request.language_hint,
            extra_instruction=request.extra_instruction,
        )
        raw = await generate(prompt)
        cleaned = clean_output(raw, protected.text)
        if not cleaned.strip():
            raise EmptyResponseError(provider)

        if not protector.placeholders_all_present(cleaned, protected.placeholders):
            logger.info(
                "Candidate dropped protected placeholders",
                extra={"service": "providers", "provider": provider, "attempt": attempt},
            )
            continue

        restored = protector.restore(cleaned, protected.placeholders)
        if AcceptancePolicy.is_acceptable(text, restored, min_similarity):
            return restored

        logger.info(
            "Candidate rejected as over-rewrite",
            extra={
                "service": "providers",
                "provider": provider,
                "attempt": attempt,
                "metadata": {"similarity": round(similarity(text, restored), 3)},
            },
        )

    raise OverRewriteError(provider, attempts=budget)


class LLMCorrectionProvider(CorrectionProvider):
    """Correction provider that sends its prompts through one LLMBackend.

    Subclasses set ``backend_class`` and the registry ``name``.
    """

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
    def backend(self) -> LLMBackend:
        return self._backend

    @property
    def last_retry_count(self) -> int:
        return self._backend.retry_count

    async def aclose(self) -> None:
        await self._backend.aclose()

    async def correct(self, text: str) -> str:
        self._backend.retry_count = 0
        if not text.strip():
            return text
        if not self.model:
            raise InvalidModelError(self.name)

        api_key = self._credentials.resolve(self.name, self._config.api_key)
        request = CorrectionRequest(
            raw_text=text,
            attempt_budget=self._config.max_attempts,
            language_hint=self._config.language,
            extra_instruction=self._config.extra_instruction or None,
        )

        start_time = time.time()
        logger.info(
            "Correction started",
            extra={"service": "providers", "provider": self.name, "model": self.model},
        )

        async def _generate(prompt: str) -> str:
            return await self._backend.generate(prompt, api_key)

        result = await correct_with_attempts(
            self.name, request, self._config.min_similarity, _generate
        )

        logger.info(
            "Correction complete",
            extra={
                "service": "providers",
                "provider": self.name,
                "model": self.model,
                "retry_count": self.last_retry_count,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return result
