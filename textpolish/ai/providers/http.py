"""Shared HTTP plumbing for the LLM backends.

Every backend sends one JSON POST per network attempt and maps the result
onto a RetryDecision. Only the URL, headers, payload, success parser and
the wording of user-facing errors differ between providers.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from textpolish.ai.retry import (
    TRANSPORT_FAILURE,
    RetryDecision,
    RetryPolicy,
    Success,
    parse_retry_after,
)
from textpolish.ai.sanitize import sanitize_error_message
from textpolish.config import ProviderConfig
from textpolish.exceptions import InvalidEndpointError, InvalidModelError, RequestFailedError

logger = logging.getLogger("providers")

USER_AGENT = "TextPolish/0.1"
MAX_OUTPUT_TOKENS = 1024
ERROR_BODY_PREVIEW = 240


def validate_base_url(provider: str, base_url: str) -> str:
    """Return ``base_url`` without a trailing slash.

    Raises:
        InvalidEndpointError: If it is not an absolute http(s) URL.
    """
    candidate = (base_url or "").strip().rstrip("/")
    try:
        url = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError):
        raise InvalidEndpointError(provider, base_url) from None
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidEndpointError(provider, base_url)
    return candidate


def extract_error_message(body: str) -> str:
    """Pull a readable message out of a provider error envelope."""
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message") or error.get("status") or error.get("type")
            if message:
                return str(message)
        elif isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])

    return body[:ERROR_BODY_PREVIEW]


async def send_with_retry(
    provider: str,
    model: str,
    policy: RetryPolicy,
    send: Callable[[], Awaitable[httpx.Response]],
    parse_success: Callable[[httpx.Response], str],
    describe_error: Callable[[int, str], str],
    on_retry: Callable[[int, float, Exception], None] | None = None,
    overloaded_status: int | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> str:
    """Run ``send`` under the retry policy and return the parsed text.

    Args:
        send: Issues one HTTP request.
        parse_success: Extracts the text from a 2xx response. May raise
            EmptyResponseError or BlockedError, which are never retried.
        describe_error: Maps (status, sanitized server message) to the
            user-facing message. Status is -1 for transport failures.
        overloaded_status: Provider-specific status treated like 5xx.
    """

    async def _attempt(attempt: int, is_last: bool) -> RetryDecision:
        start_time = time.time()
        try:
            response = await send()
        except httpx.TransportError as exc:
            detail = sanitize_error_message(str(exc) or type(exc).__name__) or type(exc).__name__
            error = RequestFailedError(provider, TRANSPORT_FAILURE, describe_error(TRANSPORT_FAILURE, detail))
            logger.warning(
                "Provider request transport failure",
                extra={
                    "service": "providers",
                    "provider": provider,
                    "model": model,
                    "attempt": attempt + 1,
                    "error": detail,
                },
            )
            return policy.decide(TRANSPORT_FAILURE, attempt, error)

        duration_ms = int((time.time() - start_time) * 1000)
        status = response.status_code
        if 200 <= status < 300:
            logger.debug(
                "Provider request complete",
                extra={
                    "service": "providers",
                    "provider": provider,
                    "model": model,
                    "status": status,
                    "attempt": attempt + 1,
                    "duration_ms": duration_ms,
                },
            )
            return Success(parse_success(response))

        body = response.text
        detail = sanitize_error_message(extract_error_message(body)) or f"HTTP {status}"
        error = RequestFailedError(provider, status, describe_error(status, detail))
        retry_after = parse_retry_after(response.headers, body) if status == 429 else None

        logger.warning(
            "Provider request failed",
            extra={
                "service": "providers",
                "provider": provider,
                "model": model,
                "status": status,
                "attempt": attempt + 1,
                "retry_after": retry_after,
                "duration_ms": duration_ms,
                "error": detail,
            },
        )
        return policy.decide(status, attempt, error, retry_after, overloaded_status)

    return await policy.perform_with_backoff(_attempt, on_retry=on_retry, sleep=sleep)


def json_headers(extra: dict[str, str] | None = None) -> dict[str, str]:
    headers: dict[str, str] = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }
    if extra:
        headers.update(extra)
    return headers


def read_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def chat_completion_text(data: dict[str, Any]) -> str:
    """Text of ``choices[0].message.content`` in an OpenAI-compatible response.

    Any level with an unexpected shape yields an empty string.
    """
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first_choice = choices[0]
    if not isinstance(first_choice, dict):
        return ""
    message = first_choice.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, list):
        return "".join(
            str(part.get("text") or "") for part in content if isinstance(part, dict)
        )
    if isinstance(content, str):
        return content
    return ""


class LLMBackend(ABC):
    """One HTTP text-generation API (URL, headers, payload, parsing, error wording).

    Correction providers and tone analyzers both send their prompts through
    ``generate``, which runs every request under the retry policy.
    """

    overloaded_status: int | None = None

    def __init__(
        self,
        config: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._config = config
        self._base_url = validate_base_url(self.name, config.base_url)
        self._model = self.resolve_model(config.model)
        self._retry_policy = retry_policy or RetryPolicy()
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self.retry_count = 0

    @classmethod
    def resolve_model(cls, model: str | None) -> str:
        return (model or "").strip()

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _count_retry(self, attempt: int, delay: float, error: Exception) -> None:
        self.retry_count += 1

    async def generate(self, prompt: str, api_key: str, max_output_tokens: int = MAX_OUTPUT_TOKENS) -> str:
        """Send ``prompt`` and return the first text payload of the response.

        Raises:
            InvalidModelError: The configured model is empty.
            RequestFailedError: The request failed terminally.
            EmptyResponseError, BlockedError: The response had no usable text.
        """
        if not self._model:
            raise InvalidModelError(self.name)

        async def _send() -> httpx.Response:
            return await self._send(prompt, api_key, max_output_tokens)

        return await send_with_retry(
            self.name,
            self._model,
            self._retry_policy,
            _send,
            self.parse_response,
            self.describe_error,
            on_retry=self._count_retry,
            overloaded_status=self.overloaded_status,
            sleep=self._sleep,
        )

    @abstractmethod
    async def _send(self, prompt: str, api_key: str, max_output_tokens: int) -> httpx.Response:
        """Issue one HTTP request for ``prompt``."""
        pass

    @abstractmethod
    def parse_response(self, response: httpx.Response) -> str:
        pass

    @abstractmethod
    def describe_error(self, status: int, message: str) -> str:
        """User-facing wording for a failed request (status -1 for transport failures)."""
        pass
