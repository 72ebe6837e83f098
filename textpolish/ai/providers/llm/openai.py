from typing import Any

import httpx

from textpolish.ai.providers.http import LLMBackend, chat_completion_text, json_headers, read_json
from textpolish.ai.retry import RetryPolicy
from textpolish.config import ProviderConfig
from textpolish.exceptions import EmptyResponseError

_CHAT_COMPLETIONS = "/chat/completions"


class OpenAIBackend(LLMBackend):
    """OpenAI chat completions. The base URL may or may not include ``/chat/completions``."""

    def __init__(
        self,
        config: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Any = None,
    ) -> None:
        super().__init__(config, retry_policy=retry_policy, client=client, sleep=sleep)
        base_url = self._base_url
        if base_url.endswith(_CHAT_COMPLETIONS):
            base_url = base_url[: -len(_CHAT_COMPLETIONS)]
        self._endpoint = f"{base_url}{_CHAT_COMPLETIONS}"

    @property
    def name(self) -> str:
        return "openai"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def _send(self, prompt: str, api_key: str, max_output_tokens: int) -> httpx.Response:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.0,
            "max_tokens": max_output_tokens,
        }
        return await self._get_client().post(
            self._endpoint,
            headers=json_headers({"Authorization": f"Bearer {api_key}"}),
            json=payload,
        )

    def parse_response(self, response: httpx.Response) -> str:
        text = chat_completion_text(read_json(response))
        if not text.strip():
            raise EmptyResponseError(self.name)
        return text

    def describe_error(self, status: int, message: str) -> str:
        if status == -1:
            return f"OpenAI network error: {message}"
        if status in (401, 403):
            return f"OpenAI API key unauthorized ({status})"
        if status == 402:
            return "OpenAI payment required (402). Check your billing."
        if status == 404:
            return f"OpenAI model not found (404): {message}"
        if status == 429:
            return "OpenAI rate limit or quota exceeded (429)"
        if status >= 500:
            return f"OpenAI service error ({status}): {message}"
        return f"OpenAI request failed ({status}): {message}"
