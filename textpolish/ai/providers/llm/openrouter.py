from typing import Any

import httpx

from textpolish.ai.providers.http import LLMBackend, chat_completion_text, json_headers, read_json
from textpolish.ai.retry import RetryPolicy
from textpolish.config import ProviderConfig
from textpolish.exceptions import EmptyResponseError


class OpenRouterBackend(LLMBackend):
    """OpenRouter chat completions (OpenAI-compatible)."""

    def __init__(
        self,
        config: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Any = None,
        http_referer: str | None = None,
        x_title: str | None = "TextPolish",
    ) -> None:
        super().__init__(config, retry_policy=retry_policy, client=client, sleep=sleep)
        self._http_referer = (http_referer or "").strip() or None
        self._x_title = (x_title or "").strip() or None

    @property
    def name(self) -> str:
        return "openrouter"

    @property
    def chat_completions_url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def headers(self, api_key: str) -> dict[str, str]:
        headers = json_headers({"Authorization": f"Bearer {api_key}"})
        if self._http_referer:
            headers["HTTP-Referer"] = self._http_referer
        if self._x_title:
            headers["X-Title"] = self._x_title
        return headers

    async def _send(self, prompt: str, api_key: str, max_output_tokens: int) -> httpx.Response:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.0,
            "max_tokens": max_output_tokens,
        }
        return await self._get_client().post(
            self.chat_completions_url,
            headers=self.headers(api_key),
            json=payload,
        )

    def parse_response(self, response: httpx.Response) -> str:
        text = chat_completion_text(read_json(response))
        if not text.strip():
            raise EmptyResponseError(self.name)
        return text

    def describe_error(self, status: int, message: str) -> str:
        if status == -1:
            return f"OpenRouter network error: {message}"
        if status in (401, 403):
            return f"OpenRouter API key unauthorized ({status})"
        if status == 402:
            return "OpenRouter payment required (402). Add credits or pick a free model."
        if status == 404:
            return "OpenRouter model not found (404)"
        if status == 429:
            return "OpenRouter rate limited (429). Try again shortly."
        if status >= 500:
            return f"OpenRouter service error ({status}): {message}"
        return f"OpenRouter request failed ({status}): {message}"
