from typing import Any

import httpx

from textpolish.ai.providers.http import LLMBackend, json_headers, read_json
from textpolish.ai.retry import RetryPolicy
from textpolish.config import ProviderConfig
from textpolish.exceptions import BlockedError, EmptyResponseError

ANTHROPIC_VERSION = "2023-06-01"
OVERLOADED_STATUS = 529


class AnthropicBackend(LLMBackend):
    """Anthropic Messages API. 529 (overloaded) is retried like a 5xx."""

    overloaded_status = OVERLOADED_STATUS

    def __init__(
        self,
        config: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Any = None,
    ) -> None:
        super().__init__(config, retry_policy=retry_policy, client=client, sleep=sleep)
        base_url = self._base_url
        if base_url.endswith("/v1"):
            base_url = base_url[: -len("/v1")]
        self._endpoint = f"{base_url}/v1/messages"

    @property
    def name(self) -> str:
        return "anthropic"

    async def _send(self, prompt: str, api_key: str, max_output_tokens: int) -> httpx.Response:
        payload: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_output_tokens,
            "temperature": 0.0,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = json_headers({"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION})
        return await self._get_client().post(self._endpoint, headers=headers, json=payload)

    def parse_response(self, response: httpx.Response) -> str:
        data = read_json(response)
        if data.get("stop_reason") == "refusal":
            raise BlockedError(self.name, "refusal")

        content = data.get("content")
        for item in content if isinstance(content, list) else []:
            if isinstance(item, dict) and item.get("type") == "text":
                text = str(item.get("text") or "")
                if text.strip():
                    return text
                break
        raise EmptyResponseError(self.name)

    def describe_error(self, status: int, message: str) -> str:
        if status == -1:
            return f"Anthropic network error: {message}"
        if status in (401, 403):
            return f"Anthropic API key unauthorized ({status})"
        if status == 404:
            return f"Anthropic model not found (404): {message}"
        if status == 429:
            return "Anthropic rate limited (429). Try again shortly."
        if status == OVERLOADED_STATUS:
            return "Anthropic is overloaded (529). Try again shortly."
        if status >= 500:
            return f"Anthropic service error ({status}): {message}"
        return f"Anthropic request failed ({status}): {message}"
