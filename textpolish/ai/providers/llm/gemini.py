import logging
from typing import Any

import httpx

from textpolish.ai.providers.http import LLMBackend, json_headers, read_json
from textpolish.exceptions import BlockedError, EmptyResponseError

logger = logging.getLogger("providers.gemini")


class GeminiBackend(LLMBackend):
    """Google Generative Language API (``models/*:generateContent``).

    A 404 on ``v1beta`` is retried once on ``v1`` inside the same network
    attempt before the retry policy sees it.
    """

    API_VERSIONS = ("v1beta", "v1")

    @classmethod
    def resolve_model(cls, model: str | None) -> str:
        m = (model or "").strip()
        if m.startswith("models/"):
            m = m[len("models/") :]
        return m

    @property
    def name(self) -> str:
        return "gemini"

    async def _post(self, version: str, payload: dict[str, Any], api_key: str) -> httpx.Response:
        return await self._get_client().post(
            f"{self._base_url}/{version}/models/{self._model}:generateContent",
            params={"key": api_key},
            headers=json_headers(),
            json=payload,
        )

    async def _send(self, prompt: str, api_key: str, max_output_tokens: int) -> httpx.Response:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.0,
                "maxOutputTokens": max_output_tokens,
            },
        }

        primary, secondary = self.API_VERSIONS
        response = await self._post(primary, payload, api_key)
        if response.status_code != 404:
            return response
        logger.info(
            "Gemini model not found on API version, trying next",
            extra={
                "service": "providers",
                "provider": self.name,
                "model": self._model,
                "metadata": {"api_version": primary},
            },
        )
        return await self._post(secondary, payload, api_key)

    def parse_response(self, response: httpx.Response) -> str:
        data = read_json(response)

        feedback = data.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            raise BlockedError(self.name, str(feedback["blockReason"]))

        candidates = data.get("candidates")
        first = candidates[0] if isinstance(candidates, list) and candidates else None
        content = first.get("content") if isinstance(first, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise EmptyResponseError(self.name)

        text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise EmptyResponseError(self.name)
        return text

    def describe_error(self, status: int, message: str) -> str:
        if status == -1:
            return f"Gemini network error: {message}"
        if status in (401, 403):
            return f"Gemini API key was rejected ({status})"
        if status == 404:
            return "Gemini model not found (404). Try Detect Gemini Model."
        if status == 429:
            return "Gemini rate limit or quota exceeded (429)"
        if status >= 500:
            return f"Gemini service error ({status}): {message}"
        return f"Gemini request failed ({status}): {message}"
