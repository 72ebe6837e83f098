"""Model auto-detection used to recover from 'model not found' and 'payment required' errors."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.ai.providers.http import (
    chat_completion_text,
    extract_error_message,
    json_headers,
    read_json,
)
from textpolish.ai.sanitize import sanitize_error_message
from textpolish.config import Settings
from textpolish.exceptions import ModelDetectionError

logger = logging.getLogger("providers.detection")

PREFERRED_GEMINI_MODEL = "gemini-2.0-flash-lite-001"


@dataclass(frozen=True)
class OpenRouterModel:
    id: str
    prompt_price: str | None = None
    completion_price: str | None = None

    @property
    def is_free(self) -> bool:
        if self.prompt_price is not None and self.completion_price is not None:
            return _is_zero(self.prompt_price) and _is_zero(self.completion_price)
        return self.id.endswith(":free")


def _is_zero(price: str) -> bool:
    try:
        return float(price) == 0.0
    except ValueError:
        return False


def choose_gemini_model(names: list[str], exclude: str | None = None) -> str | None:
    """Prefer the default lite model, then any flash model, then the first listed."""
    candidates = [n for n in names if n and n != exclude]
    if not candidates:
        return None
    if PREFERRED_GEMINI_MODEL in candidates:
        return PREFERRED_GEMINI_MODEL
    for name in candidates:
        if "flash" in name:
            return name
    return candidates[0]


OPENROUTER_PROBE_LIMIT = 20
OPENROUTER_PROBE_PROMPT = "Reply with ONLY the word OK."

_OPENROUTER_EXACT_SCORES = {
    "openai/gpt-4o-mini": 960,
    "google/gemini-2.0-flash-lite-001": 940,
    "google/gemini-2.0-flash-exp:free": 880,
    "meta-llama/llama-3.2-3b-instruct:free": 860,
    "qwen/qwen3-4b:free": 820,
}

_OPENROUTER_KEYWORD_SCORES = (
    ("gemini", 260),
    ("flash", 220),
    ("2.0", 50),
    ("lite", 30),
    ("gpt-4o-mini", 240),
    ("llama-3.2", 90),
    ("3b", 30),
    ("instruct", 20),
    (":free", 40),
    ("preview", -40),
    ("think", -90),
    ("creative", -40),
)


def openrouter_score(model_id: str) -> int:
    """Heuristic preference for small, fast, instruction-following models."""
    lower = model_id.lower()
    score = _OPENROUTER_EXACT_SCORES.get(lower, 0)
    for keyword, weight in _OPENROUTER_KEYWORD_SCORES:
        if keyword in lower:
            score += weight
    return score


def rank_openrouter_models(
    models: list[OpenRouterModel],
    prefer_free: bool = False,
    exclude: str | None = None,
) -> list[str]:
    """Candidate ids, free models first, best score first within each group.

    With ``prefer_free`` only free models are returned.
    """
    candidates = [m for m in models if m.id.strip() and m.id != exclude]
    if prefer_free:
        candidates = [m for m in candidates if m.is_free]
    ranked = sorted(candidates, key=lambda m: (m.is_free, openrouter_score(m.id)), reverse=True)
    return [m.id.strip() for m in ranked]


def choose_openrouter_model(
    models: list[OpenRouterModel],
    prefer_free: bool = False,
    exclude: str | None = None,
) -> str | None:
    ranked = rank_openrouter_models(models, prefer_free=prefer_free, exclude=exclude)
    return ranked[0] if ranked else None


class ModelDetector:
    def __init__(
        self,
        settings: Settings,
        credentials: CredentialResolver | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._credentials = credentials or CredentialResolver()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._get_client().get(url, **kwargs)
        except httpx.TransportError as exc:
            raise ModelDetectionError(
                f"Model list request failed: {sanitize_error_message(str(exc)) or type(exc).__name__}"
            ) from exc
        if response.status_code >= 400:
            detail = sanitize_error_message(extract_error_message(response.text)) or ""
            raise ModelDetectionError(
                f"Model list request failed ({response.status_code}) {detail}".strip(),
                details={"status": response.status_code},
            )
        return read_json(response)

    async def list_gemini_models(self) -> list[str]:
        config = self._settings.provider_config("gemini")
        api_key = self._credentials.resolve("gemini", config.api_key)
        data = await self._get_json(
            f"{config.base_url.rstrip('/')}/v1beta/models",
            params={"key": api_key},
            headers=json_headers(),
        )
        names: list[str] = []
        items = data.get("models")
        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict):
                continue
            methods = item.get("supportedGenerationMethods")
            if methods is not None and (not isinstance(methods, list) or "generateContent" not in methods):
                continue
            name = str(item.get("name") or "")
            if name.startswith("models/"):
                name = name[len("models/") :]
            if name:
                names.append(name)
        return names

    async def list_openrouter_models(self) -> list[OpenRouterModel]:
        config = self._settings.provider_config("openrouter")
        api_key = self._credentials.resolve("openrouter", config.api_key)
        data = await self._get_json(
            f"{config.base_url.rstrip('/')}/models",
            headers=json_headers({"Authorization": f"Bearer {api_key}"}),
        )
        models: list[OpenRouterModel] = []
        items = data.get("data")
        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            pricing = item.get("pricing")
            if not isinstance(pricing, dict):
                pricing = {}
            models.append(
                OpenRouterModel(
                    id=str(item["id"]),
                    prompt_price=_price(pricing.get("prompt")),
                    completion_price=_price(pricing.get("completion")),
                )
            )
        return models

    async def detect_gemini_model(self, exclude: str | None = None) -> str:
        names = await self.list_gemini_models()
        chosen = choose_gemini_model(names, exclude=exclude)
        if chosen is None:
            raise ModelDetectionError("No Gemini model supports text generation")
        logger.info(
            "Gemini model detected",
            extra={"service": "recovery", "provider": "gemini", "model": chosen},
        )
        return chosen

    async def probe_openrouter_model(self, model: str, api_key: str | None = None) -> bool:
        """Send a tiny completion request and report whether ``model`` answers.

        Raises:
            ModelDetectionError: The API key was rejected (401).
        """
        config = self._settings.provider_config("openrouter")
        if api_key is None:
            api_key = self._credentials.resolve("openrouter", config.api_key)
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": OPENROUTER_PROBE_PROMPT}],
            "temperature": 0.0,
            "max_tokens": 8,
        }
        try:
            response = await self._get_client().post(
                f"{config.base_url.rstrip('/')}/chat/completions",
                headers=json_headers({"Authorization": f"Bearer {api_key}", "X-Title": "TextPolish"}),
                json=payload,
            )
        except httpx.TransportError as exc:
            logger.info(
                "OpenRouter probe transport failure",
                extra={"service": "recovery", "provider": "openrouter", "model": model, "error": type(exc).__name__},
            )
            return False

        if response.is_success:
            return bool(chat_completion_text(read_json(response)).strip())

        logger.info(
            "OpenRouter probe rejected",
            extra={
                "service": "recovery",
                "provider": "openrouter",
                "model": model,
                "status": response.status_code,
                "error_message": sanitize_error_message(extract_error_message(response.text)),
            },
        )
        if response.status_code == 401:
            raise ModelDetectionError(
                "OpenRouter unauthorized (401). Check the API key.",
                details={"status": 401},
            )
        return False

    async def detect_openrouter_model(self, prefer_free: bool = False, exclude: str | None = None) -> str:
        """Probe the best-ranked candidates and return the first one that answers."""
        models = await self.list_openrouter_models()
        candidates = rank_openrouter_models(models, prefer_free=prefer_free, exclude=exclude)
        api_key = self._credentials.resolve(
            "openrouter", self._settings.provider_config("openrouter").api_key
        )

        for model in candidates[:OPENROUTER_PROBE_LIMIT]:
            if await self.probe_openrouter_model(model, api_key=api_key):
                logger.info(
                    "OpenRouter model detected",
                    extra={"service": "recovery", "provider": "openrouter", "model": model},
                )
                return model

        message = "No free OpenRouter model available" if prefer_free else "No OpenRouter model available"
        raise ModelDetectionError(message, details={"probed": min(len(candidates), OPENROUTER_PROBE_LIMIT)})


def _price(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
