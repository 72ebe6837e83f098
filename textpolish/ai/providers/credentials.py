"""API key resolution: credential store, then settings, then environment."""

import logging
import os
from collections.abc import Mapping

from textpolish.exceptions import MissingCredentialError
from textpolish.ports import CredentialStore

logger = logging.getLogger("providers")

ENVIRONMENT_VARIABLES: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


class CredentialResolver:
    def __init__(
        self,
        store: CredentialStore | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._store = store
        self._environ = os.environ if environ is None else environ

    def resolve(self, provider: str, configured: str | None = None) -> str:
        """Return the first non-empty key for ``provider``.

        Raises:
            MissingCredentialError: If no source has a key.
        """
        if self._store is not None:
            stored = (self._store.get(provider) or "").strip()
            if stored:
                return stored

        configured = (configured or "").strip()
        if configured:
            return configured

        for variable in ENVIRONMENT_VARIABLES.get(provider, ()):
            value = (self._environ.get(variable) or "").strip()
            if value:
                return value

        logger.warning(
            "No API key configured",
            extra={
                "service": "providers",
                "provider": provider,
                "reason": "missing_api_key",
            },
        )
        raise MissingCredentialError(provider)
