"""Provider registry for self-registration of correction providers and tone analyzers.

Usage:
    # In a provider module (e.g., textpolish/ai/providers/correction/gemini.py):
    from textpolish.ai.providers.registry import register_correction_provider

    @register_correction_provider
    class GeminiCorrectionProvider(CorrectionProvider):
        ...

    # In factory.py or consumer code:
    from textpolish.ai.providers.registry import get_provider_class
"""

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from textpolish.ai.providers.base import CorrectionProvider, ToneAnalyzer

P = TypeVar("P", bound="CorrectionProvider")
T = TypeVar("T", bound="ToneAnalyzer")

# Populated by the decorators at import time
_correction_registry: dict[str, type["CorrectionProvider"]] = {}
_tone_registry: dict[str, type["ToneAnalyzer"]] = {}


class ProviderRegistryError(Exception):
    """Base error for provider registry issues."""
    pass


class ProviderNotFoundError(ProviderRegistryError):
    """Raised when a requested provider is not registered."""
    pass


class DuplicateProviderError(ProviderRegistryError):
    """Raised when trying to register a provider with a name that's already taken."""
    pass


def _provider_name(provider_class: type) -> str:
    name = getattr(provider_class, "name", None)
    if name is None:
        raise ProviderRegistryError(
            f"Provider {provider_class.__name__} is missing required 'name' property"
        )
    if isinstance(name, property):
        if name.fget is None:
            raise ProviderRegistryError(
                f"Provider {provider_class.__name__} has a 'name' property without a getter"
            )
        name = name.fget(provider_class)
    if not isinstance(name, str):
        raise ProviderRegistryError(
            f"Provider {provider_class.__name__} has an invalid 'name' property type: {type(name)}"
        )
    return name


def register_correction_provider(provider_class: type[P]) -> type[P]:
    """Register a correction provider class.

    Raises:
        DuplicateProviderError: If a provider with this name is already registered.
    """
    name = _provider_name(provider_class)
    if name in _correction_registry:
        raise DuplicateProviderError(f"Correction provider '{name}' is already registered")
    _correction_registry[name] = provider_class
    return provider_class


def get_provider_class(name: str) -> type["CorrectionProvider"]:
    if name not in _correction_registry:
        registered = ", ".join(sorted(_correction_registry)) or "(none)"
        raise ProviderNotFoundError(
            f"Unknown correction provider: '{name}'. Registered providers: {registered}"
        )
    return _correction_registry[name]


def list_providers() -> list[str]:
    return sorted(_correction_registry)


def register_tone_analyzer(analyzer_class: type[T]) -> type[T]:
    """Register a tone analyzer class.

    Raises:
        DuplicateProviderError: If an analyzer with this name is already registered.
    """
    name = _provider_name(analyzer_class)
    if name in _tone_registry:
        raise DuplicateProviderError(f"Tone analyzer '{name}' is already registered")
    _tone_registry[name] = analyzer_class
    return analyzer_class


def get_tone_analyzer_class(name: str) -> type["ToneAnalyzer"]:
    if name not in _tone_registry:
        registered = ", ".join(sorted(_tone_registry)) or "(none)"
        raise ProviderNotFoundError(
            f"Unknown tone analyzer: '{name}'. Registered analyzers: {registered}"
        )
    return _tone_registry[name]


def list_tone_analyzers() -> list[str]:
    return sorted(_tone_registry)


__all__ = [
    "ProviderRegistryError",
    "ProviderNotFoundError",
    "DuplicateProviderError",
    "register_correction_provider",
    "get_provider_class",
    "list_providers",
    "register_tone_analyzer",
    "get_tone_analyzer_class",
    "list_tone_analyzers",
]
