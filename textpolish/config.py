"""Application configuration using pydantic-settings."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("config")

ProviderName = Literal["gemini", "openrouter", "openai", "anthropic"]
PROVIDER_NAMES: tuple[str, ...] = ("gemini", "openrouter", "openai", "anthropic")


class CorrectionLanguage(StrEnum):
    AUTO = "auto"
    ENGLISH_US = "englishUS"
    INDONESIAN = "indonesian"


class TimingProfile(BaseModel):
    """Partial timing overrides for one application (milliseconds)."""

    activation_delay_ms: int | None = None
    select_all_delay_ms: int | None = None
    copy_settle_delay_ms: int | None = None
    copy_timeout_ms: int | None = None
    paste_settle_delay_ms: int | None = None
    post_paste_delay_ms: int | None = None


@dataclass(frozen=True)
class Timings:
    """Resolved timing durations for a run, in milliseconds."""

    activation_delay_ms: int = 80
    select_all_delay_ms: int = 60
    copy_settle_delay_ms: int = 20
    copy_timeout_ms: int = 900
    paste_settle_delay_ms: int = 25
    post_paste_delay_ms: int = 180

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if value < 0:
                object.__setattr__(self, name, 0)

    def apply(self, profile: TimingProfile | None) -> "Timings":
        if profile is None:
            return self
        overrides = profile.model_dump(exclude_none=True)
        values = {name: getattr(self, name) for name in self.__dataclass_fields__}
        values.update(overrides)
        return Timings(**values)

    @staticmethod
    def seconds(ms: int) -> float:
        return max(0, ms) / 1000.0


@dataclass(frozen=True)
class ProviderConfig:
    """Normalized, read-only view of one provider's settings."""

    name: str
    api_key: str
    model: str
    base_url: str
    max_attempts: int
    min_similarity: float
    extra_instruction: str
    language: CorrectionLanguage
    timeout_seconds: float


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TEXTPOLISH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "production"] = "development"

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Default log level")
    log_debug_namespaces: str = Field(
        default="",
        description="Comma-separated logger namespaces to enable DEBUG for (e.g. 'providers,retry')",
    )

    # ==========================================================================
    # Provider Selection
    # ==========================================================================
    provider: ProviderName = Field(
        default="gemini",
        description="Correction provider used for every run",
    )
    fallback_provider: Literal["gemini", "openrouter", "openai", "anthropic", ""] = Field(
        default="",
        description="Provider tried once when the primary provider fails. Empty disables fallback.",
    )
    request_timeout_seconds: float = Field(
        default=20.0,
        description="Per-request HTTP timeout for correction calls",
    )
    correction_language: CorrectionLanguage = Field(
        default=CorrectionLanguage.AUTO,
        description="Language hint added to the correction prompt",
    )

    # ==========================================================================
    # Network Retry
    # ==========================================================================
    max_network_attempts: int = Field(default=3, description="HTTP attempts per prompt")
    max_backoff_seconds: float = Field(default=10.0, description="Cap for exponential backoff")
    max_rate_limit_backoff_seconds: float = Field(
        default=12.0,
        description="Cap for server-suggested Retry-After delays",
    )

    # ==========================================================================
    # Gemini
    # ==========================================================================
    gemini_api_key: str = Field(default="", description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash-lite-001", description="Gemini model")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Gemini API base URL",
    )
    gemini_max_attempts: int = Field(default=2, description="Prompt attempts per correction")
    gemini_min_similarity: float = Field(default=0.65, description="Acceptance threshold")
    gemini_extra_instruction: str = Field(default="", description="Appended to the prompt")

    # ==========================================================================
    # OpenRouter
    # ==========================================================================
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_model: str = Field(
        default="meta-llama/llama-3.2-3b-instruct:free",
        description="OpenRouter model",
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API base URL",
    )
    openrouter_max_attempts: int = Field(default=2, description="Prompt attempts per correction")
    openrouter_min_similarity: float = Field(default=0.65, description="Acceptance threshold")
    openrouter_extra_instruction: str = Field(default="", description="Appended to the prompt")

    # ==========================================================================
    # OpenAI
    # ==========================================================================
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    openai_max_attempts: int = Field(default=2, description="Prompt attempts per correction")
    openai_min_similarity: float = Field(default=0.65, description="Acceptance threshold")
    openai_extra_instruction: str = Field(default="", description="Appended to the prompt")

    # ==========================================================================
    # Anthropic
    # ==========================================================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    anthropic_model: str = Field(default="claude-3-5-haiku-latest", description="Anthropic model")
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com",
        description="Anthropic API base URL",
    )
    anthropic_max_attempts: int = Field(default=2, description="Prompt attempts per correction")
    anthropic_min_similarity: float = Field(default=0.65, description="Acceptance threshold")
    anthropic_extra_instruction: str = Field(default="", description="Appended to the prompt")

    # ==========================================================================
    # Timings (milliseconds)
    # ==========================================================================
    activation_delay_ms: int = Field(default=80, description="Wait after activating the target app")
    select_all_delay_ms: int = Field(default=60, description="Wait after select-all")
    copy_settle_delay_ms: int = Field(default=20, description="Wait after writing the sentinel")
    copy_timeout_ms: int = Field(default=900, description="Deadline for the copied text to appear")
    paste_settle_delay_ms: int = Field(default=25, description="Wait after writing the correction")
    post_paste_delay_ms: int = Field(default=180, description="Wait after paste before restoring")
    busy_feedback_cooldown_ms: int = Field(
        default=900,
        description="Minimum interval between 'correction in progress' notifications",
    )
    timing_profiles: dict[str, TimingProfile] = Field(
        default_factory=dict,
        description="Per-application timing overrides keyed by bundle identifier or app name",
    )

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @computed_field
    @property
    def debug_namespaces(self) -> list[str]:
        """Parse debug namespaces into a list."""
        if not self.log_debug_namespaces:
            return []
        return [ns.strip() for ns in self.log_debug_namespaces.split(",") if ns.strip()]

    @property
    def timings(self) -> Timings:
        return Timings(
            activation_delay_ms=self.activation_delay_ms,
            select_all_delay_ms=self.select_all_delay_ms,
            copy_settle_delay_ms=self.copy_settle_delay_ms,
            copy_timeout_ms=self.copy_timeout_ms,
            paste_settle_delay_ms=self.paste_settle_delay_ms,
            post_paste_delay_ms=self.post_paste_delay_ms,
        )

    def timings_for(self, bundle_identifier: str | None = None, app_name: str | None = None) -> Timings:
        """Resolve timings for an application, preferring the bundle identifier profile."""
        profile = None
        for key in (bundle_identifier, app_name):
            key = (key or "").strip()
            if key and key in self.timing_profiles:
                profile = self.timing_profiles[key]
                break
        return self.timings.apply(profile)

    def provider_config(self, name: str) -> ProviderConfig:
        """Build the normalized config for a provider."""
        if name not in PROVIDER_NAMES:
            raise ValueError(f"Unknown provider: '{name}'")

        model = getattr(self, f"{name}_model").strip()
        if name == "gemini" and model.startswith("models/"):
            model = model[len("models/") :]

        return ProviderConfig(
            name=name,
            api_key=getattr(self, f"{name}_api_key").strip(),
            model=model,
            base_url=getattr(self, f"{name}_base_url").strip(),
            max_attempts=max(1, getattr(self, f"{name}_max_attempts")),
            min_similarity=min(max(getattr(self, f"{name}_min_similarity"), 0.0), 1.0),
            extra_instruction=getattr(self, f"{name}_extra_instruction").strip(),
            language=self.correction_language,
            timeout_seconds=self.request_timeout_seconds,
        )

    def with_model(self, name: str, model: str) -> "Settings":
        """Return a copy with one provider's model replaced."""
        return self.model_copy(update={f"{name}_model": model})

    def log_config_summary(self) -> None:
        """Log a summary of the configuration (redacting secrets)."""
        logger.info(
            "Configuration loaded",
            extra={
                "service": "config",
                "environment": self.environment,
                "provider": self.provider,
                "fallback_provider": self.fallback_provider or None,
                "gemini_configured": bool(self.gemini_api_key),
                "openrouter_configured": bool(self.openrouter_api_key),
                "openai_configured": bool(self.openai_api_key),
                "anthropic_configured": bool(self.anthropic_api_key),
                "correction_language": str(self.correction_language),
                "timing_profiles": sorted(self.timing_profiles),
                "log_level": self.log_level,
                "debug_namespaces": self.debug_namespaces,
            },
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
