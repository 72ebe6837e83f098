"""Tests for configuration module."""

import pytest

from textpolish.config import CorrectionLanguage, Settings, Timings, get_settings


class TestSettings:
    """Test Settings class."""

    def test_default_values(self):
        """Test default configuration values."""
        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.provider == "gemini"
        assert settings.fallback_provider == ""
        assert settings.max_network_attempts == 3
        assert settings.max_backoff_seconds == 10
        assert settings.max_rate_limit_backoff_seconds == 12
        assert settings.correction_language == CorrectionLanguage.AUTO

    def test_reads_prefixed_environment(self, monkeypatch):
        """Test that TEXTPOLISH_ variables are picked up."""
        monkeypatch.setenv("TEXTPOLISH_PROVIDER", "anthropic")
        monkeypatch.setenv("TEXTPOLISH_OPENAI_MAX_ATTEMPTS", "4")

        settings = Settings(_env_file=None)

        assert settings.provider == "anthropic"
        assert settings.openai_max_attempts == 4

    def test_debug_namespaces_parsing(self):
        """Test debug_namespaces computed property."""
        settings = Settings(_env_file=None, log_debug_namespaces="")
        assert settings.debug_namespaces == []

        settings = Settings(_env_file=None, log_debug_namespaces=" providers , retry ")
        assert settings.debug_namespaces == ["providers", "retry"]


class TestProviderConfig:
    """Test provider_config normalization."""

    def test_gemini_models_prefix_stripped(self):
        settings = Settings(_env_file=None, gemini_model="models/gemini-1.5-flash")

        assert settings.provider_config("gemini").model == "gemini-1.5-flash"

    def test_values_are_clamped(self):
        settings = Settings(
            _env_file=None,
            openrouter_max_attempts=0,
            openrouter_min_similarity=1.7,
            anthropic_min_similarity=-0.2,
        )

        assert settings.provider_config("openrouter").max_attempts == 1
        assert settings.provider_config("openrouter").min_similarity == 1.0
        assert settings.provider_config("anthropic").min_similarity == 0.0

    def test_shared_values(self):
        settings = Settings(
            _env_file=None,
            correction_language="indonesian",
            request_timeout_seconds=7,
            openai_extra_instruction="  Keep British spelling. ",
        )

        config = settings.provider_config("openai")

        assert config.language == CorrectionLanguage.INDONESIAN
        assert config.timeout_seconds == 7
        assert config.extra_instruction == "Keep British spelling."

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None).provider_config("mystery")

    def test_with_model_returns_copy(self):
        settings = Settings(_env_file=None)

        updated = settings.with_model("openrouter", "some/model:free")

        assert updated.openrouter_model == "some/model:free"
        assert settings.openrouter_model != "some/model:free"


class TestTimings:
    """Test timing resolution."""

    def test_defaults(self):
        timings = Settings(_env_file=None).timings
        assert timings == Timings(80, 60, 20, 900, 25, 180)

    def test_negative_values_clamped(self):
        assert Timings(activation_delay_ms=-5).activation_delay_ms == 0

    def test_profile_by_bundle_identifier_wins(self):
        settings = Settings(
            _env_file=None,
            timing_profiles={
                "com.example.slow": {"copy_timeout_ms": 2000},
                "Slow": {"copy_timeout_ms": 1500, "post_paste_delay_ms": 400},
            },
        )

        timings = settings.timings_for("com.example.slow", "Slow")

        assert timings.copy_timeout_ms == 2000
        assert timings.post_paste_delay_ms == 180

    def test_profile_by_app_name(self):
        settings = Settings(_env_file=None, timing_profiles={"Slow": {"post_paste_delay_ms": 400}})

        assert settings.timings_for(None, "Slow").post_paste_delay_ms == 400
        assert settings.timings_for("com.other", "Other") == settings.timings

    def test_seconds(self):
        assert Timings.seconds(250) == 0.25
        assert Timings.seconds(-3) == 0.0


class TestGetSettings:
    """Test get_settings function."""

    def test_cached(self):
        """Test that settings are cached."""
        get_settings.cache_clear()
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2
        get_settings.cache_clear()
