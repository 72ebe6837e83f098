"""Tests for logging configuration."""

import json
import logging

from textpolish.logging_config import (
    NamespaceFilter,
    StructuredFormatter,
    clear_run_context,
    run_id_var,
    set_run_context,
    setup_logging,
)


def _record(name="providers", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test StructuredFormatter class."""

    def test_formats_as_json(self):
        """Test that logs are formatted as JSON."""
        parsed = json.loads(StructuredFormatter().format(_record()))

        assert parsed["level"] == "info"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "providers"
        assert parsed["service"] == "providers"
        assert "ts" in parsed

    def test_includes_run_context(self):
        """Test that context variables are included."""
        set_run_context(run_id="abc123", operation="correct_all")
        try:
            parsed = json.loads(StructuredFormatter().format(_record()))
        finally:
            clear_run_context()

        assert parsed["run_id"] == "abc123"
        assert parsed["operation"] == "correct_all"
        assert run_id_var.get() is None

    def test_includes_known_extra_fields(self):
        """Test that whitelisted extra fields are included and others dropped."""
        record = _record(
            service="orchestrator",
            provider="gemini",
            status=429,
            retry_after=5.0,
            metadata={"similarity": 0.4},
            unrelated="skip me",
            error_code=None,
        )

        parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["service"] == "orchestrator"
        assert parsed["provider"] == "gemini"
        assert parsed["status"] == 429
        assert parsed["retry_after"] == 5.0
        assert parsed["metadata"] == {"similarity": 0.4}
        assert "unrelated" not in parsed
        assert "error_code" not in parsed

    def test_includes_configuration_summary_fields(self):
        record = _record(
            name="config",
            fallback_provider="openrouter",
            gemini_configured=True,
            anthropic_configured=False,
            timing_profiles=["com.apple.Safari"],
        )

        parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["fallback_provider"] == "openrouter"
        assert parsed["gemini_configured"] is True
        assert parsed["anthropic_configured"] is False
        assert parsed["timing_profiles"] == ["com.apple.Safari"]


class TestNamespaceFilter:
    """Test NamespaceFilter class."""

    def test_info_always_passes(self):
        assert NamespaceFilter([]).filter(_record(level=logging.INFO))

    def test_debug_only_for_enabled_namespaces(self):
        namespace_filter = NamespaceFilter(["providers"])

        assert namespace_filter.filter(_record(name="providers.gemini", level=logging.DEBUG))
        assert not namespace_filter.filter(_record(name="orchestrator", level=logging.DEBUG))


class TestSetupLogging:
    """Test setup_logging function."""

    def test_configures_root_and_quiets_noisy_loggers(self):
        root = logging.getLogger()
        previous_handlers, previous_level = list(root.handlers), root.level
        try:
            setup_logging("WARNING")

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING

            setup_logging("INFO", debug_namespaces=["retry"])
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)
