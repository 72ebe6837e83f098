"""Structured JSON logging configuration."""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variables for run tracing
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

_EXTRA_FIELDS = [
    "run_id",
    "operation",
    "provider",
    "model",
    "status",
    "attempt",
    "max_attempts",
    "retry_after",
    "delay_seconds",
    "duration_ms",
    "latency_ms",
    "outcome",
    "error_code",
    "error_message",
    "error",
    "retry_count",
    "fallback_count",
    "target",
    "reason",
    "metadata",
    "environment",
    "fallback_provider",
    "gemini_configured",
    "openrouter_configured",
    "openai_configured",
    "anthropic_configured",
    "correction_language",
    "timing_profiles",
    "log_level",
    "debug_namespaces",
]


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add service from extra or derive from logger name
        log_data["service"] = getattr(record, "service", record.name.split(".")[0])

        if run_id := run_id_var.get():
            log_data["run_id"] = run_id
        if operation := operation_var.get():
            log_data["operation"] = operation

        for field in _EXTRA_FIELDS:
            if hasattr(record, field) and getattr(record, field) is not None:
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class NamespaceFilter(logging.Filter):
    """Filter that enables debug logging for specific namespaces."""

    def __init__(self, debug_namespaces: list[str]):
        super().__init__()
        self.debug_namespaces = set(debug_namespaces)

    def filter(self, record: logging.LogRecord) -> bool:
        """Allow all INFO+ logs, but only DEBUG for enabled namespaces."""
        if record.levelno >= logging.INFO:
            return True
        namespace = record.name.split(".")[0]
        return namespace in self.debug_namespaces


def setup_logging(log_level: str = "INFO", debug_namespaces: list[str] | None = None) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Default log level (DEBUG, INFO, WARNING, ERROR)
        debug_namespaces: List of namespaces to enable DEBUG logging for
    """

    debug_namespaces = debug_namespaces or []

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(NamespaceFilter(debug_namespaces))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug_namespaces else log_level.upper())

    # Set specific loggers to WARNING to reduce noise
    for noisy_logger in ["asyncio", "httpx", "httpcore"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logger = logging.getLogger("logging")
    logger.info(
        "Logging configured",
        extra={
            "service": "logging",
            "log_level": log_level,
            "debug_namespaces": debug_namespaces,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


def set_run_context(run_id: str | None = None, operation: str | None = None) -> None:
    """Set context variables for run tracing."""
    if run_id is not None:
        run_id_var.set(run_id)
    if operation is not None:
        operation_var.set(operation)


def clear_run_context() -> None:
    """Clear all run context variables."""
    run_id_var.set(None)
    operation_var.set(None)


__all__ = [
    "StructuredFormatter",
    "NamespaceFilter",
    "setup_logging",
    "get_logger",
    "set_run_context",
    "clear_run_context",
    "run_id_var",
    "operation_var",
]
