"""Per-run diagnostics records and provider health."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from textpolish.exceptions import display_name
from textpolish.ports import DiagnosticsSink

logger = logging.getLogger("diagnostics")


class RunOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    NO_CHANGES = "no_changes"
    FAILED = "failed"
    CANCELED = "canceled"
    BUSY = "busy"


class HealthLevel(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"
    ERROR = "error"


@dataclass(frozen=True)
class ProviderHealth:
    level: HealthLevel
    reason: str = ""


@dataclass(frozen=True)
class DiagnosticsRecord:
    """One completed run."""

    operation: str
    provider: str
    model: str
    latency_seconds: float
    retry_count: int
    fallback_count: int
    outcome: RunOutcome
    message: str | None = None
    error_code: str | None = None
    status_code: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def result_label(self) -> str:
        if self.outcome == RunOutcome.SUCCEEDED:
            return "Success"
        if self.outcome == RunOutcome.FAILED:
            return "Error"
        return "Note"


def health_for(record: DiagnosticsRecord) -> ProviderHealth:
    """Derive provider health from the outcome of its most recent run."""
    if record.outcome != RunOutcome.FAILED or record.error_code is None:
        return ProviderHealth(HealthLevel.OK)

    code = record.error_code
    status = record.status_code
    if code == "MISSING_CREDENTIAL":
        return ProviderHealth(HealthLevel.ERROR, "Missing API key")
    if code in ("INVALID_ENDPOINT", "INVALID_MODEL", "CONFIGURATION_ERROR"):
        return ProviderHealth(HealthLevel.ERROR, "Invalid configuration")
    if code in ("EMPTY_RESPONSE", "OVER_REWRITE", "INVALID_RESPONSE"):
        return ProviderHealth(HealthLevel.DEGRADED, "Invalid response")
    if code == "BLOCKED":
        return ProviderHealth(HealthLevel.DEGRADED, "Blocked")
    if code == "REQUEST_FAILED" and status is not None:
        if status in (401, 403):
            return ProviderHealth(HealthLevel.ERROR, "Unauthorized")
        if status == 402:
            return ProviderHealth(HealthLevel.ERROR, "Payment required")
        if status == 404:
            return ProviderHealth(HealthLevel.ERROR, "Model not found")
        if status == 429:
            return ProviderHealth(HealthLevel.DEGRADED, "Rate limited")
        if status == -1:
            return ProviderHealth(HealthLevel.DEGRADED, "Network error")
        if status >= 500 or status <= 0:
            return ProviderHealth(HealthLevel.DEGRADED, "Service issue")
        return ProviderHealth(HealthLevel.ERROR, f"Request failed ({status})")
    return ProviderHealth(HealthLevel.OK)


def format_latency(seconds: float) -> str:
    if seconds < 1.0:
        return f"{int(round(seconds * 1000))} ms"
    return f"{seconds:.2f} s"


def format_operation(operation: str) -> str:
    return operation.replace("_", " ").title()


class NoOpDiagnosticsSink(DiagnosticsSink):
    def record(self, record: DiagnosticsRecord) -> None:
        return None


class LoggingDiagnosticsSink(DiagnosticsSink):
    def record(self, record: DiagnosticsRecord) -> None:
        logger.info(
            "Correction run finished",
            extra={
                "service": "diagnostics",
                "operation": record.operation,
                "provider": record.provider,
                "model": record.model,
                "latency_ms": int(record.latency_seconds * 1000),
                "retry_count": record.retry_count,
                "fallback_count": record.fallback_count,
                "outcome": str(record.outcome),
                "error_code": record.error_code,
                "status": record.status_code,
            },
        )


class DiagnosticsStore(DiagnosticsSink):
    """Keeps the latest record and per-provider health in memory."""

    def __init__(self, forward_to: DiagnosticsSink | None = None) -> None:
        self._forward_to = forward_to
        self._last: DiagnosticsRecord | None = None
        self._health: dict[str, ProviderHealth] = {}

    def record(self, record: DiagnosticsRecord) -> None:
        self._last = record
        if record.outcome in (RunOutcome.SUCCEEDED, RunOutcome.NO_CHANGES, RunOutcome.FAILED):
            self._health[record.provider] = health_for(record)
        if self._forward_to is not None:
            self._forward_to.record(record)

    @property
    def last_record(self) -> DiagnosticsRecord | None:
        return self._last

    def health(self, provider: str) -> ProviderHealth | None:
        return self._health.get(provider)

    def formatted_snapshot(self) -> str:
        record = self._last
        if record is None:
            return "No diagnostics yet"

        lines = [
            f"Operation: {format_operation(record.operation)}",
            f"Provider: {display_name(record.provider)}",
            f"Model: {record.model or '-'}",
            f"Result: {record.result_label}",
            f"Latency: {format_latency(record.latency_seconds)}",
            f"Retries: {record.retry_count}",
            f"Fallbacks: {record.fallback_count}",
        ]
        if record.message:
            label = "Error" if record.outcome == RunOutcome.FAILED else "Note"
            lines.append(f"{label}: {record.message}")
        return "\n".join(lines)
