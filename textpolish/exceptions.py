"""Custom exceptions for the application.

This module defines application-specific exceptions with structured
error codes and metadata for consistent error handling and reporting.

Exception Hierarchy:
- AppError (base)
  ├── CorrectionError (provider-scoped)
  │   ├── MissingCredentialError
  │   ├── InvalidEndpointError
  │   ├── InvalidModelError
  │   ├── RequestFailedError
  │   ├── EmptyResponseError
  │   ├── OverRewriteError
  │   ├── BlockedError
  │   └── InvalidToneResponseError
  ├── CaptureError
  │   ├── NoChangeError
  │   └── NoStringError
  ├── PermissionDeniedError
  ├── CorrectionCanceledError
  ├── FallbackFailedError
  ├── TextTooShortError
  ├── ModelDetectionError
  └── ConfigurationError

Attributes:
    code: Machine-readable error code (e.g., "OVER_REWRITE")
    message: Human-readable error message, safe to show to the user
    details: Additional context for debugging
    retryable: Whether the operation can be retried
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

PROVIDER_DISPLAY_NAMES = {
    "gemini": "Gemini",
    "openrouter": "OpenRouter",
    "openai": "OpenAI",
    "anthropic": "Anthropic",
}


def display_name(provider: str) -> str:
    return PROVIDER_DISPLAY_NAMES.get(provider, provider)


class AppError(Exception):
    """Base exception for application errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        details: Additional context for debugging
        retryable: Whether the operation can be retried
        timestamp: When the error occurred
    """

    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        """Initialize error with optional message and details."""
        self.message = message or self.message
        self.details = details or {}
        self.retryable = retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
                "timestamp": self.timestamp.isoformat(),
            }
        }

    def __str__(self) -> str:
        """String representation with code."""
        return f"[{self.code}] {self.message}"


# =============================================================================
# Correction Provider Errors
# =============================================================================


class CorrectionError(AppError):
    """Base exception for failures inside a correction provider."""

    code = "CORRECTION_ERROR"
    message = "Correction failed"

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(message=message, details=full_details, retryable=retryable)


class MissingCredentialError(CorrectionError):
    """Raised when no API key can be resolved for a provider."""

    code = "MISSING_CREDENTIAL"

    def __init__(self, provider: str) -> None:
        super().__init__(provider, message=f"Missing {display_name(provider)} API key")


class InvalidEndpointError(CorrectionError):
    """Raised when a provider base URL cannot be used to build a request."""

    code = "INVALID_ENDPOINT"

    def __init__(self, provider: str, base_url: str = "") -> None:
        super().__init__(
            provider,
            message=f"Invalid {display_name(provider)} base URL",
            details={"base_url": base_url},
        )


class InvalidModelError(CorrectionError):
    """Raised when the configured model name is empty."""

    code = "INVALID_MODEL"

    def __init__(self, provider: str) -> None:
        super().__init__(provider, message=f"Invalid {display_name(provider)} model")


class RequestFailedError(CorrectionError):
    """Raised when the HTTP exchange with a provider terminally fails.

    A status of -1 means the request never produced an HTTP response
    (timeout, DNS failure, connection reset).
    """

    code = "REQUEST_FAILED"

    def __init__(self, provider: str, status: int, message: str) -> None:
        self.status = status
        super().__init__(
            provider,
            message=message,
            details={"status": status},
            retryable=status == -1 or status == 429 or status >= 500,
        )


class EmptyResponseError(CorrectionError):
    """Raised when a provider answers with no usable text."""

    code = "EMPTY_RESPONSE"

    def __init__(self, provider: str) -> None:
        super().__init__(provider, message=f"{display_name(provider)} returned no text")


class OverRewriteError(CorrectionError):
    """Raised when every prompt attempt produced an unacceptable candidate."""

    code = "OVER_REWRITE"

    def __init__(self, provider: str, attempts: int = 0) -> None:
        super().__init__(
            provider,
            message=f"{display_name(provider)} rewrote too much (try again or adjust model)",
            details={"attempts": attempts},
        )


class BlockedError(CorrectionError):
    """Raised when the provider refuses the content."""

    code = "BLOCKED"

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            provider,
            message=f"{display_name(provider)} blocked the request ({reason})",
            details={"reason": reason},
        )


class InvalidToneResponseError(CorrectionError):
    """Raised when a tone analysis reply is not the expected JSON object."""

    code = "INVALID_RESPONSE"

    def __init__(self, provider: str, detail: str) -> None:
        super().__init__(
            provider,
            message=f"Could not parse {display_name(provider)} response: {detail}",
            details={"detail": detail},
        )


# =============================================================================
# Capture Errors
# =============================================================================


class CaptureError(AppError):
    """Base exception for failures copying text out of the focused app."""

    code = "CAPTURE_ERROR"
    message = "Copy failed"


class NoChangeError(CaptureError):
    """Raised when the capture surface never changed after the copy action."""

    code = "CAPTURE_NO_CHANGE"
    message = "Copy failed (no text copied)"

    def __init__(self) -> None:
        super().__init__(retryable=True)


class NoStringError(CaptureError):
    """Raised when the capture surface changed but holds no usable text."""

    code = "CAPTURE_NO_STRING"
    message = "Copy failed (clipboard has no text)"

    def __init__(self) -> None:
        super().__init__(retryable=True)


# =============================================================================
# Orchestration Errors
# =============================================================================


class PermissionDeniedError(AppError):
    """Raised when input automation is not permitted."""

    code = "PERMISSION_DENIED"
    message = "Enable Accessibility permission to correct text"


class CorrectionCanceledError(AppError):
    """Raised when a run is canceled before it completes."""

    code = "CANCELED"
    message = "Correction canceled"


class FallbackFailedError(AppError):
    """Raised when the fallback provider also fails."""

    code = "FALLBACK_FAILED"

    def __init__(self, provider: str, cause: AppError) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(
            message=f"Fallback also failed: {cause.message}",
            details={"provider": provider, "cause": cause.code},
        )


class TextTooShortError(AppError):
    """Raised when the captured text is too short to analyze."""

    code = "TEXT_TOO_SHORT"
    message = "Text is too short to analyze"


class ModelDetectionError(AppError):
    """Raised when no usable model can be detected for a provider."""

    code = "MODEL_DETECTION_FAILED"
    message = "No usable model found"


class ConfigurationError(AppError):
    """Raised when settings cannot produce a working component."""

    code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


__all__ = [
    "AppError",
    "CorrectionError",
    "MissingCredentialError",
    "InvalidEndpointError",
    "InvalidModelError",
    "RequestFailedError",
    "EmptyResponseError",
    "OverRewriteError",
    "BlockedError",
    "InvalidToneResponseError",
    "CaptureError",
    "NoChangeError",
    "NoStringError",
    "PermissionDeniedError",
    "CorrectionCanceledError",
    "FallbackFailedError",
    "TextTooShortError",
    "ModelDetectionError",
    "ConfigurationError",
    "display_name",
]
