"""Network retry policy shared by every correction provider.

Each provider turns one HTTP exchange into a RetryDecision:

    Success(value)            stop and return value
    Retry(after_seconds, e)   wait, then try again (or raise e if out of attempts)
    Fail(e)                   raise e immediately

``RetryPolicy.perform_with_backoff`` drives the loop with tenacity so the
waits, attempt counting and before-sleep logging follow one code path.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, Generic, TypeVar

import tenacity

logger = logging.getLogger("retry")

T = TypeVar("T")

DEFAULT_RETRY_AFTER_SECONDS = 5.0
TRANSPORT_FAILURE = -1

_BODY_RETRY_AFTER = re.compile(r'"retry_after"\s*:\s*"?([^",}\s]+)"?')
_HTTP_DATE_FORMATS = (
    "%a, %d %b %Y %H:%M:%S %Z",
    "%A, %d-%b-%y %H:%M:%S %Z",
    "%a %b %d %H:%M:%S %Y",
)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Retry:
    after_seconds: float
    last_error: Exception


@dataclass(frozen=True)
class Fail:
    error: Exception


RetryDecision = Success[Any] | Retry | Fail


class _RetrySignal(Exception):
    """Carries a Retry decision through tenacity."""

    def __init__(self, decision: Retry) -> None:
        super().__init__(str(decision.last_error))
        self.decision = decision


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff limits and the retry-vs-fail rule for provider HTTP calls."""

    max_network_attempts: int = 3
    max_backoff_seconds: float = 10.0
    max_rate_limit_backoff_seconds: float = 12.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_network_attempts", max(1, self.max_network_attempts))
        object.__setattr__(self, "max_backoff_seconds", max(1.0, self.max_backoff_seconds))
        object.__setattr__(
            self, "max_rate_limit_backoff_seconds", max(1.0, self.max_rate_limit_backoff_seconds)
        )

    def retry_delay_seconds(self, attempt: int) -> float:
        """Exponential delay for a zero-based attempt index."""
        return float(min(2 ** max(0, attempt), self.max_backoff_seconds))

    def clamped_rate_limit_backoff(self, requested: float) -> float:
        """Clamp a server-suggested delay into ``[1, max_rate_limit_backoff_seconds]``."""
        value = requested if math.isfinite(requested) else 1.0
        return min(max(1.0, value), self.max_rate_limit_backoff_seconds)

    def decide(
        self,
        status: int,
        attempt: int,
        error: Exception,
        retry_after: float | None = None,
        overloaded_status: int | None = None,
    ) -> Retry | Fail:
        """Map an HTTP status (or TRANSPORT_FAILURE) to Retry or Fail."""
        if status == 429:
            if retry_after is not None:
                return Retry(self.clamped_rate_limit_backoff(retry_after), error)
            return Retry(self.retry_delay_seconds(attempt), error)
        if status == TRANSPORT_FAILURE or status >= 500 or status == overloaded_status:
            return Retry(self.retry_delay_seconds(attempt), error)
        return Fail(error)

    async def perform_with_backoff(
        self,
        operation: Callable[[int, bool], Awaitable[RetryDecision]],
        on_retry: Callable[[int, float, Exception], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        max_attempts: int | None = None,
    ) -> Any:
        """Run ``operation(attempt, is_last)`` until it succeeds or fails terminally.

        Args:
            operation: Async callable receiving the zero-based attempt index and
                whether it is the final attempt.
            on_retry: Called with (attempt, delay_seconds, error) before each wait.
            sleep: Sleep coroutine (tests inject a fake).
            max_attempts: Overrides ``max_network_attempts``.

        Raises:
            The error carried by a Fail decision, or the last Retry error once
            attempts are exhausted.
        """
        attempts = max(1, max_attempts or self.max_network_attempts)

        def _wait(retry_state: tenacity.RetryCallState) -> float:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            if isinstance(exc, _RetrySignal):
                return max(0.0, exc.decision.after_seconds)
            return 0.0

        def _before_sleep(retry_state: tenacity.RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            if not isinstance(exc, _RetrySignal):
                return
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "Retrying request",
                extra={
                    "service": "retry",
                    "attempt": retry_state.attempt_number,
                    "max_attempts": attempts,
                    "delay_seconds": delay,
                    "error": str(exc.decision.last_error),
                },
            )
            if on_retry is not None:
                on_retry(retry_state.attempt_number - 1, delay, exc.decision.last_error)

        kwargs: dict[str, Any] = {}
        if sleep is not None:
            kwargs["sleep"] = sleep

        retryer = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception_type(_RetrySignal),
            wait=_wait,
            stop=tenacity.stop_after_attempt(attempts),
            before_sleep=_before_sleep,
            reraise=True,
            **kwargs,
        )

        async for attempt in retryer:
            with attempt:
                index = attempt.retry_state.attempt_number - 1
                is_last = index + 1 >= attempts
                decision = await operation(index, is_last)
                if isinstance(decision, Success):
                    return decision.value
                if isinstance(decision, Fail):
                    raise decision.error
                if is_last:
                    raise decision.last_error
                raise _RetrySignal(decision)

        raise RuntimeError("retry loop ended without a result")


# =============================================================================
# Retry-After parsing
# =============================================================================


def _parse_retry_after_value(raw: str, now: datetime) -> float | None:
    value = raw.strip()
    if not value:
        return None

    try:
        return float(max(0, int(value)))
    except ValueError:
        pass

    try:
        number = float(value)
    except ValueError:
        number = None
    if number is not None:
        if not math.isfinite(number):
            return None
        return float(max(0, int(number)))

    when = _parse_http_date(value)
    if when is None:
        return None
    return float(max(0, math.ceil((when - now).total_seconds())))


def _parse_http_date(value: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        for fmt in _HTTP_DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_retry_after(
    headers: Mapping[str, str] | None,
    body: str | None = None,
    now: datetime | None = None,
) -> float | None:
    """Extract a server-suggested delay in whole seconds.

    The ``Retry-After`` header wins; otherwise a ``"retry_after"`` field in
    the response body is used. A present but malformed value yields
    DEFAULT_RETRY_AFTER_SECONDS. Returns None when neither source exists.
    """
    now = now or datetime.now(UTC)

    header_value = None
    if headers is not None:
        header_value = headers.get("Retry-After") or headers.get("retry-after")
    if header_value is not None and header_value.strip():
        parsed = _parse_retry_after_value(header_value, now)
        return parsed if parsed is not None else DEFAULT_RETRY_AFTER_SECONDS

    if body:
        match = _BODY_RETRY_AFTER.search(body)
        if match:
            parsed = _parse_retry_after_value(match.group(1), now)
            return parsed if parsed is not None else DEFAULT_RETRY_AFTER_SECONDS

    return None


__all__ = [
    "RetryPolicy",
    "RetryDecision",
    "Success",
    "Retry",
    "Fail",
    "parse_retry_after",
    "DEFAULT_RETRY_AFTER_SECONDS",
    "TRANSPORT_FAILURE",
]
