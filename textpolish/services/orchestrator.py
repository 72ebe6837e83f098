"""Single-flight controller for one capture, correct, inject cycle.

Run sequence:
    permission check
    optional target activation
    snapshot the clipboard
    select-all (correct-all mode only)
    capture (retried once)
    correct (recovery, then fallback, on failure)
    inject unless unchanged
    restore the clipboard snapshot, always

Cancellation is cooperative: ``cancel()`` sets a flag and cancels the
in-flight provider task. The flag is checked between steps, and once the
check before injection has passed nothing is pasted.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from enum import StrEnum

from textpolish.ai.providers.base import CorrectionProvider
from textpolish.config import Settings, Timings
from textpolish.exceptions import (
    AppError,
    CorrectionCanceledError,
    FallbackFailedError,
    RequestFailedError,
    display_name,
)
from textpolish.logging_config import clear_run_context, set_run_context
from textpolish.ports import (
    AutomationPort,
    CaptureSurface,
    DiagnosticsSink,
    FallbackSelector,
    FeedbackSink,
    Recoverer,
    TargetApplication,
)
from textpolish.services.capture import TextInjectionService
from textpolish.services.controller import FeedbackCooldown, SingleFlightController
from textpolish.services.diagnostics import DiagnosticsRecord, NoOpDiagnosticsSink, RunOutcome

logger = logging.getLogger("orchestrator")

BUSY_MESSAGE = "Correction in progress"
NO_CHANGES_MESSAGE = "No changes"
CANCELED_MESSAGE = "Correction canceled"
UNEXPECTED_ERROR_MESSAGE = "Correction failed unexpectedly"


class CorrectionMode(StrEnum):
    SELECTION = "correct_selection"
    ALL = "correct_all"


class RunState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class CorrectionOrchestrator(SingleFlightController):
    busy_message = BUSY_MESSAGE

    def __init__(
        self,
        provider: CorrectionProvider,
        automation: AutomationPort,
        surface: CaptureSurface,
        feedback: FeedbackSink,
        settings: Settings | Callable[[], Settings],
        recoverer: Recoverer | None = None,
        fallback_selector: FallbackSelector | None = None,
        diagnostics: DiagnosticsSink | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(automation, surface, feedback, settings, sleep=sleep, clock=clock)
        self._provider = provider
        self._recoverer = recoverer
        self._fallback_selector = fallback_selector
        self._diagnostics = diagnostics or NoOpDiagnosticsSink()
        self._injection = TextInjectionService(surface, automation, sleep=sleep)

        self._state = RunState.IDLE
        self._active_provider = provider
        self._retry_count = 0
        self._fallback_count = 0

    # ==========================================================================
    # Public API
    # ==========================================================================
    @property
    def provider(self) -> CorrectionProvider:
        return self._provider

    @property
    def state(self) -> RunState:
        return self._state

    def correct_selection(self, target: TargetApplication | None = None) -> asyncio.Task | None:
        return self.trigger(CorrectionMode.SELECTION, target)

    def correct_all(self, target: TargetApplication | None = None) -> asyncio.Task | None:
        return self.trigger(CorrectionMode.ALL, target)

    def trigger(self, mode: CorrectionMode, target: TargetApplication | None = None) -> asyncio.Task | None:
        """Schedule a run on the running loop, or report busy and return None."""
        return self._start(lambda: self._run(mode, target))

    async def run(self, mode: CorrectionMode, target: TargetApplication | None = None) -> RunOutcome:
        """Execute one run in the current task."""
        return await self._run_now(lambda: self._run(mode, target), RunOutcome.BUSY)

    async def aclose(self) -> None:
        await self._provider.aclose()
        if self._recoverer is not None:
            await self._recoverer.aclose()

    # ==========================================================================
    # Run
    # ==========================================================================
    def _on_idle(self) -> None:
        self._state = RunState.IDLE

    async def _run(self, mode: CorrectionMode, target: TargetApplication | None) -> RunOutcome:
        settings = self._current_settings()
        timings = self._timings_for(settings, target)

        set_run_context(run_id=uuid.uuid4().hex[:12], operation=str(mode))
        self._state = RunState.RUNNING
        self._retry_count = 0
        self._fallback_count = 0
        self._active_provider = self._provider
        start = self._clock()
        outcome = RunOutcome.FAILED
        error: AppError | None = None

        logger.info(
            "Correction run started",
            extra={"service": "orchestrator", "provider": self._provider.name, "model": self._provider.model},
        )

        try:
            await self._prepare(target, timings)

            snapshot = self._surface.snapshot()
            try:
                if mode == CorrectionMode.ALL:
                    self._automation.trigger_select_all()
                    await self._sleep(Timings.seconds(timings.select_all_delay_ms))

                self._check_canceled()
                text = await self._capture_text(timings)

                self._check_canceled()
                corrected = await self._correct(text)

                self._check_canceled()
                if corrected == text:
                    outcome = RunOutcome.NO_CHANGES
                    self._feedback.show_info(NO_CHANGES_MESSAGE)
                else:
                    self._check_canceled()
                    await self._injection.inject(
                        corrected,
                        settle_seconds=Timings.seconds(timings.paste_settle_delay_ms),
                        post_paste_seconds=Timings.seconds(timings.post_paste_delay_ms),
                    )
                    outcome = RunOutcome.SUCCEEDED
                    self._feedback.show_success()
            finally:
                self._surface.restore(snapshot)

        except CorrectionCanceledError as exc:
            outcome = RunOutcome.CANCELED
            error = exc
            self._feedback.show_info(CANCELED_MESSAGE)
        except AppError as exc:
            outcome = RunOutcome.FAILED
            error = exc
            self._feedback.show_error(exc.message)
        except asyncio.CancelledError:
            outcome = RunOutcome.CANCELED
            self._state = RunState.CANCELED
            self._record(mode, start, outcome, None)
            clear_run_context()
            raise
        except Exception as exc:
            logger.error(
                "Correction run failed unexpectedly",
                extra={"service": "orchestrator", "provider": self._active_provider.name},
                exc_info=True,
            )
            outcome = RunOutcome.FAILED
            error = AppError(UNEXPECTED_ERROR_MESSAGE, details={"exception": type(exc).__name__})
            self._feedback.show_error(error.message)

        self._state = {
            RunOutcome.SUCCEEDED: RunState.SUCCEEDED,
            RunOutcome.NO_CHANGES: RunState.SUCCEEDED,
            RunOutcome.CANCELED: RunState.CANCELED,
        }.get(outcome, RunState.FAILED)
        self._record(mode, start, outcome, error)
        clear_run_context()
        return outcome

    async def _call_provider(self, provider: CorrectionProvider, text: str) -> str:
        self._active_provider = provider
        try:
            return await self._await_worker(provider.correct(text))
        finally:
            self._retry_count += provider.last_retry_count

    async def _correct(self, text: str) -> str:
        provider = self._provider
        try:
            return await self._call_provider(provider, text)
        except CorrectionCanceledError:
            raise
        except AppError as exc:
            error: AppError = exc

        if self._recoverer is not None:
            action = await self._recoverer.recover(error, provider)
            if action is not None:
                self._feedback.show_info(action.message)
                if action.provider is not None and action.provider is not provider:
                    await provider.aclose()
                    provider = action.provider
                    self._provider = provider
                self._check_canceled()
                try:
                    return await self._call_provider(provider, text)
                except CorrectionCanceledError:
                    raise
                except AppError as exc:
                    error = exc

        if self._fallback_selector is not None:
            fallback = self._fallback_selector.select(error, provider)
            if fallback is not None:
                self._fallback_count += 1
                try:
                    self._check_canceled()
                    result = await self._call_provider(fallback, text)
                except CorrectionCanceledError:
                    raise
                except AppError as exc:
                    raise FallbackFailedError(fallback.name, exc) from exc
                finally:
                    await fallback.aclose()
                self._feedback.show_info(f"Used {display_name(fallback.name)} as fallback")
                return result

        raise error

    def _record(
        self,
        mode: CorrectionMode,
        start: float,
        outcome: RunOutcome,
        error: AppError | None,
    ) -> None:
        cause = error.cause if isinstance(error, FallbackFailedError) else error
        if outcome == RunOutcome.NO_CHANGES:
            message: str | None = NO_CHANGES_MESSAGE
        elif outcome == RunOutcome.CANCELED:
            message = CANCELED_MESSAGE
        else:
            message = error.message if error is not None else None

        provider = self._active_provider
        record = DiagnosticsRecord(
            operation=str(mode),
            provider=provider.name,
            model=provider.model,
            latency_seconds=max(0.0, self._clock() - start),
            retry_count=self._retry_count,
            fallback_count=self._fallback_count,
            outcome=outcome,
            message=message,
            error_code=cause.code if cause is not None else None,
            status_code=cause.status if isinstance(cause, RequestFailedError) else None,
        )
        self._diagnostics.record(record)
        logger.info(
            "Correction run finished",
            extra={
                "service": "orchestrator",
                "provider": record.provider,
                "model": record.model,
                "outcome": str(outcome),
                "latency_ms": int(record.latency_seconds * 1000),
                "retry_count": record.retry_count,
                "fallback_count": record.fallback_count,
                "error_code": record.error_code,
            },
        )


__all__ = [
    "BUSY_MESSAGE",
    "CANCELED_MESSAGE",
    "NO_CHANGES_MESSAGE",
    "UNEXPECTED_ERROR_MESSAGE",
    "CorrectionMode",
    "CorrectionOrchestrator",
    "FeedbackCooldown",
    "RunState",
]
