"""Single-flight controller for tone analysis of the selected text.

A tone run copies the selection the same way a correction run does, sends
it to a ToneAnalyzer and hands the result to a ToneResultPresenter. Nothing
is pasted back, and the clipboard snapshot is always restored.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from textpolish.ai.providers.base import ToneAnalyzer
from textpolish.config import Settings
from textpolish.exceptions import AppError, CaptureError, CorrectionCanceledError, PermissionDeniedError
from textpolish.logging_config import clear_run_context, set_run_context
from textpolish.ports import (
    AutomationPort,
    CaptureSurface,
    DiagnosticsSink,
    FeedbackSink,
    TargetApplication,
    ToneResultPresenter,
)
from textpolish.services.controller import SingleFlightController
from textpolish.services.diagnostics import DiagnosticsRecord, NoOpDiagnosticsSink, RunOutcome

logger = logging.getLogger("tone")

TONE_OPERATION = "analyze_tone"
ANALYSIS_BUSY_MESSAGE = "Analysis in progress"
ANALYZING_MESSAGE = "Analyzing tone..."
ANALYSIS_CANCELED_MESSAGE = "Analysis canceled"
UNEXPECTED_ANALYSIS_ERROR_MESSAGE = "Tone analysis failed unexpectedly"


class ToneAnalysisService(SingleFlightController):
    busy_message = ANALYSIS_BUSY_MESSAGE

    def __init__(
        self,
        analyzer: ToneAnalyzer,
        presenter: ToneResultPresenter,
        automation: AutomationPort,
        surface: CaptureSurface,
        feedback: FeedbackSink,
        settings: Settings | Callable[[], Settings],
        diagnostics: DiagnosticsSink | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(automation, surface, feedback, settings, sleep=sleep, clock=clock)
        self._analyzer = analyzer
        self._presenter = presenter
        self._diagnostics = diagnostics or NoOpDiagnosticsSink()

    @property
    def analyzer(self) -> ToneAnalyzer:
        return self._analyzer

    async def update_analyzer(self, analyzer: ToneAnalyzer) -> None:
        """Swap in a new analyzer (after a settings change) and close the old one."""
        if analyzer is self._analyzer:
            return
        previous = self._analyzer
        self._analyzer = analyzer
        await previous.aclose()

    def analyze_selection(self, target: TargetApplication | None = None) -> asyncio.Task | None:
        """Schedule a run on the running loop, or report busy and return None."""
        return self._start(lambda: self._run(target))

    async def run(self, target: TargetApplication | None = None) -> RunOutcome:
        return await self._run_now(lambda: self._run(target), RunOutcome.BUSY)

    async def aclose(self) -> None:
        await self._analyzer.aclose()

    async def _run(self, target: TargetApplication | None) -> RunOutcome:
        settings = self._current_settings()
        timings = self._timings_for(settings, target)
        analyzer = self._analyzer

        set_run_context(run_id=uuid.uuid4().hex[:12], operation=TONE_OPERATION)
        start = self._clock()
        outcome = RunOutcome.FAILED
        error: AppError | None = None

        try:
            await self._prepare(target, timings)

            snapshot = self._surface.snapshot()
            try:
                self._check_canceled()
                text = await self._capture_text(timings)
            finally:
                self._surface.restore(snapshot)

            self._check_canceled()
            self._feedback.show_info(ANALYZING_MESSAGE)
            result = await self._await_worker(analyzer.analyze(text))

            self._check_canceled()
            self._presenter.show_result(result)
            outcome = RunOutcome.SUCCEEDED

        except CorrectionCanceledError as exc:
            outcome = RunOutcome.CANCELED
            error = exc
            self._feedback.show_info(ANALYSIS_CANCELED_MESSAGE)
        except (PermissionDeniedError, CaptureError) as exc:
            error = exc
            self._feedback.show_error(exc.message)
        except AppError as exc:
            error = exc
            self._presenter.show_error(exc.message)
        except asyncio.CancelledError:
            self._record(analyzer, start, RunOutcome.CANCELED, None)
            clear_run_context()
            raise
        except Exception as exc:
            logger.error(
                "Tone analysis failed unexpectedly",
                extra={"service": "tone", "provider": analyzer.name},
                exc_info=True,
            )
            error = AppError(UNEXPECTED_ANALYSIS_ERROR_MESSAGE, details={"exception": type(exc).__name__})
            self._presenter.show_error(error.message)

        self._record(analyzer, start, outcome, error)
        clear_run_context()
        return outcome

    def _record(
        self,
        analyzer: ToneAnalyzer,
        start: float,
        outcome: RunOutcome,
        error: AppError | None,
    ) -> None:
        if outcome == RunOutcome.CANCELED:
            message: str | None = ANALYSIS_CANCELED_MESSAGE
        else:
            message = error.message if error is not None else None

        record = DiagnosticsRecord(
            operation=TONE_OPERATION,
            provider=analyzer.name,
            model=analyzer.model,
            latency_seconds=max(0.0, self._clock() - start),
            retry_count=analyzer.last_retry_count,
            fallback_count=1 if getattr(analyzer, "used_fallback", False) else 0,
            outcome=outcome,
            message=message,
            error_code=error.code if error is not None else None,
            status_code=getattr(error, "status", None),
        )
        self._diagnostics.record(record)
        logger.info(
            "Tone analysis run finished",
            extra={
                "service": "tone",
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
    "ANALYSIS_BUSY_MESSAGE",
    "ANALYSIS_CANCELED_MESSAGE",
    "ANALYZING_MESSAGE",
    "TONE_OPERATION",
    "ToneAnalysisService",
]
