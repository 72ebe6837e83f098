"""Single-flight run control shared by the correction and tone controllers.

Both controllers own the shared clipboard for the length of a run, so at
most one run of a controller is active at a time. A request that arrives
while a run is active is dropped; it only produces a throttled "busy"
notification.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

from textpolish.config import Settings, Timings
from textpolish.exceptions import CaptureError, CorrectionCanceledError, PermissionDeniedError
from textpolish.ports import AutomationPort, CaptureSurface, FeedbackSink, TargetApplication
from textpolish.services.capture import TextCaptureService

logger = logging.getLogger("orchestrator")

T = TypeVar("T")

CAPTURE_ATTEMPTS = 2


class FeedbackCooldown:
    """Lets a notification through at most once per interval."""

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_shown: float | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @interval_seconds.setter
    def interval_seconds(self, value: float) -> None:
        self._interval = max(0.0, value)

    def should_show(self, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        if self._last_shown is not None and now - self._last_shown < self._interval:
            return False
        self._last_shown = now
        return True


class SingleFlightController:
    """Base for controllers that capture text from the focused application.

    Subclasses implement ``_run`` and set ``busy_message``. Long-running work
    (the network call) goes through ``_await_worker`` so ``cancel()`` can
    reach it.
    """

    busy_message = "Busy"

    def __init__(
        self,
        automation: AutomationPort,
        surface: CaptureSurface,
        feedback: FeedbackSink,
        settings: Settings | Callable[[], Settings],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._automation = automation
        self._surface = surface
        self._feedback = feedback
        self._settings = settings
        self._sleep = sleep
        self._clock = clock

        self._capture = TextCaptureService(surface, automation, sleep=sleep)
        self._busy_cooldown = FeedbackCooldown(self._busy_interval(), clock=clock)

        self._running = False
        self._cancel_requested = False
        self._run_task: asyncio.Task | None = None
        self._worker_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    def cancel(self) -> bool:
        """Request cancellation of the active run. Returns False when idle."""
        if not self._running:
            return False
        self._cancel_requested = True
        if self._worker_task is not None and not self._worker_task.done():
            self._worker_task.cancel()
        logger.info("Cancellation requested", extra={"service": "orchestrator"})
        return True

    # ==========================================================================
    # Single flight
    # ==========================================================================
    def _start(self, run: Callable[[], Coroutine[Any, Any, T]]) -> asyncio.Task | None:
        """Schedule ``run`` on the running loop, or report busy and return None.

        Raises:
            RuntimeError: No event loop is running; the controller stays idle.
        """
        if self._running:
            self._notify_busy()
            return None
        loop = asyncio.get_running_loop()
        self._running = True
        self._run_task = loop.create_task(self._exclusive(run))
        return self._run_task

    async def _run_now(self, run: Callable[[], Coroutine[Any, Any, T]], busy: T) -> T:
        """Execute ``run`` in the current task, or report busy and return ``busy``."""
        if self._running:
            self._notify_busy()
            return busy
        self._running = True
        return await self._exclusive(run)

    async def _exclusive(self, run: Callable[[], Coroutine[Any, Any, T]]) -> T:
        try:
            return await run()
        finally:
            self._running = False
            self._cancel_requested = False
            self._worker_task = None
            self._run_task = None
            self._on_idle()

    def _on_idle(self) -> None:
        return None

    def _current_settings(self) -> Settings:
        if isinstance(self._settings, Settings):
            return self._settings
        return self._settings()

    def _busy_interval(self) -> float:
        return self._current_settings().busy_feedback_cooldown_ms / 1000.0

    def _notify_busy(self) -> None:
        self._busy_cooldown.interval_seconds = self._busy_interval()
        if self._busy_cooldown.should_show():
            self._feedback.show_info(self.busy_message)
        logger.debug("Run rejected while busy", extra={"service": "orchestrator"})

    # ==========================================================================
    # Run steps
    # ==========================================================================
    def _check_canceled(self) -> None:
        if self._cancel_requested:
            raise CorrectionCanceledError()

    def _timings_for(self, settings: Settings, target: TargetApplication | None) -> Timings:
        if target is not None:
            return settings.timings_for(target.bundle_identifier, target.name)
        return settings.timings

    async def _prepare(self, target: TargetApplication | None, timings: Timings) -> None:
        """Check the automation permission and bring ``target`` to the front."""
        if not self._automation.is_automation_trusted(prompt=True):
            raise PermissionDeniedError()

        if target is not None:
            self._automation.activate(target)
            await self._sleep(Timings.seconds(timings.activation_delay_ms))

    async def _capture_text(self, timings: Timings) -> str:
        """Copy the selection, retrying once with a fresh sentinel on a capture failure."""
        for attempt in range(1, CAPTURE_ATTEMPTS + 1):
            try:
                return await self._capture.capture(
                    timeout=Timings.seconds(timings.copy_timeout_ms),
                    settle_seconds=Timings.seconds(timings.copy_settle_delay_ms),
                )
            except CaptureError as exc:
                if attempt >= CAPTURE_ATTEMPTS:
                    raise
                logger.info(
                    "Capture failed, retrying",
                    extra={"service": "orchestrator", "attempt": attempt, "error_code": exc.code},
                )
                self._check_canceled()
        raise RuntimeError("capture loop ended without a result")

    async def _await_worker(self, work: Coroutine[Any, Any, T]) -> T:
        """Run ``work`` in its own task so ``cancel()`` can reach it.

        Raises:
            CorrectionCanceledError: ``cancel()`` stopped the task.
            asyncio.CancelledError: The surrounding task itself was cancelled.
        """
        task = asyncio.get_running_loop().create_task(work)
        self._worker_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            outer_cancelled = current is not None and current.cancelling() > 0
            if self._cancel_requested and not outer_cancelled:
                raise CorrectionCanceledError() from None
            if not task.done():
                task.cancel()
            raise
        finally:
            self._worker_task = None
