"""Tests for the correction orchestrator."""

import asyncio

import pytest

from conftest import FakeAutomation, FakeProvider, RecordingSleep, no_sleep
from textpolish.config import Settings
from textpolish.exceptions import EmptyResponseError, RequestFailedError
from textpolish.ports import FallbackSelector, RecoveryAction, Recoverer, TargetApplication
from textpolish.services.diagnostics import DiagnosticsStore, RunOutcome
from textpolish.services.orchestrator import (
    BUSY_MESSAGE,
    CANCELED_MESSAGE,
    NO_CHANGES_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    CorrectionMode,
    CorrectionOrchestrator,
    FeedbackCooldown,
    RunState,
)


class StaticRecoverer(Recoverer):
    def __init__(self, action=None):
        self.action = action
        self.calls = []
        self.closed = False

    async def recover(self, error, provider):
        self.calls.append((error, provider))
        return self.action

    async def aclose(self):
        self.closed = True


class StaticFallback(FallbackSelector):
    def __init__(self, provider=None):
        self.provider = provider
        self.calls = []

    def select(self, error, provider):
        self.calls.append((error, provider))
        return self.provider


class Blocker:
    """Provider hook that parks inside ``correct`` until released."""

    def __init__(self, result="Fixed text"):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.result = result

    async def __call__(self, text):
        self.started.set()
        await self.release.wait()
        return self.result


def _orchestrator(
    provider,
    surface,
    feedback,
    settings,
    copy_results=("teh text",),
    trusted=True,
    **kwargs,
):
    automation = FakeAutomation(surface, copy_results=list(copy_results), trusted=trusted)
    kwargs.setdefault("sleep", no_sleep)
    kwargs.setdefault("diagnostics", DiagnosticsStore())
    orchestrator = CorrectionOrchestrator(
        provider=provider,
        automation=automation,
        surface=surface,
        feedback=feedback,
        settings=settings,
        **kwargs,
    )
    return orchestrator, automation


class TestCorrectionRun:
    @pytest.mark.asyncio
    async def test_selection_success(self, surface, feedback, settings):
        provider = FakeProvider(results=["the text"])
        orchestrator, automation = _orchestrator(provider, surface, feedback, settings)

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.SUCCEEDED
        assert provider.calls == ["teh text"]
        assert automation.pasted == ["the text"]
        assert automation.select_all_count == 0
        assert feedback.successes == 1
        assert surface.contents == "original clipboard"
        assert len(surface.restored) == 1
        assert orchestrator.state == RunState.IDLE
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_correct_all_selects_everything_first(self, surface, feedback, settings):
        orchestrator, automation = _orchestrator(
            FakeProvider(results=["the text"]), surface, feedback, settings
        )

        await orchestrator.run(CorrectionMode.ALL)

        assert automation.select_all_count == 1
        assert automation.paste_count == 1

    @pytest.mark.asyncio
    async def test_sentinel_written_before_copy(self, surface, feedback, settings):
        orchestrator, _ = _orchestrator(FakeProvider(results=["the text"]), surface, feedback, settings)

        await orchestrator.run(CorrectionMode.SELECTION)

        assert surface.writes[0].startswith("TEXTPOLISH_COPY_SENTINEL_")
        assert surface.writes[-1] == "the text"

    @pytest.mark.asyncio
    async def test_unchanged_text_is_not_pasted(self, surface, feedback, settings):
        orchestrator, automation = _orchestrator(FakeProvider(), surface, feedback, settings)

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.NO_CHANGES
        assert feedback.infos == [NO_CHANGES_MESSAGE]
        assert feedback.successes == 0
        assert automation.paste_count == 0
        assert surface.contents == "original clipboard"

    @pytest.mark.asyncio
    async def test_permission_denied(self, surface, feedback, settings):
        provider = FakeProvider()
        orchestrator, automation = _orchestrator(provider, surface, feedback, settings, trusted=False)

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == ["Enable Accessibility permission to correct text"]
        assert automation.copy_count == 0
        assert provider.calls == []
        assert surface.restored == []

    @pytest.mark.asyncio
    async def test_settings_factory_is_accepted(self, surface, feedback, settings):
        orchestrator, _ = _orchestrator(
            FakeProvider(results=["the text"]), surface, feedback, lambda: settings
        )

        assert await orchestrator.run(CorrectionMode.SELECTION) == RunOutcome.SUCCEEDED

    @pytest.mark.asyncio
    async def test_target_is_activated_with_profile_timings(self, surface, feedback):
        settings = Settings(
            _env_file=None,
            timing_profiles={"com.example.editor": {"activation_delay_ms": 200}},
        )
        sleep = RecordingSleep()
        orchestrator, automation = _orchestrator(
            FakeProvider(results=["the text"]), surface, feedback, settings, sleep=sleep
        )
        target = TargetApplication(bundle_identifier="com.example.editor", name="Editor")

        await orchestrator.run(CorrectionMode.SELECTION, target)

        assert automation.activated == [target]
        assert sleep.calls[0] == 0.2


class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_retried_once(self, surface, feedback, settings):
        provider = FakeProvider(results=["Hello."])
        orchestrator, automation = _orchestrator(
            provider, surface, feedback, settings, copy_results=[None, "hello"]
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.SUCCEEDED
        assert automation.copy_count == 2
        assert surface.capture_calls == 2
        assert automation.paste_count == 1
        assert provider.calls == ["hello"]

    @pytest.mark.asyncio
    async def test_nothing_copied(self, surface, feedback, settings):
        provider = FakeProvider()
        orchestrator, automation = _orchestrator(
            provider, surface, feedback, settings, copy_results=[None, None]
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == ["Copy failed (no text copied)"]
        assert automation.copy_count == 2
        assert provider.calls == []
        assert surface.contents == "original clipboard"

    @pytest.mark.asyncio
    async def test_non_text_copied(self, surface, feedback, settings):
        orchestrator, _ = _orchestrator(
            FakeProvider(),
            surface,
            feedback,
            settings,
            copy_results=[FakeAutomation.NON_TEXT, FakeAutomation.NON_TEXT],
        )

        await orchestrator.run(CorrectionMode.SELECTION)

        assert feedback.errors == ["Copy failed (clipboard has no text)"]
        assert surface.contents == "original clipboard"

    @pytest.mark.asyncio
    async def test_empty_copy_is_not_text(self, surface, feedback, settings):
        provider = FakeProvider()
        orchestrator, _ = _orchestrator(provider, surface, feedback, settings, copy_results=["", ""])

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == ["Copy failed (clipboard has no text)"]
        assert provider.calls == []


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_unexpected_exception_is_reported(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        provider = FakeProvider(results=[AttributeError("'str' object has no attribute 'get'")])
        orchestrator, automation = _orchestrator(
            provider, surface, feedback, settings, diagnostics=diagnostics
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == [UNEXPECTED_ERROR_MESSAGE]
        assert automation.paste_count == 0
        assert surface.contents == "original clipboard"
        assert orchestrator.state == RunState.IDLE
        assert not orchestrator.is_running
        record = diagnostics.last_record
        assert record.outcome == RunOutcome.FAILED
        assert record.message == UNEXPECTED_ERROR_MESSAGE
        assert record.error_code == "APP_ERROR"

    @pytest.mark.asyncio
    async def test_error_is_reported(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        error = RequestFailedError("gemini", 429, "Gemini rate limit or quota exceeded (429)")
        orchestrator, automation = _orchestrator(
            FakeProvider(results=[error]), surface, feedback, settings, diagnostics=diagnostics
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == ["Gemini rate limit or quota exceeded (429)"]
        assert automation.paste_count == 0
        record = diagnostics.last_record
        assert record.error_code == "REQUEST_FAILED"
        assert record.status_code == 429
        assert diagnostics.health("gemini").reason == "Rate limited"

    @pytest.mark.asyncio
    async def test_recovery_swaps_provider(self, surface, feedback, settings):
        replacement = FakeProvider(model="gemini-1.5-flash", results=["the text"])
        recoverer = StaticRecoverer(
            RecoveryAction(message="Gemini model auto-detected: gemini-1.5-flash", provider=replacement)
        )
        primary = FakeProvider(results=[RequestFailedError("gemini", 404, "Gemini model not found (404)")])
        orchestrator, automation = _orchestrator(
            primary, surface, feedback, settings, recoverer=recoverer
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.SUCCEEDED
        assert feedback.infos == ["Gemini model auto-detected: gemini-1.5-flash"]
        assert automation.pasted == ["the text"]
        assert orchestrator.provider is replacement
        assert primary.closed
        assert not replacement.closed

    @pytest.mark.asyncio
    async def test_aclose_releases_provider_and_recoverer(self, surface, feedback, settings):
        provider = FakeProvider()
        recoverer = StaticRecoverer()
        orchestrator, _ = _orchestrator(provider, surface, feedback, settings, recoverer=recoverer)

        await orchestrator.aclose()

        assert provider.closed
        assert recoverer.closed

    @pytest.mark.asyncio
    async def test_fallback_used_when_recovery_declines(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        fallback_provider = FakeProvider(name="openrouter", model="free-model", results=["the text"])
        fallback = StaticFallback(fallback_provider)
        recoverer = StaticRecoverer(None)
        primary = FakeProvider(results=[RequestFailedError("gemini", 500, "Gemini service error (500)")])
        orchestrator, automation = _orchestrator(
            primary,
            surface,
            feedback,
            settings,
            recoverer=recoverer,
            fallback_selector=fallback,
            diagnostics=diagnostics,
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.SUCCEEDED
        assert len(recoverer.calls) == 1
        assert feedback.infos == ["Used OpenRouter as fallback"]
        assert automation.pasted == ["the text"]
        assert orchestrator.provider is primary
        assert fallback_provider.closed
        assert not primary.closed
        record = diagnostics.last_record
        assert record.provider == "openrouter"
        assert record.fallback_count == 1

    @pytest.mark.asyncio
    async def test_fallback_failure_is_wrapped(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        fallback_provider = FakeProvider(
            name="openrouter",
            results=[RequestFailedError("openrouter", 402, "OpenRouter payment required (402)")],
        )
        primary = FakeProvider(results=[EmptyResponseError("gemini")])
        orchestrator, automation = _orchestrator(
            primary,
            surface,
            feedback,
            settings,
            fallback_selector=StaticFallback(fallback_provider),
            diagnostics=diagnostics,
        )

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.FAILED
        assert feedback.errors == ["Fallback also failed: OpenRouter payment required (402)"]
        assert automation.paste_count == 0
        record = diagnostics.last_record
        assert record.error_code == "REQUEST_FAILED"
        assert record.status_code == 402
        assert diagnostics.health("openrouter").reason == "Payment required"

    @pytest.mark.asyncio
    async def test_retry_counts_are_recorded(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        provider = FakeProvider()

        async def correct(text):
            provider.last_retry_count = 2
            return "the text"

        provider.on_correct = correct
        orchestrator, _ = _orchestrator(provider, surface, feedback, settings, diagnostics=diagnostics)

        await orchestrator.run(CorrectionMode.SELECTION)

        assert diagnostics.last_record.retry_count == 2
        assert diagnostics.last_record.outcome == RunOutcome.SUCCEEDED


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_second_trigger_is_rejected(self, surface, feedback, settings):
        blocker = Blocker()
        provider = FakeProvider(on_correct=blocker)
        orchestrator, automation = _orchestrator(
            provider, surface, feedback, settings, clock=lambda: 100.0
        )

        task = orchestrator.correct_selection()
        assert orchestrator.correct_all() is None
        assert orchestrator.correct_selection() is None
        await blocker.started.wait()
        assert await orchestrator.run(CorrectionMode.SELECTION) == RunOutcome.BUSY

        blocker.release.set()
        assert await task == RunOutcome.SUCCEEDED

        assert feedback.infos == [BUSY_MESSAGE]
        assert provider.calls == ["teh text"]
        assert automation.paste_count == 1
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_trigger_allowed_after_completion(self, surface, feedback, settings):
        orchestrator, automation = _orchestrator(
            FakeProvider(results=["the text", "the text"]),
            surface,
            feedback,
            settings,
            copy_results=["teh text", "teh text"],
        )

        await orchestrator.correct_selection()
        await orchestrator.correct_selection()

        assert automation.paste_count == 2
        assert feedback.infos == []

    def test_busy_cooldown(self):
        cooldown = FeedbackCooldown(0.9)

        assert cooldown.should_show(now=10.0)
        assert not cooldown.should_show(now=10.5)
        assert cooldown.should_show(now=10.95)

    @pytest.mark.asyncio
    async def test_busy_cooldown_follows_current_settings(self, surface, feedback, settings):
        current = {"settings": settings}
        blocker = Blocker()
        orchestrator, _ = _orchestrator(
            FakeProvider(on_correct=blocker),
            surface,
            feedback,
            lambda: current["settings"],
            clock=lambda: 100.0,
        )

        task = orchestrator.correct_selection()
        await blocker.started.wait()
        orchestrator.correct_selection()
        orchestrator.correct_selection()
        assert feedback.infos == [BUSY_MESSAGE]

        current["settings"] = settings.model_copy(update={"busy_feedback_cooldown_ms": 0})
        orchestrator.correct_selection()
        assert feedback.infos == [BUSY_MESSAGE, BUSY_MESSAGE]

        blocker.release.set()
        await task


class TestCancellation:
    def test_cancel_when_idle(self, surface, feedback, settings):
        orchestrator, _ = _orchestrator(FakeProvider(), surface, feedback, settings)

        assert orchestrator.cancel() is False

    def test_trigger_without_event_loop_stays_idle(self, surface, feedback, settings):
        orchestrator, automation = _orchestrator(FakeProvider(), surface, feedback, settings)

        with pytest.raises(RuntimeError):
            orchestrator.correct_selection()

        assert not orchestrator.is_running
        assert orchestrator.state == RunState.IDLE
        assert automation.copy_count == 0
        assert feedback.infos == []

    @pytest.mark.asyncio
    async def test_cancel_in_flight_correction(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        blocker = Blocker()
        orchestrator, automation = _orchestrator(
            FakeProvider(on_correct=blocker), surface, feedback, settings, diagnostics=diagnostics
        )

        task = orchestrator.correct_selection()
        await blocker.started.wait()
        assert orchestrator.cancel() is True

        assert await task == RunOutcome.CANCELED
        assert feedback.infos == [CANCELED_MESSAGE]
        assert automation.paste_count == 0
        assert surface.contents == "original clipboard"
        assert diagnostics.last_record.outcome == RunOutcome.CANCELED
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_cancel_during_capture_skips_correction(self, surface, feedback, settings):
        provider = FakeProvider(results=["the text"])
        orchestrator, automation = _orchestrator(provider, surface, feedback, settings)
        copy = automation.trigger_copy

        def copy_then_cancel():
            copy()
            orchestrator.cancel()

        automation.trigger_copy = copy_then_cancel

        outcome = await orchestrator.run(CorrectionMode.SELECTION)

        assert outcome == RunOutcome.CANCELED
        assert provider.calls == []
        assert automation.paste_count == 0
        assert feedback.infos == [CANCELED_MESSAGE]

    @pytest.mark.asyncio
    async def test_external_cancellation_propagates(self, surface, feedback, settings):
        diagnostics = DiagnosticsStore()
        blocker = Blocker()
        orchestrator, automation = _orchestrator(
            FakeProvider(on_correct=blocker), surface, feedback, settings, diagnostics=diagnostics
        )

        task = orchestrator.correct_selection()
        await blocker.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert automation.paste_count == 0
        assert surface.contents == "original clipboard"
        assert diagnostics.last_record.outcome == RunOutcome.CANCELED
        assert not orchestrator.is_running
