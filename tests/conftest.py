"""Shared fakes for the host-side ports and providers."""

import dataclasses
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from textpolish.ai.providers.base import CorrectionProvider, ToneAnalyzer
from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.config import ProviderConfig, Settings
from textpolish.ports import AutomationPort, CaptureSurface, FeedbackSink, ToneResultPresenter


class FakeSurface(CaptureSurface):
    """In-memory clipboard with a revision counter."""

    def __init__(self, contents: str | None = "original clipboard") -> None:
        self.contents = contents
        self._revision = 0
        self.capture_calls = 0
        self.restored: list[Any] = []
        self.writes: list[str] = []

    def snapshot(self) -> Any:
        return {"contents": self.contents}

    def restore(self, snapshot: Any) -> None:
        self.restored.append(snapshot)
        self.contents = snapshot["contents"]
        self._revision += 1

    def set_string(self, text: str) -> None:
        self.writes.append(text)
        self.contents = text
        self._revision += 1

    def read_string(self) -> str | None:
        return self.contents

    def put_non_text(self) -> None:
        self.contents = None
        self._revision += 1

    @property
    def revision_count(self) -> int:
        return self._revision

    async def capture(self, after: int, excluding: str | None, timeout: float) -> str:
        self.capture_calls += 1
        return await super().capture(after, excluding, timeout)


class FakeAutomation(AutomationPort):
    """Records key events. ``copy_results`` scripts what each copy puts on the surface.

    A string is written as copied text, ``None`` leaves the surface untouched,
    and ``NON_TEXT`` marks the surface changed without any text.
    """

    NON_TEXT = object()

    def __init__(
        self,
        surface: FakeSurface,
        copy_results: list[Any] | None = None,
        trusted: bool = True,
    ) -> None:
        self.surface = surface
        self.copy_results = list(copy_results or [])
        self.trusted = trusted
        self.select_all_count = 0
        self.copy_count = 0
        self.paste_count = 0
        self.activated: list[Any] = []
        self.pasted: list[str | None] = []

    def is_automation_trusted(self, prompt: bool = False) -> bool:
        return self.trusted

    def trigger_select_all(self) -> None:
        self.select_all_count += 1

    def trigger_copy(self) -> None:
        self.copy_count += 1
        result = self.copy_results.pop(0) if self.copy_results else None
        if result is self.NON_TEXT:
            self.surface.put_non_text()
        elif isinstance(result, str):
            self.surface.set_string(result)

    def trigger_paste(self) -> None:
        self.paste_count += 1
        self.pasted.append(self.surface.contents)

    def activate(self, target: Any) -> bool:
        self.activated.append(target)
        return True


class FakeFeedback(FeedbackSink):
    def __init__(self) -> None:
        self.successes = 0
        self.infos: list[str] = []
        self.errors: list[str] = []

    def show_success(self) -> None:
        self.successes += 1

    def show_info(self, message: str) -> None:
        self.infos.append(message)

    def show_error(self, message: str) -> None:
        self.errors.append(message)


class FakeProvider(CorrectionProvider):
    """Provider whose ``correct`` is scripted by a list of results or exceptions."""

    def __init__(
        self,
        name: str = "gemini",
        model: str = "test-model",
        results: list[Any] | None = None,
        on_correct: Callable[[str], Any] | None = None,
    ) -> None:
        self._name = name
        self._model = model
        self.results = list(results or [])
        self.on_correct = on_correct
        self.calls: list[str] = []
        self.last_retry_count = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    async def correct(self, text: str) -> str:
        self.calls.append(text)
        if self.on_correct is not None:
            return await self.on_correct(text)
        result = self.results.pop(0) if self.results else text
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


class FakeToneAnalyzer(ToneAnalyzer):
    """Analyzer whose ``analyze`` is scripted like FakeProvider."""

    def __init__(
        self,
        name: str = "gemini",
        model: str = "test-model",
        results: list[Any] | None = None,
        on_analyze: Callable[[str], Any] | None = None,
    ) -> None:
        self._name = name
        self._model = model
        self.results = list(results or [])
        self.on_analyze = on_analyze
        self.calls: list[str] = []
        self.last_retry_count = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    async def analyze(self, text: str) -> Any:
        self.calls.append(text)
        if self.on_analyze is not None:
            return await self.on_analyze(text)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


class FakePresenter(ToneResultPresenter):
    def __init__(self) -> None:
        self.results: list[Any] = []
        self.errors: list[str] = []

    def show_result(self, result: Any) -> None:
        self.results.append(result)

    def show_error(self, message: str) -> None:
        self.errors.append(message)


async def no_sleep(_seconds: float) -> None:
    return None


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_provider_config(name: str, **overrides: Any) -> ProviderConfig:
    settings = Settings(_env_file=None, **{f"{name}_api_key": "test-key"})
    return dataclasses.replace(settings.provider_config(name), **overrides)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def feedback() -> FakeFeedback:
    return FakeFeedback()


@pytest.fixture
def credentials() -> CredentialResolver:
    return CredentialResolver(environ={})


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, copy_timeout_ms=60, gemini_api_key="test-key")
