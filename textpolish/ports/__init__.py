"""Formal port interfaces for dependency inversion.

The correction core never touches the operating system directly. Clipboard
access, synthetic key events, notifications, keychain lookups and model
recovery are all consumed through the abstract interfaces below and
implemented by the host application (or by fakes in tests).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from textpolish.exceptions import AppError, NoChangeError, NoStringError

if TYPE_CHECKING:
    from textpolish.ai.providers.base import CorrectionProvider
    from textpolish.ai.text.tone import ToneAnalysisResult
    from textpolish.services.diagnostics import DiagnosticsRecord

CAPTURE_POLL_INTERVAL_SECONDS = 0.03


@dataclass(frozen=True)
class TargetApplication:
    """Application to bring to the front before capturing."""

    bundle_identifier: str | None = None
    name: str | None = None


@dataclass
class RecoveryAction:
    """Outcome of a successful recovery attempt."""

    message: str
    provider: "CorrectionProvider | None" = None


class CredentialStore(ABC):
    """Secure storage for provider API keys (e.g. the system keychain)."""

    @abstractmethod
    def get(self, provider: str) -> str | None:
        """Return the stored key for a provider, if any."""
        pass


class AutomationPort(ABC):
    """OS-level input automation. Every trigger is fire-and-forget."""

    @abstractmethod
    def is_automation_trusted(self, prompt: bool = False) -> bool:
        """Whether synthetic key events are permitted."""
        pass

    @abstractmethod
    def trigger_select_all(self) -> None:
        pass

    @abstractmethod
    def trigger_copy(self) -> None:
        pass

    @abstractmethod
    def trigger_paste(self) -> None:
        pass

    def activate(self, target: TargetApplication) -> bool:
        """Bring ``target`` to the front. Returns False when it could not be activated."""
        return False


class CaptureSurface(ABC):
    """The globally shared clipboard."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture the full current contents."""
        pass

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        """Put back contents taken by ``snapshot``."""
        pass

    @abstractmethod
    def set_string(self, text: str) -> None:
        pass

    @abstractmethod
    def read_string(self) -> str | None:
        pass

    @property
    @abstractmethod
    def revision_count(self) -> int:
        """Counter that increases every time the contents change."""
        pass

    async def capture(self, after: int, excluding: str | None, timeout: float) -> str:
        """Wait until the surface changes past revision ``after`` and holds new text.

        Raises:
            NoStringError: The surface changed but never held usable text.
            NoChangeError: The surface never changed before the deadline.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(0.0, timeout)
        changed = False
        while True:
            if self.revision_count != after:
                changed = True
                value = self.read_string()
                if value and value != excluding:
                    return value
            if loop.time() >= deadline:
                break
            await asyncio.sleep(CAPTURE_POLL_INTERVAL_SECONDS)
        if changed:
            raise NoStringError()
        raise NoChangeError()


class FeedbackSink(ABC):
    """One-way user notifications."""

    @abstractmethod
    def show_success(self) -> None:
        pass

    @abstractmethod
    def show_info(self, message: str) -> None:
        pass

    @abstractmethod
    def show_error(self, message: str) -> None:
        pass


class ToneResultPresenter(ABC):
    """Displays the outcome of a tone analysis run."""

    @abstractmethod
    def show_result(self, result: "ToneAnalysisResult") -> None:
        pass

    @abstractmethod
    def show_error(self, message: str) -> None:
        pass


class Recoverer(ABC):
    """Strategy that tries to repair a failed correction (e.g. pick another model)."""

    @abstractmethod
    async def recover(self, error: AppError, provider: "CorrectionProvider") -> RecoveryAction | None:
        pass

    async def aclose(self) -> None:
        """Release resources held by the strategy."""
        return None


class FallbackSelector(ABC):
    """Strategy that picks a different provider after the primary one failed."""

    @abstractmethod
    def select(self, error: AppError, provider: "CorrectionProvider") -> "CorrectionProvider | None":
        pass


class DiagnosticsSink(ABC):
    """Receives one record per completed run."""

    @abstractmethod
    def record(self, record: "DiagnosticsRecord") -> None:
        pass


__all__ = [
    "TargetApplication",
    "RecoveryAction",
    "CredentialStore",
    "AutomationPort",
    "CaptureSurface",
    "FeedbackSink",
    "ToneResultPresenter",
    "Recoverer",
    "FallbackSelector",
    "DiagnosticsSink",
    "CAPTURE_POLL_INTERVAL_SECONDS",
]
