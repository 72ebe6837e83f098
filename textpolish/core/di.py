"""Dependency injection container."""

import logging
from dataclasses import dataclass, field

import httpx

from textpolish.ai.providers.base import CorrectionProvider, ToneAnalyzer
from textpolish.ai.providers.credentials import CredentialResolver
from textpolish.ai.providers.detection import ModelDetector
from textpolish.ai.providers.factory import create_correction_provider, create_tone_analyzer
from textpolish.config import Settings, get_settings
from textpolish.ports import (
    AutomationPort,
    CaptureSurface,
    CredentialStore,
    FeedbackSink,
    ToneResultPresenter,
)
from textpolish.services.diagnostics import DiagnosticsStore, LoggingDiagnosticsSink
from textpolish.services.orchestrator import CorrectionOrchestrator
from textpolish.services.recovery import ModelRecoverer, SettingsFallbackSelector
from textpolish.services.tone import ToneAnalysisService

logger = logging.getLogger("di")


@dataclass
class Container:
    """Wires settings, host-provided ports and providers into the run controllers.

    Every provider, analyzer and the model detector share one HTTP client.
    A client passed in by the host stays owned by the host; otherwise the
    container creates one on first use and closes it in ``aclose``.
    """

    settings: Settings
    automation: AutomationPort
    surface: CaptureSurface
    feedback: FeedbackSink
    credential_store: CredentialStore | None = None
    client: httpx.AsyncClient | None = None
    diagnostics: DiagnosticsStore = field(
        default_factory=lambda: DiagnosticsStore(forward_to=LoggingDiagnosticsSink())
    )
    _owned_client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    @property
    def credentials(self) -> CredentialResolver:
        return CredentialResolver(store=self.credential_store)

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self.client is not None:
            return self.client
        if self._owned_client is None or self._owned_client.is_closed:
            self._owned_client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds)
            logger.debug("HTTP client created", extra={"service": "di"})
        return self._owned_client

    def build_provider(self, name: str, settings: Settings | None = None) -> CorrectionProvider:
        return create_correction_provider(
            name,
            settings=settings or self.settings,
            credentials=self.credentials,
            client=self.http_client,
        )

    def build_tone_analyzer(self, name: str | None = None, settings: Settings | None = None) -> ToneAnalyzer:
        return create_tone_analyzer(
            name,
            settings=settings or self.settings,
            credentials=self.credentials,
            client=self.http_client,
        )

    def create_orchestrator(self) -> CorrectionOrchestrator:
        """Create a CorrectionOrchestrator for the configured provider."""
        recoverer = ModelRecoverer(
            self.settings,
            ModelDetector(self.settings, credentials=self.credentials, client=self.http_client),
            build_provider=self.build_provider,
        )
        fallback = SettingsFallbackSelector(self.settings, build_provider=self.build_provider)
        return CorrectionOrchestrator(
            provider=self.build_provider(self.settings.provider),
            automation=self.automation,
            surface=self.surface,
            feedback=self.feedback,
            settings=self.settings,
            recoverer=recoverer,
            fallback_selector=fallback,
            diagnostics=self.diagnostics,
        )

    def create_tone_service(self, presenter: ToneResultPresenter) -> ToneAnalysisService:
        """Create a ToneAnalysisService for the configured provider."""
        return ToneAnalysisService(
            analyzer=self.build_tone_analyzer(),
            presenter=presenter,
            automation=self.automation,
            surface=self.surface,
            feedback=self.feedback,
            settings=self.settings,
            diagnostics=self.diagnostics,
        )

    async def aclose(self) -> None:
        """Close the HTTP client the container created (call on shutdown)."""
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None
            logger.debug("HTTP client closed", extra={"service": "di"})


def get_container(
    automation: AutomationPort,
    surface: CaptureSurface,
    feedback: FeedbackSink,
    credential_store: CredentialStore | None = None,
) -> Container:
    """Get the DI container using the cached settings."""
    return Container(
        settings=get_settings(),
        automation=automation,
        surface=surface,
        feedback=feedback,
        credential_store=credential_store,
    )
