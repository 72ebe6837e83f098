"""Orchestration services built on the provider layer and the host ports."""

from textpolish.services.capture import TextCaptureService, TextInjectionService
from textpolish.services.diagnostics import DiagnosticsRecord, DiagnosticsStore, RunOutcome
from textpolish.services.orchestrator import (
    CorrectionMode,
    CorrectionOrchestrator,
    FeedbackCooldown,
    RunState,
)
from textpolish.services.tone import ToneAnalysisService

__all__ = [
    "TextCaptureService",
    "TextInjectionService",
    "DiagnosticsRecord",
    "DiagnosticsStore",
    "RunOutcome",
    "CorrectionMode",
    "CorrectionOrchestrator",
    "FeedbackCooldown",
    "RunState",
    "ToneAnalysisService",
]
