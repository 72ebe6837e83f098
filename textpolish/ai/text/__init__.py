"""Text helpers used around every correction: protection, cleanup, prompts, acceptance."""

from textpolish.ai.text.acceptance import AcceptancePolicy, newline_count, similarity
from textpolish.ai.text.cleanup import apply_punctuation_policy, clean_output
from textpolish.ai.text.prompts import build_prompt
from textpolish.ai.text.protection import ProtectedText, TextProtector
from textpolish.ai.text.tone import ToneAnalysisResult, build_tone_prompt, parse_tone_response

__all__ = [
    "AcceptancePolicy",
    "ProtectedText",
    "TextProtector",
    "ToneAnalysisResult",
    "apply_punctuation_policy",
    "build_prompt",
    "build_tone_prompt",
    "clean_output",
    "newline_count",
    "parse_tone_response",
    "similarity",
]
