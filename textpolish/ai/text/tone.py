"""Tone analysis prompt and response parsing.

The model is asked for a JSON object with tone, sentiment, formality and a
short explanation. Labels are matched case-insensitively; an unknown tone
or sentiment reads as Neutral and an unknown formality as Casual.
"""

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from textpolish.exceptions import EmptyResponseError, InvalidToneResponseError

MIN_TONE_TEXT_LENGTH = 5
TONE_MAX_OUTPUT_TOKENS = 512


class DetectedTone(StrEnum):
    FRIENDLY = "Friendly"
    FRUSTRATED = "Frustrated"
    FORMAL = "Formal"
    CASUAL = "Casual"
    DIRECT = "Direct"
    NEUTRAL = "Neutral"
    SARCASTIC = "Sarcastic"
    ENTHUSIASTIC = "Enthusiastic"
    CONCERNED = "Concerned"
    PROFESSIONAL = "Professional"


class Sentiment(StrEnum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"
    MIXED = "Mixed"


class FormalityLevel(StrEnum):
    FORMAL = "Formal"
    SEMI_FORMAL = "Semi-formal"
    CASUAL = "Casual"


def _lookup(enum: type[StrEnum], value: Any, default: StrEnum) -> Any:
    if not isinstance(value, str):
        return value
    raw = value.strip().lower()
    for member in enum:
        if member.value.lower() == raw:
            return member
    if enum is FormalityLevel and raw == "semiformal":
        return FormalityLevel.SEMI_FORMAL
    return default


class ToneAnalysisResult(BaseModel):
    """Classification of one piece of text."""

    model_config = ConfigDict(frozen=True)

    tone: DetectedTone
    sentiment: Sentiment
    formality: FormalityLevel
    explanation: str

    @field_validator("tone", mode="before")
    @classmethod
    def _parse_tone(cls, value: Any) -> Any:
        return _lookup(DetectedTone, value, DetectedTone.NEUTRAL)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _parse_sentiment(cls, value: Any) -> Any:
        return _lookup(Sentiment, value, Sentiment.NEUTRAL)

    @field_validator("formality", mode="before")
    @classmethod
    def _parse_formality(cls, value: Any) -> Any:
        return _lookup(FormalityLevel, value, FormalityLevel.CASUAL)

    def summary(self) -> str:
        return f"{self.tone} · {self.sentiment} · {self.formality}"


def build_tone_prompt(text: str) -> str:
    tones = ", ".join(member.value for member in DetectedTone)
    sentiments = ", ".join(member.value for member in Sentiment)
    formality = ", ".join(member.value for member in FormalityLevel)
    return "\n".join(
        [
            "Analyze the tone of the following text. Return a JSON object with exactly these fields:",
            f'- "tone": one of [{tones}]',
            f'- "sentiment": one of [{sentiments}]',
            f'- "formality": one of [{formality}]',
            '- "explanation": a brief 1-2 sentence explanation of why you classified it this way',
            "",
            "Respond with ONLY the JSON object, no other text, no code fences.",
            "",
            "TEXT:",
            text,
        ]
    )


def _strip_fences(output: str) -> str:
    cleaned = output.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```") :]
    if cleaned.endswith("```"):
        cleaned = cleaned[: -len("```")]
    return cleaned.strip()


def parse_tone_response(provider: str, output: str) -> ToneAnalysisResult:
    """Parse the model output into a ToneAnalysisResult.

    Raises:
        EmptyResponseError: The output was blank once code fences were removed.
        InvalidToneResponseError: The output was not the expected JSON object.
    """
    cleaned = _strip_fences(output)
    if not cleaned:
        raise EmptyResponseError(provider)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise InvalidToneResponseError(provider, f"not JSON ({exc.msg})") from None
    if not isinstance(data, dict):
        raise InvalidToneResponseError(provider, "expected a JSON object")

    try:
        return ToneAnalysisResult.model_validate(data)
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        raise InvalidToneResponseError(provider, f"invalid fields: {', '.join(fields)}") from None
