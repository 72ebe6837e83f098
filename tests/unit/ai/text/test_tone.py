"""Tests for tone analysis prompts and response parsing."""

import pytest

from textpolish.ai.text.tone import (
    DetectedTone,
    FormalityLevel,
    Sentiment,
    ToneAnalysisResult,
    build_tone_prompt,
    parse_tone_response,
)
from textpolish.exceptions import EmptyResponseError, InvalidToneResponseError

REPLY = '{"tone": "Friendly", "sentiment": "Positive", "formality": "Casual", "explanation": "Warm greeting."}'


class TestBuildTonePrompt:
    def test_lists_labels_and_ends_with_text(self):
        prompt = build_tone_prompt("Thanks so much!")

        assert "Friendly, Frustrated, Formal" in prompt
        assert "Positive, Negative, Neutral, Mixed" in prompt
        assert "Formal, Semi-formal, Casual" in prompt
        assert prompt.endswith("TEXT:\nThanks so much!")


class TestParseToneResponse:
    def test_plain_json(self):
        result = parse_tone_response("openai", REPLY)

        assert result == ToneAnalysisResult(
            tone=DetectedTone.FRIENDLY,
            sentiment=Sentiment.POSITIVE,
            formality=FormalityLevel.CASUAL,
            explanation="Warm greeting.",
        )
        assert result.summary() == "Friendly · Positive · Casual"

    def test_code_fences_are_stripped(self):
        assert parse_tone_response("gemini", f"```json\n{REPLY}\n```").tone == DetectedTone.FRIENDLY
        assert parse_tone_response("gemini", f"```\n{REPLY}\n```").tone == DetectedTone.FRIENDLY

    def test_labels_are_case_insensitive(self):
        result = parse_tone_response(
            "openai",
            '{"tone": " professional ", "sentiment": "MIXED", "formality": "semiformal", "explanation": ""}',
        )

        assert result.tone == DetectedTone.PROFESSIONAL
        assert result.sentiment == Sentiment.MIXED
        assert result.formality == FormalityLevel.SEMI_FORMAL

    def test_unknown_labels_use_defaults(self):
        result = parse_tone_response(
            "openai",
            '{"tone": "Whimsical", "sentiment": "Elated", "formality": "Royal", "explanation": "x"}',
        )

        assert result.tone == DetectedTone.NEUTRAL
        assert result.sentiment == Sentiment.NEUTRAL
        assert result.formality == FormalityLevel.CASUAL

    def test_blank_output(self):
        with pytest.raises(EmptyResponseError):
            parse_tone_response("anthropic", "```json\n```")

    def test_not_json(self):
        with pytest.raises(InvalidToneResponseError) as exc_info:
            parse_tone_response("anthropic", "The tone is friendly.")

        assert exc_info.value.code == "INVALID_RESPONSE"
        assert exc_info.value.message.startswith("Could not parse Anthropic response: not JSON")

    def test_not_an_object(self):
        with pytest.raises(InvalidToneResponseError) as exc_info:
            parse_tone_response("openrouter", '["Friendly"]')

        assert exc_info.value.message == "Could not parse OpenRouter response: expected a JSON object"

    def test_missing_fields_are_named(self):
        with pytest.raises(InvalidToneResponseError) as exc_info:
            parse_tone_response("openai", '{"tone": "Friendly", "sentiment": 3}')

        assert exc_info.value.message == (
            "Could not parse OpenAI response: invalid fields: explanation, formality, sentiment"
        )
