"""Reversible placeholder substitution for spans a provider must not touch."""

import re
import uuid
from dataclasses import dataclass, field

# Applied in order. Later patterns exclude the token brackets so they never
# swallow a placeholder produced by an earlier pattern.
PROTECTED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"```[\s\S]*?```"),
    re.compile(r"`[^`\n⟦⟧]*`"),
    re.compile(r"<[^>\n⟦⟧]+>"),
    re.compile(r"https?://[^\s⟦⟧]+"),
)

TOKEN_PREFIX = "⟦PROTECT_"
TOKEN_SUFFIX = "⟧"


@dataclass(frozen=True)
class ProtectedText:
    text: str
    placeholders: dict[str, str] = field(default_factory=dict)


class TextProtector:
    """Swaps code, bracketed tokens and URLs for opaque tokens and back."""

    def __init__(self, patterns: tuple[re.Pattern[str], ...] = PROTECTED_PATTERNS) -> None:
        self._patterns = patterns

    def protect(self, text: str) -> ProtectedText:
        namespace = uuid.uuid4().hex[:8]
        placeholders: dict[str, str] = {}
        counter = 0

        def _substitute(match: re.Match[str]) -> str:
            nonlocal counter
            token = f"{TOKEN_PREFIX}{namespace}_{counter}{TOKEN_SUFFIX}"
            counter += 1
            placeholders[token] = match.group(0)
            return token

        result = text
        for pattern in self._patterns:
            result = pattern.sub(_substitute, result)
        return ProtectedText(text=result, placeholders=placeholders)

    @staticmethod
    def restore(text: str, placeholders: dict[str, str]) -> str:
        result = text
        for token in placeholders:
            result = result.replace(token, placeholders[token])
        return result

    @staticmethod
    def placeholders_all_present(text: str, placeholders: dict[str, str]) -> bool:
        return all(token in text for token in placeholders)
