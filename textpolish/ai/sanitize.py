"""Redaction of secrets from provider error text before it is logged or shown."""

import re

MAX_LENGTH = 200
ELLIPSIS = "…"

_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._\-]{8,}"), r"\1[REDACTED]"),
    (re.compile(r"(?i)\bsk-ant-[A-Za-z0-9_\-]{8,}\b"), "sk-ant-[REDACTED]"),
    (re.compile(r"(?i)\bsk-[A-Za-z0-9_\-]{8,}\b"), "sk-[REDACTED]"),
    (
        re.compile(r"""(?i)("?\b(?:api[_-]?key|authorization|x-api-key|key)"?\s*[:=]\s*"?)[^",\s&]{6,}"""),
        r"\1[REDACTED]",
    ),
]


def sanitize_error_message(message: str | None, max_length: int = MAX_LENGTH) -> str | None:
    """Redact credentials and cap length.

    Returns None for empty or whitespace-only input.
    """
    if message is None:
        return None
    text = message.strip()
    if not text:
        return None

    text = redact_query_key(text)
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)

    if len(text) > max_length:
        text = text[:max_length] + ELLIPSIS
    return text


def redact_query_key(url: str) -> str:
    """Hide the ``key=`` query parameter of a URL."""
    return re.sub(r"([?&]key=)[^&\s]*", r"\1[REDACTED]", url)
