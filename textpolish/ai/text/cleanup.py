"""Post-processing of raw provider output before it is validated."""

_QUOTE_PAIRS = (('"', '"'), ("“", "”"))
_CODE_FENCE = "```"


def split_outer_whitespace(text: str) -> tuple[str, str, str]:
    """Return (leading whitespace, core, trailing whitespace)."""
    core = text.strip()
    if not core:
        return text, "", ""
    leading = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()) :]
    return leading, core, trailing


def _is_fenced(text: str) -> bool:
    lines = text.split("\n")
    return len(lines) >= 2 and lines[0].startswith(_CODE_FENCE) and lines[-1].strip() == _CODE_FENCE


def _strip_code_fence(text: str) -> str:
    if not _is_fenced(text):
        return text
    return "\n".join(text.split("\n")[1:-1]).strip()


def _quoted_pair(text: str) -> tuple[str, str] | None:
    if len(text) < 2:
        return None
    for opening, closing in _QUOTE_PAIRS:
        if text.startswith(opening) and text.endswith(closing):
            return opening, closing
    return None


def _strip_quotes(text: str) -> str:
    if _quoted_pair(text) is None:
        return text
    return text[1:-1].strip()


def apply_punctuation_policy(candidate: str, original: str) -> str:
    """Revert semicolons, em-dashes and double hyphens the model introduced."""
    result = candidate
    if ";" not in original:
        result = result.replace(";", ",")
    if "—" not in original:
        result = result.replace("—", "-")
    if "--" not in original:
        result = result.replace("--", "-")
    return result


def clean_output(output: str, original: str) -> str:
    """Strip wrapper artifacts the original did not have and restore its outer whitespace."""
    leading, core, trailing = split_outer_whitespace(original)

    result = output.strip()
    if not _is_fenced(core):
        result = _strip_code_fence(result)
    if _quoted_pair(core) is None:
        result = _strip_quotes(result)
    result = apply_punctuation_policy(result, core)

    if not core or not result:
        return result
    return f"{leading}{result}{trailing}"
