"""Prompt construction for minimal-edit correction."""

from textpolish.config import CorrectionLanguage

BASE_INSTRUCTIONS = (
    "You are a grammar and typo corrector.",
    "Fix only spelling, typos, grammar, and clear punctuation mistakes. Only change what is clearly wrong.",
    "Make the smallest possible edits. Do not rewrite, rephrase, translate, or change meaning, context, or tone.",
    "Match the original voice, word choice, and sentence structure.",
    "Keep it human and natural. Do not make it sound formal or robotic.",
    "Keep slang and abbreviations as-is unless they are clearly misspelled.",
    "Do not add or remove words unless required to fix an error.",
    "Do not introduce semicolons, em-dashes, or double hyphens.",
    "Preserve formatting exactly: line breaks, lists, spacing, capitalization style, and emoji.",
    "Tokens like ⟦PROTECT_1a2b3c4d_0⟧ are protected placeholders and must remain unchanged.",
)

OVER_EDIT_WARNING = (
    "IMPORTANT: Your previous output changed the text too much. This time, keep everything "
    "identical except for the minimal characters needed to correct errors."
)

RETURN_INSTRUCTION = "Return only the corrected text. No explanations, no quotes, no code fences."

LANGUAGE_INSTRUCTIONS = {
    CorrectionLanguage.AUTO: None,
    CorrectionLanguage.ENGLISH_US: "The text is in English. Use US English spelling and grammar.",
    CorrectionLanguage.INDONESIAN: (
        "The text is in Indonesian (Bahasa Indonesia). Correct it using standard Indonesian "
        "spelling and grammar. Do not translate it."
    ),
}


def build_prompt(
    text: str,
    attempt: int = 1,
    language: CorrectionLanguage = CorrectionLanguage.AUTO,
    extra_instruction: str | None = None,
) -> str:
    """Build the correction prompt for a one-based attempt number."""
    lines = list(BASE_INSTRUCTIONS)
    if attempt > 1:
        lines.insert(2, OVER_EDIT_WARNING)

    language_line = LANGUAGE_INSTRUCTIONS.get(language)
    if language_line:
        lines.append(language_line)

    extra = (extra_instruction or "").strip()
    if extra:
        lines.append(f"Extra instruction: {extra}")

    lines.append(RETURN_INSTRUCTION)
    return "\n".join(lines + ["", "TEXT:", text])
