"""Decides whether a corrected candidate is close enough to the original."""

import Levenshtein


def newline_count(text: str) -> int:
    return text.count("\n")


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity over code points; ``similarity("", "") == 1.0``."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


class AcceptancePolicy:
    @staticmethod
    def is_acceptable(original: str, candidate: str, min_similarity: float) -> bool:
        if candidate == original:
            return True
        if newline_count(candidate) != newline_count(original):
            return False
        return similarity(original, candidate) >= min_similarity
