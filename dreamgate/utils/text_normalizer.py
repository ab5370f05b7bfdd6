import re

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_for_fingerprint(text: str) -> str:
    """Reduce text to the canonical form used for cache fingerprints.

    Trims the ends, lowercases, and collapses every whitespace run
    (spaces, tabs, newlines) to a single space, so inputs that differ only
    in casing or spacing share one cache slot.

    Args:
        text: Raw input text.

    Returns:
        str: Canonical text.
    """
    return _WHITESPACE_RUN.sub(" ", text.strip().lower())


def clean_dream_text(text: str) -> str:
    """Tidy dream text before it is sent to the model.

    Standardizes line breaks, collapses runs of spaces/tabs and excessive
    blank lines, and trims. Unlike the fingerprint form, case and paragraph
    breaks are preserved.

    Args:
        text: Dream text as submitted.

    Returns:
        str: Cleaned text.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
