"""Text sanitization utilities."""

import re

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_WHITESPACE_RUN = re.compile(r"\s{2,}")


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Sanitize untrusted text fields.

    Removes control characters and truncates to max_length.
    Apply to: company names from filing search, narrative text, news titles.

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text or None if input was None
    """
    if text is None:
        return None

    text = _CONTROL_CHARS.sub("", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text.strip()


def sanitize_reason(text: str | None, max_length: int = 80) -> str | None:
    """
    Clean a generated one-line reason.

    Collapses whitespace, strips surrounding quotes and enforces a hard
    length bound without an ellipsis. Returns None for empty results.
    """
    if text is None:
        return None
    text = _CONTROL_CHARS.sub(" ", str(text))
    text = _WHITESPACE_RUN.sub(" ", text).strip().strip("\"'").strip()
    if not text:
        return None
    return text[:max_length].rstrip()
