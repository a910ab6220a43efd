"""Text sanitization utilities."""

import re


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Sanitize untrusted text fields from news providers.

    Removes control characters and truncates to max_length.
    Apply to: headline titles, source names, article text.

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text or None if input was None
    """
    if text is None:
        return None

    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", str(text))

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text.strip()


def headline_excerpt(title: str, length: int = 60) -> str:
    """First ``length`` characters of a headline, always suffixed with an ellipsis."""
    return f"{title[:length]}..."
