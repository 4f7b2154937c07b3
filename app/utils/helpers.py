"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
import re
import unicodedata


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def slugify(text: str, separator: str = "-") -> str:
    """
    Turn a title into a filesystem and URL safe slug.

    Args:
        text: Raw title, e.g. "Risk Management Plan (v2)"
        separator: Character placed between words

    Returns:
        Lowercase ASCII slug, e.g. "risk-management-plan-v2"
    """
    text = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^\w\s-]', '', text.lower())
    text = re.sub(r'[\s_-]+', separator, text)
    return text.strip(separator) or "document"


def count_words(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Default value if division fails

    Returns:
        Result of division or default
    """
    return numerator / denominator if denominator != 0 else default


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
