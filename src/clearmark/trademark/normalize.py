"""Text normalization for deduplication keys."""

import re
import unicodedata
from collections.abc import Iterable

_WHITESPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Remove accents/diacritics (NFD normalization)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def normalize(text: str) -> str:
    """Normalize a mark text into a comparison key.

    - Remove accents/diacritics
    - Convert to lowercase
    - Collapse whitespace runs to a single space
    - Strip surrounding whitespace

    Used only for dedup keys, never for display.

    Args:
        text: Text to normalize

    Returns:
        Normalized key (empty string for empty input)
    """
    text = strip_accents(text or "").lower()
    return _WHITESPACE.sub(" ", text).strip()


def dedup_key(text: str, nice_classes: Iterable[int]) -> str:
    """Build the signature identifying the same mark across registries."""
    classes = "-".join(str(c) for c in sorted(set(nice_classes)))
    return f"{normalize(text)}|{classes}"
