"""
Text normalisation shared by the keyword classifier and the sanitizer.
"""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Lowercase, strip diacritics, collapse whitespace.

    "  Épuisement   PROFOND " -> "epuisement profond"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _WHITESPACE.sub(" ", stripped).strip()
