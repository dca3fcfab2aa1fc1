"""CareMatch Shared Utilities"""

from .hashing import (
    canonicalize,
    canonicalize_and_hash,
    verify_hash,
    extract_hash_digest
)
from .text import normalize_text

__all__ = [
    "canonicalize",
    "canonicalize_and_hash",
    "verify_hash",
    "extract_hash_digest",
    "normalize_text",
]
