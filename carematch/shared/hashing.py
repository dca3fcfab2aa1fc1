"""
CareMatch Canonical Hashing
Input snapshots are hashed so a recommendation run can be traced back to the
exact data it was computed from.
"""

import hashlib
import json
from datetime import date, datetime
from typing import Any

# Excluded from hashing: they change between otherwise identical runs
VOLATILE_FIELDS = frozenset([
    "generated_at",
    "captured_at",
    "processing_time_ms",
    "recommendation_id",
    "_metadata"
])


def canonicalize(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Convert object to canonical JSON string.
    Deterministic: same input always produces same output.
    """
    def _clean(o: Any) -> Any:
        if hasattr(o, "model_dump"):
            return _clean(o.model_dump(mode="json"))
        if isinstance(o, dict):
            return {
                str(k): _clean(v)
                for k, v in sorted(o.items(), key=lambda kv: str(kv[0]))
                if not (exclude_volatile and k in VOLATILE_FIELDS)
            }
        elif isinstance(o, (list, tuple)):
            return [_clean(i) for i in o]
        elif isinstance(o, (set, frozenset)):
            return sorted(_clean(i) for i in o)
        elif isinstance(o, (datetime, date)):
            return o.isoformat()
        elif isinstance(o, float):
            return round(o, 10)
        return o

    cleaned = _clean(obj)
    return json.dumps(cleaned, sort_keys=True, separators=(',', ':'), ensure_ascii=True)


def canonicalize_and_hash(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Hash an object canonically.
    Returns: "sha256:<64-char-hex>"
    """
    canonical = canonicalize(obj, exclude_volatile)
    digest = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return f"sha256:{digest}"


def verify_hash(obj: Any, expected_hash: str, exclude_volatile: bool = True) -> bool:
    return canonicalize_and_hash(obj, exclude_volatile) == expected_hash


def extract_hash_digest(full_hash: str) -> str:
    """
    "sha256:abc123..." -> "abc123..."
    """
    if full_hash.startswith("sha256:"):
        return full_hash[7:]
    return full_hash
