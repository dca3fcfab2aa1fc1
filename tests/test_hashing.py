"""
Canonical Hashing Tests

Version: recommendations_v1
"""

from datetime import datetime, timezone

from carematch.holistic import HolisticSignal
from carematch.shared.hashing import (
    canonicalize,
    canonicalize_and_hash,
    extract_hash_digest,
    verify_hash,
)


class TestCanonicalize:

    def test_key_order_irrelevant(self):
        assert canonicalize({"b": 1, "a": 2}) == canonicalize({"a": 2, "b": 1})

    def test_volatile_fields_excluded(self):
        first = {"eligibleCount": 2, "captured_at": "2026-03-02T08:00:00+00:00"}
        second = {"eligibleCount": 2, "captured_at": "2026-03-09T08:00:00+00:00"}

        assert canonicalize_and_hash(first) == canonicalize_and_hash(second)
        assert canonicalize_and_hash(first, exclude_volatile=False) != canonicalize_and_hash(
            second, exclude_volatile=False
        )

    def test_nested_volatile_fields_excluded(self):
        assert canonicalize({"run": {"processing_time_ms": 12, "x": 1}}) == '{"run":{"x":1}}'

    def test_float_noise_ignored(self):
        assert canonicalize({"score": 0.1 + 0.2}) == canonicalize({"score": 0.3})

    def test_models_and_datetimes(self):
        dt = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
        text = canonicalize({"signal": HolisticSignal(), "at": dt, "tags": {"b", "a"}})

        assert '"at":"2026-03-02T08:00:00+00:00"' in text
        assert '"tags":["a","b"]' in text
        assert '"category":"none"' in text


class TestHash:

    def test_prefix_and_digest(self):
        full = canonicalize_and_hash({"a": 1})

        assert full.startswith("sha256:")
        assert len(extract_hash_digest(full)) == 64

    def test_verify(self):
        obj = {"candidates": [{"id": "pro-a", "slots": 3}]}

        assert verify_hash(obj, canonicalize_and_hash(obj))
        assert not verify_hash({"candidates": []}, canonicalize_and_hash(obj))

    def test_extract_unprefixed(self):
        assert extract_hash_digest("abc") == "abc"
