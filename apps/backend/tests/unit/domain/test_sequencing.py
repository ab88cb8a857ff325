"""
Name: Advisory Lock Key Unit Tests

Responsibilities:
  - Pin the lock key derivation (31-multiplier 32-bit string hash, abs,
    modulo 2**31 - 1) to known values
  - Verify determinism and range

Notes:
  - Expected values match the classic Java/JavaScript String hash.
"""

import pytest
from app.domain.sequencing import (
    LOCK_KEY_MODULUS,
    aggregate_lock_key,
    string_hash32,
)


@pytest.mark.unit
class TestStringHash32:
    def test_empty_string_is_zero(self):
        assert string_hash32("") == 0

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("a", 97),
            ("ab", 3105),
            ("hello", 99162322),
        ],
    )
    def test_known_values(self, value, expected):
        assert string_hash32(value) == expected

    def test_wraps_to_signed_32_bits(self):
        assert string_hash32("polygenelubricants") == -(2**31)

    def test_uses_utf16_code_units(self):
        # U+1F600 is a surrogate pair: 0xD83D, 0xDE00
        assert string_hash32("\U0001F600") == 0xD83D * 31 + 0xDE00


@pytest.mark.unit
class TestAggregateLockKey:
    def test_known_keys(self):
        assert aggregate_lock_key("a") == 97
        assert aggregate_lock_key("ab") == 3105

    def test_int32_min_hash_maps_into_range(self):
        assert aggregate_lock_key("polygenelubricants") == 1

    def test_deterministic(self):
        assert aggregate_lock_key("order-42") == aggregate_lock_key("order-42")

    def test_always_in_range(self):
        for value in ("order-42", "user:" + "x" * 500, "ñandú", "\U0001F600"):
            key = aggregate_lock_key(value)
            assert 0 <= key < LOCK_KEY_MODULUS

    def test_collisions_are_possible(self):
        # Harmless: colliding aggregates only share a lock.
        assert aggregate_lock_key("Aa") == aggregate_lock_key("BB")
