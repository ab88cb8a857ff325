"""
===============================================================================
CRC CARD — domain/sequencing.py
===============================================================================

Module:
    Advisory lock key derivation

Responsibilities:
    - Map an aggregate id to a stable integer usable with
      pg_advisory_xact_lock(bigint).

Collaborators:
    - infrastructure.repositories.postgres.event (takes the lock)
    - infrastructure.repositories.in_memory.event (keys its local locks)

Notes:
    - 32-bit polynomial string hash (h * 31 + unit) over UTF-16 code units,
      wrapped to a signed 32-bit int, absolute value, reduced modulo
      2**31 - 1. The same id always yields the same key across processes
      and releases.
    - Collisions between unrelated aggregates only serialize their writers.
      Correctness comes from the unique (aggregate_id, sequence_number)
      index, not from the lock.
===============================================================================
"""

from __future__ import annotations

from typing import Final

LOCK_KEY_MODULUS: Final[int] = 2_147_483_647

_UINT32: Final[int] = 0xFFFFFFFF
_INT32_SIGN: Final[int] = 0x80000000


def _to_int32(value: int) -> int:
    value &= _UINT32
    return value - (1 << 32) if value & _INT32_SIGN else value


def string_hash32(value: str) -> int:
    """Signed 32-bit string hash over UTF-16 code units."""
    encoded = value.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return h


def aggregate_lock_key(aggregate_id: str) -> int:
    """Lock key in [0, 2**31 - 2] for the given aggregate id."""
    return abs(string_hash32(aggregate_id)) % LOCK_KEY_MODULUS
