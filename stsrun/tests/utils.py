"""Utility helpers shared by statistical tests."""

from __future__ import annotations

import numpy as np

LONG_BITS = 64
LONG_MAX = (1 << (LONG_BITS - 1)) - 1
"""Largest value of the signed 64-bit integers the tables are indexed with."""


def checked_shift(bits: int, *, limit: int = LONG_MAX) -> int:
    """Return ``1 << bits``, raising :class:`OverflowError` past ``limit``."""

    if bits < 0 or bits > LONG_BITS - 2:
        raise OverflowError(f"1 << {bits} does not fit in a signed {LONG_BITS}-bit integer")
    value = 1 << bits
    if value > limit:
        raise OverflowError(f"1 << {bits} exceeds {limit}")
    return value


def checked_mul(*factors: int, limit: int = LONG_MAX) -> int:
    """Multiply ``factors`` and raise :class:`OverflowError` instead of wrapping."""

    product = 1
    for factor in factors:
        if factor < 0:
            raise ValueError(f"checked_mul expects non-negative factors, got {factor}")
        if factor and product > limit // factor:
            raise OverflowError(f"{' * '.join(str(f) for f in factors)} exceeds {limit}")
        product *= factor
    return product


def bits_to_blocks(bits: np.ndarray, block_length: int, block_count: int) -> np.ndarray:
    """Decode ``block_count`` consecutive big-endian blocks of ``block_length`` bits.

    Blocks are assembled one bit column at a time, so the only allocation
    is the ``int64`` result of ``block_count`` entries.
    """

    used = bits[: block_count * block_length]
    values = np.zeros(block_count, dtype=np.int64)
    for column in range(block_length):
        values <<= 1
        values |= used[column::block_length]
    return values


__all__ = [
    "LONG_BITS",
    "LONG_MAX",
    "bits_to_blocks",
    "checked_mul",
    "checked_shift",
]
