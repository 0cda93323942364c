"""Fixed-point helpers between trade precision and native asset decimals.

Trade amounts carry `precision` decimals; custody amounts carry the asset's
native `decimals`. Both are plain ints, so scaling by a power of ten is exact.
"""
from __future__ import annotations


def power_multiplier(decimals: int, precision: int) -> int:
    if precision > decimals:
        raise ValueError(f"precision {precision} exceeds decimals {decimals}")
    return 10 ** (decimals - precision)


def scale_up(amount: int, scale_factor: int) -> int:
    """Trade-precision amount -> native units (sign preserved)."""
    return int(amount) * scale_factor


def scale_down(amount: int, scale_factor: int) -> int:
    """Native units -> trade precision.

    Raises ValueError when the amount carries digits below trade precision,
    instead of silently truncating them.
    """
    q, r = divmod(abs(int(amount)), scale_factor)
    if r:
        raise ValueError(f"{amount} is not representable at trade precision (factor {scale_factor})")
    return q if amount >= 0 else -q
