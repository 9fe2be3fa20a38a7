"""Liquidity arithmetic helpers."""

from __future__ import annotations

from clamm.constants import MAX_TICK, MAX_UINT128, MIN_TICK
from clamm.safe_int import S


def add_delta(x: int, y: int) -> int:
    """Add a signed liquidity delta to an unsigned liquidity value.

    Raises:
        Underflow: If the result would be negative
        Overflow: If the result exceeds uint128
    """
    if y < 0:
        return (S(x) - (-y)).to_uint128()
    return (S(x) + y).to_uint128()


def tick_spacing_to_max_liquidity_per_tick(tick_spacing: int) -> int:
    """Maximum gross liquidity per tick for a tick spacing.

    Divides the uint128 range evenly between every usable tick, so active
    liquidity can never overflow even if every tick were crossed in one
    direction.
    """
    # Round the bounds toward zero so they stay inside [MIN_TICK, MAX_TICK]
    min_tick = -(-MIN_TICK // tick_spacing) * tick_spacing
    max_tick = (MAX_TICK // tick_spacing) * tick_spacing
    num_ticks = (max_tick - min_tick) // tick_spacing + 1
    return MAX_UINT128 // num_ticks


__all__ = ["add_delta", "tick_spacing_to_max_liquidity_per_tick"]
