"""Tick <-> sqrt price conversion.

Prices are stored as sqrt(price) in Q64.96 fixed point, where
price = 1.0001^tick is the amount of token1 per token0. Both directions
use integer-only arithmetic so results are bit-exact and reproducible:

- get_sqrt_ratio_at_tick multiplies together precomputed Q128 factors
  1/sqrt(1.0001)^(2^i) for each set bit of |tick|, inverting for
  positive ticks.
- get_tick_at_sqrt_ratio approximates log2 of the ratio with 14
  fractional bits, rescales to log base sqrt(1.0001) and picks between
  the two candidate ticks the error bounds allow.

The two are mutual inverses: get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(t)) == t.
"""

from __future__ import annotations

from clamm.constants import MAX_SQRT_RATIO, MAX_TICK, MAX_UINT256, MIN_SQRT_RATIO, MIN_TICK
from clamm.errors import PriceOutOfRange, TickOutOfRange

__all__ = [
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
]

# 1/sqrt(1.0001)^(2^i) in Q128, for i = 1..19 (i = 0 seeds the ratio)
_TICK_FACTORS: tuple[tuple[int, int], ...] = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)

_ODD_TICK_FACTOR = 0xFFFCB933BD6FAD37AA2D162D1A594001

# log_2(sqrt(1.0001)) reciprocal in Q64 (multiplying a Q64 log2 by this
# gives a Q128 log base sqrt(1.0001))
_LOG_SQRT10001_MULTIPLIER = 255738958999603826347141

# Error bounds of the log approximation, Q128
_TICK_LOW_OFFSET = 3402992956809132418596140100660247210
_TICK_HI_OFFSET = 291339464771989622907027621153398088495


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Calculate sqrt(1.0001^tick) * 2^96.

    Args:
        tick: Tick index in [MIN_TICK, MAX_TICK]

    Returns:
        sqrt price as a Q64.96 integer, rounded up

    Raises:
        TickOutOfRange: If tick is outside the supported range
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfRange(f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = -tick if tick < 0 else tick

    ratio = _ODD_TICK_FACTOR if abs_tick & 0x1 else 1 << 128
    for bit, factor in _TICK_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so the result is never below the true price
    return (ratio >> 32) + (1 if ratio & 0xFFFFFFFF else 0)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Calculate the greatest tick whose sqrt ratio is <= sqrt_price_x96.

    Args:
        sqrt_price_x96: sqrt price in [MIN_SQRT_RATIO, MAX_SQRT_RATIO)

    Returns:
        The tick, rounded down

    Raises:
        PriceOutOfRange: If the price is outside the supported range
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise PriceOutOfRange(
            f"sqrt price {sqrt_price_x96} outside [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})"
        )

    ratio = sqrt_price_x96 << 32
    msb = ratio.bit_length() - 1

    # Normalize so that r is in [2^127, 2^128)
    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64

    # Square-and-compare: each round yields one fractional bit of log2
    for shift in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << shift
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_MULTIPLIER

    tick_low = (log_sqrt10001 - _TICK_LOW_OFFSET) >> 128
    tick_hi = (log_sqrt10001 + _TICK_HI_OFFSET) >> 128

    if tick_low == tick_hi:
        return tick_low
    return tick_hi if get_sqrt_ratio_at_tick(tick_hi) <= sqrt_price_x96 else tick_low
