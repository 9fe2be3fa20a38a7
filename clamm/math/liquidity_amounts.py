"""Conversions between token amounts and liquidity for a price range.

These helpers answer "how much liquidity can I mint with these amounts"
and "what is this liquidity worth at the current price". They round down
and are meant for sizing positions; the engine itself charges with
get_amount0_delta/get_amount1_delta rounding up.
"""

from __future__ import annotations

from clamm.constants import Q96
from clamm.safe_int import S

from .full_math import mul_div
from .sqrt_price_math import get_amount0_delta, get_amount1_delta


def get_liquidity_for_amount0(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount0: int) -> int:
    """Liquidity received for amount0 of token0 over [a, b]."""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    intermediate = mul_div(sqrt_ratio_a_x96, sqrt_ratio_b_x96, Q96)
    return S(mul_div(amount0, intermediate, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)).to_uint128()


def get_liquidity_for_amount1(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount1: int) -> int:
    """Liquidity received for amount1 of token1 over [a, b]."""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    return S(mul_div(amount1, Q96, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)).to_uint128()


def get_liquidity_for_amounts(
    sqrt_price_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int,
    amount1: int,
) -> int:
    """Maximum liquidity mintable over [a, b] with the given amounts.

    Below the range only token0 counts, above it only token1; inside the
    range the scarcer side limits the result.
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_price_x96 <= sqrt_ratio_a_x96:
        return get_liquidity_for_amount0(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount0)
    if sqrt_price_x96 < sqrt_ratio_b_x96:
        liquidity0 = get_liquidity_for_amount0(sqrt_price_x96, sqrt_ratio_b_x96, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_price_x96, amount1)
        return min(liquidity0, liquidity1)
    return get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount1)


def get_amounts_for_liquidity(
    sqrt_price_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
) -> tuple[int, int]:
    """Token amounts represented by a liquidity amount at the current price."""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_price_x96 <= sqrt_ratio_a_x96:
        return get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, False), 0
    if sqrt_price_x96 < sqrt_ratio_b_x96:
        return (
            get_amount0_delta(sqrt_price_x96, sqrt_ratio_b_x96, liquidity, False),
            get_amount1_delta(sqrt_ratio_a_x96, sqrt_price_x96, liquidity, False),
        )
    return 0, get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, False)


__all__ = [
    "get_liquidity_for_amount0",
    "get_liquidity_for_amount1",
    "get_liquidity_for_amounts",
    "get_amounts_for_liquidity",
]
