"""Token amounts and price movement on the constant-product curve.

Within a single tick range liquidity L is constant and the reserves
follow the virtual curve x * y = L^2. Writing sqrt prices as sP:

    amount0 = L * (sP_b - sP_a) / (sP_a * sP_b)
    amount1 = L * (sP_b - sP_a)

Rounding always favours the pool: amounts the pool receives round up,
amounts it pays out round down, and the next price after an input rounds
so that the pool never gives away more than the curve allows.

IMPORTANT: All intermediate products go through full_math/SafeInt so
overflow and zero divisors surface as errors instead of silently
saturating.
"""

from __future__ import annotations

from clamm.constants import MAX_UINT160, MAX_UINT256, Q96, RESOLUTION
from clamm.errors import PriceComputationOverflow, ZeroLiquidity
from clamm.safe_int import S

from .full_math import div_rounding_up, mul_div, mul_div_rounding_up


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """Next sqrt price after adding or removing an amount of token0.

    Uses L * sP / (L + amount * sP) when it fits in 256 bits and falls back
    to L / (L / sP + amount) otherwise. Always rounds up, so the price
    moves less far when token0 is added (and further when removed).

    Args:
        sqrt_price_x96: Starting sqrt price
        liquidity: Usable liquidity
        amount: Amount of token0 added to or removed from virtual reserves
        add: Whether the amount is added (True) or removed (False)

    Raises:
        PriceComputationOverflow: If removing more token0 than the curve holds
    """
    if amount == 0:
        return sqrt_price_x96

    numerator1 = liquidity << RESOLUTION
    product = amount * sqrt_price_x96

    if add:
        if product <= MAX_UINT256:
            denominator = numerator1 + product
            if denominator <= MAX_UINT256:
                return mul_div_rounding_up(numerator1, sqrt_price_x96, denominator)
        return div_rounding_up(numerator1, numerator1 // sqrt_price_x96 + amount)

    if product > MAX_UINT256 or numerator1 <= product:
        raise PriceComputationOverflow(
            f"Cannot remove {amount} token0 from liquidity {liquidity} at price {sqrt_price_x96}"
        )
    denominator = numerator1 - product
    return S(mul_div_rounding_up(numerator1, sqrt_price_x96, denominator)).to_uint160()


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """Next sqrt price after adding or removing an amount of token1.

    sP' = sP +/- amount / L, always rounding down.

    Raises:
        PriceComputationOverflow: If removing more token1 than the curve holds
        Overflow: If the new price does not fit in uint160
    """
    if add:
        if amount <= MAX_UINT160:
            quotient = ((S(amount) << RESOLUTION) // S(liquidity)).value
        else:
            quotient = mul_div(amount, Q96, liquidity)
        return (S(sqrt_price_x96) + quotient).to_uint160()

    if amount <= MAX_UINT160:
        quotient = div_rounding_up(amount << RESOLUTION, liquidity)
    else:
        quotient = mul_div_rounding_up(amount, Q96, liquidity)

    if sqrt_price_x96 <= quotient:
        raise PriceComputationOverflow(
            f"Cannot remove {amount} token1 from liquidity {liquidity} at price {sqrt_price_x96}"
        )
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool,
) -> int:
    """Next sqrt price after swapping amount_in of the input token.

    Raises:
        ZeroLiquidity: If liquidity is zero
        PriceComputationOverflow: If the starting price is zero
    """
    _require_price_and_liquidity(sqrt_price_x96, liquidity)
    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool,
) -> int:
    """Next sqrt price after swapping out amount_out of the output token.

    Raises:
        ZeroLiquidity: If liquidity is zero
        PriceComputationOverflow: If the starting price is zero or the
            output exceeds the virtual reserves
    """
    _require_price_and_liquidity(sqrt_price_x96, liquidity)
    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """Amount of token0 between two prices for a liquidity amount.

    Computes L * (sP_b - sP_a) / (sP_a * sP_b); the arguments may be in
    either order.

    Raises:
        PriceComputationOverflow: If the lower price is zero
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_ratio_a_x96 <= 0:
        raise PriceComputationOverflow("sqrt price must be positive")

    numerator1 = liquidity << RESOLUTION
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96,
        )
    return mul_div(numerator1, numerator2, sqrt_ratio_b_x96) // sqrt_ratio_a_x96


def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """Amount of token1 between two prices for a liquidity amount.

    Computes L * (sP_b - sP_a); the arguments may be in either order.
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)
    return mul_div(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)


def get_amount0_delta_signed(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity: int) -> int:
    """Signed token0 delta for a signed liquidity change.

    Adding liquidity (positive) rounds up and returns a positive amount the
    pool receives; removing (negative) rounds down and returns a negative
    amount the pool owes.
    """
    if liquidity < 0:
        return -S(get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, -liquidity, False)).to_int256()
    return S(get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, True)).to_int256()


def get_amount1_delta_signed(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity: int) -> int:
    """Signed token1 delta for a signed liquidity change."""
    if liquidity < 0:
        return -S(get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, -liquidity, False)).to_int256()
    return S(get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, True)).to_int256()


def _require_price_and_liquidity(sqrt_price_x96: int, liquidity: int) -> None:
    if sqrt_price_x96 <= 0:
        raise PriceComputationOverflow("sqrt price must be positive")
    if liquidity <= 0:
        raise ZeroLiquidity("Cannot move price with zero liquidity")


__all__ = [
    "get_next_sqrt_price_from_amount0_rounding_up",
    "get_next_sqrt_price_from_amount1_rounding_down",
    "get_next_sqrt_price_from_input",
    "get_next_sqrt_price_from_output",
    "get_amount0_delta",
    "get_amount1_delta",
    "get_amount0_delta_signed",
    "get_amount1_delta_signed",
]
