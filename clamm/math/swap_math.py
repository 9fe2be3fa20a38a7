"""Single swap step within one tick range."""

from __future__ import annotations

from dataclasses import dataclass

from clamm.constants import FEE_DENOMINATOR

from .full_math import mul_div, mul_div_rounding_up
from .sqrt_price_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)


@dataclass(frozen=True)
class SwapStep:
    """Result of one swap step.

    Attributes:
        sqrt_price_next: Price after the step (never beyond the target)
        amount_in: Input consumed, excluding the fee
        amount_out: Output produced
        fee_amount: Fee charged on the input
    """

    sqrt_price_next: int
    amount_in: int
    amount_out: int
    fee_amount: int


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int,
) -> SwapStep:
    """Swap as far as possible toward a target price without crossing a tick.

    The direction is implied by the target: a target at or below the
    current price sells token0 for token1.

    Exact input (amount_remaining > 0): the fee is taken off the remaining
    input first; if what is left reaches the target, the step stops there,
    otherwise the whole remainder is consumed and anything not converted
    into price movement is kept as fee.

    Exact output (amount_remaining < 0): the step produces at most
    -amount_remaining of output, capped at what the target price allows.

    The fee always rounds up.

    Args:
        sqrt_price_current_x96: Current sqrt price
        sqrt_price_target_x96: Price the step may not pass
        liquidity: Usable liquidity in the range
        amount_remaining: Signed amount still to be swapped
        fee_pips: Fee in hundredths of a basis point

    Returns:
        SwapStep with the new price and the amounts moved
    """
    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    exact_in = amount_remaining >= 0

    amount_in = 0
    amount_out = 0

    if exact_in:
        amount_remaining_less_fee = mul_div(amount_remaining, FEE_DENOMINATOR - fee_pips, FEE_DENOMINATOR)
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)

        if amount_remaining_less_fee >= amount_in:
            sqrt_price_next = sqrt_price_target_x96
        else:
            sqrt_price_next = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)

        if -amount_remaining >= amount_out:
            sqrt_price_next = sqrt_price_target_x96
        else:
            sqrt_price_next = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, -amount_remaining, zero_for_one
            )

    reached_target = sqrt_price_target_x96 == sqrt_price_next

    # Recompute whichever side was not fixed by reaching the target
    if zero_for_one:
        if not (reached_target and exact_in):
            amount_in = get_amount0_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount1_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, False)
    else:
        if not (reached_target and exact_in):
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, False)

    # Output may not exceed what was asked for
    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and sqrt_price_next != sqrt_price_target_x96:
        # Remainder of the request is taken as fee
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, FEE_DENOMINATOR - fee_pips)

    return SwapStep(
        sqrt_price_next=sqrt_price_next,
        amount_in=amount_in,
        amount_out=amount_out,
        fee_amount=fee_amount,
    )


__all__ = ["SwapStep", "compute_swap_step"]
