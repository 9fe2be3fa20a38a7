"""Fixed-point math for the pool engine.

This package provides pure functions with no pool state:
- tick_math: tick <-> Q64.96 sqrt price
- sqrt_price_math: token deltas and next price on the curve
- swap_math: a single swap step within one tick range
- full_math, liquidity_math, bit_math: supporting primitives
- liquidity_amounts: sizing helpers between amounts and liquidity
"""

from clamm.math.full_math import div_rounding_up, mul_div, mul_div_rounding_up
from clamm.math.liquidity_amounts import get_amounts_for_liquidity, get_liquidity_for_amounts
from clamm.math.liquidity_math import add_delta, tick_spacing_to_max_liquidity_per_tick
from clamm.math.sqrt_price_math import (
    get_amount0_delta,
    get_amount0_delta_signed,
    get_amount1_delta,
    get_amount1_delta_signed,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)
from clamm.math.swap_math import SwapStep, compute_swap_step
from clamm.math.tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio

__all__ = [
    "mul_div",
    "mul_div_rounding_up",
    "div_rounding_up",
    "add_delta",
    "tick_spacing_to_max_liquidity_per_tick",
    "get_amount0_delta",
    "get_amount1_delta",
    "get_amount0_delta_signed",
    "get_amount1_delta_signed",
    "get_next_sqrt_price_from_input",
    "get_next_sqrt_price_from_output",
    "SwapStep",
    "compute_swap_step",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
    "get_liquidity_for_amounts",
    "get_amounts_for_liquidity",
]
