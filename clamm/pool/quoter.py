"""Swap quotes computed against a pool without changing it.

PoolQuoter answers "how much would I get / need to pay" by running the
swap through Pool.simulate_swap, which always rolls back. A swap that
would fail is reported as None rather than an exception, like a quote
call that reverts.
"""

from __future__ import annotations

import structlog

from clamm.errors import PoolError

from .engine import Pool
from .types import SwapResult

logger = structlog.get_logger()


class PoolQuoter:
    """Quotes swaps against a single pool."""

    def __init__(self, pool: Pool) -> None:
        self.pool = pool

    def simulate_swap(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int | None = None,
    ) -> SwapResult | None:
        """Full swap outcome, or None if the swap would fail."""
        try:
            return self.pool.simulate_swap(zero_for_one, amount_specified, sqrt_price_limit_x96)
        except PoolError as err:
            logger.debug(
                "quote_failed",
                zero_for_one=zero_for_one,
                amount_specified=amount_specified,
                error=str(err),
                error_type=type(err).__name__,
            )
            return None

    def quote_exact_input(
        self,
        zero_for_one: bool,
        amount_in: int,
        sqrt_price_limit_x96: int | None = None,
    ) -> int | None:
        """Output amount for an exact input amount.

        If the price limit stops the swap early, the output is for the
        partially filled input.

        Args:
            zero_for_one: Direction of the swap
            amount_in: Amount of input token (including fee)
            sqrt_price_limit_x96: Optional price limit

        Returns:
            Amount of output token, or None if the quote fails
        """
        if amount_in <= 0:
            return None
        result = self.simulate_swap(zero_for_one, amount_in, sqrt_price_limit_x96)
        if result is None:
            return None
        return result.amount_out

    def quote_exact_output(
        self,
        zero_for_one: bool,
        amount_out: int,
        sqrt_price_limit_x96: int | None = None,
    ) -> int | None:
        """Input amount (including fee) needed for an exact output amount.

        Returns:
            Amount of input token, or None if the quote fails or the pool
            cannot provide the full output
        """
        if amount_out <= 0:
            return None
        result = self.simulate_swap(zero_for_one, -amount_out, sqrt_price_limit_x96)
        if result is None:
            return None
        # Without a price limit a short fill means liquidity ran out
        if sqrt_price_limit_x96 is None and result.amount_out < amount_out:
            logger.debug(
                "quote_failed",
                zero_for_one=zero_for_one,
                amount_specified=-amount_out,
                error="insufficient liquidity",
                amount_out=result.amount_out,
            )
            return None
        return result.amount_in


__all__ = ["PoolQuoter"]
