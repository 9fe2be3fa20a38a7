"""Pool factory: creates pools and tracks them by (token0, token1, fee).

Each enabled fee amount maps to a fixed tick spacing. Several pools can
exist for the same token pair as long as their fee amounts differ.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from clamm.constants import FEE_DENOMINATOR, MAX_TICK_SPACING, TICK_SPACING
from clamm.errors import InvalidFeeAmount, PoolAlreadyExists, UnknownPool
from clamm.models.config import PoolConfig

from .engine import Pool

logger = structlog.get_logger()


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return the pair in canonical (token0, token1) order."""
    if token_a == token_b:
        raise ValueError(f"Tokens must differ, both are {token_a!r}")
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


class PoolFactory:
    """Registry of pools keyed by sorted token pair and fee."""

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        """Create a factory with the standard fee tiers enabled.

        Args:
            clock: Clock handed to every pool created by this factory
        """
        self._clock = clock
        self._fee_amount_tick_spacing: dict[int, int] = dict(TICK_SPACING)
        self._pools: dict[tuple[str, str, int], Pool] = {}

    def __len__(self) -> int:
        return len(self._pools)

    @property
    def fee_amount_tick_spacing(self) -> dict[int, int]:
        return dict(self._fee_amount_tick_spacing)

    def enable_fee_amount(self, fee: int, tick_spacing: int) -> None:
        """Enable a new fee tier. Fee tiers can never be disabled or changed.

        Raises:
            InvalidFeeAmount: If the fee or spacing is out of range, or the
                fee is already enabled
        """
        if not 0 <= fee < FEE_DENOMINATOR:
            raise InvalidFeeAmount(f"Fee {fee} outside [0, {FEE_DENOMINATOR})")
        if not 0 < tick_spacing < MAX_TICK_SPACING:
            raise InvalidFeeAmount(f"Tick spacing {tick_spacing} outside (0, {MAX_TICK_SPACING})")
        if fee in self._fee_amount_tick_spacing:
            raise InvalidFeeAmount(f"Fee {fee} already enabled")

        self._fee_amount_tick_spacing[fee] = tick_spacing
        logger.info("fee_amount_enabled", fee=fee, tick_spacing=tick_spacing)

    def create_pool(self, token_a: str, token_b: str, fee: int) -> Pool:
        """Create an uninitialized pool for a token pair and fee tier.

        Raises:
            ValueError: If the tokens are identical
            InvalidFeeAmount: If the fee tier is not enabled
            PoolAlreadyExists: If the pool already exists
        """
        token0, token1 = sort_tokens(token_a, token_b)
        tick_spacing = self._fee_amount_tick_spacing.get(fee)
        if tick_spacing is None:
            raise InvalidFeeAmount(f"Fee {fee} is not enabled")

        key = (token0, token1, fee)
        if key in self._pools:
            raise PoolAlreadyExists(f"Pool {token0}/{token1} fee={fee} already exists")

        config = PoolConfig(token0=token0, token1=token1, fee=fee, tick_spacing=tick_spacing)
        pool = Pool(config, clock=self._clock)
        self._pools[key] = pool

        logger.info("pool_created", token0=token0, token1=token1, fee=fee, tick_spacing=tick_spacing)
        return pool

    def get_pool(self, token_a: str, token_b: str, fee: int) -> Pool:
        """Look up a pool; token order does not matter.

        Raises:
            UnknownPool: If no such pool was created
        """
        token0, token1 = sort_tokens(token_a, token_b)
        pool = self._pools.get((token0, token1, fee))
        if pool is None:
            raise UnknownPool(f"No pool {token0}/{token1} fee={fee}")
        return pool

    def get_pools(self, token_a: str, token_b: str) -> list[Pool]:
        """All pools for a token pair (every fee tier), ordered by fee."""
        token0, token1 = sort_tokens(token_a, token_b)
        return [
            pool
            for (t0, t1, _fee), pool in sorted(self._pools.items(), key=lambda item: item[0][2])
            if t0 == token0 and t1 == token1
        ]


__all__ = ["PoolFactory", "sort_tokens"]
