"""Pool state and result types."""

from __future__ import annotations

from dataclasses import dataclass, field

from clamm.models.config import CircuitBreakerConfig, ProtocolFee


@dataclass
class Slot0:
    """Price slot: current price, tick and oracle cursor."""

    sqrt_price_x96: int = 0
    tick: int = 0
    observation_index: int = 0
    observation_cardinality: int = 0
    observation_cardinality_next: int = 0
    fee_protocol: ProtocolFee = field(default_factory=ProtocolFee)


@dataclass
class ProtocolFees:
    """Protocol fees accrued and not yet collected."""

    token0: int = 0
    token1: int = 0


@dataclass(frozen=True)
class PoolSnapshot:
    """Read-only view of a pool's price slot."""

    sqrt_price_x96: int
    tick: int
    observation_index: int
    observation_cardinality: int
    observation_cardinality_next: int
    fee_protocol: ProtocolFee
    circuit_breaker: CircuitBreakerConfig
    liquidity: int
    unlocked: bool


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a swap from the pool's point of view.

    amount0/amount1 are signed deltas of the pool's balances: positive
    amounts are owed to the pool, negative amounts are paid out.
    """

    amount0: int
    amount1: int
    sqrt_price_x96: int
    tick: int
    liquidity: int
    zero_for_one: bool
    fee_amount: int = 0
    crossed_ticks: tuple[int, ...] = ()

    @property
    def amount_in(self) -> int:
        """Input token paid by the swapper (including fee)."""
        return self.amount0 if self.zero_for_one else self.amount1

    @property
    def amount_out(self) -> int:
        """Output token received by the swapper."""
        return -(self.amount1 if self.zero_for_one else self.amount0)


@dataclass(frozen=True)
class CumulativesInside:
    """Oracle accumulators inside a tick range."""

    tick_cumulative_inside: int
    seconds_per_liquidity_inside_x128: int
    seconds_inside: int


__all__ = ["Slot0", "ProtocolFees", "PoolSnapshot", "SwapResult", "CumulativesInside"]
