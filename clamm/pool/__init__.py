"""Concentrated-liquidity pool: engine, quoter and factory."""

from clamm.pool.engine import Pool, TransferCallback
from clamm.pool.factory import PoolFactory, sort_tokens
from clamm.pool.lock import PoolLock
from clamm.pool.quoter import PoolQuoter
from clamm.pool.types import CumulativesInside, PoolSnapshot, ProtocolFees, Slot0, SwapResult

__all__ = [
    "Pool",
    "TransferCallback",
    "PoolFactory",
    "sort_tokens",
    "PoolLock",
    "PoolQuoter",
    "CumulativesInside",
    "PoolSnapshot",
    "ProtocolFees",
    "Slot0",
    "SwapResult",
]
