"""clamm: a concentrated-liquidity AMM pool engine.

Quick start:

    from clamm import Pool, PoolConfig
    from clamm.math import get_sqrt_ratio_at_tick

    pool = Pool(PoolConfig(fee=3000, tick_spacing=60))
    pool.initialize(get_sqrt_ratio_at_tick(0))
    pool.mint("alice", -60, 60, 10**18)
    result = pool.swap(zero_for_one=True, amount_specified=10**16)
"""

from clamm.errors import DomainError, PoolArithmeticError, PoolError, PoolStateError
from clamm.models.config import CircuitBreakerConfig, PoolConfig, ProtocolFee
from clamm.pool import Pool, PoolFactory, PoolQuoter, SwapResult

__version__ = "0.1.0"

__all__ = [
    "Pool",
    "PoolConfig",
    "PoolFactory",
    "PoolQuoter",
    "ProtocolFee",
    "CircuitBreakerConfig",
    "SwapResult",
    "PoolError",
    "DomainError",
    "PoolArithmeticError",
    "PoolStateError",
    "__version__",
]
