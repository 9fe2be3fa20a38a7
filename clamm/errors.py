"""Pool engine error classes.

Every failure is synchronous and aborts the whole operation. Errors fall
into three families:

- DomainError: invalid arguments (ticks, prices, amounts, limits)
- PoolArithmeticError: fixed-point overflow or division by zero
- PoolStateError: lifecycle misuse (uninitialized, double init, re-entry)
"""


class PoolError(Exception):
    """Base error for pool engine operations."""

    pass


# =============================================================================
# Domain errors
# =============================================================================


class DomainError(PoolError, ValueError):
    """An argument is outside the domain accepted by the engine."""

    pass


class TickOutOfRange(DomainError):
    """Tick is outside [MIN_TICK, MAX_TICK]."""

    pass


class PriceOutOfRange(DomainError):
    """sqrt price is outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)."""

    pass


class MisalignedTick(DomainError):
    """Tick is not a multiple of the pool's tick spacing."""

    pass


class InvalidTickRange(DomainError):
    """Lower tick is not strictly below the upper tick."""

    pass


class ZeroAmountSpecified(DomainError):
    """Amount (token or liquidity) must be nonzero."""

    pass


class PriceLimitOnWrongSide(DomainError):
    """Swap price limit is not strictly beyond the current price."""

    pass


class InvalidAmountRequested(DomainError):
    """Requested payout is negative or exceeds uint128."""

    pass


class InvalidLookBack(DomainError):
    """Oracle look-back is negative."""

    pass


class ObservationTooOld(DomainError):
    """Requested look-back is older than the oldest stored observation."""

    pass


class LiquidityOverflow(DomainError):
    """Gross liquidity at a tick would exceed the per-tick cap."""

    pass


class TickNotInitialized(DomainError):
    """Tick holds no liquidity and has no checkpoints."""

    pass


class NoPositionLiquidity(DomainError):
    """Zero-delta update on a position that holds no liquidity."""

    pass


class InvalidCardinality(DomainError):
    """Observation cardinality outside [1, 65535]."""

    pass


class InvalidFeeAmount(DomainError):
    """Fee amount or tick spacing not accepted by the factory."""

    pass


class PoolAlreadyExists(DomainError):
    """A pool for this token pair and fee already exists."""

    pass


class UnknownPool(DomainError):
    """No pool registered for this token pair and fee."""

    pass


# =============================================================================
# Arithmetic errors
# =============================================================================


class PoolArithmeticError(PoolError, ArithmeticError):
    """Fixed-point arithmetic failed (overflow, underflow, zero divisor)."""

    pass


class PriceComputationOverflow(PoolArithmeticError):
    """An algebraic precondition of a price computation was violated."""

    pass


class ZeroLiquidity(PoolArithmeticError):
    """Price movement requested against zero liquidity."""

    pass


# =============================================================================
# State errors
# =============================================================================


class PoolStateError(PoolError, RuntimeError):
    """Operation is not valid in the current lifecycle state."""

    pass


class NotInitialized(PoolStateError):
    """Pool (or oracle) has not been initialized."""

    pass


class AlreadyInitialized(PoolStateError):
    """Pool (or oracle) was already initialized."""

    pass


class Locked(PoolStateError):
    """A mutator was re-entered while the pool lock is held."""

    pass


__all__ = [
    "PoolError",
    "DomainError",
    "TickOutOfRange",
    "PriceOutOfRange",
    "MisalignedTick",
    "InvalidTickRange",
    "ZeroAmountSpecified",
    "PriceLimitOnWrongSide",
    "InvalidAmountRequested",
    "InvalidLookBack",
    "ObservationTooOld",
    "LiquidityOverflow",
    "TickNotInitialized",
    "NoPositionLiquidity",
    "InvalidCardinality",
    "InvalidFeeAmount",
    "PoolAlreadyExists",
    "UnknownPool",
    "PoolArithmeticError",
    "PriceComputationOverflow",
    "ZeroLiquidity",
    "PoolStateError",
    "NotInitialized",
    "AlreadyInitialized",
    "Locked",
]
