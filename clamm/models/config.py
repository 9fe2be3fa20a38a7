"""Pool configuration and administrative value objects.

These are validated on construction and carry no behavior: the engine
stores them and reads them, nothing else. Authorization of who may set
them belongs to the caller.
"""

from pydantic import BaseModel, Field, model_validator

from clamm.constants import FEE_DENOMINATOR, FEE_MEDIUM, MAX_TICK_SPACING, TICK_SPACING
from clamm.math.liquidity_math import tick_spacing_to_max_liquidity_per_tick

from .types import Uint128


class PoolConfig(BaseModel):
    """Immutable parameters of one pool.

    Attributes:
        token0: Identifier of token0 (sorts before token1)
        token1: Identifier of token1
        fee: Swap fee in pips (3000 = 0.3%)
        tick_spacing: Only multiples of this tick may bound a position
        max_liquidity_per_tick: Cap on gross liquidity referencing one tick;
            derived from tick_spacing when not given
    """

    token0: str = "token0"
    token1: str = "token1"
    fee: int = Field(default=FEE_MEDIUM, ge=0, lt=FEE_DENOMINATOR)
    tick_spacing: int = Field(default=TICK_SPACING[FEE_MEDIUM], gt=0, lt=MAX_TICK_SPACING)
    max_liquidity_per_tick: Uint128 | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_tokens(self) -> "PoolConfig":
        if self.token0 == self.token1:
            raise ValueError(f"token0 and token1 must differ, both are {self.token0!r}")
        return self

    @property
    def liquidity_cap(self) -> int:
        """Effective per-tick gross liquidity cap."""
        if self.max_liquidity_per_tick is not None:
            return self.max_liquidity_per_tick
        return tick_spacing_to_max_liquidity_per_tick(self.tick_spacing)


def _valid_protocol_fee_denominator(value: int) -> bool:
    return value == 0 or 4 <= value <= 10


class ProtocolFee(BaseModel):
    """Share of swap fees kept by the protocol, per input token.

    Each value is a denominator: 0 disables the protocol fee for that
    token, otherwise 1/value of each swap fee goes to the protocol.
    """

    token0: int = 0
    token1: int = 0

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_denominators(self) -> "ProtocolFee":
        for name, value in (("token0", self.token0), ("token1", self.token1)):
            if not _valid_protocol_fee_denominator(value):
                raise ValueError(f"Protocol fee {name} must be 0 or in [4, 10], got {value}")
        return self

    def for_direction(self, zero_for_one: bool) -> int:
        """Denominator applying to a swap's input token."""
        return self.token0 if zero_for_one else self.token1


class CircuitBreakerConfig(BaseModel):
    """Circuit-breaker parameters, stored for an external pause policy.

    The engine validates and exposes these values; acting on them is the
    responsibility of the collaborator that owns pause policy.
    """

    enabled: bool = False
    max_tick_move_per_swap: int | None = Field(default=None, gt=0)
    cooldown_seconds: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


DEFAULT_POOL_CONFIG = PoolConfig()
