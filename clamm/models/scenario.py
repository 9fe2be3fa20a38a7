"""Pydantic models for pool scenarios.

A scenario is a JSON document describing a pool configuration and an
ordered list of actions to replay against it:

    {
        "config": {"fee": 3000, "tick_spacing": 60},
        "start_time": 1000,
        "steps": [
            {"action": "initialize", "tick": 0},
            {"action": "mint", "owner": "alice", "tick_lower": -60,
             "tick_upper": 60, "amount": "10000000000000000000"},
            {"action": "swap", "zero_for_one": true, "amount_specified": "1000000000000000000"}
        ]
    }

Large integers may be given as decimal strings.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Discriminator, Field, Tag, model_validator

from clamm.constants import MAX_UINT128

from .config import DEFAULT_POOL_CONFIG, CircuitBreakerConfig, PoolConfig, ProtocolFee
from .types import Int256, Tick, Uint128, Uint160


class _Action(BaseModel):
    """Fields shared by every scenario action."""

    expect_error: str | None = Field(
        default=None,
        description="Name of the error class this action is expected to raise.",
    )

    model_config = {"frozen": True}


class InitializeAction(_Action):
    """Set the starting price, either as a sqrt price or a tick."""

    action: Literal["initialize"] = "initialize"
    sqrt_price_x96: Uint160 | None = None
    tick: Tick | None = None

    @model_validator(mode="after")
    def _check_price(self) -> "InitializeAction":
        if (self.sqrt_price_x96 is None) == (self.tick is None):
            raise ValueError("initialize needs exactly one of sqrt_price_x96 or tick")
        return self


class MintAction(_Action):
    action: Literal["mint"] = "mint"
    owner: str
    tick_lower: int
    tick_upper: int
    amount: Uint128


class BurnAction(_Action):
    action: Literal["burn"] = "burn"
    owner: str
    tick_lower: int
    tick_upper: int
    amount: Uint128


class CollectAction(_Action):
    """Collect owed tokens; requests default to everything owed."""

    action: Literal["collect"] = "collect"
    owner: str
    tick_lower: int
    tick_upper: int
    amount0_requested: Uint128 = MAX_UINT128
    amount1_requested: Uint128 = MAX_UINT128


class SwapAction(_Action):
    """Swap; positive amount_specified is exact input, negative exact output."""

    action: Literal["swap"] = "swap"
    zero_for_one: bool
    amount_specified: Int256
    sqrt_price_limit_x96: Uint160 | None = None


class AdvanceTimeAction(_Action):
    action: Literal["advance_time"] = "advance_time"
    seconds: int = Field(gt=0)


class ObserveAction(_Action):
    action: Literal["observe"] = "observe"
    seconds_agos: list[int] = Field(min_length=1)


class IncreaseCardinalityAction(_Action):
    action: Literal["increase_observation_cardinality_next"] = "increase_observation_cardinality_next"
    observation_cardinality_next: int = Field(gt=0)


class SetFeeProtocolAction(_Action):
    action: Literal["set_fee_protocol"] = "set_fee_protocol"
    fee_protocol: ProtocolFee


class SetCircuitBreakerAction(_Action):
    action: Literal["set_circuit_breaker"] = "set_circuit_breaker"
    circuit_breaker: CircuitBreakerConfig


class CollectProtocolAction(_Action):
    action: Literal["collect_protocol"] = "collect_protocol"
    amount0_requested: Uint128 = MAX_UINT128
    amount1_requested: Uint128 = MAX_UINT128


def _get_action_kind(v: Any) -> str:
    """Discriminator function for the ScenarioAction union."""
    if isinstance(v, dict):
        return str(v.get("action", ""))
    return str(v.action)


ScenarioAction = Annotated[
    Annotated[InitializeAction, Tag("initialize")]
    | Annotated[MintAction, Tag("mint")]
    | Annotated[BurnAction, Tag("burn")]
    | Annotated[CollectAction, Tag("collect")]
    | Annotated[SwapAction, Tag("swap")]
    | Annotated[AdvanceTimeAction, Tag("advance_time")]
    | Annotated[ObserveAction, Tag("observe")]
    | Annotated[IncreaseCardinalityAction, Tag("increase_observation_cardinality_next")]
    | Annotated[SetFeeProtocolAction, Tag("set_fee_protocol")]
    | Annotated[SetCircuitBreakerAction, Tag("set_circuit_breaker")]
    | Annotated[CollectProtocolAction, Tag("collect_protocol")],
    Discriminator(_get_action_kind),
]


class Scenario(BaseModel):
    """A pool configuration plus the actions to replay against it."""

    name: str = "scenario"
    config: PoolConfig = DEFAULT_POOL_CONFIG
    start_time: int = Field(default=0, ge=0)
    steps: list[ScenarioAction] = Field(default_factory=list)


class StepOutcome(BaseModel):
    """Result of one replayed action."""

    index: int
    action: str
    result: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class ScenarioOutcome(BaseModel):
    """Every step outcome plus the pool state after the last step."""

    name: str
    steps: list[StepOutcome]
    final_state: dict[str, Any]


__all__ = [
    "InitializeAction",
    "MintAction",
    "BurnAction",
    "CollectAction",
    "SwapAction",
    "AdvanceTimeAction",
    "ObserveAction",
    "IncreaseCardinalityAction",
    "SetFeeProtocolAction",
    "SetCircuitBreakerAction",
    "CollectProtocolAction",
    "ScenarioAction",
    "Scenario",
    "StepOutcome",
    "ScenarioOutcome",
]
