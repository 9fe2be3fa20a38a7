"""Pydantic models: pool configuration, integer types and scenarios."""

from clamm.models.config import DEFAULT_POOL_CONFIG, CircuitBreakerConfig, PoolConfig, ProtocolFee
from clamm.models.scenario import Scenario, ScenarioAction, ScenarioOutcome, StepOutcome
from clamm.models.types import Int256, Tick, Uint128, Uint160, Uint256

__all__ = [
    "DEFAULT_POOL_CONFIG",
    "CircuitBreakerConfig",
    "PoolConfig",
    "ProtocolFee",
    "Scenario",
    "ScenarioAction",
    "ScenarioOutcome",
    "StepOutcome",
    "Int256",
    "Tick",
    "Uint128",
    "Uint160",
    "Uint256",
]
