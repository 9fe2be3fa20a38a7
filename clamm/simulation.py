"""Replay scenarios against a pool.

run_scenario() drives a fresh Pool with a manual clock through the
actions of a Scenario and reports what each one returned. An action may
declare the error it expects; any other error propagates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from clamm.errors import PoolError
from clamm.math.tick_math import get_sqrt_ratio_at_tick
from clamm.models.scenario import (
    AdvanceTimeAction,
    BurnAction,
    CollectAction,
    CollectProtocolAction,
    IncreaseCardinalityAction,
    InitializeAction,
    MintAction,
    ObserveAction,
    Scenario,
    ScenarioAction,
    ScenarioOutcome,
    SetCircuitBreakerAction,
    SetFeeProtocolAction,
    StepOutcome,
    SwapAction,
)
from clamm.pool.engine import Pool

logger = structlog.get_logger()


class ScenarioError(Exception):
    """A scenario step did not behave as the scenario declared."""

    pass


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot move the clock backwards by {seconds}s")
        self.now += seconds
        return self.now


def load_scenario(path: str | Path) -> Scenario:
    """Parse a scenario JSON file."""
    return Scenario.model_validate_json(Path(path).read_text())


def pool_state(pool: Pool) -> dict[str, Any]:
    """JSON-friendly summary of a pool's state."""
    snapshot = pool.snapshot()
    protocol_fees = pool.protocol_fees
    return {
        "sqrt_price_x96": snapshot.sqrt_price_x96,
        "tick": snapshot.tick,
        "liquidity": snapshot.liquidity,
        "fee_growth_global0_x128": pool.fee_growth_global0_x128,
        "fee_growth_global1_x128": pool.fee_growth_global1_x128,
        "protocol_fees": {"token0": protocol_fees.token0, "token1": protocol_fees.token1},
        "observation_index": snapshot.observation_index,
        "observation_cardinality": snapshot.observation_cardinality,
        "observation_cardinality_next": snapshot.observation_cardinality_next,
        "initialized_ticks": pool.initialized_ticks(),
        "positions": [
            {
                "owner": key.owner,
                "tick_lower": key.tick_lower,
                "tick_upper": key.tick_upper,
                "liquidity": info.liquidity,
                "tokens_owed0": info.tokens_owed0,
                "tokens_owed1": info.tokens_owed1,
            }
            for key, info in pool.positions().items()
        ],
    }


def _apply(pool: Pool, clock: ManualClock, step: ScenarioAction) -> dict[str, Any]:
    if isinstance(step, InitializeAction):
        if step.sqrt_price_x96 is not None:
            sqrt_price_x96 = step.sqrt_price_x96
        elif step.tick is not None:
            sqrt_price_x96 = get_sqrt_ratio_at_tick(step.tick)
        else:
            raise ScenarioError("initialize needs either sqrt_price_x96 or tick")
        return {"tick": pool.initialize(sqrt_price_x96), "sqrt_price_x96": sqrt_price_x96}

    if isinstance(step, MintAction):
        amount0, amount1 = pool.mint(step.owner, step.tick_lower, step.tick_upper, step.amount)
        return {"amount0": amount0, "amount1": amount1}

    if isinstance(step, BurnAction):
        amount0, amount1 = pool.burn(step.owner, step.tick_lower, step.tick_upper, step.amount)
        return {"amount0": amount0, "amount1": amount1}

    if isinstance(step, CollectAction):
        amount0, amount1 = pool.collect(
            step.owner, step.tick_lower, step.tick_upper, step.amount0_requested, step.amount1_requested
        )
        return {"amount0": amount0, "amount1": amount1}

    if isinstance(step, SwapAction):
        result = pool.swap(step.zero_for_one, step.amount_specified, step.sqrt_price_limit_x96)
        return {
            "amount0": result.amount0,
            "amount1": result.amount1,
            "sqrt_price_x96": result.sqrt_price_x96,
            "tick": result.tick,
            "liquidity": result.liquidity,
            "fee_amount": result.fee_amount,
            "crossed_ticks": list(result.crossed_ticks),
        }

    if isinstance(step, AdvanceTimeAction):
        return {"time": clock.advance(step.seconds)}

    if isinstance(step, ObserveAction):
        tick_cumulatives, seconds_per_liquidity = pool.observe(step.seconds_agos)
        return {
            "tick_cumulatives": tick_cumulatives,
            "seconds_per_liquidity_cumulatives_x128": seconds_per_liquidity,
        }

    if isinstance(step, IncreaseCardinalityAction):
        return {
            "observation_cardinality_next": pool.increase_observation_cardinality_next(
                step.observation_cardinality_next
            )
        }

    if isinstance(step, SetFeeProtocolAction):
        pool.set_fee_protocol(step.fee_protocol)
        return {}

    if isinstance(step, SetCircuitBreakerAction):
        pool.set_circuit_breaker(step.circuit_breaker)
        return {}

    if isinstance(step, CollectProtocolAction):
        amount0, amount1 = pool.collect_protocol(step.amount0_requested, step.amount1_requested)
        return {"amount0": amount0, "amount1": amount1}

    raise ScenarioError(f"Unsupported action: {step!r}")


def run_scenario(scenario: Scenario) -> ScenarioOutcome:
    """Replay every step of a scenario on a fresh pool.

    Raises:
        ScenarioError: If a step declared an expected error and did not
            raise it
        PoolError: If a step raised an error it did not declare
    """
    clock = ManualClock(scenario.start_time)
    pool = Pool(scenario.config, clock=clock)
    outcomes: list[StepOutcome] = []

    logger.info("scenario_started", name=scenario.name, steps=len(scenario.steps))

    for index, step in enumerate(scenario.steps):
        try:
            result = _apply(pool, clock, step)
        except PoolError as err:
            if step.expect_error != type(err).__name__:
                raise
            outcomes.append(StepOutcome(index=index, action=step.action, error=type(err).__name__))
            logger.debug("scenario_step_failed_as_expected", index=index, action=step.action, error=str(err))
            continue

        if step.expect_error is not None:
            raise ScenarioError(
                f"Step {index} ({step.action}) expected {step.expect_error} but succeeded with {result}"
            )
        outcomes.append(StepOutcome(index=index, action=step.action, result=result))

    logger.info("scenario_finished", name=scenario.name, tick=pool.tick, liquidity=pool.liquidity)
    return ScenarioOutcome(name=scenario.name, steps=outcomes, final_state=pool_state(pool))


__all__ = ["ManualClock", "ScenarioError", "load_scenario", "pool_state", "run_scenario"]
