"""Tests for Pool.swap and Pool.simulate_swap."""

import pytest
from structlog.testing import capture_logs

from clamm.constants import MAX_SQRT_RATIO, MIN_SQRT_RATIO, MIN_TICK, Q96, Q128
from clamm.errors import PriceLimitOnWrongSide, ZeroAmountSpecified
from clamm.math.full_math import mul_div
from clamm.math.sqrt_price_math import get_amount0_delta
from clamm.math.tick_math import get_sqrt_ratio_at_tick
from clamm.safe_int import Overflow
from tests.helpers import ALICE, BOB, E18, START_TIME


@pytest.fixture
def liquid_pool(pool):
    """Pool at tick 0 with 10e18 liquidity over [-60, 60]."""
    pool.mint(ALICE, -60, 60, 10 * E18)
    return pool


class TestExactInput:
    """Swaps with a positive amount_specified."""

    def test_within_one_range(self, liquid_pool):
        amount_in = 10**15
        result = liquid_pool.swap(True, amount_in)

        assert result.amount0 == amount_in
        assert result.amount1 < 0
        assert result.amount_in == amount_in
        assert result.amount_out == -result.amount1
        assert result.crossed_ticks == ()
        # Everything but the fee moved the price along the curve
        assert result.amount0 - result.fee_amount == get_amount0_delta(
            result.sqrt_price_x96, Q96, 10 * E18, True
        )
        assert liquid_pool.sqrt_price_x96 == result.sqrt_price_x96
        assert liquid_pool.tick == result.tick < 0

    def test_output_below_input_at_parity(self, liquid_pool):
        result = liquid_pool.swap(False, 10**15)
        assert result.amount1 == 10**15
        assert 0 < result.amount_out < 10**15
        assert result.tick >= 0

    def test_runs_past_all_liquidity(self, liquid_pool):
        """Once the last range is crossed the price runs to the limit with nothing traded."""
        result = liquid_pool.swap(True, E18)

        assert 0 < result.amount0 < E18
        assert 0 < result.amount_out < result.amount0
        assert result.crossed_ticks == (-60,)
        assert result.liquidity == 0
        assert result.sqrt_price_x96 == MIN_SQRT_RATIO + 1
        assert result.tick == MIN_TICK
        assert liquid_pool.liquidity == 0

    def test_stops_at_price_limit(self, liquid_pool):
        limit = get_sqrt_ratio_at_tick(-30)
        result = liquid_pool.swap(True, 10 * E18, limit)

        assert result.sqrt_price_x96 == limit
        assert result.tick == -30
        assert 0 < result.amount0 < 10 * E18

    def test_empty_pool_moves_price_only(self, pool):
        result = pool.swap(True, 1000)

        assert (result.amount0, result.amount1) == (0, 0)
        assert result.fee_amount == 0
        assert pool.fee_growth_global0_x128 == 0
        assert pool.sqrt_price_x96 == MIN_SQRT_RATIO + 1


class TestExactOutput:
    """Swaps with a negative amount_specified."""

    def test_delivers_exact_amount(self, liquid_pool):
        result = liquid_pool.swap(True, -(10**15))

        assert result.amount1 == -(10**15)
        assert result.amount0 > 10**15
        assert result.amount_out == 10**15

    def test_one_for_zero(self, liquid_pool):
        result = liquid_pool.swap(False, -(10**15))
        assert result.amount0 == -(10**15)
        assert result.amount1 > 10**15

    def test_short_fill_at_limit(self, liquid_pool):
        limit = get_sqrt_ratio_at_tick(-30)
        result = liquid_pool.swap(True, -E18, limit)

        assert result.sqrt_price_x96 == limit
        assert 0 < result.amount_out < E18

    def test_matches_simulation(self, liquid_pool):
        simulated = liquid_pool.simulate_swap(True, -(10**15))
        assert liquid_pool.swap(True, -(10**15)) == simulated


class TestValidation:
    """Argument checks on swap."""

    def test_zero_amount(self, liquid_pool):
        with pytest.raises(ZeroAmountSpecified):
            liquid_pool.swap(True, 0)

    def test_amount_beyond_int256(self, liquid_pool):
        with pytest.raises(Overflow):
            liquid_pool.swap(True, 2**255)

    def test_limit_at_current_price(self, liquid_pool):
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(True, 1, Q96)
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(False, 1, Q96)

    def test_limit_on_wrong_side(self, liquid_pool):
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(True, 1, Q96 + 1)
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(False, 1, Q96 - 1)

    def test_limit_at_price_bounds(self, liquid_pool):
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(True, 1, MIN_SQRT_RATIO)
        with pytest.raises(PriceLimitOnWrongSide):
            liquid_pool.swap(False, 1, MAX_SQRT_RATIO)


class TestCrossing:
    """Crossing initialized ticks updates active liquidity."""

    @pytest.fixture
    def nested_pool(self, pool):
        pool.mint(ALICE, -60, 60, E18)
        pool.mint(BOB, -120, 120, E18)
        return pool

    def test_cross_down(self, nested_pool):
        assert nested_pool.liquidity == 2 * E18
        result = nested_pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-90))

        assert result.crossed_ticks == (-60,)
        assert result.tick == -90
        assert result.liquidity == E18
        assert nested_pool.liquidity == E18

    def test_cross_back_up(self, nested_pool):
        nested_pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-90))
        result = nested_pool.swap(False, 10 * E18, get_sqrt_ratio_at_tick(90))

        assert result.crossed_ticks == (-60, 60)
        assert result.tick == 90
        assert result.liquidity == E18

    def test_each_tick_crossed_once(self, nested_pool):
        result = nested_pool.swap(True, 10 * E18)
        assert result.crossed_ticks == (-60, -120)
        assert len(set(result.crossed_ticks)) == len(result.crossed_ticks)
        assert result.liquidity == 0

    def test_landing_on_tick_going_down_crosses_it(self, nested_pool):
        """Reaching an initialized tick's price going left crosses it."""
        result = nested_pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-60))
        assert result.crossed_ticks == (-60,)
        assert result.tick == -61
        assert result.liquidity == E18

    def test_crossing_updates_fee_growth_outside(self, nested_pool):
        before = nested_pool.get_tick(-60).fee_growth_outside0_x128
        nested_pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-90))
        after = nested_pool.get_tick(-60).fee_growth_outside0_x128
        assert after != before


class TestOracleWrite:
    """Swaps record the tick in effect before they moved the price."""

    def test_writes_start_tick(self, liquid_pool, clock):
        clock.advance(10)
        liquid_pool.swap(True, 10**15)

        observation = liquid_pool.get_observation(0)
        assert observation.block_timestamp == START_TIME + 10
        assert observation.tick_cumulative == 0

    def test_no_write_without_tick_change(self, liquid_pool, clock):
        """A swap too small to move the price only pays a fee."""
        clock.advance(10)
        result = liquid_pool.swap(False, 1)

        assert result.fee_amount == 1
        assert result.sqrt_price_x96 == Q96
        assert liquid_pool.get_observation(0).block_timestamp == START_TIME


class TestSimulateSwap:
    """simulate_swap reports a swap without applying it."""

    def test_leaves_state_untouched(self, liquid_pool):
        before = (liquid_pool.snapshot(), liquid_pool.fee_growth_global0_x128, liquid_pool.get_tick(-60))
        simulated = liquid_pool.simulate_swap(True, E18)
        assert (liquid_pool.snapshot(), liquid_pool.fee_growth_global0_x128, liquid_pool.get_tick(-60)) == before
        assert simulated == liquid_pool.swap(True, E18)

    def test_validates_amount(self, liquid_pool):
        with pytest.raises(ZeroAmountSpecified):
            liquid_pool.simulate_swap(True, 0)


class TestSwapLogging:
    def test_logs_swap(self, liquid_pool):
        with capture_logs() as logs:
            result = liquid_pool.swap(True, 10**15)
        swap_logs = [log for log in logs if log["event"] == "swap_executed"]
        assert len(swap_logs) == 1
        assert swap_logs[0]["amount0"] == result.amount0
        assert swap_logs[0]["ticks_crossed"] == 0


class TestFeeGrowth:
    def test_credits_fee_to_active_liquidity(self, liquid_pool):
        result = liquid_pool.swap(True, 10**15)
        assert liquid_pool.fee_growth_global0_x128 == mul_div(result.fee_amount, Q128, 10 * E18)
        assert liquid_pool.fee_growth_global1_x128 == 0
