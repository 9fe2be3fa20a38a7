"""Tests for swap fee distribution and protocol fees."""

import pytest
from structlog.testing import capture_logs

from clamm.constants import MAX_UINT128, Q128
from clamm.errors import InvalidAmountRequested
from clamm.math.full_math import mul_div
from clamm.math.tick_math import get_sqrt_ratio_at_tick
from clamm.models.config import ProtocolFee
from tests.helpers import ALICE, BOB, E18

SWAP_AMOUNT = 10**15


def _collect_all(pool, owner, tick_lower, tick_upper):
    pool.burn(owner, tick_lower, tick_upper, 0)
    return pool.collect(owner, tick_lower, tick_upper, MAX_UINT128, MAX_UINT128)


class TestFeeDistribution:
    """Fees are shared pro rata among in-range liquidity."""

    @pytest.fixture
    def shared_pool(self, pool):
        pool.mint(ALICE, -120, 120, E18)
        pool.mint(BOB, -60, 60, 3 * E18)
        return pool

    def test_proportional_to_liquidity(self, shared_pool):
        result = shared_pool.swap(True, SWAP_AMOUNT)

        alice0, alice1 = _collect_all(shared_pool, ALICE, -120, 120)
        bob0, bob1 = _collect_all(shared_pool, BOB, -60, 60)

        assert alice1 == bob1 == 0
        assert 3 * alice0 <= bob0 <= 3 * alice0 + 2
        # Rounding only ever favors the pool
        assert result.fee_amount - 2 <= alice0 + bob0 <= result.fee_amount

    def test_out_of_range_position_earns_nothing(self, shared_pool):
        shared_pool.mint(ALICE, 120, 180, E18)
        shared_pool.swap(True, SWAP_AMOUNT)
        assert _collect_all(shared_pool, ALICE, 120, 180) == (0, 0)

    def test_fees_in_input_token(self, shared_pool):
        shared_pool.swap(False, SWAP_AMOUNT)
        alice0, alice1 = _collect_all(shared_pool, ALICE, -120, 120)
        assert alice0 == 0
        assert alice1 > 0

    def test_fee_growth_monotone(self, shared_pool):
        seen = [shared_pool.fee_growth_global0_x128]
        for _ in range(3):
            shared_pool.swap(True, SWAP_AMOUNT)
            seen.append(shared_pool.fee_growth_global0_x128)
        assert seen == sorted(seen)
        assert len(set(seen)) == len(seen)

    def test_only_fees_earned_while_in_range(self, shared_pool):
        """After the price leaves BOB's range, only ALICE earns."""
        shared_pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-90))
        _collect_all(shared_pool, ALICE, -120, 120)
        _collect_all(shared_pool, BOB, -60, 60)

        shared_pool.swap(True, SWAP_AMOUNT, get_sqrt_ratio_at_tick(-119))
        alice0, _ = _collect_all(shared_pool, ALICE, -120, 120)
        bob0, _ = _collect_all(shared_pool, BOB, -60, 60)
        assert alice0 > 0
        assert bob0 == 0

    def test_fees_survive_burn(self, shared_pool):
        """Burning credits accrued fees along with principal."""
        shared_pool.swap(True, SWAP_AMOUNT)
        expected_fees = mul_div(shared_pool.fee_growth_global0_x128, 3 * E18, Q128)
        principal0, _ = shared_pool.burn(BOB, -60, 60, 3 * E18)

        position = shared_pool.get_position(BOB, -60, 60)
        assert position.tokens_owed0 == principal0 + expected_fees


class TestProtocolFee:
    """A share of each swap fee goes to the protocol."""

    @pytest.fixture
    def liquid_pool(self, pool):
        pool.mint(ALICE, -60, 60, 10 * E18)
        return pool

    def test_skims_input_token_fee(self, liquid_pool):
        liquid_pool.set_fee_protocol(ProtocolFee(token0=4))
        result = liquid_pool.swap(True, SWAP_AMOUNT)

        protocol_cut = result.fee_amount // 4
        assert liquid_pool.protocol_fees.token0 == protocol_cut
        assert liquid_pool.protocol_fees.token1 == 0
        assert liquid_pool.fee_growth_global0_x128 == mul_div(
            result.fee_amount - protocol_cut, Q128, 10 * E18
        )

    def test_other_direction_uses_its_own_setting(self, liquid_pool):
        liquid_pool.set_fee_protocol(ProtocolFee(token0=4))
        liquid_pool.swap(False, SWAP_AMOUNT)
        assert liquid_pool.protocol_fees.token1 == 0

    def test_collect_protocol(self, liquid_pool):
        liquid_pool.set_fee_protocol(ProtocolFee(token0=5, token1=5))
        liquid_pool.swap(True, SWAP_AMOUNT)
        owed = liquid_pool.protocol_fees.token0

        assert liquid_pool.collect_protocol(1, MAX_UINT128) == (1, 0)
        with capture_logs() as logs:
            assert liquid_pool.collect_protocol(MAX_UINT128, MAX_UINT128) == (owed - 1, 0)
        assert logs[0]["event"] == "protocol_fees_collected"
        assert liquid_pool.protocol_fees.token0 == 0

    @pytest.mark.parametrize("requested", [(-5, 0), (0, -7), (0, MAX_UINT128 + 1)])
    def test_collect_protocol_request_outside_uint128(self, liquid_pool, requested):
        liquid_pool.set_fee_protocol(ProtocolFee(token0=4))
        liquid_pool.swap(True, SWAP_AMOUNT)
        before = liquid_pool.protocol_fees

        with pytest.raises(InvalidAmountRequested):
            liquid_pool.collect_protocol(*requested)

        assert liquid_pool.protocol_fees == before

    def test_disabled_by_default(self, liquid_pool):
        liquid_pool.swap(True, SWAP_AMOUNT)
        assert liquid_pool.protocol_fees.token0 == 0
