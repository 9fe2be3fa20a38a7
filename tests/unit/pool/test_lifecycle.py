"""Tests for pool lifecycle, validation, locking and rollback."""

import threading
from dataclasses import replace

import pytest
from structlog.testing import capture_logs

from clamm.constants import MAX_SQRT_RATIO, MIN_SQRT_RATIO, Q96
from clamm.errors import (
    AlreadyInitialized,
    InvalidTickRange,
    LiquidityOverflow,
    Locked,
    MisalignedTick,
    NotInitialized,
    PriceOutOfRange,
    TickOutOfRange,
    ZeroAmountSpecified,
)
from clamm.math.tick_math import get_sqrt_ratio_at_tick
from clamm.models.config import CircuitBreakerConfig, ProtocolFee
from clamm.pool import Pool
from tests.helpers import ALICE, BOB, E18, START_TIME, TransferRecorder, encode_price_sqrt, make_pool


def _state(pool: Pool) -> tuple:
    """Everything a failed operation must leave untouched."""
    return (
        pool.snapshot(),
        pool.fee_growth_global0_x128,
        pool.fee_growth_global1_x128,
        pool.protocol_fees,
        pool.positions(),
        pool.tick_bitmap(),
        [(tick, pool.get_tick(tick)) for tick in pool.initialized_ticks()],
        [pool.get_observation(i) for i in range(pool.snapshot().observation_cardinality_next)],
    )


class TestInitialize:
    """Tests for Pool.initialize."""

    def test_sets_price_and_tick(self, uninitialized_pool):
        price = encode_price_sqrt(1, 2)
        tick = uninitialized_pool.initialize(price)

        snapshot = uninitialized_pool.snapshot()
        assert snapshot.sqrt_price_x96 == price
        assert snapshot.tick == tick == -6932
        assert snapshot.observation_index == 0
        assert snapshot.observation_cardinality == 1
        assert snapshot.observation_cardinality_next == 1
        assert snapshot.fee_protocol == ProtocolFee()
        assert snapshot.unlocked

    def test_writes_first_observation(self, uninitialized_pool):
        uninitialized_pool.initialize(Q96)
        observation = uninitialized_pool.get_observation(0)
        assert observation.block_timestamp == START_TIME
        assert observation.initialized

    def test_twice_raises(self, pool):
        with pytest.raises(AlreadyInitialized):
            pool.initialize(Q96)

    def test_price_out_of_range(self, uninitialized_pool):
        with pytest.raises(PriceOutOfRange):
            uninitialized_pool.initialize(MIN_SQRT_RATIO - 1)
        with pytest.raises(PriceOutOfRange):
            uninitialized_pool.initialize(MAX_SQRT_RATIO)
        assert not uninitialized_pool.initialized

    def test_extreme_prices_accepted(self):
        assert make_pool(sqrt_price_x96=MIN_SQRT_RATIO).tick == -887272
        assert make_pool(sqrt_price_x96=MAX_SQRT_RATIO - 1).tick == 887271

    def test_logs_initialization(self, uninitialized_pool):
        with capture_logs() as logs:
            uninitialized_pool.initialize(Q96)
        assert logs[0]["event"] == "pool_initialized"
        assert logs[0]["tick"] == 0

    def test_uninitialized_snapshot_reports_locked(self, uninitialized_pool):
        assert not uninitialized_pool.snapshot().unlocked


class TestRequiresInitialization:
    """Every mutator fails before the pool has a price."""

    def test_mint(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.mint(ALICE, -60, 60, 1)

    def test_burn(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.burn(ALICE, -60, 60, 1)

    def test_collect(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.collect(ALICE, -60, 60, 1, 1)

    def test_swap(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.swap(True, 1)

    def test_observe(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.observe([0])

    def test_admin_setters(self, uninitialized_pool):
        with pytest.raises(NotInitialized):
            uninitialized_pool.set_fee_protocol(ProtocolFee(token0=4))
        with pytest.raises(NotInitialized):
            uninitialized_pool.increase_observation_cardinality_next(2)


class TestTickValidation:
    """Tests for range validation on mint and burn."""

    def test_lower_not_below_upper(self, pool):
        with pytest.raises(InvalidTickRange):
            pool.mint(ALICE, 60, 60, 1)
        with pytest.raises(InvalidTickRange):
            pool.mint(ALICE, 120, 60, 1)

    def test_lower_below_min_tick(self, pool):
        with pytest.raises(TickOutOfRange):
            pool.mint(ALICE, -887280, 60, 1)

    def test_upper_above_max_tick(self, pool):
        with pytest.raises(TickOutOfRange):
            pool.mint(ALICE, -60, 887280, 1)

    def test_misaligned_tick(self, pool):
        with pytest.raises(MisalignedTick):
            pool.mint(ALICE, -59, 60, 1)
        with pytest.raises(MisalignedTick):
            pool.burn(ALICE, -60, 61, 0)

    def test_zero_mint(self, pool):
        with pytest.raises(ZeroAmountSpecified):
            pool.mint(ALICE, -60, 60, 0)

    def test_per_tick_cap(self):
        pool = make_pool(max_liquidity_per_tick=E18)
        pool.mint(ALICE, -60, 60, E18)
        with pytest.raises(LiquidityOverflow):
            pool.mint(BOB, -60, 120, 1)


class TestRollback:
    """A failed operation leaves no trace."""

    def test_mint_callback_failure(self, pool):
        pool.mint(ALICE, -120, 120, E18)
        before = _state(pool)

        with pytest.raises(RuntimeError):
            pool.mint(BOB, -60, 60, E18, callback=TransferRecorder(fail=True))

        assert _state(pool) == before
        assert pool.get_position(BOB, -60, 60) is None

    def test_swap_callback_failure(self, pool, clock):
        pool.mint(ALICE, -120, 120, E18)
        clock.advance(10)
        before = _state(pool)

        with pytest.raises(RuntimeError):
            pool.swap(True, E18 // 100, callback=TransferRecorder(fail=True))

        assert _state(pool) == before

    def test_failed_swap_mid_loop(self, pool):
        """An error after ticks were crossed restores every crossed tick."""
        pool.mint(ALICE, -60, 60, E18)
        pool.mint(BOB, -180, 180, E18)
        before = _state(pool)

        def explode(amount0, amount1):
            raise ValueError("nope")

        with pytest.raises(ValueError):
            pool.swap(True, 10 * E18, get_sqrt_ratio_at_tick(-120), callback=explode)

        assert _state(pool) == before

    def test_liquidity_overflow_rolls_back_lower_tick(self):
        """The lower tick update is undone when the upper one fails."""
        pool = make_pool(max_liquidity_per_tick=E18)
        pool.mint(ALICE, 60, 120, E18)
        before = _state(pool)

        with pytest.raises(LiquidityOverflow):
            pool.mint(BOB, -60, 60, 1)

        assert _state(pool) == before

    def test_callback_sees_amounts(self, pool):
        recorder = TransferRecorder()
        amount0, amount1 = pool.mint(ALICE, -60, 60, E18, callback=recorder)
        assert recorder.calls == [(amount0, amount1)]


class TestLock:
    """The lock rejects re-entry through callbacks."""

    def test_reentrant_mint_from_callback(self, pool):
        pool.mint(ALICE, -60, 60, E18)
        before = _state(pool)

        def reenter(amount0, amount1):
            pool.mint(BOB, -60, 60, E18)

        with pytest.raises(Locked):
            pool.swap(True, E18 // 1000, callback=reenter)

        assert _state(pool) == before

    def test_reentrant_swap_from_callback(self, pool):
        def reenter(amount0, amount1):
            pool.swap(True, 1)

        with pytest.raises(Locked):
            pool.mint(ALICE, -60, 60, E18, callback=reenter)

        assert pool.liquidity == 0

    def test_snapshot_reports_lock_during_callback(self, pool):
        seen = []
        pool.mint(ALICE, -60, 60, E18, callback=lambda a0, a1: seen.append(pool.snapshot().unlocked))
        assert seen == [False]
        assert pool.snapshot().unlocked

    def test_reads_allowed_during_callback(self, pool):
        """Read-only queries take no lock."""
        seen = []
        pool.mint(ALICE, -60, 60, E18, callback=lambda a0, a1: seen.append(pool.observe([0])))
        assert seen == [([0], [0])]


class TestAdminSetters:
    """Tests for protocol fee and circuit breaker setters."""

    def test_set_fee_protocol(self, pool):
        pool.set_fee_protocol(ProtocolFee(token0=4, token1=10))
        assert pool.snapshot().fee_protocol == ProtocolFee(token0=4, token1=10)

    def test_set_circuit_breaker(self, pool):
        config = CircuitBreakerConfig(enabled=True, max_tick_move_per_swap=500, cooldown_seconds=30)
        pool.set_circuit_breaker(config)
        assert pool.circuit_breaker == config
        assert pool.snapshot().circuit_breaker == config

    def test_circuit_breaker_does_not_block_swaps(self, pool):
        """The engine stores the parameters; enforcing them is up to the caller."""
        pool.mint(ALICE, -600, 600, E18)
        pool.set_circuit_breaker(CircuitBreakerConfig(enabled=True, max_tick_move_per_swap=1))
        result = pool.swap(True, E18 // 10)
        assert result.tick < -1


class _Gate:
    """Transfer callback that parks its mutator until released."""

    def __init__(self, fail: bool = False) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.fail = fail

    def __call__(self, amount0: int, amount1: int) -> None:
        self.entered.set()
        if not self.release.wait(timeout=5):
            raise TimeoutError("gate never released")
        if self.fail:
            raise RuntimeError("transfer failed")


def _start(target) -> tuple[threading.Thread, dict]:
    """Run target in a thread, recording its result or error."""
    outcome: dict = {}

    def run():
        try:
            outcome["result"] = target()
        except Exception as err:
            outcome["error"] = err

    thread = threading.Thread(target=run)
    thread.start()
    return thread, outcome


def _published_state(pool: Pool) -> tuple:
    """_state without the lock flag, which tracks the mutator in flight."""
    snapshot, *rest = _state(pool)
    return (replace(snapshot, unlocked=True), *rest)


class TestConcurrentAccess:
    """Other threads see only completed operations and queue for the lock."""

    def test_reads_never_see_a_swap_that_rolls_back(self, pool):
        pool.mint(ALICE, -120, 120, E18)
        before = _published_state(pool)
        gate = _Gate(fail=True)

        thread, outcome = _start(lambda: pool.swap(True, E18 // 100, callback=gate))
        assert gate.entered.wait(timeout=5)
        try:
            assert not pool.snapshot().unlocked
            assert _published_state(pool) == before
        finally:
            gate.release.set()
            thread.join(timeout=5)

        assert isinstance(outcome["error"], RuntimeError)
        assert _published_state(pool) == before

    def test_swap_visible_once_complete(self, pool):
        pool.mint(ALICE, -120, 120, E18)
        price_before = pool.sqrt_price_x96
        gate = _Gate()

        thread, outcome = _start(lambda: pool.swap(True, E18 // 100, callback=gate))
        assert gate.entered.wait(timeout=5)
        try:
            assert pool.sqrt_price_x96 == price_before
            assert pool.fee_growth_global0_x128 == 0
        finally:
            gate.release.set()
            thread.join(timeout=5)

        result = outcome["result"]
        assert pool.sqrt_price_x96 == result.sqrt_price_x96 < price_before
        assert pool.fee_growth_global0_x128 > 0

    def test_callback_sees_its_own_swap(self, pool):
        pool.mint(ALICE, -120, 120, E18)
        seen = []
        result = pool.swap(True, E18 // 100, callback=lambda a0, a1: seen.append(pool.sqrt_price_x96))
        assert seen == [result.sqrt_price_x96]

    def test_second_mutator_waits_for_the_first(self, pool):
        gate = _Gate()
        minting, _ = _start(lambda: pool.mint(ALICE, -60, 60, E18, callback=gate))
        assert gate.entered.wait(timeout=5)

        swapping, outcome = _start(lambda: pool.swap(True, E18 // 1000))
        swapping.join(timeout=0.2)
        try:
            assert swapping.is_alive()
            assert outcome == {}
        finally:
            gate.release.set()
            minting.join(timeout=5)
            swapping.join(timeout=5)

        # The swap ran against the committed mint
        assert outcome["result"].liquidity == E18
        assert outcome["result"].amount0 == E18 // 1000
