"""Tests for the observation ring buffer."""

import pytest

from clamm.errors import AlreadyInitialized, InvalidCardinality, InvalidLookBack, NotInitialized, ObservationTooOld
from clamm.state.oracle import Observation, Oracle, transform

START = 1000


@pytest.fixture
def oracle() -> Oracle:
    oracle = Oracle()
    oracle.initialize(START)
    return oracle


class TestInitialize:
    """Tests for Oracle.initialize."""

    def test_first_observation(self, oracle):
        assert oracle.initialized
        assert oracle[0] == Observation(block_timestamp=START, initialized=True)
        assert len(oracle) == 1

    def test_returns_cardinality(self):
        assert Oracle().initialize(START) == (1, 1)

    def test_twice_raises(self, oracle):
        with pytest.raises(AlreadyInitialized):
            oracle.initialize(START + 1)


class TestTransform:
    """Tests for the accumulator extension."""

    def test_accumulates_tick_and_inverse_liquidity(self):
        last = Observation(block_timestamp=10, initialized=True)
        observation = transform(last, 16, 3, 2)
        assert observation.tick_cumulative == 18
        assert observation.seconds_per_liquidity_cumulative_x128 == 3 << 128

    def test_zero_liquidity_counts_as_one(self):
        last = Observation(block_timestamp=10, initialized=True)
        assert transform(last, 11, 0, 0).seconds_per_liquidity_cumulative_x128 == 1 << 128

    def test_negative_tick(self):
        last = Observation(block_timestamp=10, tick_cumulative=5, initialized=True)
        assert transform(last, 12, -7, 1).tick_cumulative == -9


class TestWrite:
    """Tests for Oracle.write."""

    def test_same_timestamp_is_noop(self, oracle):
        assert oracle.write(0, START, 5, 10, 1, 1) == (0, 1)
        assert oracle[0].tick_cumulative == 0

    def test_overwrites_single_slot(self, oracle):
        """With cardinality 1 every write replaces slot 0."""
        assert oracle.write(0, START + 6, 3, 2, 1, 1) == (0, 1)
        assert oracle[0].block_timestamp == START + 6
        assert oracle[0].tick_cumulative == 18

    def test_grows_into_allocated_slots(self, oracle):
        """Cardinality only grows once the write index reaches the end of the ring."""
        oracle.grow(1, 3)
        assert oracle.write(0, START + 1, 1, 1, 1, 3) == (1, 3)
        assert oracle.write(1, START + 2, 1, 1, 3, 3) == (2, 3)
        assert oracle.write(2, START + 3, 1, 1, 3, 3) == (0, 3)
        assert oracle[0].block_timestamp == START + 3

    def test_records_tick_since_last_write(self, oracle):
        oracle.grow(1, 2)
        index, cardinality = oracle.write(0, START + 10, -4, 1, 1, 2)
        assert (index, cardinality) == (1, 2)
        assert oracle[1].tick_cumulative == -40


class TestGrow:
    """Tests for Oracle.grow."""

    def test_allocates_placeholders(self, oracle):
        assert oracle.grow(1, 5) == 5
        assert len(oracle) == 5
        assert not oracle[4].initialized
        assert oracle[4].block_timestamp == 1

    def test_never_shrinks(self, oracle):
        oracle.grow(1, 5)
        assert oracle.grow(5, 3) == 5
        assert len(oracle) == 5

    def test_uninitialized_raises(self):
        with pytest.raises(NotInitialized):
            Oracle().grow(0, 2)

    def test_above_maximum_raises(self, oracle):
        with pytest.raises(InvalidCardinality):
            oracle.grow(1, 65536)


class TestObserve:
    """Tests for observe / observe_single."""

    def test_zero_look_back_at_write_time(self, oracle):
        """Immediately after a write, observe([0]) returns what was written."""
        oracle.write(0, START + 5, 2, 1, 1, 1)
        assert oracle.observe(START + 5, [0], 7, 0, 1, 1) == ([10], [5 << 128])

    def test_zero_look_back_extrapolates(self, oracle):
        """Later than the last write, the current tick and liquidity are extrapolated."""
        assert oracle.observe_single(START + 4, 0, 3, 0, 2, 1) == (12, 2 << 128)

    def test_too_old_raises(self, oracle):
        with pytest.raises(ObservationTooOld):
            oracle.observe(START, [1], 0, 0, 1, 1)

    def test_negative_look_back_raises(self, oracle):
        """Look-backs into the future are rejected rather than extrapolated."""
        with pytest.raises(InvalidLookBack):
            oracle.observe(START + 10, [0, -5], 0, 0, 1, 1)

    def test_uninitialized_raises(self):
        with pytest.raises(NotInitialized):
            Oracle().observe(START, [0], 0, 0, 1, 0)

    def test_interpolates_between_observations(self, oracle):
        oracle.grow(1, 2)
        index, cardinality = oracle.write(0, START + 10, 5, 1, 1, 2)
        tick_cumulatives, _ = oracle.observe(START + 10, [10, 5, 0], 5, index, 1, cardinality)
        assert tick_cumulatives == [0, 25, 50]

    def test_interpolates_seconds_per_liquidity(self, oracle):
        oracle.grow(1, 2)
        index, cardinality = oracle.write(0, START + 10, 5, 4, 1, 2)
        _, seconds_per_liquidity = oracle.observe(START + 10, [5], 5, index, 4, cardinality)
        assert seconds_per_liquidity == [(10 << 128) // 4 * 5 // 10]

    def test_target_after_last_observation(self, oracle):
        """A look-back newer than the last write extends from that write."""
        oracle.write(0, START + 10, 5, 1, 1, 1)
        tick_cumulatives, _ = oracle.observe(START + 20, [4], -2, 0, 1, 1)
        # 50 at START + 10, then tick -2 for 6 seconds
        assert tick_cumulatives == [38]

    def test_wrapped_ring(self, oracle):
        """After wrapping, the oldest observation is the slot after the newest."""
        oracle.grow(1, 3)
        index, cardinality = 0, 1
        for step in range(1, 5):
            index, cardinality = oracle.write(index, START + 10 * step, 1, 1, cardinality, 3)
        # Observations at START+20, +30, +40 remain; START+0 and +10 were overwritten
        assert cardinality == 3
        now = START + 40
        assert oracle.observe(now, [20], 1, index, 1, cardinality)[0] == [20]
        assert oracle.observe(now, [15], 1, index, 1, cardinality)[0] == [25]
        with pytest.raises(ObservationTooOld):
            oracle.observe(now, [21], 1, index, 1, cardinality)

    def test_copy_is_independent(self, oracle):
        copy = oracle.copy()
        copy.write(0, START + 1, 1, 1, 1, 1)
        assert oracle[0].block_timestamp == START
        assert copy[0].block_timestamp == START + 1
