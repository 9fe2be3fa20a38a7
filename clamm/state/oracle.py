"""Circular buffer of cumulative price observations.

Each observation records, at a timestamp, the running sums

    tick_cumulative                      = sum(tick * seconds)
    seconds_per_liquidity_cumulative_x128 = sum(seconds << 128 / max(L, 1))

so the average tick (and the time-weighted inverse liquidity) over any
window is the difference of two cumulatives divided by the window length.
At most one observation is written per timestamp; moving the price
several times within one timestamp only records the tick the first move
started from, which keeps the time-weighted average expensive to
manipulate.

The buffer holds `cardinality` live slots out of `len(observations)`
allocated ones; cardinality grows lazily toward `cardinality_next` when
the write index wraps past the end of the live ring.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from clamm.constants import MAX_OBSERVATION_CARDINALITY
from clamm.errors import (
    AlreadyInitialized,
    InvalidCardinality,
    InvalidLookBack,
    NotInitialized,
    ObservationTooOld,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class Observation:
    """One oracle sample."""

    block_timestamp: int = 0
    tick_cumulative: int = 0
    seconds_per_liquidity_cumulative_x128: int = 0
    initialized: bool = False


def transform(last: Observation, block_timestamp: int, tick: int, liquidity: int) -> Observation:
    """Extend an observation to a later timestamp at a constant tick and liquidity."""
    delta = block_timestamp - last.block_timestamp
    return Observation(
        block_timestamp=block_timestamp,
        tick_cumulative=last.tick_cumulative + tick * delta,
        seconds_per_liquidity_cumulative_x128=(
            last.seconds_per_liquidity_cumulative_x128 + (delta << 128) // (liquidity if liquidity > 0 else 1)
        ),
        initialized=True,
    )


def _div_toward_zero(a: int, b: int) -> int:
    """Signed division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


class Oracle:
    """Fixed-capacity ring of observations with interpolated lookups.

    The oracle stores the samples; the pool owns the (index, cardinality,
    cardinality_next) cursor and passes it in, mirroring how the cursor is
    part of the pool's price slot.
    """

    def __init__(self, observations: list[Observation] | None = None) -> None:
        self._observations: list[Observation] = list(observations) if observations else []

    def __len__(self) -> int:
        return len(self._observations)

    def __getitem__(self, index: int) -> Observation:
        return self._observations[index]

    def copy(self) -> Oracle:
        # Observations are immutable, a shallow copy is a full snapshot
        return Oracle(self._observations)

    @property
    def initialized(self) -> bool:
        return bool(self._observations) and self._observations[0].initialized

    def initialize(self, time: int) -> tuple[int, int]:
        """Write the first observation.

        Returns:
            Tuple of (cardinality, cardinality_next), both 1

        Raises:
            AlreadyInitialized: If the oracle already holds an observation
        """
        if self.initialized:
            raise AlreadyInitialized("Oracle already initialized")
        observation = Observation(block_timestamp=time, initialized=True)
        if self._observations:
            self._observations[0] = observation
        else:
            self._observations.append(observation)
        return 1, 1

    def write(
        self,
        index: int,
        block_timestamp: int,
        tick: int,
        liquidity: int,
        cardinality: int,
        cardinality_next: int,
    ) -> tuple[int, int]:
        """Record the tick and liquidity in effect since the last write.

        Args:
            index: Index of the most recently written observation
            block_timestamp: Current time
            tick: Tick in effect since the last observation
            liquidity: Active liquidity in effect since the last observation
            cardinality: Number of live slots
            cardinality_next: Target number of slots

        Returns:
            Tuple of (index, cardinality) after the write
        """
        last = self._observations[index]

        # At most one observation per timestamp
        if last.block_timestamp == block_timestamp:
            return index, cardinality

        # Grow only once the ring has been filled up to its current size
        if cardinality_next > cardinality and index == cardinality - 1:
            cardinality_updated = cardinality_next
        else:
            cardinality_updated = cardinality

        index_updated = (index + 1) % cardinality_updated
        self._store(index_updated, transform(last, block_timestamp, tick, liquidity))
        return index_updated, cardinality_updated

    def grow(self, current: int, requested: int) -> int:
        """Allocate slots so the ring can grow to `requested`.

        Slots are filled with uninitialized placeholders; they only become
        live once write() wraps into them.

        Returns:
            The new cardinality target (never smaller than current)

        Raises:
            NotInitialized: If current is 0
            InvalidCardinality: If requested exceeds the maximum capacity
        """
        if current <= 0:
            raise NotInitialized("Oracle must be initialized before growing")
        if requested > MAX_OBSERVATION_CARDINALITY:
            raise InvalidCardinality(
                f"Cardinality {requested} exceeds maximum {MAX_OBSERVATION_CARDINALITY}"
            )
        if requested <= current:
            return current
        for _ in range(len(self._observations), requested):
            self._observations.append(Observation(block_timestamp=1))
        logger.debug("oracle_slots_allocated", current=current, requested=requested)
        return requested

    def observe_single(
        self,
        time: int,
        seconds_ago: int,
        tick: int,
        index: int,
        liquidity: int,
        cardinality: int,
    ) -> tuple[int, int]:
        """Cumulatives as of `seconds_ago` seconds before `time`.

        A zero look-back extrapolates from the latest observation to `time`
        using the current tick and liquidity. Otherwise the surrounding pair
        of observations is located and the cumulatives are linearly
        interpolated to the exact target timestamp.

        Returns:
            Tuple of (tick_cumulative, seconds_per_liquidity_cumulative_x128)

        Raises:
            ObservationTooOld: If the target predates the oldest observation
        """
        if seconds_ago == 0:
            last = self._observations[index]
            if last.block_timestamp != time:
                last = transform(last, time, tick, liquidity)
            return last.tick_cumulative, last.seconds_per_liquidity_cumulative_x128

        target = time - seconds_ago
        before_or_at, at_or_after = self._get_surrounding_observations(
            time, target, tick, index, liquidity, cardinality
        )

        if target == before_or_at.block_timestamp:
            return before_or_at.tick_cumulative, before_or_at.seconds_per_liquidity_cumulative_x128
        if target == at_or_after.block_timestamp:
            return at_or_after.tick_cumulative, at_or_after.seconds_per_liquidity_cumulative_x128

        observation_time_delta = at_or_after.block_timestamp - before_or_at.block_timestamp
        target_delta = target - before_or_at.block_timestamp
        tick_cumulative = (
            before_or_at.tick_cumulative
            + _div_toward_zero(
                at_or_after.tick_cumulative - before_or_at.tick_cumulative,
                observation_time_delta,
            )
            * target_delta
        )
        seconds_per_liquidity = before_or_at.seconds_per_liquidity_cumulative_x128 + (
            (at_or_after.seconds_per_liquidity_cumulative_x128 - before_or_at.seconds_per_liquidity_cumulative_x128)
            * target_delta
            // observation_time_delta
        )
        return tick_cumulative, seconds_per_liquidity

    def observe(
        self,
        time: int,
        seconds_agos: list[int],
        tick: int,
        index: int,
        liquidity: int,
        cardinality: int,
    ) -> tuple[list[int], list[int]]:
        """Cumulatives for each look-back in seconds_agos.

        Returns:
            Tuple of (tick_cumulatives, seconds_per_liquidity_cumulatives_x128)

        Raises:
            NotInitialized: If cardinality is 0
            InvalidLookBack: If any look-back is negative
            ObservationTooOld: If any target predates the oldest observation
        """
        if cardinality <= 0:
            raise NotInitialized("Oracle has no observations")
        # Cumulatives cannot be extrapolated past the current time
        for seconds_ago in seconds_agos:
            if seconds_ago < 0:
                raise InvalidLookBack(f"Look-back must be non-negative, got {seconds_ago}")

        tick_cumulatives: list[int] = []
        seconds_per_liquidity_cumulatives: list[int] = []
        for seconds_ago in seconds_agos:
            tick_cumulative, seconds_per_liquidity = self.observe_single(
                time, seconds_ago, tick, index, liquidity, cardinality
            )
            tick_cumulatives.append(tick_cumulative)
            seconds_per_liquidity_cumulatives.append(seconds_per_liquidity)
        return tick_cumulatives, seconds_per_liquidity_cumulatives

    def _store(self, index: int, observation: Observation) -> None:
        if index < len(self._observations):
            self._observations[index] = observation
        else:
            self._observations.append(observation)

    def _get_surrounding_observations(
        self,
        time: int,
        target: int,
        tick: int,
        index: int,
        liquidity: int,
        cardinality: int,
    ) -> tuple[Observation, Observation]:
        """Observations immediately before-or-at and at-or-after target."""
        before_or_at = self._observations[index]

        # Target is at or after the newest observation
        if before_or_at.block_timestamp <= target:
            if before_or_at.block_timestamp == target:
                return before_or_at, before_or_at
            return before_or_at, transform(before_or_at, target, tick, liquidity)

        # Oldest observation is the next slot, or slot 0 if the ring has not wrapped yet
        oldest = self._observations[(index + 1) % cardinality]
        if not oldest.initialized:
            oldest = self._observations[0]

        if oldest.block_timestamp > target:
            raise ObservationTooOld(
                f"Target {target} ({time - target}s ago) predates oldest observation "
                f"at {oldest.block_timestamp}"
            )

        return self._binary_search(target, index, cardinality)

    def _binary_search(self, target: int, index: int, cardinality: int) -> tuple[Observation, Observation]:
        """Binary search the ring, ordered oldest to newest starting after index."""
        left = (index + 1) % cardinality
        right = left + cardinality - 1

        while True:
            i = (left + right) // 2
            before_or_at = self._observations[i % cardinality]

            # Landed on an unwritten slot, search higher
            if not before_or_at.initialized:
                left = i + 1
                continue

            at_or_after = self._observations[(i + 1) % cardinality]
            target_at_or_after = before_or_at.block_timestamp <= target

            if target_at_or_after and target <= at_or_after.block_timestamp:
                return before_or_at, at_or_after

            if not target_at_or_after:
                right = i - 1
            else:
                left = i + 1


__all__ = ["Observation", "Oracle", "transform"]
