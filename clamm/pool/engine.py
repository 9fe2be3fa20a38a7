"""Concentrated-liquidity pool engine.

A Pool ties together the fixed-point math and the stateful pieces
(positions, ticks, bitmap, oracle) behind four mutators:

- mint: add liquidity to a range
- burn: remove liquidity, crediting the released tokens as owed
- collect: pay out owed tokens (burned principal plus fees)
- swap: trade against the active liquidity, crossing ticks as needed

Every mutator holds the pool lock for its whole duration and works on a
private copy of the pool state. The copy is published only when the
mutator completes; if anything raises (validation, arithmetic, or the
transfer callback) it is discarded and the pool is exactly as it was.
Read-only queries take no lock: from other threads they see the last
published state, and from inside a mutator's own callback they see the
working copy.

Token amounts are returned as signed deltas of the pool's balances.
Moving tokens is the caller's job; the optional callback on mint and swap
is where a transfer collaborator settles them atomically with the
engine's own state change.
"""

from __future__ import annotations

import time as _time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace

import structlog

from clamm.constants import MAX_SQRT_RATIO, MAX_TICK, MAX_UINT128, MAX_UINT256, MIN_SQRT_RATIO, MIN_TICK, Q128
from clamm.errors import (
    AlreadyInitialized,
    InvalidAmountRequested,
    InvalidTickRange,
    MisalignedTick,
    NotInitialized,
    PriceLimitOnWrongSide,
    TickNotInitialized,
    TickOutOfRange,
    ZeroAmountSpecified,
)
from clamm.math.full_math import mul_div
from clamm.math.liquidity_math import add_delta
from clamm.math.sqrt_price_math import get_amount0_delta_signed, get_amount1_delta_signed
from clamm.math.swap_math import compute_swap_step
from clamm.math.tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from clamm.models.config import DEFAULT_POOL_CONFIG, CircuitBreakerConfig, PoolConfig, ProtocolFee
from clamm.safe_int import S
from clamm.state.oracle import Observation, Oracle
from clamm.state.position import PositionInfo, PositionKey, PositionLedger
from clamm.state.tick import GlobalGrowth, TickInfo

from .lock import PoolLock
from .types import CumulativesInside, PoolSnapshot, ProtocolFees, Slot0, SwapResult

logger = structlog.get_logger()

# Receives (amount0, amount1) owed to the pool; raising aborts the operation
TransferCallback = Callable[[int, int], None]

_MOD_256 = MAX_UINT256 + 1


def _wall_clock() -> int:
    return int(_time.time())


def _check_requested(amount0_requested: int, amount1_requested: int) -> None:
    for requested in (amount0_requested, amount1_requested):
        if not 0 <= requested <= MAX_UINT128:
            raise InvalidAmountRequested(f"Requested amount {requested} must be within [0, {MAX_UINT128}]")


@dataclass
class _SwapCache:
    """Values fixed for the duration of one swap."""

    liquidity_start: int
    block_timestamp: int
    fee_protocol: int
    seconds_per_liquidity_cumulative_x128: int = 0
    tick_cumulative: int = 0
    computed_latest_observation: bool = False


@dataclass
class _SwapState:
    """Running state of the swap loop."""

    amount_specified_remaining: int
    amount_calculated: int
    sqrt_price_x96: int
    tick: int
    fee_growth_global_x128: int
    protocol_fee: int
    liquidity: int


@dataclass
class _PoolState:
    """Every piece of mutable pool state.

    A published instance is never modified again; mutators work on copy()
    and publish the copy by swapping the reference.
    """

    ledger: PositionLedger
    oracle: Oracle = field(default_factory=Oracle)
    slot0: Slot0 = field(default_factory=Slot0)
    initialized: bool = False
    liquidity: int = 0
    fee_growth_global0_x128: int = 0
    fee_growth_global1_x128: int = 0
    protocol_fees: ProtocolFees = field(default_factory=ProtocolFees)
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

    def copy(self) -> _PoolState:
        return replace(
            self,
            ledger=self.ledger.copy(),
            oracle=self.oracle.copy(),
            slot0=replace(self.slot0),
            protocol_fees=replace(self.protocol_fees),
        )


class Pool:
    """A single concentrated-liquidity pool.

    Lifecycle: Uninitialized -> Active (initialize, irreversible). Mutators
    require Active and hold the lock while they run.

    Attributes:
        config: Immutable pool parameters
    """

    def __init__(self, config: PoolConfig | None = None, clock: Callable[[], int] | None = None) -> None:
        """Create an uninitialized pool.

        Args:
            config: Pool parameters (fee, tick spacing, per-tick cap)
            clock: Returns the current time in seconds; defaults to wall clock
        """
        self.config = config or DEFAULT_POOL_CONFIG
        self._clock = clock or _wall_clock
        self._lock = PoolLock()
        self._state = _PoolState(ledger=PositionLedger(self.config.tick_spacing, self.config.liquidity_cap))
        # Working copy of the mutator in progress, visible only to its thread
        self._draft: _PoolState | None = None

    def __repr__(self) -> str:
        state = self._current()
        return (
            f"Pool({self.config.token0}/{self.config.token1} fee={self.config.fee} "
            f"tick={state.slot0.tick} liquidity={state.liquidity})"
        )

    # --- Read-only views (no lock) ---

    @property
    def initialized(self) -> bool:
        return self._current().initialized

    @property
    def liquidity(self) -> int:
        """Active liquidity at the current price."""
        return self._current().liquidity

    @property
    def sqrt_price_x96(self) -> int:
        return self._current().slot0.sqrt_price_x96

    @property
    def tick(self) -> int:
        return self._current().slot0.tick

    @property
    def fee_growth_global0_x128(self) -> int:
        return self._current().fee_growth_global0_x128

    @property
    def fee_growth_global1_x128(self) -> int:
        return self._current().fee_growth_global1_x128

    @property
    def protocol_fees(self) -> ProtocolFees:
        return replace(self._current().protocol_fees)

    @property
    def circuit_breaker(self) -> CircuitBreakerConfig:
        return self._current().circuit_breaker

    def snapshot(self) -> PoolSnapshot:
        """Consistent view of the price slot."""
        state = self._current()
        slot0 = state.slot0
        return PoolSnapshot(
            sqrt_price_x96=slot0.sqrt_price_x96,
            tick=slot0.tick,
            observation_index=slot0.observation_index,
            observation_cardinality=slot0.observation_cardinality,
            observation_cardinality_next=slot0.observation_cardinality_next,
            fee_protocol=slot0.fee_protocol,
            circuit_breaker=state.circuit_breaker,
            liquidity=state.liquidity,
            unlocked=state.initialized and self._lock.unlocked,
        )

    def get_tick(self, tick: int) -> TickInfo:
        """Copy of a tick record (blank if not initialized)."""
        return self._current().ledger.ticks.get(tick)

    def initialized_ticks(self) -> list[int]:
        """Ticks with nonzero gross liquidity, ascending."""
        return [tick for tick, _ in self._current().ledger.ticks.items()]

    def tick_bitmap(self) -> dict[int, int]:
        """Nonzero bitmap words keyed by word position."""
        return self._current().ledger.bitmap.words

    def get_position(self, owner: str, tick_lower: int, tick_upper: int) -> PositionInfo | None:
        return self._current().ledger.get(owner, tick_lower, tick_upper)

    def positions(self) -> dict[PositionKey, PositionInfo]:
        return self._current().ledger.positions()

    def get_observation(self, index: int) -> Observation:
        return self._current().oracle[index]

    def observe(self, seconds_agos: list[int]) -> tuple[list[int], list[int]]:
        """Cumulative tick and seconds-per-liquidity for each look-back.

        Returns:
            Tuple of (tick_cumulatives, seconds_per_liquidity_cumulatives_x128)

        Raises:
            NotInitialized: If the pool is not initialized
            InvalidLookBack: If a look-back is negative
            ObservationTooOld: If a look-back predates the oldest observation
        """
        state = self._current()
        self._require_initialized(state, "observe")
        slot0 = state.slot0
        return state.oracle.observe(
            self._clock(),
            seconds_agos,
            slot0.tick,
            slot0.observation_index,
            state.liquidity,
            slot0.observation_cardinality,
        )

    def snapshot_cumulatives_inside(self, tick_lower: int, tick_upper: int) -> CumulativesInside:
        """Oracle accumulators accrued while the price was inside a range.

        Only differences between two snapshots of the same range taken while
        a position existed over it are meaningful.

        Raises:
            TickNotInitialized: If either boundary tick holds no liquidity
        """
        state = self._current()
        self._require_initialized(state, "snapshot_cumulatives_inside")
        self._check_ticks(tick_lower, tick_upper)

        ticks = state.ledger.ticks
        if tick_lower not in ticks:
            raise TickNotInitialized(f"Lower tick {tick_lower} is not initialized")
        if tick_upper not in ticks:
            raise TickNotInitialized(f"Upper tick {tick_upper} is not initialized")
        lower = ticks.get(tick_lower)
        upper = ticks.get(tick_upper)

        slot0 = state.slot0
        if slot0.tick < tick_lower:
            return CumulativesInside(
                tick_cumulative_inside=lower.tick_cumulative_outside - upper.tick_cumulative_outside,
                seconds_per_liquidity_inside_x128=(
                    lower.seconds_per_liquidity_outside_x128 - upper.seconds_per_liquidity_outside_x128
                ),
                seconds_inside=lower.seconds_outside - upper.seconds_outside,
            )
        if slot0.tick < tick_upper:
            now = self._clock()
            tick_cumulative, seconds_per_liquidity = state.oracle.observe_single(
                now,
                0,
                slot0.tick,
                slot0.observation_index,
                state.liquidity,
                slot0.observation_cardinality,
            )
            return CumulativesInside(
                tick_cumulative_inside=(
                    tick_cumulative - lower.tick_cumulative_outside - upper.tick_cumulative_outside
                ),
                seconds_per_liquidity_inside_x128=(
                    seconds_per_liquidity
                    - lower.seconds_per_liquidity_outside_x128
                    - upper.seconds_per_liquidity_outside_x128
                ),
                seconds_inside=now - lower.seconds_outside - upper.seconds_outside,
            )
        return CumulativesInside(
            tick_cumulative_inside=upper.tick_cumulative_outside - lower.tick_cumulative_outside,
            seconds_per_liquidity_inside_x128=(
                upper.seconds_per_liquidity_outside_x128 - lower.seconds_per_liquidity_outside_x128
            ),
            seconds_inside=upper.seconds_outside - lower.seconds_outside,
        )

    # --- Lifecycle ---

    def initialize(self, sqrt_price_x96: int) -> int:
        """Set the starting price and write the first observation.

        Args:
            sqrt_price_x96: Initial sqrt price, Q64.96

        Returns:
            The starting tick

        Raises:
            AlreadyInitialized: If called twice
            PriceOutOfRange: If the price is outside the supported range
        """
        if self._current().initialized:
            raise AlreadyInitialized("Pool already initialized")

        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)

        with self._lock.hold("initialize"):
            if self._state.initialized:
                raise AlreadyInitialized("Pool already initialized")
            state = self._state.copy()
            cardinality, cardinality_next = state.oracle.initialize(self._clock())
            state.slot0 = Slot0(
                sqrt_price_x96=sqrt_price_x96,
                tick=tick,
                observation_index=0,
                observation_cardinality=cardinality,
                observation_cardinality_next=cardinality_next,
                fee_protocol=ProtocolFee(),
            )
            state.initialized = True
            self._state = state

        logger.info(
            "pool_initialized",
            token0=self.config.token0,
            token1=self.config.token1,
            fee=self.config.fee,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
        )
        return tick

    # --- Mutators ---

    def mint(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        callback: TransferCallback | None = None,
    ) -> tuple[int, int]:
        """Add liquidity to a position.

        Args:
            owner: Position owner
            tick_lower: Lower tick (aligned to tick spacing)
            tick_upper: Upper tick (aligned to tick spacing)
            amount: Liquidity to add
            callback: Receives (amount0, amount1) the pool must be paid

        Returns:
            Tuple of (amount0, amount1) owed to the pool

        Raises:
            ZeroAmountSpecified: If amount is not positive
            InvalidTickRange, TickOutOfRange, MisalignedTick: On bad bounds
            LiquidityOverflow: If a boundary tick would exceed the per-tick cap
        """
        if amount <= 0:
            raise ZeroAmountSpecified(f"Mint amount must be positive, got {amount}")
        self._check_ticks(tick_lower, tick_upper)

        with self._mutation("mint") as state:
            _, amount0, amount1 = self._modify_position(state, owner, tick_lower, tick_upper, amount)
            if callback is not None:
                callback(amount0, amount1)

        logger.info(
            "position_minted",
            owner=owner,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount=amount,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    def burn(self, owner: str, tick_lower: int, tick_upper: int, amount: int) -> tuple[int, int]:
        """Remove liquidity from a position.

        The released tokens are credited to the position's owed amounts;
        use collect() to pay them out. Burning 0 only accrues fees.

        Returns:
            Tuple of (amount0, amount1) credited to the position

        Raises:
            NoPositionLiquidity: When poking a position with no liquidity
            Underflow: If amount exceeds the position's liquidity
        """
        S(amount).to_uint128()
        self._check_ticks(tick_lower, tick_upper)

        with self._mutation("burn") as state:
            _, amount0_int, amount1_int = self._modify_position(state, owner, tick_lower, tick_upper, -amount)
            amount0, amount1 = -amount0_int, -amount1_int
            if amount0 > 0 or amount1 > 0:
                state.ledger.credit(owner, tick_lower, tick_upper, amount0, amount1)

        logger.info(
            "position_burned",
            owner=owner,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount=amount,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    def collect(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int,
    ) -> tuple[int, int]:
        """Pay out owed tokens, accruing any fees earned since the last update.

        Returns:
            Tuple of (amount0, amount1) paid, each at most the amount requested

        Raises:
            InvalidAmountRequested: If a requested amount is outside uint128
        """
        _check_requested(amount0_requested, amount1_requested)

        with self._mutation("collect") as state:
            position = state.ledger.get(owner, tick_lower, tick_upper)
            if position is not None and position.liquidity > 0:
                self._update_position(state, owner, tick_lower, tick_upper, 0, state.slot0.tick, self._clock())
            amount0, amount1 = state.ledger.collect(
                owner, tick_lower, tick_upper, amount0_requested, amount1_requested
            )

        logger.info(
            "fees_collected",
            owner=owner,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    def swap(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int | None = None,
        callback: TransferCallback | None = None,
    ) -> SwapResult:
        """Swap token0 for token1 (zero_for_one) or token1 for token0.

        Args:
            zero_for_one: Direction of the swap
            amount_specified: Positive for exact input, negative for exact output
            sqrt_price_limit_x96: Price the swap may not move past; defaults to
                the extreme price in the swap direction
            callback: Receives (amount0, amount1) deltas once the swap is computed

        Returns:
            SwapResult with signed pool deltas and the post-swap price

        Raises:
            ZeroAmountSpecified: If amount_specified is 0
            PriceLimitOnWrongSide: If the limit is not beyond the current price
        """
        if amount_specified == 0:
            raise ZeroAmountSpecified("Swap amount must be nonzero")
        S(amount_specified).to_int256()

        with self._mutation("swap") as state:
            result = self._swap(state, zero_for_one, amount_specified, sqrt_price_limit_x96)
            if callback is not None:
                callback(result.amount0, result.amount1)

        logger.info(
            "swap_executed",
            zero_for_one=zero_for_one,
            amount_specified=amount_specified,
            amount0=result.amount0,
            amount1=result.amount1,
            tick=result.tick,
            liquidity=result.liquidity,
            ticks_crossed=len(result.crossed_ticks),
        )
        return result

    def simulate_swap(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int | None = None,
    ) -> SwapResult:
        """Run a swap on a throwaway copy, returning what it would have done."""
        if amount_specified == 0:
            raise ZeroAmountSpecified("Swap amount must be nonzero")
        self._require_initialized(self._current(), "simulate_swap")

        with self._lock.hold("simulate_swap"):
            return self._swap(self._state.copy(), zero_for_one, amount_specified, sqrt_price_limit_x96)

    # --- Administrative setters ---

    def increase_observation_cardinality_next(self, observation_cardinality_next: int) -> int:
        """Grow the oracle ring so it can hold more observations.

        Returns:
            The new cardinality target
        """
        with self._mutation("increase_observation_cardinality_next") as state:
            old = state.slot0.observation_cardinality_next
            new = state.oracle.grow(old, observation_cardinality_next)
            state.slot0.observation_cardinality_next = new

        if new != old:
            logger.info("oracle_cardinality_grown", old=old, new=new)
        return new

    def set_fee_protocol(self, fee_protocol: ProtocolFee) -> None:
        """Set the protocol's share of swap fees."""
        with self._mutation("set_fee_protocol") as state:
            old = state.slot0.fee_protocol
            state.slot0.fee_protocol = fee_protocol
        logger.info(
            "fee_protocol_set",
            old_token0=old.token0,
            old_token1=old.token1,
            token0=fee_protocol.token0,
            token1=fee_protocol.token1,
        )

    def set_circuit_breaker(self, config: CircuitBreakerConfig) -> None:
        """Store circuit-breaker parameters for the pause policy collaborator."""
        with self._mutation("set_circuit_breaker") as state:
            state.circuit_breaker = config
        logger.info("circuit_breaker_set", **config.model_dump())

    def collect_protocol(self, amount0_requested: int, amount1_requested: int) -> tuple[int, int]:
        """Pay out accrued protocol fees.

        Returns:
            Tuple of (amount0, amount1) paid

        Raises:
            InvalidAmountRequested: If a requested amount is outside uint128
        """
        _check_requested(amount0_requested, amount1_requested)

        with self._mutation("collect_protocol") as state:
            fees = state.protocol_fees
            amount0 = min(amount0_requested, fees.token0)
            amount1 = min(amount1_requested, fees.token1)
            fees.token0 -= amount0
            fees.token1 -= amount1

        logger.info("protocol_fees_collected", amount0=amount0, amount1=amount1)
        return amount0, amount1

    # --- Internals ---

    def _current(self) -> _PoolState:
        """State visible to the caller.

        Inside a mutator (including its callback) that is the working copy;
        everywhere else it is the last published state.
        """
        draft = self._draft
        if draft is not None and self._lock.held_by_current_thread:
            return draft
        return self._state

    @staticmethod
    def _require_initialized(state: _PoolState, operation: str) -> None:
        if not state.initialized:
            raise NotInitialized(f"Pool must be initialized before {operation}")

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[_PoolState]:
        """Hold the lock and yield a working copy, published only on success."""
        self._require_initialized(self._current(), operation)
        with self._lock.hold(operation):
            draft = self._state.copy()
            self._draft = draft
            try:
                yield draft
            except Exception:
                logger.debug("pool_operation_reverted", operation=operation)
                raise
            else:
                self._state = draft
            finally:
                self._draft = None

    def _check_ticks(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise InvalidTickRange(f"tick_lower {tick_lower} must be below tick_upper {tick_upper}")
        if tick_lower < MIN_TICK:
            raise TickOutOfRange(f"tick_lower {tick_lower} below {MIN_TICK}")
        if tick_upper > MAX_TICK:
            raise TickOutOfRange(f"tick_upper {tick_upper} above {MAX_TICK}")
        spacing = self.config.tick_spacing
        for tick in (tick_lower, tick_upper):
            if tick % spacing != 0:
                raise MisalignedTick(f"Tick {tick} is not a multiple of spacing {spacing}")

    def _update_position(
        self,
        state: _PoolState,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        tick: int,
        now: int,
    ) -> PositionInfo:
        tick_cumulative = 0
        seconds_per_liquidity_cumulative_x128 = 0
        if liquidity_delta != 0:
            slot0 = state.slot0
            tick_cumulative, seconds_per_liquidity_cumulative_x128 = state.oracle.observe_single(
                now,
                0,
                slot0.tick,
                slot0.observation_index,
                state.liquidity,
                slot0.observation_cardinality,
            )

        growth = GlobalGrowth(
            fee_growth_global0_x128=state.fee_growth_global0_x128,
            fee_growth_global1_x128=state.fee_growth_global1_x128,
            tick_cumulative=tick_cumulative,
            seconds_per_liquidity_cumulative_x128=seconds_per_liquidity_cumulative_x128,
            time=now,
        )
        return state.ledger.update_position(owner, tick_lower, tick_upper, liquidity_delta, tick, growth)

    def _modify_position(
        self,
        state: _PoolState,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
    ) -> tuple[PositionInfo, int, int]:
        """Update a position and compute the token deltas it implies."""
        now = self._clock()
        slot0 = state.slot0
        position = self._update_position(state, owner, tick_lower, tick_upper, liquidity_delta, slot0.tick, now)

        amount0 = 0
        amount1 = 0
        if liquidity_delta != 0:
            sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
            sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)

            if slot0.tick < tick_lower:
                # Range above the price: held entirely in token0
                amount0 = get_amount0_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)
            elif slot0.tick < tick_upper:
                # Range straddles the price: active liquidity changes
                slot0.observation_index, slot0.observation_cardinality = state.oracle.write(
                    slot0.observation_index,
                    now,
                    slot0.tick,
                    state.liquidity,
                    slot0.observation_cardinality,
                    slot0.observation_cardinality_next,
                )
                amount0 = get_amount0_delta_signed(slot0.sqrt_price_x96, sqrt_upper, liquidity_delta)
                amount1 = get_amount1_delta_signed(sqrt_lower, slot0.sqrt_price_x96, liquidity_delta)
                state.liquidity = add_delta(state.liquidity, liquidity_delta)
            else:
                # Range below the price: held entirely in token1
                amount1 = get_amount1_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)

        return position, amount0, amount1

    def _swap(
        self,
        pool_state: _PoolState,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int | None,
    ) -> SwapResult:
        slot0_start = replace(pool_state.slot0)

        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        if zero_for_one:
            if not MIN_SQRT_RATIO < sqrt_price_limit_x96 < slot0_start.sqrt_price_x96:
                raise PriceLimitOnWrongSide(
                    f"Limit {sqrt_price_limit_x96} must be below price {slot0_start.sqrt_price_x96} "
                    f"and above {MIN_SQRT_RATIO}"
                )
        elif not slot0_start.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO:
            raise PriceLimitOnWrongSide(
                f"Limit {sqrt_price_limit_x96} must be above price {slot0_start.sqrt_price_x96} "
                f"and below {MAX_SQRT_RATIO}"
            )

        cache = _SwapCache(
            liquidity_start=pool_state.liquidity,
            block_timestamp=self._clock(),
            fee_protocol=slot0_start.fee_protocol.for_direction(zero_for_one),
        )
        exact_input = amount_specified > 0

        state = _SwapState(
            amount_specified_remaining=amount_specified,
            amount_calculated=0,
            sqrt_price_x96=slot0_start.sqrt_price_x96,
            tick=slot0_start.tick,
            fee_growth_global_x128=(
                pool_state.fee_growth_global0_x128 if zero_for_one else pool_state.fee_growth_global1_x128
            ),
            protocol_fee=0,
            liquidity=cache.liquidity_start,
        )

        tick_spacing = self.config.tick_spacing
        fee_total = 0
        crossed_ticks: list[int] = []

        # Each iteration either exhausts the amount, reaches the limit, or
        # reaches the next initialized tick (or word boundary)
        while state.amount_specified_remaining != 0 and state.sqrt_price_x96 != sqrt_price_limit_x96:
            sqrt_price_start = state.sqrt_price_x96

            tick_next, initialized = pool_state.ledger.bitmap.next_initialized_tick_within_one_word(
                state.tick, tick_spacing, zero_for_one
            )
            # The bitmap is unaware of the tick bounds
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_price_next = get_sqrt_ratio_at_tick(tick_next)

            if zero_for_one:
                sqrt_price_target = max(sqrt_price_next, sqrt_price_limit_x96)
            else:
                sqrt_price_target = min(sqrt_price_next, sqrt_price_limit_x96)

            step = compute_swap_step(
                state.sqrt_price_x96,
                sqrt_price_target,
                state.liquidity,
                state.amount_specified_remaining,
                self.config.fee,
            )
            state.sqrt_price_x96 = step.sqrt_price_next

            if exact_input:
                state.amount_specified_remaining -= step.amount_in + step.fee_amount
                state.amount_calculated -= step.amount_out
            else:
                state.amount_specified_remaining += step.amount_out
                state.amount_calculated += step.amount_in + step.fee_amount

            fee_total += step.fee_amount
            fee_amount = step.fee_amount
            if cache.fee_protocol > 0:
                protocol_delta = fee_amount // cache.fee_protocol
                fee_amount -= protocol_delta
                state.protocol_fee += protocol_delta

            # Fees earned with no active liquidity are not credited to anyone
            if state.liquidity > 0:
                state.fee_growth_global_x128 = (
                    state.fee_growth_global_x128 + mul_div(fee_amount, Q128, state.liquidity)
                ) % _MOD_256

            if state.sqrt_price_x96 == sqrt_price_next:
                if initialized:
                    if not cache.computed_latest_observation:
                        (
                            cache.tick_cumulative,
                            cache.seconds_per_liquidity_cumulative_x128,
                        ) = pool_state.oracle.observe_single(
                            cache.block_timestamp,
                            0,
                            slot0_start.tick,
                            slot0_start.observation_index,
                            cache.liquidity_start,
                            slot0_start.observation_cardinality,
                        )
                        cache.computed_latest_observation = True

                    # The non-input token's global is only written after the
                    # loop, so the stored value is current
                    growth = GlobalGrowth(
                        fee_growth_global0_x128=(
                            state.fee_growth_global_x128 if zero_for_one else pool_state.fee_growth_global0_x128
                        ),
                        fee_growth_global1_x128=(
                            pool_state.fee_growth_global1_x128 if zero_for_one else state.fee_growth_global_x128
                        ),
                        tick_cumulative=cache.tick_cumulative,
                        seconds_per_liquidity_cumulative_x128=cache.seconds_per_liquidity_cumulative_x128,
                        time=cache.block_timestamp,
                    )
                    liquidity_net = pool_state.ledger.ticks.cross(tick_next, growth)
                    # Moving left, net liquidity is removed rather than added
                    if zero_for_one:
                        liquidity_net = -liquidity_net
                    state.liquidity = add_delta(state.liquidity, liquidity_net)
                    crossed_ticks.append(tick_next)
                    logger.debug("tick_crossed", tick=tick_next, liquidity=state.liquidity)

                state.tick = tick_next - 1 if zero_for_one else tick_next
            elif state.sqrt_price_x96 != sqrt_price_start:
                state.tick = get_tick_at_sqrt_ratio(state.sqrt_price_x96)

        # The oracle records the tick in effect before this swap
        slot0 = pool_state.slot0
        if state.tick != slot0_start.tick:
            observation_index, observation_cardinality = pool_state.oracle.write(
                slot0_start.observation_index,
                cache.block_timestamp,
                slot0_start.tick,
                cache.liquidity_start,
                slot0_start.observation_cardinality,
                slot0_start.observation_cardinality_next,
            )
            slot0.sqrt_price_x96 = state.sqrt_price_x96
            slot0.tick = state.tick
            slot0.observation_index = observation_index
            slot0.observation_cardinality = observation_cardinality
        else:
            slot0.sqrt_price_x96 = state.sqrt_price_x96

        if cache.liquidity_start != state.liquidity:
            pool_state.liquidity = state.liquidity

        fees = pool_state.protocol_fees
        if zero_for_one:
            pool_state.fee_growth_global0_x128 = state.fee_growth_global_x128
            if state.protocol_fee > 0:
                fees.token0 = (S(fees.token0) + state.protocol_fee).to_uint128()
        else:
            pool_state.fee_growth_global1_x128 = state.fee_growth_global_x128
            if state.protocol_fee > 0:
                fees.token1 = (S(fees.token1) + state.protocol_fee).to_uint128()

        amount_consumed = amount_specified - state.amount_specified_remaining
        if zero_for_one == exact_input:
            amount0, amount1 = amount_consumed, state.amount_calculated
        else:
            amount0, amount1 = state.amount_calculated, amount_consumed

        return SwapResult(
            amount0=amount0,
            amount1=amount1,
            sqrt_price_x96=state.sqrt_price_x96,
            tick=state.tick,
            liquidity=state.liquidity,
            zero_for_one=zero_for_one,
            fee_amount=fee_total,
            crossed_ticks=tuple(crossed_ticks),
        )


__all__ = ["Pool", "TransferCallback"]
