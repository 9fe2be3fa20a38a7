"""Liquidity positions and their fee checkpoints.

A position is identified by (owner, tick_lower, tick_upper). Fees are
never distributed eagerly: each position remembers the fee growth inside
its range at its last update, and on the next update is credited

    liquidity * (fee_growth_inside - fee_growth_inside_last) / 2^128

per token. The ledger also owns the per-tick records and the tick bitmap
so a single update_position call keeps all three consistent.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from clamm.constants import Q128
from clamm.errors import NoPositionLiquidity
from clamm.math.full_math import mul_div
from clamm.math.liquidity_math import add_delta
from clamm.safe_int import S

from .tick import GlobalGrowth, TickTable, sub_mod_256
from .tick_bitmap import TickBitmap


@dataclass(frozen=True)
class PositionKey:
    """Identifies a position."""

    owner: str
    tick_lower: int
    tick_upper: int


@dataclass
class PositionInfo:
    """State stored for a position."""

    liquidity: int = 0
    # Fee growth inside the range as of the last update
    fee_growth_inside0_last_x128: int = 0
    fee_growth_inside1_last_x128: int = 0
    # Fees and burned principal owed to the owner
    tokens_owed0: int = 0
    tokens_owed1: int = 0

    def update(self, liquidity_delta: int, fee_growth_inside0_x128: int, fee_growth_inside1_x128: int) -> None:
        """Credit accrued fees and apply a liquidity delta.

        Raises:
            NoPositionLiquidity: On a zero-delta update of an empty position
            Underflow: If removing more liquidity than the position holds
        """
        if liquidity_delta == 0:
            if self.liquidity <= 0:
                raise NoPositionLiquidity("Cannot update a position with no liquidity")
            liquidity_next = self.liquidity
        else:
            liquidity_next = add_delta(self.liquidity, liquidity_delta)

        tokens_owed0 = mul_div(
            sub_mod_256(fee_growth_inside0_x128, self.fee_growth_inside0_last_x128),
            self.liquidity,
            Q128,
        )
        tokens_owed1 = mul_div(
            sub_mod_256(fee_growth_inside1_x128, self.fee_growth_inside1_last_x128),
            self.liquidity,
            Q128,
        )

        if liquidity_delta != 0:
            self.liquidity = liquidity_next
        self.fee_growth_inside0_last_x128 = fee_growth_inside0_x128
        self.fee_growth_inside1_last_x128 = fee_growth_inside1_x128
        if tokens_owed0 > 0 or tokens_owed1 > 0:
            self.tokens_owed0 = (S(self.tokens_owed0) + tokens_owed0).to_uint128()
            self.tokens_owed1 = (S(self.tokens_owed1) + tokens_owed1).to_uint128()


class PositionLedger:
    """Positions, per-tick records and the tick bitmap of one pool.

    Attributes:
        tick_spacing: Pool tick spacing
        max_liquidity_per_tick: Cap on gross liquidity at any tick
        ticks: Per-tick records
        bitmap: Initialized-tick index
    """

    def __init__(
        self,
        tick_spacing: int,
        max_liquidity_per_tick: int,
        ticks: TickTable | None = None,
        bitmap: TickBitmap | None = None,
        positions: dict[PositionKey, PositionInfo] | None = None,
    ) -> None:
        self.tick_spacing = tick_spacing
        self.max_liquidity_per_tick = max_liquidity_per_tick
        self.ticks = ticks if ticks is not None else TickTable()
        self.bitmap = bitmap if bitmap is not None else TickBitmap()
        self._positions: dict[PositionKey, PositionInfo] = positions if positions is not None else {}

    def copy(self) -> PositionLedger:
        return PositionLedger(
            tick_spacing=self.tick_spacing,
            max_liquidity_per_tick=self.max_liquidity_per_tick,
            ticks=self.ticks.copy(),
            bitmap=self.bitmap.copy(),
            positions={key: replace(info) for key, info in self._positions.items()},
        )

    def get(self, owner: str, tick_lower: int, tick_upper: int) -> PositionInfo | None:
        """Copy of a position, or None if it was never minted."""
        info = self._positions.get(PositionKey(owner, tick_lower, tick_upper))
        return replace(info) if info is not None else None

    def positions(self) -> dict[PositionKey, PositionInfo]:
        return {key: replace(info) for key, info in self._positions.items()}

    def _get_or_create(self, key: PositionKey) -> PositionInfo:
        info = self._positions.get(key)
        if info is None:
            info = PositionInfo()
            self._positions[key] = info
        return info

    def update_position(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        tick_current: int,
        growth: GlobalGrowth,
    ) -> PositionInfo:
        """Apply a liquidity delta to a position and its boundary ticks.

        Args:
            owner: Position owner
            tick_lower: Lower tick of the range
            tick_upper: Upper tick of the range
            liquidity_delta: Signed liquidity change (0 to only accrue fees)
            tick_current: Current pool tick
            growth: Current global fee growth and oracle cumulatives

        Returns:
            Copy of the updated position

        Raises:
            LiquidityOverflow: If a boundary tick would exceed the per-tick cap
            NoPositionLiquidity: On a zero-delta update of an empty position
        """
        key = PositionKey(owner, tick_lower, tick_upper)
        if liquidity_delta == 0 and key not in self._positions:
            raise NoPositionLiquidity(f"No position for {owner} in [{tick_lower}, {tick_upper})")
        position = self._get_or_create(key)

        flipped_lower = False
        flipped_upper = False
        if liquidity_delta != 0:
            flipped_lower = self.ticks.update(
                tick_lower, tick_current, liquidity_delta, growth, False, self.max_liquidity_per_tick
            )
            flipped_upper = self.ticks.update(
                tick_upper, tick_current, liquidity_delta, growth, True, self.max_liquidity_per_tick
            )
            if flipped_lower:
                self.bitmap.flip_tick(tick_lower, self.tick_spacing)
            if flipped_upper:
                self.bitmap.flip_tick(tick_upper, self.tick_spacing)

        fee_growth_inside0_x128, fee_growth_inside1_x128 = self.ticks.get_fee_growth_inside(
            tick_lower,
            tick_upper,
            tick_current,
            growth.fee_growth_global0_x128,
            growth.fee_growth_global1_x128,
        )

        position.update(liquidity_delta, fee_growth_inside0_x128, fee_growth_inside1_x128)

        # Ticks that lost their last reference are no longer needed
        if liquidity_delta < 0:
            if flipped_lower:
                self.ticks.clear(tick_lower)
            if flipped_upper:
                self.ticks.clear(tick_upper)

        return replace(position)

    def collect(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int,
    ) -> tuple[int, int]:
        """Pay out up to the requested amounts from a position's owed tokens.

        Returns:
            Tuple of (amount0, amount1) actually paid
        """
        position = self._positions.get(PositionKey(owner, tick_lower, tick_upper))
        if position is None:
            return 0, 0
        amount0 = min(amount0_requested, position.tokens_owed0)
        amount1 = min(amount1_requested, position.tokens_owed1)
        position.tokens_owed0 -= amount0
        position.tokens_owed1 -= amount1
        return amount0, amount1

    def credit(self, owner: str, tick_lower: int, tick_upper: int, amount0: int, amount1: int) -> None:
        """Add burned principal to a position's owed tokens."""
        position = self._get_or_create(PositionKey(owner, tick_lower, tick_upper))
        position.tokens_owed0 = (S(position.tokens_owed0) + amount0).to_uint128()
        position.tokens_owed1 = (S(position.tokens_owed1) + amount1).to_uint128()


__all__ = ["PositionKey", "PositionInfo", "PositionLedger"]
