"""Per-tick liquidity and "outside" checkpoints.

Each initialized tick stores accumulator values for the side of the tick
*opposite* the current price ("outside"). Because the meaning of outside
flips every time the price crosses the tick, crossing is just
`outside := global - outside`, and the growth inside any range [lower,
upper] is recovered as `global - below(lower) - above(upper)`.

Fee growth values are Q128.128 and all arithmetic on them is modulo
2^256: an individual outside value can legitimately exceed the global
one, but differences of differences always come out right.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from clamm.constants import MAX_UINT256
from clamm.errors import LiquidityOverflow
from clamm.math.liquidity_math import add_delta
from clamm.safe_int import S

_MOD_256 = MAX_UINT256 + 1


def sub_mod_256(a: int, b: int) -> int:
    """a - b modulo 2^256."""
    return (a - b) % _MOD_256


@dataclass
class TickInfo:
    """State stored for an initialized tick."""

    # Total position liquidity referencing this tick
    liquidity_gross: int = 0
    # Liquidity added when crossing left to right (removed right to left)
    liquidity_net: int = 0
    # Fee growth per unit liquidity on the other side of this tick
    fee_growth_outside0_x128: int = 0
    fee_growth_outside1_x128: int = 0
    # Oracle cumulatives on the other side of this tick
    tick_cumulative_outside: int = 0
    seconds_per_liquidity_outside_x128: int = 0
    seconds_outside: int = 0
    initialized: bool = False


@dataclass(frozen=True)
class GlobalGrowth:
    """Pool-wide accumulators at the moment a tick is touched."""

    fee_growth_global0_x128: int = 0
    fee_growth_global1_x128: int = 0
    tick_cumulative: int = 0
    seconds_per_liquidity_cumulative_x128: int = 0
    time: int = 0


class TickTable:
    """Sparse mapping of tick -> TickInfo."""

    def __init__(self, ticks: dict[int, TickInfo] | None = None) -> None:
        self._ticks: dict[int, TickInfo] = ticks if ticks is not None else {}

    def __contains__(self, tick: object) -> bool:
        return tick in self._ticks

    def __len__(self) -> int:
        return len(self._ticks)

    def get(self, tick: int) -> TickInfo:
        """TickInfo for a tick (a blank record if the tick is not initialized)."""
        info = self._ticks.get(tick)
        return replace(info) if info is not None else TickInfo()

    def items(self) -> list[tuple[int, TickInfo]]:
        return [(tick, replace(info)) for tick, info in sorted(self._ticks.items())]

    def copy(self) -> TickTable:
        return TickTable({tick: replace(info) for tick, info in self._ticks.items()})

    def get_fee_growth_inside(
        self,
        tick_lower: int,
        tick_upper: int,
        tick_current: int,
        fee_growth_global0_x128: int,
        fee_growth_global1_x128: int,
    ) -> tuple[int, int]:
        """Fee growth per unit liquidity accrued inside [tick_lower, tick_upper)."""
        lower = self._ticks.get(tick_lower) or TickInfo()
        upper = self._ticks.get(tick_upper) or TickInfo()

        # Growth below the lower tick
        if tick_current >= tick_lower:
            below0 = lower.fee_growth_outside0_x128
            below1 = lower.fee_growth_outside1_x128
        else:
            below0 = sub_mod_256(fee_growth_global0_x128, lower.fee_growth_outside0_x128)
            below1 = sub_mod_256(fee_growth_global1_x128, lower.fee_growth_outside1_x128)

        # Growth above the upper tick
        if tick_current < tick_upper:
            above0 = upper.fee_growth_outside0_x128
            above1 = upper.fee_growth_outside1_x128
        else:
            above0 = sub_mod_256(fee_growth_global0_x128, upper.fee_growth_outside0_x128)
            above1 = sub_mod_256(fee_growth_global1_x128, upper.fee_growth_outside1_x128)

        return (
            sub_mod_256(sub_mod_256(fee_growth_global0_x128, below0), above0),
            sub_mod_256(sub_mod_256(fee_growth_global1_x128, below1), above1),
        )

    def update(
        self,
        tick: int,
        tick_current: int,
        liquidity_delta: int,
        growth: GlobalGrowth,
        upper: bool,
        max_liquidity: int,
    ) -> bool:
        """Apply a liquidity delta to one boundary tick of a position.

        On first initialization, the outside checkpoints are seeded from the
        globals only if the tick is at or below the current tick: by
        convention all growth so far happened below a tick the price is
        above.

        Args:
            tick: Boundary tick being updated
            tick_current: Current pool tick
            liquidity_delta: Signed liquidity added to the position
            growth: Current global accumulators
            upper: Whether tick is the position's upper boundary
            max_liquidity: Per-tick cap on gross liquidity

        Returns:
            True if the tick flipped between initialized and uninitialized

        Raises:
            LiquidityOverflow: If gross liquidity would exceed max_liquidity
        """
        info = self._ticks.get(tick) or TickInfo()

        liquidity_gross_before = info.liquidity_gross
        liquidity_gross_after = add_delta(liquidity_gross_before, liquidity_delta)

        if liquidity_gross_after > max_liquidity:
            raise LiquidityOverflow(
                f"Gross liquidity {liquidity_gross_after} at tick {tick} exceeds cap {max_liquidity}"
            )

        flipped = (liquidity_gross_after == 0) != (liquidity_gross_before == 0)

        if liquidity_gross_before == 0:
            if tick <= tick_current:
                info.fee_growth_outside0_x128 = growth.fee_growth_global0_x128
                info.fee_growth_outside1_x128 = growth.fee_growth_global1_x128
                info.seconds_per_liquidity_outside_x128 = growth.seconds_per_liquidity_cumulative_x128
                info.tick_cumulative_outside = growth.tick_cumulative
                info.seconds_outside = growth.time
            info.initialized = True

        info.liquidity_gross = liquidity_gross_after

        # Lower ticks add liquidity when crossed upward; upper ticks remove it
        if upper:
            info.liquidity_net = S(info.liquidity_net - liquidity_delta).to_int128()
        else:
            info.liquidity_net = S(info.liquidity_net + liquidity_delta).to_int128()

        self._ticks[tick] = info
        return flipped

    def clear(self, tick: int) -> None:
        self._ticks.pop(tick, None)

    def cross(self, tick: int, growth: GlobalGrowth) -> int:
        """Flip a tick's outside checkpoints as the price crosses it.

        Returns:
            The tick's liquidity_net (to be negated when moving left)
        """
        info = self._ticks.get(tick)
        if info is None:
            return 0
        info.fee_growth_outside0_x128 = sub_mod_256(growth.fee_growth_global0_x128, info.fee_growth_outside0_x128)
        info.fee_growth_outside1_x128 = sub_mod_256(growth.fee_growth_global1_x128, info.fee_growth_outside1_x128)
        info.seconds_per_liquidity_outside_x128 = (
            growth.seconds_per_liquidity_cumulative_x128 - info.seconds_per_liquidity_outside_x128
        )
        info.tick_cumulative_outside = growth.tick_cumulative - info.tick_cumulative_outside
        info.seconds_outside = growth.time - info.seconds_outside
        return info.liquidity_net


__all__ = ["TickInfo", "GlobalGrowth", "TickTable", "sub_mod_256"]
