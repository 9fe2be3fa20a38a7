"""Stateful building blocks of a pool.

- TickBitmap: which ticks hold liquidity
- Oracle: ring buffer of cumulative tick observations
- TickTable: per-tick liquidity and outside checkpoints
- PositionLedger: positions plus the ticks and bitmap they reference
"""

from clamm.state.oracle import Observation, Oracle
from clamm.state.position import PositionInfo, PositionKey, PositionLedger
from clamm.state.tick import GlobalGrowth, TickInfo, TickTable
from clamm.state.tick_bitmap import TickBitmap

__all__ = [
    "Observation",
    "Oracle",
    "PositionInfo",
    "PositionKey",
    "PositionLedger",
    "GlobalGrowth",
    "TickInfo",
    "TickTable",
    "TickBitmap",
]
