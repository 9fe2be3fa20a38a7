"""Fixed-point constants, tick bounds and fee tiers for the pool engine."""

# Fixed-point resolutions
RESOLUTION = 96
Q96 = 1 << 96
Q128 = 1 << 128

# Integer widths used by pool state
MAX_UINT128 = 2**128 - 1
MAX_UINT160 = 2**160 - 1
MAX_UINT256 = 2**256 - 1
MIN_INT128 = -(2**127)
MAX_INT128 = 2**127 - 1
MIN_INT256 = -(2**255)
MAX_INT256 = 2**255 - 1

# Tick bounds: log base sqrt(1.0001) of 2^-128 and 2^128
MIN_TICK = -887272
MAX_TICK = -MIN_TICK

# sqrt prices at MIN_TICK and MAX_TICK, Q64.96
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Fees are expressed in pips (hundredths of a basis point)
# Fee = pips / 1,000,000 (e.g., 3000 = 0.3%)
FEE_DENOMINATOR = 1_000_000

FEE_LOWEST = 100  # 0.01% - pegged pairs
FEE_LOW = 500  # 0.05% - stable pairs
FEE_MEDIUM = 3000  # 0.30% - most pairs
FEE_HIGH = 10000  # 1.00% - exotic pairs

FEE_TIERS = [FEE_LOWEST, FEE_LOW, FEE_MEDIUM, FEE_HIGH]

# Tick spacing per fee tier
TICK_SPACING = {
    FEE_LOWEST: 1,
    FEE_LOW: 10,
    FEE_MEDIUM: 60,
    FEE_HIGH: 200,
}

# Largest tick spacing accepted; keeps next_initialized_tick_within_one_word
# from overflowing the tick range
MAX_TICK_SPACING = 16384

# Observation ring buffer capacity
MAX_OBSERVATION_CARDINALITY = 65535

__all__ = [
    "RESOLUTION",
    "Q96",
    "Q128",
    "MAX_UINT128",
    "MAX_UINT160",
    "MAX_UINT256",
    "MIN_INT128",
    "MAX_INT128",
    "MIN_INT256",
    "MAX_INT256",
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "FEE_DENOMINATOR",
    "FEE_LOWEST",
    "FEE_LOW",
    "FEE_MEDIUM",
    "FEE_HIGH",
    "FEE_TIERS",
    "TICK_SPACING",
    "MAX_TICK_SPACING",
    "MAX_OBSERVATION_CARDINALITY",
]
