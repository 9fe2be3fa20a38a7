"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from clamm.models.config import PoolConfig
from clamm.pool import Pool
from clamm.simulation import ManualClock
from tests.helpers.constants import START_TIME
from tests.helpers.factories import make_pool

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SCENARIOS_DIR = FIXTURES_DIR / "scenarios"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return FIXTURES_DIR


@pytest.fixture
def scenarios_dir() -> Path:
    """Return the scenario fixtures directory path."""
    return SCENARIOS_DIR


@pytest.fixture
def clock() -> ManualClock:
    """Clock starting at START_TIME that only moves when advanced."""
    return ManualClock(START_TIME)


@pytest.fixture
def config() -> PoolConfig:
    """Medium fee tier: 0.3% fee, tick spacing 60."""
    return PoolConfig(token0="token0", token1="token1", fee=3000, tick_spacing=60)


@pytest.fixture
def uninitialized_pool(config: PoolConfig, clock: ManualClock) -> Pool:
    """Pool that has not been given a starting price."""
    return Pool(config, clock=clock)


@pytest.fixture
def pool(clock: ManualClock) -> Pool:
    """Medium fee tier pool initialized at tick 0 (price 1:1), no liquidity."""
    return make_pool(clock=clock)
