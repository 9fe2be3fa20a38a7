"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token names, owners, amounts and prices
- factories: Pool construction, price encoding and transfer callbacks
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    E18,
    FEE_MEDIUM,
    PRICE_1_1,
    START_TIME,
    TICK_SPACING_MEDIUM,
    TOKEN0,
    TOKEN1,
)
from tests.helpers.factories import TransferRecorder, encode_price_sqrt, make_pool

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "E18",
    "FEE_MEDIUM",
    "PRICE_1_1",
    "START_TIME",
    "TICK_SPACING_MEDIUM",
    "TOKEN0",
    "TOKEN1",
    # Factories
    "TransferRecorder",
    "encode_price_sqrt",
    "make_pool",
]
