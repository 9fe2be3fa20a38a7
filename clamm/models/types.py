"""Shared type definitions for pool models.

Large integers travel through JSON as decimal strings; these annotated
types accept either a string or an int and validate the width.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from clamm.constants import MAX_TICK, MAX_UINT128, MAX_UINT160, MAX_UINT256, MIN_TICK


def _make_uint_validator(max_value: int, width: str):  # type: ignore[no-untyped-def]
    def validate(value: Any) -> int:
        """Validate that a value is a non-negative integer within the width.

        Raises:
            ValueError: If value is not a valid integer within range
        """
        if isinstance(value, bool):
            raise ValueError(f"{width} must be an integer, got bool")
        if isinstance(value, str):
            try:
                value = int(value)
            except ValueError as err:
                raise ValueError(f"{width} must be a decimal integer string: '{value}'") from err
        if not isinstance(value, int):
            raise ValueError(f"{width} must be string or int, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{width} cannot be negative: {value}")
        if value > max_value:
            raise ValueError(f"{width} overflow: {value}")
        return value

    return validate


def validate_signed_amount(value: Any) -> int:
    """Validate a signed int256 amount (decimal string or int)."""
    if isinstance(value, bool):
        raise ValueError("Amount must be an integer, got bool")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Amount must be a decimal integer string: '{value}'") from err
    if not isinstance(value, int):
        raise ValueError(f"Amount must be string or int, got {type(value).__name__}")
    if abs(value) > MAX_UINT256 // 2:
        raise ValueError(f"Amount outside int256 range: {value}")
    return value


# Liquidity amounts
Uint128 = Annotated[
    int,
    BeforeValidator(_make_uint_validator(MAX_UINT128, "uint128")),
    Field(description="128-bit unsigned integer"),
]

# Q64.96 sqrt prices
Uint160 = Annotated[
    int,
    BeforeValidator(_make_uint_validator(MAX_UINT160, "uint160")),
    Field(description="160-bit unsigned integer"),
]

# Token amounts
Uint256 = Annotated[
    int,
    BeforeValidator(_make_uint_validator(MAX_UINT256, "uint256")),
    Field(description="256-bit unsigned integer"),
]

# Signed swap amount (positive exact input, negative exact output)
Int256 = Annotated[
    int,
    BeforeValidator(validate_signed_amount),
    Field(description="256-bit signed integer"),
]

Tick = Annotated[int, Field(ge=MIN_TICK, le=MAX_TICK)]
