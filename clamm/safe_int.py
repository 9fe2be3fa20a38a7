"""Safe integer wrapper for fixed-point pool arithmetic.

This module provides SafeInt, a lightweight wrapper that makes arithmetic
on prices, liquidity and token amounts safe by default:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Width overflow (uint128/uint160/uint256, int128/int256) is caught on
  conversion

Usage pattern:
    from clamm.safe_int import S

    def next_price(price: int, liquidity: int, amount: int) -> int:
        # Wrap at entry
        sp, sl, sa = S(price), S(liquidity), S(amount)

        # Natural arithmetic - automatically safe
        quotient = (sa << 96) // sl    # Raises if liquidity == 0

        # Unwrap at exit, checking the storage width
        return (sp + quotient).to_uint160()
"""

from __future__ import annotations

from clamm.constants import (
    MAX_INT128,
    MAX_INT256,
    MAX_UINT128,
    MAX_UINT160,
    MAX_UINT256,
    MIN_INT128,
    MIN_INT256,
)
from clamm.errors import PoolArithmeticError


class SafeIntError(PoolArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class Overflow(SafeIntError):
    """Value does not fit the requested integer width."""

    pass


class SafeInt:
    """Integer with safe arithmetic operations.

    Wraps an integer and provides arithmetic operators that raise
    descriptive errors instead of producing invalid results:
    - Division by zero raises DivisionByZero
    - Negative results from subtraction raise Underflow
    - Values outside a storage width raise Overflow on to_uint128(),
      to_uint160(), to_uint256(), to_int128() and to_int256()

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        """Add two values. Result may be negative (no check)."""
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        result = other - self._value
        if result < 0:
            raise Underflow(f"Underflow: {other} - {self._value} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division (rounds down).

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        """Modulo operation.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Modulo by zero: {self._value} % 0")
        return SafeInt(self._value % other_val)

    def __lshift__(self, bits: int) -> SafeInt:
        return SafeInt(self._value << bits)

    def __rshift__(self, bits: int) -> SafeInt:
        return SafeInt(self._value >> bits)

    def __neg__(self) -> SafeInt:
        return SafeInt(-self._value)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return NotImplemented
        return not result

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division (rounds up) of a non-negative value.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        return SafeInt(-(-self._value // other_val))

    def min(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(min(self._value, _extract_value(other)))

    def to_uint128(self) -> int:
        """Convert to int, validating uint128 bounds."""
        return self._check_unsigned(MAX_UINT128, "uint128")

    def to_uint160(self) -> int:
        """Convert to int, validating uint160 bounds."""
        return self._check_unsigned(MAX_UINT160, "uint160")

    def to_uint256(self) -> int:
        """Convert to int, validating uint256 bounds.

        Raises:
            Overflow: If value is negative or exceeds 2^256-1
        """
        return self._check_unsigned(MAX_UINT256, "uint256")

    def to_int128(self) -> int:
        """Convert to int, validating int128 bounds."""
        return self._check_signed(MIN_INT128, MAX_INT128, "int128")

    def to_int256(self) -> int:
        """Convert to int, validating int256 bounds."""
        return self._check_signed(MIN_INT256, MAX_INT256, "int256")

    def _check_unsigned(self, max_value: int, width: str) -> int:
        if self._value < 0:
            raise Overflow(f"Negative value cannot be {width}: {self._value}")
        if self._value > max_value:
            raise Overflow(f"Value exceeds {width} max: {self._value}")
        return self._value

    def _check_signed(self, min_value: int, max_value: int, width: str) -> int:
        if not min_value <= self._value <= max_value:
            raise Overflow(f"Value outside {width} range: {self._value}")
        return self._value

    @classmethod
    def zero(cls) -> SafeInt:
        """Create a SafeInt with value 0."""
        return cls(0)


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
