"""Full-precision multiply-divide helpers.

Intermediate products are exact (Python ints are unbounded); only the
result is checked against the uint256 width, matching 512-bit mulDiv
semantics.
"""

from __future__ import annotations

from clamm.constants import MAX_UINT256
from clamm.safe_int import DivisionByZero, Overflow, S


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute floor(a * b / denominator).

    Raises:
        DivisionByZero: If denominator is zero
        Overflow: If the result exceeds uint256
    """
    return ((S(a) * S(b)) // S(denominator)).to_uint256()


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """Compute ceil(a * b / denominator).

    Raises:
        DivisionByZero: If denominator is zero
        Overflow: If the result exceeds uint256
    """
    result = mul_div(a, b, denominator)
    if (a * b) % denominator:
        if result >= MAX_UINT256:
            raise Overflow(f"mul_div_rounding_up overflow: {a} * {b} / {denominator}")
        result += 1
    return result


def div_rounding_up(x: int, y: int) -> int:
    """Compute ceil(x / y) for non-negative x.

    Raises:
        DivisionByZero: If y is zero
    """
    if y == 0:
        raise DivisionByZero(f"Division by zero: ceil({x} / 0)")
    return S(x).ceiling_div(y).value


__all__ = ["mul_div", "mul_div_rounding_up", "div_rounding_up"]
