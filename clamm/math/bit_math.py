"""Bit scanning helpers for 256-bit bitmap words."""


def most_significant_bit(x: int) -> int:
    """Index of the highest set bit of a positive integer."""
    if x <= 0:
        raise ValueError(f"most_significant_bit requires a positive value, got {x}")
    return x.bit_length() - 1


def least_significant_bit(x: int) -> int:
    """Index of the lowest set bit of a positive integer."""
    if x <= 0:
        raise ValueError(f"least_significant_bit requires a positive value, got {x}")
    return (x & -x).bit_length() - 1


__all__ = ["most_significant_bit", "least_significant_bit"]
