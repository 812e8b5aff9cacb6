"""Numeric utilities for consistent Decimal handling."""

from decimal import Decimal, getcontext

# Set precision for financial calculations
getcontext().prec = 28

# Vendor prices are integers in units of 1e-9
PRICE_SCALE_EXPONENT = -9
PRICE_SCALE = Decimal(1).scaleb(PRICE_SCALE_EXPONENT)


def D(x) -> Decimal:
    """
    Robust Decimal conversion for ints/floats/strings/Decimals.
    
    Avoids binary floating-point artifacts by converting floats to strings first.
    
    Args:
        x: Value to convert (int, float, str, or Decimal)
    
    Returns:
        Decimal: Converted value
    
    Raises:
        TypeError: If type is not supported
    """
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise TypeError("Unsupported numeric type: bool")
    if isinstance(x, int):
        return Decimal(x)
    if isinstance(x, str):
        return Decimal(x)
    if isinstance(x, float):
        return Decimal(str(x))
    raise TypeError(f"Unsupported numeric type: {type(x)}")


def from_fixed_point(raw: int, exponent: int = PRICE_SCALE_EXPONENT) -> Decimal:
    """
    Convert a fixed-point integer price into a Decimal.

    The conversion is exact: 5000250000000 with exponent -9 is Decimal('5000.250000000').
    """
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError(f"Fixed-point price must be int, got {type(raw)}")
    return Decimal(raw).scaleb(exponent)


def to_fixed_point(price, exponent: int = PRICE_SCALE_EXPONENT) -> int:
    """Inverse of from_fixed_point; used by loaders and test fixtures."""
    return int(D(price).scaleb(-exponent).to_integral_value())
